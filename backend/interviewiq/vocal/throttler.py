import logging
import time
from typing import Awaitable, Callable, Optional

from core.config import FEEDBACK_INTERVAL_MS, FEEDBACK_MIN_CHARS
from interviewiq.system_metrics import increment_metric

logger = logging.getLogger("interviewiq.vocal.throttler")

FeedbackRequestFn = Callable[[str, str], Awaitable[Optional[str]]]


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class FeedbackThrottler:
    """At most one coaching request per `interval_ms`, whatever the chunk rate."""

    def __init__(
        self,
        request_fn: FeedbackRequestFn,
        interval_ms: int = FEEDBACK_INTERVAL_MS,
        min_chars: int = FEEDBACK_MIN_CHARS,
        clock_ms: Callable[[], float] = _monotonic_ms,
    ):
        self.request_fn = request_fn
        self.interval_ms = float(interval_ms)
        self.min_chars = int(min_chars)
        self.clock_ms = clock_ms
        self.last_request_ms: Optional[float] = None

    def ready(self, now_ms: Optional[float] = None) -> bool:
        if self.last_request_ms is None:
            return True
        now = self.clock_ms() if now_ms is None else now_ms
        return (now - self.last_request_ms) >= self.interval_ms

    async def maybe_request_feedback(self, transcript: str, question: str) -> Optional[str]:
        now = self.clock_ms()
        if not self.ready(now):
            increment_metric("feedback_throttled")
            logger.debug(
                "feedback throttled | since_last_ms=%.0f interval_ms=%.0f",
                now - float(self.last_request_ms or 0.0),
                self.interval_ms,
            )
            return None

        text = str(transcript or "").strip()
        if len(text) < self.min_chars:
            return None

        self.last_request_ms = now
        increment_metric("feedback_requests")
        return await self.request_fn(text, str(question or ""))

    def reset(self) -> None:
        self.last_request_ms = None
