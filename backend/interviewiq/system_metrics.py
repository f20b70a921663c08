import threading
import time
from typing import Any


_lock = threading.Lock()
_metrics: dict[str, float] = {
    "ws_connections_active": 0.0,
    "ws_disconnects_total": 0.0,
    "sessions_started": 0.0,
    "sessions_completed": 0.0,
    "sessions_fatal": 0.0,
    "chunks_processed": 0.0,
    "chunks_silent": 0.0,
    "chunks_dropped_decode": 0.0,
    "transcriptions_total": 0.0,
    "transcription_failures": 0.0,
    "feedback_requests": 0.0,
    "feedback_throttled": 0.0,
    "synthesis_jobs": 0.0,
    "synthesis_failures": 0.0,
    "protocol_errors": 0.0,
    "synthesis_duration_total_sec": 0.0,
    "synthesis_duration_samples": 0.0,
}


def increment_metric(name: str, amount: float = 1.0) -> None:
    key = str(name or "").strip()
    if not key:
        return
    with _lock:
        _metrics[key] = float(_metrics.get(key, 0.0)) + float(amount)


def decrement_metric(name: str, amount: float = 1.0) -> None:
    key = str(name or "").strip()
    if not key:
        return
    with _lock:
        next_value = float(_metrics.get(key, 0.0)) - float(amount)
        _metrics[key] = max(0.0, next_value)


def set_metric(name: str, value: float) -> None:
    key = str(name or "").strip()
    if not key:
        return
    with _lock:
        _metrics[key] = max(0.0, float(value))


def observe_synthesis_duration(seconds: float) -> None:
    duration = max(0.0, float(seconds or 0.0))
    with _lock:
        _metrics["synthesis_duration_total_sec"] = float(_metrics.get("synthesis_duration_total_sec", 0.0)) + duration
        _metrics["synthesis_duration_samples"] = float(_metrics.get("synthesis_duration_samples", 0.0)) + 1.0


def get_metrics_snapshot(extra: dict[str, Any] | None = None) -> dict[str, Any]:
    with _lock:
        data = dict(_metrics)

    synthesis_samples = max(1.0, float(data.get("synthesis_duration_samples") or 0.0))

    payload: dict[str, Any] = {"generated_at": time.time()}
    for key, value in data.items():
        if key.endswith("_total_sec"):
            payload[key] = float(value or 0.0)
        else:
            payload[key] = int(value or 0.0)
    payload["avg_synthesis_duration"] = round(
        float(data.get("synthesis_duration_total_sec") or 0.0) / synthesis_samples, 4
    )

    if extra:
        payload.update(extra)
    return payload
