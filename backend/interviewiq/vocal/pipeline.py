import logging
import re
from typing import Optional

from interviewiq.errors import TranscriptionError
from interviewiq.services.coaching_service import CoachingService
from interviewiq.services.openai_service import Transcriber
from interviewiq.session.models import SummaryItem, TranscriptEntry, VocalResult
from interviewiq.system_metrics import increment_metric
from interviewiq.vocal.accumulator import TranscriptAccumulator
from interviewiq.vocal.analyzer import SignalAnalyzer
from interviewiq.vocal.throttler import FeedbackThrottler
from interviewiq.vocal.transcoder import AudioTranscoder

logger = logging.getLogger("interviewiq.vocal.pipeline")

FILLER_WORDS = ("um", "uh", "like", "you know", "so", "actually")
_FILLER_PATTERN = re.compile(
    r"\b(" + "|".join(re.escape(word) for word in sorted(FILLER_WORDS, key=len, reverse=True)) + r")\b",
    re.IGNORECASE,
)


def detect_fillers(transcript: str) -> list[str]:
    return [match.group(1).lower() for match in _FILLER_PATTERN.finditer(str(transcript or ""))]


class VocalResponsePipeline:
    """
    Per-session answer processing: transcode, analyze, buffer, transcribe.

    Only speech chunks reach the transcription buffer. A buffer is flushed
    once it holds enough audio or when a silent chunk follows it. Leftover
    audio is also flushed before the candidate moves on to another question
    and before the summary is built.
    """

    def __init__(
        self,
        transcoder: AudioTranscoder,
        transcriber: Transcriber,
        coaching: CoachingService,
        throttler: Optional[FeedbackThrottler] = None,
        analyzer: Optional[SignalAnalyzer] = None,
        accumulator: Optional[TranscriptAccumulator] = None,
    ):
        self.transcoder = transcoder
        self.transcriber = transcriber
        self.coaching = coaching
        self.throttler = throttler or FeedbackThrottler(request_fn=coaching.realtime_feedback)
        self.analyzer = analyzer or SignalAnalyzer()
        self.accumulator = accumulator or TranscriptAccumulator()
        self.filler_count = 0

    @property
    def history(self):
        return list(self.accumulator.history)

    async def process_response(
        self,
        raw_chunk: bytes,
        question_index: Optional[int],
        question_text: str,
    ) -> VocalResult:
        # DecodeError propagates; the orchestrator drops the chunk
        pcm = await self.transcoder.to_pcm(raw_chunk)
        increment_metric("chunks_processed")

        analysis = self.analyzer.analyze(pcm)
        result = VocalResult(analysis=analysis)
        if not analysis.is_speaking:
            increment_metric("chunks_silent")
            # a silent chunk ends the utterance buffered so far
            return self._finish(result, await self.flush_pending())

        # previous question's leftover goes out first, under its own index
        entries = await self.flush_other_question(question_index)
        if self.accumulator.append(pcm, question_index, question_text):
            entries.extend(await self.flush_pending())
        return self._finish(result, entries)

    def _finish(self, result: VocalResult, entries: list[TranscriptEntry]) -> VocalResult:
        result.transcripts = entries
        if entries:
            latest = entries[-1]
            result.transcript = latest.transcript
            result.question_index = latest.question_index
            for entry in entries:
                result.fillers.extend(detect_fillers(entry.transcript))
            self.filler_count += len(result.fillers)
        result.filler_count = self.filler_count
        return result

    async def flush_pending(self) -> list[TranscriptEntry]:
        """Transcribes whatever is buffered, regardless of length."""
        entry = await self._flush()
        if entry is None or not entry.transcript:
            return []
        return [entry]

    async def flush_other_question(self, question_index: Optional[int]) -> list[TranscriptEntry]:
        if not self.accumulator.belongs_to_other_question(question_index):
            return []
        stale_index = self.accumulator.pending_index
        entries = await self.flush_pending()
        if self.accumulator.has_pending:
            logger.warning(
                "dropping untranscribed audio on question switch | question_index=%s buffered_sec=%.2f",
                stale_index,
                self.accumulator.buffered_seconds,
            )
            self.accumulator.clear_buffer()
        return entries

    async def _flush(self) -> Optional[TranscriptEntry]:
        if not self.accumulator.has_pending:
            return None

        increment_metric("transcriptions_total")
        try:
            text = await self.transcriber.transcribe(self.accumulator.pending_wav())
        except TranscriptionError as exc:
            increment_metric("transcription_failures")
            logger.warning(
                "transcription failed, keeping buffer | question_index=%s buffered_sec=%.2f err=%s",
                self.accumulator.pending_index,
                self.accumulator.buffered_seconds,
                exc,
            )
            return None

        return self.accumulator.commit(text)

    async def request_feedback(self, transcript: str, question: str) -> Optional[str]:
        return await self.throttler.maybe_request_feedback(transcript, question)

    async def get_summary(self) -> list[SummaryItem]:
        if self.accumulator.has_pending:
            await self._flush()

        items: list[SummaryItem] = []
        for entry in self.accumulator.history:
            if not entry.transcript.strip():
                continue
            improvement = await self.coaching.request_improvement(entry.question, entry.transcript)
            items.append(
                SummaryItem(
                    question=entry.question or "(Unknown question)",
                    your_response=entry.transcript,
                    points_to_change=list(improvement.points),
                    suggested_response=improvement.suggested,
                )
            )
        return items

    def reset(self) -> None:
        self.accumulator.reset()
        self.analyzer.reset()
        self.throttler.reset()
        self.filler_count = 0
