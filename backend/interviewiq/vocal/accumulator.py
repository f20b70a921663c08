import io
import wave
from typing import Optional

from core.config import MAX_BUFFER_SEC, MIN_TRANSCRIBE_SEC, PCM_SAMPLE_RATE
from interviewiq.session.models import TranscriptEntry

BYTES_PER_SAMPLE = 2


def pcm_to_wav(pcm: bytes, sample_rate: int = PCM_SAMPLE_RATE) -> bytes:
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav_file:
        wav_file.setnchannels(1)
        wav_file.setsampwidth(BYTES_PER_SAMPLE)
        wav_file.setframerate(int(sample_rate))
        wav_file.writeframes(pcm)
    return buffer.getvalue()


class TranscriptAccumulator:
    """
    Holds speech PCM for one question at a time until there is enough of it
    to transcribe, plus the ordered question -> transcript history.

    The pending buffer is always attributed to `pending_index` /
    `pending_question`; callers flush it before switching questions.
    """

    def __init__(
        self,
        sample_rate: int = PCM_SAMPLE_RATE,
        min_seconds: float = MIN_TRANSCRIBE_SEC,
        max_seconds: float = MAX_BUFFER_SEC,
    ):
        self.sample_rate = int(sample_rate)
        self.min_seconds = float(min_seconds)
        self.max_seconds = max(self.min_seconds, float(max_seconds))
        self._buffer = bytearray()
        self.pending_index: Optional[int] = None
        self.pending_question: str = ""
        self.history: list[TranscriptEntry] = []

    @property
    def buffered_seconds(self) -> float:
        return len(self._buffer) / float(self.sample_rate * BYTES_PER_SAMPLE)

    @property
    def has_pending(self) -> bool:
        return bool(self._buffer)

    def belongs_to_other_question(self, question_index: Optional[int]) -> bool:
        return self.has_pending and self.pending_index != question_index

    def append(self, pcm: bytes, question_index: Optional[int], question_text: str) -> bool:
        """Adds speech PCM; returns True once the buffer is long enough to transcribe."""
        if not self._buffer:
            self.pending_index = question_index
            self.pending_question = str(question_text or "")
        self._buffer.extend(pcm)

        max_bytes = int(self.max_seconds * self.sample_rate) * BYTES_PER_SAMPLE
        if len(self._buffer) > max_bytes:
            # keep the most recent audio when retries keep failing
            del self._buffer[: len(self._buffer) - max_bytes]
        return self.buffered_seconds >= self.min_seconds

    def pending_wav(self) -> bytes:
        return pcm_to_wav(bytes(self._buffer), self.sample_rate)

    def commit(self, transcript: str) -> TranscriptEntry:
        entry = TranscriptEntry(
            question_index=self.pending_index,
            question=self.pending_question,
            transcript=str(transcript or "").strip(),
        )
        self.history.append(entry)
        self.clear_buffer()
        return entry

    def clear_buffer(self) -> None:
        self._buffer.clear()
        self.pending_index = None
        self.pending_question = ""

    def reset(self) -> None:
        self.clear_buffer()
        self.history.clear()
