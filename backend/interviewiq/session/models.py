from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class VoiceConfig:
    voice_id: str
    style: str = "Conversational"
    name: str = "Interviewer"


@dataclass(frozen=True)
class QuestionAudioArtifact:
    """
    Audio rendering of one question. Written once during setup, read-only after.
    A failed synthesis is still recorded (ok=False) so indexes stay aligned.
    """
    index: int
    source_text: str
    voice: VoiceConfig
    ok: bool
    path: Optional[str] = None
    filename: Optional[str] = None
    format: str = "base64_wav"
    error: Optional[str] = None

    @classmethod
    def failed(cls, index: int, source_text: str, voice: VoiceConfig, error: str) -> "QuestionAudioArtifact":
        return cls(
            index=index,
            source_text=source_text,
            voice=voice,
            ok=False,
            format="text_only",
            error=error,
        )


@dataclass
class QuestionRecord:
    """Single per-question record: text, ordinal and its audio artifact."""
    index: int
    text: str
    artifact: Optional[QuestionAudioArtifact] = None

    @property
    def has_audio(self) -> bool:
        return bool(self.artifact and self.artifact.ok and self.artifact.path)


@dataclass(frozen=True)
class TranscriptEntry:
    question_index: Optional[int]
    question: str
    transcript: str

    def to_payload(self) -> dict:
        return {
            "questionIndex": self.question_index,
            "question": self.question,
            "transcript": self.transcript,
        }


@dataclass(frozen=True)
class AnalysisSnapshot:
    volume: float = 0.0
    pitch: float = 0.0
    is_speaking: bool = False
    is_paused: bool = False

    def to_payload(self) -> dict:
        return {
            "volume": round(float(self.volume), 5),
            "pitch": round(float(self.pitch), 2),
            "isSpeaking": bool(self.is_speaking),
            "isPaused": bool(self.is_paused),
        }


@dataclass(frozen=True)
class Improvement:
    points: list[str]
    suggested: str


@dataclass(frozen=True)
class SummaryItem:
    question: str
    your_response: str
    points_to_change: list[str]
    suggested_response: str

    def to_payload(self) -> dict:
        return {
            "question": self.question,
            "yourResponse": self.your_response,
            "suggestedResponse": self.suggested_response,
            "pointsToChange": list(self.points_to_change),
        }


@dataclass
class VocalResult:
    analysis: AnalysisSnapshot = field(default_factory=AnalysisSnapshot)
    # every transcript this chunk produced, oldest question first
    transcripts: list[TranscriptEntry] = field(default_factory=list)
    transcript: str = ""
    question_index: Optional[int] = None
    fillers: list[str] = field(default_factory=list)
    filler_count: int = 0
