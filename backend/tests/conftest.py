import os
import sys
import tempfile
from pathlib import Path

import numpy as np


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# core.config reads these once, at first import
TEST_DATA_DIR = tempfile.mkdtemp(prefix="interviewiq_tests_")
os.environ["QA_MODE"] = "true"
os.environ["OPENAI_API_KEY"] = "test-key"
os.environ["MURF_API_KEY"] = "test-murf-key"
os.environ["SESSION_STORE_PATH"] = os.path.join(TEST_DATA_DIR, "sessions.jsonl")
os.environ["ARTIFACT_ROOT"] = os.path.join(TEST_DATA_DIR, "artifacts")


def tone_pcm(seconds: float, freq: float = 200.0, amplitude: int = 8000, sample_rate: int = 16000) -> bytes:
    count = int(seconds * sample_rate)
    t = np.arange(count) / float(sample_rate)
    samples = (amplitude * np.sin(2 * np.pi * freq * t)).astype("<i2")
    return samples.tobytes()


def silent_pcm(seconds: float, sample_rate: int = 16000) -> bytes:
    return b"\x00\x00" * int(seconds * sample_rate)


class FakeCompletion:
    """Returns canned replies in order; a reply that is an Exception is raised."""

    def __init__(self, replies=None, default: str = ""):
        self.replies = list(replies or [])
        self.default = default
        self.calls: list[dict] = []

    async def complete(self, prompt: str, **kwargs) -> str:
        self.calls.append({"prompt": prompt, **kwargs})
        reply = self.replies.pop(0) if self.replies else self.default
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeTranscriber:
    def __init__(self, texts=None, default: str = ""):
        self.texts = list(texts or [])
        self.default = default
        self.calls: list[bytes] = []

    async def transcribe(self, wav_bytes: bytes, **kwargs) -> str:
        self.calls.append(wav_bytes)
        text = self.texts.pop(0) if self.texts else self.default
        if isinstance(text, Exception):
            raise text
        return text


class PassthroughTranscoder:
    """Treats inbound chunks as already-decoded PCM; b'corrupt' fails to decode."""

    def __init__(self):
        self.calls = 0

    async def to_pcm(self, chunk: bytes) -> bytes:
        from interviewiq.errors import DecodeError

        self.calls += 1
        if chunk == b"corrupt":
            raise DecodeError("ffmpeg exited with code 1")
        return chunk


class FakeSynthesizer:
    def __init__(self, fail_for: set[str] | None = None):
        self.fail_for = set(fail_for or set())
        self.calls: list[tuple[str, str]] = []

    async def synthesize(self, text: str, voice) -> bytes:
        from interviewiq.errors import SynthesisTimeout

        self.calls.append((text, voice.voice_id))
        if text in self.fail_for:
            raise SynthesisTimeout("synthesis exceeded 40.0s")
        return b"RIFF" + text.encode("utf-8")


class FakeCatalog:
    def __init__(self, names: dict[str, str] | None = None, fail: bool = False):
        self.names = names or {"cooper": "en-US-cooper", "hazel": "en-UK-hazel"}
        self.fail = fail

    async def find_voice_id_by_name(self, name: str):
        from interviewiq.errors import VoiceCatalogError

        if self.fail:
            raise VoiceCatalogError("Failed to fetch available voices")
        return self.names.get(name)

    async def random_voice(self, language: str = "en", gender=None) -> str:
        from interviewiq.errors import VoiceCatalogError

        if self.fail:
            raise VoiceCatalogError("Failed to fetch available voices")
        return f"{language}-US-random-{gender or 'any'}"


class MemoryRecordStore:
    def __init__(self, fail: bool = False):
        self.records: list[dict] = []
        self.fail = fail

    async def append(self, record: dict) -> None:
        from interviewiq.errors import PersistenceError

        if self.fail:
            raise PersistenceError("disk full")
        self.records.append(record)
