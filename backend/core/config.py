import os
import tempfile
from pathlib import Path
from dotenv import load_dotenv

_BACKEND_ROOT = Path(__file__).resolve().parents[1]
_BACKEND_ENV_PATH = _BACKEND_ROOT / ".env"
load_dotenv(dotenv_path=_BACKEND_ENV_PATH, override=False)


def _env_flag(name: str, default: str = "false") -> bool:
    return str(os.getenv(name, default)).strip().lower() in {"1", "true", "yes", "on"}


OPENAI_API_KEY = str(os.getenv("OPENAI_API_KEY") or "").strip()
MURF_API_KEY = str(os.getenv("MURF_API_KEY") or "").strip()
QA_MODE = _env_flag("QA_MODE")

# ---- Language / speech providers
CHAT_MODEL = str(os.getenv("CHAT_MODEL") or "gpt-4o-mini").strip()
TRANSCRIPTION_MODEL = str(os.getenv("TRANSCRIPTION_MODEL") or "whisper-1").strip()
TRANSCRIPTION_LANGUAGE = str(os.getenv("TRANSCRIPTION_LANGUAGE") or "en").strip()
TRANSCRIPTION_PROMPT = "This is an interview response. Transcribe clearly."
QUESTION_COUNT = max(1, int(os.getenv("QUESTION_COUNT", "3")))

MURF_WS_URL = str(os.getenv("MURF_WS_URL") or "wss://api.murf.ai/v1/speech/stream-input").strip()
MURF_VOICES_URL = str(os.getenv("MURF_VOICES_URL") or "https://api.murf.ai/v1/speech/voices").strip()
SYNTHESIS_SAMPLE_RATE = max(8000, int(os.getenv("SYNTHESIS_SAMPLE_RATE", "44100")))
SYNTHESIS_TIMEOUT_SEC = max(1.0, float(os.getenv("SYNTHESIS_TIMEOUT_SEC", "40")))
SYNTHESIS_INACTIVITY_SEC = max(1.0, float(os.getenv("SYNTHESIS_INACTIVITY_SEC", "15")))
VOICE_CACHE_TTL_SEC = max(60.0, float(os.getenv("VOICE_CACHE_TTL_SEC", str(24 * 60 * 60))))
VOICE_CATALOG_TIMEOUT_SEC = max(1.0, float(os.getenv("VOICE_CATALOG_TIMEOUT_SEC", "10")))
DEFAULT_VOICE_ID = str(os.getenv("DEFAULT_VOICE_ID") or "en-UK-hazel").strip()
DEFAULT_VOICE_STYLE = "Conversational"

# ---- Coaching
FEEDBACK_INTERVAL_MS = max(1000, int(os.getenv("FEEDBACK_INTERVAL_MS", "20000")))
FEEDBACK_MIN_CHARS = max(1, int(os.getenv("FEEDBACK_MIN_CHARS", "10")))
IMPROVEMENT_MIN_CHARS = max(1, int(os.getenv("IMPROVEMENT_MIN_CHARS", "5")))

# ---- Vocal analysis
PCM_SAMPLE_RATE = max(8000, int(os.getenv("PCM_SAMPLE_RATE", "16000")))
SPEECH_THRESHOLD = max(0.0, float(os.getenv("SPEECH_THRESHOLD", "0.01")))
PAUSE_THRESHOLD = max(0.0, float(os.getenv("PAUSE_THRESHOLD", "0.005")))
MIN_TRANSCRIBE_SEC = max(0.1, float(os.getenv("MIN_TRANSCRIBE_SEC", "2.0")))
MAX_BUFFER_SEC = max(MIN_TRANSCRIBE_SEC, float(os.getenv("MAX_BUFFER_SEC", "60")))

# ---- Timeouts for external calls (no automatic retry)
TRANSCODE_TIMEOUT_SEC = max(1.0, float(os.getenv("TRANSCODE_TIMEOUT_SEC", "15")))
TRANSCRIPTION_TIMEOUT_SEC = max(1.0, float(os.getenv("TRANSCRIPTION_TIMEOUT_SEC", "30")))
COMPLETION_TIMEOUT_SEC = max(1.0, float(os.getenv("COMPLETION_TIMEOUT_SEC", "20")))
QUESTION_GEN_TIMEOUT_SEC = max(1.0, float(os.getenv("QUESTION_GEN_TIMEOUT_SEC", "30")))
FFMPEG_BINARY = str(os.getenv("FFMPEG_BINARY") or "ffmpeg").strip()

# ---- Storage
SESSION_STORE_PATH = Path(
    os.getenv("SESSION_STORE_PATH") or (_BACKEND_ROOT / "data" / "interview_sessions.jsonl")
)
ARTIFACT_ROOT = str(os.getenv("ARTIFACT_ROOT") or tempfile.gettempdir()).strip()

# ---- WebSocket / HTTP
WS_MAX_TEXT_BYTES = max(1024, int(os.getenv("WS_MAX_TEXT_BYTES", str(16 * 1024 * 1024))))
SESSION_CLEANUP_TTL_SEC = max(60, int(os.getenv("SESSION_CLEANUP_TTL_SEC", "1800")))
SESSION_CLEANUP_INTERVAL_SEC = max(30, int(os.getenv("SESSION_CLEANUP_INTERVAL_SEC", "120")))
