import logging
import re

from core.config import DEFAULT_VOICE_ID, DEFAULT_VOICE_STYLE
from interviewiq.errors import VoiceCatalogError
from interviewiq.services.voice_catalog import VoiceCatalog
from interviewiq.session.models import VoiceConfig

logger = logging.getLogger("interviewiq.services.voice_assignment")

TECHNICAL_PATTERN = re.compile(r"(experience|project|technical|code|python|java|debug|system)", re.IGNORECASE)
BEHAVIORAL_PATTERN = re.compile(r"(team|conflict|challenge|mistake|goal|behavior|situation)", re.IGNORECASE)

FALLBACK_VOICE = VoiceConfig(voice_id=DEFAULT_VOICE_ID, style=DEFAULT_VOICE_STYLE, name="Interviewer")


def classify_question(question_text: str) -> str:
    text = str(question_text or "")
    if TECHNICAL_PATTERN.search(text):
        return "technical"
    if BEHAVIORAL_PATTERN.search(text):
        return "behavioral"
    return "general"


async def assign_voice(catalog: VoiceCatalog, question_text: str, index: int) -> VoiceConfig:
    """Technical questions get a male voice, behavioral ones a female voice."""
    kind = classify_question(question_text)
    try:
        if kind == "technical":
            voice_id = (
                await catalog.find_voice_id_by_name("cooper")
                or await catalog.find_voice_id_by_name("ryan")
                or await catalog.random_voice("en", "male")
            )
            name = "Technical Interviewer"
        elif kind == "behavioral":
            voice_id = (
                await catalog.find_voice_id_by_name("hazel")
                or await catalog.find_voice_id_by_name("imani")
                or await catalog.random_voice("en", "female")
            )
            name = "HR Manager"
        else:
            voice_id = await catalog.random_voice("en")
            name = "Interviewer"
    except VoiceCatalogError as exc:
        logger.warning("voice assignment fallback | index=%s err=%s", index, exc)
        return FALLBACK_VOICE

    logger.info("voice selected | index=%s voice_id=%s name=%s", index, voice_id, name)
    return VoiceConfig(voice_id=voice_id, style=DEFAULT_VOICE_STYLE, name=name)
