import logging

from interviewiq.errors import SynthesisError
from interviewiq.services.synthesis_client import SpeechSynthesisStreamingClient
from interviewiq.services.voice_assignment import assign_voice
from interviewiq.services.voice_catalog import VoiceCatalog
from interviewiq.session.artifact_store import ArtifactStore
from interviewiq.session.models import QuestionAudioArtifact

logger = logging.getLogger("interviewiq.services.question_audio")


class QuestionAudioRenderer:
    """Turns one question into a WAV artifact; synthesis failures become failed artifacts."""

    def __init__(self, catalog: VoiceCatalog, synthesizer: SpeechSynthesisStreamingClient):
        self.catalog = catalog
        self.synthesizer = synthesizer

    async def render(self, index: int, question_text: str, store: ArtifactStore) -> QuestionAudioArtifact:
        voice = await assign_voice(self.catalog, question_text, index)
        try:
            audio = await self.synthesizer.synthesize(question_text, voice)
        except SynthesisError as exc:
            logger.warning("question synthesis failed | index=%s voice=%s err=%s", index, voice.voice_id, exc)
            return QuestionAudioArtifact.failed(index, question_text, voice, str(exc) or type(exc).__name__)

        # SessionFatalError from the store is not recoverable per question
        path, filename = store.write_question_audio(index, audio)
        return QuestionAudioArtifact(
            index=index,
            source_text=question_text,
            voice=voice,
            ok=True,
            path=path,
            filename=filename,
        )
