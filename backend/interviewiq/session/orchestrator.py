import base64
import binascii
import json
import logging
import time
from typing import Any, Awaitable, Callable, Optional

from pydantic import BaseModel, ValidationError

from core.logger import log_event
from core.state import InterviewEvent, InterviewState
from interviewiq.errors import (
    ArtifactMissing,
    DecodeError,
    ExternalServiceError,
    PersistenceError,
    ProtocolError,
    SessionFatalError,
)
from interviewiq.schemas import AudioResponseMessage, RequestQuestionMessage, SetupMessage
from interviewiq.services.question_audio import QuestionAudioRenderer
from interviewiq.services.question_service import QuestionGenerator
from interviewiq.services.session_store import SessionRecordStore
from interviewiq.session.artifact_store import ArtifactStore
from interviewiq.session.models import QuestionRecord, TranscriptEntry
from interviewiq.session.state_machine import InterviewStateMachine
from interviewiq.system_metrics import increment_metric
from interviewiq.vocal.pipeline import VocalResponsePipeline

logger = logging.getLogger("interviewiq.session.orchestrator")

SendFn = Callable[[dict], Awaitable[None]]

COMPLETION_MESSAGE = "Congratulations! You have completed all the questions."
AUDIO_ERROR_MESSAGE = "Could not load audio for this question."


def _validation_message(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc") or ()) or "payload"
        parts.append(f"{location}: {error.get('msg')}")
    return "Invalid message: " + "; ".join(parts)


def _validate(model: type[BaseModel], payload: dict) -> Any:
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise ProtocolError(_validation_message(exc)) from exc


def parse_message(raw: str) -> dict:
    try:
        message = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise ProtocolError("Invalid message format") from exc
    if not isinstance(message, dict):
        raise ProtocolError("Invalid message format: expected a JSON object")
    msg_type = message.get("type")
    if not isinstance(msg_type, str) or not msg_type.strip():
        raise ProtocolError("Invalid message format: missing 'type'")
    return message


class InterviewSession:
    """
    One interview over one connection. Not safe for concurrent use: the
    connection worker feeds messages in arrival order, one at a time.
    """

    def __init__(
        self,
        session_id: str,
        send_fn: SendFn,
        question_generator: QuestionGenerator,
        audio_renderer: QuestionAudioRenderer,
        pipeline: VocalResponsePipeline,
        record_store: SessionRecordStore,
        artifact_store: Optional[ArtifactStore] = None,
    ):
        self.session_id = session_id
        self.send_fn = send_fn
        self.question_generator = question_generator
        self.audio_renderer = audio_renderer
        self.pipeline = pipeline
        self.record_store = record_store
        self.artifacts = artifact_store or ArtifactStore()
        self.machine = InterviewStateMachine()
        self.role: Optional[str] = None
        self.records: list[QuestionRecord] = []
        self.current_index = 0

        self._handlers: dict[str, Callable[[dict], Awaitable[None]]] = {
            "SETUP": self._on_setup,
            "REQUEST_QUESTION": self._on_request_question,
            "AUDIO_RESPONSE": self._on_audio_response,
            "INTERVIEW_COMPLETE": self._on_interview_complete,
            "PING": self._on_ping,
        }
        log_event("orchestrator", "session_created", self.session_id, state=self.state.value)

    @property
    def state(self) -> InterviewState:
        return self.machine.state

    @property
    def questions(self) -> list[str]:
        return [record.text for record in self.records]

    async def _send(self, payload: dict) -> None:
        await self.send_fn(payload)

    async def send_error(self, message: str) -> None:
        await self._send({"type": "ERROR", "message": message})

    async def handle_text(self, raw: str) -> None:
        """Entry point for one inbound text frame."""
        try:
            message = parse_message(raw)
        except ProtocolError as exc:
            increment_metric("protocol_errors")
            logger.info("protocol error | session_id=%s err=%s", self.session_id, exc)
            await self.send_error(str(exc))
            return
        await self.handle(message)

    async def handle(self, message: dict) -> None:
        msg_type = str(message.get("type") or "")
        handler = self._handlers.get(msg_type)
        try:
            if handler is None:
                raise ProtocolError(f"Unknown message type: {msg_type}")
            await handler(message)
        except ProtocolError as exc:
            increment_metric("protocol_errors")
            logger.info("protocol error | session_id=%s type=%s err=%s", self.session_id, msg_type, exc)
            await self.send_error(str(exc))
        except SessionFatalError as exc:
            increment_metric("sessions_fatal")
            self.machine.apply(InterviewEvent.FAULT)
            log_event("orchestrator", "session_fatal", self.session_id, error=str(exc))
            await self.send_error("Session failed: unable to store interview audio.")
            raise

    # ---- SETUP

    def _discard_previous_interview(self) -> None:
        self.artifacts.cleanup()
        self.pipeline.reset()
        self.records = []
        self.current_index = 0

    async def _on_setup(self, message: dict) -> None:
        payload = _validate(SetupMessage, message)
        self.machine.apply(InterviewEvent.SETUP)
        self._discard_previous_interview()
        self.role = payload.role
        increment_metric("sessions_started")
        log_event("orchestrator", "setup_started", self.session_id, role=self.role)

        try:
            questions = await self.question_generator.generate(payload.role)
        except ExternalServiceError as exc:
            self.machine.apply(InterviewEvent.SETUP_FAILED)
            logger.warning("question generation failed | session_id=%s err=%s", self.session_id, exc)
            await self.send_error("Failed to generate questions or audio. Please try again.")
            return

        # sequential: the synthesis service allows one context per connection
        for index, text in enumerate(questions):
            artifact = await self.audio_renderer.render(index, text, self.artifacts)
            self.records.append(QuestionRecord(index=index, text=text, artifact=artifact))

        self.machine.apply(InterviewEvent.SETUP_SUCCEEDED)
        audio_files = [record.artifact.filename if record.has_audio else None for record in self.records]
        has_audio_errors = any(name is None for name in audio_files)
        log_event(
            "orchestrator",
            "questions_ready",
            self.session_id,
            total=len(self.records),
            audio_errors=sum(1 for name in audio_files if name is None),
        )
        await self._send(
            {
                "type": "QUESTIONS_READY",
                "questions": self.questions,
                "totalQuestions": len(self.records),
                "audioFiles": audio_files,
                "hasAudioErrors": has_audio_errors,
            }
        )

    # ---- REQUEST_QUESTION

    async def _on_request_question(self, message: dict) -> None:
        payload = _validate(RequestQuestionMessage, message)
        index = payload.questionIndex
        if not self.records:
            self.machine.require(InterviewEvent.REQUEST_QUESTION)

        if index >= len(self.records):
            self.machine.apply(InterviewEvent.QUESTIONS_EXHAUSTED)
            await self._announce_transcripts(await self.pipeline.flush_other_question(index))
            await self._send({"type": "INTERVIEW_COMPLETE", "message": COMPLETION_MESSAGE})
            return

        self.machine.apply(InterviewEvent.REQUEST_QUESTION)
        self.current_index = index
        await self._announce_transcripts(await self.pipeline.flush_other_question(index))
        record = self.records[index]

        try:
            if not record.has_audio:
                raise ArtifactMissing(record.artifact.error if record.artifact else "no artifact")
            audio = self.artifacts.read(record.artifact.path)
        except ArtifactMissing as exc:
            logger.info("question audio unavailable | session_id=%s index=%s err=%s", self.session_id, index, exc)
            await self._send(
                {
                    "type": "AUDIO_ERROR",
                    "message": AUDIO_ERROR_MESSAGE,
                    "questionIndex": index,
                    "questionText": record.text,
                }
            )
            return

        await self._send(
            {
                "type": "QUESTION_AUDIO",
                "audioData": base64.b64encode(audio).decode("ascii"),
                "questionIndex": index,
                "questionText": record.text,
                "format": "base64_wav",
            }
        )

    # ---- AUDIO_RESPONSE

    async def _on_audio_response(self, message: dict) -> None:
        payload = _validate(AudioResponseMessage, message)
        self.machine.require(InterviewEvent.AUDIO_RESPONSE)

        index = self.current_index if payload.questionIndex is None else payload.questionIndex
        if index >= len(self.records):
            raise ProtocolError(f"questionIndex {index} out of range")
        question_text = payload.questionText.strip() or self.records[index].text

        try:
            chunk = base64.b64decode(payload.audioData, validate=True)
            result = await self.pipeline.process_response(chunk, index, question_text)
        except (binascii.Error, ValueError, DecodeError) as exc:
            increment_metric("chunks_dropped_decode")
            logger.info("audio chunk dropped | session_id=%s index=%s err=%s", self.session_id, index, exc)
            return
        finally:
            self.machine.apply(InterviewEvent.AUDIO_RESPONSE)

        if not result.transcripts:
            return
        await self._announce_transcripts(result.transcripts)

        latest = result.transcripts[-1]
        latest_index = index if latest.question_index is None else latest.question_index
        latest_question = latest.question or self._question_text(latest_index)
        feedback = await self.pipeline.request_feedback(latest.transcript, latest_question)
        if not feedback:
            return
        await self._send(
            {
                "type": "REALTIME_FEEDBACK",
                "feedback": {
                    "aiFeedback": feedback,
                    "transcript": latest.transcript,
                    "question": latest_question,
                    "fillers": {"words": result.fillers, "count": result.filler_count},
                    "analysis": result.analysis.to_payload(),
                },
                "questionIndex": latest_index,
            }
        )

    def _question_text(self, index: Optional[int]) -> str:
        if index is not None and 0 <= index < len(self.records):
            return self.records[index].text
        return ""

    async def _announce_transcripts(self, entries: list[TranscriptEntry]) -> None:
        for entry in entries:
            await self._send(
                {"type": "TRANSCRIPT", "transcript": entry.transcript, "questionIndex": entry.question_index}
            )

    # ---- INTERVIEW_COMPLETE

    async def _on_interview_complete(self, message: dict) -> None:
        self.machine.require(InterviewEvent.INTERVIEW_COMPLETE)
        await self._announce_transcripts(await self.pipeline.flush_pending())
        summary = await self.pipeline.get_summary()
        result = [item.to_payload() for item in summary]

        record = {
            "sessionId": self.session_id,
            "role": self.role,
            "questions": self.questions,
            "transcriptHistory": [entry.to_payload() for entry in self.pipeline.history],
            "summary": result,
            "timestamp": time.time(),
        }
        try:
            await self.record_store.append(record)
        except PersistenceError as exc:
            logger.warning("session record not saved | session_id=%s err=%s", self.session_id, exc)

        await self._send({"type": "SUMMARY", "feedback": {"result": result}})

        self.artifacts.cleanup()
        self.pipeline.reset()
        self.current_index = 0
        self.machine.apply(InterviewEvent.INTERVIEW_COMPLETE)
        increment_metric("sessions_completed")
        log_event("orchestrator", "interview_complete", self.session_id, answers=len(result))

    async def _on_ping(self, message: dict) -> None:
        await self._send({"type": "PONG", "ts": time.time()})

    def close(self) -> None:
        self.artifacts.cleanup()
        self.pipeline.reset()
        self.records = []
