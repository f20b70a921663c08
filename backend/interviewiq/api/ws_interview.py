import asyncio
import json
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, WebSocket
from starlette.websockets import WebSocketState

from core.config import WS_MAX_TEXT_BYTES
from core.logger import log_event
from interviewiq.services.coaching_service import CoachingService
from interviewiq.services.openai_service import CompletionClient, Transcriber
from interviewiq.services.question_audio import QuestionAudioRenderer
from interviewiq.services.question_service import QuestionGenerator
from interviewiq.services.session_store import SessionRecordStore
from interviewiq.services.synthesis_client import SpeechSynthesisStreamingClient
from interviewiq.services.voice_catalog import VoiceCatalog
from interviewiq.session.controller import SessionController
from interviewiq.session.orchestrator import InterviewSession
from interviewiq.session.registry import session_registry
from interviewiq.system_metrics import decrement_metric, increment_metric
from interviewiq.vocal.pipeline import VocalResponsePipeline
from interviewiq.vocal.transcoder import AudioTranscoder

logger = logging.getLogger("ws_interview")

router = APIRouter()
websocket_send_locks: dict[WebSocket, asyncio.Lock] = {}


class WsDependencyProvider:
    """
    Builds the collaborators of one interview session. The voice catalog
    and record store are shared across sessions; everything else is fresh
    per connection. Tests swap in a provider that returns fakes.
    """

    def __init__(self):
        self._voice_catalog: Optional[VoiceCatalog] = None
        self._record_store: Optional[SessionRecordStore] = None
        self._completion: Optional[CompletionClient] = None

    @property
    def voice_catalog(self) -> VoiceCatalog:
        if self._voice_catalog is None:
            self._voice_catalog = VoiceCatalog()
        return self._voice_catalog

    @property
    def record_store(self) -> SessionRecordStore:
        if self._record_store is None:
            self._record_store = SessionRecordStore()
        return self._record_store

    def create_completion_client(self) -> CompletionClient:
        if self._completion is None:
            self._completion = CompletionClient()
        return self._completion

    def create_question_generator(self) -> QuestionGenerator:
        return QuestionGenerator(completion=self.create_completion_client())

    def create_audio_renderer(self) -> QuestionAudioRenderer:
        return QuestionAudioRenderer(catalog=self.voice_catalog, synthesizer=SpeechSynthesisStreamingClient())

    def create_pipeline(self) -> VocalResponsePipeline:
        return VocalResponsePipeline(
            transcoder=AudioTranscoder(),
            transcriber=Transcriber(),
            coaching=CoachingService(completion=self.create_completion_client()),
        )

    def create_session(self, session_id: str, send_fn) -> InterviewSession:
        return InterviewSession(
            session_id=session_id,
            send_fn=send_fn,
            question_generator=self.create_question_generator(),
            audio_renderer=self.create_audio_renderer(),
            pipeline=self.create_pipeline(),
            record_store=self.record_store,
        )


dependency_provider = WsDependencyProvider()


async def _send_text_with_lock(websocket: WebSocket, encoded_payload: str) -> None:
    send_lock = websocket_send_locks.get(websocket)
    if send_lock is None:
        return
    async with send_lock:
        await websocket.send_text(encoded_payload)


@router.websocket("/ws/interview")
async def interview_ws(websocket: WebSocket):
    session_id = str(uuid.uuid4())
    stop_reason = "other"

    await websocket.accept()
    websocket_send_locks[websocket] = asyncio.Lock()
    increment_metric("ws_connections_active", 1)

    def _log_event(event: str, **fields):
        log_event("ws_interview", event, session_id, **fields)

    async def _safe_send(payload: dict):
        if websocket.client_state != WebSocketState.CONNECTED:
            return
        try:
            encoded = json.dumps(payload)
        except (TypeError, ValueError) as exc:
            logger.warning("ws payload encode failed | session_id=%s err=%s", session_id, exc)
            return
        try:
            await _send_text_with_lock(websocket, encoded)
            _log_event(
                "message_sent",
                message_type=str((payload or {}).get("type") or "unknown"),
                bytes=len(encoded.encode("utf-8")),
            )
        except Exception as exc:
            logger.warning("ws send failed | session_id=%s err=%s", session_id, exc)

    session = dependency_provider.create_session(session_id, _safe_send)
    controller = SessionController(session)
    stop_event = controller.stop_event
    session_registry.register(session_id)
    _log_event("connect")

    await _safe_send({"type": "connection_ack", "message": "WS Connected for InterviewIQ", "sessionId": session_id})

    async def request_stop(reason: str):
        nonlocal stop_reason
        if stop_reason == "other":
            stop_reason = reason
        stop_event.set()

    async def receive_messages():
        try:
            while not stop_event.is_set():
                msg = await websocket.receive()

                if msg["type"] == "websocket.disconnect":
                    await request_stop("client_disconnect")
                    break

                if msg.get("bytes") is not None and msg.get("text") is None:
                    await _safe_send({"type": "ERROR", "message": "Binary frames are not supported"})
                    continue

                text_payload = str(msg.get("text") or "")
                size = len(text_payload.encode("utf-8"))
                if size > WS_MAX_TEXT_BYTES:
                    logger.warning("WS message too large | session_id=%s bytes=%s", session_id, size)
                    increment_metric("protocol_errors")
                    await _safe_send({"type": "ERROR", "message": "Message too large"})
                    continue

                session_registry.touch(session_id)
                await controller.enqueue(text_payload)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("ws receive loop failed | session_id=%s err=%s", session_id, exc)
            await request_stop("receive_error")

    controller.start()
    controller.create_task(receive_messages())

    try:
        _log_event("session_started")
        await stop_event.wait()
    finally:
        await controller.stop()
        if controller.fatal_error is not None:
            stop_reason = "session_fatal"
        if stop_reason == "session_fatal" and websocket.client_state == WebSocketState.CONNECTED:
            try:
                await websocket.close(code=1011, reason="Session failed")
            except RuntimeError as exc:
                logger.warning("ws close failed | session_id=%s err=%s", session_id, exc)
        websocket_send_locks.pop(websocket, None)
        session_registry.mark_inactive(session_id)
        decrement_metric("ws_connections_active", 1)
        increment_metric("ws_disconnects_total", 1)
        _log_event("session_stopped", reason=stop_reason, state=session.state.value)
