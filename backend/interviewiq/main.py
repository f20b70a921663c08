from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
import asyncio
import logging
import os

from core.config import QA_MODE, SESSION_CLEANUP_INTERVAL_SEC, SESSION_CLEANUP_TTL_SEC
from interviewiq.api.ws_interview import dependency_provider, router as interview_ws_router
from interviewiq.schemas import HealthResponse
from interviewiq.session.registry import session_registry
from interviewiq.system_metrics import get_metrics_snapshot

logging.basicConfig(
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    level=logging.INFO,
)

app = FastAPI(title="InterviewIQ Realtime")
logger = logging.getLogger("interviewiq.main")


def _get_allowed_origins() -> list[str]:
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if not raw:
        return [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ]
    return [item.strip() for item in raw.split(",") if item.strip()]


_allowed_origins = _get_allowed_origins()

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,
)

_session_cleanup_task: asyncio.Task | None = None


@app.on_event("startup")
async def startup_banner():
    global _session_cleanup_task
    if QA_MODE:
        logger.info("[SYSTEM] QA_MODE ENABLED")
    logger.info("[SYSTEM] CORS allow_origins=%s", _allowed_origins)

    if not QA_MODE:
        await dependency_provider.voice_catalog.warm()

    async def _session_cleanup_loop():
        while True:
            await asyncio.sleep(SESSION_CLEANUP_INTERVAL_SEC)
            removed = session_registry.cleanup_inactive(SESSION_CLEANUP_TTL_SEC)
            if removed > 0:
                logger.info("[SYSTEM] cleaned inactive sessions=%s", removed)

    _session_cleanup_task = asyncio.create_task(_session_cleanup_loop())


@app.on_event("shutdown")
async def shutdown_handler():
    global _session_cleanup_task
    if _session_cleanup_task is not None:
        _session_cleanup_task.cancel()
        try:
            await _session_cleanup_task
        except asyncio.CancelledError:
            pass
        finally:
            _session_cleanup_task = None
    logger.info("[SYSTEM] shutdown complete")


@app.get("/healthz", response_model=HealthResponse)
async def healthz():
    return HealthResponse(status="ok", active_sessions=session_registry.active_count())


@app.get("/api/system/metrics")
def system_metrics_route():
    return get_metrics_snapshot(extra={
        "active_sessions": session_registry.active_count(),
    })


@app.get("/api/sessions/{session_id}")
def session_record_route(session_id: str):
    record = dependency_provider.record_store.get(session_id)
    if record is None:
        raise HTTPException(404, "Session not found")
    return record


app.include_router(interview_ws_router)
