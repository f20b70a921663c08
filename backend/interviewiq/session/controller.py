import asyncio
import logging
from typing import Optional

from interviewiq.errors import SessionFatalError
from interviewiq.session.orchestrator import InterviewSession

logger = logging.getLogger("session_controller")

_STOP = object()


class SessionController:
    """
    Owns the tasks of one connection. Inbound frames go through a queue to a
    single worker so the session sees them strictly in arrival order.
    """

    def __init__(self, session: InterviewSession, max_pending: int = 64):
        self.session = session
        self.stop_event = asyncio.Event()
        self.tasks: list[asyncio.Task] = []
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=max(1, int(max_pending)))
        self.fatal_error: Optional[SessionFatalError] = None

    def create_task(self, coro):
        task = asyncio.create_task(coro)
        self.tasks.append(task)
        return task

    def start(self) -> asyncio.Task:
        return self.create_task(self._worker())

    async def enqueue(self, raw: str) -> None:
        await self.queue.put(raw)

    async def _worker(self) -> None:
        while not self.stop_event.is_set():
            raw = await self.queue.get()
            try:
                if raw is _STOP:
                    return
                await self.session.handle_text(raw)
            except SessionFatalError as exc:
                self.fatal_error = exc
                self.stop_event.set()
                return
            except Exception as exc:
                logger.exception("session message failed | session_id=%s err=%s", self.session.session_id, exc)
                await self.session.send_error("Internal error while processing message")
            finally:
                self.queue.task_done()

    async def drain(self) -> None:
        """Lets queued messages finish, then stops the worker."""
        await self.queue.put(_STOP)
        await asyncio.gather(*self.tasks, return_exceptions=True)

    async def stop(self):
        if not self.stop_event.is_set():
            self.stop_event.set()

        for task in self.tasks:
            task.cancel()

        await asyncio.gather(*self.tasks, return_exceptions=True)
        self.session.close()
