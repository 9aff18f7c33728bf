from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ...config import settings

PollCallback = Callable[["PollingSession"], Awaitable[None]]


@dataclass(slots=True)
class PollingSession:
    """One recurring status check, identified by its key (a source tx hash)."""

    key: str
    callback: PollCallback
    payload: Any = None
    token: str = field(default_factory=lambda: uuid.uuid4().hex)
    cancelled: bool = False
    in_flight: bool = False
    poll_count: int = 0
    consecutive_errors: int = 0
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_polled: Optional[datetime] = None


class PollingScheduler:
    """Shared-timer scheduler for independent, cancellable polling sessions.

    Every tick spawns one task per active session without waiting on the
    others. A session whose previous poll is still in flight is skipped for
    that tick. Stopping a session only flags and deregisters it; a poll that is
    already running finishes, and callbacks must check :meth:`is_current`
    before applying what they fetched.
    """

    def __init__(
        self,
        *,
        interval_seconds: Optional[float] = None,
        poll_timeout_seconds: Optional[float] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.logger = logger or logging.getLogger(__name__)
        self._interval = interval_seconds or settings.bridge_status_poll_interval_seconds
        self._poll_timeout = poll_timeout_seconds or settings.bridge_status_request_timeout_seconds
        self._sessions: Dict[str, PollingSession] = {}
        self._inflight: set[asyncio.Task] = set()
        self._loop_task: asyncio.Task | None = None
        self._lock = asyncio.Lock()
        self._running = False

    # ---------------------------
    # Session registry
    # ---------------------------
    def start_session(self, key: str, callback: PollCallback, payload: Any = None) -> Optional[str]:
        """Register a session and return its token, or ``None`` if ``key`` is already polled."""
        if key in self._sessions:
            return None
        session = PollingSession(key=key, callback=callback, payload=payload)
        self._sessions[key] = session
        self.logger.info("Started polling session %s", key)
        if self._running:
            self._spawn(session)
        return session.token

    def stop_session(self, key: str) -> bool:
        session = self._sessions.pop(key, None)
        if session is None:
            return False
        session.cancelled = True
        self.logger.info("Stopped polling session %s after %d polls", key, session.poll_count)
        return True

    def stop_by_token(self, token: str) -> bool:
        for key, session in list(self._sessions.items()):
            if session.token == token:
                return self.stop_session(key)
        return False

    def stop_all(self) -> None:
        for key in list(self._sessions):
            self.stop_session(key)

    def is_active(self, key: str) -> bool:
        return key in self._sessions

    def is_current(self, session: PollingSession) -> bool:
        return not session.cancelled and self._sessions.get(session.key) is session

    def get_session(self, key: str) -> Optional[PollingSession]:
        return self._sessions.get(key)

    @property
    def active_keys(self) -> List[str]:
        return list(self._sessions)

    # ---------------------------
    # Lifecycle
    # ---------------------------
    async def ensure_started(self) -> None:
        async with self._lock:
            if self._running:
                return
            self._running = True
            self.logger.info(
                "Polling scheduler starting; interval=%ss sessions=%d",
                self._interval,
                len(self._sessions),
            )
            for session in list(self._sessions.values()):
                self._spawn(session)
            self._loop_task = asyncio.create_task(self._run_loop(), name="bridge-status-polling")

    async def stop(self) -> None:
        async with self._lock:
            if not self._running:
                return
            self._running = False
            self.logger.info("Polling scheduler stopping")

            if self._loop_task:
                self._loop_task.cancel()
                try:
                    await self._loop_task
                except asyncio.CancelledError:
                    pass
                self._loop_task = None

            for task in list(self._inflight):
                task.cancel()
            if self._inflight:
                await asyncio.gather(*self._inflight, return_exceptions=True)
            self._inflight.clear()

    @property
    def is_running(self) -> bool:
        return self._running

    # ---------------------------
    # Ticking
    # ---------------------------
    async def _run_loop(self) -> None:
        try:
            while self._running:
                await asyncio.sleep(self._interval)
                self._schedule_due_polls()
        except asyncio.CancelledError:
            return
        except Exception as exc:  # noqa: BLE001
            self.logger.error("Polling loop crashed: %s", exc, exc_info=True)
            self._running = False

    def _schedule_due_polls(self) -> List[asyncio.Task]:
        tasks: List[asyncio.Task] = []
        for session in list(self._sessions.values()):
            if session.in_flight:
                continue
            tasks.append(self._spawn(session))
        return tasks

    def _spawn(self, session: PollingSession) -> asyncio.Task:
        session.in_flight = True
        task = asyncio.create_task(self._run_poll(session), name=f"bridge-poll-{session.key}")
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    async def _run_poll(self, session: PollingSession) -> None:
        session.last_polled = datetime.now(timezone.utc)
        try:
            await asyncio.wait_for(session.callback(session), timeout=self._poll_timeout)
            session.consecutive_errors = 0
        except asyncio.TimeoutError:
            session.consecutive_errors += 1
            self.logger.warning("Poll for %s timed out after %ss", session.key, self._poll_timeout)
        except Exception as exc:  # noqa: BLE001
            session.consecutive_errors += 1
            self.logger.warning(
                "Poll for %s failed (%d in a row): %s", session.key, session.consecutive_errors, exc
            )
        finally:
            session.poll_count += 1
            session.in_flight = False

    async def poll_now(self) -> None:
        """Run one tick immediately and wait for every poll it issued."""
        tasks = self._schedule_due_polls()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def status(self) -> dict[str, Any]:
        return {
            "running": self._running,
            "interval_seconds": self._interval,
            "inflight": len(self._inflight),
            "sessions": [
                {
                    "key": session.key,
                    "poll_count": session.poll_count,
                    "consecutive_errors": session.consecutive_errors,
                    "in_flight": session.in_flight,
                    "last_polled": session.last_polled.isoformat() if session.last_polled else None,
                }
                for session in self._sessions.values()
            ],
        }
