"""
Shared run-task bookkeeping for request/response adapters.

Design notes:
- One adapter instance serves multiple sequential runs.
- Each run is tracked independently via run_id → asyncio.Task.
- Blocking HTTP clients run in a worker thread (asyncio.to_thread) so the
  event loop keeps ticking.
- Adapters emit events; they never retry, manage reducer timers, or decide
  orchestration outcomes.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Coroutine
from typing import Any

from orchestrator.events import Event

EmitEvent = Callable[[Event], Awaitable[None]]


class RunTaskAdapter:
    def __init__(self, *, emit_event: EmitEvent, session_id: str) -> None:
        """
        Args:
            emit_event:
                Callback used to emit events into the runtime/event loop.
            session_id:
                Session identifier for logging/correlation.
        """
        self._emit_event = emit_event
        self._session_id = session_id

        # One task per active run_id
        self._active_tasks: dict[int, asyncio.Task[None]] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def is_active(self, run_id: int) -> bool:
        return run_id in self._active_tasks

    async def cancel(self, run_id: int) -> None:
        """
        Best-effort cancellation.

        Semantics:
        - Idempotent.
        - Silent if run_id is stale or already completed.
        - Cancellation may result in zero terminal events.

        A request already in flight inside a worker thread still completes
        in the background; its result is dropped with the task.
        """
        task = self._active_tasks.get(run_id)
        if task is None or task is asyncio.current_task():
            # The run is delivering its own terminal event.
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    def force_reset(self) -> None:
        """
        Hard reset: cancel all active runs immediately.
        """
        for task in self._active_tasks.values():
            task.cancel()

        self._active_tasks.clear()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _spawn(self, run_id: int, coro: Coroutine[Any, Any, None]) -> None:
        if self.is_active(run_id):
            coro.close()
            return

        task = asyncio.create_task(coro)
        self._active_tasks[run_id] = task

        def _cleanup(_: asyncio.Task[None]) -> None:
            if self._active_tasks.get(run_id) is task:
                self._active_tasks.pop(run_id, None)

        task.add_done_callback(_cleanup)

    @staticmethod
    def _now_ms() -> int:
        return int(time.time() * 1000)
