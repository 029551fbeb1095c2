"""
Real-time scheduler - debounced invocation of the engine for streaming input.

Messages are buffered as they arrive and processed in batches every
debounce_delay seconds. Items that waited longer than debounce_delay are
dropped as stale.
"""

import asyncio
import inspect
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Deque, List, Optional, Sequence

from loguru import logger

from loretrigger.core.config import RealTimeOptions, settings
from loretrigger.core.models import InjectionResult
from loretrigger.pipeline.engine import MessageLike, TriggerEngine

ResultCallback = Callable[[InjectionResult], Any]


class SchedulerState(str, Enum):
    IDLE = "idle"
    BUFFERING = "buffering"


@dataclass
class PendingMessage:
    message: MessageLike
    history: Sequence[MessageLike] = field(default_factory=tuple)
    arrived_at: float = 0.0


class RealTimeScheduler:
    """
    Buffers messages and feeds them to one TriggerEngine.

    Usage:
        async with RealTimeScheduler(engine, options, on_result=handle) as rt:
            rt.enqueue("the dragon wakes")
    """

    def __init__(
        self,
        engine: TriggerEngine,
        options: Optional[RealTimeOptions] = None,
        on_result: Optional[ResultCallback] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.engine = engine
        self.options = options or settings.realtime_options()
        self.on_result = on_result
        self.clock = clock

        self._queue: Deque[PendingMessage] = deque()
        self._task: Optional[asyncio.Task] = None

    @property
    def state(self) -> SchedulerState:
        return SchedulerState.BUFFERING if self._queue else SchedulerState.IDLE

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def __len__(self) -> int:
        return len(self._queue)

    def enqueue(self, message: MessageLike, history: Sequence[MessageLike] = ()) -> bool:
        """
        Buffer a message and arm the flush loop.

        Returns False (and does nothing) when disabled. Outside a running
        event loop the message is only buffered; call start() or flush()
        later from async code.
        """
        if not self.options.enabled:
            return False
        self._queue.append(PendingMessage(message, tuple(history), self.clock()))
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return True
        self.start()
        return True

    def start(self) -> None:
        """Launch the background flush loop (idempotent)"""
        if self.is_running:
            return

        async def _loop() -> None:
            while True:
                await asyncio.sleep(self.options.debounce_delay)
                try:
                    await self.flush()
                except Exception:
                    logger.exception("Real-time flush error")

        self._task = asyncio.create_task(_loop())
        logger.debug(
            "Real-time scheduler started (debounce={delay}s)",
            delay=self.options.debounce_delay,
        )

    async def flush(self) -> List[InjectionResult]:
        """
        Drain the buffer and process what is still fresh.

        Returns:
            Results in arrival order (items that raised are left out)
        """
        if not self._queue:
            return []

        now = self.clock()
        pending = list(self._queue)
        self._queue.clear()

        fresh = [p for p in pending if now - p.arrived_at <= self.options.debounce_delay]
        stale = len(pending) - len(fresh)
        if stale:
            logger.debug("Dropped {stale} stale buffered messages", stale=stale)

        if self.options.allow_concurrent:
            outcomes = await asyncio.gather(*(self._run_one(p) for p in fresh))
        else:
            outcomes = []
            for i, item in enumerate(fresh):
                if i and self.options.min_trigger_interval:
                    await asyncio.sleep(self.options.min_trigger_interval)
                outcomes.append(await self._run_one(item))

        return [r for r in outcomes if r is not None]

    async def _run_one(self, item: PendingMessage) -> Optional[InjectionResult]:
        try:
            result = await self.engine.process_message(item.message, item.history)
            if self.on_result is not None:
                callback = self.on_result(result)
                if inspect.isawaitable(callback):
                    await callback
            return result
        except Exception:
            logger.exception("Real-time trigger failed for buffered message")
            return None

    async def stop(self) -> None:
        """Cancel the flush loop and discard anything still buffered"""
        self._queue.clear()
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            logger.debug("Real-time scheduler stopped")

    dispose = stop

    async def __aenter__(self) -> "RealTimeScheduler":
        self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()
