"""
Polling controller - drives periodic refresh for one subject.

Each controller owns exactly one asyncio task (the schedule) and at most
one in-flight fetch. Family and map views each get their own controller,
so they never share cancellation state.

Lifecycle:
    start(subject, interval, on_tick) -> fires immediately, then every
    `interval` seconds. Starting again (e.g. with a new subject) fully
    cancels the previous schedule and fetch first.
    stop() -> cancels both; safe to call any number of times.

Results are published through `on_result` only while the generation that
produced them is still current, so nothing from an old subject can land
after a switch or stop.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional

import structlog

logger = structlog.get_logger(__name__)

TickFn = Callable[[str], Awaitable[Any]]
ResultFn = Callable[[str, Any], None]
ErrorFn = Callable[[str, BaseException], None]


class PollingController:
    """
    Recurring fetch for a single subject with an owned, cancellable task.
    """

    def __init__(self, name: str):
        self.name = name
        self._task: Optional[asyncio.Task] = None
        self._in_flight: Optional[asyncio.Task] = None
        self._generation = 0
        self._subject_id: Optional[str] = None
        self._interval: Optional[float] = None
        self._on_tick: Optional[TickFn] = None
        self._on_result: Optional[ResultFn] = None
        self._on_error: Optional[ErrorFn] = None

        # Counters for the current generation
        self.ticks = 0
        self.dropped_ticks = 0
        self.failures = 0
        self.last_error: Optional[str] = None

    def __repr__(self) -> str:
        state = "running" if self.is_running else "stopped"
        return f"<PollingController {self.name} {self._subject_id or '-'} {state}>"

    @property
    def subject_id(self) -> Optional[str]:
        return self._subject_id

    @property
    def interval_seconds(self) -> Optional[float]:
        return self._interval

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(
        self,
        subject_id: str,
        interval_seconds: float,
        on_tick: TickFn,
        on_result: Optional[ResultFn] = None,
        on_error: Optional[ErrorFn] = None,
    ) -> None:
        """
        Start polling `subject_id`.

        Args:
            subject_id: Worker being tracked.
            interval_seconds: Delay between ticks, must be positive.
            on_tick: Async fetch called with the subject id.
            on_result: Called with (subject_id, result) for each successful
                tick that is still current.
            on_error: Called with (subject_id, exception) for each failed
                tick that is still current.
        """
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")

        await self.stop()

        self._generation += 1
        self._subject_id = subject_id
        self._interval = interval_seconds
        self._on_tick = on_tick
        self._on_result = on_result
        self._on_error = on_error
        self.ticks = 0
        self.dropped_ticks = 0
        self.failures = 0
        self.last_error = None

        self._task = asyncio.create_task(
            self._run(self._generation, subject_id, interval_seconds),
            name=f"poll-{self.name}-{subject_id}",
        )
        logger.info(
            "Polling started",
            controller=self.name,
            subject_id=subject_id,
            interval_seconds=interval_seconds,
        )

    async def stop(self) -> None:
        """Cancel the schedule and any in-flight fetch. Idempotent."""
        # Invalidate first so a fetch finishing right now cannot publish
        self._generation += 1

        task, self._task = self._task, None
        in_flight, self._in_flight = self._in_flight, None
        current = asyncio.current_task()

        for pending in (in_flight, task):
            if pending is None or pending.done():
                continue
            pending.cancel()
            if pending is current:
                continue
            try:
                await pending
            except asyncio.CancelledError:
                pass

        if task is not None:
            logger.info("Polling stopped", controller=self.name, subject_id=self._subject_id)

    def refresh_now(self) -> bool:
        """
        Trigger an extra tick outside the schedule.

        Returns False if not running or a fetch is already in flight.
        """
        if not self.is_running or self._subject_id is None:
            return False
        return self._fire(self._generation, self._subject_id)

    async def _run(self, generation: int, subject_id: str, interval: float) -> None:
        while generation == self._generation:
            self._fire(generation, subject_id)
            await asyncio.sleep(interval)

    def _fire(self, generation: int, subject_id: str) -> bool:
        if self._in_flight is not None and not self._in_flight.done():
            # At most one outstanding fetch per controller
            self.dropped_ticks += 1
            logger.debug(
                "Dropping tick, previous fetch still in flight",
                controller=self.name,
                subject_id=subject_id,
            )
            return False

        self.ticks += 1
        self._in_flight = asyncio.create_task(
            self._fetch(generation, subject_id),
            name=f"fetch-{self.name}-{subject_id}",
        )
        return True

    async def _fetch(self, generation: int, subject_id: str) -> None:
        on_tick = self._on_tick
        if on_tick is None:
            return
        try:
            result = await on_tick(subject_id)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if generation != self._generation:
                return
            self.failures += 1
            self.last_error = str(e)
            logger.warning(
                "Polling tick failed",
                controller=self.name,
                subject_id=subject_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            if self._on_error is not None:
                self._on_error(subject_id, e)
            return

        if generation != self._generation:
            logger.debug("Discarding stale tick result", controller=self.name, subject_id=subject_id)
            return
        if self._on_result is not None:
            self._on_result(subject_id, result)
