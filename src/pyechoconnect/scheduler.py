"""Fixed-interval, overlap-safe async task scheduler.

The next run is scheduled only after the previous one has finished, so
runs never overlap; a trigger arriving while a run is still in progress
is skipped with a warning.
"""

from __future__ import annotations

import asyncio
import collections
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from pyechoconnect._clock import Clock, LoopClock, TimerHandle
from pyechoconnect.exceptions import ErrorCode, SchedulerError

_logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 3600.0
MIN_INTERVAL = 1.0
MIN_STOP_WAIT = 30.0
MAX_ERRORS = 10
RECENT_ERRORS = 5

Task = Callable[[], Awaitable[Any]]


@dataclass(frozen=True)
class TaskErrorRecord:
    timestamp: datetime
    message: str
    error_type: str
    clock_time: float


@dataclass(frozen=True)
class SchedulerStats:
    is_running: bool
    has_active_timer: bool
    interval: float
    task_count: int
    last_execution: datetime | None
    recent_errors: tuple[TaskErrorRecord, ...]
    uptime: float
    """Seconds since the last execution started (0 before the first success)."""


ErrorCallback = Callable[[TaskErrorRecord, SchedulerStats], None]


def _validate_interval(interval: Any) -> float:
    if isinstance(interval, bool) or not isinstance(interval, (int, float)) or interval < MIN_INTERVAL:
        raise SchedulerError(
            f"The interval must be a number >= {MIN_INTERVAL} seconds.",
            code=ErrorCode.INVALID_INTERVAL,
        )
    return float(interval)


class TaskScheduler:
    """Runs *task* every *interval* seconds.

    Parameters
    ----------
    task : callable
        Coroutine function executed on every tick.
    interval : float
        Seconds between the end of one run and the start of the next.
    clock : Clock or None
        Timer source; the running event loop when ``None``.
    on_error : callable or None
        Called with the error record and current stats whenever a run fails.
    """

    def __init__(
        self,
        task: Task,
        interval: float = DEFAULT_INTERVAL,
        *,
        clock: Clock | None = None,
        on_error: ErrorCallback | None = None,
    ) -> None:
        if not callable(task):
            raise SchedulerError("The task must be a function.", code=ErrorCode.INVALID_TASK)
        self._task = task
        self._interval = _validate_interval(interval)
        self._clock: Clock = clock or LoopClock()
        self._on_error = on_error
        self._timer: TimerHandle | None = None
        self._active = False
        self._current: asyncio.Task[None] | None = None
        self.is_running = False
        self.task_count = 0
        self.last_execution: datetime | None = None
        self._last_execution_clock: float | None = None
        self._errors: collections.deque[TaskErrorRecord] = collections.deque(maxlen=MAX_ERRORS)

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def errors(self) -> tuple[TaskErrorRecord, ...]:
        return tuple(self._errors)

    @property
    def has_active_timer(self) -> bool:
        return self._timer is not None

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _trigger(self) -> None:
        self._timer = None
        if self.is_running:
            _logger.warning("Task is still running, skipping this iteration.")
            return
        self._current = asyncio.get_running_loop().create_task(self._execute_task())

    async def _execute_task(self) -> None:
        if self.is_running:
            _logger.warning("Task is still running, skipping this iteration.")
            return

        self.is_running = True
        self.last_execution = datetime.now(UTC)
        started = self._clock.now()
        self._last_execution_clock = started
        _logger.debug("Task execution #%d started.", self.task_count + 1)

        try:
            await self._task()
        except Exception as exc:
            self._handle_task_error(exc)
        else:
            self.task_count += 1
            _logger.debug(
                "Task execution #%d completed in %.3fs.",
                self.task_count,
                self._clock.now() - started,
            )
        finally:
            self.is_running = False
            self._schedule_next()

    def _handle_task_error(self, exc: Exception) -> None:
        _logger.error("Error during task execution: %s", exc, exc_info=exc)
        record = TaskErrorRecord(
            timestamp=datetime.now(UTC),
            message=str(exc),
            error_type=type(exc).__name__,
            clock_time=self._clock.now(),
        )
        self._errors.append(record)
        if self._on_error is not None:
            try:
                self._on_error(record, self.get_stats())
            except Exception:
                _logger.warning("Scheduler error callback failed", exc_info=True)

    def _schedule_next(self) -> None:
        if not self._active:
            return
        if self._timer is not None:
            self._timer.cancel()
        self._timer = self._clock.call_later(self._interval, self._trigger)

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    def start(self, *, immediate: bool = False, reset: bool = False) -> None:
        if self._active:
            _logger.warning("Task scheduler is already running.")
            return
        if reset:
            self.reset_stats()

        self._active = True
        _logger.info("Task scheduler started with interval: %.1fs", self._interval)
        if immediate:
            # The run schedules the following one when it completes.
            self._current = asyncio.get_running_loop().create_task(self._execute_task())
        else:
            self._schedule_next()

    async def stop(self, *, wait_for_current: bool = False) -> None:
        if not self._active and not self.is_running:
            _logger.warning("Task scheduler is not running.")
            return

        self._active = False
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

        current = self._current
        if wait_for_current and self.is_running and current is not None:
            _logger.debug("Waiting for current task to complete...")
            max_wait = max(self._interval, MIN_STOP_WAIT)
            done, _ = await asyncio.wait([current], timeout=max_wait)
            if not done:
                _logger.warning("Timeout waiting for current task to complete.")

        _logger.info("Task scheduler stopped.")

    def set_interval(self, interval: float, *, restart: bool = True) -> None:
        new_interval = _validate_interval(interval)
        old_interval = self._interval
        self._interval = new_interval
        _logger.info("Task interval updated from %.1fs to %.1fs.", old_interval, new_interval)

        if self._timer is not None and restart:
            self._timer.cancel()
            self._timer = self._clock.call_later(self._interval, self._trigger)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_stats(self) -> SchedulerStats:
        uptime = 0.0
        if self.task_count > 0 and self._last_execution_clock is not None:
            uptime = self._clock.now() - self._last_execution_clock
        return SchedulerStats(
            is_running=self.is_running,
            has_active_timer=self._timer is not None,
            interval=self._interval,
            task_count=self.task_count,
            last_execution=self.last_execution,
            recent_errors=tuple(self._errors)[-RECENT_ERRORS:],
            uptime=uptime,
        )

    def get_next_execution(self) -> datetime | None:
        if self._timer is None or self.last_execution is None:
            return None
        return self.last_execution + timedelta(seconds=self._interval)

    def is_healthy(self) -> bool:
        """``True`` when no error happened within the last two intervals."""
        horizon = self._clock.now() - 2 * self._interval
        return not any(record.clock_time > horizon for record in self._errors)

    def reset_stats(self) -> None:
        self.task_count = 0
        self.last_execution = None
        self._last_execution_clock = None
        self._errors.clear()
        _logger.debug("Scheduler statistics reset.")

    def validate(self) -> bool:
        if not callable(self._task):
            raise SchedulerError("Invalid task function.", code=ErrorCode.INVALID_TASK)
        _validate_interval(self._interval)
        return True
