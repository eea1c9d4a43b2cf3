"""
Asyncio based scheduler for one-shot and recurring jobs.
Each schedule runs on its own task and is controlled through a ScheduledTask handle.
"""

import asyncio
import inspect
from datetime import datetime, timedelta
from enum import Enum
from typing import Awaitable, Callable, Optional, Union

from nordpool_api.logging_config import get_logger
from nordpool_api.scheduler.cancellation import CancellationToken
from nordpool_api.utils.time_utils import SystemClock

logger = get_logger(__name__)

Action = Callable[..., Union[Awaitable[None], None]]
NextRun = Callable[[datetime], datetime]


def _accepts_token(action: Action) -> bool:
    try:
        return "token" in inspect.signature(action).parameters
    except (TypeError, ValueError):
        return False


class ErrorPolicy(str, Enum):
    """What a recurring schedule does after its action raised."""
    CONTINUE = "continue"  # Log and keep the recurrence alive
    STOP = "stop"          # Log and end this schedule


class ScheduledTask:
    """Handle for a scheduled job."""

    def __init__(self, name: str, token: CancellationToken, task: asyncio.Task):
        self.name = name
        self._token = token
        self._task = task

    def cancel(self) -> None:
        """
        Prevent further executions and wake a pending wait.
        An action that is already running is allowed to finish.
        """
        self._token.cancel()

    async def stop(self, grace: float = 5.0) -> bool:
        """
        Cancel and wait up to ``grace`` seconds for the job to wind down.

        Returns:
            True if the job finished within the grace period.
        """
        self.cancel()
        finished = await self.join(grace)
        if not finished:
            logger.warning("Scheduled job still running after grace period", job=self.name, grace_seconds=grace)
        return finished

    async def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the job to end without cancelling it. Returns True if it ended."""
        if self._task.done():
            return True
        done, _ = await asyncio.wait({self._task}, timeout=timeout)
        return bool(done)

    @property
    def cancelled(self) -> bool:
        return self._token.is_cancelled

    @property
    def done(self) -> bool:
        return self._task.done()


class Scheduler:
    """Runs actions once or repeatedly at absolute instants."""

    def __init__(self, clock=None):
        self._clock = clock or SystemClock()

    @property
    def clock(self):
        return self._clock

    def run_once(self, when: Union[datetime, timedelta], action: Action, name: str = "run_once") -> ScheduledTask:
        """
        Run ``action`` once at the absolute instant or after the delay given by ``when``.
        Instants in the past run without delay, but never inline.
        """
        if isinstance(when, timedelta):
            run_at = self._clock.now() + when
        else:
            run_at = when

        token = CancellationToken()
        task = asyncio.create_task(self._run_once_loop(run_at, action, token, name), name=name)
        return ScheduledTask(name, token, task)

    def run_every(
        self,
        start_time: datetime,
        interval: timedelta,
        action: Action,
        error_policy: ErrorPolicy = ErrorPolicy.CONTINUE,
        name: str = "run_every",
    ) -> ScheduledTask:
        """
        Run ``action`` at ``start_time`` (immediately if already past) and then every ``interval``.
        """
        if interval <= timedelta(0):
            raise ValueError("Interval must be positive")
        return self.run_recurring(start_time, lambda previous: previous + interval, action, error_policy, name)

    def run_recurring(
        self,
        start_time: datetime,
        next_run: NextRun,
        action: Action,
        error_policy: ErrorPolicy = ErrorPolicy.CONTINUE,
        name: str = "run_recurring",
    ) -> ScheduledTask:
        """
        Run ``action`` at ``start_time`` and then at ``next_run(previous_trigger)`` until cancelled.

        A failing action is logged and, with the default ErrorPolicy.CONTINUE, the
        recurrence keeps going. Pass ErrorPolicy.STOP to end it on the first failure.
        An action with a ``token`` parameter receives this schedule's
        CancellationToken, so its own waits end when the handle is cancelled.

        Triggers are derived from the previous trigger rather than from when the
        action finished, so a wall-clock recurrence does not drift.
        """
        token = CancellationToken()
        task = asyncio.create_task(
            self._recurring_loop(start_time, next_run, action, error_policy, token, name),
            name=name,
        )
        return ScheduledTask(name, token, task)

    async def _run_once_loop(self, run_at: datetime, action: Action, token: CancellationToken, name: str) -> None:
        if await self._wait_until(run_at, token):
            logger.debug("Scheduled job cancelled before running", job=name)
            return
        await self._invoke(action, name, token)

    async def _recurring_loop(
        self,
        start_time: datetime,
        next_run: NextRun,
        action: Action,
        error_policy: ErrorPolicy,
        token: CancellationToken,
        name: str,
    ) -> None:
        trigger = max(start_time, self._clock.now())

        while True:
            logger.debug("Next scheduled run", job=name, next_run=trigger.isoformat())
            if await self._wait_until(trigger, token):
                break

            succeeded = await self._invoke(action, name, token)
            if not succeeded and error_policy is ErrorPolicy.STOP:
                logger.error("Recurring job stopped after failure", job=name)
                break

            trigger = next_run(trigger)

        logger.debug("Recurring job ended", job=name)

    async def _wait_until(self, run_at: datetime, token: CancellationToken) -> bool:
        """Returns True if cancelled before ``run_at``."""
        if token.is_cancelled:
            return True
        delay = (run_at - self._clock.now()).total_seconds()
        return await self._clock.sleep(max(0.0, delay), token)

    async def _invoke(self, action: Action, name: str, token: CancellationToken) -> bool:
        job_start = self._clock.now()
        try:
            result = action(token=token) if _accepts_token(action) else action()
            if inspect.isawaitable(result):
                await result
            return True
        except asyncio.CancelledError:
            raise
        except Exception as e:
            duration = (self._clock.now() - job_start).total_seconds()
            logger.exception("Scheduled job failed", job=name, error=str(e), duration_seconds=duration)
            return False


# Global scheduler instance
scheduler = Scheduler()
