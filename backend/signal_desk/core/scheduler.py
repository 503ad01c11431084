"""
Polling Scheduler.

Concept: one interval job, re-armed on every configuration change.
- IDLE: nothing scheduled (before the first configuration).
- RUNNING: exactly one "tick" job exists, firing every poll interval.

Each armed job carries its own CancellationToken. Re-arming or shutting down
cancels the old token first, so a cycle still waiting on the network when its
timer is replaced finishes without touching shared state.
"""
from __future__ import annotations

import logging
from enum import Enum

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from signal_desk.core.pipeline import CancellationToken, SignalPipeline
from signal_desk.schemas import PollConfig

log = logging.getLogger("core.scheduler")

JOB_ID = "tick"


class SchedulerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class PollingScheduler:
    def __init__(self, pipeline: SignalPipeline, scheduler: AsyncIOScheduler | None = None):
        self.pipeline = pipeline
        self.scheduler = scheduler or AsyncIOScheduler()
        self.state = SchedulerState.IDLE
        self.config: PollConfig | None = None
        self._token: CancellationToken | None = None

    def configure(self, config: PollConfig) -> bool:
        """
        Apply a configuration. Returns True when the timer was (re)armed.

        Changes that do not touch the polling key (asset, OTC flag, timeframe,
        interval) only swap the config the next tick reads, e.g. a new cooldown.
        """
        if self.state is SchedulerState.STOPPED:
            raise RuntimeError("scheduler has been shut down")

        previous = self.config
        self.config = config

        if self.state is SchedulerState.IDLE:
            # Now, we start the background scheduler and arm the first timer.
            self.scheduler.start()
            self._arm(config)
            self.state = SchedulerState.RUNNING
            log.info("Polling started for %s every %d ms.", config.symbol, config.poll_interval_ms)
            return True

        if previous is not None and previous.polling_key() == config.polling_key():
            return False

        self._disarm()
        self._arm(config)
        log.info("Polling restarted for %s every %d ms.", config.symbol, config.poll_interval_ms)
        return True

    def shutdown(self) -> None:
        if self.state is SchedulerState.RUNNING:
            self._disarm()
            self.scheduler.shutdown(wait=False)
            log.info("Polling stopped.")
        self.state = SchedulerState.STOPPED

    def _arm(self, config: PollConfig) -> None:
        self._token = CancellationToken()
        # max_instances=1: a tick that fires while the previous cycle is still
        # in flight is skipped instead of overlapping it.
        self.scheduler.add_job(
            self._tick,
            "interval",
            seconds=config.poll_interval_ms / 1000.0,
            id=JOB_ID,
            args=[self._token],
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )

    def _disarm(self) -> None:
        if self._token is not None:
            self._token.cancel()
            self._token = None
        try:
            self.scheduler.remove_job(JOB_ID)
        except JobLookupError:
            log.debug("no %s job to remove", JOB_ID)

    async def _tick(self, token: CancellationToken) -> None:
        """
        The "Heartbeat" of the application.
        Reads the latest config at fire time so cooldown changes apply without a restart.
        """
        config = self.config
        if token.cancelled or config is None:
            return
        try:
            await self.pipeline.run_cycle(config, token)
        except Exception as e:
            # One bad cycle must not stop the loop; the next tick tries again.
            log.exception("poll cycle for %s failed: %s", config.symbol, e)
