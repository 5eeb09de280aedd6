"""
bingwallpaper scheduler

Runs a SyncCycle right away and then once every interval (one hour by default), or exactly
once in single-run mode. Everything happens on the thread that calls start(), so two cycles
can never overlap. stop() may be called from another thread or from a signal handler to end
a recurring run at the next wait.

    IDLE -> RUNNING -> WAITING -> RUNNING -> ...   (recurring)
    IDLE -> RUNNING -> TERMINATED                  (single run, or after stop())
"""

import time
import logging
import threading
from enum import Enum

from bingwallpaper.sync import SyncCycle, SyncOutcome
from bingwallpaper.cli_utils.console import describe, fail

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 60 * 60


class SchedulerMode(Enum):
    RECURRING = "recurring"
    SINGLE = "single"


class SchedulerState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    WAITING = "waiting"
    TERMINATED = "terminated"


class Scheduler:
    def __init__(self, cycle: SyncCycle, interval: float = DEFAULT_INTERVAL):
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")

        self.cycle = cycle
        self.interval = interval
        self.state = SchedulerState.IDLE
        self.last_error = None
        self.runs = 0
        self._stop_event = threading.Event()

    def _run_cycle(self) -> SyncOutcome:
        self.state = SchedulerState.RUNNING
        self.runs += 1
        outcome = self.cycle.run()
        logger.debug("Cycle %d finished: %s", self.runs, outcome.value)
        return outcome

    def start(self, mode: SchedulerMode = SchedulerMode.RECURRING):
        """
        Block until the scheduler terminates. In single-run mode the cycle outcome is
        returned and any unexpected error is raised to the caller. In recurring mode errors
        are reported and the next cycle is scheduled anyway.
        """

        if self.state is not SchedulerState.IDLE:
            raise RuntimeError(f"Scheduler cannot start from state {self.state.value}")

        if mode is SchedulerMode.SINGLE:
            try:
                return self._run_cycle()
            finally:
                self.state = SchedulerState.TERMINATED

        while not self._stop_event.is_set():
            started = time.monotonic()

            try:
                self._run_cycle()

            except Exception as error:
                self.last_error = error
                logger.exception("Cycle %d raised an unexpected error", self.runs)
                fail(f"wallpaper update failed: {error}")

            if self._stop_event.is_set():
                break

            # next start is measured from this run's start, never overlapping it
            delay = max(0.0, started + self.interval - time.monotonic())
            self.state = SchedulerState.WAITING
            describe(f"next check in {int(delay // 60)} minute(s)")

            if self._stop_event.wait(timeout=delay):
                break

        self.state = SchedulerState.TERMINATED

    def stop(self):
        """Ask a recurring scheduler to terminate. The cycle in progress is not interrupted."""

        self._stop_event.set()
