from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List

logger = logging.getLogger(__name__)

JobCallable = Callable[[], Awaitable[object]]


@dataclass(slots=True)
class PeriodicJob:
    name: str
    interval_seconds: float
    run: JobCallable


class PeriodicScheduler:
    """Runs each registered job on its own fixed interval inside the event loop.

    Ticks are neither deduplicated nor retried: a failing run is logged and the
    job simply waits for its next interval.
    """

    def __init__(self) -> None:
        self._jobs: List[PeriodicJob] = []
        self._tasks: List[asyncio.Task[None]] = []

    def add_job(self, name: str, interval_seconds: float, run: JobCallable) -> None:
        if interval_seconds <= 0:
            raise ValueError("Job interval must be positive.")
        self._jobs.append(PeriodicJob(name=name, interval_seconds=interval_seconds, run=run))

    @property
    def jobs(self) -> List[PeriodicJob]:
        return list(self._jobs)

    @property
    def is_running(self) -> bool:
        return bool(self._tasks)

    async def start(self) -> None:
        if self._tasks:
            return
        loop = asyncio.get_running_loop()
        for job in self._jobs:
            logger.info("Scheduling job %s every %ss.", job.name, job.interval_seconds)
            self._tasks.append(loop.create_task(self._loop(job), name=f"scheduler-{job.name}"))

    async def stop(self) -> None:
        if not self._tasks:
            return
        logger.info("Stopping scheduler.")
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()

    async def run_job(self, job: PeriodicJob) -> None:
        try:
            await job.run()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Scheduled job %s failed.", job.name)

    async def _loop(self, job: PeriodicJob) -> None:
        while True:
            await asyncio.sleep(job.interval_seconds)
            logger.debug("Running scheduled job %s.", job.name)
            await self.run_job(job)
