import asyncio
import logging

import pytest
from fastapi.testclient import TestClient

from webnest.core.app_factory import create_application
from webnest.core.config import Settings
from webnest.services.scheduler import PeriodicJob, PeriodicScheduler


def test_rejects_non_positive_interval():
    scheduler = PeriodicScheduler()
    with pytest.raises(ValueError):
        scheduler.add_job("broken", 0, lambda: None)


@pytest.mark.asyncio
async def test_jobs_run_repeatedly_until_stopped():
    scheduler = PeriodicScheduler()
    runs = []

    async def tick():
        runs.append(1)

    scheduler.add_job("tick", 0.01, tick)
    await scheduler.start()
    assert scheduler.is_running
    await asyncio.sleep(0.1)
    await scheduler.stop()

    count = len(runs)
    assert count >= 2
    assert not scheduler.is_running
    await asyncio.sleep(0.05)
    assert len(runs) == count


@pytest.mark.asyncio
async def test_failing_job_is_logged_and_keeps_its_schedule(caplog):
    scheduler = PeriodicScheduler()
    calls = []

    async def explode():
        calls.append(1)
        raise RuntimeError("boom")

    scheduler.add_job("explode", 0.01, explode)
    with caplog.at_level(logging.ERROR):
        await scheduler.start()
        await asyncio.sleep(0.1)
        await scheduler.stop()

    assert len(calls) >= 2
    assert "Scheduled job explode failed" in caplog.text


@pytest.mark.asyncio
async def test_run_job_swallows_errors():
    async def explode():
        raise RuntimeError("boom")

    await PeriodicScheduler().run_job(PeriodicJob(name="explode", interval_seconds=1, run=explode))


def test_application_registers_jobs(monkeypatch, persistence, clock):
    monkeypatch.setenv("SCHEDULER_ENABLED", "true")

    app = create_application(Settings("client"), persistence, clock=clock)
    with TestClient(app) as client:
        scheduler = app.state.container.scheduler
        assert [job.name for job in scheduler.jobs] == ["deadline-reminders", "session-purge"]
        assert scheduler.is_running
        assert client.get("/health").json()["data"]["scheduler"] is True

    assert not scheduler.is_running


def test_scheduler_disabled_by_default_on_developer_service(monkeypatch, persistence, clock):
    monkeypatch.delenv("SCHEDULER_ENABLED")

    app = create_application(Settings("developer"), persistence, clock=clock)
    with TestClient(app):
        assert not app.state.container.scheduler.is_running
