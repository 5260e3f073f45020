import asyncio

import pytest
from apscheduler.triggers.cron import CronTrigger

from taskmanager.scheduler import STARTUP_SWEEP_JOB_ID, SWEEP_JOB_ID, create_scheduler, cron_trigger, register_sweep


class FakeSweep:
    async def run(self):
        return None


def test_cron_trigger_parses_hourly_expression():
    trigger = cron_trigger("0 * * * *", "UTC")
    assert isinstance(trigger, CronTrigger)
    fields = {f.name: str(f) for f in trigger.fields}
    assert fields["minute"] == "0"
    assert fields["hour"] == "*"


@pytest.mark.parametrize("expression", ["", "0 * * *", "every hour", "61 * * * *"])
def test_cron_trigger_rejects_malformed_expression(expression):
    with pytest.raises(ValueError):
        cron_trigger(expression, "UTC")


def test_register_sweep_adds_recurring_job_only_by_default():
    scheduler = create_scheduler("UTC")
    register_sweep(scheduler, FakeSweep(), "0 * * * *", "UTC")
    assert [job.id for job in scheduler.get_jobs()] == [SWEEP_JOB_ID]


def test_register_sweep_adds_startup_run_when_enabled():
    scheduler = create_scheduler("UTC")
    register_sweep(scheduler, FakeSweep(), "*/15 * * * *", "UTC", run_on_startup=True)
    assert {job.id for job in scheduler.get_jobs()} == {SWEEP_JOB_ID, STARTUP_SWEEP_JOB_ID}


def test_startup_run_fires_sweep_once_when_scheduler_starts():
    class CountingSweep:
        def __init__(self) -> None:
            self.calls = 0
            self.called = asyncio.Event()

        async def run(self):
            self.calls += 1
            self.called.set()
            return None

    async def scenario() -> int:
        sweep = CountingSweep()
        scheduler = create_scheduler("UTC")
        # January 1st midnight keeps the recurring job out of the way.
        register_sweep(scheduler, sweep, "0 0 1 1 *", "UTC", run_on_startup=True)
        scheduler.start()
        try:
            await asyncio.wait_for(sweep.called.wait(), timeout=5)
            await asyncio.sleep(0.1)
        finally:
            scheduler.shutdown(wait=False)
        return sweep.calls

    assert asyncio.run(scenario()) == 1
