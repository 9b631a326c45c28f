from zoneinfo import ZoneInfo

from birthday_sms.bot_handlers import CheckRunner
from birthday_sms.models import PipelineResult
from birthday_sms.scheduler import DAILY_JOB_ID, build_scheduler


class NoopService:
    async def run(self, now=None) -> PipelineResult:
        return PipelineResult(target_date=now)


def test_build_scheduler_registers_daily_cron_job_in_local_zone() -> None:
    zone = ZoneInfo("America/New_York")
    runner = CheckRunner(NoopService())

    scheduler = build_scheduler(runner, "09:05", zone)

    jobs = scheduler.get_jobs()
    assert [job.id for job in jobs] == [DAILY_JOB_ID]
    trigger = jobs[0].trigger
    fields = {field.name: str(field) for field in trigger.fields}
    assert fields["hour"] == "9"
    assert fields["minute"] == "5"
    assert str(trigger.timezone) == "America/New_York"
    assert jobs[0].func == runner.run
