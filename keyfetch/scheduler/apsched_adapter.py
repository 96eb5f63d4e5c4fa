"""APScheduler wrapper driving timer-triggered fetch jobs."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_MISSED, JobExecutionEvent
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from ..config import JobConfig, ScheduleConfig, ScheduleType
from ..logging_conf import configure_logging

JOB_ID_PREFIX = "job::"


@dataclass(slots=True)
class ScheduledJob:
    job_name: str
    trigger: str
    next_run_time: datetime | None


class APSchedulerAdapter:
    """Fire timer invocations for every job that carries a schedule.

    A job never overlaps with itself: missed firings are coalesced into one
    and a firing is skipped while the previous one is still being submitted.
    """

    def __init__(self, misfire_grace_time: int = 30) -> None:
        self.scheduler = BackgroundScheduler(
            job_defaults={"coalesce": True, "max_instances": 1, "misfire_grace_time": misfire_grace_time}
        )
        self.scheduler.add_listener(self._on_event, EVENT_JOB_MISSED | EVENT_JOB_ERROR)
        self.logger = configure_logging().bind(component="scheduler")
        self.started = False

    def start(self) -> None:
        if not self.started:
            self.scheduler.start()
            self.started = True
            self.logger.info("scheduler_started", jobs=len(self.scheduler.get_jobs()))

    def shutdown(self) -> None:
        if self.started:
            self.scheduler.shutdown(wait=False)
            self.started = False
            self.logger.info("scheduler_stopped")

    def schedule_job(self, job: JobConfig, callback: Callable[[JobConfig], object]) -> bool:
        """Register ``job`` if it has a schedule; return whether it was scheduled."""

        if job.schedule is None:
            self.logger.debug("job_without_schedule", job=job.job_name)
            return False
        self.scheduler.add_job(
            callback,
            trigger=build_trigger(job.schedule),
            id=f"{JOB_ID_PREFIX}{job.job_name}",
            name=job.job_name,
            args=[job],
            replace_existing=True,
        )
        self.logger.info("job_scheduled", job=job.job_name, schedule=job.schedule.model_dump(mode="json"))
        return True

    def scheduled_jobs(self) -> list[ScheduledJob]:
        return [
            ScheduledJob(
                job_name=job.id[len(JOB_ID_PREFIX):],
                trigger=str(job.trigger),
                next_run_time=getattr(job, "next_run_time", None),
            )
            for job in self.scheduler.get_jobs()
            if job.id.startswith(JOB_ID_PREFIX)
        ]

    def _on_event(self, event: JobExecutionEvent) -> None:
        job_name = event.job_id[len(JOB_ID_PREFIX):]
        if event.code == EVENT_JOB_MISSED:
            self.logger.warning("timer_run_missed", job=job_name, scheduled_for=str(event.scheduled_run_time))
        else:
            self.logger.error("timer_trigger_failed", job=job_name, error=repr(event.exception))


def build_trigger(schedule: ScheduleConfig):
    """Translate a validated :class:`ScheduleConfig` into an APScheduler trigger."""

    if schedule.type is ScheduleType.CRON:
        return CronTrigger.from_crontab(str(schedule.value))
    if schedule.type is ScheduleType.INTERVAL:
        if isinstance(schedule.value, dict):
            return IntervalTrigger(**schedule.value)
        return IntervalTrigger(seconds=float(schedule.value))
    if schedule.type is ScheduleType.ONCE:
        run_date = datetime.fromisoformat(str(schedule.value)) if schedule.value else datetime.now(timezone.utc)
        return DateTrigger(run_date=run_date)
    raise ValueError(f"Unknown schedule type: {schedule.type}")


__all__ = ["APSchedulerAdapter", "ScheduledJob", "build_trigger"]
