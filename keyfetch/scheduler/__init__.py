"""Timer triggering for fetch jobs."""

from .apsched_adapter import APSchedulerAdapter, ScheduledJob, build_trigger

__all__ = ["APSchedulerAdapter", "ScheduledJob", "build_trigger"]
