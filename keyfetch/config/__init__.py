"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository
from .models import (
    DocumentType,
    FetchConfig,
    GlobalConfig,
    JobConfig,
    OutputConfig,
    ScheduleConfig,
    ScheduleType,
    StoreBackend,
    StoreConfig,
)

__all__ = [
    "ConfigLocator",
    "ConfigRepository",
    "DocumentType",
    "FetchConfig",
    "GlobalConfig",
    "JobConfig",
    "OutputConfig",
    "ScheduleConfig",
    "ScheduleType",
    "StoreBackend",
    "StoreConfig",
]
