"""Pydantic models used across keyfetch configuration flow."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator


class DocumentType(str, Enum):
    """Decoding strategy used when reading a document."""

    JSON = "Json"
    BINARY = "Binary"


class StoreBackend(str, Enum):
    """Document store implementations keyfetch can read from."""

    MEMORY = "memory"
    SQLITE = "sqlite"
    MONGODB = "mongodb"


class ScheduleType(str, Enum):
    """Timer modes for unattended jobs."""

    CRON = "cron"
    INTERVAL = "interval"
    ONCE = "once"


class ScheduleConfig(BaseModel):
    """Configuration describing when a job runs without an incoming record."""

    type: ScheduleType = Field(default=ScheduleType.ONCE)
    value: Any = Field(
        default=None,
        description="Cron expression, interval seconds or ISO datetime, depending on type.",
    )

    @model_validator(mode="after")
    def _validate_value(self) -> "ScheduleConfig":
        if self.type is ScheduleType.CRON and not isinstance(self.value, str):
            raise ValueError("Cron schedule requires string expression")
        if self.type is ScheduleType.INTERVAL and not isinstance(self.value, (int, float, dict)):
            raise ValueError("Interval schedule requires seconds (int/float) or kwargs dict")
        if (
            self.type is ScheduleType.ONCE
            and self.value is not None
            and not isinstance(self.value, str)
        ):
            raise ValueError("Once schedule expects ISO datetime string or null")
        return self


class FetchConfig(BaseModel):
    """What to read and how to decode it."""

    cluster_service: str
    bucket_name: str = "default"
    document_type: DocumentType = DocumentType.JSON
    document_id_expression: str = ""

    @field_validator("document_type", mode="before")
    @classmethod
    def _coerce_document_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            for member in DocumentType:
                if member.value.lower() == value.strip().lower():
                    return member
        return value

    @field_validator("document_id_expression", mode="before")
    @classmethod
    def _coerce_expression(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value)

    @model_validator(mode="after")
    def _validate_names(self) -> "FetchConfig":
        if not self.cluster_service.strip():
            raise ValueError("cluster_service cannot be empty")
        if not self.bucket_name.strip():
            raise ValueError("bucket_name cannot be empty")
        return self


class StoreConfig(BaseModel):
    """Connection settings for the document store.

    The ``memory`` backend starts empty on every run unless a populated store
    is handed to the orchestrator; configured jobs normally use ``sqlite`` or
    ``mongodb``.
    """

    backend: StoreBackend = StoreBackend.MEMORY
    uri: str | None = None
    database: str = "keyfetch"
    path: Path | None = None

    @field_validator("path", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path | None:
        if value in (None, ""):
            return None
        return Path(value)

    @model_validator(mode="after")
    def _validate_backend(self) -> "StoreConfig":
        if self.backend is StoreBackend.SQLITE and self.path is None:
            raise ValueError("SQLite store requires a path")
        if self.backend is StoreBackend.MONGODB and not self.uri:
            raise ValueError("MongoDB store requires a uri")
        return self


class OutputConfig(BaseModel):
    """Where routed records end up."""

    format: Literal["json", "sqlite", "mongodb"] = "json"
    uri: str | None = None
    database: str = "keyfetch"

    @model_validator(mode="after")
    def _validate_target(self) -> "OutputConfig":
        if self.format == "mongodb" and not self.uri:
            raise ValueError("MongoDB output requires a uri")
        return self


class JobConfig(BaseModel):
    """Full definition of a fetch job."""

    job_name: str
    fetch: FetchConfig
    store: StoreConfig = Field(default_factory=StoreConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    schedule: ScheduleConfig | None = None
    max_workers: int | None = None

    @model_validator(mode="after")
    def _validate_job(self) -> "JobConfig":
        if not self.job_name.strip():
            raise ValueError("job_name cannot be empty")
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        return self


class GlobalConfig(BaseModel):
    """Global controls shared across jobs."""

    thread_pool_workers: int = 8
    outputs_dir: Path = Field(default=Path("data/outputs"))
    jobs_dir: Path = Field(default=Path("data/jobs"))
    provenance_db: Path | None = Field(default=Path("data/provenance.db"))

    @field_validator("outputs_dir", "jobs_dir", mode="before")
    @classmethod
    def _coerce_dirs(cls, value: Any) -> Path:
        return Path(value)

    @field_validator("provenance_db", mode="before")
    @classmethod
    def _coerce_provenance(cls, value: Any) -> Path | None:
        if value in (None, ""):
            return None
        return Path(value)

    @model_validator(mode="after")
    def _validate_workers(self) -> "GlobalConfig":
        if self.thread_pool_workers < 1:
            raise ValueError("thread_pool_workers must be >= 1")
        return self


__all__ = [
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
