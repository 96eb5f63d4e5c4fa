from __future__ import annotations

import pytest
from pydantic import ValidationError

from keyfetch.config import (
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


@pytest.mark.parametrize(("raw", "expected"), [("json", DocumentType.JSON), ("BINARY", DocumentType.BINARY), ("Json", DocumentType.JSON)])
def test_document_type_is_case_insensitive(raw, expected) -> None:
    assert FetchConfig(cluster_service="c", document_type=raw).document_type is expected


def test_document_type_rejects_unknown() -> None:
    with pytest.raises(ValidationError):
        FetchConfig(cluster_service="c", document_type="xml")


def test_fetch_config_defaults() -> None:
    cfg = FetchConfig(cluster_service="c", document_id_expression=None)
    assert cfg.bucket_name == "default"
    assert cfg.document_type is DocumentType.JSON
    assert cfg.document_id_expression == ""


def test_fetch_config_requires_names() -> None:
    with pytest.raises(ValidationError):
        FetchConfig(cluster_service=" ")
    with pytest.raises(ValidationError):
        FetchConfig(cluster_service="c", bucket_name="")


def test_store_config_backend_requirements() -> None:
    with pytest.raises(ValidationError):
        StoreConfig(backend=StoreBackend.SQLITE)
    with pytest.raises(ValidationError):
        StoreConfig(backend="mongodb")
    cfg = StoreConfig(backend="sqlite", path="data/docs.db")
    assert cfg.path.name == "docs.db"


def test_output_config_mongodb_requires_uri() -> None:
    with pytest.raises(ValidationError):
        OutputConfig(format="mongodb")


def test_schedule_config_validation() -> None:
    with pytest.raises(ValueError):
        ScheduleConfig(type=ScheduleType.INTERVAL)
    with pytest.raises(ValueError):
        ScheduleConfig(type=ScheduleType.CRON, value=5)
    assert ScheduleConfig(type=ScheduleType.INTERVAL, value={"minutes": 2}).value == {"minutes": 2}


def test_job_config_validation() -> None:
    fetch = FetchConfig(cluster_service="c")
    with pytest.raises(ValidationError):
        JobConfig(job_name="", fetch=fetch)
    with pytest.raises(ValidationError):
        JobConfig(job_name="j", fetch=fetch, max_workers=0)
    job = JobConfig(job_name="j", fetch=fetch)
    assert job.schedule is None
    assert job.store.backend is StoreBackend.MEMORY


def test_global_config_paths() -> None:
    cfg = GlobalConfig(outputs_dir="out", provenance_db="")
    assert str(cfg.outputs_dir) == "out"
    assert cfg.provenance_db is None
    with pytest.raises(ValidationError):
        GlobalConfig(thread_pool_workers=0)
