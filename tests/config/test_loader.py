from __future__ import annotations

from pathlib import Path

import pytest

from keyfetch.config import ConfigLocator, ConfigRepository, GlobalConfig, ScheduleConfig, ScheduleType
from keyfetch.config.loader import _slugify


def test_config_locator_uses_env_and_creates_directories(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("KEYFETCH_HOME", str(tmp_path))
    locator = ConfigLocator()
    assert locator.project_root == tmp_path.resolve()
    for path in (locator.data_dir, locator.jobs_dir, locator.outputs_dir, locator.logs_dir):
        assert path.exists()
    assert locator.global_config_path() == locator.data_dir / "global_config.yaml"
    assert locator.resolve(Path("data/x.db")) == (tmp_path / "data" / "x.db").resolve()


def test_config_repository_global_roundtrip(temp_config_repository: ConfigRepository) -> None:
    config = GlobalConfig(thread_pool_workers=3, provenance_db=None)
    temp_config_repository.save_global_config(config)
    fresh = ConfigRepository(temp_config_repository.locator)
    assert fresh.load_global_config() == config


def test_load_global_config_writes_defaults(temp_config_repository: ConfigRepository) -> None:
    loaded = temp_config_repository.load_global_config()
    assert loaded == GlobalConfig()
    assert temp_config_repository.locator.global_config_path().exists()


def test_config_repository_job_cycle(temp_config_repository: ConfigRepository, sample_job_config) -> None:
    job = sample_job_config(
        job_name="User Profiles",
        schedule=ScheduleConfig(type=ScheduleType.CRON, value="0 * * * *"),
    )
    path = temp_config_repository.save_job(job)
    assert path.name == "user-profiles.yaml"
    assert temp_config_repository.load_job("User Profiles") == job
    assert [j.job_name for j in temp_config_repository.list_jobs()] == ["User Profiles"]
    temp_config_repository.delete_job("User Profiles")
    assert not path.exists()


def test_job_file_in_yaml(temp_config_repository: ConfigRepository) -> None:
    path = temp_config_repository.locator.jobs_dir / "orders.yaml"
    path.write_text(
        "job_name: orders\n"
        "fetch:\n"
        "  cluster_service: prod\n"
        "  bucket_name: orders\n"
        "  document_type: binary\n"
        "  document_id_expression: 'order::${order.id}'\n"
        "store:\n"
        "  backend: sqlite\n"
        "  path: data/orders.db\n",
        encoding="utf-8",
    )
    job = temp_config_repository.load_job("orders")
    assert job.fetch.document_id_expression == "order::${order.id}"
    assert job.store.path == Path("data/orders.db")


def test_config_repository_missing_job(temp_config_repository: ConfigRepository) -> None:
    with pytest.raises(FileNotFoundError):
        temp_config_repository.load_job("missing")


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Example Job", "example-job"),
        ("Already-Slug", "already-slug"),
        ("C++ Archive", "c---archive"),
    ],
)
def test_slugify_behaviour(raw: str, expected: str) -> None:
    assert _slugify(raw) == expected
