"""Job orchestrator wiring configuration, store, fetcher, worker pool and exporters."""

from __future__ import annotations

from concurrent.futures import Future, as_completed
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import partial
from typing import Iterable, Mapping

import structlog

from .config import ConfigRepository, GlobalConfig, JobConfig, StoreBackend
from .engine import Found, KeyFetcher, NotFound, Record, Relationship, StoreError, ThreadPoolManager
from .engine.exporter import ChannelRouter
from .errors import ConfigurationFault, qualified_name
from .infra import LoggingProvenanceReporter, ProvenanceReporter, SQLiteManager, SQLiteProvenanceReporter
from .logging_conf import configure_logging, job_logger
from .stores import DocumentStore, build_store

STATUSES = ("found", "not_found", "store_error", "aborted")


@dataclass(slots=True)
class InvocationResult:
    """How a single invocation ended."""

    status: str
    doc_id: str | None = None
    reason: str | None = None


class Orchestrator:
    """Central coordinator running fetch jobs on demand or from the scheduler."""

    def __init__(
        self,
        config_repository: ConfigRepository,
        scheduler,
        thread_pool: ThreadPoolManager,
        storage: SQLiteManager,
        provenance: ProvenanceReporter | None = None,
        stores: Mapping[str, DocumentStore] | None = None,
    ) -> None:
        self.config_repository = config_repository
        self.global_config: GlobalConfig = config_repository.load_global_config()
        self.scheduler = scheduler
        self.thread_pool = thread_pool
        self.storage = storage
        self.provenance = provenance or self._default_provenance()
        self.logger = configure_logging().bind(component="orchestrator")
        # Stores injected per job name are shared and never closed here.
        self._stores = dict(stores or {})

    # ------------------------------------------------------------------
    def register_schedules(self, jobs: Iterable[JobConfig]) -> int:
        scheduled = 0
        for job in jobs:
            if self.scheduler.schedule_job(job, self.run_job_async):
                scheduled += 1
        self.scheduler.start()
        return scheduled

    def run_job_async(self, job: JobConfig) -> Future:
        """Start a timer-triggered run; failures are logged to the job log."""

        future = self.thread_pool.trigger_pool().submit(self.run_job, job.job_name)
        future.add_done_callback(partial(self._report_run_failure, job.job_name))
        return future

    def run_job(self, job_name: str, records: Iterable[Record] | None = None) -> dict[str, int]:
        """Run ``job_name`` once per record, or once without a record.

        Returns counts per outcome (``found``, ``not_found``, ``store_error``,
        ``aborted``) and per output channel.
        """

        job = self.config_repository.load_job(job_name)
        log = job_logger(job.job_name)
        store, owned = self._open_store(job, log)
        fetcher = KeyFetcher(job.fetch, store, self.provenance, logger=log)
        run_tag = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        outputs_dir = self.config_repository.locator.resolve(self.global_config.outputs_dir)
        router = ChannelRouter.from_config(job.output, job.job_name, outputs_dir, run_tag)

        batch: list[Record | None] = [None] if records is None else list(records)
        summary: dict[str, int] = {status: 0 for status in STATUSES}
        log.info("job_started", invocations=len(batch), timer_triggered=records is None)
        try:
            executor = self.thread_pool.job_pool(job.job_name, max_workers=job.max_workers)
            futures = [executor.submit(self.invoke, fetcher, router, record, log) for record in batch]
            for future in as_completed(futures):
                result = future.result()
                summary[result.status] += 1
        finally:
            router.close()
            if owned:
                store.close()
        summary.update({rel.value: router.counts[rel] for rel in Relationship})
        log.info("job_finished", **summary)
        return summary

    def invoke(
        self,
        fetcher: KeyFetcher,
        router: ChannelRouter,
        record: Record | None,
        logger: structlog.BoundLogger | None = None,
    ) -> InvocationResult:
        log = logger or self.logger
        try:
            outcome = fetcher.fetch(record)
        except ConfigurationFault as exc:
            log.error("invocation_aborted", record=str(record), error=str(exc))
            return InvocationResult(status="aborted", reason=str(exc))
        router.route(outcome.transfers)
        if isinstance(outcome.result, Found):
            status = "found"
        elif isinstance(outcome.result, NotFound):
            status = "not_found"
        elif isinstance(outcome.result, StoreError):
            status = "store_error"
        else:  # pragma: no cover - FetchResult is closed
            raise TypeError(f"Unexpected fetch result {outcome.result!r}")
        return InvocationResult(status=status, doc_id=outcome.doc_id)

    # ------------------------------------------------------------------
    def _report_run_failure(self, job_name: str, future: Future) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            job_logger(job_name).error(
                "job_run_failed",
                error=str(exc),
                error_type=qualified_name(type(exc)),
                exc_info=exc,
            )

    def _open_store(self, job: JobConfig, log: structlog.BoundLogger) -> tuple[DocumentStore, bool]:
        if job.job_name in self._stores:
            return self._stores[job.job_name], False
        if job.store.backend is StoreBackend.MEMORY:
            log.warning("memory_store_is_empty", bucket=job.fetch.bucket_name)
        store = build_store(
            job.store,
            job.fetch.bucket_name,
            storage=self.storage,
            base_dir=self.config_repository.locator.project_root,
        )
        return store, True

    def _default_provenance(self) -> ProvenanceReporter:
        db_path = self.global_config.provenance_db
        if db_path is None:
            return LoggingProvenanceReporter()
        return SQLiteProvenanceReporter(self.storage, self.config_repository.locator.resolve(db_path))


__all__ = ["InvocationResult", "Orchestrator", "STATUSES"]
