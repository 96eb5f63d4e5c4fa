"""Executors for timer triggers and per-job invocations."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from threading import Lock
from typing import Dict


class ThreadPoolManager:
    """Own every executor keyfetch starts.

    The trigger pool runs whole job runs started by the scheduler. Each job
    gets its own pool for the invocations of a run, sized by the job's
    ``max_workers``. A run blocks on its job pool, so the two never share
    threads. Pools are created on first use; :meth:`close` shuts everything
    down and further requests fail.
    """

    def __init__(self, default_workers: int = 8) -> None:
        self.default_workers = default_workers
        self._trigger_pool: ThreadPoolExecutor | None = None
        self._job_pools: Dict[str, tuple[int, ThreadPoolExecutor]] = {}
        self._retired: list[ThreadPoolExecutor] = []
        self._lock = Lock()
        self._closing = False
        self._closed = False

    def trigger_pool(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._closing:
                raise RuntimeError("Thread pools are closing")
            if self._trigger_pool is None:
                self._trigger_pool = ThreadPoolExecutor(
                    max_workers=self.default_workers, thread_name_prefix="keyfetch-trigger"
                )
            return self._trigger_pool

    def job_pool(self, job_name: str, max_workers: int | None = None) -> ThreadPoolExecutor:
        """Return the pool of ``job_name``, replacing it when its size changed."""

        workers = max_workers or self.default_workers
        with self._lock:
            self._ensure_open()
            current = self._job_pools.get(job_name)
            if current is not None and current[0] == workers:
                return current[1]
            if current is not None:
                # A run may still be submitting to the old pool.
                self._retired.append(current[1])
            executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix=f"keyfetch-{job_name}")
            self._job_pools[job_name] = (workers, executor)
            return executor

    def close(self, wait: bool = True) -> None:
        with self._lock:
            if self._closing:
                return
            self._closing = True
            trigger, self._trigger_pool = self._trigger_pool, None
        # Triggered runs still need their job pools while they drain.
        if trigger is not None:
            trigger.shutdown(wait=wait)
        with self._lock:
            self._closed = True
            pools = [executor for _, executor in self._job_pools.values()] + self._retired
            self._job_pools.clear()
            self._retired = []
        for executor in pools:
            executor.shutdown(wait=wait)

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> "ThreadPoolManager":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("Thread pools are closed")


__all__ = ["ThreadPoolManager"]
