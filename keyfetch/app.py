"""Typer CLI entrypoint for keyfetch."""

from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

import typer
import yaml
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import ConfigRepository, JobConfig, ScheduleConfig, ScheduleType
from .engine import Record, ThreadPoolManager
from .infra import SQLiteManager
from .logging_conf import (
    available_job_logs,
    close_job_logs,
    configure_logging,
    job_log_path,
    main_log_path,
    tail_log,
)
from .orchestrator import Orchestrator
from .scheduler import APSchedulerAdapter, ScheduledJob

app = typer.Typer(help="keyfetch: fetch documents by id from a key-value store", no_args_is_help=True)
job_app = typer.Typer(name="job", help="Manage and run fetch jobs", no_args_is_help=True)
log_app = typer.Typer(name="log", help="Inspect log files", no_args_is_help=True)

console = Console()


@dataclass
class AppState:
    repository: ConfigRepository
    scheduler: APSchedulerAdapter
    orchestrator: Orchestrator
    storage: SQLiteManager
    thread_pool: ThreadPoolManager

    def close(self) -> None:
        self.scheduler.shutdown()
        self.thread_pool.close(wait=True)
        self.storage.close_all()
        close_job_logs()


def build_state(verbose: bool) -> AppState:
    configure_logging(verbose=verbose)
    repository = ConfigRepository()
    global_config = repository.load_global_config()
    scheduler = APSchedulerAdapter()
    thread_pool = ThreadPoolManager(global_config.thread_pool_workers)
    storage = SQLiteManager()
    orchestrator = Orchestrator(
        config_repository=repository,
        scheduler=scheduler,
        thread_pool=thread_pool,
        storage=storage,
    )
    return AppState(
        repository=repository,
        scheduler=scheduler,
        orchestrator=orchestrator,
        storage=storage,
        thread_pool=thread_pool,
    )


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
        ctx.call_on_close(state.close)
    return state


def _format_schedule(schedule: ScheduleConfig | None) -> str:
    if schedule is None:
        return "-"
    data = schedule.value
    label = schedule.type.value
    if data in (None, "", [], {}):
        return label
    if schedule.type is ScheduleType.CRON:
        return f"cron ({data})"
    if schedule.type is ScheduleType.INTERVAL:
        return f"interval ({data})"
    return f"{label} ({data})"


def _render_jobs_table(jobs: Sequence[JobConfig]) -> Table:
    table = Table(title=f"Fetch jobs ({len(jobs)})", box=box.SIMPLE_HEAD)
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Store", style="magenta")
    table.add_column("Bucket", style="green")
    table.add_column("Type")
    table.add_column("Document id", overflow="fold")
    table.add_column("Schedule", style="yellow", overflow="fold")
    for job in jobs:
        table.add_row(
            job.job_name,
            job.store.backend.value,
            job.fetch.bucket_name,
            job.fetch.document_type.value,
            job.fetch.document_id_expression or "(record content)",
            _format_schedule(job.schedule),
        )
    return table


def _render_scheduled_table(jobs: Sequence[ScheduledJob]) -> Table:
    table = Table(title="Scheduled jobs", box=box.SIMPLE_HEAD)
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Trigger", overflow="fold")
    table.add_column("Next run", style="yellow")
    for job in jobs:
        next_run = job.next_run_time.isoformat(timespec="seconds") if job.next_run_time else "-"
        table.add_row(job.job_name, escape(job.trigger), next_run)
    return table


def _render_summary(job_name: str, summary: dict[str, int]) -> Table:
    table = Table(title=f"Run summary: {job_name}", box=box.SIMPLE_HEAD)
    table.add_column("Counter", style="cyan")
    table.add_column("Value", justify="right")
    for key, value in summary.items():
        table.add_row(key, str(value))
    return table


def _parse_attributes(pairs: Iterable[str]) -> dict[str, str]:
    attributes: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise typer.BadParameter(f"Expected KEY=VALUE, got {pair!r}", param_hint="--attr")
        attributes[key.strip()] = value
    return attributes


def build_records(
    ids: Sequence[str], attributes: dict[str, str], ids_file: Path | None = None
) -> list[Record] | None:
    """Turn CLI input into incoming records; ``None`` means a timer-style run."""

    payloads = list(ids)
    if ids_file is not None:
        lines = ids_file.read_text(encoding="utf-8").splitlines()
        payloads.extend(line.strip() for line in lines if line.strip())
    if payloads:
        return [Record.create(payload, attributes) for payload in payloads]
    if attributes:
        return [Record.create(b"", attributes)]
    return None


app.add_typer(job_app, name="job")
app.add_typer(log_app, name="log")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
) -> None:
    state = build_state(verbose)
    ctx.obj = state
    ctx.call_on_close(state.close)


@job_app.command("list", help="List configured jobs.")
def job_list(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    jobs = state.repository.list_jobs()
    if not jobs:
        console.print("No jobs configured yet.", style="yellow")
        raise typer.Exit(code=0)
    console.print(_render_jobs_table(jobs))


@job_app.command("show", help="Print a job configuration.")
def job_show(ctx: typer.Context, name: str = typer.Argument(..., help="Job name")) -> None:
    state = _get_state(ctx)
    try:
        job = state.repository.load_job(name)
    except FileNotFoundError as exc:
        console.print(str(exc), style="red")
        raise typer.Exit(code=1)
    console.print(yaml.safe_dump(job.model_dump(mode="json", exclude_none=True), sort_keys=False))


@job_app.command("remove", help="Delete a job configuration.")
def job_remove(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Job name"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    state = _get_state(ctx)
    if not state.repository.job_path(name).exists():
        console.print(f"Job `{name}` does not exist.", style="red")
        raise typer.Exit(code=1)
    if not yes and not typer.confirm(f"Delete job `{name}`?"):
        raise typer.Exit(code=0)
    state.repository.delete_job(name)
    console.print(f"Job `{name}` removed.", style="green")


@job_app.command("run", help="Run a job once, one invocation per document id.")
def job_run(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Job name"),
    ids: List[str] = typer.Option([], "--id", "-i", help="Incoming record content (repeatable)"),
    attrs: List[str] = typer.Option([], "--attr", "-a", help="Incoming record attribute KEY=VALUE"),
    ids_file: Optional[Path] = typer.Option(None, "--ids-file", help="File with one record content per line"),
) -> None:
    state = _get_state(ctx)
    records = build_records(ids, _parse_attributes(attrs), ids_file)
    try:
        summary = state.orchestrator.run_job(name, records)
    except FileNotFoundError as exc:
        console.print(str(exc), style="red")
        raise typer.Exit(code=1)
    console.print(_render_summary(name, summary))
    if summary.get("aborted"):
        console.print(
            f"{summary['aborted']} invocation(s) aborted: check the document id setting.",
            style="red",
        )
        raise typer.Exit(code=1)


@app.command("schedule", help="Start the scheduler for every job with a schedule.")
def schedule(
    ctx: typer.Context,
    duration: Optional[float] = typer.Option(None, "--duration", help="Stop after N seconds"),
) -> None:
    state = _get_state(ctx)
    jobs = state.repository.list_jobs()
    scheduled = state.orchestrator.register_schedules(jobs)
    if not scheduled:
        console.print("No job has a schedule.", style="yellow")
        raise typer.Exit(code=0)
    console.print(_render_scheduled_table(state.scheduler.scheduled_jobs()))
    console.print(f"Scheduled {scheduled} job(s). Press Ctrl+C to stop.", style="green")
    deadline = None if duration is None else time.monotonic() + duration
    try:
        while deadline is None or time.monotonic() < deadline:
            time.sleep(0.5 if deadline is None else max(0.0, min(0.5, deadline - time.monotonic())))
    except KeyboardInterrupt:
        console.print("Stopping scheduler.", style="dim")
    # AppState.close then drains runs that already fired.
    state.scheduler.shutdown()


@log_app.command("show", help="Show the tail of the main or a job log.")
def log_show(
    job: Optional[str] = typer.Option(None, "--job", help="Job name (default: main log)"),
    tail: int = typer.Option(100, "--tail", help="Number of lines"),
) -> None:
    path = main_log_path()
    if job:
        path = job_log_path(job)
    lines = tail_log(path, tail)
    if not lines:
        console.print(f"No log entries in {path}.", style="yellow")
        return
    for line in lines:
        console.print(line.rstrip("\n"), markup=False, highlight=False)


@log_app.command("list", help="List per-job log files.")
def log_list() -> None:
    paths = list(available_job_logs())
    if not paths:
        console.print("No job logs yet.", style="yellow")
        return
    table = Table(title="Job logs", box=box.SIMPLE_HEAD)
    table.add_column("Job", style="cyan")
    table.add_column("Path", overflow="fold")
    for path in paths:
        table.add_row(path.stem, str(path))
    console.print(table)


def cli() -> None:
    app()


__all__ = ["AppState", "app", "build_records", "build_state", "cli"]


if __name__ == "__main__":  # pragma: no cover
    cli()
