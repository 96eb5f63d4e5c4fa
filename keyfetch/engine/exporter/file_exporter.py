"""JSON lines exporter, one file per job run and channel."""

from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from pathlib import Path

from ..records import Record
from .base import BaseExporter


class FileExporter(BaseExporter):
    """Append records as JSON lines to ``<job>-<channel>-<run_tag>.jsonl``."""

    def __init__(self, output_dir: Path, job_name: str, channel: str, run_tag: str | None = None) -> None:
        self.output_dir = output_dir
        self.job_name = job_name
        self.channel = channel
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.run_tag = run_tag or datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        slug = re.sub(r"[^0-9A-Za-z_-]+", "_", job_name.strip()) or "job"
        self.path = self.output_dir / f"{slug}-{channel}-{self.run_tag}.jsonl"
        self._file = None

    def export(self, record: Record) -> None:
        if self._file is None:
            self._file = self.path.open("a", encoding="utf-8")
        json.dump(record.to_dict(), self._file, ensure_ascii=False)
        self._file.write("\n")

    def flush(self) -> None:
        if self._file is not None:
            self._file.flush()

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None


__all__ = ["FileExporter"]
