"""Exporter Service Provider Interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..records import Record


class BaseExporter(ABC):
    """Uniform exporter contract for the records of one output channel."""

    @abstractmethod
    def export(self, record: Record) -> None:
        """Persist a single record."""

    @abstractmethod
    def flush(self) -> None:
        """Flush buffered data to destination."""

    @abstractmethod
    def close(self) -> None:
        """Release underlying resources."""


__all__ = ["BaseExporter"]
