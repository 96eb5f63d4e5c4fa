"""Infra layer utilities (SQLite storage, provenance)."""

from .provenance import (
    LoggingProvenanceReporter,
    ProvenanceReporter,
    SQLiteProvenanceReporter,
)
from .storage import SQLiteManager

__all__ = [
    "LoggingProvenanceReporter",
    "ProvenanceReporter",
    "SQLiteManager",
    "SQLiteProvenanceReporter",
]
