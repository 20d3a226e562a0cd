"""
Legacy migration package.

Exposes the orchestrator and registers the ``flask legacy`` command group.
"""

from __future__ import annotations

from .legacy_reader import LegacyDatabase, LegacySourceError, SourceValidation
from .orchestrator import LegacyMigrationOrchestrator, MigrationAbortedError, MigrationReport, StageStats

__all__ = [
    "LegacyDatabase",
    "LegacySourceError",
    "SourceValidation",
    "LegacyMigrationOrchestrator",
    "MigrationAbortedError",
    "MigrationReport",
    "StageStats",
]
