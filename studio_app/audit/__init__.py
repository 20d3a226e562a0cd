"""
Profile audit package.

The ``flask audit`` command group lives in :mod:`studio_app.audit.cli` and is
registered by :func:`studio_app.cli.init_pipelines`.
"""

from __future__ import annotations

from .rules import DEFAULT_RULES, AuditResult, AuditRule, classify_account, compute_completeness
from .service import AuditSummary, ProfileAuditService
from .snapshot import AccountSnapshot, ActivityCounts, StudioSnapshot

__all__ = [
    "AccountSnapshot",
    "ActivityCounts",
    "AuditResult",
    "AuditRule",
    "AuditSummary",
    "DEFAULT_RULES",
    "ProfileAuditService",
    "StudioSnapshot",
    "classify_account",
    "compute_completeness",
]
