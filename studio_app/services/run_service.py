"""
Bookkeeping for pipeline runs.

Each CLI invocation (migration, audit, enrichment) opens a ``PipelineRun``
row before work starts and closes it with counts or an error summary. The
helpers take the session explicitly so pipelines never reach for a global.
"""

from __future__ import annotations

from typing import Any, Mapping

from sqlalchemy.orm import Session

from studio_app.models import PipelineRun, PipelineRunStatus, utcnow


def start_run(
    session: Session,
    pipeline: str,
    *,
    params: Mapping[str, Any] | None = None,
) -> PipelineRun:
    run = PipelineRun(
        pipeline=pipeline,
        status=PipelineRunStatus.RUNNING,
        started_at=utcnow(),
        params_json=dict(params or {}),
    )
    session.add(run)
    session.commit()
    return run


def finish_run(
    session: Session,
    run_id: int,
    status: PipelineRunStatus,
    *,
    counts: Mapping[str, Any] | None = None,
    error_summary: str | None = None,
) -> PipelineRun | None:
    """Close a run. Re-fetches the row because the pipeline may have rolled back."""
    run = session.get(PipelineRun, run_id)
    if run is None:
        return None
    run.status = status
    run.finished_at = utcnow()
    if counts is not None:
        run.counts_json = dict(counts)
    if error_summary is not None:
        run.error_summary = error_summary
    session.commit()
    return run

