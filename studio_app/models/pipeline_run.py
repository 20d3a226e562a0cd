# studio_app/models/pipeline_run.py

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Enum
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel, db
from .enums import PipelineRunStatus


class PipelineRun(BaseModel):
    """Metadata describing a single migration, audit or enrichment execution."""

    __tablename__ = "pipeline_runs"

    id: Mapped[int] = mapped_column(primary_key=True)
    pipeline: Mapped[str] = mapped_column(db.String(50), nullable=False, index=True)
    status: Mapped[PipelineRunStatus] = mapped_column(
        Enum(PipelineRunStatus, name="pipeline_run_status_enum"),
        nullable=False,
        default=PipelineRunStatus.PENDING,
        index=True,
    )
    started_at: Mapped[datetime | None] = mapped_column(db.DateTime(timezone=True))
    finished_at: Mapped[datetime | None] = mapped_column(db.DateTime(timezone=True))
    params_json: Mapped[dict | None] = mapped_column(db.JSON, nullable=True)
    counts_json: Mapped[dict | None] = mapped_column(db.JSON, nullable=True)
    error_summary: Mapped[str | None] = mapped_column(db.Text, nullable=True)

    def __repr__(self):
        return f"<PipelineRun {self.pipeline} {self.status.value}>"
