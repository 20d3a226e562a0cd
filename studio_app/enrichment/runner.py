"""Batch driver that enriches audit findings one record at a time."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from studio_app.audit.snapshot import StudioSnapshot
from studio_app.models import (
    AuditClassification,
    ProfileAuditFinding,
    ProfileEnrichmentSuggestion,
    Studio,
    SuggestionStatus,
    UserProfile,
)

from .engine import EnrichmentEngine

logger = logging.getLogger(__name__)

DEFAULT_CLASSIFICATIONS = (AuditClassification.NEEDS_UPDATE, AuditClassification.EXCEPTION)
DEFAULT_LIMIT = 100


@dataclass
class EnrichmentSummary:
    findings: int = 0
    suggestions: int = 0
    stored: int = 0
    errors: int = 0
    fetch_failures: int = 0
    dry_run: bool = False

    def as_dict(self) -> dict:
        return {
            "findings": self.findings,
            "suggestions": self.suggestions,
            "stored": self.stored,
            "errors": self.errors,
            "fetch_failures": self.fetch_failures,
            "dry_run": self.dry_run,
        }


class EnrichmentRunner:
    def __init__(
        self,
        session: Session,
        engine: Optional[EnrichmentEngine] = None,
        *,
        delay_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.session = session
        self.engine = engine or EnrichmentEngine()
        self.delay_seconds = delay_seconds
        self.sleep = sleep

    def select_findings(
        self,
        *,
        user_id: Optional[str] = None,
        classification: Optional[AuditClassification] = None,
        limit: int = DEFAULT_LIMIT,
    ) -> List[ProfileAuditFinding]:
        """Least complete findings first; a user id filter wins over a classification filter."""
        stmt = select(ProfileAuditFinding)
        if user_id:
            stmt = stmt.where(ProfileAuditFinding.user_id == user_id)
        elif classification is not None:
            stmt = stmt.where(ProfileAuditFinding.classification == classification)
        else:
            stmt = stmt.where(ProfileAuditFinding.classification.in_(DEFAULT_CLASSIFICATIONS))
        stmt = stmt.order_by(ProfileAuditFinding.completeness_score.asc(), ProfileAuditFinding.id).limit(limit)
        return list(self.session.execute(stmt).scalars().all())

    def _studio_snapshot(self, user_id: str) -> Optional[StudioSnapshot]:
        studio = self.session.execute(
            select(Studio)
            .where(Studio.owner_id == user_id)
            .options(selectinload(Studio.studio_types), selectinload(Studio.services), selectinload(Studio.images))
            .order_by(Studio.created_at, Studio.id)
            .limit(1)
        ).scalar_one_or_none()
        if studio is None:
            return None
        profile = self.session.execute(
            select(UserProfile).where(UserProfile.user_id == user_id)
        ).scalar_one_or_none()
        return StudioSnapshot.from_models(studio, profile)

    def run(
        self,
        *,
        user_id: Optional[str] = None,
        classification: Optional[AuditClassification] = None,
        dry_run: bool = False,
        limit: int = DEFAULT_LIMIT,
    ) -> EnrichmentSummary:
        findings = self.select_findings(user_id=user_id, classification=classification, limit=limit)
        summary = EnrichmentSummary(findings=len(findings), dry_run=dry_run)
        logger.info("Enriching %s audit findings", len(findings), extra={"dry_run": dry_run})

        for index, finding in enumerate(findings):
            if index and self.delay_seconds > 0:
                self.sleep(self.delay_seconds)
            finding_id, finding_user_id = finding.id, finding.user_id
            try:
                outcome = self.engine.enrich(self._studio_snapshot(finding_user_id))
                for note in outcome.observations:
                    logger.info(note, extra={"user_id": finding_user_id})
                summary.fetch_failures += outcome.fetch_failures
                summary.suggestions += len(outcome.suggestions)
                if dry_run or not outcome.suggestions:
                    continue
                for draft in outcome.suggestions:
                    self.session.add(
                        ProfileEnrichmentSuggestion(
                            audit_finding_id=finding_id,
                            user_id=finding_user_id,
                            field_name=draft.field_name,
                            current_value=draft.current_value,
                            suggested_value=draft.suggested_value,
                            confidence=draft.confidence,
                            evidence_url=draft.evidence_url,
                            evidence_type=draft.evidence_type,
                            status=SuggestionStatus.PENDING,
                        )
                    )
                self.session.commit()
                summary.stored += len(outcome.suggestions)
            except Exception:
                self.session.rollback()
                summary.errors += 1
                logger.exception("Enrichment failed for finding", extra={"finding_id": finding_id})

        logger.info("Enrichment complete", extra=summary.as_dict())
        return summary
