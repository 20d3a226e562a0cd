"""
Profile audit service.

Loads every user with their first studio, profile and activity counts,
classifies them with :func:`classify_account` and replaces the stored
findings in one transaction.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from config.audit_policy import DEFAULT_POLICY, AuditPolicy
from studio_app.models import (
    AuditClassification,
    Message,
    Payment,
    PendingSubscription,
    ProfileAuditFinding,
    Review,
    Studio,
    Subscription,
    SupportTicket,
    User,
    UserProfile,
)
from studio_app.utils.metrics import record_audit_finding

from .rules import AuditResult, classify_account
from .snapshot import AccountSnapshot, ActivityCounts, StudioSnapshot

logger = logging.getLogger(__name__)

# (column holding the user id, ActivityCounts field)
ACTIVITY_SOURCES = (
    (Subscription.user_id, "subscriptions"),
    (PendingSubscription.user_id, "pending_subscriptions"),
    (Payment.user_id, "payments"),
    (Message.sender_id, "messages"),
    (Review.reviewer_id, "reviews"),
    (SupportTicket.user_id, "support_tickets"),
)


@dataclass
class AuditSummary:
    """Outcome of a single audit run."""

    total: int = 0
    by_classification: Dict[str, int] = field(default_factory=dict)
    stored: int = 0
    dry_run: bool = False

    def as_dict(self) -> dict:
        return {
            "total": self.total,
            "by_classification": dict(self.by_classification),
            "stored": self.stored,
            "dry_run": self.dry_run,
        }


def summarize(results: Iterable) -> Dict[str, int]:
    """Count results per classification, always listing all five labels."""
    counts = Counter(item.classification.value for item in results)
    return {label.value: counts.get(label.value, 0) for label in AuditClassification}


class ProfileAuditService:
    def __init__(self, session: Session, *, now: Optional[datetime] = None, policy: AuditPolicy = DEFAULT_POLICY):
        self.session = session
        self.now = now or datetime.now(timezone.utc)
        self.policy = policy

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    def _activity_counts(self) -> Dict[str, Dict[str, int]]:
        per_user: Dict[str, Dict[str, int]] = {}
        for user_column, name in ACTIVITY_SOURCES:
            rows = self.session.execute(select(user_column, func.count()).group_by(user_column)).all()
            for user_id, count in rows:
                per_user.setdefault(user_id, {})[name] = count
        return per_user

    def _first_studio_by_owner(self) -> Dict[str, Studio]:
        studios = (
            self.session.execute(
                select(Studio)
                .options(
                    selectinload(Studio.studio_types),
                    selectinload(Studio.services),
                    selectinload(Studio.images),
                )
                .order_by(Studio.created_at, Studio.id)
            )
            .scalars()
            .all()
        )
        first: Dict[str, Studio] = {}
        for studio in studios:
            first.setdefault(studio.owner_id, studio)
        return first

    def collect(self) -> List[AuditResult]:
        users = self.session.execute(select(User).order_by(User.created_at, User.id)).scalars().all()
        profiles = {
            profile.user_id: profile for profile in self.session.execute(select(UserProfile)).scalars().all()
        }
        studios = self._first_studio_by_owner()
        activity = self._activity_counts()

        results = []
        for user in users:
            studio = studios.get(user.id)
            studio_snapshot = (
                StudioSnapshot.from_models(studio, profiles.get(user.id)) if studio is not None else None
            )
            results.append(
                classify_account(
                    AccountSnapshot.from_model(user),
                    studio_snapshot,
                    ActivityCounts(**activity.get(user.id, {})),
                    now=self.now,
                    policy=self.policy,
                )
            )
        return results

    # ------------------------------------------------------------------
    # Running
    # ------------------------------------------------------------------
    def run(self, *, dry_run: bool = False) -> tuple[List[AuditResult], AuditSummary]:
        """Classify every account and, unless ``dry_run``, replace stored findings."""
        results = self.collect()
        summary = AuditSummary(total=len(results), by_classification=summarize(results), dry_run=dry_run)
        logger.info(
            "Classified %s accounts",
            len(results),
            extra={"by_classification": summary.by_classification, "dry_run": dry_run},
        )
        for result in results:
            record_audit_finding(result.classification.value)

        if dry_run:
            return results, summary

        try:
            self.session.query(ProfileAuditFinding).delete()
            for result in results:
                self.session.add(
                    ProfileAuditFinding(
                        user_id=result.user_id,
                        studio_id=result.studio_id,
                        classification=result.classification,
                        reasons=list(result.reasons),
                        completeness_score=result.completeness_score,
                        recommended_action=result.recommended_action,
                        metadata_json=dict(result.metadata),
                    )
                )
            self.session.commit()
        except Exception:
            self.session.rollback()
            logger.exception("Failed to store audit findings")
            raise
        summary.stored = len(results)
        return results, summary

    def load_existing(self) -> List[ProfileAuditFinding]:
        return (
            self.session.execute(select(ProfileAuditFinding).order_by(ProfileAuditFinding.created_at.desc()))
            .scalars()
            .all()
        )
