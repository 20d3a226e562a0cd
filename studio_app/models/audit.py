# studio_app/models/audit.py

"""
Derived audit tables.

``ProfileAuditFinding`` rows are replaced wholesale on every audit run.
``ProfileEnrichmentSuggestion`` rows are append-only and outlive the finding
they came from, so the finding reference is nullable and cleared on delete.
"""

from __future__ import annotations

from sqlalchemy import Enum, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import BaseModel, db
from .enums import AuditClassification, EnrichmentConfidence, SuggestionStatus
from .user import new_id


class ProfileAuditFinding(BaseModel):
    __tablename__ = "profile_audit_findings"

    id: Mapped[str] = mapped_column(db.String(64), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    studio_id: Mapped[str | None] = mapped_column(db.String(64), nullable=True, index=True)
    classification: Mapped[AuditClassification] = mapped_column(
        Enum(AuditClassification, name="audit_classification_enum"), nullable=False, index=True
    )
    reasons: Mapped[list] = mapped_column(db.JSON, nullable=False, default=list)
    completeness_score: Mapped[int] = mapped_column(db.Integer, nullable=False, default=0)
    recommended_action: Mapped[str | None] = mapped_column(db.String(255))
    metadata_json: Mapped[dict | None] = mapped_column("metadata", db.JSON, nullable=True)

    user = relationship("User")

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "studio_id": self.studio_id,
            "classification": self.classification.value,
            "reasons": list(self.reasons or ()),
            "completeness_score": self.completeness_score,
            "recommended_action": self.recommended_action,
            "metadata": dict(self.metadata_json or {}),
        }


class ProfileEnrichmentSuggestion(BaseModel):
    __tablename__ = "profile_enrichment_suggestions"

    id: Mapped[str] = mapped_column(db.String(64), primary_key=True, default=new_id)
    audit_finding_id: Mapped[str | None] = mapped_column(
        ForeignKey("profile_audit_findings.id", ondelete="SET NULL"), nullable=True, index=True
    )
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    field_name: Mapped[str] = mapped_column(db.String(100), nullable=False)
    current_value: Mapped[str | None] = mapped_column(db.Text)
    suggested_value: Mapped[str] = mapped_column(db.Text, nullable=False)
    confidence: Mapped[EnrichmentConfidence] = mapped_column(
        Enum(EnrichmentConfidence, name="enrichment_confidence_enum"), nullable=False
    )
    evidence_url: Mapped[str | None] = mapped_column(db.String(1000))
    evidence_type: Mapped[str | None] = mapped_column(db.String(50))
    status: Mapped[SuggestionStatus] = mapped_column(
        Enum(SuggestionStatus, name="suggestion_status_enum"),
        nullable=False,
        default=SuggestionStatus.PENDING,
        index=True,
    )
