# studio_app/models/__init__.py
"""
Database models package
"""

from .activity import Message, Payment, PendingSubscription, Subscription, SupportTicket
from .audit import ProfileAuditFinding, ProfileEnrichmentSuggestion
from .base import BaseModel, as_utc, db, utcnow
from .enums import (
    AuditClassification,
    DeletionStatus,
    EnrichmentConfidence,
    PipelineRunStatus,
    ReviewStatus,
    ServiceType,
    StudioStatus,
    StudioType,
    SuggestionStatus,
    UserRole,
    UserStatus,
)
from .network import Review, UserConnection
from .pipeline_run import PipelineRun
from .studio import Studio, StudioImage, StudioService, StudioStudioType
from .user import User, UserProfile

__all__ = [
    "db",
    "BaseModel",
    "as_utc",
    "utcnow",
    "User",
    "UserProfile",
    "Studio",
    "StudioStudioType",
    "StudioService",
    "StudioImage",
    "UserConnection",
    "Review",
    "Subscription",
    "PendingSubscription",
    "Payment",
    "Message",
    "SupportTicket",
    "ProfileAuditFinding",
    "ProfileEnrichmentSuggestion",
    "PipelineRun",
    # Enums
    "AuditClassification",
    "DeletionStatus",
    "EnrichmentConfidence",
    "PipelineRunStatus",
    "ReviewStatus",
    "ServiceType",
    "StudioStatus",
    "StudioType",
    "SuggestionStatus",
    "UserRole",
    "UserStatus",
]
