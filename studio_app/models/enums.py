# studio_app/models/enums.py

import enum


class UserRole(str, enum.Enum):
    USER = "USER"
    STUDIO_OWNER = "STUDIO_OWNER"
    ADMIN = "ADMIN"


class UserStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    SUSPENDED = "SUSPENDED"


class DeletionStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    PENDING_DELETION = "PENDING_DELETION"
    DELETED = "DELETED"


class StudioType(str, enum.Enum):
    HOME = "HOME"
    RECORDING = "RECORDING"
    PODCAST = "PODCAST"
    MOBILE = "MOBILE"
    PRODUCTION = "PRODUCTION"


class StudioStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class ServiceType(str, enum.Enum):
    """Remote-session connection services a studio can offer."""

    SOURCE_CONNECT = "SOURCE_CONNECT"
    CLEANFEED = "CLEANFEED"
    SESSION_LINK_PRO = "SESSION_LINK_PRO"
    ZOOM = "ZOOM"
    SKYPE = "SKYPE"
    TEAMS = "TEAMS"
    ISDN = "ISDN"


class ReviewStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class AuditClassification(str, enum.Enum):
    """Outcome labels of the profile audit."""

    HEALTHY = "HEALTHY"
    NEEDS_UPDATE = "NEEDS_UPDATE"
    NOT_ADVERTISING = "NOT_ADVERTISING"
    JUNK = "JUNK"
    EXCEPTION = "EXCEPTION"


class EnrichmentConfidence(str, enum.Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class SuggestionStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    APPLIED = "APPLIED"


class PipelineRunStatus(str, enum.Enum):
    """Lifecycle states for a pipeline run."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    PARTIALLY_FAILED = "partially_failed"
    FAILED = "failed"
