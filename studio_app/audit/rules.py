"""
Profile audit classification engine.

Each rule is a small object with an ``evaluate(context, current)`` method that
returns an optional ``RuleOutcome``. ``classify_account`` folds the outcomes of
``DEFAULT_RULES`` left to right:

* a non-null classification replaces the current one (later rules win),
* every reason is appended, so reasons stack even when the label does not
  change,
* the recommended action is last-setter-wins,
* metadata dictionaries are merged.

Precedence is encoded in the rules themselves. JUNK and NOT_ADVERTISING only
fire from HEALTHY; the NEEDS_UPDATE checks only run while the account is still
HEALTHY or already NEEDS_UPDATE; the EXCEPTION checks run last and escalate
anything except JUNK, which stays terminal.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Sequence

from config.audit_policy import DEFAULT_POLICY, AuditPolicy
from studio_app.models import AuditClassification, DeletionStatus, StudioStatus, UserStatus

from .snapshot import URL_FIELDS, AccountSnapshot, ActivityCounts, StudioSnapshot

SECONDS_PER_DAY = 86400
DAYS_PER_YEAR = 365

HEALTHY = AuditClassification.HEALTHY
JUNK = AuditClassification.JUNK
NOT_ADVERTISING = AuditClassification.NOT_ADVERTISING
NEEDS_UPDATE = AuditClassification.NEEDS_UPDATE
EXCEPTION = AuditClassification.EXCEPTION


@dataclass(frozen=True)
class AuditContext:
    """Everything a rule may look at. Never mutated."""

    account: AccountSnapshot
    studio: StudioSnapshot | None
    activity: ActivityCounts
    now: datetime
    policy: AuditPolicy = DEFAULT_POLICY

    @property
    def account_age_days(self) -> int:
        return _whole_days(self.now - self.account.created_at)

    @property
    def days_since_update(self) -> int | None:
        if self.studio is None:
            return None
        return _whole_days(self.now - self.studio.updated_at)


def _whole_days(delta) -> int:
    return math.floor(delta.total_seconds() / SECONDS_PER_DAY)


@dataclass(frozen=True)
class RuleOutcome:
    classification: AuditClassification | None = None
    reason: str | None = None
    action: str | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AuditRule:
    """Declarative rule definition used by the audit classifier."""

    code: str
    description: str

    def evaluate(self, context: AuditContext, current: AuditClassification) -> RuleOutcome | None:
        """Return the rule's effect, or ``None`` when it does not apply."""
        raise NotImplementedError


@dataclass(frozen=True)
class AuditResult:
    user_id: str
    studio_id: str | None
    classification: AuditClassification
    reasons: tuple[str, ...]
    completeness_score: int
    recommended_action: str | None
    metadata: Mapping[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "studio_id": self.studio_id,
            "classification": self.classification.value,
            "reasons": list(self.reasons),
            "completeness_score": self.completeness_score,
            "recommended_action": self.recommended_action,
            "metadata": dict(self.metadata),
        }


# ---------------------------------------------------------------------------
# JUNK
# ---------------------------------------------------------------------------


class AbandonedAccountRule(AuditRule):
    """Studio-less pending/expired accounts with no activity, by age."""

    def __init__(self) -> None:
        super().__init__(
            code="JUNK_ABANDONED",
            description="Pending or expired account without studio or activity past the age thresholds.",
        )

    def evaluate(self, context, current):
        account = context.account
        if context.studio is not None or context.activity.has_activity:
            return None
        if account.status not in (UserStatus.PENDING, UserStatus.EXPIRED):
            return None
        age = context.account_age_days
        policy = context.policy
        if age > policy.junk_strong_age_days:
            return RuleOutcome(
                classification=JUNK,
                reason=(
                    "No studio profile, account status is PENDING/EXPIRED, "
                    f"no activity for {policy.junk_strong_age_days}+ days"
                ),
                action="Consider deletion after manual review",
            )
        if age > policy.junk_weak_age_days:
            return RuleOutcome(
                classification=JUNK,
                reason=(
                    "No studio profile, account status is PENDING/EXPIRED, "
                    f"no activity for {policy.junk_weak_age_days}+ days"
                ),
                action="Flag for review",
            )
        return None


class TestAccountRule(AuditRule):
    """Names or emails carrying literal "test" markers."""

    __test__ = False  # keep pytest from collecting this class

    def __init__(self) -> None:
        super().__init__(code="JUNK_TEST_ACCOUNT", description="Name or email looks like a test account.")

    def evaluate(self, context, current):
        account = context.account
        email = account.email or ""
        looks_like_test = (
            "test" in (account.display_name or "").lower()
            or "test" in (account.username or "").lower()
            or "test@" in email
            or "@test." in email
        )
        if not looks_like_test:
            return None
        reason = 'Potential test account (name/email contains "test")'
        if current is HEALTHY:
            return RuleOutcome(classification=JUNK, reason=reason, action="Manual review - possible test account")
        return RuleOutcome(reason=reason)


class SuspiciousNameRule(AuditRule):
    """Flags implausibly short names without changing the classification."""

    def __init__(self) -> None:
        super().__init__(code="SUSPICIOUS_NAME", description="Username or display name is implausibly short.")

    def evaluate(self, context, current):
        account = context.account
        policy = context.policy
        short_username = account.username is not None and len(account.username) < policy.min_username_length
        short_display = (
            account.display_name is not None and len(account.display_name) < policy.min_display_name_length
        )
        if not (short_username or short_display):
            return None
        return RuleOutcome(
            reason="Unusually short username or display name",
            metadata={"suspicious_name": True},
        )


# ---------------------------------------------------------------------------
# NOT_ADVERTISING
# ---------------------------------------------------------------------------


class NoStudioRule(AuditRule):
    def __init__(self) -> None:
        super().__init__(
            code="NOT_ADVERTISING_NO_STUDIO",
            description="Active account without a studio profile or subscription.",
        )

    def evaluate(self, context, current):
        if current is not HEALTHY or context.studio is not None:
            return None
        if context.account.status is not UserStatus.ACTIVE or context.activity.has_subscription:
            return None
        return RuleOutcome(
            classification=NOT_ADVERTISING,
            reason="Active user account with no studio profile and no subscription",
            action="Potential client/browser - no action needed",
        )


class HiddenStudioRule(AuditRule):
    def __init__(self) -> None:
        super().__init__(
            code="NOT_ADVERTISING_HIDDEN_STUDIO",
            description="Draft or inactive studio that is hidden and unpaid.",
        )

    def evaluate(self, context, current):
        studio = context.studio
        if current is not HEALTHY or studio is None:
            return None
        if studio.status not in (StudioStatus.DRAFT, StudioStatus.INACTIVE):
            return None
        if studio.is_profile_visible or context.activity.has_subscription:
            return None
        return RuleOutcome(
            classification=NOT_ADVERTISING,
            reason=f"Studio profile exists but status is {studio.status.value} and not visible",
            action="Profile exists but not actively advertising",
        )


# ---------------------------------------------------------------------------
# NEEDS_UPDATE
# ---------------------------------------------------------------------------


def _needs_update_applies(context: AuditContext, current: AuditClassification) -> bool:
    return context.studio is not None and current in (HEALTHY, NEEDS_UPDATE)


def missing_listing_fields(studio: StudioSnapshot) -> list[str]:
    missing: list[str] = []
    if not studio.city:
        missing.append("city")
    if not studio.has_coordinates:
        missing.append("coordinates")
    if not studio.about and not studio.short_about:
        missing.append("about/description")
    if not studio.phone:
        missing.append("phone")
    if not studio.website_url:
        missing.append("website")
    if not studio.has_any_social:
        missing.append("social_links")
    if not studio.studio_types:
        missing.append("studio_types")
    if not studio.services:
        missing.append("services")
    return missing


class MissingFieldsRule(AuditRule):
    def __init__(self) -> None:
        super().__init__(code="NEEDS_UPDATE_MISSING_FIELDS", description="Key listing fields are empty.")

    def evaluate(self, context, current):
        if not _needs_update_applies(context, current):
            return None
        missing = missing_listing_fields(context.studio)
        if not missing:
            return None
        return RuleOutcome(
            classification=NEEDS_UPDATE,
            reason=f"Missing key fields: {', '.join(missing)}",
            action="Enrich profile with missing data",
            metadata={"missing_fields": missing},
        )


class StaleProfileRule(AuditRule):
    def __init__(self) -> None:
        super().__init__(code="NEEDS_UPDATE_STALE", description="Listing has not been touched in over a year.")

    def evaluate(self, context, current):
        if not _needs_update_applies(context, current):
            return None
        days = context.days_since_update
        if days is None or days <= context.policy.stale_profile_days:
            return None
        return RuleOutcome(
            classification=NEEDS_UPDATE,
            reason=f"Profile not updated in {days // DAYS_PER_YEAR} year(s)",
            action="Verify and update stale information",
            metadata={"days_since_update": days},
        )


def url_issues(studio: StudioSnapshot) -> list[str]:
    issues: list[str] = []
    for name in URL_FIELDS:
        value = getattr(studio, name)
        if value and not value.startswith(("http://", "https://")):
            issues.append(f"{name}: missing scheme")
    if studio.twitter_url and "twitter.com" in studio.twitter_url:
        issues.append("twitter_url should be migrated to x_url")
    return issues


class UrlIssuesRule(AuditRule):
    def __init__(self) -> None:
        super().__init__(
            code="NEEDS_UPDATE_URLS",
            description="Social or website URLs lack a scheme or use a deprecated domain.",
        )

    def evaluate(self, context, current):
        if not _needs_update_applies(context, current):
            return None
        issues = url_issues(context.studio)
        if not issues:
            return None
        return RuleOutcome(
            classification=NEEDS_UPDATE,
            reason=f"URL issues: {', '.join(issues)}",
            metadata={"url_issues": issues},
        )


# ---------------------------------------------------------------------------
# EXCEPTION
# ---------------------------------------------------------------------------


def _exception_unless_junk(current: AuditClassification) -> AuditClassification | None:
    return None if current is JUNK else EXCEPTION


def _exception_from_listing_states(current: AuditClassification) -> AuditClassification | None:
    return EXCEPTION if current in (HEALTHY, NEEDS_UPDATE) else None


class PaymentWithoutStudioRule(AuditRule):
    def __init__(self) -> None:
        super().__init__(
            code="EXCEPTION_PAYMENT_NO_STUDIO",
            description="Payment or subscription records exist without a studio profile.",
        )

    def evaluate(self, context, current):
        activity = context.activity
        if context.studio is not None:
            return None
        if not (activity.has_subscription or activity.has_payment_activity):
            return None
        return RuleOutcome(
            classification=_exception_unless_junk(current),
            reason="Has payment/subscription records but no studio profile",
            action="Manual review - payment without studio",
            metadata={
                "has_subscription": activity.has_subscription,
                "has_payment_activity": activity.has_payment_activity,
            },
        )


class StuckDeletionRule(AuditRule):
    def __init__(self) -> None:
        super().__init__(
            code="EXCEPTION_STUCK_DELETION",
            description="Deletion was requested but the account is still active.",
        )

    def evaluate(self, context, current):
        account = context.account
        if account.deletion_requested_at is None or account.deletion_status is not DeletionStatus.ACTIVE:
            return None
        return RuleOutcome(
            classification=_exception_unless_junk(current),
            reason="Deletion requested but account still active",
            action="Complete or cancel deletion request",
            metadata={"deletion_requested_at": account.deletion_requested_at.isoformat()},
        )


class CoordinatesWithoutCityRule(AuditRule):
    def __init__(self) -> None:
        super().__init__(code="EXCEPTION_COORDS_NO_CITY", description="Coordinates are set but the city is empty.")

    def evaluate(self, context, current):
        studio = context.studio
        if studio is None or not studio.has_coordinates or studio.city:
            return None
        return RuleOutcome(
            classification=_exception_from_listing_states(current),
            reason="Has coordinates but missing city",
            action="Reverse geocode coordinates to fill city",
            metadata={"geodata_issue": "coords_no_city"},
        )


class AddressWithoutCoordinatesRule(AuditRule):
    def __init__(self) -> None:
        super().__init__(
            code="EXCEPTION_ADDRESS_NO_COORDS",
            description="City and address are set but coordinates are missing.",
        )

    def evaluate(self, context, current):
        studio = context.studio
        if studio is None or studio.has_coordinates or not studio.city:
            return None
        if not (studio.full_address or studio.abbreviated_address):
            return None
        return RuleOutcome(
            classification=_exception_from_listing_states(current),
            reason="Has city/address but missing coordinates",
            action="Geocode address to get coordinates",
            metadata={"geodata_issue": "address_no_coords"},
        )


DEFAULT_RULES: tuple[AuditRule, ...] = (
    AbandonedAccountRule(),
    TestAccountRule(),
    SuspiciousNameRule(),
    NoStudioRule(),
    HiddenStudioRule(),
    MissingFieldsRule(),
    StaleProfileRule(),
    UrlIssuesRule(),
    PaymentWithoutStudioRule(),
    StuckDeletionRule(),
    CoordinatesWithoutCityRule(),
    AddressWithoutCoordinatesRule(),
)


# ---------------------------------------------------------------------------
# Completeness
# ---------------------------------------------------------------------------

ACCOUNT_WEIGHTS: Mapping[str, int] = {
    "email": 10,
    "username": 10,
    "display_name": 10,
    "avatar": 10,
    "email_verified": 10,
}

STUDIO_WEIGHTS: Mapping[str, int] = {
    # Essential
    "name": 10,
    "city": 10,
    "coordinates": 10,
    "about": 10,
    "studio_types": 10,
    "services": 10,
    # Important
    "phone": 5,
    "website": 5,
    "images": 5,
    "equipment": 5,
    "social_links": 5,
    # Nice to have
    "rates": 5,
    "connections": 5,
    "owner_avatar": 5,
}
MAX_SCORE = 100


def compute_completeness(account: AccountSnapshot, studio: StudioSnapshot | None) -> int:
    """Score out of 50 for studio-less accounts, out of 100 otherwise."""
    if studio is None:
        satisfied = {
            "email": bool(account.email),
            "username": bool(account.username),
            "display_name": bool(account.display_name),
            "avatar": bool(account.avatar_url),
            "email_verified": account.email_verified,
        }
        return sum(ACCOUNT_WEIGHTS[key] for key, present in satisfied.items() if present)

    satisfied = {
        "name": bool(studio.name),
        "city": bool(studio.city),
        "coordinates": studio.has_coordinates,
        "about": bool(studio.about or studio.short_about),
        "studio_types": bool(studio.studio_types),
        "services": bool(studio.services),
        "phone": bool(studio.phone),
        "website": bool(studio.website_url),
        "images": studio.image_count > 0,
        "equipment": bool(studio.equipment_list),
        "social_links": studio.has_any_social,
        "rates": bool(studio.rate_tiers),
        "connections": bool(studio.connections),
        "owner_avatar": bool(account.avatar_url),
    }
    score = sum(STUDIO_WEIGHTS[key] for key, present in satisfied.items() if present)
    return min(MAX_SCORE, score)


# ---------------------------------------------------------------------------
# Classifier
# ---------------------------------------------------------------------------


def classify_account(
    account: AccountSnapshot,
    studio: StudioSnapshot | None,
    activity: ActivityCounts,
    *,
    now: datetime | None = None,
    policy: AuditPolicy = DEFAULT_POLICY,
    rules: Sequence[AuditRule] = DEFAULT_RULES,
) -> AuditResult:
    context = AuditContext(
        account=account,
        studio=studio,
        activity=activity,
        now=now or datetime.now(timezone.utc),
        policy=policy,
    )
    classification = HEALTHY
    reasons: list[str] = []
    action: str | None = None
    metadata: dict[str, Any] = {
        "account_age_days": context.account_age_days,
        "has_activity": activity.has_activity,
        "has_studio_profile": studio is not None,
    }

    for rule in rules:
        outcome = rule.evaluate(context, classification)
        if outcome is None:
            continue
        if outcome.classification is not None:
            classification = outcome.classification
        if outcome.reason:
            reasons.append(outcome.reason)
        if outcome.action is not None:
            action = outcome.action
        metadata.update(outcome.metadata)

    return AuditResult(
        user_id=account.id,
        studio_id=studio.id if studio is not None else None,
        classification=classification,
        reasons=tuple(reasons),
        completeness_score=compute_completeness(account, studio),
        recommended_action=action,
        metadata=metadata,
    )
