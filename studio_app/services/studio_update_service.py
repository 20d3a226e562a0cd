"""
Admin studio update.

Applies one admin patch to a studio, its owner and the owner's profile in a
single transaction: the three field builders, geocoding reconciliation,
studio type replacement and membership expiry. Failures surface as
:class:`StudioUpdateError` with a machine-readable ``code``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from studio_app.models import (
    Studio,
    StudioStatus,
    StudioStudioType,
    StudioType,
    Subscription,
    User,
    UserProfile,
    as_utc,
)

from .field_mapping import build_profile_update, build_studio_update, build_user_update, parse_timestamp
from .geocoding import Geocoder, maybe_geocode_studio_address

logger = logging.getLogger(__name__)

NOT_FOUND = "NOT_FOUND"
EMAIL_IN_USE = "EMAIL_IN_USE"
USERNAME_TAKEN = "USERNAME_TAKEN"
INVALID_FIELD = "INVALID_FIELD"
SERVER_ERROR = "SERVER_ERROR"

ERROR_MESSAGES = {
    NOT_FOUND: "Studio not found.",
    EMAIL_IN_USE: "An account with this email already exists.",
    USERNAME_TAKEN: "This username is already taken.",
    SERVER_ERROR: "The studio could not be saved. Please try again.",
}


class StudioUpdateError(Exception):
    """Admin update failure carrying a code the caller can render."""

    def __init__(self, code: str, message: Optional[str] = None):
        super().__init__(message or ERROR_MESSAGES.get(code, code))
        self.code = code
        self.message = str(self)


def _conflict_code(exc: IntegrityError) -> str:
    detail = str(exc.orig).lower()
    if "email" in detail:
        return EMAIL_IN_USE
    if "username" in detail:
        return USERNAME_TAKEN
    return SERVER_ERROR


class StudioUpdateService:
    def __init__(self, session: Session, geocoder: Geocoder, *, now=None):
        self.session = session
        self.geocoder = geocoder
        self._now = now

    def now(self) -> datetime:
        return self._now or datetime.now(timezone.utc)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------
    def _check_account_conflicts(self, user: User, updates: Dict[str, Any]) -> None:
        email = updates.get("email")
        if email is not None:
            try:
                updates["email"] = validate_email(email, check_deliverability=False).normalized
            except EmailNotValidError as exc:
                raise StudioUpdateError(INVALID_FIELD, f"Invalid email format: {email}") from exc
            other = User.find_by_email_ci(self.session, updates["email"])
            if other is not None and other.id != user.id:
                raise StudioUpdateError(EMAIL_IN_USE)
        username = updates.get("username")
        if username:
            other = User.find_by_username_ci(self.session, username)
            if other is not None and other.id != user.id:
                raise StudioUpdateError(USERNAME_TAKEN)

    # ------------------------------------------------------------------
    # Sub-updates
    # ------------------------------------------------------------------
    def _replace_studio_types(self, studio: Studio, studio_types) -> None:
        studio.studio_types.clear()
        self.session.flush()
        seen = []
        for entry in studio_types or ():
            if isinstance(entry, Mapping):
                raw = entry.get("studio_type") or entry.get("studioType")
            else:
                raw = entry
            try:
                studio_type = StudioType(str(raw).upper())
            except ValueError as exc:
                raise StudioUpdateError(INVALID_FIELD, f"Unknown studio type: {raw}") from exc
            if studio_type in seen:
                continue
            seen.append(studio_type)
            studio.studio_types.append(StudioStudioType(studio_type=studio_type))
        if seen:
            studio.studio_type = seen[0]

    def _latest_subscription(self, user_id: str) -> Optional[Subscription]:
        return self.session.execute(
            select(Subscription)
            .where(Subscription.user_id == user_id)
            .order_by(Subscription.created_at.desc(), Subscription.id.desc())
            .limit(1)
        ).scalar_one_or_none()

    def _update_membership_expiry(self, studio: Studio, raw_value: Any, *, status_explicit: bool) -> None:
        """Move the latest subscription's period end; an empty value cancels membership."""
        current = self._latest_subscription(studio.owner_id)
        current_end = as_utc(current.current_period_end) if current is not None else None
        new_end = parse_timestamp(raw_value)
        if new_end == current_end:
            return

        now = self.now()
        if new_end is not None:
            if current is not None:
                current.current_period_end = new_end
                current.status = "ACTIVE"
            else:
                self.session.add(
                    Subscription(
                        user_id=studio.owner_id,
                        status="ACTIVE",
                        payment_method="STRIPE",
                        current_period_start=now,
                        current_period_end=new_end,
                    )
                )
            if not status_explicit:
                studio.status = StudioStatus.INACTIVE if new_end < now else StudioStatus.ACTIVE
        else:
            for subscription in self.session.execute(
                select(Subscription).where(Subscription.user_id == studio.owner_id)
            ).scalars():
                self.session.delete(subscription)
            if not status_explicit:
                studio.status = StudioStatus.INACTIVE

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------
    def update(self, studio_id: str, patch: Mapping[str, Any]) -> Studio:
        studio = self.session.get(Studio, studio_id)
        if studio is None:
            raise StudioUpdateError(NOT_FOUND)
        user = studio.owner
        meta = patch.get("meta") or {}

        try:
            user_updates = build_user_update(patch)
            studio_updates = build_studio_update(patch)
            profile_updates = build_profile_update(patch)
            self._check_account_conflicts(user, user_updates)

            geo = maybe_geocode_studio_address(
                studio.full_address, studio.latitude, studio.longitude, meta, self.geocoder
            )
            if "location" in geo:
                profile_updates["location"] = geo.pop("location")
            studio_updates.update(geo)

            if "status" in studio_updates:
                try:
                    studio_updates["status"] = StudioStatus(studio_updates["status"])
                except ValueError as exc:
                    raise StudioUpdateError(INVALID_FIELD, f"Unknown status: {patch['status']}") from exc

            for column, value in user_updates.items():
                setattr(user, column, value)
            for column, value in studio_updates.items():
                setattr(studio, column, value)
            if profile_updates:
                profile = user.profile
                if profile is None:
                    profile = UserProfile(user_id=user.id)
                    self.session.add(profile)
                    user.profile = profile
                for column, value in profile_updates.items():
                    setattr(profile, column, value)

            if "studio_types" in patch:
                self._replace_studio_types(studio, patch["studio_types"])
            if "membership_expires_at" in meta:
                self._update_membership_expiry(
                    studio, meta["membership_expires_at"], status_explicit="status" in studio_updates
                )

            self.session.commit()
        except StudioUpdateError:
            self.session.rollback()
            raise
        except ValueError as exc:
            self.session.rollback()
            raise StudioUpdateError(INVALID_FIELD, str(exc)) from exc
        except IntegrityError as exc:
            self.session.rollback()
            code = _conflict_code(exc)
            logger.warning("Studio update rejected by constraint", extra={"studio_id": studio_id, "code": code})
            raise StudioUpdateError(code) from exc
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("Studio update failed", extra={"studio_id": studio_id})
            raise StudioUpdateError(SERVER_ERROR) from exc

        logger.info(
            "Studio updated",
            extra={"studio_id": studio_id, "fields": sorted({*user_updates, *studio_updates, *profile_updates})},
        )
        return studio
