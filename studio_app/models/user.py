# studio_app/models/user.py

from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from sqlalchemy import Enum, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import BaseModel, db
from .enums import DeletionStatus, UserRole, UserStatus


def new_id() -> str:
    return uuid4().hex


class User(BaseModel):
    """Directory account. Migrated accounts carry a namespaced legacy id."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(db.String(64), primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(db.String(255), unique=True, nullable=False, index=True)
    username: Mapped[str] = mapped_column(db.String(100), unique=True, nullable=False, index=True)
    display_name: Mapped[str | None] = mapped_column(db.String(200))
    password_hash: Mapped[str | None] = mapped_column(db.String(255))
    avatar_url: Mapped[str | None] = mapped_column(db.String(500))
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role_enum"), nullable=False, default=UserRole.USER
    )
    status: Mapped[UserStatus] = mapped_column(
        Enum(UserStatus, name="user_status_enum"), nullable=False, default=UserStatus.PENDING, index=True
    )
    email_verified: Mapped[bool] = mapped_column(db.Boolean, nullable=False, default=False)
    membership_tier: Mapped[str | None] = mapped_column(db.String(50))
    deletion_requested_at: Mapped[datetime | None] = mapped_column(db.DateTime(timezone=True))
    deletion_status: Mapped[DeletionStatus] = mapped_column(
        Enum(DeletionStatus, name="deletion_status_enum"), nullable=False, default=DeletionStatus.ACTIVE
    )

    profile = relationship("UserProfile", back_populates="user", uselist=False, cascade="all, delete-orphan")
    studios = relationship("Studio", back_populates="owner", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User {self.username}>"

    @staticmethod
    def find_by_username_ci(session, username: str) -> "User | None":
        """Case-insensitive username lookup."""
        return session.query(User).filter(func.lower(User.username) == username.lower()).first()

    @staticmethod
    def find_by_email_ci(session, email: str) -> "User | None":
        return session.query(User).filter(func.lower(User.email) == email.lower()).first()


class UserProfile(BaseModel):
    """Public-facing profile details for a studio owner."""

    __tablename__ = "user_profiles"

    id: Mapped[str] = mapped_column(db.String(64), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), unique=True, nullable=False)

    first_name: Mapped[str | None] = mapped_column(db.String(100))
    last_name: Mapped[str | None] = mapped_column(db.String(100))
    location: Mapped[str | None] = mapped_column(db.String(200))
    phone: Mapped[str | None] = mapped_column(db.String(50))
    about: Mapped[str | None] = mapped_column(db.Text)
    short_about: Mapped[str | None] = mapped_column(db.Text)
    equipment_list: Mapped[str | None] = mapped_column(db.Text)
    services_offered: Mapped[str | None] = mapped_column(db.Text)

    facebook_url: Mapped[str | None] = mapped_column(db.String(500))
    twitter_url: Mapped[str | None] = mapped_column(db.String(500))
    x_url: Mapped[str | None] = mapped_column(db.String(500))
    linkedin_url: Mapped[str | None] = mapped_column(db.String(500))
    instagram_url: Mapped[str | None] = mapped_column(db.String(500))
    tiktok_url: Mapped[str | None] = mapped_column(db.String(500))
    threads_url: Mapped[str | None] = mapped_column(db.String(500))
    youtube_url: Mapped[str | None] = mapped_column(db.String(500))
    vimeo_url: Mapped[str | None] = mapped_column(db.String(500))
    soundcloud_url: Mapped[str | None] = mapped_column(db.String(500))

    rate_tier_1: Mapped[str | None] = mapped_column(db.String(100))
    rate_tier_2: Mapped[str | None] = mapped_column(db.String(100))
    rate_tier_3: Mapped[str | None] = mapped_column(db.String(100))

    show_rates: Mapped[bool] = mapped_column(db.Boolean, nullable=False, default=False)
    show_email: Mapped[bool] = mapped_column(db.Boolean, nullable=False, default=False)
    show_phone: Mapped[bool] = mapped_column(db.Boolean, nullable=False, default=False)
    show_address: Mapped[bool] = mapped_column(db.Boolean, nullable=False, default=False)
    show_directions: Mapped[bool] = mapped_column(db.Boolean, nullable=False, default=True)
    use_coordinates_for_map: Mapped[bool] = mapped_column(db.Boolean, nullable=False, default=False)

    connection1: Mapped[str | None] = mapped_column(db.String(100))
    connection2: Mapped[str | None] = mapped_column(db.String(100))
    connection3: Mapped[str | None] = mapped_column(db.String(100))
    connection4: Mapped[str | None] = mapped_column(db.String(100))
    connection5: Mapped[str | None] = mapped_column(db.String(100))
    connection6: Mapped[str | None] = mapped_column(db.String(100))
    connection7: Mapped[str | None] = mapped_column(db.String(100))
    connection8: Mapped[str | None] = mapped_column(db.String(100))
    connection9: Mapped[str | None] = mapped_column(db.String(100))
    connection10: Mapped[str | None] = mapped_column(db.String(100))
    connection11: Mapped[str | None] = mapped_column(db.String(100))
    connection12: Mapped[str | None] = mapped_column(db.String(100))
    custom_connection_methods: Mapped[list | None] = mapped_column(db.JSON)

    is_featured: Mapped[bool] = mapped_column(db.Boolean, nullable=False, default=False)
    featured_until: Mapped[datetime | None] = mapped_column(db.DateTime(timezone=True))
    is_spotlight: Mapped[bool] = mapped_column(db.Boolean, nullable=False, default=False)
    is_crb_checked: Mapped[bool] = mapped_column(db.Boolean, nullable=False, default=False)

    user = relationship("User", back_populates="profile")

    CONNECTION_FIELDS = tuple(f"connection{index}" for index in range(1, 13))

    def __repr__(self):
        return f"<UserProfile {self.user_id}>"
