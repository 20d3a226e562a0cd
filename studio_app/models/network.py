# studio_app/models/network.py

from __future__ import annotations

from sqlalchemy import Enum, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import BaseModel, db
from .enums import ReviewStatus
from .user import new_id


class UserConnection(BaseModel):
    """One directed edge of a (bidirectional) member connection."""

    __tablename__ = "user_connections"
    __table_args__ = (UniqueConstraint("user_id", "connected_user_id", name="uq_user_connection"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    connected_user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    accepted: Mapped[bool] = mapped_column(db.Boolean, nullable=False, default=True)


class Review(BaseModel):
    __tablename__ = "reviews"

    id: Mapped[str] = mapped_column(db.String(64), primary_key=True, default=new_id)
    studio_id: Mapped[str] = mapped_column(ForeignKey("studios.id"), nullable=False, index=True)
    reviewer_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    owner_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    rating: Mapped[int] = mapped_column(db.Integer, nullable=False, default=5)
    content: Mapped[str | None] = mapped_column(db.Text)
    status: Mapped[ReviewStatus] = mapped_column(
        Enum(ReviewStatus, name="review_status_enum"), nullable=False, default=ReviewStatus.PENDING
    )

    studio = relationship("Studio")
    reviewer = relationship("User", foreign_keys=[reviewer_id])
