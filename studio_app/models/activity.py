# studio_app/models/activity.py

"""
Account activity tables.

The audit only needs to know whether any of these rows exist for a user, so
they stay deliberately small.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel, db
from .user import new_id


class Subscription(BaseModel):
    __tablename__ = "subscriptions"

    id: Mapped[str] = mapped_column(db.String(64), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    status: Mapped[str] = mapped_column(db.String(30), nullable=False, default="ACTIVE")
    payment_method: Mapped[str | None] = mapped_column(db.String(30))
    current_period_start: Mapped[datetime | None] = mapped_column(db.DateTime(timezone=True))
    current_period_end: Mapped[datetime | None] = mapped_column(db.DateTime(timezone=True))


class PendingSubscription(BaseModel):
    __tablename__ = "pending_subscriptions"

    id: Mapped[str] = mapped_column(db.String(64), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    status: Mapped[str] = mapped_column(db.String(30), nullable=False, default="PENDING")


class Payment(BaseModel):
    __tablename__ = "payments"

    id: Mapped[str] = mapped_column(db.String(64), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    status: Mapped[str] = mapped_column(db.String(30), nullable=False, default="SUCCEEDED")
    amount_cents: Mapped[int] = mapped_column(db.Integer, nullable=False, default=0)
    currency: Mapped[str] = mapped_column(db.String(3), nullable=False, default="GBP")


class Message(BaseModel):
    __tablename__ = "messages"

    id: Mapped[str] = mapped_column(db.String(64), primary_key=True, default=new_id)
    sender_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    recipient_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    subject: Mapped[str | None] = mapped_column(db.String(200))
    body: Mapped[str | None] = mapped_column(db.Text)


class SupportTicket(BaseModel):
    __tablename__ = "support_tickets"

    id: Mapped[str] = mapped_column(db.String(64), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    subject: Mapped[str] = mapped_column(db.String(200), nullable=False)
    status: Mapped[str] = mapped_column(db.String(30), nullable=False, default="OPEN")
