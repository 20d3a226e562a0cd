# studio_app/models/studio.py

from __future__ import annotations

from sqlalchemy import Enum, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import BaseModel, db
from .enums import ServiceType, StudioStatus, StudioType
from .user import new_id


class Studio(BaseModel):
    """A listed studio. Each migrated studio owner has exactly one."""

    __tablename__ = "studios"

    id: Mapped[str] = mapped_column(db.String(64), primary_key=True, default=new_id)
    owner_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(db.String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(db.Text)
    studio_type: Mapped[StudioType] = mapped_column(
        Enum(StudioType, name="studio_type_enum"), nullable=False, default=StudioType.RECORDING
    )
    address: Mapped[str | None] = mapped_column(db.String(500))
    full_address: Mapped[str | None] = mapped_column(db.String(500))
    abbreviated_address: Mapped[str | None] = mapped_column(db.String(200))
    city: Mapped[str | None] = mapped_column(db.String(120))
    latitude: Mapped[float | None] = mapped_column(db.Float)
    longitude: Mapped[float | None] = mapped_column(db.Float)
    phone: Mapped[str | None] = mapped_column(db.String(50))
    website_url: Mapped[str | None] = mapped_column(db.String(500))
    status: Mapped[StudioStatus] = mapped_column(
        Enum(StudioStatus, name="studio_status_enum"), nullable=False, default=StudioStatus.ACTIVE, index=True
    )
    is_premium: Mapped[bool] = mapped_column(db.Boolean, nullable=False, default=False)
    is_verified: Mapped[bool] = mapped_column(db.Boolean, nullable=False, default=False)
    is_profile_visible: Mapped[bool] = mapped_column(db.Boolean, nullable=False, default=True)
    show_exact_location: Mapped[bool] = mapped_column(db.Boolean, nullable=False, default=True)

    owner = relationship("User", back_populates="studios")
    studio_types = relationship("StudioStudioType", back_populates="studio", cascade="all, delete-orphan")
    services = relationship("StudioService", back_populates="studio", cascade="all, delete-orphan")
    images = relationship(
        "StudioImage",
        back_populates="studio",
        cascade="all, delete-orphan",
        order_by="StudioImage.sort_order",
    )

    def __repr__(self):
        return f"<Studio {self.name}>"


class StudioStudioType(BaseModel):
    __tablename__ = "studio_studio_types"
    __table_args__ = (UniqueConstraint("studio_id", "studio_type", name="uq_studio_studio_type"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    studio_id: Mapped[str] = mapped_column(ForeignKey("studios.id"), nullable=False, index=True)
    studio_type: Mapped[StudioType] = mapped_column(Enum(StudioType, name="studio_type_enum"), nullable=False)

    studio = relationship("Studio", back_populates="studio_types")


class StudioService(BaseModel):
    """Set-like link between a studio and a connection service."""

    __tablename__ = "studio_services"
    __table_args__ = (UniqueConstraint("studio_id", "service", name="uq_studio_service"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    studio_id: Mapped[str] = mapped_column(ForeignKey("studios.id"), nullable=False, index=True)
    service: Mapped[ServiceType] = mapped_column(Enum(ServiceType, name="service_type_enum"), nullable=False)

    studio = relationship("Studio", back_populates="services")


class StudioImage(BaseModel):
    __tablename__ = "studio_images"

    id: Mapped[int] = mapped_column(primary_key=True)
    studio_id: Mapped[str] = mapped_column(ForeignKey("studios.id"), nullable=False, index=True)
    image_url: Mapped[str] = mapped_column(db.String(1000), nullable=False)
    alt_text: Mapped[str | None] = mapped_column(db.String(300))
    sort_order: Mapped[int] = mapped_column(db.Integer, nullable=False, default=0)

    studio = relationship("Studio", back_populates="images")
