"""SQLAlchemy ORM models."""

from __future__ import annotations

import uuid
from datetime import date

from sqlalchemy import Boolean, Date, ForeignKey, Index, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from careops.db.base import Base
from careops.db.enums import IncidentSeverity, IncidentStatus, SafeguardingStatus


class Incident(Base):
    __tablename__ = "incidents"
    __table_args__ = (
        Index("ix_incidents_org_status", "organisation_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organisation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organisations.id", ondelete="CASCADE"), nullable=False
    )
    service_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("service_users.id", ondelete="SET NULL"), nullable=True
    )
    incident_date: Mapped[date] = mapped_column(Date, nullable=False)
    incident_type: Mapped[str] = mapped_column(String(50), nullable=False)  # "FALL", "ASSAULT"
    severity: Mapped[str] = mapped_column(
        String(20), default=IncidentSeverity.LOW.value, server_default=text("'low'")
    )
    status: Mapped[str] = mapped_column(
        String(30), default=IncidentStatus.OPEN.value, server_default=text("'open'")
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class SafeguardingConcern(Base):
    """Adult support and protection concern; referral expected within 24 hours."""

    __tablename__ = "safeguarding_concerns"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organisation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organisations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    date_raised: Mapped[date] = mapped_column(Date, nullable=False)
    concern_type: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=SafeguardingStatus.OPEN.value, server_default=text("'open'")
    )
    referral_made: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=text("false"), nullable=False
    )


class EquipmentCheck(Base):
    __tablename__ = "equipment_checks"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organisation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organisations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    equipment_name: Mapped[str] = mapped_column(String(255), nullable=False)
    serial_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    next_check_date: Mapped[date | None] = mapped_column(Date, nullable=True)
