"""SQLAlchemy ORM models."""

from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import Date, ForeignKey, Index, String, Uuid, func, text
from sqlalchemy.orm import Mapped, mapped_column

from careops.db.base import Base
from careops.db.enums import PersonalPlanStatus, ServiceUserStatus


class ServiceUser(Base):
    """A person receiving care."""

    __tablename__ = "service_users"
    __table_args__ = (
        Index("ix_service_users_org_status", "organisation_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organisation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organisations.id", ondelete="CASCADE"), nullable=False
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=ServiceUserStatus.ACTIVE.value, server_default=text("'active'")
    )
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class PersonalPlan(Base):
    """
    Personal plan (care plan) for a service user.

    Regulation requires every active service user to have an active plan,
    reviewed at least every six months.
    """

    __tablename__ = "personal_plans"
    __table_args__ = (
        Index("ix_personal_plans_org_status", "organisation_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organisation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organisations.id", ondelete="CASCADE"), nullable=False
    )
    service_user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("service_users.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), default=PersonalPlanStatus.DRAFT.value, server_default=text("'draft'")
    )
    next_review_date: Mapped[date | None] = mapped_column(Date, nullable=True)


class ServiceUserReview(Base):
    __tablename__ = "service_user_reviews"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organisation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organisations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    service_user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("service_users.id", ondelete="CASCADE"), nullable=False
    )
    review_date: Mapped[date] = mapped_column(Date, nullable=False)
