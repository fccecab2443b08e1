"""SQLAlchemy ORM models."""

from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import (
    Boolean,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from careops.db.base import Base
from careops.db.enums import (
    AnnualReturnStatus,
    AuditStatus,
    ComplaintStatus,
    PolicyStatus,
)


class Complaint(Base):
    """
    A complaint received by the service.

    Must be responded to within 20 working days of date_received.
    """

    __tablename__ = "complaints"
    __table_args__ = (
        Index("ix_complaints_org_status", "organisation_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organisation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organisations.id", ondelete="CASCADE"), nullable=False
    )
    date_received: Mapped[date] = mapped_column(Date, nullable=False)
    complainant_name: Mapped[str] = mapped_column(String(255), nullable=False)
    nature_of_complaint: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), default=ComplaintStatus.OPEN.value, server_default=text("'open'")
    )
    resolved_date: Mapped[date | None] = mapped_column(Date, nullable=True)


class Policy(Base):
    __tablename__ = "policies"
    __table_args__ = (
        Index("ix_policies_org_status", "organisation_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organisation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organisations.id", ondelete="CASCADE"), nullable=False
    )
    policy_name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=PolicyStatus.DRAFT.value, server_default=text("'draft'")
    )
    next_review_date: Mapped[date | None] = mapped_column(Date, nullable=True)


class PolicyAcknowledgement(Base):
    """A staff member's confirmation that they have read a policy."""

    __tablename__ = "policy_acknowledgements"
    __table_args__ = (
        UniqueConstraint("policy_id", "staff_member_id", name="uq_policy_ack_policy_staff"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organisation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organisations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    policy_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("policies.id", ondelete="CASCADE"), nullable=False
    )
    staff_member_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("staff_members.id", ondelete="CASCADE"), nullable=False
    )
    acknowledged_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)


class QualityAudit(Base):
    __tablename__ = "quality_audits"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organisation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organisations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    audit_type: Mapped[str] = mapped_column(String(50), nullable=False)  # "MEDICATION", "CARE_PLAN"
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), default=AuditStatus.OPEN.value, server_default=text("'open'")
    )
    completed_date: Mapped[date | None] = mapped_column(Date, nullable=True)


class Inspection(Base):
    """Regulator (Care Inspectorate) inspection with its improvement action plan."""

    __tablename__ = "inspections"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organisation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organisations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    inspection_date: Mapped[date] = mapped_column(Date, nullable=False)
    action_plan_due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    action_plan_completed: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=text("false"), nullable=False
    )


class AnnualReturn(Base):
    __tablename__ = "annual_returns"
    __table_args__ = (
        UniqueConstraint("organisation_id", "year", name="uq_annual_returns_org_year"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organisation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organisations.id", ondelete="CASCADE"), nullable=False
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    deadline_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), default=AnnualReturnStatus.DRAFT.value, server_default=text("'draft'")
    )
    submitted_date: Mapped[date | None] = mapped_column(Date, nullable=True)
