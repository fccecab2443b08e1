"""SQLAlchemy ORM models."""

from __future__ import annotations

import uuid
from datetime import date

from sqlalchemy import Boolean, Date, ForeignKey, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from careops.db.base import Base


class MedicationError(Base):
    """
    A reported medication error.

    nccMerp category is optional at report time; E-I must be notified to the
    regulator and escalated to management.
    """

    __tablename__ = "medication_errors"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organisation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organisations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    service_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("service_users.id", ondelete="SET NULL"), nullable=True
    )
    error_date: Mapped[date] = mapped_column(Date, nullable=False)
    error_type: Mapped[str] = mapped_column(String(50), nullable=False)  # "WRONG_DOSE", "OMISSION"
    ncc_merp_category: Mapped[str | None] = mapped_column(String(1), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    care_inspectorate_notified: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=text("false"), nullable=False
    )
