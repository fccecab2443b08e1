"""Read-only tenant snapshots for compliance rule evaluation.

Rules never touch the session: everything they need is loaded here, scoped to
one organisation, into plain frozen dataclasses.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from careops.core.structured_logging import build_log_context
from careops.db.enums import (
    AnnualReturnStatus,
    AuditStatus,
    ComplaintStatus,
    IncidentStatus,
    PolicyStatus,
    SafeguardingStatus,
    ServiceUserStatus,
    StaffStatus,
)
from careops.db.models import (
    AnnualReturn,
    Complaint,
    EquipmentCheck,
    Incident,
    Inspection,
    MedicationError,
    Organisation,
    PersonalPlan,
    Policy,
    PolicyAcknowledgement,
    QualityAudit,
    SafeguardingConcern,
    ServiceUser,
    ServiceUserReview,
    StaffMember,
    StaffPvgRecord,
    StaffRegistration,
    StaffTrainingRecord,
)

logger = logging.getLogger(__name__)


class TenantRunError(Exception):
    """A tenant run could not proceed (organisation missing or state unreadable)."""

    def __init__(self, org_id: UUID | str, message: str):
        self.org_id = org_id
        super().__init__(message)


@dataclass(frozen=True)
class ComplaintSnapshot:
    id: UUID
    date_received: date
    status: str
    complainant_name: str


@dataclass(frozen=True)
class MedicationErrorSnapshot:
    id: UUID
    error_date: date
    error_type: str
    ncc_merp_category: str | None


@dataclass(frozen=True)
class IncidentSnapshot:
    id: UUID
    incident_date: date
    incident_type: str
    severity: str
    status: str


@dataclass(frozen=True)
class SafeguardingSnapshot:
    id: UUID
    date_raised: date
    concern_type: str
    status: str
    referral_made: bool


@dataclass(frozen=True)
class AuditSnapshot:
    id: UUID
    audit_type: str
    due_date: date | None
    status: str


@dataclass(frozen=True)
class InspectionSnapshot:
    id: UUID
    inspection_date: date
    action_plan_due_date: date | None
    action_plan_completed: bool


@dataclass(frozen=True)
class PolicySnapshot:
    id: UUID
    policy_name: str
    status: str
    next_review_date: date | None


@dataclass(frozen=True)
class AnnualReturnSnapshot:
    id: UUID
    year: int
    deadline_date: date | None
    status: str


@dataclass(frozen=True)
class StaffSnapshot:
    id: UUID
    full_name: str


@dataclass(frozen=True)
class ServiceUserSnapshot:
    id: UUID
    full_name: str
    last_review_date: date | None = None


@dataclass(frozen=True)
class PersonalPlanSnapshot:
    id: UUID
    service_user_id: UUID
    status: str
    next_review_date: date | None


@dataclass(frozen=True)
class StaffExpirySnapshot:
    """A dated staff credential: PVG membership, registration or training."""

    id: UUID
    staff_member_id: UUID
    label: str
    expiry_date: date | None


@dataclass(frozen=True)
class EquipmentSnapshot:
    id: UUID
    equipment_name: str
    next_check_date: date | None


@dataclass(frozen=True)
class TenantState:
    """Everything the rule catalogue reads for one organisation on one run date."""

    organisation_id: UUID
    organisation_name: str
    today: date
    complaints: tuple[ComplaintSnapshot, ...] = ()
    medication_errors: tuple[MedicationErrorSnapshot, ...] = ()
    incidents: tuple[IncidentSnapshot, ...] = ()
    safeguarding_concerns: tuple[SafeguardingSnapshot, ...] = ()
    quality_audits: tuple[AuditSnapshot, ...] = ()
    inspections: tuple[InspectionSnapshot, ...] = ()
    policies: tuple[PolicySnapshot, ...] = ()
    policy_acknowledgements: frozenset[tuple[UUID, UUID]] = field(default_factory=frozenset)
    annual_returns: tuple[AnnualReturnSnapshot, ...] = ()
    active_staff: tuple[StaffSnapshot, ...] = ()
    active_service_users: tuple[ServiceUserSnapshot, ...] = ()
    personal_plans: tuple[PersonalPlanSnapshot, ...] = ()
    pvg_records: tuple[StaffExpirySnapshot, ...] = ()
    registrations: tuple[StaffExpirySnapshot, ...] = ()
    mandatory_training: tuple[StaffExpirySnapshot, ...] = ()
    equipment_checks: tuple[EquipmentSnapshot, ...] = ()

    def staff_name(self, staff_member_id: UUID) -> str:
        for staff in self.active_staff:
            if staff.id == staff_member_id:
                return staff.full_name
        return "Staff member"


def get_organisation(db: Session, org_id: UUID) -> Organisation | None:
    return db.get(Organisation, org_id)


def list_active_organisations(db: Session) -> list[Organisation]:
    """Active tenants in a stable order (name, then id)."""
    return list(
        db.scalars(
            select(Organisation)
            .where(Organisation.is_active.is_(True))
            .order_by(Organisation.name, Organisation.id)
        ).all()
    )


def load_tenant_state(db: Session, org: Organisation, today: date) -> TenantState:
    """
    Load the compliance snapshot for one organisation.

    Raises:
        TenantRunError: The state could not be read.
    """
    try:
        return _load(db, org, today)
    except SQLAlchemyError as exc:
        logger.exception(
            "Failed to load tenant state",
            extra=build_log_context(org_id=org.id, run_date=today),
        )
        raise TenantRunError(org.id, f"Failed to load state: {exc.__class__.__name__}") from exc


def _load(db: Session, org: Organisation, today: date) -> TenantState:
    org_id = org.id

    complaints = db.scalars(
        select(Complaint).where(
            Complaint.organisation_id == org_id,
            Complaint.status != ComplaintStatus.RESOLVED.value,
        )
    ).all()

    medication_errors = db.scalars(
        select(MedicationError).where(
            MedicationError.organisation_id == org_id,
            MedicationError.ncc_merp_category.is_not(None),
        )
    ).all()

    incidents = db.scalars(
        select(Incident).where(
            Incident.organisation_id == org_id,
            Incident.status != IncidentStatus.CLOSED.value,
        )
    ).all()

    concerns = db.scalars(
        select(SafeguardingConcern).where(
            SafeguardingConcern.organisation_id == org_id,
            SafeguardingConcern.status == SafeguardingStatus.OPEN.value,
        )
    ).all()

    audits = db.scalars(
        select(QualityAudit).where(
            QualityAudit.organisation_id == org_id,
            QualityAudit.status != AuditStatus.CLOSED.value,
        )
    ).all()

    inspections = db.scalars(
        select(Inspection).where(
            Inspection.organisation_id == org_id,
            Inspection.action_plan_completed.is_(False),
        )
    ).all()

    policies = db.scalars(
        select(Policy).where(
            Policy.organisation_id == org_id,
            Policy.status == PolicyStatus.ACTIVE.value,
        )
    ).all()

    acknowledgements = db.execute(
        select(PolicyAcknowledgement.policy_id, PolicyAcknowledgement.staff_member_id).where(
            PolicyAcknowledgement.organisation_id == org_id
        )
    ).all()

    annual_returns = db.scalars(
        select(AnnualReturn).where(
            AnnualReturn.organisation_id == org_id,
            AnnualReturn.status != AnnualReturnStatus.SUBMITTED.value,
        )
    ).all()

    staff = db.scalars(
        select(StaffMember)
        .where(
            StaffMember.organisation_id == org_id,
            StaffMember.status == StaffStatus.ACTIVE.value,
        )
        .order_by(StaffMember.last_name, StaffMember.first_name, StaffMember.id)
    ).all()
    active_staff_ids = [s.id for s in staff]

    service_users = db.scalars(
        select(ServiceUser)
        .where(
            ServiceUser.organisation_id == org_id,
            ServiceUser.status == ServiceUserStatus.ACTIVE.value,
        )
        .order_by(ServiceUser.last_name, ServiceUser.first_name, ServiceUser.id)
    ).all()

    latest_reviews = dict(
        db.execute(
            select(ServiceUserReview.service_user_id, func.max(ServiceUserReview.review_date))
            .where(ServiceUserReview.organisation_id == org_id)
            .group_by(ServiceUserReview.service_user_id)
        ).all()
    )

    plans = db.scalars(
        select(PersonalPlan).where(PersonalPlan.organisation_id == org_id)
    ).all()

    pvg_records = db.scalars(
        select(StaffPvgRecord).where(
            StaffPvgRecord.organisation_id == org_id,
            StaffPvgRecord.staff_member_id.in_(active_staff_ids),
            StaffPvgRecord.renewal_date.is_not(None),
        )
    ).all()

    registrations = db.scalars(
        select(StaffRegistration).where(
            StaffRegistration.organisation_id == org_id,
            StaffRegistration.staff_member_id.in_(active_staff_ids),
            StaffRegistration.expiry_date.is_not(None),
        )
    ).all()

    training = db.scalars(
        select(StaffTrainingRecord).where(
            StaffTrainingRecord.organisation_id == org_id,
            StaffTrainingRecord.staff_member_id.in_(active_staff_ids),
            StaffTrainingRecord.is_mandatory.is_(True),
            StaffTrainingRecord.expiry_date.is_not(None),
        )
    ).all()

    equipment = db.scalars(
        select(EquipmentCheck).where(
            EquipmentCheck.organisation_id == org_id,
            EquipmentCheck.next_check_date.is_not(None),
        )
    ).all()

    return TenantState(
        organisation_id=org_id,
        organisation_name=org.name,
        today=today,
        complaints=tuple(
            ComplaintSnapshot(c.id, c.date_received, c.status, c.complainant_name)
            for c in complaints
        ),
        medication_errors=tuple(
            MedicationErrorSnapshot(m.id, m.error_date, m.error_type, m.ncc_merp_category)
            for m in medication_errors
        ),
        incidents=tuple(
            IncidentSnapshot(i.id, i.incident_date, i.incident_type, i.severity, i.status)
            for i in incidents
        ),
        safeguarding_concerns=tuple(
            SafeguardingSnapshot(s.id, s.date_raised, s.concern_type, s.status, s.referral_made)
            for s in concerns
        ),
        quality_audits=tuple(
            AuditSnapshot(a.id, a.audit_type, a.due_date, a.status) for a in audits
        ),
        inspections=tuple(
            InspectionSnapshot(
                i.id, i.inspection_date, i.action_plan_due_date, i.action_plan_completed
            )
            for i in inspections
        ),
        policies=tuple(
            PolicySnapshot(p.id, p.policy_name, p.status, p.next_review_date) for p in policies
        ),
        policy_acknowledgements=frozenset(
            (row.policy_id, row.staff_member_id) for row in acknowledgements
        ),
        annual_returns=tuple(
            AnnualReturnSnapshot(r.id, r.year, r.deadline_date, r.status) for r in annual_returns
        ),
        active_staff=tuple(StaffSnapshot(s.id, s.full_name) for s in staff),
        active_service_users=tuple(
            ServiceUserSnapshot(u.id, u.full_name, latest_reviews.get(u.id))
            for u in service_users
        ),
        personal_plans=tuple(
            PersonalPlanSnapshot(p.id, p.service_user_id, p.status, p.next_review_date)
            for p in plans
        ),
        pvg_records=tuple(
            StaffExpirySnapshot(r.id, r.staff_member_id, "PVG membership", r.renewal_date)
            for r in pvg_records
        ),
        registrations=tuple(
            StaffExpirySnapshot(
                r.id, r.staff_member_id, f"{r.registration_type} registration", r.expiry_date
            )
            for r in registrations
        ),
        mandatory_training=tuple(
            StaffExpirySnapshot(t.id, t.staff_member_id, t.training_type, t.expiry_date)
            for t in training
        ),
        equipment_checks=tuple(
            EquipmentSnapshot(e.id, e.equipment_name, e.next_check_date) for e in equipment
        ),
    )
