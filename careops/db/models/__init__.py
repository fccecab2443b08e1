"""SQLAlchemy ORM models for tenants, care records and compliance notifications."""

from careops.db.models.organisations import Organisation
from careops.db.models.staff import (
    StaffMember,
    StaffPvgRecord,
    StaffRegistration,
    StaffTrainingRecord,
)
from careops.db.models.clients import PersonalPlan, ServiceUser, ServiceUserReview
from careops.db.models.compliance import (
    AnnualReturn,
    Complaint,
    Inspection,
    Policy,
    PolicyAcknowledgement,
    QualityAudit,
)
from careops.db.models.incidents import EquipmentCheck, Incident, SafeguardingConcern
from careops.db.models.medication import MedicationError
from careops.db.models.notifications import ComplianceNotification

__all__ = [
    "AnnualReturn",
    "Complaint",
    "ComplianceNotification",
    "EquipmentCheck",
    "Incident",
    "Inspection",
    "MedicationError",
    "Organisation",
    "PersonalPlan",
    "Policy",
    "PolicyAcknowledgement",
    "QualityAudit",
    "SafeguardingConcern",
    "ServiceUser",
    "ServiceUserReview",
    "StaffMember",
    "StaffPvgRecord",
    "StaffRegistration",
    "StaffTrainingRecord",
]
