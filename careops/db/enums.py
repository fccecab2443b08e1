"""Enum definitions for application constants."""

from enum import Enum


class StaffStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    LEFT = "left"


class ServiceUserStatus(str, Enum):
    ACTIVE = "active"
    DISCHARGED = "discharged"
    DECEASED = "deceased"


class ComplaintStatus(str, Enum):
    """
    Complaint lifecycle.

    Only RESOLVED stops the 20 working day response clock.
    """
    OPEN = "open"
    INVESTIGATING = "investigating"
    ESCALATED = "escalated"
    RESOLVED = "resolved"


class NccMerpCategory(str, Enum):
    """
    NCC MERP medication error index, ordered by harm.

    A-B: no error reached the service user
    C-D: reached the service user, no harm / monitoring required
    E-I: reached and affected the service user (temporary harm through death)
    """
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    E = "E"
    F = "F"
    G = "G"
    H = "H"
    I = "I"  # noqa: E741

    @property
    def rank(self) -> int:
        return list(NccMerpCategory).index(self)


class IncidentSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class IncidentStatus(str, Enum):
    OPEN = "open"
    UNDER_INVESTIGATION = "under_investigation"
    CLOSED = "closed"


class SafeguardingStatus(str, Enum):
    OPEN = "open"
    REFERRED = "referred"
    CLOSED = "closed"


class AuditStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    CLOSED = "closed"


class PolicyStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    ARCHIVED = "archived"


class AnnualReturnStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"


class PersonalPlanStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    ARCHIVED = "archived"


class NotificationSeverity(str, Enum):
    """
    Severity of a compliance notification.

    Ordered: a candidate only escalates an existing open record
    when its rank is strictly higher.
    """
    INFO = "info"
    APPROACHING = "approaching"
    WARNING = "warning"
    HIGH = "high"
    BREACHED = "breached"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANKS[self]


_SEVERITY_RANKS = {
    NotificationSeverity.INFO: 0,
    NotificationSeverity.APPROACHING: 1,
    NotificationSeverity.WARNING: 1,
    NotificationSeverity.HIGH: 2,
    NotificationSeverity.BREACHED: 3,
    NotificationSeverity.CRITICAL: 3,
}


class NotificationStatus(str, Enum):
    """
    Compliance notification lifecycle.

    OPEN and ACKNOWLEDGED are "active" and block duplicates for the same
    dedupe key. Only user action moves a record out of OPEN.
    """
    OPEN = "open"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"


ACTIVE_NOTIFICATION_STATUSES = (
    NotificationStatus.OPEN.value,
    NotificationStatus.ACKNOWLEDGED.value,
)
