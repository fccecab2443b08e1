"""
Compliance notification reads and user transitions.

The engine only ever creates and escalates notifications. Moving a record to
acknowledged or resolved happens here, on behalf of a user.
"""
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from careops.db.enums import ACTIVE_NOTIFICATION_STATUSES, NotificationSeverity, NotificationStatus
from careops.db.models import ComplianceNotification


def list_pending(
    db: Session,
    org_id: UUID,
    rule_id: str | None = None,
    include_acknowledged: bool = True,
    limit: int = 50,
    offset: int = 0,
) -> list[ComplianceNotification]:
    """Active notifications for the pending-actions view, most severe first."""
    statuses = (
        ACTIVE_NOTIFICATION_STATUSES if include_acknowledged else (NotificationStatus.OPEN.value,)
    )
    query = db.query(ComplianceNotification).filter(
        ComplianceNotification.organisation_id == org_id,
        ComplianceNotification.status.in_(statuses),
    )
    if rule_id:
        query = query.filter(ComplianceNotification.rule_id == rule_id)

    return query.order_by(
        ComplianceNotification.severity_rank.desc(),
        ComplianceNotification.deadline.asc(),
        ComplianceNotification.created_at.asc(),
    ).offset(offset).limit(limit).all()


def count_open_by_severity(db: Session, org_id: UUID) -> dict[str, int]:
    """Count open notifications by severity (alert bell)."""
    rows = db.query(
        ComplianceNotification.severity, func.count(ComplianceNotification.id)
    ).filter(
        ComplianceNotification.organisation_id == org_id,
        ComplianceNotification.status == NotificationStatus.OPEN.value,
    ).group_by(ComplianceNotification.severity).all()

    summary = {severity.value: 0 for severity in NotificationSeverity}
    for severity, count in rows:
        summary[severity] = count
    return summary


def get_notification_for_org(
    db: Session, org_id: UUID, notification_id: UUID
) -> ComplianceNotification | None:
    """Get a single notification scoped to org."""
    return db.query(ComplianceNotification).filter(
        ComplianceNotification.id == notification_id,
        ComplianceNotification.organisation_id == org_id,
    ).first()


def acknowledge(
    db: Session,
    org_id: UUID,
    notification_id: UUID,
) -> ComplianceNotification | None:
    """Acknowledge a notification (stays active, still blocks duplicates)."""
    notification = get_notification_for_org(db, org_id, notification_id)
    if not notification:
        return None
    if notification.status == NotificationStatus.OPEN.value:
        notification.status = NotificationStatus.ACKNOWLEDGED.value
        notification.acknowledged_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(notification)
    return notification


def resolve(
    db: Session,
    org_id: UUID,
    notification_id: UUID,
) -> ComplianceNotification | None:
    """Resolve a notification. The next run may raise a fresh one if the issue persists."""
    notification = get_notification_for_org(db, org_id, notification_id)
    if not notification:
        return None
    if notification.status != NotificationStatus.RESOLVED.value:
        notification.status = NotificationStatus.RESOLVED.value
        notification.resolved_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(notification)
    return notification
