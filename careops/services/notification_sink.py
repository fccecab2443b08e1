"""
Idempotent compliance notification sink.

Turns rule candidates into at most one active notification per
(organisation, rule, dedupe key). Uniqueness is enforced by the partial
unique index uq_compliance_notifications_active, so concurrent runs for the
same tenant cannot create duplicates.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable

from sqlalchemy import update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from careops.core.structured_logging import build_log_context
from careops.db.enums import ACTIVE_NOTIFICATION_STATUSES, NotificationStatus
from careops.db.models import ComplianceNotification
from careops.db.models.notifications import ACTIVE_STATUS_PREDICATE
from careops.services.compliance_rules import NotificationCandidate

logger = logging.getLogger(__name__)

DEDUPE_COLUMNS = ["organisation_id", "rule_id", "dedupe_key"]


@dataclass
class SinkResult:
    created: list[NotificationCandidate] = field(default_factory=list)
    suppressed: list[NotificationCandidate] = field(default_factory=list)
    escalated: list[NotificationCandidate] = field(default_factory=list)


def _dialect_insert(db: Session):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert
    if dialect == "sqlite":
        return sqlite_insert
    raise RuntimeError(f"Unsupported database dialect for notification sink: {dialect}")


def _active_match(candidate: NotificationCandidate):
    return (
        ComplianceNotification.organisation_id == candidate.organisation_id,
        ComplianceNotification.rule_id == candidate.rule_id,
        ComplianceNotification.dedupe_key == candidate.dedupe_key,
        ComplianceNotification.status.in_(ACTIVE_NOTIFICATION_STATUSES),
    )


def _insert_if_absent(db: Session, candidate: NotificationCandidate, now: datetime) -> uuid.UUID | None:
    """Insert a new open notification unless an active one exists. Returns the new id."""
    insert = _dialect_insert(db)
    stmt = (
        insert(ComplianceNotification)
        .values(
            id=uuid.uuid4(),
            organisation_id=candidate.organisation_id,
            rule_id=candidate.rule_id,
            subject_type=candidate.subject_type,
            subject_id=candidate.subject_id,
            staff_member_id=candidate.staff_member_id,
            dedupe_key=candidate.dedupe_key,
            severity=candidate.severity.value,
            severity_rank=candidate.severity.rank,
            title=candidate.title[:255],
            message=candidate.message,
            link=candidate.link,
            is_overdue=candidate.is_overdue,
            deadline=candidate.deadline,
            status=NotificationStatus.OPEN.value,
            created_at=now,
            updated_at=now,
            last_seen_at=now,
        )
        .on_conflict_do_nothing(
            index_elements=DEDUPE_COLUMNS,
            index_where=ACTIVE_STATUS_PREDICATE,
        )
        .returning(ComplianceNotification.id)
    )
    return db.execute(stmt).scalar_one_or_none()


def _escalate_existing(db: Session, candidate: NotificationCandidate, now: datetime) -> bool:
    """
    Raise severity of the active record in place when the candidate outranks it.

    Status is left alone: an acknowledged record stays acknowledged.
    """
    stmt = (
        update(ComplianceNotification)
        .where(
            *_active_match(candidate),
            ComplianceNotification.severity_rank < candidate.severity.rank,
        )
        .values(
            severity=candidate.severity.value,
            severity_rank=candidate.severity.rank,
            title=candidate.title[:255],
            message=candidate.message,
            link=candidate.link,
            is_overdue=candidate.is_overdue,
            deadline=candidate.deadline,
            last_seen_at=now,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    return db.execute(stmt).rowcount > 0


def _touch_existing(db: Session, candidate: NotificationCandidate, now: datetime) -> None:
    stmt = (
        update(ComplianceNotification)
        .where(*_active_match(candidate))
        .values(last_seen_at=now)
        .execution_options(synchronize_session=False)
    )
    db.execute(stmt)


def commit(db: Session, candidates: Iterable[NotificationCandidate]) -> SinkResult:
    """
    Persist candidates idempotently.

    For each candidate: create when no active record exists for its dedupe
    key; otherwise suppress, escalating the existing record when the
    candidate's severity is strictly higher. Resolved records never block.

    Does not commit the transaction; the caller owns it.
    """
    result = SinkResult()
    now = datetime.now(timezone.utc)

    for candidate in candidates:
        if _insert_if_absent(db, candidate, now) is not None:
            result.created.append(candidate)
            continue

        result.suppressed.append(candidate)
        if _escalate_existing(db, candidate, now):
            result.escalated.append(candidate)
            logger.info(
                "Escalated compliance notification",
                extra={
                    **build_log_context(
                        org_id=candidate.organisation_id, rule_id=candidate.rule_id
                    ),
                    "severity": candidate.severity.value,
                },
            )
        else:
            _touch_existing(db, candidate, now)

    return result
