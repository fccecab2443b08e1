"""
Per-tenant compliance run.

Loads one organisation's snapshot, evaluates every rule in the catalogue and
feeds the candidates through the notification sink. A failing rule is
recorded in the summary and the remaining rules still run.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Sequence
from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy.orm import Session

from careops.core.config import settings
from careops.core.structured_logging import build_log_context
from careops.db.models import Organisation
from careops.services import compliance_state_service, notification_sink
from careops.services.compliance_rules import RULE_CATALOGUE, ComplianceRule, RuleSettings
from careops.services.compliance_state_service import TenantRunError

logger = logging.getLogger(__name__)


class RuleEvaluationError(Exception):
    """A single rule failed for a single tenant."""

    def __init__(self, rule_id: str, org_id: UUID, cause: BaseException):
        self.rule_id = rule_id
        self.org_id = org_id
        self.cause = cause
        super().__init__(f"{rule_id}: {cause.__class__.__name__}: {cause}")


@dataclass
class RuleResult:
    rule_id: str
    candidates: int = 0
    created: int = 0
    suppressed: int = 0
    escalated: int = 0
    error: str | None = None


@dataclass
class RunSummary:
    organisation_id: UUID
    organisation_name: str
    run_date: date
    rules: list[RuleResult] = field(default_factory=list)
    by_severity: Counter = field(default_factory=Counter)
    errors: list[RuleEvaluationError] = field(default_factory=list)

    @property
    def candidates(self) -> int:
        return sum(r.candidates for r in self.rules)

    @property
    def created(self) -> int:
        return sum(r.created for r in self.rules)

    @property
    def suppressed(self) -> int:
        return sum(r.suppressed for r in self.rules)

    @property
    def escalated(self) -> int:
        return sum(r.escalated for r in self.rules)

    def rule(self, rule_id: str) -> RuleResult:
        for result in self.rules:
            if result.rule_id == rule_id:
                return result
        raise KeyError(rule_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "org_id": str(self.organisation_id),
            "org_name": self.organisation_name,
            "run_date": self.run_date.isoformat(),
            "candidates": self.candidates,
            "created": self.created,
            "suppressed": self.suppressed,
            "escalated": self.escalated,
            "by_severity": dict(self.by_severity),
            "rules": [
                {
                    "rule_id": r.rule_id,
                    "candidates": r.candidates,
                    "created": r.created,
                    "suppressed": r.suppressed,
                    "escalated": r.escalated,
                    "error": r.error,
                }
                for r in self.rules
            ],
            "errors": [{"rule_id": e.rule_id, "error": str(e.cause)} for e in self.errors],
        }


def resolve_org_today(org: Organisation, now: datetime | None = None) -> date:
    """Current date in the organisation's timezone (DEFAULT_TIMEZONE fallback)."""
    now = now or datetime.now(timezone.utc)
    tz_name = org.timezone or settings.DEFAULT_TIMEZONE
    try:
        tz = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(
            "Unknown organisation timezone %r, using %s",
            tz_name,
            settings.DEFAULT_TIMEZONE,
            extra=build_log_context(org_id=org.id),
        )
        tz = ZoneInfo(settings.DEFAULT_TIMEZONE)
    return now.astimezone(tz).date()


def run_all_checks(
    db: Session,
    org_id: UUID,
    today: date | None = None,
    catalogue: Sequence[ComplianceRule] = RULE_CATALOGUE,
    rule_settings: RuleSettings | None = None,
) -> RunSummary:
    """
    Run every compliance rule for one organisation.

    Each rule's candidates are committed in their own transaction so one
    failing rule never rolls back another's notifications.

    Raises:
        TenantRunError: Organisation missing or its state could not be loaded.
    """
    org = compliance_state_service.get_organisation(db, org_id)
    if org is None:
        raise TenantRunError(org_id, "Organisation not found")

    today = today or resolve_org_today(org)
    rule_settings = rule_settings or RuleSettings.from_settings()
    state = compliance_state_service.load_tenant_state(db, org, today)

    summary = RunSummary(
        organisation_id=org_id,
        organisation_name=state.organisation_name,
        run_date=today,
    )

    for rule in catalogue:
        log_context = build_log_context(org_id=org_id, rule_id=rule.id, run_date=today)
        result = RuleResult(rule_id=rule.id)
        summary.rules.append(result)

        try:
            candidates = rule.evaluate(state, rule_settings)
        except Exception as exc:
            error = RuleEvaluationError(rule.id, org_id, exc)
            result.error = str(exc)
            summary.errors.append(error)
            logger.exception("Compliance rule failed", extra=log_context)
            continue

        result.candidates = len(candidates)
        summary.by_severity.update(c.severity.value for c in candidates)

        try:
            sink_result = notification_sink.commit(db, candidates)
            db.commit()
        except Exception as exc:
            db.rollback()
            error = RuleEvaluationError(rule.id, org_id, exc)
            result.error = str(exc)
            summary.errors.append(error)
            logger.exception("Failed to persist compliance notifications", extra=log_context)
            continue

        result.created = len(sink_result.created)
        result.suppressed = len(sink_result.suppressed)
        result.escalated = len(sink_result.escalated)

    logger.info(
        "Compliance run complete: %d candidates, %d created, %d suppressed, %d escalated, %d errors",
        summary.candidates,
        summary.created,
        summary.suppressed,
        summary.escalated,
        len(summary.errors),
        extra=build_log_context(org_id=org_id, run_date=today),
    )
    return summary
