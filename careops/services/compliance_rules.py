"""Compliance rule catalogue.

Each rule is a pure function of a tenant snapshot: no session, no clock.
The run date is state.today and thresholds come from RuleSettings.
Adding a rule means adding an entry to RULE_CATALOGUE.
"""

from __future__ import annotations

import logging
from calendar import monthrange
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Callable
from uuid import UUID

from careops.core.config import Settings, settings as app_settings
from careops.core.structured_logging import build_log_context
from careops.db.enums import (
    AnnualReturnStatus,
    AuditStatus,
    ComplaintStatus,
    IncidentSeverity,
    IncidentStatus,
    NccMerpCategory,
    NotificationSeverity,
    PersonalPlanStatus,
    PolicyStatus,
    SafeguardingStatus,
)
from careops.services.compliance_state_service import StaffExpirySnapshot, TenantState
from careops.utils.working_days import (
    WorkingDayCalendar,
    add_working_days,
    default_calendar,
    working_days_elapsed,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationCandidate:
    """A proposed notification, not yet checked against existing records."""

    organisation_id: UUID
    rule_id: str
    subject_type: str
    subject_id: UUID
    severity: NotificationSeverity
    title: str
    message: str
    link: str | None = None
    is_overdue: bool = False
    deadline: date | None = None
    staff_member_id: UUID | None = None

    @property
    def dedupe_key(self) -> str:
        key = f"{self.subject_type}:{self.subject_id}"
        if self.staff_member_id:
            key = f"{key}:{self.staff_member_id}"
        return key


@dataclass(frozen=True)
class RuleSettings:
    """Thresholds for one run, snapshotted from configuration."""

    complaint_sla_working_days: int = 20
    complaint_warning_working_days: int = 15
    medication_escalation_category: NccMerpCategory = NccMerpCategory.E
    reminder_lookahead_days: int = 30
    staff_expiry_lookahead_days: int = 90
    incident_open_days: int = 14
    personal_plan_review_grace_days: int = 28
    service_user_review_months: int = 12
    calendar: WorkingDayCalendar = field(default_factory=WorkingDayCalendar)

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> "RuleSettings":
        config = config or app_settings
        return cls(
            complaint_sla_working_days=config.COMPLAINT_SLA_WORKING_DAYS,
            complaint_warning_working_days=config.COMPLAINT_SLA_WARNING_WORKING_DAYS,
            medication_escalation_category=NccMerpCategory(
                config.MEDICATION_ESCALATION_CATEGORY.upper()
            ),
            reminder_lookahead_days=config.REMINDER_LOOKAHEAD_DAYS,
            staff_expiry_lookahead_days=config.STAFF_EXPIRY_LOOKAHEAD_DAYS,
            incident_open_days=config.INCIDENT_OPEN_DAYS,
            personal_plan_review_grace_days=config.PERSONAL_PLAN_REVIEW_GRACE_DAYS,
            service_user_review_months=config.SERVICE_USER_REVIEW_MONTHS,
            calendar=default_calendar(),
        )


Evaluator = Callable[[TenantState, RuleSettings], list[NotificationCandidate]]


@dataclass(frozen=True)
class ComplianceRule:
    id: str
    description: str
    evaluate: Evaluator


# =============================================================================
# Helpers
# =============================================================================


def _months_before(day: date, months: int) -> date:
    """Same day-of-month `months` earlier, clamped to the month's last day."""
    year, month_index = divmod(day.year * 12 + day.month - 1 - months, 12)
    month = month_index + 1
    return date(year, month, min(day.day, monthrange(year, month)[1]))


def _due_date_candidate(
    state: TenantState,
    *,
    rule_id: str,
    subject_type: str,
    subject_id: UUID,
    due: date | None,
    lookahead_days: int,
    title: str,
    link: str,
    upcoming: NotificationSeverity = NotificationSeverity.WARNING,
    overdue: NotificationSeverity = NotificationSeverity.HIGH,
    staff_member_id: UUID | None = None,
) -> NotificationCandidate | None:
    """Reminder for something due within the look-ahead window, escalated once past due."""
    if due is None:
        return None
    today = state.today
    if due > today + timedelta(days=lookahead_days):
        return None
    is_overdue = due < today
    if is_overdue:
        message = f"Overdue since {due.isoformat()}."
    else:
        message = f"Due on {due.isoformat()}."
    return NotificationCandidate(
        organisation_id=state.organisation_id,
        rule_id=rule_id,
        subject_type=subject_type,
        subject_id=subject_id,
        severity=overdue if is_overdue else upcoming,
        title=title,
        message=message,
        link=link,
        is_overdue=is_overdue,
        deadline=due,
        staff_member_id=staff_member_id,
    )


# =============================================================================
# Rules
# =============================================================================


def evaluate_complaint_sla(state: TenantState, config: RuleSettings) -> list[NotificationCandidate]:
    """Complaints must be resolved within N working days of receipt."""
    candidates = []
    for complaint in state.complaints:
        if complaint.status == ComplaintStatus.RESOLVED.value:
            continue
        elapsed = working_days_elapsed(complaint.date_received, state.today, config.calendar)
        if elapsed < config.complaint_warning_working_days:
            continue
        deadline = add_working_days(
            complaint.date_received, config.complaint_sla_working_days, config.calendar
        )
        breached = elapsed >= config.complaint_sla_working_days
        if breached:
            severity = NotificationSeverity.BREACHED
            title = "Complaint response deadline breached"
            message = (
                f"Complaint received {complaint.date_received.isoformat()} has been open "
                f"{elapsed} working days (limit {config.complaint_sla_working_days})."
            )
        else:
            severity = NotificationSeverity.APPROACHING
            title = "Complaint response deadline approaching"
            remaining = config.complaint_sla_working_days - elapsed
            message = (
                f"Complaint received {complaint.date_received.isoformat()} must be resolved "
                f"by {deadline.isoformat()} ({remaining} working days left)."
            )
        candidates.append(
            NotificationCandidate(
                organisation_id=state.organisation_id,
                rule_id="complaint_sla",
                subject_type="complaint",
                subject_id=complaint.id,
                severity=severity,
                title=title,
                message=message,
                link=f"/compliance/complaints/{complaint.id}",
                is_overdue=breached,
                deadline=deadline,
            )
        )
    return candidates


def evaluate_medication_errors(
    state: TenantState, config: RuleSettings
) -> list[NotificationCandidate]:
    """Category E and above: regulator notification plus management alert."""
    candidates = []
    cutoff = config.medication_escalation_category.rank
    for error in state.medication_errors:
        if not error.ncc_merp_category:
            continue
        try:
            category = NccMerpCategory(error.ncc_merp_category.upper())
        except ValueError:
            logger.warning(
                "Skipping medication error with unknown NCC MERP category %r",
                error.ncc_merp_category,
                extra={
                    **build_log_context(org_id=state.organisation_id),
                    "medication_error_id": str(error.id),
                },
            )
            continue
        if category.rank < cutoff:
            continue
        link = f"/medication/errors/{error.id}"
        candidates.append(
            NotificationCandidate(
                organisation_id=state.organisation_id,
                rule_id="medication_error_escalation",
                subject_type="medication_error_regulator",
                subject_id=error.id,
                severity=NotificationSeverity.CRITICAL,
                title=f"Notify Care Inspectorate: medication error category {category.value}",
                message=(
                    f"A category {category.value} medication error on "
                    f"{error.error_date.isoformat()} must be notified to the Care Inspectorate."
                ),
                link=link,
            )
        )
        candidates.append(
            NotificationCandidate(
                organisation_id=state.organisation_id,
                rule_id="medication_error_escalation",
                subject_type="medication_error",
                subject_id=error.id,
                severity=NotificationSeverity.CRITICAL,
                title=f"Medication error category {category.value} escalation",
                message=(
                    f"A category {category.value} medication error has been reported. "
                    "Investigation is required."
                ),
                link=link,
            )
        )
    return candidates


def evaluate_incident_severity(
    state: TenantState, config: RuleSettings
) -> list[NotificationCandidate]:
    """High and critical incidents alert management until closed."""
    severity_map = {
        IncidentSeverity.HIGH.value: NotificationSeverity.HIGH,
        IncidentSeverity.CRITICAL.value: NotificationSeverity.CRITICAL,
    }
    candidates = []
    for incident in state.incidents:
        if incident.status == IncidentStatus.CLOSED.value:
            continue
        severity = severity_map.get(incident.severity)
        if severity is None:
            continue
        candidates.append(
            NotificationCandidate(
                organisation_id=state.organisation_id,
                rule_id="incident_severity",
                subject_type="incident",
                subject_id=incident.id,
                severity=severity,
                title=f"{incident.severity.capitalize()} severity incident: {incident.incident_type}",
                message=(
                    f"Incident on {incident.incident_date.isoformat()} requires management review."
                ),
                link=f"/incidents/{incident.id}",
            )
        )
    return candidates


def evaluate_incident_open_too_long(
    state: TenantState, config: RuleSettings
) -> list[NotificationCandidate]:
    threshold = state.today - timedelta(days=config.incident_open_days)
    candidates = []
    for incident in state.incidents:
        if incident.status == IncidentStatus.CLOSED.value or incident.incident_date >= threshold:
            continue
        candidates.append(
            NotificationCandidate(
                organisation_id=state.organisation_id,
                rule_id="incident_open_too_long",
                subject_type="incident",
                subject_id=incident.id,
                severity=NotificationSeverity.WARNING,
                title=f"Incident open more than {config.incident_open_days} days: {incident.incident_type}",
                message=(
                    f"Incident from {incident.incident_date.isoformat()} has been open for more "
                    f"than {config.incident_open_days} days."
                ),
                link=f"/incidents/{incident.id}",
                is_overdue=True,
            )
        )
    return candidates


def evaluate_safeguarding_referrals(
    state: TenantState, config: RuleSettings
) -> list[NotificationCandidate]:
    """Open concerns need a referral within 24 hours of being raised."""
    candidates = []
    for concern in state.safeguarding_concerns:
        if concern.status != SafeguardingStatus.OPEN.value or concern.referral_made:
            continue
        overdue = concern.date_raised < state.today
        candidates.append(
            NotificationCandidate(
                organisation_id=state.organisation_id,
                rule_id="safeguarding_referral",
                subject_type="safeguarding_concern",
                subject_id=concern.id,
                severity=NotificationSeverity.CRITICAL if overdue else NotificationSeverity.WARNING,
                title=f"Safeguarding referral {'overdue' if overdue else 'required'}: {concern.concern_type}",
                message=(
                    f"Concern raised {concern.date_raised.isoformat()} has no referral recorded. "
                    "Referral is expected within 24 hours."
                ),
                link=f"/incidents/safeguarding/{concern.id}",
                is_overdue=overdue,
                deadline=concern.date_raised + timedelta(days=1),
            )
        )
    return candidates


def evaluate_policy_acknowledgements(
    state: TenantState, config: RuleSettings
) -> list[NotificationCandidate]:
    """One candidate per (active policy, active staff member) without an acknowledgement."""
    candidates = []
    for policy in state.policies:
        if policy.status != PolicyStatus.ACTIVE.value:
            continue
        for staff in state.active_staff:
            if (policy.id, staff.id) in state.policy_acknowledgements:
                continue
            candidates.append(
                NotificationCandidate(
                    organisation_id=state.organisation_id,
                    rule_id="policy_acknowledgement",
                    subject_type="policy",
                    subject_id=policy.id,
                    staff_member_id=staff.id,
                    severity=NotificationSeverity.WARNING,
                    title=f"Policy not acknowledged: {policy.policy_name}",
                    message=f"{staff.full_name} has not acknowledged \"{policy.policy_name}\".",
                    link=f"/compliance/policies/{policy.id}",
                )
            )
    return candidates


def evaluate_policy_reviews(
    state: TenantState, config: RuleSettings
) -> list[NotificationCandidate]:
    candidates = []
    for policy in state.policies:
        if policy.status != PolicyStatus.ACTIVE.value:
            continue
        if policy.next_review_date is None or policy.next_review_date >= state.today:
            continue
        candidates.append(
            NotificationCandidate(
                organisation_id=state.organisation_id,
                rule_id="policy_review_overdue",
                subject_type="policy",
                subject_id=policy.id,
                severity=NotificationSeverity.HIGH,
                title=f"Policy overdue for review: {policy.policy_name}",
                message=f"Review was due on {policy.next_review_date.isoformat()}.",
                link="/compliance?tab=policies",
                is_overdue=True,
                deadline=policy.next_review_date,
            )
        )
    return candidates


def evaluate_annual_returns(
    state: TenantState, config: RuleSettings
) -> list[NotificationCandidate]:
    candidates = []
    for annual_return in state.annual_returns:
        if annual_return.status == AnnualReturnStatus.SUBMITTED.value:
            continue
        candidate = _due_date_candidate(
            state,
            rule_id="annual_return_due",
            subject_type="annual_return",
            subject_id=annual_return.id,
            due=annual_return.deadline_date,
            lookahead_days=config.reminder_lookahead_days,
            title=f"Annual return {annual_return.year} due",
            link=f"/compliance/annual-return/{annual_return.id}",
        )
        if candidate:
            candidates.append(candidate)
    return candidates


def evaluate_quality_audits(
    state: TenantState, config: RuleSettings
) -> list[NotificationCandidate]:
    candidates = []
    for audit in state.quality_audits:
        if audit.status == AuditStatus.CLOSED.value:
            continue
        candidate = _due_date_candidate(
            state,
            rule_id="quality_audit_due",
            subject_type="quality_audit",
            subject_id=audit.id,
            due=audit.due_date,
            lookahead_days=config.reminder_lookahead_days,
            title=f"Quality audit due: {audit.audit_type}",
            link=f"/compliance/audits/{audit.id}",
        )
        if candidate:
            candidates.append(candidate)
    return candidates


def evaluate_inspection_action_plans(
    state: TenantState, config: RuleSettings
) -> list[NotificationCandidate]:
    candidates = []
    for inspection in state.inspections:
        if inspection.action_plan_completed:
            continue
        candidate = _due_date_candidate(
            state,
            rule_id="inspection_action_plan_due",
            subject_type="inspection",
            subject_id=inspection.id,
            due=inspection.action_plan_due_date,
            lookahead_days=config.reminder_lookahead_days,
            title=f"Inspection action plan due ({inspection.inspection_date.isoformat()} inspection)",
            link=f"/compliance/inspections/{inspection.id}",
        )
        if candidate:
            candidates.append(candidate)
    return candidates


def evaluate_personal_plan_coverage(
    state: TenantState, config: RuleSettings
) -> list[NotificationCandidate]:
    covered = {
        plan.service_user_id
        for plan in state.personal_plans
        if plan.status == PersonalPlanStatus.ACTIVE.value
    }
    return [
        NotificationCandidate(
            organisation_id=state.organisation_id,
            rule_id="personal_plan_coverage",
            subject_type="service_user",
            subject_id=service_user.id,
            severity=NotificationSeverity.HIGH,
            title=f"No active personal plan: {service_user.full_name}",
            message="Every service user must have an active personal plan.",
            link=f"/clients/{service_user.id}/personal-plan",
        )
        for service_user in state.active_service_users
        if service_user.id not in covered
    ]


def evaluate_personal_plan_reviews(
    state: TenantState, config: RuleSettings
) -> list[NotificationCandidate]:
    threshold = state.today - timedelta(days=config.personal_plan_review_grace_days)
    active_users = {u.id: u for u in state.active_service_users}
    candidates = []
    for plan in state.personal_plans:
        if plan.status != PersonalPlanStatus.ACTIVE.value or plan.service_user_id not in active_users:
            continue
        if plan.next_review_date is None or plan.next_review_date >= threshold:
            continue
        candidates.append(
            NotificationCandidate(
                organisation_id=state.organisation_id,
                rule_id="personal_plan_review_overdue",
                subject_type="personal_plan",
                subject_id=plan.id,
                severity=NotificationSeverity.HIGH,
                title=f"Personal plan review overdue: {active_users[plan.service_user_id].full_name}",
                message=(
                    f"Personal plan review is overdue by more than "
                    f"{config.personal_plan_review_grace_days} days."
                ),
                link=f"/clients/{plan.service_user_id}",
                is_overdue=True,
                deadline=plan.next_review_date,
            )
        )
    return candidates


def evaluate_service_user_reviews(
    state: TenantState, config: RuleSettings
) -> list[NotificationCandidate]:
    cutoff = _months_before(state.today, config.service_user_review_months)
    candidates = []
    for service_user in state.active_service_users:
        last_review = service_user.last_review_date
        if last_review is not None and last_review >= cutoff:
            continue
        if last_review:
            message = f"Last review was on {last_review.isoformat()}."
        else:
            message = "No review has been recorded."
        candidates.append(
            NotificationCandidate(
                organisation_id=state.organisation_id,
                rule_id="service_user_review_overdue",
                subject_type="service_user",
                subject_id=service_user.id,
                severity=NotificationSeverity.WARNING,
                title=f"Annual review overdue: {service_user.full_name}",
                message=message,
                link=f"/clients/{service_user.id}/reviews",
                is_overdue=True,
            )
        )
    return candidates


def _staff_expiry_candidates(
    state: TenantState,
    config: RuleSettings,
    records: tuple[StaffExpirySnapshot, ...],
    rule_id: str,
    subject_type: str,
) -> list[NotificationCandidate]:
    # Renewals add rows; only the latest expiry per staff member and credential counts
    latest: dict[tuple[UUID, str], StaffExpirySnapshot] = {}
    for record in records:
        if record.expiry_date is None:
            continue
        key = (record.staff_member_id, record.label)
        current = latest.get(key)
        if current is None or record.expiry_date > current.expiry_date:
            latest[key] = record

    candidates = []
    for record in latest.values():
        candidate = _due_date_candidate(
            state,
            rule_id=rule_id,
            subject_type=subject_type,
            subject_id=record.id,
            due=record.expiry_date,
            lookahead_days=config.staff_expiry_lookahead_days,
            title=f"{record.label} expiring: {state.staff_name(record.staff_member_id)}",
            link=f"/staff/{record.staff_member_id}",
            upcoming=NotificationSeverity.APPROACHING,
            staff_member_id=record.staff_member_id,
        )
        if candidate:
            candidates.append(candidate)
    return candidates


def evaluate_pvg_renewals(state: TenantState, config: RuleSettings) -> list[NotificationCandidate]:
    return _staff_expiry_candidates(
        state, config, state.pvg_records, "staff_pvg_renewal", "staff_pvg_record"
    )


def evaluate_registration_expiry(
    state: TenantState, config: RuleSettings
) -> list[NotificationCandidate]:
    return _staff_expiry_candidates(
        state, config, state.registrations, "staff_registration_expiry", "staff_registration"
    )


def evaluate_mandatory_training(
    state: TenantState, config: RuleSettings
) -> list[NotificationCandidate]:
    return _staff_expiry_candidates(
        state, config, state.mandatory_training, "mandatory_training_expiry", "staff_training_record"
    )


def evaluate_equipment_checks(
    state: TenantState, config: RuleSettings
) -> list[NotificationCandidate]:
    candidates = []
    for check in state.equipment_checks:
        if check.next_check_date is None or check.next_check_date >= state.today:
            continue
        candidates.append(
            NotificationCandidate(
                organisation_id=state.organisation_id,
                rule_id="equipment_check_overdue",
                subject_type="equipment_check",
                subject_id=check.id,
                severity=NotificationSeverity.WARNING,
                title=f"Equipment check overdue: {check.equipment_name}",
                message=f"Check was due on {check.next_check_date.isoformat()}.",
                link="/incidents?tab=equipment",
                is_overdue=True,
                deadline=check.next_check_date,
            )
        )
    return candidates


RULE_CATALOGUE: tuple[ComplianceRule, ...] = (
    ComplianceRule("complaint_sla", "Complaint response within working-day SLA", evaluate_complaint_sla),
    ComplianceRule(
        "medication_error_escalation",
        "NCC MERP category E-I medication errors",
        evaluate_medication_errors,
    ),
    ComplianceRule("incident_severity", "High and critical incidents", evaluate_incident_severity),
    ComplianceRule("incident_open_too_long", "Incidents left open", evaluate_incident_open_too_long),
    ComplianceRule(
        "safeguarding_referral", "Safeguarding referrals within 24 hours", evaluate_safeguarding_referrals
    ),
    ComplianceRule(
        "policy_acknowledgement", "Staff policy acknowledgements", evaluate_policy_acknowledgements
    ),
    ComplianceRule("policy_review_overdue", "Policy review dates", evaluate_policy_reviews),
    ComplianceRule("annual_return_due", "Annual return deadline", evaluate_annual_returns),
    ComplianceRule("quality_audit_due", "Quality audit due dates", evaluate_quality_audits),
    ComplianceRule(
        "inspection_action_plan_due", "Inspection action plans", evaluate_inspection_action_plans
    ),
    ComplianceRule(
        "personal_plan_coverage", "Active personal plan per service user", evaluate_personal_plan_coverage
    ),
    ComplianceRule(
        "personal_plan_review_overdue", "Personal plan reviews", evaluate_personal_plan_reviews
    ),
    ComplianceRule(
        "service_user_review_overdue", "Annual service user reviews", evaluate_service_user_reviews
    ),
    ComplianceRule("staff_pvg_renewal", "PVG membership renewals", evaluate_pvg_renewals),
    ComplianceRule(
        "staff_registration_expiry", "Professional registration expiry", evaluate_registration_expiry
    ),
    ComplianceRule(
        "mandatory_training_expiry", "Mandatory training expiry", evaluate_mandatory_training
    ),
    ComplianceRule("equipment_check_overdue", "Equipment safety checks", evaluate_equipment_checks),
)


def get_rule(rule_id: str) -> ComplianceRule:
    for rule in RULE_CATALOGUE:
        if rule.id == rule_id:
            return rule
    raise KeyError(rule_id)
