"""Tests for the per-tenant compliance run."""

import uuid
from datetime import date, datetime, timezone

import pytest
from sqlalchemy import select

from careops.db.enums import NotificationSeverity, NotificationStatus
from careops.db.models import ComplianceNotification
from careops.services import compliance_check_service
from careops.services.compliance_check_service import (
    RuleEvaluationError,
    resolve_org_today,
    run_all_checks,
)
from careops.services.compliance_rules import RULE_CATALOGUE, ComplianceRule, get_rule
from careops.services.compliance_state_service import TenantRunError

RECEIVED = date(2026, 3, 2)  # Monday
APPROACHING_DAY = date(2026, 3, 23)  # 15 working days later
BREACH_DAY = date(2026, 3, 30)  # 20 working days later


def _active_notifications(db, org_id, rule_id=None):
    db.expire_all()
    stmt = select(ComplianceNotification).where(
        ComplianceNotification.organisation_id == org_id,
        ComplianceNotification.status != NotificationStatus.RESOLVED.value,
    )
    if rule_id:
        stmt = stmt.where(ComplianceNotification.rule_id == rule_id)
    return db.scalars(stmt).all()


def test_second_run_creates_nothing(db, factory, test_org):
    factory.complaint(test_org, RECEIVED)
    factory.medication_error(test_org, "F", RECEIVED)
    policy = factory.policy(test_org, "Medication Policy")
    factory.staff(test_org, "Alex")
    factory.staff(test_org, "Sam")
    factory.service_user(test_org)

    first = run_all_checks(db, test_org.id, today=BREACH_DAY)
    second = run_all_checks(db, test_org.id, today=BREACH_DAY)

    assert first.created > 0
    assert first.errors == []
    assert second.created == 0
    assert second.suppressed == first.candidates
    assert second.escalated == 0
    assert len(_active_notifications(db, test_org.id)) == first.created
    assert first.rule("policy_acknowledgement").created == 2
    assert policy.id in {n.subject_id for n in _active_notifications(db, test_org.id, "policy_acknowledgement")}


def test_approaching_complaint_escalates_to_breached_in_place(db, factory, test_org):
    complaint = factory.complaint(test_org, RECEIVED)

    first = run_all_checks(db, test_org.id, today=APPROACHING_DAY)
    [before] = _active_notifications(db, test_org.id, "complaint_sla")
    assert first.rule("complaint_sla").created == 1
    assert before.severity == NotificationSeverity.APPROACHING.value

    second = run_all_checks(db, test_org.id, today=BREACH_DAY)

    assert second.rule("complaint_sla").created == 0
    assert second.rule("complaint_sla").escalated == 1
    [after] = _active_notifications(db, test_org.id, "complaint_sla")
    assert after.id == before.id
    assert after.subject_id == complaint.id
    assert after.severity == NotificationSeverity.BREACHED.value
    assert after.is_overdue is True


def test_medication_category_f_creates_two_critical_notifications(db, factory, test_org):
    error = factory.medication_error(test_org, "F", RECEIVED, care_inspectorate_notified=True)

    summary = run_all_checks(db, test_org.id, today=BREACH_DAY)

    rows = _active_notifications(db, test_org.id, "medication_error_escalation")
    assert {r.subject_type for r in rows} == {"medication_error_regulator", "medication_error"}
    assert {r.subject_id for r in rows} == {error.id}
    assert summary.by_severity[NotificationSeverity.CRITICAL.value] == 2


def test_malformed_medication_category_does_not_block_valid_errors(db, factory, test_org):
    factory.medication_error(test_org, "Z", RECEIVED)
    valid = factory.medication_error(test_org, "F", RECEIVED)

    summary = run_all_checks(db, test_org.id, today=BREACH_DAY)

    result = summary.rule("medication_error_escalation")
    assert result.error is None
    assert result.created == 2
    rows = _active_notifications(db, test_org.id, "medication_error_escalation")
    assert {r.subject_id for r in rows} == {valid.id}


def test_failing_rule_is_recorded_and_others_still_run(db, factory, test_org):
    factory.complaint(test_org, RECEIVED)

    def explode(state, config):
        raise RuntimeError("boom")

    catalogue = (
        ComplianceRule("exploding_rule", "Always fails", explode),
        get_rule("complaint_sla"),
    )

    summary = run_all_checks(db, test_org.id, today=BREACH_DAY, catalogue=catalogue)

    assert [e.rule_id for e in summary.errors] == ["exploding_rule"]
    assert isinstance(summary.errors[0], RuleEvaluationError)
    assert summary.errors[0].org_id == test_org.id
    assert summary.rule("exploding_rule").error == "boom"
    assert summary.rule("complaint_sla").created == 1
    assert summary.to_dict()["errors"] == [{"rule_id": "exploding_rule", "error": "boom"}]


def test_sink_failure_is_recorded_for_that_rule(db, factory, test_org, monkeypatch):
    factory.complaint(test_org, RECEIVED)
    factory.medication_error(test_org, "G", RECEIVED)
    real_commit = compliance_check_service.notification_sink.commit

    def flaky_commit(session, candidates):
        if candidates and candidates[0].rule_id == "complaint_sla":
            raise RuntimeError("write failed")
        return real_commit(session, candidates)

    monkeypatch.setattr(compliance_check_service.notification_sink, "commit", flaky_commit)

    summary = run_all_checks(db, test_org.id, today=BREACH_DAY)

    assert [e.rule_id for e in summary.errors] == ["complaint_sla"]
    assert summary.rule("medication_error_escalation").created == 2
    assert _active_notifications(db, test_org.id, "complaint_sla") == []


def test_tenant_isolation(db, factory, test_org):
    other = factory.org(name="Other Care Home")
    factory.complaint(other, RECEIVED)

    summary = run_all_checks(db, test_org.id, today=BREACH_DAY)

    assert summary.candidates == 0
    assert _active_notifications(db, test_org.id) == []
    assert _active_notifications(db, other.id) == []


def test_unknown_organisation_raises_tenant_run_error(db):
    missing = uuid.uuid4()

    with pytest.raises(TenantRunError) as exc_info:
        run_all_checks(db, missing, today=BREACH_DAY)

    assert exc_info.value.org_id == missing


def test_summary_lists_every_catalogue_rule(db, test_org):
    summary = run_all_checks(db, test_org.id, today=BREACH_DAY)

    assert [r.rule_id for r in summary.rules] == [rule.id for rule in RULE_CATALOGUE]
    payload = summary.to_dict()
    assert payload["org_id"] == str(test_org.id)
    assert payload["run_date"] == "2026-03-30"


def test_today_defaults_to_organisation_local_date(factory):
    midday_utc = datetime(2026, 3, 2, 12, 30, tzinfo=timezone.utc)
    auckland = factory.org(name="Auckland", timezone="Pacific/Auckland")
    london = factory.org(name="London", timezone=None)
    broken = factory.org(name="Broken", timezone="Not/AZone")

    assert resolve_org_today(auckland, now=midday_utc) == date(2026, 3, 3)
    assert resolve_org_today(london, now=midday_utc) == date(2026, 3, 2)
    assert resolve_org_today(broken, now=midday_utc) == date(2026, 3, 2)
