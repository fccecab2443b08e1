"""Tests for the fleet-wide compliance run."""

import threading
import time
from datetime import date

from careops.services import compliance_check_service, compliance_state_service, fleet_service
from careops.services.compliance_check_service import RunSummary
from careops.services.compliance_state_service import TenantRunError
from careops.services.fleet_service import TenantFailed, TenantOk

RUN_DAY = date(2026, 3, 30)


def test_failing_tenant_does_not_stop_the_others(db, factory, monkeypatch):
    org_a = factory.org(name="A Care")
    org_b = factory.org(name="B Care")
    org_c = factory.org(name="C Care")
    for org in (org_a, org_b, org_c):
        factory.complaint(org, date(2026, 3, 2))
    failing_id = org_b.id

    real_load = compliance_state_service.load_tenant_state

    def load(session, org, today):
        if org.id == failing_id:
            raise TenantRunError(org.id, "Failed to load state: OperationalError")
        return real_load(session, org, today)

    monkeypatch.setattr(compliance_state_service, "load_tenant_state", load)

    report = fleet_service.run_fleet(today=RUN_DAY)

    assert report.checked == 3
    assert report.failed == 1
    assert [r.org_name for r in report.results] == ["A Care", "B Care", "C Care"]
    ok_a, failed_b, ok_c = report.results
    assert isinstance(ok_a, TenantOk)
    assert isinstance(failed_b, TenantFailed)
    assert isinstance(ok_c, TenantOk)
    assert "Failed to load state" in failed_b.error
    assert ok_a.summary.rule("complaint_sla").created == 1
    assert ok_c.summary.rule("complaint_sla").created == 1

    payload = report.to_dict()
    assert payload["checked"] == 3
    assert payload["failed"] == 1
    assert payload["results"][1] == {
        "org_id": str(failing_id),
        "org_name": "B Care",
        "error": str(failed_b.error),
    }


def test_slow_tenant_times_out(db, factory, monkeypatch):
    factory.org(name="A Care")
    slow = factory.org(name="B Care")
    factory.org(name="C Care")
    slow_id = slow.id
    release = threading.Event()

    def fake_run_all_checks(session, org_id, today=None):
        if org_id == slow_id:
            release.wait(timeout=5)
        return RunSummary(organisation_id=org_id, organisation_name="", run_date=today)

    monkeypatch.setattr(compliance_check_service, "run_all_checks", fake_run_all_checks)

    try:
        report = fleet_service.run_fleet(today=RUN_DAY, max_workers=3, tenant_timeout_seconds=0.2)
    finally:
        release.set()

    assert report.checked == 3
    assert report.failed == 1
    assert isinstance(report.results[0], TenantOk)
    assert isinstance(report.results[1], TenantFailed)
    assert "Timed out" in report.results[1].error
    assert isinstance(report.results[2], TenantOk)


def test_hung_tenant_does_not_starve_queued_tenants(db, factory, monkeypatch):
    hung = factory.org(name="A Hung")
    factory.org(name="B Healthy")
    hung_id = hung.id
    release = threading.Event()

    def fake_run_all_checks(session, org_id, today=None):
        if org_id == hung_id:
            release.wait(timeout=5)
        return RunSummary(organisation_id=org_id, organisation_name="", run_date=today)

    monkeypatch.setattr(compliance_check_service, "run_all_checks", fake_run_all_checks)

    try:
        report = fleet_service.run_fleet(today=RUN_DAY, max_workers=1, tenant_timeout_seconds=0.3)
    finally:
        release.set()

    assert report.failed == 1
    assert isinstance(report.results[0], TenantFailed)
    assert "Timed out" in report.results[0].error
    assert isinstance(report.results[1], TenantOk)
    assert report.results[1].org_name == "B Healthy"


def test_timeout_counts_from_tenant_start(db, factory, monkeypatch):
    for name in ("A Care", "B Care", "C Care"):
        factory.org(name=name)

    def fake_run_all_checks(session, org_id, today=None):
        time.sleep(0.25)
        return RunSummary(organisation_id=org_id, organisation_name="", run_date=today)

    monkeypatch.setattr(compliance_check_service, "run_all_checks", fake_run_all_checks)

    # One at a time: the last tenant finishes ~0.75s after the fleet starts but runs ~0.25s
    report = fleet_service.run_fleet(today=RUN_DAY, max_workers=1, tenant_timeout_seconds=0.6)

    assert report.failed == 0
    assert [type(r) for r in report.results] == [TenantOk, TenantOk, TenantOk]


def test_inactive_organisations_are_skipped(db, factory):
    factory.org(name="Open Care")
    factory.org(name="Closed Care", is_active=False)

    report = fleet_service.run_fleet(today=RUN_DAY)

    assert report.checked == 1
    assert [r.org_name for r in report.results] == ["Open Care"]


def test_no_organisations(db):
    report = fleet_service.run_fleet(today=RUN_DAY)

    assert report.to_dict() == {"checked": 0, "failed": 0, "results": []}


def test_second_fleet_run_creates_nothing(db, factory):
    org = factory.org(name="A Care")
    factory.complaint(org, date(2026, 3, 2))

    first = fleet_service.run_fleet(today=RUN_DAY)
    second = fleet_service.run_fleet(today=RUN_DAY)

    assert first.results[0].summary.created == 1
    assert second.results[0].summary.created == 0
    assert second.results[0].summary.suppressed == 1
