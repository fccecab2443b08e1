import uuid
from datetime import date

from careops.core.structured_logging import build_log_context


def test_build_log_context_only_includes_given_identifiers():
    org_id = uuid.uuid4()

    context = build_log_context(org_id=org_id, rule_id="complaint_sla", run_date=date(2026, 3, 30))

    assert context == {
        "org_id": str(org_id),
        "rule_id": "complaint_sla",
        "run_date": "2026-03-30",
    }


def test_build_log_context_empty():
    assert build_log_context() == {}
    assert build_log_context(route="/internal/scheduled/compliance-checks") == {
        "route": "/internal/scheduled/compliance-checks"
    }
