from __future__ import annotations

from datetime import date, timedelta

import pytest

URL = "/internal/scheduled/compliance-checks"


def _fail_if_called(*_args, **_kwargs):
    raise AssertionError("run_fleet must not run for an unauthorised caller")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "headers",
    [
        {},
        {"Authorization": "Bearer wrong-secret"},
        {"Authorization": "test-cron-secret"},
        {"Authorization": "Basic test-cron-secret"},
        {"Authorization": "Bearer "},
    ],
)
async def test_rejects_missing_or_wrong_secret(client, monkeypatch, headers):
    from careops.services import fleet_service

    monkeypatch.setattr(fleet_service, "run_fleet", _fail_if_called)

    response = await client.post(URL, headers=headers)

    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_rejects_everyone_when_secret_unset(client, monkeypatch):
    from careops.core.config import settings
    from careops.services import fleet_service

    monkeypatch.setattr(settings, "CRON_SECRET", "")
    monkeypatch.setattr(fleet_service, "run_fleet", _fail_if_called)

    response = await client.post(URL, headers={"Authorization": "Bearer "})
    assert response.status_code == 401

    response = await client.post(URL, headers={"Authorization": "Bearer anything"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_get_is_not_allowed(client):
    response = await client.get(URL, headers={"Authorization": "Bearer test-cron-secret"})
    assert response.status_code == 405


@pytest.mark.asyncio
async def test_runs_checks_for_every_active_organisation(client, factory):
    glen = factory.org(name="Glen Care")
    factory.org(name="Loch Care")
    factory.complaint(glen, date.today() - timedelta(days=60))

    response = await client.post(URL, headers={"Authorization": "Bearer test-cron-secret"})

    assert response.status_code == 200
    data = response.json()
    assert data["checked"] == 2
    assert data["failed"] == 0
    glen_result, loch_result = data["results"]
    assert glen_result["org_name"] == "Glen Care"
    assert glen_result["summary"]["created"] == 1
    assert glen_result["summary"]["by_severity"] == {"breached": 1}
    assert loch_result["summary"]["created"] == 0

    again = await client.post(URL, headers={"Authorization": "Bearer test-cron-secret"})
    assert again.json()["results"][0]["summary"]["created"] == 0
    assert again.json()["results"][0]["summary"]["suppressed"] == 1


@pytest.mark.asyncio
async def test_failed_tenant_is_reported(client, factory, monkeypatch):
    from careops.services import compliance_state_service
    from careops.services.compliance_state_service import TenantRunError

    org = factory.org(name="Glen Care")
    org_id = org.id

    def broken_load(_session, org, _today):
        raise TenantRunError(org.id, "Failed to load state: OperationalError")

    monkeypatch.setattr(compliance_state_service, "load_tenant_state", broken_load)

    response = await client.post(URL, headers={"Authorization": "Bearer test-cron-secret"})

    assert response.status_code == 200
    assert response.json() == {
        "checked": 1,
        "failed": 1,
        "results": [
            {
                "org_id": str(org_id),
                "org_name": "Glen Care",
                "error": "Failed to load state: OperationalError",
            }
        ],
    }
