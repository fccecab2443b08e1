"""
Fleet-wide compliance runs.

Fans out one tenant run per active organisation and waits for all of them.
A tenant that raises or times out is reported as failed; it never stops the
other tenants from running.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable
from uuid import UUID

from sqlalchemy.orm import Session

from careops.core.config import settings
from careops.core.structured_logging import build_log_context
from careops.db.session import SessionLocal
from careops.services import compliance_check_service, compliance_state_service
from careops.services.compliance_check_service import RunSummary

logger = logging.getLogger(__name__)


@dataclass
class TenantOk:
    org_id: UUID
    org_name: str
    summary: RunSummary

    def to_dict(self) -> dict[str, Any]:
        return {
            "org_id": str(self.org_id),
            "org_name": self.org_name,
            "summary": self.summary.to_dict(),
        }


@dataclass
class TenantFailed:
    org_id: UUID
    org_name: str
    error: str

    def to_dict(self) -> dict[str, Any]:
        return {"org_id": str(self.org_id), "org_name": self.org_name, "error": self.error}


TenantResult = TenantOk | TenantFailed


@dataclass
class FleetReport:
    checked: int = 0
    results: list[TenantResult] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if isinstance(r, TenantFailed))

    def to_dict(self) -> dict[str, Any]:
        return {
            "checked": self.checked,
            "failed": self.failed,
            "results": [r.to_dict() for r in self.results],
        }


def _run_tenant(
    session_factory: Callable[[], Session],
    org_id: UUID,
    today: date | None,
) -> RunSummary:
    with session_factory() as db:
        return compliance_check_service.run_all_checks(db, org_id, today=today)


def _collect(future: Future, org_id: UUID, org_name: str, log_context: dict) -> TenantResult:
    try:
        summary = future.result()
    except Exception as exc:
        logger.exception("Compliance run failed for organisation", extra=log_context)
        return TenantFailed(org_id, org_name, str(exc) or exc.__class__.__name__)
    return TenantOk(org_id, org_name, summary)


def run_fleet(
    session_factory: Callable[[], Session] = SessionLocal,
    today: date | None = None,
    max_workers: int | None = None,
    tenant_timeout_seconds: float | None = None,
) -> FleetReport:
    """
    Run compliance checks for every active organisation.

    Each tenant gets its own session. `today` applies to every tenant when
    given; otherwise each tenant uses its own local date.

    At most `max_workers` tenants run at once. A tenant's timeout counts from
    the moment it starts, and a timed-out tenant gives up its slot so queued
    tenants still run.

    Returns:
        FleetReport with one result per active organisation, in listing order
    """
    max_workers = max_workers or settings.FLEET_MAX_WORKERS
    if tenant_timeout_seconds is None:
        tenant_timeout_seconds = settings.FLEET_TENANT_TIMEOUT_SECONDS

    with session_factory() as db:
        orgs = [
            (org.id, org.name) for org in compliance_state_service.list_active_organisations(db)
        ]

    report = FleetReport(checked=len(orgs))
    if not orgs:
        return report

    results: list[TenantResult | None] = [None] * len(orgs)
    queued = deque(range(len(orgs)))
    running: dict[Future, tuple[int, float]] = {}

    # One thread per tenant: a submitted tenant starts at once, even behind hung workers
    executor = ThreadPoolExecutor(max_workers=len(orgs), thread_name_prefix="compliance")
    try:
        while queued or running:
            while queued and len(running) < max_workers:
                index = queued.popleft()
                future = executor.submit(_run_tenant, session_factory, orgs[index][0], today)
                running[future] = (index, time.monotonic() + tenant_timeout_seconds)

            next_deadline = min(deadline for _, deadline in running.values())
            done, _ = wait(
                running,
                timeout=max(0.0, next_deadline - time.monotonic()),
                return_when=FIRST_COMPLETED,
            )

            now = time.monotonic()
            for future, (index, deadline) in list(running.items()):
                org_id, org_name = orgs[index]
                log_context = build_log_context(org_id=org_id, run_date=today)
                if future in done:
                    del running[future]
                    results[index] = _collect(future, org_id, org_name, log_context)
                elif deadline <= now:
                    del running[future]
                    logger.error(
                        "Compliance run timed out after %ss",
                        tenant_timeout_seconds,
                        extra=log_context,
                    )
                    results[index] = TenantFailed(
                        org_id, org_name, f"Timed out after {tenant_timeout_seconds} seconds"
                    )
    finally:
        # A timed-out worker finishes on its own; its writes are idempotent
        executor.shutdown(wait=False)

    report.results = [r for r in results if r is not None]
    logger.info("Compliance fleet run: %d checked, %d failed", report.checked, report.failed)
    return report
