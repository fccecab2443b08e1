"""Structured logging helpers (PHI-safe)."""

from datetime import date
from typing import Any
from uuid import UUID


def build_log_context(
    *,
    org_id: UUID | str | None = None,
    rule_id: str | None = None,
    run_date: date | str | None = None,
    route: str | None = None,
) -> dict[str, Any]:
    """Return a PHI-safe log context dict.

    Only identifiers go in here; never names, free text or clinical detail.
    """
    context: dict[str, Any] = {}
    if org_id:
        context["org_id"] = str(org_id)
    if rule_id:
        context["rule_id"] = rule_id
    if run_date:
        context["run_date"] = run_date.isoformat() if isinstance(run_date, date) else run_date
    if route:
        context["route"] = route
    return context
