"""Schemas for scheduled compliance runs and compliance notifications."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel


class RuleResultRead(BaseModel):
    rule_id: str
    candidates: int
    created: int
    suppressed: int
    escalated: int
    error: str | None = None


class RuleErrorRead(BaseModel):
    rule_id: str
    error: str


class RunSummaryRead(BaseModel):
    org_id: UUID
    org_name: str
    run_date: date
    candidates: int
    created: int
    suppressed: int
    escalated: int
    by_severity: dict[str, int]
    rules: list[RuleResultRead]
    errors: list[RuleErrorRead]


class TenantOkRead(BaseModel):
    org_id: UUID
    org_name: str
    summary: RunSummaryRead


class TenantFailedRead(BaseModel):
    org_id: UUID
    org_name: str
    error: str


class FleetReportResponse(BaseModel):
    checked: int
    failed: int
    results: list[TenantOkRead | TenantFailedRead]


class ComplianceNotificationRead(BaseModel):
    id: UUID
    rule_id: str
    subject_type: str
    subject_id: UUID
    staff_member_id: UUID | None
    severity: str
    title: str
    message: str | None
    link: str | None
    is_overdue: bool
    deadline: date | None
    status: str
    created_at: datetime
    last_seen_at: datetime

    model_config = {"from_attributes": True}
