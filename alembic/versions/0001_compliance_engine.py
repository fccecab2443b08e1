"""Compliance engine baseline

Revision ID: 0001_compliance_engine
Revises:
Create Date: 2026-03-02

Tables:
- organisations, staff_members, service_users: tenants and people
- complaints, medication_errors, incidents, safeguarding_concerns,
  quality_audits, inspections, policies, policy_acknowledgements,
  annual_returns, personal_plans, service_user_reviews, staff_pvg_records,
  staff_registrations, staff_training_records, equipment_checks: rule subjects
- compliance_notifications: deduplicated pending actions
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_compliance_engine"
down_revision = None
branch_labels = None
depends_on = None


ACTIVE_STATUS_PREDICATE = sa.text("status IN ('open', 'acknowledged')")


def _id() -> sa.Column:
    return sa.Column("id", sa.Uuid(), primary_key=True)


def _org_fk() -> sa.Column:
    return sa.Column(
        "organisation_id",
        sa.Uuid(),
        sa.ForeignKey("organisations.id", ondelete="CASCADE"),
        nullable=False,
    )


def _fk(name: str, target: str, nullable: bool = False, ondelete: str = "CASCADE") -> sa.Column:
    return sa.Column(name, sa.Uuid(), sa.ForeignKey(target, ondelete=ondelete), nullable=nullable)


def _status(default: str, length: int = 20) -> sa.Column:
    return sa.Column("status", sa.String(length), nullable=True, server_default=sa.text(f"'{default}'"))


def _flag(name: str) -> sa.Column:
    return sa.Column(name, sa.Boolean(), nullable=False, server_default=sa.text("false"))


def _created_at(name: str = "created_at") -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())


def upgrade() -> None:
    op.create_table(
        "organisations",
        _id(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(100), nullable=False, unique=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("timezone", sa.String(50), nullable=True),
        _created_at(),
    )

    # People
    op.create_table(
        "staff_members",
        _id(),
        _org_fk(),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        _status("active"),
        _created_at(),
    )
    op.create_index("ix_staff_members_org_status", "staff_members", ["organisation_id", "status"])

    op.create_table(
        "service_users",
        _id(),
        _org_fk(),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        _status("active"),
        _created_at(),
    )
    op.create_index("ix_service_users_org_status", "service_users", ["organisation_id", "status"])

    # Compliance
    op.create_table(
        "complaints",
        _id(),
        _org_fk(),
        sa.Column("date_received", sa.Date(), nullable=False),
        sa.Column("complainant_name", sa.String(255), nullable=False),
        sa.Column("nature_of_complaint", sa.Text(), nullable=True),
        _status("open"),
        sa.Column("resolved_date", sa.Date(), nullable=True),
    )
    op.create_index("ix_complaints_org_status", "complaints", ["organisation_id", "status"])

    op.create_table(
        "policies",
        _id(),
        _org_fk(),
        sa.Column("policy_name", sa.String(255), nullable=False),
        _status("draft"),
        sa.Column("next_review_date", sa.Date(), nullable=True),
    )
    op.create_index("ix_policies_org_status", "policies", ["organisation_id", "status"])

    op.create_table(
        "policy_acknowledgements",
        _id(),
        _org_fk(),
        _fk("policy_id", "policies.id"),
        _fk("staff_member_id", "staff_members.id"),
        _created_at("acknowledged_at"),
        sa.UniqueConstraint("policy_id", "staff_member_id", name="uq_policy_ack_policy_staff"),
    )
    op.create_index(
        "ix_policy_acknowledgements_organisation_id", "policy_acknowledgements", ["organisation_id"]
    )

    op.create_table(
        "quality_audits",
        _id(),
        _org_fk(),
        sa.Column("audit_type", sa.String(50), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=True),
        _status("open"),
        sa.Column("completed_date", sa.Date(), nullable=True),
    )
    op.create_index("ix_quality_audits_organisation_id", "quality_audits", ["organisation_id"])

    op.create_table(
        "inspections",
        _id(),
        _org_fk(),
        sa.Column("inspection_date", sa.Date(), nullable=False),
        sa.Column("action_plan_due_date", sa.Date(), nullable=True),
        _flag("action_plan_completed"),
    )
    op.create_index("ix_inspections_organisation_id", "inspections", ["organisation_id"])

    op.create_table(
        "annual_returns",
        _id(),
        _org_fk(),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("deadline_date", sa.Date(), nullable=True),
        _status("draft"),
        sa.Column("submitted_date", sa.Date(), nullable=True),
        sa.UniqueConstraint("organisation_id", "year", name="uq_annual_returns_org_year"),
    )

    # Incidents
    op.create_table(
        "incidents",
        _id(),
        _org_fk(),
        _fk("service_user_id", "service_users.id", nullable=True, ondelete="SET NULL"),
        sa.Column("incident_date", sa.Date(), nullable=False),
        sa.Column("incident_type", sa.String(50), nullable=False),
        sa.Column("severity", sa.String(20), nullable=True, server_default=sa.text("'low'")),
        _status("open", length=30),
        sa.Column("description", sa.Text(), nullable=True),
    )
    op.create_index("ix_incidents_org_status", "incidents", ["organisation_id", "status"])

    op.create_table(
        "safeguarding_concerns",
        _id(),
        _org_fk(),
        sa.Column("date_raised", sa.Date(), nullable=False),
        sa.Column("concern_type", sa.String(50), nullable=False),
        _status("open"),
        _flag("referral_made"),
    )
    op.create_index(
        "ix_safeguarding_concerns_organisation_id", "safeguarding_concerns", ["organisation_id"]
    )

    op.create_table(
        "equipment_checks",
        _id(),
        _org_fk(),
        sa.Column("equipment_name", sa.String(255), nullable=False),
        sa.Column("serial_number", sa.String(100), nullable=True),
        sa.Column("next_check_date", sa.Date(), nullable=True),
    )
    op.create_index("ix_equipment_checks_organisation_id", "equipment_checks", ["organisation_id"])

    # Medication
    op.create_table(
        "medication_errors",
        _id(),
        _org_fk(),
        _fk("service_user_id", "service_users.id", nullable=True, ondelete="SET NULL"),
        sa.Column("error_date", sa.Date(), nullable=False),
        sa.Column("error_type", sa.String(50), nullable=False),
        sa.Column("ncc_merp_category", sa.String(1), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        _flag("care_inspectorate_notified"),
    )
    op.create_index("ix_medication_errors_organisation_id", "medication_errors", ["organisation_id"])

    # Service user care
    op.create_table(
        "personal_plans",
        _id(),
        _org_fk(),
        _fk("service_user_id", "service_users.id"),
        _status("draft"),
        sa.Column("next_review_date", sa.Date(), nullable=True),
    )
    op.create_index("ix_personal_plans_org_status", "personal_plans", ["organisation_id", "status"])

    op.create_table(
        "service_user_reviews",
        _id(),
        _org_fk(),
        _fk("service_user_id", "service_users.id"),
        sa.Column("review_date", sa.Date(), nullable=False),
    )
    op.create_index(
        "ix_service_user_reviews_organisation_id", "service_user_reviews", ["organisation_id"]
    )

    # Staff credentials
    op.create_table(
        "staff_pvg_records",
        _id(),
        _org_fk(),
        _fk("staff_member_id", "staff_members.id"),
        sa.Column("membership_number", sa.String(50), nullable=True),
        sa.Column("renewal_date", sa.Date(), nullable=True),
    )
    op.create_index("ix_staff_pvg_records_organisation_id", "staff_pvg_records", ["organisation_id"])

    op.create_table(
        "staff_registrations",
        _id(),
        _org_fk(),
        _fk("staff_member_id", "staff_members.id"),
        sa.Column("registration_type", sa.String(30), nullable=False),
        sa.Column("expiry_date", sa.Date(), nullable=True),
    )
    op.create_index(
        "ix_staff_registrations_organisation_id", "staff_registrations", ["organisation_id"]
    )

    op.create_table(
        "staff_training_records",
        _id(),
        _org_fk(),
        _fk("staff_member_id", "staff_members.id"),
        sa.Column("training_type", sa.String(100), nullable=False),
        _flag("is_mandatory"),
        sa.Column("expiry_date", sa.Date(), nullable=True),
    )
    op.create_index(
        "ix_staff_training_records_organisation_id", "staff_training_records", ["organisation_id"]
    )

    # Notifications
    op.create_table(
        "compliance_notifications",
        _id(),
        _org_fk(),
        sa.Column("rule_id", sa.String(50), nullable=False),
        sa.Column("subject_type", sa.String(50), nullable=False),
        sa.Column("subject_id", sa.Uuid(), nullable=False),
        _fk("staff_member_id", "staff_members.id", nullable=True),
        sa.Column("dedupe_key", sa.String(200), nullable=False),
        sa.Column("severity", sa.String(20), nullable=False),
        sa.Column("severity_rank", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("link", sa.String(500), nullable=True),
        _flag("is_overdue"),
        sa.Column("deadline", sa.Date(), nullable=True),
        _status("open"),
        _created_at(),
        _created_at("updated_at"),
        sa.Column("acknowledged_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        _created_at("last_seen_at"),
    )
    op.create_index(
        "uq_compliance_notifications_active",
        "compliance_notifications",
        ["organisation_id", "rule_id", "dedupe_key"],
        unique=True,
        postgresql_where=ACTIVE_STATUS_PREDICATE,
        sqlite_where=ACTIVE_STATUS_PREDICATE,
    )
    op.create_index(
        "ix_compliance_notifications_org_status",
        "compliance_notifications",
        ["organisation_id", "status"],
    )


def downgrade() -> None:
    op.drop_table("compliance_notifications")
    op.drop_table("staff_training_records")
    op.drop_table("staff_registrations")
    op.drop_table("staff_pvg_records")
    op.drop_table("service_user_reviews")
    op.drop_table("personal_plans")
    op.drop_table("medication_errors")
    op.drop_table("equipment_checks")
    op.drop_table("safeguarding_concerns")
    op.drop_table("incidents")
    op.drop_table("annual_returns")
    op.drop_table("inspections")
    op.drop_table("quality_audits")
    op.drop_table("policy_acknowledgements")
    op.drop_table("policies")
    op.drop_table("complaints")
    op.drop_table("service_users")
    op.drop_table("staff_members")
    op.drop_table("organisations")
