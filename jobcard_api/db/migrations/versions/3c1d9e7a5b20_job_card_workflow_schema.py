"""Job card workflow schema.

Creates:
- production_plans
- job_cards
- step_transitions (append-only transition log)
- qa_reports (one per job card)
- rejections (one per QA report)
- material_requests
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3c1d9e7a5b20"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "production_plans",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("source_spec_id", sa.Text(), nullable=False),
        sa.Column("target_spec_id", sa.Text(), nullable=False),
        sa.Column("total_quantity", sa.Integer(), nullable=False),
        sa.Column("urgent", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("created_by", sa.Text(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("total_quantity > 0", name="ck_production_plans_total_quantity_positive"),
    )

    op.create_table(
        "job_cards",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("plan_id", sa.Uuid(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("current_step", sa.Integer(), nullable=False),
        sa.Column("status", sa.Text(), nullable=False),
        sa.Column("accepted_quantity", sa.Integer(), nullable=True),
        sa.Column("rejected_quantity", sa.Integer(), nullable=True),
        sa.Column("urgent", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("hold_reason", sa.Text(), nullable=True),
        sa.Column("created_by", sa.Text(), nullable=False),
        sa.Column("parent_job_card_id", sa.Uuid(), nullable=True),
        sa.Column("rework_of_rejection_id", sa.Uuid(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["plan_id"], ["production_plans.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["parent_job_card_id"], ["job_cards.id"], ondelete="SET NULL"),
        sa.CheckConstraint("quantity > 0", name="ck_job_cards_quantity_positive"),
        sa.CheckConstraint("current_step >= 1", name="ck_job_cards_current_step_positive"),
        sa.CheckConstraint(
            "accepted_quantity IS NULL OR rejected_quantity IS NULL "
            "OR accepted_quantity + rejected_quantity = quantity",
            name="ck_job_cards_inspection_balances",
        ),
    )
    op.create_index("ix_job_cards_plan_id", "job_cards", ["plan_id"])
    op.create_index("ix_job_cards_plan_status", "job_cards", ["plan_id", "status"])

    op.create_table(
        "step_transitions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("job_card_id", sa.Uuid(), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("from_step", sa.Integer(), nullable=True),
        sa.Column("to_step", sa.Integer(), nullable=False),
        sa.Column("at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("actor_id", sa.Text(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("duration_seconds", sa.Float(), nullable=True),
        sa.ForeignKeyConstraint(["job_card_id"], ["job_cards.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("job_card_id", "sequence", name="uq_step_transitions_card_sequence"),
    )
    op.create_index("ix_step_transitions_card_at", "step_transitions", ["job_card_id", "at"])

    op.create_table(
        "qa_reports",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("job_card_id", sa.Uuid(), nullable=False),
        sa.Column("qa_actor_id", sa.Text(), nullable=False),
        sa.Column("inspected_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("accepted_quantity", sa.Integer(), nullable=False),
        sa.Column("rejected_quantity", sa.Integer(), nullable=False),
        sa.Column("quality_score", sa.Integer(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["job_card_id"], ["job_cards.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("job_card_id", name="uq_qa_reports_job_card_id"),
        sa.CheckConstraint(
            "accepted_quantity >= 0 AND rejected_quantity >= 0",
            name="ck_qa_reports_quantities_non_negative",
        ),
        sa.CheckConstraint("quality_score BETWEEN 0 AND 100", name="ck_qa_reports_quality_score_range"),
    )

    op.create_table(
        "rejections",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("qa_report_id", sa.Uuid(), nullable=False),
        sa.Column("job_card_id", sa.Uuid(), nullable=False),
        sa.Column("plan_id", sa.Uuid(), nullable=False),
        sa.Column("rejected_quantity", sa.Integer(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("severity", sa.Text(), nullable=False),
        sa.Column("is_resolved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("resolution_action", sa.Text(), nullable=True),
        sa.Column("resolution_notes", sa.Text(), nullable=True),
        sa.Column("resolved_by", sa.Text(), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rework_job_card_id", sa.Uuid(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["qa_report_id"], ["qa_reports.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["job_card_id"], ["job_cards.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["plan_id"], ["production_plans.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["rework_job_card_id"], ["job_cards.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("qa_report_id", name="uq_rejections_qa_report_id"),
        sa.CheckConstraint("rejected_quantity > 0", name="ck_rejections_rejected_quantity_positive"),
        sa.CheckConstraint("severity IN ('low', 'medium', 'high')", name="ck_rejections_severity_values"),
    )
    op.create_index("ix_rejections_job_card_id", "rejections", ["job_card_id"])
    op.create_index("ix_rejections_plan_resolved", "rejections", ["plan_id", "is_resolved"])

    op.create_table(
        "material_requests",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("plan_id", sa.Uuid(), nullable=False),
        sa.Column("job_card_id", sa.Uuid(), nullable=True),
        sa.Column("requested_quantity", sa.Integer(), nullable=False),
        sa.Column("sent_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("created_by", sa.Text(), nullable=False),
        sa.Column("fulfilled_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["plan_id"], ["production_plans.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["job_card_id"], ["job_cards.id"], ondelete="SET NULL"),
        sa.CheckConstraint("requested_quantity > 0", name="ck_material_requests_requested_quantity_positive"),
        sa.CheckConstraint("sent_quantity >= 0", name="ck_material_requests_sent_quantity_non_negative"),
        sa.CheckConstraint(
            "sent_quantity <= requested_quantity", name="ck_material_requests_sent_within_requested"
        ),
    )
    op.create_index("ix_material_requests_plan_id", "material_requests", ["plan_id"])
    op.create_index("ix_material_requests_job_card_id", "material_requests", ["job_card_id"])


def downgrade() -> None:
    op.drop_index("ix_material_requests_job_card_id", table_name="material_requests")
    op.drop_index("ix_material_requests_plan_id", table_name="material_requests")
    op.drop_table("material_requests")
    op.drop_index("ix_rejections_plan_resolved", table_name="rejections")
    op.drop_index("ix_rejections_job_card_id", table_name="rejections")
    op.drop_table("rejections")
    op.drop_table("qa_reports")
    op.drop_index("ix_step_transitions_card_at", table_name="step_transitions")
    op.drop_table("step_transitions")
    op.drop_index("ix_job_cards_plan_status", table_name="job_cards")
    op.drop_index("ix_job_cards_plan_id", table_name="job_cards")
    op.drop_table("job_cards")
    op.drop_table("production_plans")
