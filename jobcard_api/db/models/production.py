from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Float, ForeignKey, Index, Integer, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from jobcard_api.db.base import Base, TimestampMixin, UTCDateTime, UUIDPkMixin


class ProductionPlan(UUIDPkMixin, TimestampMixin, Base):
    """
    Conversion plan from a source spec to a target spec.

    Progress figures (in production, completed, rejected) are never stored
    here; see jobcard_api.workflow.aggregation.
    """
    __tablename__ = "production_plans"

    source_spec_id: Mapped[str] = mapped_column(Text, nullable=False)
    target_spec_id: Mapped[str] = mapped_column(Text, nullable=False)
    total_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    urgent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by: Mapped[str] = mapped_column(Text, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint("total_quantity > 0", name="total_quantity_positive"),
    )
    __mapper_args__ = {"version_id_col": version}


class JobCard(UUIDPkMixin, TimestampMixin, Base):
    """A batch of units moving through the pipeline together."""
    __tablename__ = "job_cards"

    plan_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("production_plans.id", ondelete="CASCADE"), nullable=False, index=True
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    current_step: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="pending")
    accepted_quantity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    rejected_quantity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    urgent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    hold_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by: Mapped[str] = mapped_column(Text, nullable=False)
    parent_job_card_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("job_cards.id", ondelete="SET NULL"), nullable=True
    )
    rework_of_rejection_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="quantity_positive"),
        CheckConstraint("current_step >= 1", name="current_step_positive"),
        CheckConstraint(
            "accepted_quantity IS NULL OR rejected_quantity IS NULL "
            "OR accepted_quantity + rejected_quantity = quantity",
            name="inspection_balances",
        ),
        Index("ix_job_cards_plan_status", "plan_id", "status"),
    )
    __mapper_args__ = {"version_id_col": version}


class StepTransition(UUIDPkMixin, Base):
    """Append-only record of a job card entering a step."""
    __tablename__ = "step_transitions"

    job_card_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("job_cards.id", ondelete="CASCADE"), nullable=False
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    from_step: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    to_step: Mapped[int] = mapped_column(Integer, nullable=False)
    at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    actor_id: Mapped[str] = mapped_column(Text, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    duration_seconds: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    __table_args__ = (
        UniqueConstraint("job_card_id", "sequence", name="uq_step_transitions_card_sequence"),
        Index("ix_step_transitions_card_at", "job_card_id", "at"),
    )
