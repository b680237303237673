from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, Integer, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from jobcard_api.db.base import Base, TimestampMixin, UTCDateTime, UUIDPkMixin


class QAReport(UUIDPkMixin, TimestampMixin, Base):
    """Outcome of the single QA-gate inspection of a job card."""
    __tablename__ = "qa_reports"

    job_card_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("job_cards.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    qa_actor_id: Mapped[str] = mapped_column(Text, nullable=False)
    inspected_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    accepted_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    rejected_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    quality_score: Mapped[int] = mapped_column(Integer, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("accepted_quantity >= 0 AND rejected_quantity >= 0", name="quantities_non_negative"),
        CheckConstraint("quality_score BETWEEN 0 AND 100", name="quality_score_range"),
    )


class Rejection(UUIDPkMixin, TimestampMixin, Base):
    """Quality defect raised from a QA report, resolved exactly once."""
    __tablename__ = "rejections"

    qa_report_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("qa_reports.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    job_card_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("job_cards.id", ondelete="CASCADE"), nullable=False, index=True
    )
    plan_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("production_plans.id", ondelete="CASCADE"), nullable=False
    )
    rejected_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    severity: Mapped[str] = mapped_column(Text, nullable=False, default="medium")
    is_resolved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    resolution_action: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    resolution_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    resolved_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    rework_job_card_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("job_cards.id", ondelete="SET NULL"), nullable=True
    )

    __table_args__ = (
        CheckConstraint("rejected_quantity > 0", name="rejected_quantity_positive"),
        CheckConstraint("severity IN ('low', 'medium', 'high')", name="severity_values"),
        Index("ix_rejections_plan_resolved", "plan_id", "is_resolved"),
    )
