from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, ForeignKey, Integer, Text, Uuid
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import Mapped, mapped_column

from jobcard_api.db.base import Base, TimestampMixin, UTCDateTime, UUIDPkMixin


class MaterialRequest(UUIDPkMixin, TimestampMixin, Base):
    """Requested vs. sent source material for a plan (optionally one job card)."""
    __tablename__ = "material_requests"

    plan_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("production_plans.id", ondelete="CASCADE"), nullable=False, index=True
    )
    job_card_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("job_cards.id", ondelete="SET NULL"), nullable=True, index=True
    )
    requested_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    sent_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by: Mapped[str] = mapped_column(Text, nullable=False)
    fulfilled_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)

    __table_args__ = (
        CheckConstraint("requested_quantity > 0", name="requested_quantity_positive"),
        CheckConstraint("sent_quantity >= 0", name="sent_quantity_non_negative"),
        CheckConstraint("sent_quantity <= requested_quantity", name="sent_within_requested"),
    )

    @hybrid_property
    def is_fulfilled(self) -> bool:
        return self.sent_quantity >= self.requested_quantity
