"""
Plan-level metrics folded from job cards and rejections.

Nothing here is stored; every figure is recomputed from the constituent
records on each read.
"""

from __future__ import annotations

from collections import Counter
from typing import Any, Dict, Iterable, List

from pydantic import BaseModel, Field

from jobcard_api.workflow.state import (
    IN_PRODUCTION_STATUSES,
    JobCardStatus,
    ResolutionAction,
    WRITE_OFF_ACTIONS,
    is_terminal,
)


class PlanProgress(BaseModel):
    """Derived production plan statistics."""

    total_quantity: int = Field(..., description="Plan total quantity")
    committed_quantity: int = Field(..., description="Units assigned to job cards (net of rework hand-offs)")
    remaining_capacity: int = Field(..., description="Units still available for new job cards")
    in_production_quantity: int = Field(..., description="Units on pending/in-progress/qa-pending cards")
    on_hold_quantity: int = Field(0, description="Units on cards that are on hold")
    completed_quantity: int = Field(..., description="Accepted units on completed cards")
    accepted_quantity: int = Field(0, description="Accepted units on all inspected cards")
    rejected_quantity: int = Field(..., description="Units written off by scrap/return resolutions")
    reworked_quantity: int = Field(0, description="Units sent back to step 1 by rework resolutions")
    open_rejections: int = Field(0, description="Unresolved rejection count")
    quality_rate: float = Field(0.0, description="Accepted / inspected units, percent")
    progress_percent: float = Field(0.0, description="Completed / total units, percent")
    is_completed: bool = Field(..., description="All cards terminal and no unresolved rejections")
    job_cards_by_step: Dict[int, int] = Field(default_factory=dict)
    job_cards_by_status: Dict[str, int] = Field(default_factory=dict)


def completed_quantity(job_cards: Iterable[Any]) -> int:
    return sum(
        (c.accepted_quantity or 0) for c in job_cards if c.status == JobCardStatus.COMPLETED.value
    )


def in_production_quantity(job_cards: Iterable[Any]) -> int:
    return sum(c.quantity for c in job_cards if c.status in IN_PRODUCTION_STATUSES)


def rejected_quantity(rejections: Iterable[Any]) -> int:
    """Scrapped or returned units. Rework is excluded; it re-enters production."""
    return sum(
        r.rejected_quantity
        for r in rejections
        if r.is_resolved and r.resolution_action in WRITE_OFF_ACTIONS
    )


def reworked_quantity(rejections: Iterable[Any]) -> int:
    return sum(
        r.rejected_quantity
        for r in rejections
        if r.is_resolved and r.resolution_action == ResolutionAction.REWORK.value
    )


def committed_quantity(job_cards: Iterable[Any], rejections: Iterable[Any]) -> int:
    """
    Units of the plan already spoken for by job cards.

    Units rejected on a card and resolved by rework belong to the spawned card,
    so they are subtracted once here.
    """
    return sum(c.quantity for c in job_cards) - reworked_quantity(rejections)


def is_completed(job_cards: Iterable[Any], rejections: Iterable[Any]) -> bool:
    cards = list(job_cards)
    if not cards:
        return False
    if any(not r.is_resolved for r in rejections):
        return False
    return all(is_terminal(c.status) for c in cards)


# PUBLIC_INTERFACE
def summarize(total_quantity: int, job_cards: Iterable[Any], rejections: Iterable[Any]) -> PlanProgress:
    """Fold a plan's job cards and rejections into a PlanProgress."""
    cards: List[Any] = list(job_cards)
    rejs: List[Any] = list(rejections)

    committed = committed_quantity(cards, rejs)
    completed = completed_quantity(cards)
    inspected = [c for c in cards if c.accepted_quantity is not None]
    accepted = sum(c.accepted_quantity or 0 for c in inspected)
    inspected_units = sum((c.accepted_quantity or 0) + (c.rejected_quantity or 0) for c in inspected)

    return PlanProgress(
        total_quantity=total_quantity,
        committed_quantity=committed,
        remaining_capacity=max(total_quantity - committed, 0),
        in_production_quantity=in_production_quantity(cards),
        on_hold_quantity=sum(c.quantity for c in cards if c.status == JobCardStatus.ON_HOLD.value),
        completed_quantity=completed,
        accepted_quantity=accepted,
        rejected_quantity=rejected_quantity(rejs),
        reworked_quantity=reworked_quantity(rejs),
        open_rejections=sum(1 for r in rejs if not r.is_resolved),
        quality_rate=round(accepted / inspected_units * 100.0, 2) if inspected_units else 0.0,
        progress_percent=round(completed / total_quantity * 100.0, 2) if total_quantity else 0.0,
        is_completed=is_completed(cards, rejs),
        job_cards_by_step=dict(sorted(Counter(c.current_step for c in cards).items())),
        job_cards_by_status=dict(Counter(c.status for c in cards)),
    )
