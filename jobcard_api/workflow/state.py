"""
Job card state machine rules.

Pure functions only: callers pass in what they know about the card and get
back the new status or an InvalidTransitionError. Persistence and locking
live in the services.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from jobcard_api.workflow.errors import InvalidTransitionError
from jobcard_api.workflow.steps import StepCatalog


class JobCardStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    QA_PENDING = "qa-pending"
    COMPLETED = "completed"
    ON_HOLD = "on-hold"
    REJECTED = "rejected"


class ResolutionAction(str, Enum):
    REWORK = "rework"
    SCRAP = "scrap"
    ACCEPT = "accept"
    RETURN = "return"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


TERMINAL_STATUSES = frozenset({JobCardStatus.COMPLETED.value, JobCardStatus.REJECTED.value})
IN_PRODUCTION_STATUSES = frozenset(
    {JobCardStatus.PENDING.value, JobCardStatus.IN_PROGRESS.value, JobCardStatus.QA_PENDING.value}
)
# Resolutions that take units out of the plan's producible total.
WRITE_OFF_ACTIONS = frozenset({ResolutionAction.SCRAP.value, ResolutionAction.RETURN.value})


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


# PUBLIC_INTERFACE
def status_after_advance(target_step: int, catalog: StepCatalog) -> JobCardStatus:
    """Status a card takes on entering target_step."""
    if target_step == catalog.qa_gate_step:
        return JobCardStatus.QA_PENDING
    if target_step == catalog.final_step:
        return JobCardStatus.COMPLETED
    return JobCardStatus.IN_PROGRESS


# PUBLIC_INTERFACE
def validate_advance(
    *,
    job_card_id: Any,
    status: str,
    current_step: int,
    target_step: int,
    catalog: StepCatalog,
    inspected: bool,
    open_rejection: bool,
    accepted_quantity: Optional[int],
) -> None:
    """
    Check a forward move against the pipeline rules.

    Raises:
        UnknownStepError: target_step is not in the catalog.
        InvalidTransitionError: the move is not allowed from the card's state.
    """
    catalog.require(target_step)

    def fail(reason: str) -> None:
        raise InvalidTransitionError(job_card_id, current_step, target_step, reason)

    if status == JobCardStatus.ON_HOLD.value:
        fail("job card is on hold")
    if is_terminal(status):
        fail(f"job card is {status}")
    if target_step <= current_step:
        fail("steps only move forward; use rework to restart")

    gate = catalog.qa_gate_step
    if current_step < gate < target_step:
        fail(f"cannot skip the QA gate at step {gate}")
    if current_step == gate:
        if not inspected:
            fail("QA inspection has not been submitted")
        if open_rejection:
            fail("an unresolved rejection blocks the QA gate")
        if not accepted_quantity:
            fail("no accepted quantity to move past the QA gate")


# PUBLIC_INTERFACE
def status_for_position(
    *,
    current_step: int,
    transition_count: int,
    catalog: StepCatalog,
    accepted_quantity: Optional[int],
    rejected_quantity: Optional[int],
    open_rejection: bool,
    inspected: bool,
) -> JobCardStatus:
    """
    Status implied by where the card sits. Used when releasing a hold.
    """
    if current_step == catalog.final_step:
        return JobCardStatus.COMPLETED
    if current_step == catalog.qa_gate_step:
        if inspected and not open_rejection and not accepted_quantity and rejected_quantity:
            return JobCardStatus.REJECTED
        return JobCardStatus.QA_PENDING
    if current_step == catalog.first_step and transition_count <= 1:
        return JobCardStatus.PENDING
    return JobCardStatus.IN_PROGRESS
