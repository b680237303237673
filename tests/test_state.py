import uuid

import pytest

from jobcard_api.workflow.errors import InvalidTransitionError, UnknownStepError
from jobcard_api.workflow.state import (
    JobCardStatus,
    status_after_advance,
    status_for_position,
    validate_advance,
)
from jobcard_api.workflow.steps import StepCatalog

CATALOG = StepCatalog()
CARD = uuid.uuid4()


def _advance(current, target, *, status="in-progress", inspected=False, open_rejection=False, accepted=None):
    validate_advance(
        job_card_id=CARD,
        status=status,
        current_step=current,
        target_step=target,
        catalog=CATALOG,
        inspected=inspected,
        open_rejection=open_rejection,
        accepted_quantity=accepted,
    )


@pytest.mark.parametrize(
    "target, expected",
    [
        (2, JobCardStatus.IN_PROGRESS),
        (9, JobCardStatus.IN_PROGRESS),
        (10, JobCardStatus.QA_PENDING),
        (11, JobCardStatus.COMPLETED),
    ],
)
def test_status_after_advance(target, expected):
    assert status_after_advance(target, CATALOG) is expected


def test_forward_moves_and_skips_below_the_gate_are_allowed():
    _advance(1, 2, status="pending")
    _advance(1, 10, status="pending")
    _advance(3, 7)


@pytest.mark.parametrize("target", [3, 2, 1])
def test_backward_or_same_step_is_rejected(target):
    with pytest.raises(InvalidTransitionError) as info:
        _advance(3, target)
    assert info.value.current_step == 3
    assert info.value.target_step == target


def test_unknown_target_step():
    with pytest.raises(UnknownStepError):
        _advance(3, 42)


def test_cannot_jump_over_the_qa_gate():
    with pytest.raises(InvalidTransitionError, match="QA gate"):
        _advance(9, 11)


def test_gate_exit_requires_inspection():
    with pytest.raises(InvalidTransitionError, match="inspection"):
        _advance(10, 11, status="qa-pending")


def test_gate_exit_blocked_by_open_rejection():
    with pytest.raises(InvalidTransitionError, match="unresolved rejection"):
        _advance(10, 11, status="qa-pending", inspected=True, open_rejection=True, accepted=90)


def test_gate_exit_needs_accepted_units():
    with pytest.raises(InvalidTransitionError, match="accepted"):
        _advance(10, 11, status="qa-pending", inspected=True, accepted=0)


def test_gate_exit_allowed_after_inspection():
    _advance(10, 11, status="qa-pending", inspected=True, accepted=90)


@pytest.mark.parametrize("status", ["on-hold", "completed", "rejected"])
def test_held_and_terminal_cards_do_not_move(status):
    with pytest.raises(InvalidTransitionError):
        _advance(4, 5, status=status)


def _position(**overrides):
    args = dict(
        current_step=5,
        transition_count=3,
        catalog=CATALOG,
        accepted_quantity=None,
        rejected_quantity=None,
        open_rejection=False,
        inspected=False,
    )
    args.update(overrides)
    return status_for_position(**args)


def test_status_for_position():
    assert _position() is JobCardStatus.IN_PROGRESS
    assert _position(current_step=1, transition_count=1) is JobCardStatus.PENDING
    assert _position(current_step=10) is JobCardStatus.QA_PENDING
    assert _position(current_step=11) is JobCardStatus.COMPLETED
    fully_rejected = _position(current_step=10, inspected=True, accepted_quantity=0, rejected_quantity=20)
    assert fully_rejected is JobCardStatus.REJECTED
    still_open = _position(
        current_step=10, inspected=True, accepted_quantity=0, rejected_quantity=20, open_rejection=True
    )
    assert still_open is JobCardStatus.QA_PENDING
