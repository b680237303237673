"""
Typed error taxonomy for the job-card workflow engine.

Every error carries:
  - kind: machine-readable identifier returned to API callers
  - retryable: whether a caller may re-issue the operation
  - status_code: HTTP status used by the API layer

Hierarchy:

    WorkflowError
    +-- ValidationError              (never retried; caller/data error)
    |   +-- CapacityExceededError
    |   +-- InvalidTransitionError
    |   +-- UnknownStepError
    |   +-- InvalidInspectionError
    |   +-- AlreadyInspectedError
    |   +-- AlreadyResolvedError
    |   +-- OverFulfillmentError
    |   +-- MaterialNotFulfilledError
    +-- NotFoundError
    |   +-- PlanNotFoundError
    |   +-- JobCardNotFoundError
    |   +-- QAReportNotFoundError
    |   +-- RejectionNotFoundError
    |   +-- MaterialRequestNotFoundError
    +-- ConcurrentModificationError  (retry against fresh state)
    +-- TransientError               (retry with backoff)
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class WorkflowError(Exception):
    """Base class for all workflow engine errors."""

    kind: str = "WorkflowError"
    retryable: bool = False
    status_code: int = 400

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "message": self.message,
            "retryable": self.retryable,
            "details": {k: _jsonable(v) for k, v in self.details.items()} or None,
        }


def _jsonable(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


# Validation errors


class ValidationError(WorkflowError):
    kind = "ValidationError"
    status_code = 422


class CapacityExceededError(ValidationError):
    """Creating the job card would overcommit the plan's total quantity."""

    kind = "CapacityExceededError"
    status_code = 409

    def __init__(self, plan_id: Any, requested: int, committed: int, total: int) -> None:
        self.plan_id = plan_id
        self.requested = requested
        self.committed = committed
        self.total = total
        super().__init__(
            f"Plan {plan_id} cannot take {requested} more units: "
            f"{committed} of {total} already committed",
            plan_id=plan_id,
            requested=requested,
            committed=committed,
            total=total,
            remaining=max(total - committed, 0),
        )


class InvalidTransitionError(ValidationError):
    kind = "InvalidTransitionError"
    status_code = 409

    def __init__(self, job_card_id: Any, current_step: int, target_step: int, reason: str) -> None:
        self.job_card_id = job_card_id
        self.current_step = current_step
        self.target_step = target_step
        super().__init__(
            f"Job card {job_card_id} cannot move from step {current_step} to {target_step}: {reason}",
            job_card_id=job_card_id,
            current_step=current_step,
            target_step=target_step,
            reason=reason,
        )


class UnknownStepError(ValidationError):
    kind = "UnknownStepError"

    def __init__(self, step_id: Any, catalog_version: Optional[str] = None) -> None:
        self.step_id = step_id
        super().__init__(
            f"Step {step_id} is not in the step catalog",
            step_id=step_id,
            catalog_version=catalog_version,
        )


class InvalidInspectionError(ValidationError):
    kind = "InvalidInspectionError"

    def __init__(self, job_card_id: Any, reason: str) -> None:
        self.job_card_id = job_card_id
        super().__init__(
            f"Inspection of job card {job_card_id} rejected: {reason}",
            job_card_id=job_card_id,
            reason=reason,
        )


class AlreadyInspectedError(ValidationError):
    kind = "AlreadyInspectedError"
    status_code = 409

    def __init__(self, job_card_id: Any) -> None:
        self.job_card_id = job_card_id
        super().__init__(
            f"Job card {job_card_id} already has a QA report",
            job_card_id=job_card_id,
        )


class AlreadyResolvedError(ValidationError):
    kind = "AlreadyResolvedError"
    status_code = 409

    def __init__(self, rejection_id: Any) -> None:
        self.rejection_id = rejection_id
        super().__init__(
            f"Rejection {rejection_id} is already resolved",
            rejection_id=rejection_id,
        )


class OverFulfillmentError(ValidationError):
    kind = "OverFulfillmentError"
    status_code = 409

    def __init__(self, request_id: Any, requested: int, sent: int, delta: int) -> None:
        self.request_id = request_id
        super().__init__(
            f"Material request {request_id}: sending {delta} more would exceed "
            f"requested {requested} (already sent {sent})",
            request_id=request_id,
            requested=requested,
            sent=sent,
            delta=delta,
        )


class MaterialNotFulfilledError(ValidationError):
    """Raised by the orchestration-layer material gate on step 1."""

    kind = "MaterialNotFulfilledError"
    status_code = 409

    def __init__(self, job_card_id: Any, open_request_ids: list) -> None:
        self.job_card_id = job_card_id
        self.open_request_ids = open_request_ids
        super().__init__(
            f"Job card {job_card_id} cannot leave step 1 while material requests are unfulfilled",
            job_card_id=job_card_id,
            open_requests=",".join(str(r) for r in open_request_ids),
        )


# Lookup errors


class NotFoundError(WorkflowError):
    kind = "NotFoundError"
    status_code = 404
    entity = "entity"

    def __init__(self, entity_id: Any) -> None:
        self.entity_id = entity_id
        super().__init__(f"{self.entity} {entity_id} not found", id=entity_id)


class PlanNotFoundError(NotFoundError):
    kind = "PlanNotFoundError"
    entity = "Production plan"


class JobCardNotFoundError(NotFoundError):
    kind = "JobCardNotFoundError"
    entity = "Job card"


class QAReportNotFoundError(NotFoundError):
    kind = "QAReportNotFoundError"
    entity = "QA report for job card"


class RejectionNotFoundError(NotFoundError):
    kind = "RejectionNotFoundError"
    entity = "Rejection"


class MaterialRequestNotFoundError(NotFoundError):
    kind = "MaterialRequestNotFoundError"
    entity = "Material request"


# Retryable errors


class ConcurrentModificationError(WorkflowError):
    """Another writer changed the entity first; re-read and retry."""

    kind = "ConcurrentModificationError"
    retryable = True
    status_code = 409

    def __init__(self, entity_type: str, entity_id: Any, detail: str = "modified by another transaction") -> None:
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"{entity_type} {entity_id} was {detail}",
            entity_type=entity_type,
            entity_id=entity_id,
        )


class TransientError(WorkflowError):
    """Timeout or transport failure talking to the store."""

    kind = "TransientError"
    retryable = True
    status_code = 503

    def __init__(self, operation: str, cause: Optional[BaseException] = None) -> None:
        self.operation = operation
        self.cause = cause
        super().__init__(
            f"Transient failure during {operation}; retry later",
            operation=operation,
            cause=type(cause).__name__ if cause is not None else None,
        )
