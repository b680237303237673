"""
Error envelope for every failed request.

Workflow errors carry their own kind, HTTP status and retryable flag; the
other handlers map framework errors onto the same ErrorResponse shape.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from jobcard_api.schemas.common import ErrorInfo, ErrorResponse
from jobcard_api.workflow.errors import WorkflowError

logger = logging.getLogger(__name__)


def error_response(
    request: Request,
    status_code: int,
    kind: str,
    message: str,
    *,
    details: Optional[Any] = None,
    retryable: bool = False,
) -> JSONResponse:
    correlation_id = getattr(request.state, "correlation_id", None)
    body = ErrorResponse(
        status=status_code,
        error=ErrorInfo(type=kind, message=message, retryable=retryable, details=details),
        correlation_id=correlation_id,
        actor_id=getattr(request.state, "actor_id", None),
        path=request.url.path,
        method=request.method,
        timestamp=datetime.now(tz=timezone.utc),
    )
    headers = {"X-Correlation-ID": correlation_id} if correlation_id else None
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"), headers=headers)


async def handle_workflow_error(request: Request, exc: WorkflowError) -> JSONResponse:
    return error_response(
        request,
        exc.status_code,
        exc.kind,
        exc.message,
        details=exc.to_dict()["details"],
        retryable=exc.retryable,
    )


async def handle_http_error(request: Request, exc: HTTPException) -> JSONResponse:
    if isinstance(exc.detail, str):
        return error_response(request, exc.status_code, "http_error", exc.detail)
    return error_response(request, exc.status_code, "http_error", "HTTP Error", details=exc.detail)


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    # ctx may hold exception instances, which do not serialize
    issues = [{key: value for key, value in err.items() if key != "ctx"} for err in exc.errors()]
    return error_response(request, 422, "validation_error", "Request validation failed", details=issues)


async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(request, 500, "internal_error", "An unexpected error occurred")


# PUBLIC_INTERFACE
def install_error_handlers(app: FastAPI) -> None:
    """Register the envelope handlers on app."""
    app.add_exception_handler(WorkflowError, handle_workflow_error)
    app.add_exception_handler(HTTPException, handle_http_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(Exception, handle_unexpected)
