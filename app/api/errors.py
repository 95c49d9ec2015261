"""Mapping of domain failures to HTTP responses."""
import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.domain.errors import ErrorCode, WorkflowCoreError
from app.domain.schemas import ErrorResponse

logger = logging.getLogger(__name__)

# Error bodies documented on every router
ERROR_RESPONSES = {
    status_code: {"model": ErrorResponse}
    for status_code in (400, 403, 404, 409, 422, 503)
}


async def workflow_error_handler(request: Request, exc: WorkflowCoreError) -> JSONResponse:
    """Return the failure's code and message with its status."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code} {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.code} {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": jsonable_encoder(exc.to_dict())},
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies with the same envelope as domain failures."""
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "error": {
                "code": ErrorCode.VALIDATION_ERROR,
                "message": "Request validation failed",
                "details": jsonable_encoder(exc.errors()),
            },
        },
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(WorkflowCoreError, workflow_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
