"""Render service failures as JSON error envelopes."""

import logging
import time

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.services.base import ErrorCode, ServiceError, ServiceFailure

logger = logging.getLogger(__name__)

STATUS_BY_CODE = {
    ErrorCode.VALIDATION_ERROR.value: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_ID.value: status.HTTP_400_BAD_REQUEST,
    ErrorCode.RECORD_NOT_FOUND.value: status.HTTP_404_NOT_FOUND,
    ErrorCode.FAMILY_NOT_FOUND.value: status.HTTP_404_NOT_FOUND,
    ErrorCode.STUDENT_NOT_FOUND.value: status.HTTP_404_NOT_FOUND,
    ErrorCode.UNIQUE_CONSTRAINT_VIOLATION.value: status.HTTP_409_CONFLICT,
    ErrorCode.DUPLICATE_STUDENT_ID.value: status.HTTP_409_CONFLICT,
    ErrorCode.FOREIGN_KEY_CONSTRAINT_VIOLATION.value: status.HTTP_409_CONFLICT,
    ErrorCode.ALREADY_INACTIVE.value: status.HTTP_409_CONFLICT,
    ErrorCode.ALREADY_SUBMITTED.value: status.HTTP_409_CONFLICT,
    ErrorCode.ACCESS_DENIED.value: status.HTTP_403_FORBIDDEN,
    ErrorCode.UNKNOWN_ERROR.value: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_for_code(code: str | None) -> int:
    return STATUS_BY_CODE.get(code, status.HTTP_500_INTERNAL_SERVER_ERROR)


async def service_failure_handler(request: Request, exc: ServiceFailure) -> JSONResponse:
    result = exc.result
    return JSONResponse(
        status_code=status_for_code(result.code),
        content=result.to_dict(),
    )


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    logger.info("%s %s rejected: %s", request.method, request.url.path, exc.code.value)
    return JSONResponse(
        status_code=status_for_code(exc.code.value),
        content={
            "success": False,
            "error": exc.message,
            "code": exc.code.value,
            "metadata": {
                "timestamp": int(time.time() * 1000),
                "duration": 0.0,
                "context": exc.context or None,
            },
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceFailure, service_failure_handler)
    app.add_exception_handler(ServiceError, service_error_handler)
