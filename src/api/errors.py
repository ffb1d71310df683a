"""
HTTP mapping for audit core errors.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from src.domain.errors import (
    AuditCoreError,
    AuthExpiredError,
    ConflictError,
    LimitReachedError,
    NotFoundError,
    ProRequiredError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR: dict[type[AuditCoreError], int] = {
    AuthExpiredError: status.HTTP_401_UNAUTHORIZED,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ProRequiredError: status.HTTP_403_FORBIDDEN,
    LimitReachedError: status.HTTP_403_FORBIDDEN,
    ConflictError: status.HTTP_409_CONFLICT,
}


def status_for(exc: AuditCoreError) -> int:
    for error_type in type(exc).__mro__:
        if error_type in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[error_type]  # type: ignore[index]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def audit_core_error_handler(request: Request, exc: AuditCoreError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error("Unmapped audit core error on %s: %s", request.url.path, exc)
    else:
        logger.info("%s %s -> %s (%s)", request.method, request.url.path, status_code, exc.code)

    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthExpiredError) else None
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "code": exc.code, **exc.context()},
        headers=headers,
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AuditCoreError, audit_core_error_handler)  # type: ignore[arg-type]
