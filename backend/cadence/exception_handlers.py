"""
Map application errors to HTTP responses.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from cadence.exceptions import (
    AnalysisError,
    CadenceError,
    ConflictError,
    NotFoundError,
    OracleError,
    PersistenceError,
    RuleEvaluationError,
    TransactionValidationError,
)

logger = logging.getLogger(__name__)

STATUS_CODES = {
    NotFoundError: 404,
    ConflictError: 409,
    TransactionValidationError: 422,
    RuleEvaluationError: 422,
    AnalysisError: 422,
    OracleError: 502,
    PersistenceError: 500,
}


async def cadence_error_handler(request: Request, exc: CadenceError) -> JSONResponse:
    status_code = 500
    for error_type, code in STATUS_CODES.items():
        if isinstance(exc, error_type):
            status_code = code
            break

    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CadenceError, cadence_error_handler)
