"""
API error mapping - domain error kinds to HTTP status codes.

Routes translate RewardsError into HTTPException through http_error();
malformed request bodies are reported as 400 instead of FastAPI's 422.
"""

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.domain.exceptions import ErrorKind, RewardsError

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.SESSION: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.STORE_CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.EXPIRED: status.HTTP_410_GONE,
    ErrorKind.DEPENDENCY: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_for(error: RewardsError) -> int:
    return STATUS_BY_KIND[error.kind]


def http_error(error: RewardsError) -> HTTPException:
    return HTTPException(status_code=status_for(error), detail=error.message)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = sorted({str(err["loc"][-1]) for err in exc.errors() if err.get("loc")})
    detail = "Invalid request body"
    if fields:
        detail = f"{detail}: {', '.join(fields)}"
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": detail})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, request_validation_handler)
