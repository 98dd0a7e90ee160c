from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from servicedesk.errors import (
    DependencyFailure,
    InvalidInputError,
    NotFoundError,
    PermissionDeniedError,
    ServiceDeskError,
)

# most specific first; LockedError is covered by PermissionDeniedError
STATUS_CODES: tuple[tuple[type[ServiceDeskError], int], ...] = (
    (InvalidInputError, 400),
    (PermissionDeniedError, 403),
    (NotFoundError, 404),
    (DependencyFailure, 500),
)


def status_code_for(exc: ServiceDeskError) -> int:
    for error_type, status_code in STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return 500


async def service_error_handler(request: Request, exc: ServiceDeskError) -> JSONResponse:
    status_code = status_code_for(exc)
    detail = "Internal server error" if status_code == 500 else str(exc)
    return JSONResponse(status_code=status_code, content={"detail": detail})


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # malformed bodies and query values are bad input like any other
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceDeskError, service_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
