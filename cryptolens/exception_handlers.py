from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from cryptolens.exceptions import (
    AppError,
    NoContentError,
    NotFoundError,
    ProviderConnectionError,
    ProviderReportedError,
    UnauthorizedError,
    UnparseableResponseError,
    ValidationError,
)

_STATUS_CODES: dict[type[AppError], int] = {
    NotFoundError: 404,
    ValidationError: 422,
    UnauthorizedError: 401,
    ProviderConnectionError: 503,
    NoContentError: 502,
    UnparseableResponseError: 502,
    ProviderReportedError: 502,
}


def _error_response(status_code: int, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.code, "message": exc.message},
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return _error_response(500, exc)


def _handler_for(status_code: int):
    async def handler(request: Request, exc: AppError) -> JSONResponse:
        return _error_response(status_code, exc)

    return handler


def register_exception_handlers(app: FastAPI) -> None:
    for exc_class, status_code in _STATUS_CODES.items():
        app.add_exception_handler(exc_class, _handler_for(status_code))
    app.add_exception_handler(AppError, app_error_handler)
