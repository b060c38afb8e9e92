"""
Exception handlers mapping service errors to HTTP responses.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from nexus_crm.infrastructure.observability.logging import get_logger
from nexus_crm.services.auth_service import AuthError
from nexus_crm.services.contact_service import ContactValidationError, OperationInFlightError
from nexus_crm.services.local_storage import LocalStorageError
from nexus_crm.services.store.base import (
    ConfirmationRequiredError,
    NotAuthenticatedError,
    RecordNotFoundError,
    StoreError,
)

logger = get_logger(__name__)


def _error(status_code: int, detail: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail, **extra})


async def _validation_error(request: Request, exc: ContactValidationError) -> JSONResponse:
    return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, str(exc), field=exc.field)


async def _not_found(request: Request, exc: RecordNotFoundError) -> JSONResponse:
    return _error(status.HTTP_404_NOT_FOUND, str(exc))


async def _confirmation_required(request: Request, exc: ConfirmationRequiredError) -> JSONResponse:
    return _error(status.HTTP_409_CONFLICT, str(exc), confirmation_required=True)


async def _in_flight(request: Request, exc: OperationInFlightError) -> JSONResponse:
    return _error(status.HTTP_409_CONFLICT, str(exc))


async def _not_authenticated(request: Request, exc: NotAuthenticatedError) -> JSONResponse:
    return _error(status.HTTP_401_UNAUTHORIZED, str(exc))


async def _auth_error(request: Request, exc: AuthError) -> JSONResponse:
    return _error(status.HTTP_401_UNAUTHORIZED, str(exc))


async def _store_error(request: Request, exc: StoreError) -> JSONResponse:
    logger.error("Store operation failed", path=request.url.path, operation=exc.operation, error=str(exc))
    return _error(status.HTTP_502_BAD_GATEWAY, str(exc), operation=exc.operation)


async def _storage_error(request: Request, exc: LocalStorageError) -> JSONResponse:
    logger.error("Local storage failed", path=request.url.path, operation=exc.operation, error=str(exc))
    return _error(status.HTTP_503_SERVICE_UNAVAILABLE, str(exc))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ContactValidationError, _validation_error)
    app.add_exception_handler(RecordNotFoundError, _not_found)
    app.add_exception_handler(ConfirmationRequiredError, _confirmation_required)
    app.add_exception_handler(NotAuthenticatedError, _not_authenticated)
    app.add_exception_handler(OperationInFlightError, _in_flight)
    app.add_exception_handler(AuthError, _auth_error)
    app.add_exception_handler(StoreError, _store_error)
    app.add_exception_handler(LocalStorageError, _storage_error)
