"""FastAPI application factory and error mapping."""

from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from bill_ledger import __version__
from bill_ledger.api.routes import router
from bill_ledger.audit import configure_logging
from bill_ledger.config import get_settings, validate_all_settings
from bill_ledger.errors import (
    BillNotFoundError,
    ConcurrentModificationError,
    InvalidArgumentError,
    ReferenceNotFoundError,
)
from bill_ledger.orchestrator import create_app_components
from bill_ledger.repository import BillRepository
from bill_ledger.services.storage import StorageError


logger = structlog.get_logger(__name__)


async def _invalid_argument(request: Request, exc: InvalidArgumentError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"detail": exc.message, "field": exc.field},
    )


async def _not_found(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def _conflict(request: Request, exc: ConcurrentModificationError) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": str(exc)})


async def _storage_failure(request: Request, exc: StorageError) -> JSONResponse:
    """Record the failure in the audit trail; the caller only sees a 500."""
    repository: BillRepository = request.app.state.bill_repository
    await repository.audit_logger.log_error(
        error_type=type(exc).__name__,
        error_message=str(exc),
        details={"method": request.method, "path": request.url.path},
        correlation_id=getattr(request.state, "correlation_id", None),
    )
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


def create_app(repository: Optional[BillRepository] = None) -> FastAPI:
    """
    Build the HTTP application.

    Settings are checked first. An invalid configuration is logged with
    the reason and then fails startup when the component that needs it
    is built.

    Args:
        repository: Serve this repository instead of one built from settings.
    """
    settings_status = validate_all_settings()
    if not all(v for k, v in settings_status.items() if not k.endswith("_error")):
        logger.error("settings_invalid", **settings_status)

    app_settings = get_settings().app
    configure_logging(app_settings.log_level)

    if repository is None:
        repository = create_app_components()

    app = FastAPI(
        title="Bill Ledger",
        version=__version__,
        debug=app_settings.debug_mode,
    )
    app.state.bill_repository = repository
    app.state.settings_status = settings_status

    app.add_exception_handler(InvalidArgumentError, _invalid_argument)
    app.add_exception_handler(BillNotFoundError, _not_found)
    app.add_exception_handler(ReferenceNotFoundError, _not_found)
    app.add_exception_handler(ConcurrentModificationError, _conflict)
    app.add_exception_handler(StorageError, _storage_failure)

    app.include_router(router, prefix=app_settings.api_prefix)

    @app.get("/health")
    async def health() -> dict:
        status = app.state.settings_status
        healthy = all(v for k, v in status.items() if not k.endswith("_error"))
        return {
            "status": "ok" if healthy else "degraded",
            "version": __version__,
            "settings": status,
        }

    return app
