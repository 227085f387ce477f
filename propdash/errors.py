from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ListViewError(Exception):
    """Base class for list view failures."""

    code = "list_view_error"
    status_code = 400

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details


class UnknownEntityError(ListViewError):
    code = "unknown_entity"
    status_code = 404

    def __init__(self, entity_type: str):
        super().__init__(f"Unregistered entity type: {entity_type}")
        self.entity_type = entity_type


class InvalidSortError(ListViewError):
    code = "invalid_sort"


class InvalidFilterError(ListViewError):
    code = "invalid_filter"


class PreferenceStoreError(ListViewError):
    code = "preference_store_error"
    status_code = 503


class ProviderError(ListViewError):
    """A fetch against the paged-data provider failed.

    ``upstream_status`` is the backend's HTTP status when one was received,
    ``validation_errors`` the ``errors`` object of a Laravel 422 body.
    """

    code = "provider_error"
    status_code = 502

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        validation_errors: dict[str, Any] | None = None,
    ):
        super().__init__(message, details=validation_errors)
        self.upstream_status = status_code
        self.validation_errors = validation_errors

    @property
    def is_validation_error(self) -> bool:
        return bool(self.validation_errors)


def _error_payload(code: str, message: str, details: object, request_id: str | None):
    return {"code": code, "message": message, "details": details, "request_id": request_id}


def _request_id(request: Request) -> str:
    rid = getattr(request.state, "request_id", None)
    return str(rid) if rid else "unknown"


def register_error_handlers(app) -> None:
    @app.exception_handler(ListViewError)
    async def list_view_error_handler(request: Request, exc: ListViewError):
        if exc.status_code >= 500:
            logger.warning(
                "List view error on %s %s: %s",
                request.method,
                request.url.path,
                exc.message,
            )
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_payload(exc.code, exc.message, exc.details, _request_id(request)),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        detail = exc.detail if getattr(exc, "detail", None) is not None else "Request failed"
        message = detail if isinstance(detail, str) else "Request failed"
        details = None if isinstance(detail, str) else detail
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_payload(
                f"http_{exc.status_code}", message, details, _request_id(request)
            ),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = []
        for error in exc.errors():
            error_copy = dict(error)
            error_copy.pop("ctx", None)
            if "input" in error_copy and not isinstance(
                error_copy["input"], (str, int, float, bool, list, dict, type(None))
            ):
                error_copy["input"] = str(error_copy["input"])
            errors.append(error_copy)
        return JSONResponse(
            status_code=422,
            content=_error_payload(
                "validation_error", "Validation error", errors, _request_id(request)
            ),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(
            "Unhandled exception on %s %s",
            request.method,
            request.url.path,
            extra={"request_id": _request_id(request)},
        )
        return JSONResponse(
            status_code=500,
            content=_error_payload(
                "internal_error", "Internal server error", None, _request_id(request)
            ),
        )
