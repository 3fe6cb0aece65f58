from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from gridquery.filters.errors import FilterError, StoreFatalError, StoreTransientError

_LOG = logging.getLogger("gridquery.errors")

RETRY_AFTER_SECONDS = 1


def error_response(exc: FilterError) -> JSONResponse:
    headers = {"Retry-After": str(RETRY_AFTER_SECONDS)} if exc.retryable else None
    return JSONResponse(
        status_code=exc.http_status,
        content={"success": False, "error": exc.to_payload()},
        headers=headers,
    )


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(FilterError)
    async def _filter_error_handler(request: Request, exc: FilterError):
        request_id = getattr(request.state, "request_id", "-")
        if isinstance(exc, StoreFatalError) or (exc.http_status >= 500 and not exc.retryable):
            _LOG.error("%s %s failed code=%s request_id=%s: %s", request.method, request.url.path, exc.code, request_id, exc.message)
        elif isinstance(exc, StoreTransientError):
            _LOG.warning("%s %s transient failure request_id=%s: %s", request.method, request.url.path, request_id, exc.message)
        else:
            _LOG.info("%s %s rejected code=%s request_id=%s", request.method, request.url.path, exc.code, request_id)
        return error_response(exc)
