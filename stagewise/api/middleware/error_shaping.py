from __future__ import annotations

import logging
import traceback
from typing import Any, Callable, Dict, Tuple, Type

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

from stagewise.core.errors import (
    CircularDependencyError,
    ManifestError,
    NamingError,
    SqlGenerationError,
    StagewiseError,
    StoreError,
    UnknownStageError,
)

log = logging.getLogger("stagewise.errors")

# First matching class wins; subclasses must precede their bases.
ERROR_STATUS: Tuple[Tuple[Type[StagewiseError], int], ...] = (
    (UnknownStageError, 404),
    (CircularDependencyError, 409),
    (ManifestError, 422),
    (NamingError, 422),
    (SqlGenerationError, 422),
    (StoreError, 400),
    (StagewiseError, 422),
)


def status_for(exc: StagewiseError) -> int:
    for cls, status in ERROR_STATUS:
        if isinstance(exc, cls):
            return status
    return 422


def error_detail(exc: StagewiseError) -> Any:
    """Plain message, or a dict when the error carries structured context."""
    if isinstance(exc, ManifestError):
        return {"message": str(exc), "problems": exc.problems}
    if isinstance(exc, CircularDependencyError):
        return {"message": str(exc), "nodes": exc.nodes}
    return str(exc)


class SafeErrorMiddleware(BaseHTTPMiddleware):
    """
    - Convention errors become 4xx JSON bodies (see ERROR_STATUS)
    - Anything else is a 500 without stack traces
    - request_id is echoed in both cases
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except StagewiseError as e:
            rid = self._request_id(request)
            status = status_for(e)
            log.info("%s status=%s rid=%s path=%s: %s", type(e).__name__, status, rid, request.url.path, e)
            return self._response(status, {"detail": error_detail(e)}, rid)
        except Exception as e:
            rid = self._request_id(request)
            log.error(
                "Unhandled error: %s rid=%s path=%s\n%s",
                str(e),
                rid,
                request.url.path,
                traceback.format_exc(),
            )
            return self._response(500, {"detail": "Internal Server Error"}, rid)

    @staticmethod
    def _request_id(request: Request):
        return getattr(request.state, "request_id", None) or request.headers.get("x-request-id")

    @staticmethod
    def _response(status: int, payload: Dict[str, Any], rid) -> JSONResponse:
        if rid:
            payload["request_id"] = rid
        headers = {"X-Request-Id": rid} if rid else None
        return JSONResponse(status_code=status, content=payload, headers=headers)
