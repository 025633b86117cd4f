from __future__ import annotations

import logging
import re
from time import perf_counter
from uuid import uuid4

from fastapi import FastAPI, Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._-]{1,128}$")
_LOG = logging.getLogger("tabledata.http")

# JSON-only API: nothing is rendered, framed or embedded.
SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
}


def _request_id_from_header(raw: str | None) -> str:
    value = str(raw or "").strip()
    if value and _REQUEST_ID_RE.fullmatch(value):
        return value
    return uuid4().hex


def _apply_response_headers(response: Response, request_id: str, duration_ms: float) -> None:
    response.headers.update(SECURITY_HEADERS)
    response.headers["Cache-Control"] = "no-store"
    response.headers[REQUEST_ID_HEADER] = request_id
    response.headers["Server-Timing"] = f"app;dur={duration_ms:.1f}"


def install_http_hardening(app: FastAPI) -> None:
    @app.middleware("http")
    async def _http_hardening_middleware(request: Request, call_next):
        request_id = _request_id_from_header(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id
        started_at = perf_counter()

        response = await call_next(request)

        duration_ms = (perf_counter() - started_at) * 1000.0
        _apply_response_headers(response, request_id, duration_ms)
        _LOG.log(
            logging.WARNING if response.status_code >= 500 else logging.INFO,
            "%s %s status=%s duration_ms=%.2f request_id=%s",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            request_id,
        )
        return response
