import json
import logging
import re
import time
import traceback
from contextvars import ContextVar
from uuid import uuid4

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from lotledger.core.config import settings
from lotledger.core.errors import LedgerError

request_id_ctx: ContextVar[str] = ContextVar("request_id", default="-")
logger = logging.getLogger("lotledger.api")
ledger_logger = logging.getLogger("lotledger.ledger")

_TENANT_PATH = re.compile(r"^/tenants/([^/]+)")

_HTTP_ERROR_CODES = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
    422: "validation_error",
    503: "store_unavailable",
}


def setup_observability() -> None:
    for target in (logger, ledger_logger):
        if target.handlers:
            continue
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(message)s"))
        target.addHandler(handler)
        target.setLevel(logging.INFO)
        target.propagate = False


def get_request_id() -> str:
    return request_id_ctx.get()


def _emit(target: logging.Logger, level: int, event: str, **fields) -> None:
    target.log(level, json.dumps({"event": event, **fields}, default=str))


def log_ledger_event(event: str, **fields) -> None:
    """One JSON line per ledger state change or diagnostics pass."""
    _emit(ledger_logger, logging.INFO, event, request_id=get_request_id(), **fields)


def _request_id_for(request: Request) -> str:
    return (
        getattr(request.state, "request_id", None)
        or request.headers.get("x-request-id")
        or get_request_id()
    )


def _tenant_for(path: str) -> str | None:
    match = _TENANT_PATH.match(path)
    return match.group(1) if match else None


def _error_response(
    *,
    status_code: int,
    request: Request,
    code: str,
    message: str,
    details: list[dict] | dict | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        headers=headers,
        content={
            "error": {
                "code": code,
                "message": message,
                "request_id": _request_id_for(request),
                "path": request.url.path,
                "details": details,
            }
        },
    )


async def request_logging_middleware(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or str(uuid4())
    request.state.request_id = request_id
    token = request_id_ctx.set(request_id)
    started = time.perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
    finally:
        _emit(
            logger,
            logging.INFO,
            "request",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            tenant_id=_tenant_for(request.url.path),
            status_code=status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        request_id_ctx.reset(token)

    response.headers["X-Request-ID"] = request_id
    response.headers["X-API-Timeout-Hint-Ms"] = str(settings.api_timeout_hint_ms)
    return response


async def ledger_exception_handler(request: Request, exc: LedgerError):
    # 5xx means the store misbehaved; everything else is a caller mistake.
    _emit(
        logger,
        logging.ERROR if exc.status_code >= 500 else logging.INFO,
        "ledger_error",
        request_id=_request_id_for(request),
        path=request.url.path,
        tenant_id=_tenant_for(request.url.path),
        code=exc.code,
        error=exc.message,
    )
    return _error_response(
        status_code=exc.status_code,
        request=request,
        code=exc.code,
        message=exc.message,
        details=exc.details,
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    detail_is_text = isinstance(exc.detail, str)
    return _error_response(
        status_code=exc.status_code,
        request=request,
        code=_HTTP_ERROR_CODES.get(exc.status_code, "http_error"),
        message=exc.detail if detail_is_text else "HTTP error",
        details=None if detail_is_text else exc.detail,
        headers=exc.headers,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = []
    for err in exc.errors():
        location = [str(part) for part in err.get("loc", []) if part != "body"]
        details.append(
            {
                "field": ".".join(location) if location else "body",
                "message": err.get("msg", "Invalid value"),
                "type": err.get("type"),
            }
        )
    return _error_response(
        status_code=422,
        request=request,
        code="validation_error",
        message="Validation failed",
        details=details,
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    _emit(
        logger,
        logging.ERROR,
        "unhandled_exception",
        request_id=_request_id_for(request),
        path=request.url.path,
        error=str(exc),
        traceback="".join(traceback.format_exception(type(exc), exc, exc.__traceback__, limit=10)),
    )
    return _error_response(
        status_code=500,
        request=request,
        code="internal_error",
        message="Internal server error",
    )
