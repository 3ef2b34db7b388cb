import json
import logging
import time
import traceback
from contextvars import ContextVar
from uuid import uuid4

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from fnb_erp.core.config import settings
from fnb_erp.core.errors import WorkflowError

request_id_ctx: ContextVar[str] = ContextVar("request_id", default="-")
logger = logging.getLogger("fnb_erp.api")

_HTTP_ERROR_CODES = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
    422: "validation_error",
}


def setup_observability() -> None:
    """Route every ``fnb_erp.*`` logger to stderr as one JSON object per line."""
    root = logging.getLogger("fnb_erp")
    if root.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(handler)
    root.setLevel(settings.log_level)
    root.propagate = False


def log_event(target: logging.Logger, level: int, event: str, **fields) -> None:
    if not target.isEnabledFor(level):
        return
    payload = {"event": event, "request_id": request_id_ctx.get(), **fields}
    target.log(level, json.dumps(payload, default=str))


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or request.headers.get("x-request-id") or request_id_ctx.get()


def _error_response(
    request: Request,
    status_code: int,
    code: str,
    message: str,
    *,
    details: list[dict] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    body = {
        "code": code,
        "message": message,
        "request_id": _request_id(request),
        "path": request.url.path,
        "details": details,
    }
    return JSONResponse(status_code=status_code, headers=headers, content={"error": body})


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
        # actor fields are filled in by the auth dependency once the bearer token resolves
        log_event(
            logger,
            logging.INFO,
            "request",
            method=request.method,
            path=request.url.path,
            status_code=status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
            tenant_id=getattr(request.state, "tenant_id", None),
            actor_user_id=getattr(request.state, "actor_user_id", None),
        )
        request_id_ctx.reset(token)

    response.headers["X-Request-ID"] = request_id
    response.headers["X-API-Timeout-Hint-Ms"] = str(settings.api_timeout_hint_ms)
    return response


async def workflow_error_handler(request: Request, exc: WorkflowError):
    log_event(
        logger,
        logging.INFO,
        "workflow_error",
        path=request.url.path,
        code=exc.code,
        status_code=exc.status_code,
        message=exc.message,
        actor_user_id=getattr(request.state, "actor_user_id", None),
    )
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return _error_response(request, exc.status_code, exc.code, exc.message, headers=headers)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    issues = []
    for err in exc.errors():
        # drop the leading "body"/"query" segment so clients see e.g. "lines.0.quantity"
        parts = [str(part) for part in err.get("loc", ())][1:]
        issues.append(
            {
                "field": ".".join(parts) or "body",
                "message": err.get("msg", "Invalid value"),
                "type": err.get("type"),
            }
        )
    return _error_response(request, 422, "validation_error", "Validation failed", details=issues)


async def http_exception_handler(request: Request, exc: HTTPException):
    if isinstance(exc.detail, str):
        message, details = exc.detail, None
    else:
        message, details = "HTTP error", exc.detail
    return _error_response(
        request,
        exc.status_code,
        _HTTP_ERROR_CODES.get(exc.status_code, "http_error"),
        message,
        details=details,
        headers=exc.headers,
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    log_event(
        logger,
        logging.ERROR,
        "unhandled_exception",
        path=request.url.path,
        error=repr(exc),
        traceback=traceback.format_exc(limit=10),
    )
    return _error_response(request, 500, "internal_error", "Internal server error")
