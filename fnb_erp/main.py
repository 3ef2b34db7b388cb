from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from fnb_erp.core.config import settings
from fnb_erp.core.errors import WorkflowError
from fnb_erp.core.observability import (
    http_exception_handler,
    request_logging_middleware,
    setup_observability,
    unhandled_exception_handler,
    validation_exception_handler,
    workflow_error_handler,
)
from fnb_erp.db.session import engine
from fnb_erp.routers import internal_requests, inventory, purchase_orders, receiving, transfers

app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    description=(
        "Inventory movement and approval workflows for multi-location food & beverage operations.\n\n"
        "Authenticate with a bearer access token issued by the identity provider; "
        "every workflow action is checked against the caller's role permissions."
    ),
    swagger_ui_parameters={
        "persistAuthorization": True,
        "displayRequestDuration": True,
        "defaultModelsExpandDepth": 1,
    },
    openapi_tags=[
        {"name": "health", "description": "Service status and quick links."},
        {"name": "purchase-orders", "description": "Purchase order drafting, approval and dispatch."},
        {"name": "receiving", "description": "Three-stage goods receiving: procurement, QC and warehouse."},
        {"name": "internal-requests", "description": "Outlet stock requests, issuing and confirmation."},
        {"name": "transfers", "description": "Stock transfers between locations with value-based approval."},
        {"name": "inventory", "description": "Stock positions, transaction history, valuation and adjustments."},
    ],
)

setup_observability()
app.middleware("http")(request_logging_middleware)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(WorkflowError, workflow_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

CORS_EXPOSED_HEADERS = ["X-Request-ID", "X-API-Timeout-Hint-Ms"]


def _cors_options() -> dict:
    origins = settings.cors_origins or ["http://localhost:3000"]
    wildcard = "*" in origins
    origin_regex = settings.cors_origin_regex
    if origin_regex is None and settings.env.lower().strip() in {"dev", "development", "staging", "stage"}:
        # any localhost port
        origin_regex = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$"
    return {
        "allow_origins": ["*"] if wildcard else origins,
        "allow_origin_regex": origin_regex,
        "allow_credentials": not wildcard,
        "allow_methods": ["GET", "POST", "PUT", "OPTIONS"],
        "allow_headers": ["Authorization", "Content-Type", "X-Request-ID"],
        "expose_headers": CORS_EXPOSED_HEADERS,
    }


app.add_middleware(CORSMiddleware, **_cors_options())

app.include_router(purchase_orders.router)
app.include_router(receiving.router)
app.include_router(internal_requests.router)
app.include_router(transfers.router)
app.include_router(inventory.router)


@app.get("/", tags=["health"])
def root():
    return {
        "app": settings.app_name,
        "docs": "/docs",
        "redoc": "/redoc",
        "health": "/health",
        "ready": "/ready",
    }


@app.get("/health", tags=["health"])
def health():
    return {"ok": True}


@app.get("/ready", tags=["health"])
def ready():
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError:
        return JSONResponse(status_code=503, content={"ok": False, "database": engine.dialect.name})
    return {"ok": True, "database": engine.dialect.name}
