from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from lotledger.core.observability import (
    http_exception_handler,
    ledger_exception_handler,
    request_logging_middleware,
    setup_observability,
    unhandled_exception_handler,
    validation_exception_handler,
)
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from lotledger.core.config import settings
from lotledger.core.errors import LedgerError
from lotledger.db.session import engine
from lotledger.routers import auth, categories, history, inbound, inventory, outbound

app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    description=(
        "Multi-tenant inventory ledger with inbound review and lot-based outbound allocation.\n\n"
        "Swagger quick test flow:\n"
        "1. Call `POST /auth/login` with the administrator credentials, or click **Authorize** "
        "(OAuth token URL: `/auth/token`).\n"
        "2. Agents skip login and send the `X-API-Key` header.\n"
        "3. Work under `/tenants/{tenant_id}/...`."
    ),
    swagger_ui_parameters={
        "persistAuthorization": True,
        "displayRequestDuration": True,
        "defaultModelsExpandDepth": 1,
    },
    openapi_tags=[
        {"name": "health", "description": "Service status and quick links."},
        {"name": "auth", "description": "Administrator tokens and actor resolution."},
        {"name": "categories", "description": "Goods categories and their extra-field schemas."},
        {"name": "inbound", "description": "Inbound movements, review, edits and bulk import."},
        {"name": "outbound", "description": "Lot-based outbound allocation."},
        {"name": "inventory", "description": "Available lots, lot ledger, balances and integrity diagnostics."},
        {"name": "history", "description": "Per-record audit trail."},
    ],
)

setup_observability()
app.middleware("http")(request_logging_middleware)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(LedgerError, ledger_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

_LOCAL_ORIGIN_REGEX = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$"


def _cors_options() -> dict:
    origins = settings.cors_origins or ["http://localhost:3000"]
    wildcard = "*" in origins
    origin_regex = settings.cors_origin_regex
    if origin_regex is None and settings.env.lower().strip() in {"dev", "development"}:
        origin_regex = _LOCAL_ORIGIN_REGEX
    return {
        "allow_origins": ["*"] if wildcard else origins,
        "allow_origin_regex": origin_regex,
        "allow_credentials": not wildcard,
        "allow_methods": ["GET", "POST", "PATCH", "OPTIONS"],
        "allow_headers": ["Authorization", "Content-Type", "X-API-Key", "X-Request-ID"],
        "expose_headers": ["X-Request-ID", "X-API-Timeout-Hint-Ms"],
    }


app.add_middleware(CORSMiddleware, **_cors_options())

for module in (auth, categories, inbound, outbound, inventory, history):
    app.include_router(module.router)


@app.get("/", tags=["health"])
def root():
    return {
        "app": settings.app_name,
        "docs": "/docs",
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
        return {"ok": False}
    return {"ok": True}
