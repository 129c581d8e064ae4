"""FastAPI application setup and configuration."""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from baydigital import __version__
from baydigital.api.dependencies import close_clients
from baydigital.api.middleware.error_handler import (
    domain_exception_handler,
    generic_exception_handler,
    http_exception_handler,
    permission_exception_handler,
    validation_exception_handler,
)
from baydigital.api.middleware.logging import LoggingMiddleware, setup_logging
from baydigital.api.routes import (
    account,
    admin,
    content,
    health,
    notifications,
    sites,
    social,
    stock_images,
    submissions,
    tickets,
    webhooks,
)
from baydigital.services.database import initialize_database, shutdown_database
from baydigital.services.errors import BayDigitalError


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager.

    Configures logging and the database on startup; releases pooled
    connections and vendor clients on shutdown.
    """
    setup_logging(
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_format=os.getenv("LOG_FORMAT", "json"),
    )

    database_url = os.getenv("DATABASE_URL")
    if database_url:
        db_manager = initialize_database(database_url)
        await db_manager.initialize_async()

    yield

    await close_clients()
    await shutdown_database()


app = FastAPI(
    title="Bay Digital Dashboard API",
    description="Customer dashboard backend: billing, support tickets, notifications, "
    "social scheduling, AI content and stock images",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# ========== CORS Configuration ==========

allowed_origins = os.getenv("CORS_ALLOWED_ORIGINS", "*").split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
    allow_headers=["Authorization", "Content-Type", "stripe-signature", "X-Request-ID"],
)

# ========== Custom Middleware ==========

app.add_middleware(LoggingMiddleware)

# ========== Exception Handlers ==========

app.add_exception_handler(BayDigitalError, domain_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(ValidationError, validation_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(PermissionError, permission_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

# ========== Route Registration ==========

app.include_router(health.router)
app.include_router(account.router)
app.include_router(sites.router)
app.include_router(webhooks.router)
app.include_router(notifications.router)
app.include_router(tickets.router)
app.include_router(admin.router)
app.include_router(social.router)
app.include_router(content.router)
app.include_router(stock_images.router)
app.include_router(submissions.router)

# ========== Root Endpoint ==========


@app.get(
    "/",
    tags=["root"],
    summary="API root",
    description="Returns API information and available endpoints",
)
async def root() -> dict:
    """API root endpoint.

    Returns:
        API information and version
    """
    return {
        "service": "Bay Digital Dashboard API",
        "version": __version__,
        "documentation": {
            "openapi": "/openapi.json",
            "swagger": "/docs",
            "redoc": "/redoc",
        },
        "health": {
            "liveness": "/v1/liveness",
            "readiness": "/v1/readiness",
            "health": "/v1/health",
        },
    }


# ========== Development Server ==========

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "baydigital.api.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8080")),
        reload=True,
        log_level="info",
    )
