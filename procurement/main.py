"""
Main application entry point.

This module initializes the FastAPI application and includes all routers.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from procurement.core.config import settings
from procurement.core.exceptions import ProcurementError
from procurement.core.logging import logger
from procurement.core.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from procurement.routers.audit import router as audit_router
from procurement.routers.budgets import router as budgets_router
from procurement.routers.departments import router as departments_router
from procurement.routers.health import router as health_router
from procurement.routers.invitations import router as invitations_router
from procurement.routers.requests import router as requests_router
from procurement.routers.roles import router as roles_router
from procurement.routers.suppliers import router as suppliers_router
from procurement.routers.users import router as users_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Actions to run on application startup and shutdown."""
    logger.info(f"Starting {settings.api.title}")
    logger.info(f"Environment: {settings.environment.value}")
    logger.info(f"Debug mode: {settings.debug}")
    logger.info(f"Database URL: {settings.database.url[:20]}...")
    logger.info(f"API Docs available at: http://{settings.api.host}:{settings.api.port}/docs")
    yield
    logger.info(f"Shutting down {settings.api.title}")


app = FastAPI(
    title=settings.api.title,
    description=settings.api.description,
    version=settings.api.version,
    debug=settings.debug,
    lifespan=lifespan,
)

app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.frontend_urls,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
    allow_headers=["*"],
    expose_headers=["*"],
)


@app.exception_handler(ProcurementError)
async def procurement_error_handler(request: Request, exc: ProcurementError) -> JSONResponse:
    """Render domain errors with their status code and structured context."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code} {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} refused: {exc.code} {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


prefix = settings.api.prefix
app.include_router(health_router, prefix=f"{prefix}/health", tags=["health"])
app.include_router(departments_router, prefix=f"{prefix}/departments", tags=["departments"])
app.include_router(budgets_router, prefix=f"{prefix}/budgets", tags=["budgets"])
app.include_router(requests_router, prefix=f"{prefix}/requests", tags=["purchase-requests"])
app.include_router(invitations_router, prefix=f"{prefix}/invitations", tags=["invitations"])
app.include_router(users_router, prefix=f"{prefix}/users", tags=["users"])
app.include_router(roles_router, prefix=f"{prefix}/roles", tags=["roles"])
app.include_router(suppliers_router, prefix=f"{prefix}/suppliers", tags=["suppliers"])
app.include_router(audit_router, prefix=f"{prefix}/audit-logs", tags=["audit-logs"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": settings.api.title,
        "version": settings.api.version,
        "docs": "/docs",
    }
