"""FastAPI application."""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .problem_details import register_problem_handlers
from .routers import (
    auth,
    clients,
    cron,
    invoices,
    milestones,
    notifications,
    order_statuses,
    orders,
    portal,
    proposals,
    settings as settings_router,
    tasks,
    tickets,
    time_entries,
    users,
)

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Create app
app = FastAPI(
    title="ITL OrderFlow",
    version="1.0.0",
    description="Backend API for order, billing and client portal workflows",
)

# Production safety checks (fail closed on insecure config).
if settings.is_production and settings.JWT_SECRET_KEY == "change-me-in-production":
    raise RuntimeError("JWT_SECRET_KEY must be set in production.")
if settings.is_production and not settings.APP_URL:
    raise RuntimeError("APP_URL must be set in production (used in client emails and portal links).")
if settings.is_production and not settings.CRON_SECRET:
    raise RuntimeError("CRON_SECRET must be set in production.")
if settings.is_production and not settings.PORTAL_COOKIE_SECURE:
    raise RuntimeError("PORTAL_COOKIE_SECURE must be true in production (requires HTTPS).")
if settings.is_production and not settings.cors_origins:
    raise RuntimeError("ALLOWED_ORIGINS must be set in production (explicit frontend origin required).")
if settings.is_production and any(origin.strip() == "*" for origin in settings.cors_origins):
    raise RuntimeError("ALLOWED_ORIGINS must be explicit in production (no wildcard when using credentials).")

# CORS
cors_methods = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
cors_headers = ["Authorization", "Content-Type", "X-Portal-Token"]
if not settings.is_production:
    cors_headers = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=cors_methods,
    allow_headers=cors_headers,
)

register_problem_handlers(app)

# Include routers
app.include_router(auth.router, prefix="/api/v1")
app.include_router(users.router, prefix="/api/v1")
app.include_router(clients.router, prefix="/api/v1")
app.include_router(orders.router, prefix="/api/v1")
app.include_router(order_statuses.router, prefix="/api/v1")
app.include_router(milestones.router, prefix="/api/v1")
app.include_router(tasks.router, prefix="/api/v1")
app.include_router(time_entries.router, prefix="/api/v1")
app.include_router(invoices.router, prefix="/api/v1")
app.include_router(proposals.router, prefix="/api/v1")
app.include_router(tickets.router, prefix="/api/v1")
app.include_router(notifications.router, prefix="/api/v1")
app.include_router(settings_router.router, prefix="/api/v1")
app.include_router(portal.router, prefix="/api/v1")
# Cron lives outside the versioned API; schedulers call a fixed path.
app.include_router(cron.router)


@app.get("/api/v1/system/health")
def health_check():
    """Health check endpoint."""
    return {
        "status": "ok",
        "version": "1.0.0",
    }


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "message": "ITL OrderFlow API",
        "version": "1.0.0",
        "docs": "/docs",
    }
