from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from control_center.config import settings
from control_center.database import engine, init_db
from control_center.logging_config import setup_logging
from control_center.middleware.logging import LoggingMiddleware
from control_center.middleware.rate_limit import limiter
from control_center.routers import bots, commands, templates
from control_center.services.encryption import get_token_cipher

setup_logging()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and derive the token key before serving requests."""
    init_db(bind=engine)
    # Derive once at startup so a missing ENCRYPTION_KEY is reported immediately
    get_token_cipher()
    logger.info("application_started")
    yield
    logger.info("application_stopped")


app = FastAPI(
    title="Discord Bot Control Center",
    description="Register Discord bots, manage their commands and templates",
    version="0.1.0",
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Return a JSON 500 that still carries the request's correlation ID."""
    correlation_id = structlog.contextvars.get_contextvars().get("correlation_id")
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        error_type=type(exc).__name__,
        exc_info=exc,
    )
    headers = {"X-Correlation-ID": correlation_id} if correlation_id else None
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error"},
        headers=headers,
    )


# Request logging (innermost, so the correlation ID is bound for every handler)
app.add_middleware(LoggingMiddleware)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(bots.router, prefix="/api/v1", tags=["bots"])
app.include_router(commands.router, prefix="/api/v1", tags=["commands"])
app.include_router(templates.router, prefix="/api/v1", tags=["templates"])


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
