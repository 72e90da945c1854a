"""
FastAPI Application Entry Point

This module initializes the FastAPI application and configures:
- API routes (link management and the public redirect)
- Middleware (logging, CORS)
- Exception handlers (rate limits, request validation)
- Application metadata
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from shortlinks.api import endpoints
from shortlinks.core.rate_limit import limiter
from shortlinks.core.setting import settings
from shortlinks.db.session import create_tables, engine
from shortlinks.middleware.logging import add_logging_middleware

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Short Links Service",
    description="Custom-slug link shortener with owner-managed links and safe redirects",
    version="1.0.0",
    docs_url="/docs",  # Swagger UI documentation
    redoc_url="/redoc",  # ReDoc documentation
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report malformed requests in the {success, error} envelope."""
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "error": message},
    )


add_logging_middleware(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", tags=["Health"])
async def root():
    """
    Root endpoint for health checks.

    Returns:
        Simple JSON response indicating service is running
    """
    return {
        "message": "Short Links Service",
        "version": "1.0.0",
        "docs": "/docs"
    }


@app.get("/health", tags=["Health"])
async def health_check():
    return {"status": "healthy"}


app.include_router(endpoints.router, tags=["Links"])


@app.on_event("startup")
async def startup_event():
    """Prepare the schema on startup."""
    if settings.AUTO_CREATE_TABLES:
        await create_tables()
        logger.info("Database tables ensured")


@app.on_event("shutdown")
async def shutdown_event():
    """Release database connections on shutdown."""
    await engine.dispose()
