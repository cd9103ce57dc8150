"""
FastAPI Application Entry Point

Sets up the FastAPI app, configures middleware and exception handlers,
and includes all routers.
"""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from postcode_verifier.config import settings
from postcode_verifier.database import database
from postcode_verifier.routers import auth, health, validate
from postcode_verifier.services.auspost import auspost_client

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    - Startup: open the database pool and make sure the schema exists
    - Shutdown: close the AusPost client and the database pool
    """
    logger.info("Starting Postcode Verifier...")
    await database.connect()
    await database.init_schema()
    logger.info("Postcode Verifier started successfully")

    yield

    logger.info("Shutting down Postcode Verifier...")
    await auspost_client.aclose()
    await database.disconnect()
    logger.info("Postcode Verifier stopped")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    # Postcode Verifier API

    Checks that an Australian postcode, suburb and state belong together.

    - **Accounts**: email + password registration, 7 day JWT sessions
      delivered as an `auth_token` cookie or a Bearer token
    - **Validation**: two AusPost lookups (suburb, then postcode) with the
      matched locality's coordinates returned for mapping
    - **Verify log**: every attempt is appended to PostgreSQL and can be
      listed by its owner
    """,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    openapi_url="/openapi.json" if settings.debug else None,
    lifespan=lifespan
)


# ============================================================================
# Middleware
# ============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_request_timing(request: Request, call_next):
    """Add request timing header for monitoring."""
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    return response


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming requests."""
    logger.debug(f"{request.method} {request.url.path}")
    response = await call_next(request)
    return response


# ============================================================================
# Exception Handlers
# ============================================================================

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are client errors (400), not 422."""
    logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler.

    Returns generic error responses to prevent information leakage.
    Detailed errors are logged internally.
    """
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )


# ============================================================================
# Include Routers
# ============================================================================

# Registration, login, logout
app.include_router(auth.router)

# Address validation and verify log history
app.include_router(validate.router)

# Health check and monitoring
app.include_router(health.router)


# ============================================================================
# Root Endpoint
# ============================================================================

@app.get("/", tags=["root"])
async def root():
    """Basic service information."""
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "status": "running"
    }


# ============================================================================
# Development Server
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "postcode_verifier.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        workers=1 if settings.debug else settings.workers
    )
