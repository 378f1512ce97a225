"""
FastAPI entrypoint for the Vacation Planner backend application.
"""
import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from planner.core.cache import GroupCache
from planner.core.config import settings
from planner.core.errors import DomainError, InternalError
from planner.core.utils import format_error
from planner.api.router import api_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Vacation Planner API",
    description="Backend API for shared group trips and expenses",
    version="1.0.0"
)

app.state.group_cache = GroupCache(ttl_seconds=settings.GROUP_CACHE_TTL_SECONDS)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    message = exc.message
    if isinstance(exc, InternalError):
        logger.error("Internal error on %s %s: %s", request.method, request.url.path, exc.message)
        message = "Internal server error"
    details = {"code": exc.code}
    if getattr(exc, "requires_device_setup", False):
        details["requires_device_setup"] = True
    return JSONResponse(status_code=exc.status_code, content=format_error(message, details))


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content=format_error("Internal server error", {"code": InternalError.code})
    )


# Include API routes
app.include_router(api_router, prefix="/api")


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"message": "Vacation Planner API is running"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
