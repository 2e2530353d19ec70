"""Main FastAPI application module.

This module initializes the FastAPI application, maps service errors to the
response envelope and registers all route handlers.
"""

import logging
import time
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from deptrecords.api.routes import auth, logs, students, users
from deptrecords.config import (
    API_HOST,
    API_PORT,
    CORS_ALLOWED_ORIGINS,
    ENVIRONMENT,
    IS_DEVELOPMENT,
)
from deptrecords.core.database import init_db
from deptrecords.core.exceptions import RecordsApiError
from deptrecords.core.logging_config import setup_logging

setup_logging()
logger = logging.getLogger(__name__)

APP_TITLE = "Department Student Records API"
APP_VERSION = "1.0.0"
APP_DESCRIPTION = (
    "Backend API for managing departmental student grade records, "
    "user accounts and the activity audit trail."
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting %s (environment=%s)", APP_TITLE, ENVIRONMENT)
    init_db()
    yield
    logger.info("Shutting down %s", APP_TITLE)


# Initialize FastAPI application
app = FastAPI(
    title=APP_TITLE,
    description=APP_DESCRIPTION,
    version=APP_VERSION,
    lifespan=lifespan,
)

# Configure CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s -> %d (%.1fms)",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
    )
    return response


# Exception handlers
@app.exception_handler(RecordsApiError)
async def records_api_error_handler(request: Request, exc: RecordsApiError):
    content = {"success": False, "message": exc.message}
    errors = getattr(exc, "errors", None)
    if errors:
        content["errors"] = errors
    logger.warning(
        "%s %s -> %d: %s", request.method, request.url.path, exc.status_code, exc.message
    )
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    errors = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = error.get("msg", "Invalid value")
        errors.append(f"{location}: {message}" if location else message)
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": "Validation error", "errors": errors},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    if exc.status_code == 404 and message == "Not Found":
        message = f"Route {request.url.path} not found"
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": message},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception: %s", exc, exc_info=True)
    content = {"success": False, "message": "Internal server error"}
    if IS_DEVELOPMENT:
        content["message"] = str(exc) or content["message"]
        content["stack"] = traceback.format_exception(type(exc), exc, exc.__traceback__)
    return JSONResponse(status_code=500, content=content)


# Register route handlers
app.include_router(auth.router)
app.include_router(students.router)
app.include_router(users.router)
app.include_router(logs.router)


@app.get("/", summary="API root", tags=["Info"])
def root() -> dict:
    """API root, returns API information and documentation links.

    Returns:
        Dictionary with API information and documentation links.
    """
    return {
        "name": APP_TITLE,
        "version": APP_VERSION,
        "description": APP_DESCRIPTION,
        "docs": {
            "swagger": "/docs",
            "redoc": "/redoc",
        },
        "health": "/api/health",
    }


@app.get("/api/health", summary="Health check", tags=["Health"])
def health() -> dict:
    """Health check endpoint.

    Returns:
        Dictionary with status "ok".
    """
    return {"status": "ok", "environment": ENVIRONMENT}


# --- Startup code for direct execution ---
if __name__ == "__main__":
    import uvicorn

    server_url = f"http://{API_HOST}:{API_PORT}"
    logger.info("API server: %s", server_url)
    logger.info("API docs: %s/docs", server_url)

    uvicorn.run("deptrecords.app:app", host=API_HOST, port=API_PORT, reload=IS_DEVELOPMENT)
