"""
Main application entry point - FastAPI app instance and configuration.
This is where the ASGI application is created and configured.
Run with: uvicorn vetclinic.main:app --reload
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from vetclinic.core.config import settings
from vetclinic.core.errors import ClinicFunctionError, InternalError, InvalidRequest
from vetclinic.core.logging import setup_logging
from vetclinic.routers import google_oauth, meetings, users


setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger("vetclinic.main")

# ---------------------------------------------------------------------------
# CREATE FASTAPI APPLICATION
# ---------------------------------------------------------------------------
app = FastAPI(
    title=settings.APP_NAME,
    debug=settings.DEBUG,
    docs_url="/docs",
    redoc_url="/redoc",
)

# ---------------------------------------------------------------------------
# CORS MIDDLEWARE
# ---------------------------------------------------------------------------
# The clinic dashboards call the functions straight from the browser.
# Preflight (OPTIONS) requests are answered here and never reach a route.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)


# ---------------------------------------------------------------------------
# EXCEPTION HANDLERS
# ---------------------------------------------------------------------------
# Every error body has the shape {"error": message, "kind": kind, ...details}

@app.exception_handler(ClinicFunctionError)
async def clinic_error_handler(request: Request, exc: ClinicFunctionError):
    if exc.status_code >= 500:
        logger.error(f"{exc.kind}: {exc.message}", extra={"path": request.url.path})
    else:
        logger.info(f"{exc.kind}: {exc.message}", extra={"path": request.url.path})
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    error = InvalidRequest("Invalid request body", details={"detail": _validation_messages(exc)})
    return JSONResponse(status_code=error.status_code, content=error.to_body())


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.url.path}")
    error = InternalError("Internal server error")
    return JSONResponse(status_code=error.status_code, content=error.to_body())


def _validation_messages(exc: RequestValidationError) -> list[str]:
    messages = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()))
        messages.append(f"{location}: {err.get('msg')}")
    return messages


# ---------------------------------------------------------------------------
# REGISTER ROUTERS
# ---------------------------------------------------------------------------
# meetings.router: /functions/create-meet
# google_oauth.router: /functions/oauth-google
# users.router: /functions/delete-user
app.include_router(meetings.router)
app.include_router(google_oauth.router)
app.include_router(users.router)


# ---------------------------------------------------------------------------
# HEALTH CHECK ENDPOINT
# ---------------------------------------------------------------------------
@app.get("/health", tags=["health"])
def health_check():
    """
    Liveness probe. Does not touch the ledger database or any upstream.

    Returns:
        {"status": "ok"}
    """
    return {"status": "ok"}
