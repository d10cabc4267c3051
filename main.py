"""
Application entry point for the learning path backend.

Design choices:
- Mounts the API router using a configurable prefix from core.config Settings.
- Every error, including FastAPI's own, is rendered as {"success": false, "error": ...}.
- Request validation failures are reported as 400 rather than 422.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.v1.routes import router as api_router
from core.config import get_settings
from core.database import init_db
from core.logging_config import configure_logging
from core.messages import message
from middleware.request_context import RequestContextMiddleware
from schemas.api import ErrorResponse

_settings = get_settings()

# Configure structured logging
configure_logging()

app = FastAPI(title="Learning Path Backend", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestContextMiddleware, exclude_paths=["/docs", "/openapi.json"])


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=str(exc.detail)).model_dump(),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logging.getLogger("api").info("request_invalid", extra={"path": request.url.path, "error": str(exc.errors())})
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(error=message("invalid_request", request.query_params.get("language"))).model_dump(),
    )


@app.get("/")
async def root():
    return {"message": "Server running"}


# Mount API router
app.include_router(api_router, prefix=_settings.api_v1_prefix)


@app.on_event("startup")
async def startup_event():
    """Create the database tables if they do not exist yet."""
    logger = logging.getLogger("startup")
    init_db()
    logger.info("database_ready")
