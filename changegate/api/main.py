import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from changegate import __version__
from changegate.api.middleware import RequestLoggingMiddleware
from changegate.api.routers import approvals, health, items, users
from changegate.api.schemas.approvals import ApprovalRequestResponse
from changegate.api.schemas.common import ErrorResponse
from changegate.common.logger import configure_logging
from changegate.core.config import get_settings
from changegate.core.errors import (
    ApprovalError,
    ConfigurationError,
    ConflictError,
    ExecutionFailedError,
    InvalidRequestError,
    NotFoundError,
)
from changegate.db.session import init_db

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings)
    init_db()
    logger.info(f"{settings.app_name} {__version__} started")
    yield


app = FastAPI(
    title=settings.app_name,
    description="Multi-party approval workflow for changes to business items",
    version=__version__,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.debug else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Request logging - one line per API call
app.add_middleware(RequestLoggingMiddleware)

ERROR_STATUS = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ExecutionFailedError, status.HTTP_409_CONFLICT),
    (ConflictError, status.HTTP_409_CONFLICT),
    (InvalidRequestError, status.HTTP_400_BAD_REQUEST),
    (ConfigurationError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def status_for(exc: ApprovalError) -> int:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@app.exception_handler(ApprovalError)
async def approval_error_handler(request: Request, exc: ApprovalError):
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")

    content = ErrorResponse(
        error=type(exc).__name__,
        detail=exc.message,
        code=exc.code,
    ).model_dump()

    if isinstance(exc, ExecutionFailedError) and exc.request is not None:
        content["request"] = ApprovalRequestResponse.model_validate(exc.request).model_dump(mode="json")

    return JSONResponse(status_code=status_code, content=content)


# Include routers
app.include_router(health.router)
app.include_router(users.router, prefix="/api")
app.include_router(approvals.router, prefix="/api")
app.include_router(items.router, prefix="/api")


@app.get("/")
def root():
    return {
        "name": settings.app_name,
        "version": __version__,
        "docs": "/docs" if settings.debug else None,
    }
