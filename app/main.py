"""FastAPI application entrypoint. No business logic; only wiring, error envelopes and middleware."""

from dotenv import load_dotenv

load_dotenv()

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.v1 import router as v1_router
from app.core.config import settings
from app.core.database import SessionLocal
from app.models import RoleNames
from app.schemas.common import ProblemDetails
from app.services.credential_store import UserStore
from app.services.errors import FailureReason, ServiceError

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)

PROBLEM_CONTENT_TYPE = "application/problem+json"

STATUS_BY_REASON = {
    FailureReason.CLIENT_ERROR: 400,
    FailureReason.ITEM_NOT_FOUND: 404,
    FailureReason.INTERNAL_ERROR: 500,
}


def problem_response(
    request: Request,
    status_code: int,
    errors: list[str],
    title: str | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Build the problem-details envelope shared by every error response."""
    body = ProblemDetails(
        type=f"https://httpstatuses.io/{status_code}",
        title=title or HTTPStatus(status_code).phrase,
        status=status_code,
        instance=request.url.path,
        errors=errors,
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(),
        media_type=PROBLEM_CONTENT_TYPE,
        headers=headers,
    )


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    status_code = STATUS_BY_REASON.get(exc.reason, 400)
    if status_code >= 500:
        logger.error("Service error on %s: %s", request.url.path, exc.messages)
    return problem_response(request, status_code, exc.messages, title=exc.title)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = str(error.get("msg", "Invalid value")).removeprefix("Value error, ")
        errors.append(f"{field}: {message}" if field else message)
    return problem_response(request, 400, errors, title="One or more validation errors occurred.")


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return problem_response(request, exc.status_code, [detail], headers=getattr(exc, "headers", None))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s", request.url.path)
    return problem_response(request, 500, ["An unexpected error occurred"])


def seed_roles() -> None:
    """Create the built-in roles if they do not exist yet."""
    db = SessionLocal()
    try:
        UserStore(db, settings).ensure_roles(RoleNames.ALL)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    seed_roles()
    yield


app = FastAPI(
    title="Identity API",
    version="0.1.0",
    docs_url="/docs" if settings.SWAGGER_ENABLED else None,
    redoc_url="/redoc" if settings.SWAGGER_ENABLED else None,
    openapi_url="/openapi.json" if settings.SWAGGER_ENABLED else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.APP_ENV == "dev" else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(ServiceError, service_error_handler)
app.add_exception_handler(RequestValidationError, validation_error_handler)
app.add_exception_handler(StarletteHTTPException, http_error_handler)
app.add_exception_handler(Exception, unhandled_error_handler)

app.include_router(v1_router, prefix=settings.API_V1_PREFIX)


@app.get("/")
def root() -> dict[str, str]:
    """Root route; minimal payload for discovery."""
    return {"message": "Identity API"}
