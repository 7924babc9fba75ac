import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from superarchitect.api.dependencies import error_response
from superarchitect.api.routes import health, runs, sessions
from superarchitect.api.routes.health import VERSION
from superarchitect.config import settings
from superarchitect.logging import configure_logging

configure_logging()

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "api_startup",
        generator="mock" if settings.use_mock_generator else "gemini",
        visual_concurrency=settings.visual_concurrency,
        item_timeout=settings.item_timeout,
    )
    yield
    cancelled = await runs.cancel_unfinished_runs()
    logger.info("api_shutdown", cancelled_runs=cancelled)


app = FastAPI(
    title="SuperArchitect API",
    version=VERSION,
    docs_url="/docs",
    redoc_url=None,
    lifespan=lifespan,
)


def _with_request_id(response: JSONResponse, request: Request) -> JSONResponse:
    response.headers["X-Request-ID"] = getattr(
        request.state, "request_id", request.headers.get("X-Request-ID", "")
    )
    return response


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Bind a request ID for log correlation and echo it in X-Request-ID.

    Runs submitted during the request inherit it alongside their run_id.
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id)
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """ErrorResponse JSON instead of FastAPI's default {"detail": [...]}."""
    messages = [f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()]
    return _with_request_id(error_response(422, "validation_error", "; ".join(messages)), request)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error_type=type(exc).__name__,
        exc_info=exc,
    )
    response = error_response(500, "internal_error", "An unexpected error occurred", retryable=True)
    return _with_request_id(response, request)


app.include_router(health.router)
app.include_router(runs.router, prefix="/api/v1")
app.include_router(sessions.router, prefix="/api/v1")
