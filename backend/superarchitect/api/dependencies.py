"""Shared FastAPI dependencies and the error response helper."""

from __future__ import annotations

from functools import lru_cache

from fastapi.responses import JSONResponse

from superarchitect.config import settings
from superarchitect.generators.base import Generator
from superarchitect.models.contracts import ErrorResponse

MOCK_CALL_HISTORY = 50


@lru_cache(maxsize=1)
def get_generator() -> Generator:
    """Process-wide generator, chosen by USE_MOCK_GENERATOR.

    Tests replace it through ``app.dependency_overrides``.
    """
    if settings.use_mock_generator:
        from superarchitect.generators.mock import MockGenerator

        return MockGenerator(max_recorded_calls=MOCK_CALL_HISTORY)

    from superarchitect.generators.gemini import GeminiGenerator

    return GeminiGenerator()


def error_response(
    status: int,
    code: str,
    message: str,
    *,
    retryable: bool = False,
    detail: str | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status,
        content=ErrorResponse(error=code, message=message, retryable=retryable, detail=detail).model_dump(
            exclude_none=True
        ),
    )
