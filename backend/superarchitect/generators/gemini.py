"""Gemini-backed generator.

Text requests go to ``models.generate_content`` and image requests to
``models.generate_images``. The SDK calls are synchronous, so they run in the
default thread pool. Timeouts are applied by the caller (the worker pool or
the stage), not here.
"""

from __future__ import annotations

import asyncio

import structlog
from google import genai
from google.genai import types

from superarchitect.config import settings
from superarchitect.errors import GenerationError
from superarchitect.generators.base import GenerationRequest, GenerationResult
from superarchitect.generators.cache import ResponseCache
from superarchitect.utils.image import to_data_uri, verify_image_bytes

logger = structlog.get_logger()

IMAGE_MIME_TYPE = "image/jpeg"


def get_client() -> genai.Client:
    """Create a Gemini client using the configured API key."""
    return genai.Client(api_key=settings.google_ai_api_key)


def _to_contents(request: GenerationRequest) -> list[types.Content]:
    """Chat history plus the new prompt as a Gemini contents list."""
    contents = [
        types.Content(
            role="user" if m.role == "user" else "model",
            parts=[types.Part(text=m.content)],
        )
        for m in request.history
    ]
    contents.append(types.Content(role="user", parts=[types.Part(text=request.prompt)]))
    return contents


def _text_config(request: GenerationRequest) -> types.GenerateContentConfig:
    return types.GenerateContentConfig(
        system_instruction=request.system_instruction,
        temperature=request.temperature,
        response_mime_type="application/json" if request.json_output else None,
        seed=request.seed,
    )


def _image_config(request: GenerationRequest) -> types.GenerateImagesConfig:
    return types.GenerateImagesConfig(
        number_of_images=1,
        output_mime_type=IMAGE_MIME_TYPE,
        aspect_ratio=request.aspect_ratio or "1:1",
    )


def _classify_error(task: str, exc: Exception) -> GenerationError:
    """Turn an SDK exception into a GenerationError with a readable message."""
    error_type = type(exc).__name__
    error_msg = str(exc)

    # TODO: Catch typed google.genai exceptions when SDK stabilizes
    if "429" in error_msg or "RESOURCE_EXHAUSTED" in error_msg or "ResourceExhausted" in error_type:
        return GenerationError(f"Gemini rate limited during {task}", retryable=True)
    if "SAFETY" in error_msg or "blocked" in error_msg.lower():
        return GenerationError(f"Content policy violation during {task}: {error_msg[:200]}")
    return GenerationError(f"{task} failed: {error_type}: {error_msg[:200]}", retryable=True)


class GeminiGenerator:
    def __init__(
        self,
        client: genai.Client | None = None,
        *,
        text_model: str | None = None,
        image_model: str | None = None,
        cache: ResponseCache | None = None,
    ) -> None:
        self._client = client
        self.text_model = text_model or settings.text_model
        self.image_model = image_model or settings.image_model
        self.cache = cache if cache is not None else ResponseCache(settings.llm_cache_dir or None)

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            self._client = get_client()
        return self._client

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        try:
            if request.modality == "image":
                return await self._generate_image(request)
            return await self._generate_text(request)
        except GenerationError:
            raise
        except Exception as exc:
            raise _classify_error(request.task, exc) from exc

    async def _generate_text(self, request: GenerationRequest) -> GenerationResult:
        key = request.cache_key()
        cached = self.cache.get_text("gemini_text", key)
        if cached is not None:
            return GenerationResult(text=cached)

        logger.info(
            "gemini_text_start",
            task=request.task,
            model=self.text_model,
            history_turns=len(request.history),
        )
        response = await asyncio.to_thread(
            self.client.models.generate_content,
            model=self.text_model,
            contents=_to_contents(request),
            config=_text_config(request),
        )
        text = response.text
        if not isinstance(text, str) or not text.strip():
            raise GenerationError(f"Gemini returned an empty response for {request.task}")

        self.cache.set_text("gemini_text", key, text)
        return GenerationResult(text=text)

    async def _generate_image(self, request: GenerationRequest) -> GenerationResult:
        key = request.cache_key()
        cached = self.cache.get_bytes("gemini_image", key)
        if cached is not None:
            try:
                return GenerationResult(image_uri=to_data_uri(cached, verify_image_bytes(cached)))
            except GenerationError:
                logger.warning("gemini_cache_corrupt", task=request.task)
                # Fall through to a real call

        logger.info(
            "gemini_image_start",
            task=request.task,
            model=self.image_model,
            aspect_ratio=request.aspect_ratio,
        )
        response = await asyncio.to_thread(
            self.client.models.generate_images,
            model=self.image_model,
            prompt=request.prompt,
            config=_image_config(request),
        )
        images = response.generated_images or []
        if not images or images[0].image is None or not images[0].image.image_bytes:
            raise GenerationError(f"Gemini returned no image for {request.task}")
        data = images[0].image.image_bytes
        mime_type = verify_image_bytes(data)

        self.cache.set_bytes("gemini_image", key, data)
        return GenerationResult(image_uri=to_data_uri(data, mime_type))
