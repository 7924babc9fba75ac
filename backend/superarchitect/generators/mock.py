"""Deterministic offline generator.

Returns canned replies so the whole pipeline runs without network access:
one concept with five visual requests, realistic analysis payloads and small
solid-colour PNGs. Used when USE_MOCK_GENERATOR is set and as the stub in
tests, where the knobs below inject failures and latency.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable, Iterable, Mapping
from typing import Any

import structlog

from superarchitect.errors import GenerationError
from superarchitect.generators.base import GenerationRequest, GenerationResult
from superarchitect.utils.image import solid_color_png, to_data_uri

logger = structlog.get_logger()

DEFAULT_CONCEPT: list[dict[str, Any]] = [
    {
        "title": "Courtyard of Filtered Light",
        "description": (
            "A calm two-bedroom home organised around a planted light well. "
            "The signature element: a perforated brick screen that wraps the courtyard. "
            "Living spaces open onto the court; bedrooms sit behind thick masonry walls."
        ),
        "architecturalStyle": "Tropical Modernism",
        "materials": ["Exposed brick", "Board-formed concrete", "Teak", "Terrazzo"],
        "colorPalette": ["#B5651D", "#E8E2D6", "#4A5D4F", "#2F2F2F"],
        "internalImagePrompts": [
            {"type": "day", "prompt": "Street view at noon with the brick screen casting dappled shade"},
            {"type": "night", "prompt": "Dusk view with warm light glowing through the brick screen"},
            {"type": "plan", "level": "Ground Floor", "prompt": "Ground floor plan around the central courtyard"},
            {"type": "interior", "room": "Living Room", "prompt": "Double-height living room facing the courtyard"},
            {"type": "interior", "room": "Kitchen", "prompt": "Terrazzo kitchen with a teak breakfast counter"},
        ],
    }
]

DEFAULT_FINISHES: dict[str, Any] = {
    "General Living Areas": [
        {"location": "Living Room Floor", "material": "Terrazzo", "finish": "Honed", "notes": "Brass divider strips"},
        {"location": "Living Room Walls", "material": "Lime plaster", "finish": "Matte"},
    ],
    "Wet Areas & Utilities": [
        {"location": "Kitchen Counter", "material": "Teak", "finish": "Oiled"},
    ],
}

DEFAULT_COMPLIANCE = (
    "Confirm setback and ground-coverage limits with the local authority. "
    "Standard building permits and inspections will be required."
)

DEFAULT_COST: dict[str, Any] = {
    "currency": "USD",
    "estimatedTotalCost": 185000,
    "costBreakdown": [
        {"category": "Structure", "cost": 74000},
        {"category": "Finishes", "cost": 56000},
        {"category": "Services", "cost": 55000},
    ],
    "billOfQuantities": [
        {"item": "Exposed brick", "quantity": 18000, "unit": "nos"},
        {"item": "Board-formed concrete", "quantity": 95, "unit": "m3"},
        {"item": "Terrazzo flooring", "quantity": 140, "unit": "m2"},
    ],
    "summary": "Masonry and custom joinery are the main cost drivers.",
}

DEFAULT_SUSTAINABILITY: dict[str, Any] = {
    "overallScore": 78,
    "summary": "Passive shading and cross ventilation carry most of the performance.",
    "positiveAspects": ["Courtyard-driven cross ventilation", "Locally fired brick"],
    "improvementSuggestions": ["Add rooftop solar", "Harvest courtyard rainwater"],
}

_CANNED_TEXT = {
    "finishes": json.dumps(DEFAULT_FINISHES),
    "compliance": DEFAULT_COMPLIANCE,
    "cost": json.dumps(DEFAULT_COST),
    "sustainability": json.dumps(DEFAULT_SUSTAINABILITY),
}

# Swatch colour per visual kind; avatars and anything else fall back to grey.
_SWATCHES = {
    "visual_day": "#87CEEB",
    "visual_night": "#191970",
    "visual_interior": "#DEB887",
    "visual_plan": "#FFFFFF",
}


class MockGenerator:
    """Canned generator with failure and latency injection.

    Args:
        concept_payload: Replaces the concept reply. Strings are returned
            verbatim; anything else is JSON-encoded.
        fail_tasks: Task names that raise ``GenerationError``.
        fail_when: Predicate over the request; a true result raises.
        latency: Seconds to sleep per call, either one value or per task.
        max_recorded_calls: Keep only the most recent calls in ``calls``.
            None keeps them all.
    """

    def __init__(
        self,
        *,
        concept_payload: Any = None,
        fail_tasks: Iterable[str] = (),
        fail_when: Callable[[GenerationRequest], bool] | None = None,
        latency: float | Mapping[str, float] = 0.0,
        max_recorded_calls: int | None = None,
    ) -> None:
        self.concept_payload = DEFAULT_CONCEPT if concept_payload is None else concept_payload
        self.fail_tasks = set(fail_tasks)
        self.fail_when = fail_when
        self.latency = latency
        self.max_recorded_calls = max_recorded_calls
        self.calls: list[GenerationRequest] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._images: dict[str, str] = {}

    def tasks(self) -> list[str]:
        return [call.task for call in self.calls]

    def _delay(self, task: str) -> float:
        if isinstance(self.latency, Mapping):
            return self.latency.get(task, 0.0)
        return self.latency

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        self.calls.append(request)
        if self.max_recorded_calls is not None and len(self.calls) > self.max_recorded_calls:
            del self.calls[: len(self.calls) - self.max_recorded_calls]
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            delay = self._delay(request.task)
            if delay:
                await asyncio.sleep(delay)
            if request.task in self.fail_tasks or (self.fail_when is not None and self.fail_when(request)):
                raise GenerationError(f"Injected failure for {request.task}")
            if request.modality == "image":
                return GenerationResult(image_uri=self._image(request.task))
            return GenerationResult(text=self._text(request))
        finally:
            self.in_flight -= 1

    def _image(self, task: str) -> str:
        if task not in self._images:
            png = solid_color_png(_SWATCHES.get(task, "#808080"))
            self._images[task] = to_data_uri(png, "image/png")
        return self._images[task]

    def _text(self, request: GenerationRequest) -> str:
        if request.task == "concept":
            payload = self.concept_payload
            return payload if isinstance(payload, str) else json.dumps(payload)
        if request.task == "assistant":
            turn = len(request.history) // 2 + 1
            return f"**Project Lead (turn {turn}):** noted. {request.prompt}"
        if request.task in _CANNED_TEXT:
            return _CANNED_TEXT[request.task]
        logger.warning("mock_unknown_task", task=request.task)
        return ""
