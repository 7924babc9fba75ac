"""Concept Architect: turns the brief into design skeletons.

The only stage whose failure ends the run. A failed, timed-out, empty or
unparseable concept reply leaves nothing for the later stages to work on.
"""

from __future__ import annotations

import asyncio
import random

import structlog

from superarchitect.engine.stage import Stage
from superarchitect.engine.status import CONCEPT_ARCHITECT, StatusBus
from superarchitect.errors import FatalStageError, GenerationError, StructuredOutputError
from superarchitect.generators.base import GenerationRequest, Generator
from superarchitect.models.contracts import DesignSkeleton, VisualRequest
from superarchitect.stages.parsing import ConceptPayload, parse_concepts
from superarchitect.stages.project_lead import BriefAnalysis
from superarchitect.stages.prompts import CONCEPT_SYSTEM_INSTRUCTION, build_concept_prompt

logger = structlog.get_logger()

CONCEPT_TEMPERATURE = 1.0
_MAX_SEED = 1_000_000


class ConceptStage(Stage[BriefAnalysis, list[DesignSkeleton]]):
    agent_id = CONCEPT_ARCHITECT

    def __init__(
        self,
        generator: Generator,
        *,
        timeout: float | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.generator = generator
        self.timeout = timeout
        self.rng = rng or random.Random()

    def start_message(self, data: BriefAnalysis) -> str:
        return "Generating design concept..."

    def summary_message(self, result: list[DesignSkeleton]) -> str:
        if len(result) == 1:
            return f'Concept ready: "{result[0].title}"'
        return f"{len(result)} concepts ready"

    async def execute(self, data: BriefAnalysis, bus: StatusBus) -> list[DesignSkeleton]:
        request = GenerationRequest(
            task="concept",
            prompt=build_concept_prompt(data.brief, list(data.required_rooms)),
            system_instruction=CONCEPT_SYSTEM_INSTRUCTION,
            temperature=CONCEPT_TEMPERATURE,
            json_output=True,
            seed=self.rng.randrange(_MAX_SEED),
        )
        try:
            async with asyncio.timeout(self.timeout):
                result = await self.generator.generate(request)
        except TimeoutError as exc:
            raise FatalStageError(f"Concept generation timed out after {self.timeout:g}s") from exc
        except GenerationError as exc:
            raise FatalStageError(f"Concept generation failed: {exc}") from exc

        try:
            payloads = parse_concepts(result.text)
        except StructuredOutputError as exc:
            raise FatalStageError(f"Concept reply could not be parsed: {exc}") from exc
        if not payloads:
            raise FatalStageError("Concept stage produced no designs")

        skeletons = [_to_skeleton(i, payload, data) for i, payload in enumerate(payloads)]
        logger.info(
            "concepts_parsed",
            designs=len(skeletons),
            visual_requests=sum(len(s.visual_requests) for s in skeletons),
        )
        return skeletons


def _to_skeleton(index: int, payload: ConceptPayload, data: BriefAnalysis) -> DesignSkeleton:
    requests = tuple(
        VisualRequest(
            design_index=index,
            kind=prompt.kind,
            prompt=prompt.prompt,
            room=prompt.room,
            level=prompt.level,
        )
        for prompt in payload.internal_image_prompts
    )
    return DesignSkeleton(
        index=index,
        title=payload.title,
        description=payload.description,
        architectural_style=payload.architectural_style,
        materials=tuple(payload.materials),
        color_palette=tuple(payload.color_palette),
        visual_requests=requests,
        dimensions=data.brief.dimensions,
        flat_configuration=data.brief.flat_configuration,
    )
