"""Visual Synthesis: one bounded pool over every visual request of every design."""

from __future__ import annotations

import random

import structlog

from superarchitect.engine.assembler import placeholder_for
from superarchitect.engine.stage import Stage
from superarchitect.engine.status import VISUAL_SYNTHESIS, StatusBus
from superarchitect.engine.worker_pool import run_bounded, validate_concurrency, validate_timeout
from superarchitect.errors import GenerationError
from superarchitect.generators.base import GenerationRequest, Generator
from superarchitect.models.contracts import DesignSkeleton, VisualArtifact, VisualRequest
from superarchitect.stages.prompts import (
    PLAN_DRAFTING_STYLES,
    build_plan_prompt,
    build_render_prompt,
    render_aspect_ratio,
)

logger = structlog.get_logger()


def flatten_requests(skeletons: list[DesignSkeleton]) -> list[VisualRequest]:
    """All requests across designs, design by design, in request order."""
    return [request for skeleton in skeletons for request in skeleton.visual_requests]


class VisualSynthesisStage(Stage[list[DesignSkeleton], list[VisualArtifact]]):
    agent_id = VISUAL_SYNTHESIS

    def __init__(
        self,
        generator: Generator,
        *,
        concurrency: int,
        timeout: float | None = None,
        rng: random.Random | None = None,
    ) -> None:
        validate_concurrency(concurrency)
        validate_timeout(timeout)
        self.generator = generator
        self.concurrency = concurrency
        self.timeout = timeout
        self.rng = rng or random.Random()

    def start_message(self, data: list[DesignSkeleton]) -> str:
        return f"Initiating high-speed synthesis for {len(flatten_requests(data))} assets..."

    def summary_message(self, result: list[VisualArtifact]) -> str:
        failed = sum(1 for artifact in result if artifact.is_placeholder)
        if failed:
            return f"Synthesized {len(result) - failed} of {len(result)} assets ({failed} placeholder)"
        return f"All {len(result)} assets synthesized"

    def build_requests(self, skeletons: list[DesignSkeleton]) -> list[GenerationRequest]:
        """Generator requests for every visual request, in flattened order.

        Random choices (drafting style, interior aspect ratio) are drawn here,
        before dispatch, so a seeded ``rng`` gives the same requests whatever
        order the pool completes them in.
        """
        by_index = {skeleton.index: skeleton for skeleton in skeletons}
        out = []
        for request in flatten_requests(skeletons):
            skeleton = by_index[request.design_index]
            if request.kind == "plan":
                prompt = build_plan_prompt(skeleton, request, self.rng.choice(PLAN_DRAFTING_STYLES))
            else:
                prompt = build_render_prompt(skeleton, request)
            out.append(
                GenerationRequest(
                    task=f"visual_{request.kind}",
                    prompt=prompt,
                    modality="image",
                    aspect_ratio=render_aspect_ratio(request, self.rng),
                )
            )
        return out

    async def execute(self, data: list[DesignSkeleton], bus: StatusBus) -> list[VisualArtifact]:
        requests = flatten_requests(data)
        generation_requests = self.build_requests(data)
        jobs = list(zip(requests, generation_requests))

        async def _synthesize(job: tuple[VisualRequest, GenerationRequest]) -> VisualArtifact:
            request, generation_request = job
            result = await self.generator.generate(generation_request)
            if not result.image_uri:
                raise GenerationError(f"No image returned for {generation_request.task}")
            return VisualArtifact(
                design_index=request.design_index,
                kind=request.kind,
                uri=result.image_uri,
                room=request.room,
                level=request.level,
            )

        def _progress(done: int, total: int) -> None:
            bus.publish(self.agent_id, "working", f"Synthesized asset {done} of {total}...")

        results = await run_bounded(
            jobs,
            _synthesize,
            self.concurrency,
            _progress,
            timeout=self.timeout,
            label="visual_synthesis",
        )

        artifacts = []
        for request, item in zip(requests, results):
            if item.ok and item.value is not None:
                artifacts.append(item.value)
            else:
                cause = item.error.cause if item.error else None
                artifacts.append(placeholder_for(request, _describe(cause)))
        return artifacts


def _describe(cause: BaseException | None) -> str:
    if cause is None:
        return "unknown error"
    if isinstance(cause, TimeoutError):
        return "timed out"
    return str(cause) or type(cause).__name__
