"""Pipeline orchestration for one brief.

    idle -> concept_in_progress -> concept_done -> visuals_in_progress
         -> visuals_done -> analysis_in_progress -> analysis_done
         -> integration_in_progress -> completed

Any in-progress phase may move to ``failed``. In practice only the concept
stage and integration fail; visual and analysis items degrade to placeholders
or None, so those phases fail only on an unexpected crash.

A run is all-or-nothing: ``completed`` carries every design, ``failed`` carries
one error and no designs.
"""

from __future__ import annotations

import asyncio
import random
import uuid
from dataclasses import dataclass, field

import structlog

from superarchitect.config import settings
from superarchitect.engine.status import StatusBus, StatusCallback, StatusSubscription
from superarchitect.engine.worker_pool import validate_concurrency, validate_timeout
from superarchitect.errors import BriefPreconditionError, ConfigurationError, PipelineError
from superarchitect.generators.base import Generator
from superarchitect.logging import bind_run_context
from superarchitect.models.contracts import (
    AnalysisBundle,
    Brief,
    Design,
    PipelinePhase,
    RunError,
    RunState,
)
from superarchitect.stages.analysis import (
    AnalysisInput,
    ComplianceStage,
    CostStage,
    FinishesStage,
    SustainabilityStage,
)
from superarchitect.stages.concept import ConceptStage
from superarchitect.stages.integration import IntegrationInput, IntegrationStage
from superarchitect.stages.project_lead import ProjectLeadStage
from superarchitect.stages.visuals import VisualSynthesisStage

logger = structlog.get_logger()

FAILED_STATUS_MESSAGE = "Failed"

_PHASE_TRANSITIONS: dict[PipelinePhase, frozenset[PipelinePhase]] = {
    "idle": frozenset({"concept_in_progress"}),
    "concept_in_progress": frozenset({"concept_done", "failed"}),
    "concept_done": frozenset({"visuals_in_progress"}),
    "visuals_in_progress": frozenset({"visuals_done", "failed"}),
    "visuals_done": frozenset({"analysis_in_progress"}),
    "analysis_in_progress": frozenset({"analysis_done", "failed"}),
    "analysis_done": frozenset({"integration_in_progress"}),
    "integration_in_progress": frozenset({"completed", "failed"}),
    "completed": frozenset(),
    "failed": frozenset(),
}


def validate_brief(brief: Brief) -> None:
    """Structural completeness only; business rules belong to the caller."""
    if not brief.sub_spaces:
        raise BriefPreconditionError("Brief must select at least one sub-space")


class Pipeline:
    """One single-use state machine per brief.

    ``concurrency`` bounds in-flight visual synthesis calls across all
    designs. ``item_timeout`` applies to every generator call. Both default
    to settings; invalid values raise ``ConfigurationError`` here, before any
    work starts.
    """

    def __init__(
        self,
        generator: Generator,
        *,
        concurrency: int | None = None,
        item_timeout: float | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.concurrency = settings.visual_concurrency if concurrency is None else concurrency
        self.item_timeout = settings.item_timeout if item_timeout is None else item_timeout
        validate_concurrency(self.concurrency)
        validate_timeout(self.item_timeout)

        rng = rng or random.Random()
        self.project_lead = ProjectLeadStage()
        self.concept = ConceptStage(generator, timeout=self.item_timeout, rng=rng)
        self.visuals = VisualSynthesisStage(
            generator, concurrency=self.concurrency, timeout=self.item_timeout, rng=rng
        )
        self.finishes = FinishesStage(generator, timeout=self.item_timeout)
        self.compliance = ComplianceStage(generator, timeout=self.item_timeout)
        self.cost = CostStage(generator, timeout=self.item_timeout)
        self.sustainability = SustainabilityStage(generator, timeout=self.item_timeout)
        self.integration = IntegrationStage()

        self.phase: PipelinePhase = "idle"
        self.history: list[PipelinePhase] = ["idle"]
        self.designs: list[Design] | None = None
        self.error: PipelineError | None = None

    def _advance(self, phase: PipelinePhase) -> None:
        if phase not in _PHASE_TRANSITIONS[self.phase]:
            raise RuntimeError(f"Illegal pipeline transition {self.phase!r} -> {phase!r}")
        logger.info("pipeline_phase", previous=self.phase, phase=phase)
        self.phase = phase
        self.history.append(phase)

    async def run(self, brief: Brief, bus: StatusBus | None = None) -> list[Design]:
        """Run every stage for ``brief``. The bus is not closed here.

        Raises:
            ConfigurationError: the pipeline has already been run.
            BriefPreconditionError: the brief has no sub-spaces.
            PipelineError: a stage failed fatally; agents still working are
                moved to ``error``.
        """
        if self.phase != "idle":
            raise ConfigurationError("Pipeline instances are single-use")
        validate_brief(brief)
        bus = bus or StatusBus()

        self._advance("concept_in_progress")
        try:
            designs = await self._run_stages(brief, bus)
        except PipelineError as exc:
            self.error = exc
            self._advance("failed")
            bus.fail_working(FAILED_STATUS_MESSAGE)
            logger.error("pipeline_failed", agent=exc.agent_id, error=exc.message)
            raise

        self.designs = designs
        self._advance("completed")
        logger.info("pipeline_completed", designs=len(designs))
        return designs

    async def _run_stages(self, brief: Brief, bus: StatusBus) -> list[Design]:
        analysis = await self.project_lead.run(brief, bus)
        skeletons = await self.concept.run(analysis, bus)
        self._advance("concept_done")

        self._advance("visuals_in_progress")
        artifacts = await self.visuals.run(skeletons, bus)
        self._advance("visuals_done")

        self._advance("analysis_in_progress")
        data = AnalysisInput(brief=brief, skeletons=skeletons)
        finishes, compliance, cost, sustainability = await asyncio.gather(
            self.finishes.run(data, bus),
            self.compliance.run(data, bus),
            self.cost.run(data, bus),
            self.sustainability.run(data, bus),
        )
        bundles = [
            AnalysisBundle(
                design_index=s.index,
                finishes_schedule=finishes.get(s.index),
                compliance_note=compliance.get(s.index),
                cost_analysis=cost.get(s.index),
                sustainability_report=sustainability.get(s.index),
            )
            for s in skeletons
        ]
        self._advance("analysis_done")

        self._advance("integration_in_progress")
        return await self.integration.run(
            IntegrationInput(skeletons=skeletons, artifacts=artifacts, analyses=bundles), bus
        )


@dataclass
class PipelineRun:
    """Handle for a submitted brief.

    ``events`` was subscribed before the run started, so it sees every status
    event and ends when the run settles. ``task`` resolves to the designs or
    raises the pipeline error.
    """

    run_id: str
    pipeline: Pipeline
    bus: StatusBus
    events: StatusSubscription
    task: asyncio.Task[list[Design]] = field(repr=False)

    @property
    def phase(self) -> PipelinePhase:
        return self.pipeline.phase

    @property
    def done(self) -> bool:
        return self.task.done()

    async def result(self) -> list[Design]:
        return await self.task

    def state(self) -> RunState:
        error = self.pipeline.error
        return RunState(
            run_id=self.run_id,
            phase=self.pipeline.phase,
            statuses=self.bus.snapshot(),
            designs=self.pipeline.designs,
            error=RunError(message=error.message, agent_id=error.agent_id) if error else None,
        )


def _mark_retrieved(task: asyncio.Task[list[Design]]) -> None:
    # Failures are already logged and kept on the pipeline; polled runs may never await the task
    if not task.cancelled():
        task.exception()


def submit_brief(
    brief: Brief,
    generator: Generator,
    *,
    concurrency: int | None = None,
    item_timeout: float | None = None,
    on_status: StatusCallback | None = None,
    rng: random.Random | None = None,
    run_id: str | None = None,
) -> PipelineRun:
    """Validate and start a run on the current event loop.

    Precondition and configuration errors raise here, synchronously, and no
    run is created.
    """
    validate_brief(brief)
    pipeline = Pipeline(generator, concurrency=concurrency, item_timeout=item_timeout, rng=rng)
    run_id = run_id or str(uuid.uuid4())
    bus = StatusBus(on_status=on_status)
    events = bus.subscribe()

    async def _drive() -> list[Design]:
        bind_run_context(run_id, brief.project_name)
        try:
            return await pipeline.run(brief, bus)
        finally:
            bus.close()

    task = asyncio.create_task(_drive(), name=f"pipeline-{run_id}")
    task.add_done_callback(_mark_retrieved)
    logger.info("pipeline_submitted", run_id=run_id, project=brief.project_name)
    return PipelineRun(run_id=run_id, pipeline=pipeline, bus=bus, events=events, task=task)


async def run_pipeline(
    brief: Brief,
    generator: Generator,
    *,
    concurrency: int | None = None,
    item_timeout: float | None = None,
    on_status: StatusCallback | None = None,
    rng: random.Random | None = None,
) -> list[Design]:
    """Submit ``brief`` and wait for its designs."""
    run = submit_brief(
        brief,
        generator,
        concurrency=concurrency,
        item_timeout=item_timeout,
        on_status=on_status,
        rng=rng,
    )
    return await run.result()
