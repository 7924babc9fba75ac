"""The four analysis agents.

Each runs once per design through the worker pool. A failed call, a timeout
or a reply that does not fit its schema leaves that design's field as None;
it never fails the stage.
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass
from typing import Generic, TypeVar

import structlog

from superarchitect.engine.stage import Stage
from superarchitect.engine.status import (
    COMPLIANCE,
    COST_ESTIMATOR,
    ECO_ANALYST,
    MATERIALS_SPECIALIST,
    StatusBus,
)
from superarchitect.engine.worker_pool import run_bounded, validate_timeout
from superarchitect.generators.base import GenerationRequest, Generator
from superarchitect.models.contracts import (
    Brief,
    ComplianceNote,
    CostAnalysis,
    DesignSkeleton,
    FinishesSchedule,
    SustainabilityReport,
)
from superarchitect.stages import prompts
from superarchitect.stages.parsing import (
    parse_compliance_note,
    parse_cost_analysis,
    parse_finishes_schedule,
    parse_sustainability_report,
)

logger = structlog.get_logger()

ResultT = TypeVar("ResultT")


@dataclass(frozen=True)
class AnalysisInput:
    brief: Brief
    skeletons: list[DesignSkeleton]


class AnalysisStage(Stage[AnalysisInput, dict[int, ResultT | None]], Generic[ResultT]):
    """Shared per-design fan-out for one analysis agent.

    Subclasses provide the request and the parser. Results are keyed by
    design index.
    """

    task: str = ""
    label: str = ""

    def __init__(self, generator: Generator, *, timeout: float | None = None) -> None:
        validate_timeout(timeout)
        self.generator = generator
        self.timeout = timeout

    @abstractmethod
    def build_request(self, skeleton: DesignSkeleton, brief: Brief) -> GenerationRequest: ...

    @abstractmethod
    def parse(self, text: str | None) -> ResultT: ...

    def start_message(self, data: AnalysisInput) -> str:
        return f"Preparing {self.label.lower()} for {len(data.skeletons)} design(s)..."

    def summary_message(self, result: dict[int, ResultT | None]) -> str:
        ready = sum(1 for value in result.values() if value is not None)
        return f"{self.label} ready for {ready} of {len(result)} design(s)"

    async def execute(self, data: AnalysisInput, bus: StatusBus) -> dict[int, ResultT | None]:
        async def _analyse(skeleton: DesignSkeleton) -> ResultT:
            try:
                reply = await self.generator.generate(self.build_request(skeleton, data.brief))
                value = self.parse(reply.text)
            except BaseException:
                # A per-item timeout arrives here as CancelledError
                bus.publish(self.agent_id, "working", f'{self.label} unavailable for "{skeleton.title}"')
                raise
            bus.publish(self.agent_id, "working", f'{self.label} complete for "{skeleton.title}"')
            return value

        results = await run_bounded(
            data.skeletons,
            _analyse,
            max(len(data.skeletons), 1),
            timeout=self.timeout,
            label=self.task,
        )
        return {
            skeleton.index: item.value if item.ok else None
            for skeleton, item in zip(data.skeletons, results)
        }


class FinishesStage(AnalysisStage[FinishesSchedule]):
    agent_id = MATERIALS_SPECIALIST
    task = "finishes"
    label = "Finishes schedule"

    def build_request(self, skeleton: DesignSkeleton, brief: Brief) -> GenerationRequest:
        return GenerationRequest(
            task=self.task,
            prompt=prompts.build_finishes_prompt(skeleton),
            system_instruction=prompts.FINISHES_SYSTEM_INSTRUCTION,
            temperature=0.4,
            json_output=True,
        )

    def parse(self, text: str | None) -> FinishesSchedule:
        return parse_finishes_schedule(text)


class ComplianceStage(AnalysisStage[ComplianceNote]):
    agent_id = COMPLIANCE
    task = "compliance"
    label = "Compliance check"

    def build_request(self, skeleton: DesignSkeleton, brief: Brief) -> GenerationRequest:
        return GenerationRequest(
            task=self.task,
            prompt=prompts.build_compliance_prompt(skeleton, brief),
            system_instruction=prompts.COMPLIANCE_SYSTEM_INSTRUCTION,
            temperature=0.2,
        )

    def parse(self, text: str | None) -> ComplianceNote:
        return parse_compliance_note(text)


class CostStage(AnalysisStage[CostAnalysis]):
    agent_id = COST_ESTIMATOR
    task = "cost"
    label = "Cost analysis"

    def build_request(self, skeleton: DesignSkeleton, brief: Brief) -> GenerationRequest:
        return GenerationRequest(
            task=self.task,
            prompt=prompts.build_cost_prompt(skeleton, brief),
            system_instruction=prompts.COST_SYSTEM_INSTRUCTION,
            json_output=True,
        )

    def parse(self, text: str | None) -> CostAnalysis:
        return parse_cost_analysis(text)


class SustainabilityStage(AnalysisStage[SustainabilityReport]):
    agent_id = ECO_ANALYST
    task = "sustainability"
    label = "Sustainability report"

    def build_request(self, skeleton: DesignSkeleton, brief: Brief) -> GenerationRequest:
        return GenerationRequest(
            task=self.task,
            prompt=prompts.build_sustainability_prompt(skeleton, brief),
            system_instruction=prompts.SUSTAINABILITY_SYSTEM_INSTRUCTION,
            json_output=True,
        )

    def parse(self, text: str | None) -> SustainabilityReport:
        return parse_sustainability_report(text)
