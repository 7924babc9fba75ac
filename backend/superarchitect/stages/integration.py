"""Data Integrator: assembles the final designs."""

from __future__ import annotations

from dataclasses import dataclass

from superarchitect.engine.assembler import assemble_designs
from superarchitect.engine.stage import Stage
from superarchitect.engine.status import DATA_INTEGRATOR, StatusBus
from superarchitect.models.contracts import AnalysisBundle, Design, DesignSkeleton, VisualArtifact


@dataclass(frozen=True)
class IntegrationInput:
    skeletons: list[DesignSkeleton]
    artifacts: list[VisualArtifact]
    analyses: list[AnalysisBundle]


class IntegrationStage(Stage[IntegrationInput, list[Design]]):
    agent_id = DATA_INTEGRATOR

    def start_message(self, data: IntegrationInput) -> str:
        return "Compiling final project data..."

    def summary_message(self, result: list[Design]) -> str:
        return f"Project data assembled for {len(result)} design(s)"

    async def execute(self, data: IntegrationInput, bus: StatusBus) -> list[Design]:
        return assemble_designs(data.skeletons, data.artifacts, data.analyses)
