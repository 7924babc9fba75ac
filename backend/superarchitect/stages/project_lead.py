"""Project Lead: reads the brief and works out which rooms must be shown."""

from __future__ import annotations

from dataclasses import dataclass

from superarchitect.engine.stage import Stage
from superarchitect.engine.status import PROJECT_LEAD, StatusBus
from superarchitect.models.contracts import Brief, FlatConfiguration


@dataclass(frozen=True)
class BriefAnalysis:
    brief: Brief
    required_rooms: tuple[str, ...]


def required_rooms(flat: FlatConfiguration | None) -> list[str]:
    """Interior rooms implied by a flat configuration, in presentation order."""
    if flat is None:
        return []
    rooms = ["Living Room", "Kitchen"]
    if flat.bhk > 0:
        rooms.append("Master Bedroom")
        rooms.extend(f"Bedroom {i}" for i in range(2, flat.bhk + 1))
    if flat.bhk >= 3:
        rooms.append("Study Room")
    if flat.num_balconies > 0:
        rooms.append("Main Balcony")
        rooms.extend(f"Balcony {i}" for i in range(2, flat.num_balconies + 1))
    return rooms


class ProjectLeadStage(Stage[Brief, BriefAnalysis]):
    agent_id = PROJECT_LEAD

    def start_message(self, data: Brief) -> str:
        return "Analyzing brief..."

    def summary_message(self, result: BriefAnalysis) -> str:
        if not result.required_rooms:
            return "Brief analyzed"
        return f"Brief analyzed: {len(result.required_rooms)} required room(s)"

    async def execute(self, data: Brief, bus: StatusBus) -> BriefAnalysis:
        return BriefAnalysis(brief=data, required_rooms=tuple(required_rooms(data.flat_configuration)))
