"""SuperArchitect contract models.

Every record that crosses a module or process boundary lives here: the brief
supplied by callers, the intermediate skeletons and artifacts the pipeline
passes between stages, the assembled designs, status events, and the HTTP
request/response shapes.

Analysis records accept the generator's camelCase keys on input and dump
snake_case by default.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

VisualKind = Literal["day", "night", "interior", "plan"]
AspectRatio = Literal["1:1", "3:4", "4:3", "9:16", "16:9"]
AgentState = Literal["pending", "working", "complete", "error"]
PipelinePhase = Literal[
    "idle",
    "concept_in_progress",
    "concept_done",
    "visuals_in_progress",
    "visuals_done",
    "analysis_in_progress",
    "analysis_done",
    "integration_in_progress",
    "completed",
    "failed",
]

_GENERATOR_PAYLOAD = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# === Brief ===


class Dimensions(BaseModel):
    model_config = ConfigDict(frozen=True)

    length: float = Field(gt=0)
    width: float = Field(gt=0)
    height: float = Field(gt=0)
    unit: Literal["meters", "feet"] = "meters"


class FlatConfiguration(BaseModel):
    model_config = ConfigDict(frozen=True)

    bhk: int = Field(ge=0, le=12)
    num_bathrooms: int = Field(ge=0, le=12)
    num_balconies: int = Field(ge=0, le=12)


class Brief(BaseModel):
    """Immutable design request. Validated for business rules by the caller."""

    model_config = ConfigDict(frozen=True)

    project_name: str
    space_type: str
    sub_spaces: tuple[str, ...] = ()
    custom_preference: str = ""
    dimensions: Dimensions
    structural_constraints: str = ""
    location: str | None = None
    flat_configuration: FlatConfiguration | None = None


# === Skeletons and visuals ===


class VisualRequest(BaseModel):
    """One unit of visual synthesis work, tagged for reassembly."""

    model_config = ConfigDict(frozen=True)

    design_index: int = Field(ge=0)
    kind: VisualKind
    prompt: str = Field(min_length=1)
    room: str | None = None
    level: str | None = None


class DesignSkeleton(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0)
    title: str
    description: str
    architectural_style: str | None = None
    materials: tuple[str, ...] = ()
    color_palette: tuple[str, ...] = ()
    visual_requests: tuple[VisualRequest, ...] = ()
    dimensions: Dimensions | None = None
    flat_configuration: FlatConfiguration | None = None


class VisualArtifact(BaseModel):
    """Result of one VisualRequest: a real asset or a placeholder."""

    model_config = ConfigDict(frozen=True)

    design_index: int = Field(ge=0)
    kind: VisualKind
    uri: str
    room: str | None = None
    level: str | None = None
    is_placeholder: bool = False
    error: str | None = None


class ExteriorView(BaseModel):
    model_config = ConfigDict(frozen=True)

    view: str
    uri: str
    is_placeholder: bool = False


class InteriorView(BaseModel):
    model_config = ConfigDict(frozen=True)

    room: str
    uri: str
    is_placeholder: bool = False


class FloorPlan(BaseModel):
    model_config = ConfigDict(frozen=True)

    level: str
    uri: str
    is_placeholder: bool = False


# === Analysis results ===


class MaterialScheduleItem(BaseModel):
    model_config = _GENERATOR_PAYLOAD

    location: str
    material: str
    finish: str
    notes: str | None = None


class FinishesSchedule(BaseModel):
    """Room-by-room finishes, keyed by a descriptive category name.

    ``categories`` is a read-only mapping once validated.
    """

    model_config = ConfigDict(frozen=True)

    categories: Mapping[str, tuple[MaterialScheduleItem, ...]] = Field(min_length=1)

    @field_validator("categories")
    @classmethod
    def _read_only(cls, value: Mapping[str, tuple[MaterialScheduleItem, ...]]):
        return MappingProxyType(dict(value))

    @field_serializer("categories")
    def _dump_categories(self, value: Mapping[str, tuple[MaterialScheduleItem, ...]]):
        return dict(value)


class ComplianceNote(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str = Field(min_length=1)


class CostLine(BaseModel):
    model_config = _GENERATOR_PAYLOAD

    category: str
    cost: float = Field(ge=0)


class BillOfQuantitiesItem(BaseModel):
    model_config = _GENERATOR_PAYLOAD

    item: str
    quantity: float = Field(ge=0)
    unit: str


class CostAnalysis(BaseModel):
    model_config = _GENERATOR_PAYLOAD

    currency: str = Field(min_length=1)
    estimated_total_cost: float = Field(ge=0)
    cost_breakdown: tuple[CostLine, ...] = ()
    bill_of_quantities: tuple[BillOfQuantitiesItem, ...] = ()
    summary: str = ""


class SustainabilityReport(BaseModel):
    model_config = _GENERATOR_PAYLOAD

    overall_score: float = Field(ge=0, le=100)
    summary: str = ""
    positive_aspects: tuple[str, ...] = ()
    improvement_suggestions: tuple[str, ...] = ()


class AnalysisBundle(BaseModel):
    """The four analysis results for one design. Each may be absent."""

    model_config = ConfigDict(frozen=True)

    design_index: int = Field(ge=0)
    finishes_schedule: FinishesSchedule | None = None
    compliance_note: ComplianceNote | None = None
    cost_analysis: CostAnalysis | None = None
    sustainability_report: SustainabilityReport | None = None


# === Assembled design ===


class Design(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0)
    title: str
    description: str
    architectural_style: str | None = None
    materials: tuple[str, ...] = ()
    color_palette: tuple[str, ...] = ()
    dimensions: Dimensions | None = None
    flat_configuration: FlatConfiguration | None = None
    exterior_views: tuple[ExteriorView, ...] = ()
    interior_views: tuple[InteriorView, ...] = ()
    floor_plans: tuple[FloorPlan, ...] = ()
    finishes_schedule: FinishesSchedule | None = None
    compliance_note: ComplianceNote | None = None
    cost_analysis: CostAnalysis | None = None
    sustainability_report: SustainabilityReport | None = None


# === Status ===


class AgentProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    agent_id: str
    role: str


class AgentStatus(BaseModel):
    agent_id: str
    role: str
    state: AgentState = "pending"
    message: str = "Awaiting brief"


class StatusEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    sequence: int = Field(ge=1)
    agent_id: str
    state: AgentState
    message: str


# === Assistant session ===


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


# === API Request/Response Models ===


class CreateRunResponse(BaseModel):
    run_id: str


class RunError(BaseModel):
    message: str
    agent_id: str | None = None


class RunState(BaseModel):
    run_id: str
    phase: PipelinePhase
    statuses: list[AgentStatus] = []
    designs: list[Design] | None = None
    error: RunError | None = None


class CreateSessionResponse(BaseModel):
    session_id: str


class AssistantMessageRequest(BaseModel):
    message: str = Field(min_length=1)


class AssistantMessageResponse(BaseModel):
    reply: str
    turns: int


class AvatarResponse(BaseModel):
    agent_id: str
    image_uri: str


class ErrorResponse(BaseModel):
    error: str
    message: str
    retryable: bool
    detail: str | None = None
