"""Parse-once boundary for structured generator replies.

Generator text is turned into typed records here and nowhere else. Anything
that does not fit its schema raises ``StructuredOutputError``; stages decide
whether that is fatal (concept) or degrades to an absent result (analysis).
"""

from __future__ import annotations

import json
from typing import Any, TypeVar

import structlog
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from superarchitect.errors import StructuredOutputError
from superarchitect.models.contracts import (
    ComplianceNote,
    CostAnalysis,
    FinishesSchedule,
    SustainabilityReport,
    VisualKind,
)

logger = structlog.get_logger()

ModelT = TypeVar("ModelT", bound=BaseModel)

_VISUAL_KINDS = {"day", "night", "interior", "plan"}


def strip_code_fence(text: str) -> str:
    """Remove markdown code fences.

    Handles both multiline (```json\\n...\\n```) and single-line (```{...}```) formats.
    """
    text = text.strip()
    if not text.startswith("```"):
        return text
    text = text.removeprefix("```")
    for lang in ("json", "JSON"):
        text = text.removeprefix(lang)
    text = text.lstrip("\n")
    return text.rsplit("```", 1)[0].strip()


def _balanced_span(text: str, start: int) -> str | None:
    """Return the bracketed JSON value starting at ``start``, or None if unbalanced."""
    opener = text[start]
    closer = "}" if opener == "{" else "]"
    depth = 0
    in_string = False
    escape_next = False
    for i in range(start, len(text)):
        ch = text[i]
        if escape_next:
            escape_next = False
            continue
        if ch == "\\" and in_string:
            escape_next = True
            continue
        if ch == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if ch == opener:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def extract_json(text: str | None) -> Any:
    """Extract and parse JSON from a generator reply.

    Accepts pure JSON, code-fenced JSON, and JSON wrapped in prose. Objects
    and arrays are both supported.
    """
    cleaned = strip_code_fence(text or "")
    if not cleaned:
        raise StructuredOutputError("reply was empty")

    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    starts = [i for i in (cleaned.find("{"), cleaned.find("[")) if i != -1]
    if not starts:
        raise StructuredOutputError("reply contained no JSON")
    span = _balanced_span(cleaned, min(starts))
    if span is None:
        raise StructuredOutputError("reply contained unterminated JSON")
    try:
        return json.loads(span)
    except json.JSONDecodeError as exc:
        raise StructuredOutputError(f"reply contained invalid JSON: {exc.msg}") from exc


def parse_model(text: str | None, model: type[ModelT]) -> ModelT:
    data = extract_json(text)
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise StructuredOutputError(
            f"{model.__name__} failed validation: {exc.error_count()} error(s)"
        ) from exc


# === Concept payload ===


class VisualPromptPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    kind: VisualKind = Field(alias="type")
    prompt: str = Field(min_length=1)
    room: str | None = None
    level: str | None = None


class ConceptPayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str = Field(min_length=1)
    description: str = ""
    architectural_style: str | None = None
    materials: list[str] = []
    color_palette: list[str] = []
    internal_image_prompts: list[VisualPromptPayload] = []

    @field_validator("internal_image_prompts", mode="before")
    @classmethod
    def _drop_unusable_prompts(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return []
        kept = []
        for entry in value:
            if not isinstance(entry, dict):
                continue
            kind = str(entry.get("type") or entry.get("kind") or "").strip().lower()
            prompt = entry.get("prompt")
            if kind not in _VISUAL_KINDS or not isinstance(prompt, str) or not prompt.strip():
                logger.warning("concept_prompt_dropped", kind=kind or None)
                continue
            kept.append({**entry, "type": kind, "prompt": prompt.strip()})
        return kept


_CONCEPT_LIST = TypeAdapter(list[ConceptPayload])


def parse_concepts(text: str | None) -> list[ConceptPayload]:
    """Parse a concept reply into one payload per design.

    A bare object is treated as a one-element list; an object with a
    ``designs`` array is unwrapped.
    """
    data = extract_json(text)
    if isinstance(data, dict):
        data = data["designs"] if isinstance(data.get("designs"), list) else [data]
    try:
        return _CONCEPT_LIST.validate_python(data)
    except ValidationError as exc:
        raise StructuredOutputError(
            f"concept payload failed validation: {exc.error_count()} error(s)"
        ) from exc


# === Analysis payloads ===


def parse_finishes_schedule(text: str | None) -> FinishesSchedule:
    data = extract_json(text)
    if not isinstance(data, dict):
        raise StructuredOutputError("finishes schedule must be a JSON object")
    if set(data) != {"categories"}:
        data = {"categories": data}
    try:
        return FinishesSchedule.model_validate(data)
    except ValidationError as exc:
        raise StructuredOutputError(
            f"FinishesSchedule failed validation: {exc.error_count()} error(s)"
        ) from exc


def parse_compliance_note(text: str | None) -> ComplianceNote:
    cleaned = (text or "").strip()
    if not cleaned:
        raise StructuredOutputError("compliance reply was empty")
    return ComplianceNote(text=cleaned)


def parse_cost_analysis(text: str | None) -> CostAnalysis:
    return parse_model(text, CostAnalysis)


def parse_sustainability_report(text: str | None) -> SustainabilityReport:
    return parse_model(text, SustainabilityReport)
