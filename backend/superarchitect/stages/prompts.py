"""Prompt builders for every agent.

User-supplied text is interpolated with f-strings only (never ``str.format``),
so braces in a brief cannot break a template.
"""

from __future__ import annotations

import random
import re

from superarchitect.models.contracts import (
    AspectRatio,
    Brief,
    DesignSkeleton,
    Dimensions,
    VisualRequest,
)

CONCEPT_SYSTEM_INSTRUCTION = """You are the Concept Architect of the SuperArchitect AI team.
Translate the client's brief into ONE distinctive architectural concept.

Return a single raw JSON array containing one design object with these keys:
- title: an evocative name for the concept.
- description: the story of the design. Name its "signature element: <element>." explicitly.
- architecturalStyle: the dominant style as a short string.
- materials: list of specific materials.
- colorPalette: list of hex colour codes.
- internalImagePrompts: list of {type, prompt, level?, room?} objects where type is
  "day", "night", "interior" or "plan". Always include one "day" and one "night" prompt.
  Add one "plan" prompt per floor with a level tag, and one "interior" prompt per
  required room with a room tag. Every prompt must be a rich, non-empty description.
If a flat configuration is given, the description must state the room counts.
No markdown and no commentary. Output JSON only."""

FINISHES_SYSTEM_INSTRUCTION = """You are the Materials Specialist of the SuperArchitect AI team.
Produce a room-by-room finishes schedule consistent with the design concept.
Return one JSON object. Keys are descriptive categories (e.g. "General Living Areas",
"Wet Areas & Utilities"); values are arrays of {location, material, finish, notes?}.
Be specific about products and finishes. Output JSON only."""

COMPLIANCE_SYSTEM_INSTRUCTION = """You are the Compliance AI of the SuperArchitect AI team.
Give a brief, high-level advisory compliance note for the concept and its location in
1-3 sentences. If nothing specific applies, say that standard building permits and
inspections will be required and no specific high-level issues were noted."""

COST_SYSTEM_INSTRUCTION = """You are the Cost Estimator AI of the SuperArchitect AI team.
Produce a preliminary cost estimate as one JSON object with keys:
currency (code), estimatedTotalCost (number), costBreakdown (array of {category, cost}),
billOfQuantities (3-5 entries of {item, quantity, unit}) and summary (one paragraph on
key cost drivers). Output JSON only."""

SUSTAINABILITY_SYSTEM_INSTRUCTION = """You are the Eco-Analyst AI of the SuperArchitect AI team.
Assess the design's sustainability potential as one JSON object with keys:
overallScore (0-100), summary, positiveAspects (array of strings) and
improvementSuggestions (array of strings). Output JSON only."""

PROJECT_LEAD_SYSTEM_INSTRUCTION = """You are the Project Lead of SuperArchitect AI, the user's
primary interface with a team of specialist AI architects. Guide the user, clarify their
vision and discuss architecture, materials, engineering and design philosophy with
authority. Be professional and encouraging, and use markdown lists and bold text to
structure answers."""

PLAN_DRAFTING_STYLES: tuple[str, ...] = (
    "Drafting style: minimalist presentation. Fine, consistent line weights, minimal "
    "annotations, abstract block furniture for scale, subtle greyscale wall fills.",
    "Drafting style: hyper-detailed technical. Varied line weights for structure, "
    "partitions and furniture, full dimension strings, grid lines, material callouts "
    "and a symbol legend.",
    "Drafting style: colour-coded zoning. Transparent fills per functional zone "
    "(private, common, outdoor) over clear architectural linework, symbolic furniture.",
)

_PLAN_REQUIREMENTS = """The drawing must be a top-down orthographic professional plan on a white
background with: a labelled column grid; walls with consistent thickness, load-bearing walls
filled solid; dimensions for every room, wall and opening; every room labelled with its name
and area; tagged doors and windows with swing arcs; standard plumbing, kitchen and electrical
symbols; at least two section markers; a north arrow, a scale bar and a title block reading
"SuperArchitect AI Design" with the level name and scale."""

_SIGNATURE_RE = re.compile(r"signature element: (.*?)\.", re.IGNORECASE)


def format_dimensions(dims: Dimensions | None) -> str:
    if dims is None:
        return "Not specified"
    return f"{dims.length:g}x{dims.width:g}x{dims.height:g} {dims.unit}"


def build_concept_prompt(brief: Brief, required_rooms: list[str]) -> str:
    lines = [
        "Client Brief:",
        f"- Name: {brief.project_name}",
        f"- Location: {brief.location or 'Not specified'}",
        f"- Type: {brief.space_type} ({', '.join(brief.sub_spaces)})",
        f"- Dimensions: {format_dimensions(brief.dimensions)}",
        f'- Constraints: "{brief.structural_constraints or "None"}"',
        f'- Vision: "{brief.custom_preference or "None"}"',
    ]
    flat = brief.flat_configuration
    if flat is not None:
        lines.append(
            f"- Flat Configuration: {flat.bhk} BHK, {flat.num_bathrooms} bathroom(s) and "
            f"{flat.num_balconies} balcony(ies). This must be reflected in the design."
        )
    if required_rooms:
        lines.append(
            "- REQUIRED INTERIOR ROOMS: generate one interior prompt for each of: "
            + ", ".join(required_rooms)
            + "."
        )
    lines.append("")
    lines.append("Generate the JSON for ONE design concept.")
    return "\n".join(lines)


def signature_element(description: str) -> str | None:
    match = _SIGNATURE_RE.search(description)
    return match.group(1).strip() if match else None


def build_plan_prompt(skeleton: DesignSkeleton, request: VisualRequest, style: str) -> str:
    parts = [
        "You are a master architect and CAD drafter producing a construction-ready, "
        f'high-resolution floor plan for "{skeleton.title} - {skeleton.description}".',
        f"The specific subject is: {request.prompt}.",
    ]
    dims = skeleton.dimensions
    if dims is not None:
        parts.append(
            f"The overall footprint is approximately {dims.length:g} {dims.unit} by "
            f"{dims.width:g} {dims.unit}; all dimensions must be consistent with this area."
        )
    element = signature_element(skeleton.description)
    if element:
        parts.append(f'Prominently feature the signature element: "{element}".')
    parts.append(style)
    parts.append(_PLAN_REQUIREMENTS)
    return "\n\n".join(parts)


def build_render_prompt(skeleton: DesignSkeleton, request: VisualRequest) -> str:
    return "\n".join(
        [
            "Professional architectural photography, photorealistic 8K render, crisp detail.",
            "Style: cinematic, sharp focus, physically-based rendering.",
            "Lighting: volumetric, soft shadows, realistic reflections.",
            f"Design Concept: {skeleton.description}",
            f"Key Materials: {', '.join(skeleton.materials)}",
            f"Scene Details: {request.prompt}",
        ]
    )


def render_aspect_ratio(request: VisualRequest, rng: random.Random) -> AspectRatio:
    """Plans are 4:3, exteriors 16:9, interiors vary between 4:3, 3:4 and 1:1."""
    if request.kind == "plan":
        return "4:3"
    if request.kind == "interior":
        roll = rng.random()
        if roll > 0.66:
            return "4:3"
        return "3:4" if roll > 0.33 else "1:1"
    return "16:9"


def build_finishes_prompt(skeleton: DesignSkeleton) -> str:
    rooms = list(dict.fromkeys(r.room for r in skeleton.visual_requests if r.kind == "interior" and r.room))
    rooms_text = (
        f"Generate a schedule for the following rooms: {', '.join(rooms)}. "
        "Also include general areas not listed if appropriate."
        if rooms
        else "Generate a schedule for typical rooms based on the design description "
        "(e.g., Living Area, Kitchen, Master Bedroom, Bathroom)."
    )
    return "\n".join(
        [
            "Generate a detailed Finishes Schedule for the following design concept.",
            f'- Design Concept: "{skeleton.title}"',
            f"- Description: {skeleton.description}",
            f"- Key Materials Specified: {', '.join(skeleton.materials)}",
            f"- {rooms_text}",
        ]
    )


def build_compliance_prompt(skeleton: DesignSkeleton, brief: Brief) -> str:
    return (
        f"Concept Title: {skeleton.title}\n"
        f"Description: {skeleton.description}\n"
        f"Location: {brief.location or 'Not specified'}"
    )


def build_cost_prompt(skeleton: DesignSkeleton, brief: Brief) -> str:
    return "\n".join(
        [
            "Generate a cost analysis for the following architectural concept:",
            f"- Title: {skeleton.title}",
            f"- Description: {skeleton.description}",
            f"- Location: {brief.location or 'Not specified'}",
            f"- Dimensions: {format_dimensions(skeleton.dimensions)}",
            f"- Key Materials: {', '.join(skeleton.materials)}",
        ]
    )


def build_sustainability_prompt(skeleton: DesignSkeleton, brief: Brief) -> str:
    return "\n".join(
        [
            "Generate a sustainability report for this concept:",
            f"- Title: {skeleton.title}",
            f"- Description: {skeleton.description}",
            f"- Location: {brief.location or 'Not specified'}",
            f"- Key Materials: {', '.join(skeleton.materials)}",
        ]
    )


def build_avatar_prompt(agent_id: str, role: str) -> str:
    return (
        "Minimalist vector art portrait of a futuristic AI agent. "
        f"Subject: {agent_id}, who {role[0].lower() + role[1:]}. "
        "Clean lines, simple shapes, dark background, single character focus."
    )
