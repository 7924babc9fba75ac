"""Fold visual artifacts and analysis results back onto their designs."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence

from superarchitect.errors import FatalStageError
from superarchitect.models.contracts import (
    AnalysisBundle,
    Design,
    DesignSkeleton,
    ExteriorView,
    FloorPlan,
    InteriorView,
    VisualArtifact,
    VisualKind,
    VisualRequest,
)

_PLACEHOLDER_BASE = "https://placehold.co"
_PLACEHOLDER_COLORS = "111827/f59e0b/png"

PLAN_FAILED_URI = f"{_PLACEHOLDER_BASE}/1280x960/{_PLACEHOLDER_COLORS}?text=Synthesis+AI:+Plan+Failed"
RENDER_FAILED_URI = f"{_PLACEHOLDER_BASE}/1280x720/{_PLACEHOLDER_COLORS}?text=Synthesis+AI:+Render+Failed"
EXTERIOR_MISSING_URI = f"{_PLACEHOLDER_BASE}/1280x720/{_PLACEHOLDER_COLORS}?text=Image+Not+Generated"
PLAN_MISSING_URI = f"{_PLACEHOLDER_BASE}/1280x960/{_PLACEHOLDER_COLORS}?text=Plan+Not+Generated"

DEFAULT_INTERIOR_ROOM = "Interior View"
DEFAULT_PLAN_LEVEL = "Floor Plan"
MISSING_EXTERIOR_VIEW = "Image"


def placeholder_for(request: VisualRequest, error: str | None = None) -> VisualArtifact:
    """Fallback artifact standing in for a failed visual request."""
    uri = PLAN_FAILED_URI if request.kind == "plan" else RENDER_FAILED_URI
    return VisualArtifact(
        design_index=request.design_index,
        kind=request.kind,
        uri=uri,
        room=request.room,
        level=request.level,
        is_placeholder=True,
        error=error,
    )


def _exterior_view_name(kind: VisualKind) -> str:
    return kind.capitalize()


def group_visuals(
    artifacts: Sequence[VisualArtifact],
) -> tuple[list[ExteriorView], list[InteriorView], list[FloorPlan]]:
    """Split one design's artifacts into exterior, interior and plan groups.

    Day and night renders share the exterior group. Required groups (exterior
    and plan) get a single placeholder when empty; interiors may be empty.
    """
    exteriors: list[ExteriorView] = []
    interiors: list[InteriorView] = []
    plans: list[FloorPlan] = []
    for artifact in artifacts:
        if artifact.kind in ("day", "night"):
            exteriors.append(
                ExteriorView(
                    view=_exterior_view_name(artifact.kind),
                    uri=artifact.uri,
                    is_placeholder=artifact.is_placeholder,
                )
            )
        elif artifact.kind == "interior":
            interiors.append(
                InteriorView(
                    room=artifact.room or DEFAULT_INTERIOR_ROOM,
                    uri=artifact.uri,
                    is_placeholder=artifact.is_placeholder,
                )
            )
        else:
            plans.append(
                FloorPlan(
                    level=artifact.level or DEFAULT_PLAN_LEVEL,
                    uri=artifact.uri,
                    is_placeholder=artifact.is_placeholder,
                )
            )

    if not exteriors:
        exteriors.append(ExteriorView(view=MISSING_EXTERIOR_VIEW, uri=EXTERIOR_MISSING_URI, is_placeholder=True))
    if not plans:
        plans.append(FloorPlan(level=DEFAULT_PLAN_LEVEL, uri=PLAN_MISSING_URI, is_placeholder=True))
    return exteriors, interiors, plans


def assemble_design(
    skeleton: DesignSkeleton,
    artifacts: Sequence[VisualArtifact],
    bundle: AnalysisBundle | None,
) -> Design:
    exteriors, interiors, plans = group_visuals(artifacts)
    bundle = bundle or AnalysisBundle(design_index=skeleton.index)
    return Design(
        index=skeleton.index,
        title=skeleton.title,
        description=skeleton.description,
        architectural_style=skeleton.architectural_style,
        materials=skeleton.materials,
        color_palette=skeleton.color_palette,
        dimensions=skeleton.dimensions,
        flat_configuration=skeleton.flat_configuration,
        exterior_views=tuple(exteriors),
        interior_views=tuple(interiors),
        floor_plans=tuple(plans),
        finishes_schedule=bundle.finishes_schedule,
        compliance_note=bundle.compliance_note,
        cost_analysis=bundle.cost_analysis,
        sustainability_report=bundle.sustainability_report,
    )


def assemble_designs(
    skeletons: Sequence[DesignSkeleton],
    artifacts: Sequence[VisualArtifact],
    analyses: Sequence[AnalysisBundle],
) -> list[Design]:
    """Build one Design per skeleton, in skeleton order.

    Raises:
        FatalStageError: an artifact or analysis refers to an unknown design,
            or a design's artifact count differs from its request count.
    """
    known = {s.index for s in skeletons}
    if len(known) != len(skeletons):
        raise FatalStageError("Design indices are not unique")

    by_design: dict[int, list[VisualArtifact]] = defaultdict(list)
    for artifact in artifacts:
        if artifact.design_index not in known:
            raise FatalStageError(f"Visual artifact refers to unknown design {artifact.design_index}")
        by_design[artifact.design_index].append(artifact)

    bundles: dict[int, AnalysisBundle] = {}
    for bundle in analyses:
        if bundle.design_index not in known:
            raise FatalStageError(f"Analysis refers to unknown design {bundle.design_index}")
        bundles[bundle.design_index] = bundle

    designs = []
    for skeleton in skeletons:
        design_artifacts = by_design.get(skeleton.index, [])
        if len(design_artifacts) != len(skeleton.visual_requests):
            raise FatalStageError(
                f"Design {skeleton.index} has {len(design_artifacts)} visual artifact(s) "
                f"for {len(skeleton.visual_requests)} request(s)"
            )
        designs.append(assemble_design(skeleton, design_artifacts, bundles.get(skeleton.index)))
    return designs
