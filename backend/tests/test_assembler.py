"""Tests for grouping visual artifacts and assembling designs."""

from __future__ import annotations

import pytest

from superarchitect.engine.assembler import (
    DEFAULT_INTERIOR_ROOM,
    DEFAULT_PLAN_LEVEL,
    EXTERIOR_MISSING_URI,
    PLAN_FAILED_URI,
    PLAN_MISSING_URI,
    RENDER_FAILED_URI,
    assemble_designs,
    group_visuals,
    placeholder_for,
)
from superarchitect.errors import FatalStageError
from superarchitect.models.contracts import (
    AnalysisBundle,
    ComplianceNote,
    DesignSkeleton,
    VisualArtifact,
    VisualRequest,
)


def _artifact(kind, *, design_index=0, room=None, level=None, uri=None):
    return VisualArtifact(
        design_index=design_index,
        kind=kind,
        uri=uri or f"data:image/png;base64,{kind}",
        room=room,
        level=level,
    )


def _skeleton(index=0, kinds=("day", "plan")):
    return DesignSkeleton(
        index=index,
        title=f"Design {index}",
        description="A description",
        materials=("Brick",),
        visual_requests=tuple(
            VisualRequest(design_index=index, kind=kind, prompt=f"{kind} prompt") for kind in kinds
        ),
    )


class TestGroupVisuals:
    def test_day_and_night_share_exterior_group(self):
        exteriors, interiors, plans = group_visuals(
            [_artifact("day"), _artifact("night"), _artifact("plan", level="Ground Floor")]
        )
        assert [e.view for e in exteriors] == ["Day", "Night"]
        assert interiors == []
        assert [p.level for p in plans] == ["Ground Floor"]

    def test_interiors_group_by_room_with_default(self):
        _, interiors, _ = group_visuals(
            [_artifact("interior", room="Kitchen"), _artifact("interior")]
        )
        assert [i.room for i in interiors] == ["Kitchen", DEFAULT_INTERIOR_ROOM]

    def test_plan_level_default(self):
        _, _, plans = group_visuals([_artifact("plan")])
        assert plans[0].level == DEFAULT_PLAN_LEVEL

    def test_missing_required_groups_get_one_placeholder(self):
        exteriors, interiors, plans = group_visuals([_artifact("interior", room="Kitchen")])
        assert len(exteriors) == 1 and exteriors[0].is_placeholder
        assert exteriors[0].uri == EXTERIOR_MISSING_URI
        assert len(plans) == 1 and plans[0].is_placeholder
        assert plans[0].uri == PLAN_MISSING_URI
        assert len(interiors) == 1

    def test_failed_artifacts_keep_their_slot(self):
        request = VisualRequest(design_index=0, kind="day", prompt="p")
        exteriors, _, _ = group_visuals([placeholder_for(request, "boom")])
        assert len(exteriors) == 1
        assert exteriors[0].is_placeholder
        assert exteriors[0].uri == RENDER_FAILED_URI


class TestPlaceholderFor:
    def test_plan_uses_plan_placeholder(self):
        request = VisualRequest(design_index=2, kind="plan", prompt="p", level="First Floor")
        artifact = placeholder_for(request, "timed out")
        assert artifact.uri == PLAN_FAILED_URI
        assert artifact.level == "First Floor"
        assert artifact.design_index == 2
        assert artifact.error == "timed out"

    def test_interior_keeps_room_tag(self):
        request = VisualRequest(design_index=0, kind="interior", prompt="p", room="Study Room")
        artifact = placeholder_for(request)
        assert artifact.uri == RENDER_FAILED_URI
        assert artifact.room == "Study Room"
        assert artifact.is_placeholder


class TestAssembleDesigns:
    def test_folds_visuals_and_analyses(self):
        skeleton = _skeleton()
        note = ComplianceNote(text="Permits required.")
        designs = assemble_designs(
            [skeleton],
            [_artifact("day"), _artifact("plan")],
            [AnalysisBundle(design_index=0, compliance_note=note)],
        )
        design = designs[0]
        assert design.title == skeleton.title
        assert design.description == skeleton.description
        assert design.materials == skeleton.materials
        assert design.compliance_note == note
        assert design.finishes_schedule is None
        assert design.cost_analysis is None

    def test_interleaved_artifacts_return_to_their_design(self):
        skeletons = [_skeleton(0), _skeleton(1, kinds=("night", "plan", "interior"))]
        artifacts = [
            _artifact("night", design_index=1),
            _artifact("day", design_index=0),
            _artifact("plan", design_index=1),
            _artifact("plan", design_index=0),
            _artifact("interior", design_index=1, room="Kitchen"),
        ]
        designs = assemble_designs(skeletons, artifacts, [])
        assert [d.index for d in designs] == [0, 1]
        assert [e.view for e in designs[0].exterior_views] == ["Day"]
        assert [e.view for e in designs[1].exterior_views] == ["Night"]
        assert len(designs[1].interior_views) == 1

    def test_unknown_design_index_is_fatal(self):
        with pytest.raises(FatalStageError):
            assemble_designs([_skeleton()], [_artifact("day", design_index=5), _artifact("plan")], [])

    def test_count_mismatch_is_fatal(self):
        with pytest.raises(FatalStageError):
            assemble_designs([_skeleton()], [_artifact("day")], [])

    def test_analysis_for_unknown_design_is_fatal(self):
        with pytest.raises(FatalStageError):
            assemble_designs(
                [_skeleton()],
                [_artifact("day"), _artifact("plan")],
                [AnalysisBundle(design_index=9)],
            )

    def test_duplicate_indices_are_fatal(self):
        with pytest.raises(FatalStageError):
            assemble_designs([_skeleton(0), _skeleton(0)], [], [])
