"""Tests for the structured-output boundary."""

from __future__ import annotations

import json

import pytest

from superarchitect.errors import StructuredOutputError
from superarchitect.generators.mock import (
    DEFAULT_CONCEPT,
    DEFAULT_COST,
    DEFAULT_FINISHES,
    DEFAULT_SUSTAINABILITY,
)
from superarchitect.stages.parsing import (
    extract_json,
    parse_compliance_note,
    parse_concepts,
    parse_cost_analysis,
    parse_finishes_schedule,
    parse_sustainability_report,
    strip_code_fence,
)


class TestStripCodeFence:
    def test_multiline_json_fence(self):
        assert strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_single_line_fence(self):
        assert strip_code_fence('```{"a": 1}```') == '{"a": 1}'

    def test_plain_text_untouched(self):
        assert strip_code_fence('  {"a": 1} ') == '{"a": 1}'


class TestExtractJson:
    def test_bare_object(self):
        assert extract_json('{"a": 1}') == {"a": 1}

    def test_array(self):
        assert extract_json('[{"a": 1}]') == [{"a": 1}]

    def test_prose_wrapped_object(self):
        assert extract_json('Here you go: {"a": "x}y"} hope it helps') == {"a": "x}y"}

    def test_prose_wrapped_array(self):
        assert extract_json('Result:\n[1, [2, 3]]\nDone.') == [1, [2, 3]]

    def test_escaped_quotes_inside_strings(self):
        assert extract_json('note {"a": "say \\"hi\\" {"}') == {"a": 'say "hi" {'}

    @pytest.mark.parametrize("text", [None, "", "   ", "```json\n```"])
    def test_empty_reply(self, text):
        with pytest.raises(StructuredOutputError, match="empty"):
            extract_json(text)

    def test_no_json(self):
        with pytest.raises(StructuredOutputError, match="no JSON"):
            extract_json("I cannot help with that.")

    def test_unterminated_json(self):
        with pytest.raises(StructuredOutputError, match="unterminated"):
            extract_json('Sure: {"a": [1, 2')


class TestParseConcepts:
    def test_default_concept(self):
        payloads = parse_concepts(json.dumps(DEFAULT_CONCEPT))
        assert len(payloads) == 1
        concept = payloads[0]
        assert concept.title == "Courtyard of Filtered Light"
        assert concept.architectural_style == "Tropical Modernism"
        assert [p.kind for p in concept.internal_image_prompts] == [
            "day",
            "night",
            "plan",
            "interior",
            "interior",
        ]
        assert concept.internal_image_prompts[2].level == "Ground Floor"

    def test_single_object_becomes_list(self):
        payloads = parse_concepts(json.dumps(DEFAULT_CONCEPT[0]))
        assert len(payloads) == 1

    def test_designs_wrapper_unwrapped(self):
        payloads = parse_concepts(json.dumps({"designs": DEFAULT_CONCEPT * 2}))
        assert len(payloads) == 2

    def test_snake_case_keys_accepted(self):
        payloads = parse_concepts(
            json.dumps([{"title": "T", "architectural_style": "Brutalist", "color_palette": ["#000"]}])
        )
        assert payloads[0].architectural_style == "Brutalist"
        assert payloads[0].color_palette == ["#000"]

    def test_blank_and_unknown_prompts_dropped(self):
        payloads = parse_concepts(
            json.dumps(
                [
                    {
                        "title": "T",
                        "internalImagePrompts": [
                            {"type": "Day", "prompt": " sunny "},
                            {"type": "night", "prompt": "   "},
                            {"type": "aerial", "prompt": "drone shot"},
                            "not an object",
                        ],
                    }
                ]
            )
        )
        prompts = payloads[0].internal_image_prompts
        assert [(p.kind, p.prompt) for p in prompts] == [("day", "sunny")]

    def test_empty_list(self):
        assert parse_concepts("[]") == []

    def test_missing_title_rejected(self):
        with pytest.raises(StructuredOutputError):
            parse_concepts('[{"description": "no title"}]')

    def test_wrong_shape_rejected(self):
        with pytest.raises(StructuredOutputError):
            parse_concepts('"just a string"')


class TestAnalysisPayloads:
    def test_finishes_schedule_wraps_categories(self):
        schedule = parse_finishes_schedule(json.dumps(DEFAULT_FINISHES))
        assert set(schedule.categories) == {"General Living Areas", "Wet Areas & Utilities"}
        assert schedule.categories["General Living Areas"][0].notes == "Brass divider strips"

    def test_finishes_schedule_accepts_explicit_categories(self):
        schedule = parse_finishes_schedule(json.dumps({"categories": DEFAULT_FINISHES}))
        assert len(schedule.categories) == 2

    def test_finishes_schedule_rejects_empty(self):
        with pytest.raises(StructuredOutputError):
            parse_finishes_schedule("{}")

    def test_finishes_schedule_rejects_array(self):
        with pytest.raises(StructuredOutputError):
            parse_finishes_schedule("[]")

    def test_compliance_note_strips_text(self):
        assert parse_compliance_note("  Permits needed.  ").text == "Permits needed."

    def test_compliance_note_rejects_blank(self):
        with pytest.raises(StructuredOutputError):
            parse_compliance_note("   ")

    def test_cost_analysis_camel_case(self):
        cost = parse_cost_analysis(f"```json\n{json.dumps(DEFAULT_COST)}\n```")
        assert cost.currency == "USD"
        assert cost.estimated_total_cost == 185000
        assert len(cost.bill_of_quantities) == 3

    def test_cost_analysis_missing_total(self):
        with pytest.raises(StructuredOutputError):
            parse_cost_analysis('{"currency": "USD"}')

    def test_sustainability_report(self):
        report = parse_sustainability_report(json.dumps(DEFAULT_SUSTAINABILITY))
        assert report.overall_score == 78
        assert "Add rooftop solar" in report.improvement_suggestions

    def test_sustainability_score_out_of_range(self):
        with pytest.raises(StructuredOutputError):
            parse_sustainability_report('{"overallScore": 140}')
