import json

import pytest

from domain.services.insight_parser import (
    parse_insights_reply,
    parse_staffing_reply,
    strip_code_fences,
)
from shared.utils.provider_errors import MalformedUpstreamResponse

VALID_ITEM = {
    "type": "alert",
    "title": "Respiratory surge likely",
    "description": "Open the overflow respiratory ward before the evening shift.",
    "priority": "high",
    "category": "environmental",
    "confidence": 0.8,
}


class TestStripCodeFences:
    def test_json_fence(self):
        assert strip_code_fences('```json\n[{"a": 1}]\n```') == '[{"a": 1}]'

    def test_bare_fence(self):
        assert strip_code_fences("```\n[]\n```") == "[]"

    def test_unfenced_text_is_trimmed(self):
        assert strip_code_fences('  [{"a": 1}]  ') == '[{"a": 1}]'


class TestParseInsightsReply:
    def test_valid_array(self, clock):
        [insight] = parse_insights_reply(json.dumps([VALID_ITEM]), "gemini", clock())

        assert insight.source == "ai"
        assert insight.title == VALID_ITEM["title"]
        assert insight.priority == "high"
        assert insight.generated_at == clock()

    def test_fenced_reply(self, clock):
        text = "```json\n" + json.dumps([VALID_ITEM, VALID_ITEM]) + "\n```"
        insights = parse_insights_reply(text, "gemini", clock())

        assert len(insights) == 2
        assert insights[0].id != insights[1].id

    def test_optional_fields_default(self, clock):
        reply = json.dumps([{"title": "Check oxygen", "description": "Audit cylinders.", "priority": None}])
        [insight] = parse_insights_reply(reply, "gemini", clock())

        assert insight.type == "recommendation"
        assert insight.priority == "medium"
        assert insight.category == "capacity"
        assert insight.confidence == 0.75

    @pytest.mark.parametrize(
        "reply",
        [
            "The air is bad today.",
            json.dumps({"title": "not a list", "description": "x"}),
            json.dumps([]),
            json.dumps(["just a string"]),
            json.dumps([{"description": "missing title"}]),
            json.dumps([{"title": "", "description": "blank title"}]),
            json.dumps([{**VALID_ITEM, "priority": "urgent"}]),
            json.dumps([{**VALID_ITEM, "confidence": "0.9"}]),
            json.dumps([{**VALID_ITEM, "confidence": 1.5}]),
            json.dumps([VALID_ITEM, {"title": 42, "description": "x"}]),
        ],
    )
    def test_malformed_replies_are_rejected(self, reply):
        with pytest.raises(MalformedUpstreamResponse):
            parse_insights_reply(reply, "gemini")

    def test_rejection_keeps_details_internal(self):
        with pytest.raises(MalformedUpstreamResponse) as ctx:
            parse_insights_reply("SECRET not json", "gemini")

        assert "SECRET" not in str(ctx.value)
        assert ctx.value.internal_message


class TestParseStaffingReply:
    def test_valid_object(self):
        reply = parse_staffing_reply(
            json.dumps({"recommended_staff": 48, "title": "Add staff", "description": "Call in 8."})
        )
        assert reply.recommended_staff == 48
        assert reply.priority is None

    @pytest.mark.parametrize(
        "payload",
        [
            [],
            {"recommended_staff": "48", "title": "t", "description": "d"},
            {"recommended_staff": -1, "title": "t", "description": "d"},
            {"title": "t", "description": "d"},
        ],
    )
    def test_malformed(self, payload):
        with pytest.raises(MalformedUpstreamResponse):
            parse_staffing_reply(json.dumps(payload))
