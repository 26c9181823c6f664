"""
Prompt-context shaping & output extraction tests.

Tests cover:
  - fenced code block stripping (with/without json tag)
  - strict JSON parsing and AIResponseParseError
  - truncation marker on pillar context
  - free-text length gate boundaries
  - transient vs fatal classification of upstream errors
"""

import pytest

from advertis.ai.extraction import (
    SNIPPET_CHARS,
    TRUNCATION_MARKER,
    bound_freetext,
    build_pillar_context,
    classify_upstream_error,
    is_transient_error,
    parse_json_object,
    strip_code_fence,
    truncate_text,
)
from advertis.core.exceptions import (
    AIResponseParseError,
    NotFoundError,
    UpstreamFatalError,
    UpstreamTransientError,
    ValidationError,
)
from advertis.models.strategy import Pillar


class FakeAPIError(Exception):
    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class TestFenceStripping:
    def test_json_tagged_fence(self):
        assert strip_code_fence('```json\n{"A1": "x"}\n```') == '{"A1": "x"}'

    def test_untagged_fence_with_prose(self):
        text = 'Voici le résultat :\n```\n{"A1": "x"}\n```\nBonne journée'
        assert strip_code_fence(text) == '{"A1": "x"}'

    def test_no_fence(self):
        assert strip_code_fence('  {"A1": "x"} ') == '{"A1": "x"}'

    def test_none(self):
        assert strip_code_fence(None) == ""


class TestParseJsonObject:
    def test_parses_fenced_object(self):
        assert parse_json_object('```json\n{"A1": "x", "D1": "y"}\n```', "fill_interview") == {
            "A1": "x", "D1": "y",
        }

    def test_invalid_json_raises(self):
        with pytest.raises(AIResponseParseError) as exc_info:
            parse_json_object("Désolé, je ne peux pas répondre.", "fill_interview")
        assert exc_info.value.purpose == "fill_interview"
        assert exc_info.value.raw_snippet.startswith("Désolé")
        assert exc_info.value.http_status == 500
        assert exc_info.value.retryable is False

    def test_non_object_json_raises(self):
        with pytest.raises(AIResponseParseError):
            parse_json_object('["A1", "A2"]', "map_freetext")

    def test_snippet_is_bounded(self):
        with pytest.raises(AIResponseParseError) as exc_info:
            parse_json_object("x" * 5000, "fill_interview")
        assert len(exc_info.value.raw_snippet) == SNIPPET_CHARS


class TestPillarContext:
    def test_truncate_text(self):
        assert truncate_text("abc", 3) == "abc"
        assert truncate_text("abcdef", 3) == "abc" + TRUNCATION_MARKER

    def test_only_complete_pillars_in_allowed_types(self, tables):
        pillars = [
            Pillar(type="A", title="Authenticité", status="complete", content="a" * 4000),
            Pillar(type="D", title="Distinction", status="pending", content="ignored"),
            Pillar(type="R", title="Risk", status="complete", content={"risk": "x"}),
        ]
        parts = build_pillar_context(pillars, tables, limit=3000, allowed_types=["A", "D", "V", "E"])
        assert len(parts) == 1
        assert parts[0].startswith("### Pilier A — Authenticité\n")
        assert parts[0].endswith(TRUNCATION_MARKER)

    def test_structured_content_serialised(self, tables):
        pillars = [Pillar(type="V", title="Valeur", status="complete", content={"prix": "premium"})]
        parts = build_pillar_context(pillars, tables)
        assert '"prix": "premium"' in parts[0]


class TestFreetextGate:
    def test_below_minimum_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            bound_freetext("x" * 99)
        assert exc_info.value.details["length"] == 99

    def test_minimum_accepted(self):
        assert bound_freetext("x" * 100) == "x" * 100

    def test_length_counted_after_trimming(self):
        with pytest.raises(ValidationError):
            bound_freetext("   " + "x" * 99 + "   ")

    def test_maximum_kept(self):
        assert len(bound_freetext("x" * 50_000)) == 50_000

    def test_above_maximum_truncated(self):
        assert len(bound_freetext("x" * 50_001)) == 50_000

    @pytest.mark.parametrize("value", [None, "", "    ", 123])
    def test_missing_text(self, value):
        with pytest.raises(ValidationError, match="text is required"):
            bound_freetext(value)


class TestClassification:
    @pytest.mark.parametrize("message", [
        "Overloaded", "Please try again later", "Le service est surchargé", "Veuillez réessayer",
    ])
    def test_marker_messages_are_transient(self, message):
        markers = ("overloaded", "try again", "surchargé", "réessayer")
        assert is_transient_error(RuntimeError(message), markers)

    @pytest.mark.parametrize("status", [429, 503, 529])
    def test_transient_status_codes(self, status):
        err = classify_upstream_error(FakeAPIError("boom", status_code=status))
        assert isinstance(err, UpstreamTransientError)
        assert err.http_status == 503
        assert err.retryable is True

    def test_other_errors_are_fatal(self):
        err = classify_upstream_error(FakeAPIError("invalid api key", status_code=401))
        assert isinstance(err, UpstreamFatalError)
        assert err.http_status == 500
        assert err.retryable is False

    def test_timeout_is_fatal(self):
        assert isinstance(classify_upstream_error(TimeoutError("Request timed out")), UpstreamFatalError)

    def test_platform_errors_pass_through(self):
        original = NotFoundError("Strategy", "s-1")
        assert classify_upstream_error(original) is original
