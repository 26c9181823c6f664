"""
Interview auto-fill tests.

Tests cover:
  - the merge scenario on a three-variable schema, then the market study
    completion on the same strategy
  - short-circuit when nothing is empty (no model call)
  - prompt content: filled context, trusted pillars only, empty targets
  - persistence bumps the interview version; a concurrent edit conflicts
  - upstream and parse failures leave interview data unchanged
"""

import json

import pytest

from advertis.ai.assistants import InterviewFiller
from advertis.ai.gateway import LLMGateway
from advertis.ai.prompt_registry import PromptRegistry
from advertis.core.exceptions import (
    AIResponseParseError,
    ConflictError,
    InvalidPhaseError,
    NotFoundError,
    UpstreamTransientError,
)
from advertis.models import db
from advertis.services import market_study_service, phase_machine, strategy_service
from advertis.services.static_tables import InterviewSchema, StaticTables


@pytest.fixture()
def mini_tables(tables):
    schema = InterviewSchema.from_dict({"sections": [
        {"pillar": "A", "title": "Authenticité", "variables": [
            {"id": "A1", "label": "Identité de Marque", "description": "Le noyau", "placeholder": "Ex: Sage"},
            {"id": "A2", "label": "Hero's Journey", "description": "L'histoire", "placeholder": "Ex: Acte 1"},
        ]},
        {"pillar": "D", "title": "Distinction", "variables": [
            {"id": "D1", "label": "Personas", "description": "Les cibles", "placeholder": "Ex: Awa, 34 ans"},
        ]},
    ]})
    return StaticTables(schema=schema, white_label=tables.white_label,
                        pillars=tables.pillars, phases=tables.phases, pricing={})


@pytest.fixture()
def filler(scripted, mini_tables):
    gateway = LLMGateway(scripted, model="claude-test")
    return InterviewFiller(gateway, PromptRegistry(), mini_tables, timeout=90)


class TestMergeScenario:
    def test_fill_then_complete_market_study(self, filler, scripted, make_strategy, force_phase):
        s = force_phase(make_strategy(interview_data={"A1": "x"}), "market-study")
        market_study_service.ensure_market_study(s.id, "user-1")
        scripted.queue(json.dumps({"A1": "should-not-apply", "A2": "filled-A2", "D1": ""}))

        result = filler.fill(s.id, "user-1")

        assert result["filledData"] == {"A1": "x", "A2": "filled-A2"}
        assert result["autoFilledIds"] == ["A2"]
        assert result["totalFilled"] == 2
        stored = strategy_service.get_owned_strategy(s.id, "user-1")
        assert stored.interview_data == {"A1": "x", "A2": "filled-A2"}
        assert stored.interview_version == 1

        assert phase_machine.complete_market_study(s.id, "user-1").phase == "audit-t"
        with pytest.raises(InvalidPhaseError) as exc_info:
            phase_machine.complete_market_study(s.id, "user-1")
        assert exc_info.value.required_phase == "market-study"
        assert exc_info.value.actual_phase == "audit-t"

    def test_fenced_response(self, filler, scripted, make_strategy):
        s = make_strategy()
        scripted.queue('```json\n{"A1": " a ", "A2": "b", "D1": "c"}\n```')
        result = filler.fill(s.id, "user-1")
        assert result["filledData"] == {"A1": "a", "A2": "b", "D1": "c"}
        assert result["totalFilled"] == 3


class TestShortCircuit:
    def test_nothing_empty_means_no_call(self, filler, scripted, make_strategy):
        data = {"A1": "a", "A2": "b", "D1": "c"}
        s = make_strategy(interview_data=data)
        result = filler.fill(s.id, "user-1")
        assert result == {"filledData": data, "autoFilledIds": [], "totalFilled": 3}
        assert scripted.calls == []

    def test_nothing_accepted_keeps_version(self, filler, scripted, make_strategy):
        s = make_strategy(interview_data={"A1": "x"})
        scripted.queue('{"A1": "nope", "A2": "   "}')
        result = filler.fill(s.id, "user-1")
        assert result["autoFilledIds"] == []
        assert strategy_service.get_owned_strategy(s.id, "user-1").interview_version == 0


class TestPrompt:
    def test_prompt_lists_context_and_targets(self, filler, scripted, make_strategy):
        s = make_strategy(interview_data={"A1": "Le Sage"})
        pillars = {p.type: p for p in s.pillars.all()}
        pillars["A"].status = "complete"
        pillars["A"].content = {"identite": "x" * 5000}
        pillars["D"].content = "pending content is not trusted"
        db.session.commit()
        scripted.queue("{}")

        filler.fill(s.id, "user-1")

        messages, _, kwargs = scripted.calls[0]
        user_msg = scripted.last_user_message
        assert messages[0]["role"] == "system"
        assert kwargs["timeout"] == 90
        assert kwargs["max_tokens"] == 6000
        assert "Bonnet Rouge" in user_msg
        assert "Le Sage" in user_msg
        assert "### A2 — Hero's Journey (Pilier A)" in user_msg
        assert "### D1 — Personas (Pilier D)" in user_msg
        assert "### A1 —" not in user_msg
        assert "### Pilier A — Authenticité" in user_msg
        assert "[... tronqué ...]" in user_msg
        assert "pending content is not trusted" not in user_msg


class TestFailures:
    def test_concurrent_edit_conflicts(self, filler, scripted, make_strategy, mini_tables):
        s = make_strategy()

        def edit_then_answer(messages, model, **kwargs):
            # a user edit lands while the model is generating
            strategy_service.edit_interview(s, {"A1": "typed by user"}, None, mini_tables.schema)
            return {"content": '{"A1": "gen", "A2": "gen"}', "prompt_tokens": 1,
                    "completion_tokens": 1, "model": model}

        scripted.chat = edit_then_answer
        with pytest.raises(ConflictError):
            filler.fill(s.id, "user-1")
        assert strategy_service.get_owned_strategy(s.id, "user-1").interview_data == {"A1": "typed by user"}

    def test_transient_error_leaves_data(self, filler, scripted, make_strategy):
        s = make_strategy(interview_data={"A1": "x"})
        scripted.queue(RuntimeError("Overloaded"))
        with pytest.raises(UpstreamTransientError):
            filler.fill(s.id, "user-1")
        assert strategy_service.get_owned_strategy(s.id, "user-1").interview_data == {"A1": "x"}

    def test_parse_error_leaves_data(self, filler, scripted, make_strategy):
        s = make_strategy(interview_data={"A1": "x"})
        scripted.queue("Je ne peux pas répondre en JSON.")
        with pytest.raises(AIResponseParseError):
            filler.fill(s.id, "user-1")
        assert strategy_service.get_owned_strategy(s.id, "user-1").interview_version == 0

    def test_other_owner(self, filler, scripted, make_strategy):
        s = make_strategy(user_id="user-2")
        with pytest.raises(NotFoundError):
            filler.fill(s.id, "user-1")
        assert scripted.calls == []
