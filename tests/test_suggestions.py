"""Tests for path expressions and suggestion evaluation."""

import pytest

from modelyaml.definitions import CheckedValue, DiagnosticKind, MetadataOverrides, Suggestion
from modelyaml.engine.paths import MalformedPath, build_state_view, lookup_path
from modelyaml.engine.suggestions import evaluate_suggestions, values_equal
from tests.builders import THINKING_SUGGESTION


def _suggestions(*documents):
    return [Suggestion.model_validate(d) for d in documents]


def _equals(key, value, message="suggestion"):
    return {"message": message, "conditions": [{"type": "equals", "key": key, "value": value}]}


class TestValuesEqual:
    def test_booleans_only_match_booleans(self):
        assert values_equal(True, True)
        assert not values_equal(True, 1)
        assert not values_equal(1, True)
        assert not values_equal(False, 0)

    def test_numbers_compare_numerically(self):
        assert values_equal(1, 1.0)
        assert values_equal(0.6, 0.6)
        assert not values_equal(1, "1")

    def test_checked_value_matches_only_when_checked(self):
        assert values_equal(CheckedValue(checked=True, value=40), 40)
        assert not values_equal(CheckedValue(checked=False, value=40), 40)
        assert values_equal(CheckedValue(checked=False, value=40), {"checked": False, "value": 40})


class TestPaths:
    def test_lookup_custom_field(self):
        state = build_state_view({"enableThinking": True}, {})
        assert lookup_path("$.enableThinking", state) == (True, True)

    def test_lookup_missing_path(self):
        assert lookup_path("$.enableThinking", {}) == (False, None)

    @pytest.mark.parametrize("path", ["enableThinking", "$.", "$..a", "$.a..b", "$a", ""])
    def test_malformed_paths(self, path):
        with pytest.raises(MalformedPath):
            lookup_path(path, {})

    def test_state_view_layers(self):
        metadata = MetadataOverrides(context_lengths=[4096], vision=False)
        config = {
            "llm.prediction.topKSampling": CheckedValue(checked=True, value=40),
            "vision": "from-config",
        }
        state = build_state_view({"vision": "from-field"}, config, metadata)
        assert state["vision"] == "from-field"
        assert state["metadata.vision"] is False
        assert state["contextLengths"] == [4096]
        assert state["llm.prediction.topKSampling.checked"] is True
        assert state["llm.prediction.topKSampling.value"] == 40

    def test_unset_metadata_is_not_addressable(self):
        state = build_state_view({}, {}, MetadataOverrides(domain="llm"))
        assert lookup_path("$.domain", state) == (True, "llm")
        assert lookup_path("$.vision", state) == (False, None)


class TestEvaluateSuggestions:
    def test_emitted_when_condition_matches(self):
        emitted, diagnostics = evaluate_suggestions(
            _suggestions(THINKING_SUGGESTION), {"enableThinking": True}
        )
        assert [s.message for s in emitted] == [THINKING_SUGGESTION["message"]]
        assert diagnostics == []

    def test_not_emitted_when_condition_fails(self):
        emitted, _ = evaluate_suggestions(
            _suggestions(THINKING_SUGGESTION), {"enableThinking": False}
        )
        assert emitted == []

    def test_missing_path_is_a_non_match(self):
        emitted, diagnostics = evaluate_suggestions(_suggestions(THINKING_SUGGESTION), {})
        assert emitted == []
        assert diagnostics == []

    def test_all_conditions_must_hold(self):
        suggestion = {
            "message": "both",
            "conditions": [
                {"type": "equals", "key": "$.enableThinking", "value": True},
                {"type": "equals", "key": "$.llm.prediction.temperature", "value": 0.6},
            ],
        }
        state = {"enableThinking": True, "llm.prediction.temperature": 0.8}
        assert evaluate_suggestions(_suggestions(suggestion), state)[0] == []
        state["llm.prediction.temperature"] = 0.6
        assert len(evaluate_suggestions(_suggestions(suggestion), state)[0]) == 1

    def test_emission_follows_declaration_order(self):
        suggestions = _suggestions(
            _equals("$.a", 1, "first"),
            _equals("$.b", 2, "skipped"),
            _equals("$.a", 1, "third"),
        )
        emitted, _ = evaluate_suggestions(suggestions, {"a": 1, "b": 3})
        assert [s.message for s in emitted] == ["first", "third"]

    def test_malformed_path_records_diagnostic(self):
        emitted, diagnostics = evaluate_suggestions(
            _suggestions(_equals("enableThinking", True)), {"enableThinking": True}
        )
        assert emitted == []
        assert [d.kind for d in diagnostics] == [DiagnosticKind.MALFORMED_CONDITION_PATH]

    def test_unknown_condition_type_never_matches(self):
        suggestion = {
            "message": "future",
            "conditions": [{"type": "greaterThan", "key": "$.a", "value": 0}],
        }
        emitted, diagnostics = evaluate_suggestions(_suggestions(suggestion), {"a": 5})
        assert emitted == []
        assert [d.kind for d in diagnostics] == [DiagnosticKind.UNKNOWN_CONDITION_TYPE]

    def test_state_is_not_mutated(self):
        state = {"enableThinking": True, "llm.prediction.temperature": 0.6}
        before = dict(state)
        evaluate_suggestions(_suggestions(THINKING_SUGGESTION, _equals("$.x", 1)), state)
        assert state == before

    def test_checked_config_condition(self):
        config = {"llm.prediction.topKSampling": CheckedValue(checked=True, value=40)}
        state = build_state_view({}, config)
        suggestions = _suggestions(
            _equals("$.llm.prediction.topKSampling", 40, "value"),
            _equals("$.llm.prediction.topKSampling.checked", True, "checked"),
        )
        emitted, _ = evaluate_suggestions(suggestions, state)
        assert [s.message for s in emitted] == ["value", "checked"]
