"""Tests for definition validation."""

from modelyaml.store import DefinitionStore
from modelyaml.validation import WARNING, is_valid, validate_definition
from tests.builders import THINKING_FIELD, concrete, hf_source, virtual


def _doc(**overrides):
    document = {
        "model": "qwen/qwen3-8b",
        "base": [{"key": "lmstudio-community/qwen3-8b-gguf", "sources": [hf_source()]}],
        "customFields": [THINKING_FIELD],
        "suggestions": [
            {
                "message": "thinking",
                "conditions": [{"type": "equals", "key": "$.enableThinking", "value": True}],
            }
        ],
    }
    document.update(overrides)
    return document


def _locations(issues):
    return [issue.location for issue in issues]


def test_valid_definition_has_no_issues():
    assert validate_definition(_doc()) == []


def test_schema_errors_are_reported_by_location():
    document = _doc()
    del document["base"]
    issues = validate_definition(document)
    assert _locations(issues) == ["base"]
    assert not is_valid(issues)


def test_non_mapping_document():
    assert _locations(validate_definition(["not", "a", "mapping"])) == ["<root>"]


def test_model_id_form():
    issues = validate_definition(_doc(model="qwen3-8b"))
    assert _locations(issues) == ["model"]


def test_self_reference():
    issues = validate_definition({"model": "acme/a", "base": "acme/a"})
    assert "references itself" in issues[0].message


def test_empty_concrete_base_and_sources():
    assert _locations(validate_definition(_doc(base=[]))) == ["base"]
    issues = validate_definition(_doc(base=[{"key": "org/key", "sources": []}]))
    assert _locations(issues) == ["base.0.sources"]


def test_duplicate_keys():
    issues = validate_definition(
        _doc(
            base=[
                {"key": "org/key", "sources": [hf_source()]},
                {"key": "org/key", "sources": [hf_source()]},
            ],
            customFields=[THINKING_FIELD, THINKING_FIELD],
        )
    )
    assert _locations(issues) == ["base", "customFields"]


def test_malformed_condition_path():
    suggestion = {
        "message": "m",
        "conditions": [{"type": "equals", "key": "enableThinking", "value": True}],
    }
    issues = validate_definition(_doc(suggestions=[suggestion]))
    assert _locations(issues) == ["suggestions.0.conditions.0.key"]


def test_unknown_types_are_warnings_only():
    field = {**THINKING_FIELD, "effects": [{"type": "setSystemPromptSuffix", "suffix": "x"}]}
    issues = validate_definition(
        _doc(
            base=[{"key": "org/key", "sources": [{"type": "modelscope", "id": "x"}]}],
            customFields=[field],
        )
    )
    assert {issue.severity for issue in issues} == {WARNING}
    assert is_valid(issues)


def test_accepts_parsed_definition():
    assert validate_definition(concrete("qwen/qwen3-8b")) == []


class TestAgainstStore:
    def test_dangling_reference(self):
        snapshot = DefinitionStore([concrete("qwen/qwen3-8b")]).snapshot()
        issues = validate_definition({"model": "acme/chat", "base": "qwen/missing"}, snapshot)
        assert "Unknown base reference 'qwen/missing'" in issues[0].message

    def test_cycle_through_stored_definitions(self):
        snapshot = DefinitionStore([virtual("acme/b", "acme/a")]).snapshot()
        issues = validate_definition({"model": "acme/a", "base": "acme/b"}, snapshot)
        assert "Cycle" in issues[0].message

    def test_concrete_key_owned_by_another_model(self):
        snapshot = DefinitionStore([concrete("qwen/qwen3-8b", key="org/key")]).snapshot()
        issues = validate_definition(
            _doc(model="acme/copy", base=[{"key": "org/key", "sources": [hf_source()]}]),
            snapshot,
        )
        assert "already used by qwen/qwen3-8b" in issues[0].message

    def test_valid_reference(self):
        snapshot = DefinitionStore([concrete("qwen/qwen3-8b")]).snapshot()
        assert validate_definition({"model": "acme/chat", "base": "qwen/qwen3-8b"}, snapshot) == []
