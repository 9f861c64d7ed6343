"""Tests for parsing definitions into the data model."""

import pytest
from pydantic import ValidationError

from modelyaml.definitions import (
    CheckedValue,
    CustomField,
    HuggingFaceSource,
    ModelDefinition,
    RuntimeCapabilities,
    UnknownCondition,
    UnknownEffect,
    UnknownSource,
)
from tests.builders import THINKING_FIELD, concrete, hf_source


def test_accepts_document_and_python_spelling():
    from_doc = concrete("qwen/qwen3-8b", metadataOverrides={"contextLengths": [4096]})
    from_py = concrete("qwen/qwen3-8b", metadata_overrides={"context_lengths": [4096]})
    assert from_doc.metadata_overrides.context_lengths == [4096]
    assert from_doc == from_py


def test_known_and_unknown_source_types():
    definition = concrete(
        "qwen/qwen3-8b",
        sources=[hf_source(), {"type": "modelscope", "id": "qwen/Qwen3-8B", "revision": "v1"}],
    )
    known, unknown = definition.base[0].sources
    assert isinstance(known, HuggingFaceSource)
    assert isinstance(unknown, UnknownSource)
    assert unknown.type == "modelscope"
    assert unknown.payload == {"id": "qwen/Qwen3-8B", "revision": "v1"}


def test_unknown_effect_keeps_payload():
    field = CustomField.model_validate(
        {**THINKING_FIELD, "effects": [{"type": "setSystemPromptSuffix", "suffix": "/no_think"}]}
    )
    assert isinstance(field.effects[0], UnknownEffect)
    assert field.effects[0].payload == {"suffix": "/no_think"}


def test_unknown_condition_type():
    definition = concrete(
        "qwen/qwen3-8b",
        suggestions=[{"message": "m", "conditions": [{"type": "matches", "key": "$.a"}]}],
    )
    assert isinstance(definition.suggestions[0].conditions[0], UnknownCondition)


def test_sectioned_config_is_flattened():
    definition = concrete(
        "qwen/qwen3-8b",
        config={
            "operation": {
                "fields": [
                    {"key": "llm.prediction.temperature", "value": 0.6},
                    {"key": "llm.prediction.topPSampling", "value": {"checked": True, "value": 0.95}},
                ]
            },
            "load": {"fields": [{"key": "llm.load.contextLength", "value": 8192}]},
        },
    )
    assert definition.config["llm.prediction.temperature"] == 0.6
    assert definition.config["llm.load.contextLength"] == 8192
    assert definition.config["llm.prediction.topPSampling"] == CheckedValue(checked=True, value=0.95)


def test_config_must_be_a_mapping():
    with pytest.raises(ValidationError):
        concrete("qwen/qwen3-8b", config=["llm.prediction.temperature"])


def test_default_value_must_match_type():
    with pytest.raises(ValidationError, match="is not a boolean"):
        CustomField.model_validate({**THINKING_FIELD, "defaultValue": "yes"})


def test_numeric_default_is_not_coerced():
    with pytest.raises(ValidationError):
        CustomField.model_validate({**THINKING_FIELD, "defaultValue": 1})
    with pytest.raises(ValidationError):
        CustomField.model_validate({**THINKING_FIELD, "type": "string", "defaultValue": 0})


def test_tri_state_metadata():
    definition = concrete(
        "qwen/qwen3-8b", metadataOverrides={"trainedForToolUse": "mixed", "vision": False}
    )
    assert definition.metadata_overrides.trained_for_tool_use == "mixed"
    assert definition.metadata_overrides.vision is False


def test_negative_memory_is_rejected():
    with pytest.raises(ValidationError):
        concrete("qwen/qwen3-8b", metadataOverrides={"minMemoryUsageBytes": -1})


def test_definitions_are_immutable():
    definition = concrete("qwen/qwen3-8b")
    with pytest.raises(ValidationError):
        definition.base = "acme/other"


def test_reference_and_concrete_bases():
    ref = ModelDefinition.model_validate({"model": "acme/chat", "base": "qwen/qwen3-8b"})
    assert not ref.is_concrete
    assert ref.concrete_keys == []
    assert concrete("qwen/qwen3-8b", key="org/key").concrete_keys == ["org/key"]


def test_runtime_capabilities_are_hashable():
    a = RuntimeCapabilities(supported_formats=["gguf"], available_memory_bytes=1)
    b = RuntimeCapabilities.model_validate({"supportedFormats": ["gguf"], "availableMemoryBytes": 1})
    assert a == b
    assert hash(a) == hash(b)
    assert a.supported_formats == ("gguf",)
