"""Tests for resolved model export (file writing and index)."""

import json

from modelyaml.definitions import MetadataOverrides, ResolvedModel, RuntimeCapabilities
from modelyaml.engine.resolver import resolve_model
from modelyaml.exporters.json_export import export_all, export_index, export_resolved, resolved_filename
from modelyaml.store import DefinitionStore
from tests.builders import GB, concrete, virtual


def _resolved(model="acme/chat"):
    snapshot = DefinitionStore(
        [
            concrete("qwen/qwen3-8b", metadataOverrides={"contextLengths": [4096]}),
            virtual("acme/chat", "qwen/qwen3-8b"),
        ]
    ).snapshot()
    caps = RuntimeCapabilities(supported_formats=("gguf",), available_memory_bytes=16 * GB)
    return resolve_model(snapshot, model, caps)


def test_resolved_filename():
    assert resolved_filename("qwen/qwen3-8b") == "qwen__qwen3-8b.resolved.json"


def test_export_resolved_writes_document(tmp_path):
    path = export_resolved(_resolved(), tmp_path)

    assert path == tmp_path / "acme__chat.resolved.json"
    document = json.loads(path.read_text())
    assert document["model"] == "acme/chat"
    assert document["ancestry"] == ["qwen/qwen3-8b", "acme/chat"]
    assert document["metadata"] == {"contextLengths": [4096]}
    assert document["source"]["baseKey"] == "qwen/qwen3-8b-gguf"


def test_export_creates_missing_directory(tmp_path):
    output = tmp_path / "nested" / "out"
    export_resolved(_resolved(), output)
    assert (output / "acme__chat.resolved.json").exists()


def test_index_format(tmp_path):
    without_source = ResolvedModel(
        model="acme/empty", ancestry=("acme/empty",), metadata=MetadataOverrides()
    )
    path = export_index([_resolved(), without_source], tmp_path)

    index = json.loads(path.read_text())
    assert index["models"] == [
        {"model": "acme/chat", "file": "acme__chat.resolved.json", "hasSource": True},
        {"model": "acme/empty", "file": "acme__empty.resolved.json", "hasSource": False},
    ]
    assert "generated_at" in index


def test_export_all(tmp_path):
    paths = export_all([_resolved(), _resolved("qwen/qwen3-8b")], tmp_path)

    assert set(paths) == {"acme/chat", "qwen/qwen3-8b", "index"}
    assert sorted(p.name for p in tmp_path.iterdir()) == [
        "acme__chat.resolved.json",
        "index.json",
        "qwen__qwen3-8b.resolved.json",
    ]
