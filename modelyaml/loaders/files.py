"""Load model definitions from YAML or JSON files."""

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from modelyaml.definitions import ModelDefinition
from modelyaml.errors import DefinitionLoadError

logger = logging.getLogger(__name__)

DEFINITION_SUFFIXES = {".yaml", ".yml", ".json"}


def parse_document(text: str, source: str) -> dict[str, Any]:
    """Parse YAML (or JSON, which YAML accepts) into a mapping."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise DefinitionLoadError(source, f"invalid YAML: {e}") from e
    if not isinstance(data, dict):
        raise DefinitionLoadError(source, "document must be a mapping")
    return data


def build_definition(data: dict[str, Any], source: str) -> ModelDefinition:
    try:
        return ModelDefinition.model_validate(data)
    except ValidationError as e:
        raise DefinitionLoadError(source, str(e)) from e


def read_document(path: Path) -> dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise DefinitionLoadError(str(path), str(e)) from e
    return parse_document(text, str(path))


def load_definition_file(path: Path) -> ModelDefinition:
    """Load one definition file."""
    definition = build_definition(read_document(path), str(path))
    logger.debug("Loaded %s from %s", definition.model, path)
    return definition


def load_definitions_dir(directory: Path) -> list[ModelDefinition]:
    """Load every definition file under *directory*, sorted by path.

    Raises DefinitionLoadError on the first file that fails to load.
    """
    if not directory.is_dir():
        raise DefinitionLoadError(str(directory), "not a directory")

    paths = sorted(p for p in directory.rglob("*") if p.suffix in DEFINITION_SUFFIXES and p.is_file())
    definitions = [load_definition_file(p) for p in paths]
    logger.info("Loaded %d definitions from %s", len(definitions), directory)
    return definitions
