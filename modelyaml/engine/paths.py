"""Path expressions over resolved state.

Conditions address state with ``$``-rooted paths such as ``$.enableThinking``
or ``$.llm.prediction.temperature``. Instead of walking objects, lookups go
through a flat mapping built once per resolution.
"""

from collections.abc import Mapping
from typing import Any

from modelyaml.definitions import CheckedValue, MetadataOverrides

ROOT = "$"


class MalformedPath(ValueError):
    """Raised for a path that is not rooted at ``$`` or has an empty segment."""

    def __init__(self, path: object) -> None:
        self.path = path
        super().__init__(f"Malformed path expression: {path!r}")


def build_state_view(
    custom_values: Mapping[str, Any],
    config: Mapping[str, Any],
    metadata: MetadataOverrides | None = None,
) -> dict[str, Any]:
    """Flatten resolved state into dotted keys.

    On a key clash custom fields win over config, and config over metadata.
    Metadata fields appear under their document names (``contextLengths``)
    and again under ``metadata.<name>``. A CheckedValue config entry also
    exposes ``<key>.checked`` and ``<key>.value``.
    """
    view: dict[str, Any] = {}

    if metadata is not None:
        document = metadata.model_dump(by_alias=True, exclude_unset=True)
        for name, value in document.items():
            view[name] = value
            view[f"metadata.{name}"] = value

    for key, value in config.items():
        view[key] = value
        if isinstance(value, CheckedValue):
            view[f"{key}.checked"] = value.checked
            view[f"{key}.value"] = value.value

    view.update(custom_values)
    return view


def parse_path(path: str) -> str:
    """Return the flat key a path expression addresses (``""`` for ``$``)."""
    if not isinstance(path, str):
        raise MalformedPath(path)
    path = path.strip()
    if path == ROOT:
        return ""
    if not path.startswith(ROOT + "."):
        raise MalformedPath(path)
    key = path[len(ROOT) + 1 :]
    if not key or any(not segment for segment in key.split(".")):
        raise MalformedPath(path)
    return key


def lookup_path(path: str, state: Mapping[str, Any]) -> tuple[bool, Any]:
    """Resolve *path* against a flat state view.

    Returns ``(found, value)``; a path that addresses nothing gives
    ``(False, None)``. Raises MalformedPath for syntactically bad paths.
    """
    key = parse_path(path)
    if key == "":
        return True, dict(state)
    if key in state:
        return True, state[key]
    return False, None
