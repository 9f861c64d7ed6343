"""Export resolved models to JSON files."""

import json
import logging
from datetime import UTC, datetime
from pathlib import Path

from modelyaml.config import EXPORT_DIR
from modelyaml.definitions import ResolvedModel

logger = logging.getLogger(__name__)


def resolved_filename(model_id: str) -> str:
    """Map ``org/name`` to a flat file name."""
    return model_id.replace("/", "__") + ".resolved.json"


def export_resolved(
    resolved: ResolvedModel,
    output_dir: Path | None = None,
) -> Path:
    """Write one resolved model to ``<org>__<name>.resolved.json``."""
    if output_dir is None:
        output_dir = EXPORT_DIR
    output_dir.mkdir(parents=True, exist_ok=True)

    path = output_dir / resolved_filename(resolved.model)
    path.write_text(json.dumps(resolved.to_document(), indent=2) + "\n")
    logger.info("Exported %s to %s", resolved.model, path)
    return path


def export_index(
    resolved: list[ResolvedModel],
    output_dir: Path | None = None,
) -> Path:
    """Write index.json listing the exported models."""
    if output_dir is None:
        output_dir = EXPORT_DIR
    output_dir.mkdir(parents=True, exist_ok=True)

    index = {
        "models": sorted(
            (
                {"model": r.model, "file": resolved_filename(r.model), "hasSource": r.source is not None}
                for r in resolved
            ),
            key=lambda row: row["model"],
        ),
        "generated_at": datetime.now(UTC).isoformat(),
    }
    path = output_dir / "index.json"
    path.write_text(json.dumps(index, indent=2) + "\n")
    logger.info("Exported index of %d models to %s", len(resolved), path)
    return path


def export_all(
    resolved: list[ResolvedModel],
    output_dir: Path | None = None,
) -> dict[str, Path]:
    """Export every resolved model plus the index."""
    result: dict[str, Path] = {r.model: export_resolved(r, output_dir) for r in resolved}
    result["index"] = export_index(resolved, output_dir)
    return result
