"""CLI entry point: resolve models or validate definition files."""

import argparse
import json
import logging
import sys
from pathlib import Path

from modelyaml.cache import ModelResolver
from modelyaml.config import DEFINITIONS_DIR
from modelyaml.definitions import ResolvedModel
from modelyaml.errors import DefinitionLoadError, DuplicateConcreteKey, ResolutionError
from modelyaml.exporters.json_export import export_all
from modelyaml.loaders.files import load_definitions_dir, read_document
from modelyaml.loaders.remote import fetch_definitions
from modelyaml.runtime import detect_runtime_capabilities
from modelyaml.store import DefinitionStore
from modelyaml.validation import DefinitionIssue, is_valid, validate_definition

logger = logging.getLogger(__name__)


def parse_override(raw: str) -> tuple[str, bool | str]:
    """Parse ``KEY=VALUE``; ``true``/``false`` become booleans."""
    key, sep, value = raw.partition("=")
    if not sep or not key.strip():
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got '{raw}'")
    if value in ("true", "false"):
        return key.strip(), value == "true"
    return key.strip(), value


def load_store(definitions_dir: Path | None, urls: list[str]) -> DefinitionStore:
    """Build a store from a definitions directory and/or remote documents."""
    store = DefinitionStore()
    if definitions_dir is not None and definitions_dir.exists():
        store.put_many(load_definitions_dir(definitions_dir))
    elif definitions_dir is not None:
        logger.warning("Definitions directory %s does not exist", definitions_dir)
    if urls:
        store.put_many(fetch_definitions(urls))
    logger.info("Definition store holds %d models", len(store))
    return store


def run_resolve(args: argparse.Namespace) -> list[ResolvedModel]:
    """Resolve each requested model and print or export the results."""
    logger.info("=== Resolve ===")
    store = load_store(args.definitions, args.url)
    capabilities = detect_runtime_capabilities(
        supported_formats=tuple(args.format) if args.format else None,
        available_memory_bytes=args.memory,
        preferred_param_size=args.param_size,
    )
    overrides = dict(args.set or [])
    resolver = ModelResolver(store)

    results = [resolver.resolve(model_id, capabilities, overrides) for model_id in args.models]
    for resolved in results:
        for diagnostic in resolved.diagnostics:
            logger.warning("%s: %s %s", resolved.model, diagnostic.kind.value, diagnostic.message)

    if args.output is not None:
        for name, path in export_all(results, args.output).items():
            logger.info("Exported %s -> %s", name, path)
    else:
        documents = [r.to_document() for r in results]
        print(json.dumps(documents[0] if len(documents) == 1 else documents, indent=2))
    return results


def run_validate(args: argparse.Namespace) -> dict[Path, list[DefinitionIssue]]:
    """Validate definition files, optionally against a definitions directory."""
    logger.info("=== Validate ===")
    snapshot = None
    if args.definitions is not None:
        snapshot = load_store(args.definitions, []).snapshot()

    report: dict[Path, list[DefinitionIssue]] = {}
    for path in args.files:
        try:
            issues = validate_definition(read_document(path), snapshot)
        except DefinitionLoadError as e:
            issues = [DefinitionIssue("<document>", e.details)]
        report[path] = issues
        if not issues:
            print(f"{path}: OK")
        for issue in issues:
            print(f"{path}: {issue.severity} {issue.location}: {issue.message}")
    return report


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Resolve model.yaml model definitions")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    resolve = subparsers.add_parser("resolve", help="Resolve models for this machine")
    resolve.add_argument("models", nargs="+", help="Model ids (org/name)")
    resolve.add_argument(
        "--definitions",
        type=Path,
        default=DEFINITIONS_DIR,
        help=f"Directory of definition files (default: {DEFINITIONS_DIR})",
    )
    resolve.add_argument("--url", action="append", default=[], help="Fetch a definition from a URL")
    resolve.add_argument(
        "--format",
        action="append",
        help="Supported format, most preferred first (repeatable; default: detected)",
    )
    resolve.add_argument("--memory", type=int, help="Available memory in bytes (default: detected)")
    resolve.add_argument("--param-size", help="Preferred params size or quantization, e.g. 8B")
    resolve.add_argument(
        "--set",
        action="append",
        type=parse_override,
        metavar="KEY=VALUE",
        help="Custom field value (repeatable)",
    )
    resolve.add_argument("--output", type=Path, help="Export JSON files here instead of printing")

    validate = subparsers.add_parser("validate", help="Check definition files")
    validate.add_argument("files", nargs="+", type=Path)
    validate.add_argument(
        "--definitions",
        type=Path,
        help="Also check references against this directory of definitions",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        if args.command == "resolve":
            run_resolve(args)
        elif args.command == "validate":
            report = run_validate(args)
            if not all(is_valid(issues) for issues in report.values()):
                sys.exit(1)
    except ResolutionError as e:
        logger.error("%s: %s", e.kind, e)
        sys.exit(1)
    except (DefinitionLoadError, DuplicateConcreteKey) as e:
        logger.error("Could not build definition store: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
