"""
Command line interface: classify an utterance and maintain the embedding cache.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from .core import config
from .core.errors import ConfigurationError
from .intent.classifier import IntentClassifier
from .intent.schemas import ClassificationResult, ClassifierConfig, DiscoveryResult, ProjectState
from .util.logging import logger
from .vector.cache import EmbeddingCache
from .vector.embeddings import heuristic_version


def _load_json(path: str, model):
    with open(path, "r", encoding="utf-8") as f:
        return model.model_validate(json.load(f))


def format_result(result: ClassificationResult) -> str:
    """Human-readable rendering of a classification result."""
    lines = [f"Type:       {result.type}"]
    lines.append(f"Command:    {result.command.name if result.command else '-'}")
    lines.append(f"Confidence: {result.confidence:.3f}")
    lines.append(f"Method:     {result.method or '-'}")
    lines.append(f"Stage:      {result.lifecycle_stage.value if result.lifecycle_stage else '-'}")

    args = result.arguments
    if args.phase_number:
        lines.append(f"Phase:      {args.phase_number}")
    if args.flags:
        lines.append(f"Flags:      {', '.join(args.flags)}")
    if args.description:
        lines.append(f"Quoted:     {args.description}")
    if args.version:
        lines.append(f"Version:    {args.version}")
    if args.profile:
        lines.append(f"Profile:    {args.profile}")

    if result.alternatives:
        lines.append("Alternatives:")
        for alternative in result.alternatives:
            lines.append(f"  - {alternative.command.name} ({alternative.confidence:.3f})")

    return "\n".join(lines)


def classify_command(args) -> int:
    """Classify a single utterance against discovered commands and project state."""
    if not args.text or not args.text.strip():
        print("ERROR: No input text given", file=sys.stderr)
        return 1

    try:
        discovery = _load_json(args.commands, DiscoveryResult)
        state = _load_json(args.state, ProjectState)
    except (OSError, ValueError, ValidationError) as e:
        print(f"ERROR: Could not read input files: {e}", file=sys.stderr)
        logger.error(f"CLI classify failed to load inputs: {e}")
        return 1

    classifier = IntentClassifier(ClassifierConfig.from_env())

    async def run():
        await classifier.initialize(discovery, enable_semantic=False if args.no_semantic else None)
        return await classifier.classify(args.text, state)

    result = asyncio.run(run())

    if args.pretty:
        print(format_result(result))
    else:
        print(json.dumps(result.model_dump(mode="json"), indent=2))
    return 0


def _open_cache(args) -> EmbeddingCache:
    cache_path = Path(args.cache_path) if args.cache_path else None
    cache = EmbeddingCache(config.EMBEDDING_MODEL_VERSION, cache_path)
    cache.load()
    return cache


def _current_versions(args) -> list:
    # Fallback mode caches under the heuristic tag, so both tags are live by default
    return args.model_version or [config.EMBEDDING_MODEL_VERSION, heuristic_version(config.EMBED_DIM)]


def cache_stats_command(args) -> int:
    cache = _open_cache(args)
    versions = _current_versions(args)
    stats = cache.get_stats()
    stats["current_versions"] = versions
    stats["stale_version_entries"] = len(cache.get_stale_version_entries(versions))
    print(json.dumps(stats, indent=2))
    return 0


def cache_clear_command(args) -> int:
    cache = _open_cache(args)
    count = cache.get_stats()["entries"]
    cache.clear()
    if count and not cache.save():
        print(f"ERROR: Failed to write cache at {cache.cache_path}", file=sys.stderr)
        return 1
    print(f"Cleared {count} cache entries")
    return 0


def cache_stale_command(args) -> int:
    """Remove entries older than --max-age-days or built by a version that is no longer current."""
    cache = _open_cache(args)
    keys = cache.get_stale_entries(args.max_age_days * 86400)
    for key in cache.get_stale_version_entries(_current_versions(args)):
        if key not in keys:
            keys.append(key)

    removed = cache.remove_keys(keys)
    if removed and not cache.save():
        print(f"ERROR: Failed to write cache at {cache.cache_path}", file=sys.stderr)
        return 1
    print(f"Removed {removed} stale cache entries")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Intent classification for workflow commands",
        prog="cmdintent",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {config.VERSION}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    classify_parser = subparsers.add_parser("classify", help="Classify an utterance")
    classify_parser.add_argument("text", nargs="?", default="", help="Utterance to classify")
    classify_parser.add_argument("--commands", required=True, help="DiscoveryResult JSON file")
    classify_parser.add_argument("--state", required=True, help="ProjectState JSON file")
    classify_parser.add_argument("--pretty", action="store_true", help="Human-readable output")
    classify_parser.add_argument("--no-semantic", action="store_true", help="Disable semantic fallback")
    classify_parser.set_defaults(func=classify_command)

    cache_parser = subparsers.add_parser("cache", help="Embedding cache maintenance")
    cache_common = argparse.ArgumentParser(add_help=False)
    cache_common.add_argument("--cache-path", default=None, help="Cache file (default: resolved from environment)")
    cache_common.add_argument("--model-version", action="append", default=None,
                              help="Version tag to treat as current (repeatable; default: the model and heuristic tags)")
    cache_sub = cache_parser.add_subparsers(dest="cache_command", help="Cache operations")

    stats_parser = cache_sub.add_parser("stats", parents=[cache_common], help="Show cache statistics")
    stats_parser.set_defaults(func=cache_stats_command)

    clear_parser = cache_sub.add_parser("clear", parents=[cache_common], help="Remove all cache entries")
    clear_parser.set_defaults(func=cache_clear_command)

    stale_parser = cache_sub.add_parser("stale", parents=[cache_common], help="Remove stale cache entries")
    stale_parser.add_argument("--max-age-days", type=float, default=30.0,
                              help="Maximum entry age in days (default: 30)")
    stale_parser.set_defaults(func=cache_stale_command)

    return parser


def main(argv: Optional[list] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        config.require_valid_config()
    except ConfigurationError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
