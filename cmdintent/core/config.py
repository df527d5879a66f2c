"""
Intent classification configuration.
All knobs are read from the environment (optionally via a .env file) so the
classifier and embedding layer can be tuned without code changes.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

from .errors import ConfigurationError

load_dotenv()

# Classification thresholds
CONFIDENCE_THRESHOLD = float(os.getenv("INTENT_CONFIDENCE_THRESHOLD", "0.5"))
AMBIGUITY_GAP = float(os.getenv("INTENT_AMBIGUITY_GAP", "0.15"))
MAX_ALTERNATIVES = int(os.getenv("INTENT_MAX_ALTERNATIVES", "3"))
SEMANTIC_THRESHOLD = float(os.getenv("INTENT_SEMANTIC_THRESHOLD", "0.7"))
SEMANTIC_ENABLED = os.getenv("INTENT_SEMANTIC_ENABLED", "true").lower() == "true"
COMMAND_PREFIX = os.getenv("INTENT_COMMAND_PREFIX", "/")

# Embedding layer (model load failures always degrade to the heuristic embedder)
EMBED_ENABLED = os.getenv("EMBED_ENABLED", "true").lower() == "true"
EMBED_MODEL_NAME = os.getenv("EMBED_MODEL_NAME", "BAAI/bge-small-en-v1.5")
EMBEDDING_MODEL_VERSION = os.getenv("EMBEDDING_MODEL_VERSION", "bge-small-en-v1.5-v1")
EMBED_DIM = int(os.getenv("EMBED_DIM", "384"))
EMBED_CACHE_PATH = os.getenv("EMBED_CACHE_PATH")  # None -> resolved at runtime

# Classification audit trail (default disabled)
CLASSIFICATION_AUDIT_ENABLED = os.getenv("CLASSIFICATION_AUDIT_ENABLED", "false").lower() == "true"
CLASSIFICATION_AUDIT_PATH = os.getenv("CLASSIFICATION_AUDIT_PATH", "./data/classification-audit.jsonl")

DEBUG = os.getenv("DEBUG", "false").lower() == "true"

# Project-local cache directory name; falls back to the home directory
PROJECT_CACHE_DIR = ".cmdintent"

VERSION = "0.4.0"


def debug_enabled():
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "false").lower() == "true"


def is_embedding_model_enabled():
    """Check whether the real embedding model may be loaded."""
    return os.getenv("EMBED_ENABLED", "true").lower() == "true"


def is_semantic_enabled():
    """Check whether semantic fallback should be constructed by default."""
    return os.getenv("INTENT_SEMANTIC_ENABLED", "true").lower() == "true"


def is_audit_enabled():
    """Check whether classification decisions are appended to the audit log."""
    return os.getenv("CLASSIFICATION_AUDIT_ENABLED", "false").lower() == "true"


def get_audit_path() -> Path:
    """Get the classification audit log path."""
    return Path(os.getenv("CLASSIFICATION_AUDIT_PATH", CLASSIFICATION_AUDIT_PATH))


def resolve_cache_path() -> Path:
    """
    Determine the embedding cache location.

    EMBED_CACHE_PATH wins when set. Otherwise a project-local cache is used
    when ./.cmdintent/ exists, else a global cache under the home directory.
    """
    override = os.getenv("EMBED_CACHE_PATH")
    if override:
        return Path(override)

    project_dir = Path.cwd() / PROJECT_CACHE_DIR
    if project_dir.is_dir():
        return project_dir / "embeddings-cache.json"
    return Path.home() / PROJECT_CACHE_DIR / "embeddings" / "cache.json"


def get_intent_settings():
    """
    Current classifier settings, read from the environment at call time.

    Module-level values are the defaults. Raises ValueError when a numeric
    variable does not parse.
    """
    return {
        "confidence_threshold": float(os.getenv("INTENT_CONFIDENCE_THRESHOLD", CONFIDENCE_THRESHOLD)),
        "ambiguity_gap": float(os.getenv("INTENT_AMBIGUITY_GAP", AMBIGUITY_GAP)),
        "max_alternatives": int(os.getenv("INTENT_MAX_ALTERNATIVES", MAX_ALTERNATIVES)),
        "semantic_threshold": float(os.getenv("INTENT_SEMANTIC_THRESHOLD", SEMANTIC_THRESHOLD)),
        "enable_semantic": is_semantic_enabled(),
        "command_prefix": os.getenv("INTENT_COMMAND_PREFIX", COMMAND_PREFIX),
    }


def validate_intent_config():
    """Validate classifier and embedding configuration and return any issues."""
    try:
        settings = get_intent_settings()
    except ValueError as e:
        return [f"Invalid numeric setting: {e}"]

    issues = []

    for name, value in (
        ("INTENT_CONFIDENCE_THRESHOLD", settings["confidence_threshold"]),
        ("INTENT_AMBIGUITY_GAP", settings["ambiguity_gap"]),
        ("INTENT_SEMANTIC_THRESHOLD", settings["semantic_threshold"]),
    ):
        if not 0.0 <= value <= 1.0:
            issues.append(f"{name} must be between 0 and 1 (got {value})")

    if settings["max_alternatives"] < 1:
        issues.append("INTENT_MAX_ALTERNATIVES must be >= 1")

    if EMBED_DIM < 1:
        issues.append("EMBED_DIM must be >= 1")

    if not settings["command_prefix"].strip():
        issues.append("INTENT_COMMAND_PREFIX cannot be empty")

    return issues


def require_valid_config():
    """Raise ConfigurationError when validate_intent_config() reports issues."""
    issues = validate_intent_config()
    if issues:
        raise ConfigurationError(issues)
