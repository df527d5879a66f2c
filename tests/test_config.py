"""
Environment configuration helpers.
"""

from pathlib import Path

import pytest
from cmdintent.core import config
from cmdintent.core.errors import CmdIntentError, ConfigurationError, EmbeddingBatchMismatchError


def test_defaults():
    assert config.CONFIDENCE_THRESHOLD == 0.5
    assert config.AMBIGUITY_GAP == 0.15
    assert config.MAX_ALTERNATIVES == 3
    assert config.EMBED_MODEL_NAME == "BAAI/bge-small-en-v1.5"
    assert config.EMBED_DIM == 384


def test_default_configuration_is_valid():
    assert config.validate_intent_config() == []


def test_validate_reports_out_of_range_values(monkeypatch):
    monkeypatch.setattr(config, "CONFIDENCE_THRESHOLD", 1.5)
    monkeypatch.setattr(config, "MAX_ALTERNATIVES", 0)

    issues = config.validate_intent_config()

    assert any("INTENT_CONFIDENCE_THRESHOLD" in issue for issue in issues)
    assert any("INTENT_MAX_ALTERNATIVES" in issue for issue in issues)


@pytest.mark.parametrize("value,expected", [("true", True), ("TRUE", True), ("false", False), ("no", False)])
def test_flag_getters_read_environment(monkeypatch, value, expected):
    monkeypatch.setenv("EMBED_ENABLED", value)
    monkeypatch.setenv("INTENT_SEMANTIC_ENABLED", value)
    monkeypatch.setenv("CLASSIFICATION_AUDIT_ENABLED", value)
    monkeypatch.setenv("DEBUG", value)

    assert config.is_embedding_model_enabled() is expected
    assert config.is_semantic_enabled() is expected
    assert config.is_audit_enabled() is expected
    assert config.debug_enabled() is expected


def test_cache_path_override(monkeypatch, tmp_path):
    monkeypatch.setenv("EMBED_CACHE_PATH", str(tmp_path / "custom.json"))

    assert config.resolve_cache_path() == tmp_path / "custom.json"


def test_cache_path_prefers_project_directory(monkeypatch, tmp_path):
    monkeypatch.delenv("EMBED_CACHE_PATH", raising=False)
    monkeypatch.chdir(tmp_path)
    (tmp_path / ".cmdintent").mkdir()

    assert config.resolve_cache_path() == tmp_path / ".cmdintent" / "embeddings-cache.json"


def test_cache_path_falls_back_to_home(monkeypatch, tmp_path):
    monkeypatch.delenv("EMBED_CACHE_PATH", raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path / "home"))

    assert config.resolve_cache_path() == tmp_path / "home" / ".cmdintent" / "embeddings" / "cache.json"


def test_error_hierarchy():
    mismatch = EmbeddingBatchMismatchError(texts_count=3, owner_keys_count=2)
    assert isinstance(mismatch, CmdIntentError)
    assert isinstance(mismatch, ValueError)
    assert "(2)" in str(mismatch) and "(3)" in str(mismatch)

    invalid = ConfigurationError(["a is wrong", "b is wrong"])
    assert invalid.issues == ["a is wrong", "b is wrong"]
    assert "a is wrong; b is wrong" in str(invalid)


def test_validate_reads_environment_at_call_time(monkeypatch):
    monkeypatch.setenv("INTENT_AMBIGUITY_GAP", "3")

    issues = config.validate_intent_config()

    assert any("INTENT_AMBIGUITY_GAP" in issue for issue in issues)
    with pytest.raises(ConfigurationError):
        config.require_valid_config()


def test_validate_reports_unparseable_values(monkeypatch):
    monkeypatch.setenv("INTENT_MAX_ALTERNATIVES", "many")

    issues = config.validate_intent_config()

    assert len(issues) == 1
    assert "many" in issues[0]


def test_intent_settings_follow_environment(monkeypatch):
    monkeypatch.setenv("INTENT_CONFIDENCE_THRESHOLD", "0.65")
    monkeypatch.setenv("INTENT_COMMAND_PREFIX", "!")

    settings = config.get_intent_settings()

    assert settings["confidence_threshold"] == 0.65
    assert settings["command_prefix"] == "!"
    assert settings["max_alternatives"] == config.MAX_ALTERNATIVES
