"""
Error types for the classification and embedding layers.
Only caller contract violations are raised; environmental failures degrade.
"""


class CmdIntentError(Exception):
    """Base class for cmdintent errors."""


class EmbeddingBatchMismatchError(CmdIntentError, ValueError):
    """Raised when embed_batch() receives owner keys that don't line up with its texts."""

    def __init__(self, texts_count: int, owner_keys_count: int):
        self.texts_count = texts_count
        self.owner_keys_count = owner_keys_count
        super().__init__(
            f"owner_keys length ({owner_keys_count}) must match texts length ({texts_count})"
        )


class ConfigurationError(CmdIntentError, ValueError):
    """Raised when environment configuration is invalid."""

    def __init__(self, issues):
        self.issues = list(issues)
        super().__init__("Invalid configuration: " + "; ".join(self.issues))
