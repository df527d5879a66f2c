"""
Multinomial naive Bayes classifier over command descriptions.
"""

import math
import re
from collections import Counter
from typing import Dict, Iterable, List, NamedTuple, Optional

from .schemas import CommandMetadata

_SPLIT_RE = re.compile(r"[^a-z0-9]+")

STOPWORDS = frozenset({
    "a", "an", "the", "for", "in", "to", "and", "with", "all", "of", "on", "is",
    "what", "up", "it", "this", "that", "be", "by", "or", "as", "at", "from",
    "my", "me", "i", "do", "does", "how", "are", "was", "you", "your", "we",
    "our", "into", "its", "can", "should", "will", "please", "let", "lets",
})


def tokenize(text: str) -> List[str]:
    """Lowercase, split on non-alphanumerics and drop stopwords. No stemming."""
    return [token for token in _SPLIT_RE.split(text.lower()) if token and token not in STOPWORDS]


class BayesScore(NamedTuple):
    label: str
    confidence: float


class CommandBayesClassifier:
    """Naive Bayes over per-command token counts with Laplace smoothing.

    Priors are uniform, so only the token likelihoods decide. Posteriors are
    normalized across the candidate set passed to classify().
    """

    def __init__(self, alpha: float = 1.0):
        self.alpha = alpha
        self._counts: Dict[str, Counter] = {}
        self._totals: Dict[str, int] = {}
        self._order: List[str] = []
        self._vocabulary: set = set()

    @staticmethod
    def training_text(command: CommandMetadata) -> str:
        parts = [command.bare_name.replace("-", " "), command.description, command.objective]
        if command.argument_hint:
            parts.append(command.argument_hint)
        return " ".join(parts)

    def train(self, commands: Iterable[CommandMetadata]) -> None:
        """Rebuild the model from scratch."""
        self._counts = {}
        self._totals = {}
        self._order = []
        self._vocabulary = set()

        for command in commands:
            counts = Counter(tokenize(self.training_text(command)))
            if command.name not in self._counts:
                self._order.append(command.name)
            self._counts[command.name] = counts
            self._totals[command.name] = sum(counts.values())
            self._vocabulary.update(counts)

    def classify(self, text: str, candidate_names: Optional[Iterable[str]] = None) -> List[BayesScore]:
        """
        Score candidates for the given text.

        Args:
            text: User utterance
            candidate_names: Restrict scoring to these commands (all trained when None)

        Returns:
            Scores sorted descending (ties in registration order); empty when
            there is no signal
        """
        if not self._order:
            return []

        allowed = set(candidate_names) if candidate_names is not None else None
        labels = [name for name in self._order if allowed is None or name in allowed]
        if not labels:
            return []

        tokens = tokenize(text)
        if not any(token in self._counts[label] for label in labels for token in tokens):
            return []

        vocabulary_size = len(self._vocabulary)
        log_scores = []
        for label in labels:
            counts = self._counts[label]
            denominator = self._totals[label] + self.alpha * vocabulary_size
            score = sum(math.log((counts[token] + self.alpha) / denominator) for token in tokens)
            log_scores.append(score)

        peak = max(log_scores)
        weights = [math.exp(score - peak) for score in log_scores]
        total = sum(weights)

        scores = [BayesScore(label, weight / total) for label, weight in zip(labels, weights)]
        return sorted(scores, key=lambda s: s.confidence, reverse=True)
