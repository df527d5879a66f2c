"""
Confidence resolution: turns ranked scores into classified / ambiguous / no-match.
"""

from typing import List, NamedTuple, Optional, Sequence, Tuple


class Resolution(NamedTuple):
    type: str
    label: Optional[str]
    confidence: float
    method: Optional[str]
    alternatives: List[Tuple[str, float]]


NO_MATCH = Resolution("no-match", None, 0.0, None, [])


def resolve(scores: Sequence[Tuple[str, float]], threshold: float, ambiguity_gap: float,
            max_alternatives: int, method: str) -> Resolution:
    """
    Decide the outcome for scores already sorted in descending order.

    best >= threshold with a gap >= ambiguity_gap is classified (a lone
    candidate counts as gap 1.0); best >= threshold with a smaller gap is
    ambiguous; anything else is no-match.
    """
    if not scores:
        return NO_MATCH

    best_label, best = scores[0]
    if best < threshold:
        return NO_MATCH

    gap = best - scores[1][1] if len(scores) > 1 else 1.0
    if gap >= ambiguity_gap:
        return Resolution("classified", best_label, best, method, [])

    alternatives = [(label, score) for label, score in scores[:max_alternatives]]
    return Resolution("ambiguous", None, best, method, alternatives)
