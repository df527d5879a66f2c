"""
Argument extraction from raw utterances.
"""

import re
from typing import List, Optional

from .schemas import ExtractedArguments

_VERSION_RE = re.compile(r"\bv(\d+(?:\.\d+)+)\b|\bversion\s+(\d+(?:\.\d+)*)\b", re.IGNORECASE)
_PHASE_RE = re.compile(r"\bphase\s+#?(\d+(?:\.\d+)?)\b", re.IGNORECASE)
_NUMBER_RE = re.compile(r"(?<![\w.-])(\d+(?:\.\d+)?)(?![\w.])")
_FLAG_RE = re.compile(r"(?<!\S)--([A-Za-z][\w-]*)(?![=\w-])")
_QUOTED_RE = re.compile(r"\"([^\"]*)\"|(?<!\w)'([^']*)'(?!\w)")
_PROFILE_FLAG_RE = re.compile(r"(?<!\S)--profile=(\w+)", re.IGNORECASE)
_PROFILE_WORD_RE = re.compile(r"\b(quality|balanced|budget)\s+profile\b", re.IGNORECASE)


def _cut(text: str, match: "re.Match") -> str:
    return text[:match.start()] + " " + text[match.end():]


def _extract_flags(text: str) -> List[str]:
    flags: List[str] = []
    for match in _FLAG_RE.finditer(text):
        name = match.group(1).lower()
        if name not in flags:
            flags.append(name)
    return flags


def _extract_profile(text: str) -> Optional[str]:
    match = _PROFILE_FLAG_RE.search(text) or _PROFILE_WORD_RE.search(text)
    return match.group(1).lower() if match else None


def extract_arguments(text: str, raw: Optional[str] = None) -> ExtractedArguments:
    """
    Pull structured arguments out of an utterance.

    Args:
        text: Text to extract from (for exact matches, the trailing arguments)
        raw: Original utterance to record; defaults to text

    Returns:
        ExtractedArguments; raw is always set
    """
    remaining = text

    description = None
    quoted = _QUOTED_RE.search(remaining)
    if quoted:
        description = quoted.group(1) if quoted.group(1) is not None else quoted.group(2)
        remaining = _cut(remaining, quoted)

    # Versions go first so "v1.2" is never read as a phase number
    version = None
    version_match = _VERSION_RE.search(remaining)
    if version_match:
        version = version_match.group(1) or version_match.group(2)
        remaining = _cut(remaining, version_match)

    profile = _extract_profile(remaining)
    remaining = _PROFILE_FLAG_RE.sub(" ", remaining)

    phase_number = None
    phase_match = _PHASE_RE.search(remaining) or _NUMBER_RE.search(remaining)
    if phase_match:
        phase_number = phase_match.group(1)

    return ExtractedArguments(
        phase_number=phase_number,
        flags=_extract_flags(remaining),
        description=description,
        version=version,
        profile=profile,
        raw=text if raw is None else raw,
    )
