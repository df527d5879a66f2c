"""
Exact-match stage: explicit ``<prefix><command> [args]`` invocation.
"""

from typing import Dict, List, NamedTuple, Optional

from .schemas import CommandMetadata


class ExactMatch(NamedTuple):
    command: CommandMetadata
    raw_args: str


def _bare(name: str) -> str:
    return name.rsplit(":", 1)[-1]


def exact_match(text: str, commands: List[CommandMetadata], prefix: str = "/") -> Optional[ExactMatch]:
    """
    Recognize an explicit command invocation.

    The full registered name is tried first (case-insensitive). Failing that,
    the bare name after the last ':' is accepted when exactly one registered
    command carries it.

    Returns:
        ExactMatch with the command and the trailing text, or None
    """
    stripped = text.strip()
    if not prefix or not stripped.startswith(prefix):
        return None

    body = stripped[len(prefix):]
    parts = body.split(None, 1)
    if not parts:
        return None

    token = parts[0].lower()
    raw_args = parts[1].strip() if len(parts) > 1 else ""

    for command in commands:
        if command.name.lower() == token:
            return ExactMatch(command, raw_args)

    by_bare: Dict[str, List[CommandMetadata]] = {}
    for command in commands:
        by_bare.setdefault(_bare(command.name).lower(), []).append(command)

    matches = by_bare.get(_bare(token), [])
    if len(matches) == 1:
        return ExactMatch(matches[0], raw_args)

    return None
