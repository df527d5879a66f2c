"""
Lifecycle stage derivation and stage-based command filtering.

Command sets hold bare names; a namespaced command such as ``gsd:plan-phase``
matches ``plan-phase``.
"""

from typing import Dict, FrozenSet, List, Optional

from .schemas import CommandMetadata, LifecycleStage, PlanInfo, ProjectState

# Valid in every stage
UNIVERSAL_COMMANDS: FrozenSet[str] = frozenset({
    "help", "progress", "quick", "debug", "settings", "add-todo", "pause-work", "resume-work",
})

_PLANNING_COMMANDS = frozenset({
    "plan-phase", "discuss-phase", "research-phase", "list-phase-assumptions",
    "add-phase", "insert-phase", "remove-phase",
})

STAGE_COMMANDS: Dict[LifecycleStage, FrozenSet[str]] = {
    LifecycleStage.UNINITIALIZED: frozenset({"new-project"}),
    LifecycleStage.INITIALIZED: frozenset({"new-milestone"}),
    LifecycleStage.ROADMAPPED: _PLANNING_COMMANDS,
    LifecycleStage.PLANNING: _PLANNING_COMMANDS,
    LifecycleStage.EXECUTING: frozenset({
        "execute-phase", "plan-phase", "verify-work", "add-phase", "insert-phase",
    }),
    LifecycleStage.VERIFYING: frozenset({"verify-work", "execute-phase", "plan-phase"}),
    LifecycleStage.BETWEEN_PHASES: frozenset({
        "plan-phase", "discuss-phase", "research-phase", "audit-milestone",
        "add-phase", "insert-phase", "remove-phase",
    }),
    LifecycleStage.MILESTONE_END: frozenset({
        "audit-milestone", "complete-milestone", "new-milestone", "plan-milestone-gaps",
    }),
}

_STAGED_COMMANDS: FrozenSet[str] = frozenset().union(*STAGE_COMMANDS.values())


def _phase_key_variants(number: str) -> List[str]:
    """'5' -> ['5', '05']; '05' -> ['05', '5']; '5.1' -> ['5.1', '05.1']."""
    head, dot, tail = number.partition(".")
    variants = [number, head.zfill(2) + dot + tail, (head.lstrip("0") or "0") + dot + tail]
    seen = []
    for variant in variants:
        if variant not in seen:
            seen.append(variant)
    return seen


def _plans_for_phase(state: ProjectState, number: str) -> Optional[List[PlanInfo]]:
    for key in _phase_key_variants(number):
        if key in state.plans_by_phase:
            return state.plans_by_phase[key]
    return None


def derive_lifecycle_stage(state: ProjectState) -> LifecycleStage:
    """Derive the current lifecycle stage from a project state snapshot."""
    if not state.initialized:
        return LifecycleStage.UNINITIALIZED
    if not state.has_roadmap:
        return LifecycleStage.INITIALIZED
    if not state.phases:
        return LifecycleStage.BETWEEN_PHASES

    current = next((phase for phase in state.phases if not phase.complete), None)
    if current is None:
        return LifecycleStage.MILESTONE_END

    plans = _plans_for_phase(state, current.number)
    if not plans:
        return LifecycleStage.ROADMAPPED
    if any(not plan.complete for plan in plans):
        return LifecycleStage.EXECUTING
    return LifecycleStage.VERIFYING


def is_valid_in_stage(command: CommandMetadata, stage: LifecycleStage) -> bool:
    if command.stages:
        return stage in command.stages

    bare = command.bare_name.lower()
    if bare in UNIVERSAL_COMMANDS:
        return True
    if bare in _STAGED_COMMANDS:
        return bare in STAGE_COMMANDS.get(stage, frozenset())

    # No stage restriction anywhere: valid everywhere
    return True


def filter_by_lifecycle(commands: List[CommandMetadata], stage: LifecycleStage) -> List[CommandMetadata]:
    """Commands valid in the given stage, in registration order."""
    return [command for command in commands if is_valid_in_stage(command, stage)]
