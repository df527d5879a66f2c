"""
Shared fixtures: a small command registry and project states for each lifecycle stage.
"""

import pytest

from cmdintent.intent.schemas import (
    ClassifierConfig,
    CommandMetadata,
    DiscoveryResult,
    PhaseInfo,
    PlanInfo,
    ProjectState,
)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep tests away from the real audit log and embedding cache."""
    monkeypatch.setenv("CLASSIFICATION_AUDIT_ENABLED", "false")
    monkeypatch.setenv("EMBED_CACHE_PATH", str(tmp_path / "embeddings-cache.json"))
    monkeypatch.setenv("EMBED_ENABLED", "false")


@pytest.fixture
def commands():
    """The five commands used by the classification scenarios."""
    return [
        CommandMetadata(
            name="plan-phase",
            description="Create detailed execution plan for a phase",
            objective="Create executable phase prompts (PLAN.md files) for a roadmap phase "
                      "with integrated research and verification",
            argument_hint="[phase] [--research] [--skip-research]",
            file_path="/commands/plan-phase.md",
        ),
        CommandMetadata(
            name="execute-phase",
            description="Execute all plans in a phase with wave-based parallelization",
            objective="Execute all plans in a phase using wave-based parallel execution",
            argument_hint="<phase-number>",
            file_path="/commands/execute-phase.md",
        ),
        CommandMetadata(
            name="progress",
            description="Check project progress, show context, and route to next action",
            objective="Check project progress, summarize recent work and what's ahead, "
                      "then route to the next action",
            file_path="/commands/progress.md",
        ),
        CommandMetadata(
            name="new-project",
            description="Initialize a new project with deep context gathering",
            objective="Initialize a new project through unified flow: questioning, research, "
                      "requirements, roadmap",
            file_path="/commands/new-project.md",
        ),
        CommandMetadata(
            name="debug",
            description="Systematic debugging with persistent state across context resets",
            objective="Debug issues using scientific method with subagent isolation",
            file_path="/commands/debug.md",
        ),
    ]


@pytest.fixture
def discovery(commands):
    return DiscoveryResult(commands=commands, location="project", base_path="/commands")


@pytest.fixture
def bayes_only_config():
    return ClassifierConfig(enable_semantic=False)


@pytest.fixture
def uninitialized_state():
    return ProjectState(initialized=False)


@pytest.fixture
def executing_state():
    return ProjectState(
        initialized=True,
        has_roadmap=True,
        phases=[
            PhaseInfo(number="1", name="Foundation", complete=True),
            PhaseInfo(number="2", name="Classifier", complete=False),
        ],
        plans_by_phase={
            "2": [PlanInfo(id="02-01", complete=True), PlanInfo(id="02-02", complete=False)],
        },
    )


@pytest.fixture
def milestone_end_state():
    return ProjectState(
        initialized=True,
        has_roadmap=True,
        phases=[PhaseInfo(number="1", name="Foundation", complete=True)],
    )
