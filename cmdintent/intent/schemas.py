"""
Data models for intent classification: discovered commands, project state,
extracted arguments and classification results.
"""

from enum import Enum
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from ..core import config


class LifecycleStage(str, Enum):
    """Coarse phase of the hosting workflow."""

    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    ROADMAPPED = "roadmapped"
    PLANNING = "planning"
    EXECUTING = "executing"
    VERIFYING = "verifying"
    BETWEEN_PHASES = "between-phases"
    MILESTONE_END = "milestone-end"


class CommandMetadata(BaseModel):
    """A discovered command. Immutable once discovered."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    description: str = ""
    objective: str = ""
    argument_hint: Optional[str] = Field(default=None, validation_alias=AliasChoices("argument_hint", "argumentHint"))
    file_path: Optional[str] = Field(default=None, validation_alias=AliasChoices("file_path", "filePath"))
    stages: Optional[List[LifecycleStage]] = None

    @field_validator('name')
    @classmethod
    def name_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('name cannot be empty')
        return v.strip()

    @property
    def bare_name(self) -> str:
        """Name without any namespace prefix (``gsd:plan-phase`` -> ``plan-phase``)."""
        return self.name.rsplit(":", 1)[-1]


class DiscoveryResult(BaseModel):
    """Ordered command registry produced by the discovery collaborator."""

    model_config = ConfigDict(populate_by_name=True)

    commands: List[CommandMetadata] = Field(default_factory=list)
    discovered_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        validation_alias=AliasChoices("discovered_at", "discoveredAt"),
    )
    location: Optional[str] = None
    base_path: Optional[str] = Field(default=None, validation_alias=AliasChoices("base_path", "basePath"))


class PhaseInfo(BaseModel):
    number: str
    name: str = ""
    complete: bool = False

    @field_validator('number', mode='before')
    @classmethod
    def number_to_string(cls, v):
        return str(v)


class PlanInfo(BaseModel):
    id: str
    complete: bool = False


class ProjectState(BaseModel):
    """Snapshot of project progress, supplied per classify() call."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    initialized: bool = False
    has_roadmap: bool = Field(default=False, validation_alias=AliasChoices("has_roadmap", "hasRoadmap"))
    phases: List[PhaseInfo] = Field(default_factory=list)
    plans_by_phase: Dict[str, List[PlanInfo]] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("plans_by_phase", "plansByPhase"),
    )
    position: Optional[Dict[str, Any]] = None

    @field_validator('plans_by_phase', mode='before')
    @classmethod
    def phase_keys_to_string(cls, v):
        if isinstance(v, dict):
            return {str(k): plans for k, plans in v.items()}
        return v


class ExtractedArguments(BaseModel):
    """Structured arguments pulled out of an utterance."""

    model_config = ConfigDict(frozen=True)

    phase_number: Optional[str] = None
    flags: List[str] = Field(default_factory=list)
    description: Optional[str] = None
    version: Optional[str] = None
    profile: Optional[str] = None
    raw: str


class ClassificationAlternative(BaseModel):
    model_config = ConfigDict(frozen=True)

    command: CommandMetadata
    confidence: float


class ClassificationResult(BaseModel):
    """Outcome of classifying one utterance."""

    model_config = ConfigDict(frozen=True)

    type: str
    command: Optional[CommandMetadata] = None
    confidence: float = 0.0
    method: Optional[str] = None
    arguments: ExtractedArguments
    alternatives: List[ClassificationAlternative] = Field(default_factory=list)
    lifecycle_stage: Optional[LifecycleStage] = None

    @field_validator('type')
    @classmethod
    def type_must_be_valid(cls, v):
        valid_types = ['exact-match', 'classified', 'ambiguous', 'no-match']
        if v not in valid_types:
            raise ValueError(f'type must be one of: {valid_types}')
        return v

    @field_validator('method')
    @classmethod
    def method_must_be_valid(cls, v):
        valid_methods = ['exact', 'bayes', 'semantic']
        if v is not None and v not in valid_methods:
            raise ValueError(f'method must be one of: {valid_methods}')
        return v

    @field_validator('confidence')
    @classmethod
    def confidence_in_range(cls, v):
        if not 0.0 <= v <= 1.0:
            raise ValueError('confidence must be between 0 and 1')
        return v

    @model_validator(mode='after')
    def check_type_invariants(self):
        if self.type == 'exact-match' and (self.confidence != 1.0 or self.alternatives):
            raise ValueError('exact-match requires confidence 1.0 and no alternatives')
        if self.type == 'no-match' and (self.command is not None or self.confidence != 0.0 or self.alternatives):
            raise ValueError('no-match requires no command, confidence 0 and no alternatives')
        return self


class ClassifierConfig(BaseModel):
    """Thresholds and switches for the classification pipeline."""

    model_config = ConfigDict(frozen=True)

    confidence_threshold: float = 0.5
    ambiguity_gap: float = 0.15
    max_alternatives: int = 3
    semantic_threshold: float = 0.7
    enable_semantic: bool = True
    command_prefix: str = "/"

    @field_validator('confidence_threshold', 'ambiguity_gap', 'semantic_threshold')
    @classmethod
    def must_be_probability(cls, v):
        if not 0.0 <= v <= 1.0:
            raise ValueError('value must be between 0 and 1')
        return v

    @field_validator('max_alternatives')
    @classmethod
    def max_alternatives_positive(cls, v):
        if v < 1:
            raise ValueError('max_alternatives must be >= 1')
        return v

    @field_validator('command_prefix')
    @classmethod
    def prefix_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('command_prefix cannot be empty')
        return v.strip()

    @classmethod
    def from_env(cls, **overrides) -> "ClassifierConfig":
        """Build from INTENT_* environment variables; keyword overrides win."""
        values = config.get_intent_settings()
        values.update(overrides)
        return cls(**values)
