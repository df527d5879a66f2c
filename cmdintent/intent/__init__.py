"""
Intent classification pipeline.
"""

from .schemas import (
    LifecycleStage,
    CommandMetadata,
    DiscoveryResult,
    PhaseInfo,
    PlanInfo,
    ProjectState,
    ExtractedArguments,
    ClassificationAlternative,
    ClassificationResult,
    ClassifierConfig,
)
from .exact_match import ExactMatch, exact_match
from .lifecycle import UNIVERSAL_COMMANDS, STAGE_COMMANDS, derive_lifecycle_stage, filter_by_lifecycle
from .bayes import CommandBayesClassifier, BayesScore, tokenize
from .resolver import Resolution, resolve
from .arguments import extract_arguments
from .semantic import SemanticMatch, SemanticMatcher
from .audit import ClassificationAuditLogger
from .classifier import IntentClassifier, ReentrancyGuard

__all__ = [
    'LifecycleStage',
    'CommandMetadata',
    'DiscoveryResult',
    'PhaseInfo',
    'PlanInfo',
    'ProjectState',
    'ExtractedArguments',
    'ClassificationAlternative',
    'ClassificationResult',
    'ClassifierConfig',
    'ExactMatch',
    'exact_match',
    'UNIVERSAL_COMMANDS',
    'STAGE_COMMANDS',
    'derive_lifecycle_stage',
    'filter_by_lifecycle',
    'CommandBayesClassifier',
    'BayesScore',
    'tokenize',
    'Resolution',
    'resolve',
    'extract_arguments',
    'SemanticMatch',
    'SemanticMatcher',
    'ClassificationAuditLogger',
    'IntentClassifier',
    'ReentrancyGuard',
]
