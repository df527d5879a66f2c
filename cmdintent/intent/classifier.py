"""
Intent classifier: exact match, lifecycle filtering, naive Bayes, semantic
fallback, confidence resolution and argument extraction in one pipeline.
"""

import logging
from contextlib import contextmanager
from typing import Dict, List, Optional

from ..core import config as app_config
from ..util.logging import logger, sanitize_payload
from ..vector.embeddings import EmbeddingsService, create_embeddings_service
from .arguments import extract_arguments
from .audit import ClassificationAuditLogger
from .bayes import CommandBayesClassifier
from .exact_match import exact_match
from .lifecycle import derive_lifecycle_stage, filter_by_lifecycle
from .resolver import Resolution, resolve
from .schemas import (
    ClassificationAlternative,
    ClassificationResult,
    ClassifierConfig,
    CommandMetadata,
    DiscoveryResult,
    ExtractedArguments,
    LifecycleStage,
    ProjectState,
)
from .semantic import SemanticMatcher


class ReentrancyGuard:
    """Scoped busy flag; released on every exit path."""

    def __init__(self):
        self.active = False

    @contextmanager
    def hold(self):
        """Yield True if the guard was acquired, False if it was already held."""
        if self.active:
            yield False
            return
        self.active = True
        try:
            yield True
        finally:
            self.active = False


def _clamp(value: float) -> float:
    return min(1.0, max(0.0, value))


def no_match_result(text: str, lifecycle_stage: Optional[LifecycleStage] = None) -> ClassificationResult:
    return ClassificationResult(
        type="no-match",
        command=None,
        confidence=0.0,
        arguments=ExtractedArguments(raw=text),
        alternatives=[],
        lifecycle_stage=lifecycle_stage,
    )


class IntentClassifier:
    """
    Maps user input to a discovered command.

    Call initialize() once with the discovery result, then classify() per
    utterance. classify() never raises; every failure mode ends in a
    no-match (or a Bayes-only decision when semantic matching is unavailable).
    """

    def __init__(self, config: Optional[ClassifierConfig] = None,
                 embeddings_service: Optional[EmbeddingsService] = None,
                 audit_logger: Optional[ClassificationAuditLogger] = None):
        self.config = config or ClassifierConfig.from_env()
        self.embeddings_service = embeddings_service
        if audit_logger is None and app_config.is_audit_enabled():
            audit_logger = ClassificationAuditLogger()
        self.audit_logger = audit_logger

        self._bayes = CommandBayesClassifier()
        self._commands: List[CommandMetadata] = []
        self._by_name: Dict[str, CommandMetadata] = {}
        self._semantic_matcher: Optional[SemanticMatcher] = None
        self._guard = ReentrancyGuard()

    @property
    def commands(self) -> List[CommandMetadata]:
        return list(self._commands)

    async def initialize(self, discovery: DiscoveryResult, enable_semantic: Optional[bool] = None) -> None:
        """
        Load commands, train Bayes and (optionally) build the semantic index.

        Args:
            discovery: Discovered commands
            enable_semantic: Override config; False never touches the embedding service
        """
        self._commands = list(discovery.commands)
        self._by_name = {command.name: command for command in self._commands}
        self._bayes.train(self._commands)

        should_enable = self.config.enable_semantic if enable_semantic is None else enable_semantic
        if not should_enable:
            logger.log_operation("classifier.initialize", "success", {
                "commands": len(self._commands),
                "semantic": False,
            })
            return

        service = self.embeddings_service or create_embeddings_service()
        try:
            matcher = SemanticMatcher(service)
            await matcher.initialize(self._commands)
        except Exception as e:
            self._semantic_matcher = None
            logger.log_operation("classifier.initialize", "degraded", {
                "commands": len(self._commands),
                "error": f"{type(e).__name__}: {e}",
            }, level=logging.WARNING)
            return

        self.embeddings_service = service
        self._semantic_matcher = matcher
        await service.save_cache()
        logger.log_operation("classifier.initialize", "success", {
            "commands": len(self._commands),
            "semantic": True,
            "fallback_mode": service.is_using_fallback(),
        })

    def set_semantic_matcher(self, matcher: Optional[SemanticMatcher]) -> None:
        """Inject an already-initialized matcher (None disables semantic fallback)."""
        self._semantic_matcher = matcher

    async def classify(self, text: str, state: ProjectState) -> ClassificationResult:
        """Classify an utterance against the commands valid for the given project state."""
        with self._guard.hold() as acquired:
            if acquired:
                try:
                    result = await self._run_pipeline(text, state)
                except Exception as e:
                    logger.log_operation("intent.classify", "failed", {
                        "input": sanitize_payload(text),
                        "error": f"{type(e).__name__}: {e}",
                    }, level=logging.WARNING)
                    result = no_match_result(text)
            else:
                result = no_match_result(text)

        self._record(text, result)
        return result

    async def _run_pipeline(self, text: str, state: ProjectState) -> ClassificationResult:
        trimmed = text.strip()
        if not trimmed:
            return no_match_result(text)

        exact = exact_match(trimmed, self._commands, self.config.command_prefix)
        if exact is not None:
            return ClassificationResult(
                type="exact-match",
                command=exact.command,
                confidence=1.0,
                method="exact",
                arguments=extract_arguments(exact.raw_args, raw=text),
                alternatives=[],
                lifecycle_stage=None,
            )

        stage = derive_lifecycle_stage(state)
        valid = filter_by_lifecycle(self._commands, stage)
        if not valid:
            return no_match_result(text, stage)

        names = [command.name for command in valid]
        arguments = extract_arguments(trimmed, raw=text)

        bayes_scores = self._bayes.classify(trimmed, names)
        resolution = resolve(
            [(score.label, score.confidence) for score in bayes_scores],
            self.config.confidence_threshold,
            self.config.ambiguity_gap,
            self.config.max_alternatives,
            "bayes",
        )

        top_bayes = bayes_scores[0].confidence if bayes_scores else 0.0
        if top_bayes < self.config.confidence_threshold:
            semantic = await self._semantic_resolution(trimmed, names)
            # An inconclusive semantic pass keeps the Bayes decision
            if semantic is not None and semantic.type != "no-match":
                resolution = semantic

        return self._build_result(resolution, arguments, stage)

    async def _semantic_resolution(self, text: str, names: List[str]) -> Optional[Resolution]:
        matcher = self._semantic_matcher
        if matcher is None or not matcher.is_ready():
            return None

        try:
            matches = await matcher.match(text, names)
        except Exception as e:
            logger.log_operation("semantic.match", "failed", {"error": f"{type(e).__name__}: {e}"}, level=logging.WARNING)
            return None

        return resolve(
            [(match.command.name, match.similarity) for match in matches],
            self.config.semantic_threshold,
            self.config.ambiguity_gap,
            self.config.max_alternatives,
            "semantic",
        )

    def _build_result(self, resolution: Resolution, arguments: ExtractedArguments,
                      stage: LifecycleStage) -> ClassificationResult:
        if resolution.type == "no-match":
            return ClassificationResult(
                type="no-match",
                arguments=arguments,
                lifecycle_stage=stage,
            )

        if resolution.type == "classified":
            return ClassificationResult(
                type="classified",
                command=self._by_name[resolution.label],
                confidence=_clamp(resolution.confidence),
                method=resolution.method,
                arguments=arguments,
                alternatives=[],
                lifecycle_stage=stage,
            )

        return ClassificationResult(
            type="ambiguous",
            command=None,
            confidence=_clamp(resolution.confidence),
            method=resolution.method,
            arguments=arguments,
            alternatives=[
                ClassificationAlternative(command=self._by_name[label], confidence=_clamp(score))
                for label, score in resolution.alternatives
            ],
            lifecycle_stage=stage,
        )

    def _record(self, text: str, result: ClassificationResult) -> None:
        logger.log_classification(
            text,
            result.type,
            command=result.command.name if result.command else None,
            confidence=result.confidence,
            method=result.method,
            lifecycle_stage=result.lifecycle_stage.value if result.lifecycle_stage else None,
            alternatives=len(result.alternatives),
        )
        if self.audit_logger is not None:
            self.audit_logger.record(text, result)
