"""
Semantic fallback: ranks commands by embedding similarity to the utterance.
"""

from typing import Dict, Iterable, List, NamedTuple

from ..util.logging import logger
from ..vector.embeddings import EmbeddingsService
from ..vector.index import CommandVectorIndex
from ..vector.types import VectorRecord
from .schemas import CommandMetadata


class SemanticMatch(NamedTuple):
    command: CommandMetadata
    similarity: float


def command_match_text(command: CommandMetadata) -> str:
    """Text embedded for a command: description and objective."""
    return f"{command.description}. {command.objective}"


class SemanticMatcher:
    """Embedding index over discovered commands.

    The embedding service is injected; the matcher never creates one.
    """

    def __init__(self, embeddings_service: EmbeddingsService):
        self.embeddings_service = embeddings_service
        self._index = CommandVectorIndex()
        self._commands: Dict[str, CommandMetadata] = {}
        self._ready = False

    def is_ready(self) -> bool:
        return self._ready

    async def initialize(self, commands: List[CommandMetadata]) -> None:
        """Embed every command descriptor (cached per command name)."""
        self._ready = False
        self._index.clear()
        self._commands = {}

        await self.embeddings_service.init()

        texts = [command_match_text(command) for command in commands]
        names = [command.name for command in commands]
        results = await self.embeddings_service.embed_batch(texts, owner_keys=names)

        for command, result in zip(commands, results):
            self._commands[command.name] = command
            self._index.add(VectorRecord(id=command.name, vector=result.embedding))

        self._ready = True
        logger.log_operation("semantic.initialize", "success", {"commands": len(self._commands)})

    async def match(self, text: str, candidate_names: Iterable[str]) -> List[SemanticMatch]:
        """
        Rank candidates by cosine similarity to the text.

        Returns:
            Matches sorted by descending similarity; [] when not ready or no candidates
        """
        candidates = set(candidate_names)
        if not self._ready or not candidates:
            return []

        result = await self.embeddings_service.embed(text)
        hits = self._index.search(result.embedding, candidates=candidates)

        return [SemanticMatch(self._commands[hit.id], hit.score) for hit in hits]
