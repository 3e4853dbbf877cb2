"""
Object Store
============

Content-addressed JSON store for agent metadata and proof records, with a
searchable agent index for discovery.

Version: 0.1.0
"""

import hashlib
import json
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

from shared.logging import get_logger


logger = get_logger(__name__)


class ContentNotFoundError(KeyError):
    """No object is stored under the given content hash."""


class AgentMetadata(BaseModel):
    """Public description of an agent, stored off-ledger."""

    name: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    version: str = "1.0.0"
    developer: str = Field(..., min_length=1)
    license: str = "proprietary"
    training_standards: list[str] = Field(default_factory=list)
    compliance_goals: list[str] = Field(default_factory=list)


class AgentSummary(BaseModel):
    """Index entry returned by discovery search."""

    agent_id: str
    metadata_ref: str
    name: str
    description: str
    developer: str
    version: str
    tags: list[str] = Field(default_factory=list)
    last_updated: datetime = Field(default_factory=lambda: datetime.now(UTC))


class AgentSearchQuery(BaseModel):
    """Discovery filters. All given filters must match."""

    name: str | None = None
    developer: str | None = None
    tags: list[str] = Field(default_factory=list)


def content_hash(data: Any) -> str:
    """SHA-256 over canonical JSON (sorted keys, compact separators)."""
    canonical = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


class ObjectStore(ABC):
    """Abstract content-addressed store."""

    @abstractmethod
    async def put(self, data: dict[str, Any]) -> str:
        """Store a JSON document and return its content hash."""
        ...

    @abstractmethod
    async def get(self, ref: str) -> dict[str, Any]:
        """
        Fetch a document.

        Raises:
            ContentNotFoundError: If nothing is stored under ``ref``
        """
        ...

    @abstractmethod
    async def index_agent(self, agent_id: str, ref: str, metadata: AgentMetadata) -> AgentSummary:
        """Add or refresh an agent's discovery entry."""
        ...

    @abstractmethod
    async def search(self, query: AgentSearchQuery) -> list[AgentSummary]:
        """Find indexed agents matching every given filter."""
        ...

    async def verify_integrity(self, ref: str) -> bool:
        """Check that the stored content still hashes to its reference."""
        try:
            data = await self.get(ref)
        except ContentNotFoundError:
            return False
        return content_hash(data) == ref

    async def get_proof_chain(self, ref: str) -> list[dict[str, Any]]:
        """
        A proof record followed by every record it inherits from.

        Records name their parents by content hash in ``inherited_from``.
        """
        chain: list[dict[str, Any]] = []
        seen: set[str] = set()

        async def walk(current: str) -> None:
            if current in seen:
                return
            seen.add(current)
            record = await self.get(current)
            chain.append(record)
            for parent in record.get("inherited_from", []):
                await walk(parent)

        await walk(ref)
        return chain


class InMemoryObjectStore(ObjectStore):
    """
    In-memory object store.

    Data is stored in memory and lost on restart.
    """

    def __init__(self) -> None:
        self._objects: dict[str, dict[str, Any]] = {}
        self._index: dict[str, AgentSummary] = {}

    async def put(self, data: dict[str, Any]) -> str:
        ref = content_hash(data)
        # Stored as its JSON round-trip so reads see what was hashed
        self._objects[ref] = json.loads(json.dumps(data, default=str))
        logger.debug("object_stored", ref=ref)
        return ref

    async def get(self, ref: str) -> dict[str, Any]:
        if ref not in self._objects:
            raise ContentNotFoundError(ref)
        return json.loads(json.dumps(self._objects[ref]))

    async def index_agent(self, agent_id: str, ref: str, metadata: AgentMetadata) -> AgentSummary:
        summary = AgentSummary(
            agent_id=agent_id,
            metadata_ref=ref,
            name=metadata.name,
            description=metadata.description,
            developer=metadata.developer,
            version=metadata.version,
            tags=list(metadata.training_standards),
        )
        self._index[agent_id] = summary
        logger.debug("agent_indexed", agent_id=agent_id, ref=ref)
        return summary

    async def search(self, query: AgentSearchQuery) -> list[AgentSummary]:
        results = list(self._index.values())

        if query.name:
            needle = query.name.lower()
            results = [a for a in results if needle in a.name.lower()]

        if query.developer:
            needle = query.developer.lower()
            results = [a for a in results if needle in a.developer.lower()]

        if query.tags:
            results = [a for a in results if any(tag in a.tags for tag in query.tags)]

        return results

    def clear_all(self) -> None:
        """Clear all objects (for testing)."""
        self._objects.clear()
        self._index.clear()
