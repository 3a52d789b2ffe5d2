"""Retrieval pipeline: namespaced top-K similarity search."""

from __future__ import annotations

import structlog

from ..exceptions import ValidationError
from ..records import VectorMatch
from .embedding_service import EmbeddingService
from .provisioning import ProvisioningCoordinator
from .qdrant_service import QdrantService

logger = structlog.get_logger()

DEFAULT_SEARCH_TOP_K = 3
MAX_SEARCH_TOP_K = 50


def clamp_top_k(top_k: int | None, default: int, maximum: int) -> int:
    if top_k is None:
        return default
    return max(1, min(int(top_k), maximum))


class RetrievalService:
    """Embeds a question and returns the store's matches unchanged."""

    def __init__(
        self,
        embeddings: EmbeddingService,
        store: QdrantService,
        provisioning: ProvisioningCoordinator,
    ):
        self.embeddings = embeddings
        self.store = store
        self.provisioning = provisioning

    async def search(
        self,
        collection_name: str,
        namespace: str,
        question: str,
        top_k: int | None = DEFAULT_SEARCH_TOP_K,
        skip_ensure: bool = False,
    ) -> list[VectorMatch]:
        """Top-K matches for the question, best score first."""
        if not question or not question.strip():
            raise ValidationError("Question is required for query.")
        if not skip_ensure:
            await self.provisioning.ensure_ready(collection_name)

        limit = clamp_top_k(top_k, DEFAULT_SEARCH_TOP_K, MAX_SEARCH_TOP_K)
        query_vector = await self.embeddings.embed_query(question)
        matches = await self.store.query(collection_name, namespace, query_vector, limit)

        logger.info(
            "Retrieved frames",
            collection=collection_name,
            namespace=namespace,
            top_k=limit,
            results_count=len(matches),
        )
        return matches
