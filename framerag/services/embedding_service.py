"""Embedding service for generating vector embeddings."""

from __future__ import annotations

import asyncio

import structlog
from openai import AsyncOpenAI

from ..config import settings
from ..exceptions import EmbeddingError

logger = structlog.get_logger()


class EmbeddingService:
    """Service for generating embeddings from text using OpenAI-compatible API."""

    def __init__(
        self,
        model: str | None = None,
        dimension: int | None = None,
        client: AsyncOpenAI | None = None,
    ):
        self.model = model or settings.EMBEDDING_MODEL
        self.dimension = dimension or settings.EMBEDDING_DIMENSION
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        """Get or create OpenAI-compatible client for embeddings."""
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=settings.EMBEDDING_API_KEY,
                base_url=settings.EMBEDDING_API_BASE,
            )
        return self._client

    def _check_dimension(self, values: list[float]) -> None:
        if len(values) != self.dimension:
            logger.warning(
                "Embedding dimension mismatch",
                model=self.model,
                expected=self.dimension,
                received=len(values),
            )

    async def _embed_one(self, text: str) -> list[float]:
        kwargs = {"input": [text or ""], "model": self.model}
        if settings.EMBEDDING_SEND_DIMENSIONS:
            kwargs["dimensions"] = self.dimension
        try:
            response = await self.client.embeddings.create(**kwargs)
        except Exception as e:
            logger.error(
                "Embedding failed",
                model=self.model,
                error=str(e),
                error_type=type(e).__name__,
                base_url=settings.EMBEDDING_API_BASE,
            )
            raise EmbeddingError(
                f"Embedding API call failed: {e}. Model: '{self.model}'"
            ) from e

        values = response.data[0].embedding if response.data else None
        if not values:
            logger.error("Embedding failed - no data", model=self.model)
            raise EmbeddingError("Embedding service did not return an embedding vector.")
        self._check_dimension(values)
        return list(values)

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed each text with its own concurrent request, preserving order."""
        if not texts:
            raise EmbeddingError("No text provided for embedding.")

        embeddings = await asyncio.gather(*(self._embed_one(text) for text in texts))
        logger.info("Generated embeddings", model=self.model, count=len(texts))
        return list(embeddings)

    async def embed_query(self, query: str) -> list[float]:
        """Generate embedding for a single query."""
        return (await self.embed([query]))[0]
