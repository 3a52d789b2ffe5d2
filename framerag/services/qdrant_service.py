"""Qdrant vector store service."""
from __future__ import annotations

from typing import Any

import structlog
from qdrant_client import AsyncQdrantClient
from qdrant_client.http import models
from qdrant_client.http.models import Distance, PointStruct, VectorParams

from ..config import settings
from ..exceptions import StoreError
from ..naming import point_id
from ..records import (
    NAMESPACE_KEY,
    RECORD_ID_KEY,
    VectorMatch,
    VectorRecord,
    public_metadata,
    to_payload,
)

logger = structlog.get_logger()

NAMESPACE_SCROLL_PAGE = 256


def _namespace_filter(namespace: str) -> models.Filter:
    return models.Filter(
        must=[
            models.FieldCondition(
                key=NAMESPACE_KEY,
                match=models.MatchValue(value=namespace),
            )
        ]
    )


def _to_match(point: Any) -> VectorMatch:
    payload = point.payload or {}
    return VectorMatch(
        id=str(payload.get(RECORD_ID_KEY) or point.id),
        score=getattr(point, "score", None),
        metadata=public_metadata(payload),
    )


class QdrantService:
    """Service for managing Qdrant vector store operations.

    Namespaces are a keyword payload field; every read and write is scoped
    with a filter on it.
    """

    def __init__(self, client: AsyncQdrantClient | None = None):
        self._client = client

    @property
    def client(self) -> AsyncQdrantClient:
        """Get or create Qdrant client."""
        if self._client is None:
            if settings.QDRANT_URL:
                self._client = AsyncQdrantClient(
                    url=settings.QDRANT_URL,
                    api_key=settings.QDRANT_API_KEY,
                )
            else:
                self._client = AsyncQdrantClient(
                    host=settings.QDRANT_HOST,
                    port=settings.QDRANT_PORT,
                    api_key=settings.QDRANT_API_KEY,
                )
        return self._client

    async def list_collections(self) -> list[str]:
        """Names of all collections."""
        try:
            response = await self.client.get_collections()
        except Exception as e:
            logger.error("Failed to list collections", error=str(e))
            raise StoreError(f"Failed to list collections: {e}") from e
        return [c.name for c in response.collections if c.name]

    async def create_collection(self, collection_name: str, dimension: int) -> bool:
        """Create a cosine collection with a keyword index on the namespace field."""
        try:
            await self.client.create_collection(
                collection_name=collection_name,
                vectors_config=VectorParams(
                    size=dimension,
                    distance=Distance.COSINE,
                ),
            )
        except Exception as e:
            if "already exists" in str(e).lower():
                logger.warning("Collection already exists", collection=collection_name)
                return True
            logger.error("Failed to create collection", collection=collection_name, error=str(e))
            raise StoreError(f"Failed to create collection '{collection_name}': {e}") from e

        try:
            await self.client.create_payload_index(
                collection_name=collection_name,
                field_name=NAMESPACE_KEY,
                field_schema=models.PayloadSchemaType.KEYWORD,
            )
        except Exception as e:
            # Filtering still works without the index, only slower
            logger.warning(
                "Failed to create namespace payload index",
                collection=collection_name,
                error=str(e),
            )
        logger.info("Created Qdrant collection", collection=collection_name, vector_size=dimension)
        return True

    async def describe_status(self, collection_name: str) -> bool:
        """True when the collection is queryable.

        Yellow (optimizing) and grey (optimizations pending) still serve
        queries; only red means the collection is unusable.
        """
        try:
            info = await self.client.get_collection(collection_name=collection_name)
        except Exception as e:
            raise StoreError(f"Failed to describe collection '{collection_name}': {e}") from e
        return info.status != models.CollectionStatus.RED

    async def delete_collection(self, collection_name: str) -> bool:
        """Delete a Qdrant collection."""
        try:
            await self.client.delete_collection(collection_name=collection_name)
        except Exception as e:
            logger.error("Failed to delete collection", collection=collection_name, error=str(e))
            raise StoreError(f"Failed to delete collection '{collection_name}': {e}") from e
        logger.info("Deleted Qdrant collection", collection=collection_name)
        return True

    async def upsert(
        self,
        collection_name: str,
        namespace: str,
        records: list[VectorRecord],
    ) -> int:
        """Upsert records into a namespace in one batch."""
        points = [
            PointStruct(
                id=point_id(record.id),
                vector=record.values,
                payload=to_payload(record, namespace),
            )
            for record in records
        ]
        try:
            await self.client.upsert(
                collection_name=collection_name,
                points=points,
                wait=True,
            )
        except Exception as e:
            logger.error(
                "Failed to upsert vectors",
                collection=collection_name,
                namespace=namespace,
                error=str(e),
            )
            raise StoreError(f"Failed to upsert vectors: {e}") from e
        logger.info(
            "Upserted vectors",
            collection=collection_name,
            namespace=namespace,
            count=len(points),
        )
        return len(points)

    async def query(
        self,
        collection_name: str,
        namespace: str,
        vector: list[float],
        top_k: int,
    ) -> list[VectorMatch]:
        """Similarity search inside a namespace, best score first."""
        try:
            response = await self.client.query_points(
                collection_name=collection_name,
                query=vector,
                limit=top_k,
                query_filter=_namespace_filter(namespace),
                with_payload=True,
                with_vectors=False,
            )
        except Exception as e:
            logger.error("Search failed", collection=collection_name, namespace=namespace, error=str(e))
            raise StoreError(f"Search failed: {e}") from e
        return [_to_match(point) for point in response.points]

    async def fetch(
        self,
        collection_name: str,
        namespace: str,
        ids: list[str],
    ) -> dict[str, VectorMatch]:
        """Fetch records by their record IDs; missing IDs are left out."""
        try:
            points = await self.client.retrieve(
                collection_name=collection_name,
                ids=[point_id(record_id) for record_id in ids],
                with_payload=True,
                with_vectors=False,
            )
        except Exception as e:
            logger.error("Fetch failed", collection=collection_name, namespace=namespace, error=str(e))
            raise StoreError(f"Fetch failed: {e}") from e

        found: dict[str, VectorMatch] = {}
        for point in points:
            if (point.payload or {}).get(NAMESPACE_KEY) != namespace:
                continue
            match = _to_match(point)
            found[match.id] = match
        return found

    async def list_namespaces(self, collection_name: str) -> list[str]:
        """Distinct namespaces present in a collection."""
        namespaces: set[str] = set()
        offset = None
        try:
            while True:
                points, offset = await self.client.scroll(
                    collection_name=collection_name,
                    limit=NAMESPACE_SCROLL_PAGE,
                    offset=offset,
                    with_payload=[NAMESPACE_KEY],
                    with_vectors=False,
                )
                for point in points:
                    namespace = (point.payload or {}).get(NAMESPACE_KEY)
                    if namespace:
                        namespaces.add(namespace)
                if offset is None:
                    break
        except Exception as e:
            logger.error("Scroll failed", collection=collection_name, error=str(e))
            raise StoreError(f"Failed to list namespaces: {e}") from e
        return sorted(namespaces)
