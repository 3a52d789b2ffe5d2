"""Orchestration service wiring adapters, provisioning and pipelines together."""

from __future__ import annotations

from typing import Any, Optional

import structlog

from ..config import settings
from ..records import Frame
from .analyze_service import AnalyzeService
from .embedding_service import EmbeddingService
from .generation_service import GenerationService
from .image_loader import ImageLoader, LocalImageLoader
from .ingestion_service import IngestionService
from .overview_service import OverviewService
from .provisioning import ProvisioningCoordinator
from .qdrant_service import QdrantService
from .retrieval_service import RetrievalService

logger = structlog.get_logger()


class FrameRagService:
    """Entry point for every operation the HTTP layer exposes.

    One instance owns one provisioning coordinator, so the per-collection
    provisioning state lives exactly as long as the service does.
    """

    def __init__(
        self,
        store: QdrantService,
        embeddings: EmbeddingService,
        generation: GenerationService,
        image_loader: Optional[ImageLoader] = None,
        provisioning: Optional[ProvisioningCoordinator] = None,
        attach_images: Optional[bool] = None,
    ):
        self.store = store
        self.embeddings = embeddings
        self.generation = generation
        self.provisioning = provisioning or ProvisioningCoordinator(
            store, dimension=embeddings.dimension
        )
        self.ingestion = IngestionService(embeddings, store, self.provisioning)
        self.retrieval = RetrievalService(embeddings, store, self.provisioning)
        self.analyzer = AnalyzeService(
            self.retrieval, generation, image_loader, attach_images=attach_images
        )
        self.overviews = OverviewService(embeddings, store, self.provisioning)

    @classmethod
    def from_settings(cls) -> "FrameRagService":
        return cls(
            store=QdrantService(),
            embeddings=EmbeddingService(),
            generation=GenerationService(),
            image_loader=LocalImageLoader(),
        )

    async def summarize(self, frames: list[Frame]) -> str:
        return await self.generation.summarize(frames)

    async def list_indexes(self) -> list[dict[str, str]]:
        return [{"name": name} for name in await self.store.list_collections()]

    async def list_namespaces(self, collection_name: str) -> list[str]:
        # Listing never provisions; the collection is assumed to exist
        return await self.store.list_namespaces(collection_name)

    async def readiness(self, collection_name: str) -> dict[str, Any]:
        await self.provisioning.ensure_ready(collection_name)
        return {
            "index": collection_name,
            "dimension": self.embeddings.dimension,
            "embeddingModel": self.embeddings.model,
            "generationModel": self.generation.model,
            "provisioning": self.provisioning.state(collection_name).value,
        }

    async def delete_index(self, collection_name: str) -> None:
        logger.info("Deleting collection", collection=collection_name)
        await self.store.delete_collection(collection_name)
        await self.provisioning.forget(collection_name)
