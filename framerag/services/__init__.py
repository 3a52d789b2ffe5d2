"""Services package."""
from .embedding_service import EmbeddingService
from .frame_rag_service import FrameRagService
from .generation_service import GenerationService
from .provisioning import ProvisioningCoordinator
from .qdrant_service import QdrantService

__all__ = [
    "EmbeddingService",
    "FrameRagService",
    "GenerationService",
    "ProvisioningCoordinator",
    "QdrantService",
]
