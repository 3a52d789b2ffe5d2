"""Overview pipeline: a video's summary plus its frames in time order."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Union

import structlog

from ..naming import summary_vector_id
from ..records import FrameRecord, SummaryRecord, numeric_timestamp
from .embedding_service import EmbeddingService
from .provisioning import ProvisioningCoordinator
from .qdrant_service import QdrantService
from .retrieval_service import clamp_top_k

logger = structlog.get_logger()

DEFAULT_OVERVIEW_TOP_K = 200
MAX_OVERVIEW_TOP_K = 1000
OVERVIEW_PROBE = "overview of this video frames"


@dataclass
class OverviewFrame:
    id: str
    score: Optional[float]
    frame_id: Union[int, str, None]
    timestamp: float
    description: Optional[str] = None
    path: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "score": self.score,
            "frame_id": self.frame_id,
            "timestamp": self.timestamp,
            "description": self.description,
            "path": self.path,
        }


@dataclass
class OverviewResult:
    summary: Optional[str]
    frames: list[OverviewFrame]
    warnings: list[str] = field(default_factory=list)


class OverviewService:
    """Rebuilds a video's frame list from a broad probe query.

    The store has no "list everything in a namespace" call here, so frames
    are recovered with a generic query and a large top-K. Records without a
    numeric timestamp (summary, manifest) are dropped.
    """

    def __init__(
        self,
        embeddings: EmbeddingService,
        store: QdrantService,
        provisioning: ProvisioningCoordinator,
    ):
        self.embeddings = embeddings
        self.store = store
        self.provisioning = provisioning

    async def _fetch_summary(
        self, collection_name: str, namespace: str, warnings: list[str]
    ) -> Optional[str]:
        record_id = summary_vector_id(namespace)
        try:
            found = await self.store.fetch(collection_name, namespace, [record_id])
        except Exception as e:
            logger.warning("Summary fetch failed", namespace=namespace, error=str(e))
            warnings.append(f"summary unavailable: {e}")
            return None
        match = found.get(record_id)
        record = match.record() if match is not None else None
        if isinstance(record, SummaryRecord) and record.text:
            return record.text
        return None

    async def overview(
        self,
        collection_name: str,
        namespace: str,
        top_k: int | None = DEFAULT_OVERVIEW_TOP_K,
        skip_ensure: bool = False,
    ) -> OverviewResult:
        if not skip_ensure:
            await self.provisioning.ensure_ready(collection_name)

        warnings: list[str] = []
        summary = await self._fetch_summary(collection_name, namespace, warnings)

        limit = clamp_top_k(top_k, DEFAULT_OVERVIEW_TOP_K, MAX_OVERVIEW_TOP_K)
        probe = await self.embeddings.embed_query(OVERVIEW_PROBE)
        matches = await self.store.query(collection_name, namespace, probe, limit)

        frames = []
        for match in matches:
            record = match.record()
            # Summary and manifest records carry no timestamp
            if not isinstance(record, FrameRecord) or numeric_timestamp(match.metadata) is None:
                continue
            frames.append(
                OverviewFrame(
                    id=match.id,
                    score=match.score,
                    frame_id=record.frame_id,
                    timestamp=record.timestamp,
                    description=record.description,
                    path=record.path,
                )
            )
        frames.sort(key=lambda f: f.timestamp)

        logger.info(
            "Built overview",
            collection=collection_name,
            namespace=namespace,
            frames=len(frames),
            has_summary=summary is not None,
        )
        return OverviewResult(summary=summary, frames=frames, warnings=warnings)
