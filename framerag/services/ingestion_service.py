"""Ingestion pipeline: embed frame descriptions and upsert them into a namespace."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

import structlog

from ..exceptions import ValidationError
from ..naming import manifest_vector_id, metadata_video_id, summary_vector_id, vector_id
from ..records import Frame, FrameRecord, ManifestRecord, SummaryRecord, VectorRecord
from .embedding_service import EmbeddingService
from .provisioning import ProvisioningCoordinator
from .qdrant_service import QdrantService

logger = structlog.get_logger()


@dataclass
class IngestResult:
    upserted: int
    namespace: str
    included_summary: bool = False
    included_manifest: bool = False
    warnings: list[str] = field(default_factory=list)


def manifest_probe_text(video_id: Union[str, int, None]) -> str:
    return f"manifest video {metadata_video_id(video_id)}"


class IngestionService:
    """Builds frame, summary and manifest vectors and writes them in one batch."""

    def __init__(
        self,
        embeddings: EmbeddingService,
        store: QdrantService,
        provisioning: ProvisioningCoordinator,
    ):
        self.embeddings = embeddings
        self.store = store
        self.provisioning = provisioning

    async def ingest(
        self,
        collection_name: str,
        namespace: str,
        frames: list[Frame],
        summary: Optional[str] = None,
        video_id: Union[str, int, None] = None,
        video_filename: Optional[str] = None,
        skip_ensure: bool = False,
        with_manifest: bool = True,
    ) -> IngestResult:
        """Embed and upsert frames (plus optional summary and manifest).

        Record IDs are deterministic, so ingesting the same frames again
        overwrites the previous vectors instead of duplicating them.
        """
        if not frames:
            raise ValidationError("No frames provided for ingestion.")
        if not skip_ensure:
            await self.provisioning.ensure_ready(collection_name)

        video_key = metadata_video_id(video_id)
        embeddings = await self.embeddings.embed([f.description or "" for f in frames])

        records = [
            VectorRecord(
                id=vector_id(namespace, frame.frame_id),
                values=values,
                metadata=FrameRecord(
                    video_id=video_key,
                    frame_id=frame.frame_id,
                    timestamp=frame.timestamp,
                    description=frame.description,
                    path=frame.path,
                    video_filename=video_filename or None,
                ),
            )
            for frame, values in zip(frames, embeddings)
        ]
        result = IngestResult(upserted=0, namespace=namespace)

        if summary and summary.strip():
            [summary_values] = await self.embeddings.embed([summary])
            records.append(
                VectorRecord(
                    id=summary_vector_id(namespace),
                    values=summary_values,
                    metadata=SummaryRecord(video_id=video_key, text=summary),
                )
            )
            result.included_summary = True

        if with_manifest:
            try:
                records.append(await self._manifest_record(namespace, frames, video_id, video_filename))
                result.included_manifest = True
            except Exception as e:
                logger.warning(
                    "Failed to add manifest vector",
                    namespace=namespace,
                    error=str(e),
                )
                result.warnings.append(f"manifest vector skipped: {e}")

        result.upserted = await self.store.upsert(collection_name, namespace, records)
        logger.info(
            "Ingested frames",
            collection=collection_name,
            namespace=namespace,
            frames=len(frames),
            upserted=result.upserted,
            included_summary=result.included_summary,
        )
        return result

    async def _manifest_record(
        self,
        namespace: str,
        frames: list[Frame],
        video_id: Union[str, int, None],
        video_filename: Optional[str],
    ) -> VectorRecord:
        manifest = ManifestRecord(
            video_id=metadata_video_id(video_id),
            count=len(frames),
            first_timestamp=frames[0].timestamp,
            last_timestamp=frames[-1].timestamp,
            video_filename=video_filename or None,
        )
        [values] = await self.embeddings.embed([manifest_probe_text(video_id)])
        return VectorRecord(id=manifest_vector_id(namespace), values=values, metadata=manifest)
