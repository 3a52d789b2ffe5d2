"""
Analyze pipeline: retrieval, chronological reordering, prompt assembly and
generation.

Matches come back from the store in similarity order. The model needs a
timeline instead, so they are re-sorted by timestamp before the prompt is
built, and citations are returned in that same chronological order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

import structlog

from ..config import settings
from ..records import VectorMatch, numeric_timestamp
from .generation_service import ContentPart, GenerationService, ImagePart, TextPart
from .image_loader import ImageLoader, ImageLoadResult
from .retrieval_service import RetrievalService

logger = structlog.get_logger()

DEFAULT_ANALYZE_TOP_K = 10

ANALYZE_PROMPT = """You are a video analysis assistant. Your task is to answer questions about a video by analyzing frames in CHRONOLOGICAL ORDER.

IMPORTANT INSTRUCTIONS:
1. The frames below are sorted by timestamp - use this to understand the SEQUENCE and TIMELINE of events
2. Connect the frames together to build a coherent narrative of what happened over time
3. Pay close attention to WHEN things happen (timestamps) to understand cause and effect
4. Infer relationships between frames based on their temporal proximity
5. If events happen across multiple frames, explain the progression and timeline
6. Use ONLY the provided frames - do not make up information
7. Cite 2-3 most relevant frames by frame_id and timestamp in square brackets (e.g., [frame 5 at 2.5s])
8. If you cannot determine the answer from the frames, clearly state what information is missing

Question: {question}

Frames (in chronological order):
{context}

Remember: Consider how the frames connect temporally to form a complete picture of the events."""

IMAGES_NOTE = "Frame images follow, in the same chronological order, each with its label and description."


@dataclass
class AnalyzeResult:
    answer: str
    citations: list[VectorMatch]
    warnings: list[str] = field(default_factory=list)


def sort_chronologically(matches: list[VectorMatch]) -> list[VectorMatch]:
    """Stable sort by ``metadata.timestamp``; missing timestamps count as 0."""
    return sorted(matches, key=lambda m: numeric_timestamp(m.metadata) or 0.0)


def format_timestamp(value: Any) -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return f"{value:.1f}s"
    return "" if value is None else str(value)


def frame_label(index: int, metadata: dict[str, Any]) -> str:
    frame_id = metadata.get("frame_id")
    label = f"#{index} [t={format_timestamp(metadata.get('timestamp'))}] id={'?' if frame_id is None else frame_id}"
    path = metadata.get("path")
    if path:
        label += f" ({path})"
    return label


def format_context(matches: list[VectorMatch]) -> str:
    blocks = []
    for i, match in enumerate(matches, 1):
        meta = match.metadata or {}
        blocks.append(f"{frame_label(i, meta)}\n{meta.get('description') or ''}")
    return "\n\n".join(blocks)


def build_prompt(question: str, matches: list[VectorMatch]) -> str:
    return ANALYZE_PROMPT.format(question=question, context=format_context(matches))


class AnalyzeService:
    """Answers a question from chronologically ordered frame matches."""

    def __init__(
        self,
        retrieval: RetrievalService,
        generation: GenerationService,
        image_loader: Optional[ImageLoader] = None,
        attach_images: Optional[bool] = None,
    ):
        self.retrieval = retrieval
        self.generation = generation
        self.image_loader = image_loader
        self.attach_images = (
            settings.ANALYZE_ATTACH_IMAGES if attach_images is None else attach_images
        )

    async def _image_parts(
        self, matches: list[VectorMatch], warnings: list[str]
    ) -> list[ContentPart]:
        parts: list[ContentPart] = []
        if not self.attach_images or self.image_loader is None:
            return parts

        for i, match in enumerate(matches, 1):
            meta = match.metadata or {}
            path = meta.get("path")
            if not path:
                continue
            try:
                loaded = await self.image_loader.load(str(path))
            except Exception as e:
                loaded = ImageLoadResult(error=str(e) or type(e).__name__)
            if not loaded.ok:
                logger.warning(
                    "Frame image unavailable, using text only",
                    frame=match.id,
                    path=path,
                    error=loaded.error,
                )
                warnings.append(f"image for {match.id} not loaded: {loaded.error}")
                continue
            parts.append(TextPart(frame_label(i, meta)))
            parts.append(ImagePart(data=loaded.data, mime_type=loaded.mime_type))
            parts.append(TextPart(meta.get("description") or ""))
        return parts

    async def analyze(
        self,
        collection_name: str,
        namespace: str,
        question: str,
        top_k: int | None = DEFAULT_ANALYZE_TOP_K,
        skip_ensure: bool = False,
    ) -> AnalyzeResult:
        """Retrieve, reorder by time, prompt the model once and return answer plus citations."""
        matches = await self.retrieval.search(
            collection_name,
            namespace,
            question,
            top_k=DEFAULT_ANALYZE_TOP_K if top_k is None else top_k,
            skip_ensure=skip_ensure,
        )
        ordered = sort_chronologically(matches)
        warnings: list[str] = []

        parts: list[ContentPart] = [TextPart(build_prompt(question, ordered))]
        image_parts = await self._image_parts(ordered, warnings)
        if image_parts:
            parts.append(TextPart(IMAGES_NOTE))
            parts.extend(image_parts)

        answer = await self.generation.generate(parts)
        logger.info(
            "Analyze completed",
            collection=collection_name,
            namespace=namespace,
            citations=len(ordered),
            images=sum(1 for p in image_parts if isinstance(p, ImagePart)),
        )
        return AnalyzeResult(answer=answer, citations=ordered, warnings=warnings)
