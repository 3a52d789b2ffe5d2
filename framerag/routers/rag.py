"""Frame RAG API: one POST endpoint multiplexed by ``action``, plus listing and deletion."""

from typing import Any, Awaitable, Callable, Optional

import structlog
from fastapi import APIRouter, Depends, Query

from ..dependencies import error_response, get_frame_rag_service
from ..exceptions import ValidationError
from ..naming import namespace_for, sanitize_index_name
from ..schemas import RagRequest
from ..services.frame_rag_service import FrameRagService

logger = structlog.get_logger()

router = APIRouter(prefix="/rag", tags=["RAG"])

ActionHandler = Callable[[RagRequest, FrameRagService], Awaitable[dict[str, Any]]]


def _with_warnings(body: dict[str, Any], warnings: list[str]) -> dict[str, Any]:
    if warnings:
        body["warnings"] = warnings
    return body


async def _ingest(payload: RagRequest, service: FrameRagService) -> dict[str, Any]:
    """Frames only; no summary or manifest vectors."""
    index_name = sanitize_index_name(payload.indexName)
    namespace = namespace_for(payload.videoId)
    result = await service.ingestion.ingest(
        index_name,
        namespace,
        [f.to_frame() for f in payload.frames or []],
        video_id=payload.videoId,
        skip_ensure=payload.skipEnsure,
        with_manifest=False,
    )
    return {
        "status": "ok",
        "upserted": result.upserted,
        "namespace": namespace,
        "index": index_name,
    }


async def _ingest_final(payload: RagRequest, service: FrameRagService) -> dict[str, Any]:
    """Frames (or extraction records) plus optional summary and a manifest vector."""
    raw_name = payload.indexName if payload.indexName is not None else payload.videoFile
    index_name = sanitize_index_name(raw_name)
    frames = payload.collected_frames()
    if not frames:
        raise ValidationError("No frames/records provided for final ingestion.")

    namespace = namespace_for(payload.videoId)
    logger.info(
        "Final ingestion",
        index=index_name,
        namespace=namespace,
        frames=len(frames),
        skip_ensure=payload.skipEnsure,
    )
    result = await service.ingestion.ingest(
        index_name,
        namespace,
        frames,
        summary=payload.summary,
        video_id=payload.videoId,
        video_filename=payload.videoFilename,
        skip_ensure=payload.skipEnsure,
    )
    return _with_warnings(
        {
            "status": "ok",
            "upserted": result.upserted,
            "namespace": namespace,
            "index": index_name,
            "includedSummary": result.included_summary,
        },
        result.warnings,
    )


async def _query(payload: RagRequest, service: FrameRagService) -> dict[str, Any]:
    index_name = sanitize_index_name(payload.indexName)
    matches = await service.retrieval.search(
        index_name,
        namespace_for(payload.videoId),
        payload.question or "",
        top_k=payload.topK,
        skip_ensure=payload.skipEnsure,
    )
    return {
        "status": "ok",
        "matches": [m.to_dict() for m in matches],
        "index": index_name,
    }


async def run_analyze(payload: Any, service: FrameRagService) -> dict[str, Any]:
    if not payload.question or not payload.question.strip():
        raise ValidationError("Question is required for analyze.")
    index_name = sanitize_index_name(payload.indexName)
    result = await service.analyzer.analyze(
        index_name,
        namespace_for(payload.videoId),
        payload.question,
        top_k=payload.topK,
        skip_ensure=payload.skipEnsure,
    )
    return _with_warnings(
        {
            "status": "ok",
            "answer": result.answer,
            "citations": [c.to_dict() for c in result.citations],
            "index": index_name,
        },
        result.warnings,
    )


async def _overview(payload: RagRequest, service: FrameRagService) -> dict[str, Any]:
    index_name = sanitize_index_name(payload.indexName)
    namespace = namespace_for(payload.videoId)
    result = await service.overviews.overview(
        index_name,
        namespace,
        top_k=payload.topK,
        skip_ensure=payload.skipEnsure,
    )
    body: dict[str, Any] = {"status": "ok"}
    if result.summary is not None:
        body["summary"] = result.summary
    body.update(
        frames=[f.to_dict() for f in result.frames],
        index=index_name,
        namespace=namespace,
    )
    return _with_warnings(body, result.warnings)


async def _summarize(payload: RagRequest, service: FrameRagService) -> dict[str, Any]:
    summary = await service.summarize(payload.collected_frames())
    return {"status": "ok", "summary": summary}


ACTIONS: dict[str, ActionHandler] = {
    "ingest": _ingest,
    "ingest_final": _ingest_final,
    "query": _query,
    "analyze": run_analyze,
    "overview": _overview,
    "summarize": _summarize,
}


async def dispatch(handler: ActionHandler, payload: Any, service: FrameRagService, action: str):
    """Run a handler and turn failures into the ``{status: "error"}`` envelope."""
    try:
        return await handler(payload, service)
    except ValidationError as e:
        return error_response(e.message, 400)
    except Exception as e:
        logger.error(
            "RAG action failed",
            action=action,
            error=str(e),
            error_type=type(e).__name__,
        )
        return error_response(str(e) or "Unexpected error occurred.", 500)


@router.post("")
async def rag_action(
    payload: RagRequest,
    service: FrameRagService = Depends(get_frame_rag_service),
):
    """Ingest, query, analyze, overview or summarize depending on ``action``."""
    handler = ACTIONS.get(payload.action)
    if handler is None:
        return error_response("Unsupported action requested.", 400)
    return await dispatch(handler, payload, service, payload.action)


@router.get("")
async def rag_info(
    list_: Optional[str] = Query(default=None, alias="list"),
    indexName: Optional[str] = Query(default=None),
    service: FrameRagService = Depends(get_frame_rag_service),
):
    """
    Read-only listing and readiness.

    - **list=indexes**: all collections.
    - **list=namespaces&indexName=**: namespaces inside one collection.
    - otherwise: make sure ``indexName`` (or the default) is ready.
    """
    try:
        if list_ == "indexes":
            return {"status": "ok", "indexes": await service.list_indexes()}

        if list_ == "namespaces":
            if not indexName:
                return error_response("indexName is required to list namespaces", 400)
            index_name = sanitize_index_name(indexName)
            namespaces = await service.list_namespaces(index_name)
            return {"status": "ok", "index": index_name, "namespaces": namespaces}

        info = await service.readiness(sanitize_index_name(indexName))
        return {"status": "ok", **info}
    except Exception as e:
        logger.error("RAG info request failed", list=list_, error=str(e))
        return error_response(str(e) or "Unexpected error occurred.", 500)


@router.delete("")
async def delete_index(
    indexName: Optional[str] = Query(default=None),
    service: FrameRagService = Depends(get_frame_rag_service),
):
    """Delete a collection and forget its provisioning state."""
    if not indexName:
        return error_response("indexName is required to delete an index", 400)
    index_name = sanitize_index_name(indexName)
    try:
        await service.delete_index(index_name)
    except Exception as e:
        logger.error("Delete index failed", index=index_name, error=str(e))
        return error_response(str(e) or "Unexpected error occurred.", 500)
    return {
        "status": "ok",
        "message": f'Index "{index_name}" deleted successfully',
        "deletedIndex": index_name,
    }
