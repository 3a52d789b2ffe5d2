"""Standalone analyze endpoint; same as ``action: "analyze"`` without the action field."""

from fastapi import APIRouter, Depends

from ..dependencies import get_frame_rag_service
from ..schemas import QueryRequest
from ..services.frame_rag_service import FrameRagService
from .rag import dispatch, run_analyze

router = APIRouter(prefix="/analyze", tags=["RAG"])


@router.post("")
async def analyze(
    payload: QueryRequest,
    service: FrameRagService = Depends(get_frame_rag_service),
):
    """Answer a question about a video from its chronologically ordered frames."""
    return await dispatch(run_analyze, payload, service, "analyze")
