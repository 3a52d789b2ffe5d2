"""FastAPI dependencies."""
from fastapi import Request
from fastapi.responses import JSONResponse

from .services.frame_rag_service import FrameRagService


def get_frame_rag_service(request: Request) -> FrameRagService:
    """The service instance created at application startup."""
    return request.app.state.frame_rag_service


def error_response(message: str, status_code: int = 500) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status": "error", "message": message},
    )
