"""Pydantic schemas for request validation."""
from typing import Optional, Union

from pydantic import BaseModel, Field, field_validator

from .records import Frame

RawName = Union[int, float, str]


class FrameIn(BaseModel):
    """A frame as sent by the UI (camelCase)."""
    frameId: Union[int, str]
    timestamp: float = 0.0
    description: Optional[str] = ""
    path: Optional[str] = ""

    @field_validator("description", "path")
    @classmethod
    def none_to_empty(cls, v: Optional[str]) -> str:
        return v if v is not None else ""

    def to_frame(self) -> Frame:
        return Frame(
            frame_id=self.frameId,
            timestamp=self.timestamp,
            description=self.description,
            path=self.path,
        )


class ExtractedRecordIn(BaseModel):
    """A frame as produced by the extraction collaborator (snake_case)."""
    frame_id: Union[int, str]
    timestamp: float = 0.0
    description: Optional[str] = ""
    path: Optional[str] = ""

    @field_validator("description", "path")
    @classmethod
    def none_to_empty(cls, v: Optional[str]) -> str:
        return v if v is not None else ""

    def to_frame(self) -> Frame:
        return Frame(
            frame_id=self.frame_id,
            timestamp=self.timestamp,
            description=self.description,
            path=self.path,
        )


class TargetRequest(BaseModel):
    """Fields shared by every request addressing a collection and namespace."""
    indexName: Optional[RawName] = None
    videoId: Optional[Union[int, str]] = None
    skipEnsure: bool = False


class QueryRequest(TargetRequest):
    action: Optional[str] = None
    question: Optional[str] = None
    topK: Optional[int] = None


class RagRequest(QueryRequest):
    """Body of ``POST /api/rag``; the ``action`` field selects the operation."""
    action: str = Field(..., min_length=1)
    videoFile: Optional[str] = None
    videoFilename: Optional[str] = None
    summary: Optional[str] = None
    frames: Optional[list[FrameIn]] = None
    records: Optional[list[ExtractedRecordIn]] = None

    def collected_frames(self) -> list[Frame]:
        """Explicit ``frames`` win; otherwise extraction ``records`` are mapped."""
        if self.frames:
            return [f.to_frame() for f in self.frames]
        return [r.to_frame() for r in self.records or []]
