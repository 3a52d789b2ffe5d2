"""
Vector record models: Frame, Summary and Manifest roles.

The store keeps a flat, untyped payload per point. Inside the service records
are a tagged union discriminated by ``role``; the conversion to and from the
flat payload happens only here.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter
from pydantic import ValidationError as PayloadValidationError

# Payload keys owned by the service, not part of the public metadata
NAMESPACE_KEY = "namespace"
RECORD_ID_KEY = "record_id"
ROLE_KEY = "role"
INTERNAL_KEYS = (NAMESPACE_KEY, RECORD_ID_KEY, ROLE_KEY)


class Frame(BaseModel):
    """One extracted frame, as handed over by the extraction collaborator."""

    frame_id: Union[int, str]
    timestamp: float = 0.0
    description: str = ""
    path: str = ""


class FrameRecord(BaseModel):
    role: Literal["frame"] = "frame"
    video_id: str
    frame_id: Union[int, str]
    timestamp: float
    description: str = ""
    path: str = ""
    video_filename: Optional[str] = None


class SummaryRecord(BaseModel):
    role: Literal["summary"] = "summary"
    video_id: str
    text: str


class ManifestRecord(BaseModel):
    role: Literal["manifest"] = "manifest"
    video_id: str
    count: int
    first_timestamp: float
    last_timestamp: float
    video_filename: Optional[str] = None


VectorMetadata = Annotated[
    Union[FrameRecord, SummaryRecord, ManifestRecord],
    Field(discriminator="role"),
]
_metadata_adapter = TypeAdapter(VectorMetadata)


@dataclass
class VectorRecord:
    """A record ready for upsert: deterministic ID, embedding and typed metadata."""

    id: str
    values: list[float]
    metadata: Union[FrameRecord, SummaryRecord, ManifestRecord]


@dataclass
class VectorMatch:
    """A similarity match or fetched record, with the public flat metadata."""

    id: str
    score: Optional[float] = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "score": self.score, "metadata": self.metadata}

    def record(self) -> Optional[Union[FrameRecord, SummaryRecord, ManifestRecord]]:
        """Typed view of the metadata, or None when it fits no role."""
        try:
            return record_from_payload(self.metadata)
        except PayloadValidationError:
            return None


def to_payload(record: VectorRecord, namespace: str) -> dict[str, Any]:
    """Flatten a record into the store payload."""
    meta = record.metadata
    payload: dict[str, Any] = {
        NAMESPACE_KEY: namespace,
        RECORD_ID_KEY: record.id,
        ROLE_KEY: meta.role,
        "video_id": meta.video_id,
    }
    if isinstance(meta, FrameRecord):
        payload.update(
            frame_id=meta.frame_id,
            timestamp=meta.timestamp,
            description=meta.description,
            path=meta.path,
        )
    elif isinstance(meta, SummaryRecord):
        payload.update(summary=True, text=meta.text)
    else:
        payload.update(
            manifest=True,
            count=meta.count,
            first_timestamp=meta.first_timestamp,
            last_timestamp=meta.last_timestamp,
        )
    video_filename = getattr(meta, "video_filename", None)
    if video_filename:
        payload["video_filename"] = video_filename
    return payload


def public_metadata(payload: dict[str, Any] | None) -> dict[str, Any]:
    """Payload without the service's bookkeeping keys."""
    return {k: v for k, v in (payload or {}).items() if k not in INTERNAL_KEYS}


def record_from_payload(
    payload: dict[str, Any] | None,
) -> Union[FrameRecord, SummaryRecord, ManifestRecord]:
    """Parse a flat payload back into its role.

    Payloads written without a ``role`` tag are classified by their
    ``summary`` / ``manifest`` flags.
    """
    data = dict(payload or {})
    role = data.get(ROLE_KEY)
    if role is None:
        if data.get("summary") is True:
            role = "summary"
        elif data.get("manifest") is True:
            role = "manifest"
        else:
            role = "frame"
    data[ROLE_KEY] = role
    data.setdefault("video_id", "1")
    if role == "summary" and "text" not in data:
        data["text"] = ""
    return _metadata_adapter.validate_python(data)


def numeric_timestamp(metadata: dict[str, Any] | None) -> Optional[float]:
    """``timestamp`` as a float, or None when absent or not a number."""
    value = (metadata or {}).get("timestamp")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)
