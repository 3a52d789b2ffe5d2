"""
Collection names, namespaces and vector IDs.

Every pipeline builds IDs through these helpers so that re-ingesting the same
frame always lands on the same point.
"""
from __future__ import annotations

import math
import re
import uuid
from typing import Union

from .config import settings

MAX_INDEX_NAME_LENGTH = 45
SUMMARY_KEY = "summary"
MANIFEST_KEY = "manifest"

_INVALID_CHARS = re.compile(r"[^a-z0-9-]+")
_DASH_RUNS = re.compile(r"-+")

RawName = Union[str, int, float, None]


def _stringify(raw: RawName) -> str | None:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        if isinstance(raw, float):
            if not math.isfinite(raw):
                return None
            if raw.is_integer():
                return str(int(raw))
        return str(raw)
    if isinstance(raw, str):
        return raw
    return None


def sanitize_index_name(raw: RawName = None, fallback: str | None = None) -> str:
    """Normalize a user-supplied name into a valid collection name.

    Lowercases, replaces anything outside ``[a-z0-9-]`` with a dash, collapses
    dash runs, trims edge dashes and truncates to 45 characters. Falls back to
    the default index name when nothing usable remains.

    >>> sanitize_index_name("My Video!!.mp4")
    'my-video-mp4'
    """
    fallback = fallback or settings.DEFAULT_INDEX_NAME
    candidate = _stringify(raw)
    if candidate is None:
        candidate = fallback

    lowered = candidate.lower()
    replaced = _INVALID_CHARS.sub("-", lowered)
    collapsed = _DASH_RUNS.sub("-", replaced)
    trimmed = collapsed.strip("-")
    safe = trimmed or fallback
    return safe[:MAX_INDEX_NAME_LENGTH]


def namespace_for(video_id: RawName = None, default: str | None = None) -> str:
    """Namespace holding all vectors of one video (``video-<id>``)."""
    if not video_id:
        return default or settings.DEFAULT_NAMESPACE
    return f"video-{sanitize_index_name(video_id)}"


def metadata_video_id(video_id: RawName = None) -> str:
    """``video_id`` value stored on every record; ``"1"`` when unknown."""
    value = _stringify(video_id)
    return value if value is not None else "1"


def vector_id(namespace: str, key: str | int) -> str:
    """Deterministic record ID: ``<namespace>::<frame_id|summary|manifest>``."""
    return f"{namespace}::{key}"


def summary_vector_id(namespace: str) -> str:
    return vector_id(namespace, SUMMARY_KEY)


def manifest_vector_id(namespace: str) -> str:
    return vector_id(namespace, MANIFEST_KEY)


def point_id(record_id: str) -> str:
    """Qdrant point ID for a record ID (Qdrant accepts only UUIDs or ints)."""
    return str(uuid.uuid5(uuid.NAMESPACE_DNS, record_id))
