"""
Exception hierarchy for the frame retrieval service.

Every error raised by the pipelines inherits from FrameRagError. The HTTP
layer maps ValidationError to 400 and everything else to 500.
"""
from typing import Any, Dict, Optional


class FrameRagError(Exception):
    """Base exception for all frame retrieval errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(FrameRagError):
    """A required input (question, frames) is missing or empty."""


class ProvisionError(FrameRagError):
    """A collection could not be created or never became ready."""


class EmbeddingError(FrameRagError):
    """The embedding service returned no vector, or had nothing to embed."""


class StoreError(FrameRagError):
    """Any other vector store failure."""


class GenerationError(FrameRagError):
    """The generation call failed or returned no usable text."""
