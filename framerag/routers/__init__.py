"""API Routers."""
from . import analyze, rag

__all__ = [
    "analyze",
    "rag",
]
