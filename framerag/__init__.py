"""Frame retrieval and grounded video question answering."""

__version__ = "1.0.0"
