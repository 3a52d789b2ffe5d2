"""Test configuration and in-memory fakes for the external services."""

import os

# Set test environment variables before importing app modules
os.environ.setdefault("LOG_LEVEL", "warning")
os.environ.setdefault("ANALYZE_ATTACH_IMAGES", "true")

import pytest
from fastapi.testclient import TestClient

from framerag.dependencies import get_frame_rag_service
from framerag.main import app
from framerag.records import Frame, VectorMatch, public_metadata, to_payload
from framerag.services.frame_rag_service import FrameRagService
from framerag.services.image_loader import ImageLoadResult
from framerag.services.provisioning import ProvisioningCoordinator

DIMENSION = 8


class FakeStore:
    """In-memory stand-in for QdrantService with call counters."""

    def __init__(self, collections=None, ready_after: int = 0):
        self.collections: set[str] = set(collections or [])
        self.points: dict[str, dict[str, dict]] = {}
        self.ready_after = ready_after
        self.query_results: list[VectorMatch] | None = None
        self.fetch_error: Exception | None = None
        self.calls: dict[str, int] = {
            "list_collections": 0,
            "create_collection": 0,
            "describe_status": 0,
            "upsert": 0,
            "query": 0,
            "fetch": 0,
            "delete_collection": 0,
        }
        self.last_query: dict | None = None

    async def list_collections(self):
        self.calls["list_collections"] += 1
        return sorted(self.collections)

    async def create_collection(self, collection_name, dimension):
        self.calls["create_collection"] += 1
        self.collections.add(collection_name)
        return True

    async def describe_status(self, collection_name):
        self.calls["describe_status"] += 1
        return self.calls["describe_status"] > self.ready_after

    async def delete_collection(self, collection_name):
        self.calls["delete_collection"] += 1
        self.collections.discard(collection_name)
        self.points.pop(collection_name, None)
        return True

    async def upsert(self, collection_name, namespace, records):
        self.calls["upsert"] += 1
        stored = self.points.setdefault(collection_name, {})
        for record in records:
            stored[record.id] = to_payload(record, namespace)
        return len(records)

    def ids(self, collection_name, namespace=None):
        return {
            record_id
            for record_id, payload in self.points.get(collection_name, {}).items()
            if namespace is None or payload["namespace"] == namespace
        }

    async def query(self, collection_name, namespace, vector, top_k):
        self.calls["query"] += 1
        self.last_query = {
            "collection": collection_name,
            "namespace": namespace,
            "vector": vector,
            "top_k": top_k,
        }
        if self.query_results is not None:
            return list(self.query_results)[:top_k]
        matches = [
            VectorMatch(id=record_id, score=0.5, metadata=public_metadata(payload))
            for record_id, payload in self.points.get(collection_name, {}).items()
            if payload["namespace"] == namespace
        ]
        return matches[:top_k]

    async def fetch(self, collection_name, namespace, ids):
        self.calls["fetch"] += 1
        if self.fetch_error is not None:
            raise self.fetch_error
        stored = self.points.get(collection_name, {})
        return {
            record_id: VectorMatch(id=record_id, metadata=public_metadata(stored[record_id]))
            for record_id in ids
            if record_id in stored and stored[record_id]["namespace"] == namespace
        }

    async def list_namespaces(self, collection_name):
        return sorted({p["namespace"] for p in self.points.get(collection_name, {}).values()})


class FakeEmbeddings:
    """Deterministic embeddings; records every text it was asked to embed."""

    model = "fake-embedding"

    def __init__(self, dimension: int = DIMENSION, fail_on_prefix: str | None = None):
        self.dimension = dimension
        self.fail_on_prefix = fail_on_prefix
        self.texts: list[str] = []
        self.calls = 0

    async def embed(self, texts):
        self.calls += 1
        vectors = []
        for text in texts:
            if self.fail_on_prefix and text.startswith(self.fail_on_prefix):
                raise RuntimeError("embedding backend unavailable")
            self.texts.append(text)
            vectors.append([float(len(text) % 7)] * self.dimension)
        return vectors

    async def embed_query(self, query):
        return (await self.embed([query]))[0]


class FakeGeneration:
    model = "fake-llm"

    def __init__(self, answer: str = "The car stops at [frame 2 at 1.0s]."):
        self.answer = answer
        self.calls: list[list] = []

    async def generate(self, parts):
        self.calls.append(list(parts))
        return self.answer

    async def summarize(self, frames):
        return f"{len(frames)} frames summarized"


class FakeImageLoader:
    def __init__(self, images: dict[str, bytes]):
        self.images = images
        self.requested: list[str] = []

    async def load(self, path):
        self.requested.append(path)
        if path in self.images:
            return ImageLoadResult(data=self.images[path])
        return ImageLoadResult(error=f"{path} not found")


def make_frames(timestamps=(0.0, 1.0, 2.0)):
    return [
        Frame(
            frame_id=i,
            timestamp=ts,
            description=f"frame {i} description",
            path=f"data/video_frame_{i:03d}.jpg",
        )
        for i, ts in enumerate(timestamps)
    ]


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def embeddings():
    return FakeEmbeddings()


@pytest.fixture
def generation():
    return FakeGeneration()


@pytest.fixture
def provisioning(store):
    return ProvisioningCoordinator(store, dimension=DIMENSION, poll_interval=0, max_attempts=3)


@pytest.fixture
def frame_rag_service(store, embeddings, generation, provisioning):
    return FrameRagService(
        store=store,
        embeddings=embeddings,
        generation=generation,
        image_loader=None,
        provisioning=provisioning,
        attach_images=False,
    )


@pytest.fixture
def client(frame_rag_service):
    """Test client whose service runs on the in-memory fakes."""
    app.dependency_overrides[get_frame_rag_service] = lambda: frame_rag_service

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
