"""Tests for the /api/rag and /api/analyze endpoints."""

from framerag.exceptions import ProvisionError


def _frames(n=3):
    return [
        {
            "frameId": i,
            "timestamp": float(i),
            "description": f"frame {i} description",
            "path": f"frame_{i}.jpg",
        }
        for i in range(n)
    ]


# ============== POST /api/rag ingest ==============


def test_ingest_frames(client, store):
    response = client.post(
        "/api/rag",
        json={"action": "ingest", "indexName": "My Video!!", "videoId": 42, "frames": _frames()},
    )

    assert response.status_code == 200
    data = response.json()
    assert data == {
        "status": "ok",
        "upserted": 3,
        "namespace": "video-42",
        "index": "my-video",
    }
    assert store.ids("my-video") == {"video-42::0", "video-42::1", "video-42::2"}


def test_ingest_without_frames_is_400(client):
    response = client.post("/api/rag", json={"action": "ingest", "frames": []})

    assert response.status_code == 400
    assert response.json()["status"] == "error"


def test_ingest_final_with_records_and_summary(client, store):
    records = [
        {"frame_id": 0, "timestamp": 0.0, "description": "door", "path": "f0.jpg"},
        {"frame_id": 1, "timestamp": 1.0, "description": None, "path": None},
    ]
    response = client.post(
        "/api/rag",
        json={
            "action": "ingest_final",
            "videoFile": "uploads/Clip 1.mp4",
            "videoId": 9,
            "videoFilename": "Clip 1.mp4",
            "summary": "Someone opens a door.",
            "records": records,
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["index"] == "uploads-clip-1-mp4"
    assert data["namespace"] == "video-9"
    assert data["upserted"] == 4
    assert data["includedSummary"] is True
    assert "warnings" not in data
    assert store.points["uploads-clip-1-mp4"]["video-9::1"]["description"] == ""


def test_ingest_final_frames_win_over_records(client, store):
    response = client.post(
        "/api/rag",
        json={
            "action": "ingest_final",
            "indexName": "clips",
            "frames": _frames(1),
            "records": [{"frame_id": 99, "timestamp": 3.0}],
        },
    )

    assert response.status_code == 200
    assert store.ids("clips") == {"frames::0", "frames::manifest"}
    assert response.json()["includedSummary"] is False


def test_ingest_final_without_frames_is_400(client):
    response = client.post("/api/rag", json={"action": "ingest_final", "indexName": "clips"})

    assert response.status_code == 400
    assert response.json() == {
        "status": "error",
        "message": "No frames/records provided for final ingestion.",
    }


# ============== POST /api/rag query / analyze / overview ==============


def test_query_returns_matches(client):
    client.post("/api/rag", json={"action": "ingest", "indexName": "clips", "frames": _frames()})

    response = client.post(
        "/api/rag", json={"action": "query", "indexName": "clips", "question": "door?", "topK": 2}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["index"] == "clips"
    assert len(data["matches"]) == 2
    assert set(data["matches"][0]) == {"id", "score", "metadata"}
    assert "namespace" not in data["matches"][0]["metadata"]


def test_query_without_question_is_400(client):
    response = client.post("/api/rag", json={"action": "query", "indexName": "clips"})

    assert response.status_code == 400
    assert response.json()["message"] == "Question is required for query."


def test_analyze_action(client, generation):
    client.post(
        "/api/rag",
        json={"action": "ingest", "indexName": "clips", "videoId": 1, "frames": _frames()},
    )

    response = client.post(
        "/api/rag",
        json={"action": "analyze", "indexName": "clips", "videoId": 1, "question": "What happens?"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["answer"] == generation.answer
    timestamps = [c["metadata"]["timestamp"] for c in data["citations"]]
    assert timestamps == sorted(timestamps)


def test_analyze_without_question_is_400(client, generation):
    response = client.post("/api/rag", json={"action": "analyze", "indexName": "clips"})

    assert response.status_code == 400
    assert response.json()["message"] == "Question is required for analyze."
    assert generation.calls == []


def test_analyze_endpoint(client, generation):
    client.post("/api/rag", json={"action": "ingest", "indexName": "clips", "frames": _frames()})

    response = client.post("/api/analyze", json={"indexName": "clips", "question": "What happens?"})

    assert response.status_code == 200
    assert response.json()["answer"] == generation.answer


def test_overview_action(client):
    client.post(
        "/api/rag",
        json={
            "action": "ingest_final",
            "indexName": "clips",
            "videoId": 3,
            "summary": "A quiet street.",
            "frames": _frames(),
        },
    )

    response = client.post(
        "/api/rag", json={"action": "overview", "indexName": "clips", "videoId": 3}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["summary"] == "A quiet street."
    assert data["namespace"] == "video-3"
    assert [f["frame_id"] for f in data["frames"]] == [0, 1, 2]


def test_overview_without_summary_omits_field(client):
    client.post("/api/rag", json={"action": "ingest", "indexName": "clips", "frames": _frames()})

    data = client.post("/api/rag", json={"action": "overview", "indexName": "clips"}).json()

    assert "summary" not in data
    assert len(data["frames"]) == 3


def test_summarize_action(client):
    response = client.post("/api/rag", json={"action": "summarize", "frames": _frames(2)})

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "summary": "2 frames summarized"}


# ============== errors ==============


def test_unsupported_action_is_400(client):
    response = client.post("/api/rag", json={"action": "transcode"})

    assert response.status_code == 400
    assert response.json() == {"status": "error", "message": "Unsupported action requested."}


def test_missing_action_is_400(client):
    response = client.post("/api/rag", json={"question": "hi"})

    assert response.status_code == 400
    assert response.json()["status"] == "error"


def test_provisioning_failure_is_500(client, frame_rag_service):
    async def fail(name):
        raise ProvisionError(f'Timed out waiting for collection "{name}" to become ready.')

    frame_rag_service.provisioning.ensure_ready = fail

    response = client.post(
        "/api/rag", json={"action": "query", "indexName": "clips", "question": "q"}
    )

    assert response.status_code == 500
    assert response.json() == {
        "status": "error",
        "message": 'Timed out waiting for collection "clips" to become ready.',
    }


# ============== GET / DELETE /api/rag ==============


def test_list_indexes(client):
    client.post("/api/rag", json={"action": "ingest", "indexName": "clips", "frames": _frames()})

    response = client.get("/api/rag", params={"list": "indexes"})

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "indexes": [{"name": "clips"}]}


def test_list_namespaces(client):
    for video_id in (1, 2):
        client.post(
            "/api/rag",
            json={"action": "ingest", "indexName": "clips", "videoId": video_id, "frames": _frames()},
        )

    response = client.get("/api/rag", params={"list": "namespaces", "indexName": "clips"})

    assert response.json() == {
        "status": "ok",
        "index": "clips",
        "namespaces": ["video-1", "video-2"],
    }


def test_list_namespaces_requires_index(client):
    response = client.get("/api/rag", params={"list": "namespaces"})

    assert response.status_code == 400


def test_readiness(client, store):
    response = client.get("/api/rag", params={"indexName": "Fresh Index"})

    assert response.status_code == 200
    data = response.json()
    assert data["index"] == "fresh-index"
    assert data["embeddingModel"] == "fake-embedding"
    assert data["provisioning"] == "ready"
    assert "fresh-index" in store.collections


def test_delete_index(client, store, frame_rag_service):
    client.post("/api/rag", json={"action": "ingest", "indexName": "clips", "frames": _frames()})

    response = client.delete("/api/rag", params={"indexName": "clips"})

    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "message": 'Index "clips" deleted successfully',
        "deletedIndex": "clips",
    }
    assert "clips" not in store.collections
    assert frame_rag_service.provisioning.state("clips").value == "absent"


def test_delete_requires_index(client):
    response = client.delete("/api/rag")

    assert response.status_code == 400
    assert response.json()["status"] == "error"
