import pytest
from fastapi.testclient import TestClient

from conftest import CAT_REPLY, PNG_BYTES
from worker.app.config import settings
from worker.app.main import app
from worker.app.services.hasher import fingerprint


@pytest.fixture
def wired(make_pipeline, monkeypatch):
    """TestClient whose routes use a pipeline with a scripted model + temp cache."""
    import worker.app.routers.analyze as analyze_mod
    import worker.app.routers.status as status_mod

    pipeline, model = make_pipeline(CAT_REPLY)
    monkeypatch.setattr(analyze_mod, "get_pipeline", lambda: pipeline)
    monkeypatch.setattr(status_mod, "get_pipeline", lambda: pipeline)
    return TestClient(app), pipeline, model


def _upload(client, data=PNG_BYTES, mime="image/png", **params):
    return client.post(
        "/analyze", files={"file": ("cat.png", data, mime)}, params=params
    )


def test_health_and_root(wired):
    client, _, _ = wired
    assert client.get("/health").json() == {"ok": True}
    assert "img2insight" in client.get("/").json()["message"]


def test_analyze_then_cache_hit(wired):
    client, _, model = wired
    first = _upload(client)
    assert first.status_code == 200
    body = first.json()
    assert body["ok"] is True
    assert body["cached"] is False
    assert body["language"] == "en"
    assert body["fingerprint"] == fingerprint(PNG_BYTES)
    assert body["result"] == {
        "description": "a cat",
        "text": "",
        "tables": [],
        "graphs": [],
        "objects": [],
        "analysis": [],
    }

    second = _upload(client)
    assert second.json()["cached"] is True
    assert second.json()["result"] == body["result"]
    assert len(model.calls) == 1


def test_validation_error_is_400_and_localized(wired):
    client, _, model = wired
    resp = _upload(client, mime="image/gif", lang="ja")
    assert resp.status_code == 400
    body = resp.json()
    assert body == {
        "ok": False,
        "error": "validation_error",
        "message": "無効なファイル形式です。対応形式: image/jpeg, image/png, image/webp",
    }
    assert model.calls == []


def test_invalid_lang_param(wired):
    client, _, _ = wired
    resp = _upload(client, lang="fr")
    assert resp.status_code == 422
    assert resp.json()["error"] == "invalid_language"


def test_exhausted_retries_is_502(make_pipeline, monkeypatch):
    import worker.app.routers.analyze as analyze_mod

    pipeline, model = make_pipeline("nothing useful")
    monkeypatch.setattr(analyze_mod, "get_pipeline", lambda: pipeline)
    resp = _upload(TestClient(app))
    assert resp.status_code == 502
    assert resp.json() == {
        "ok": False,
        "error": "analysis_failed",
        "message": "Image analysis failed. Please try again.",
    }
    assert len(model.calls) == 3


def test_language_switch_clears_cache(wired):
    client, pipeline, _ = wired
    _upload(client)
    assert pipeline.cache.stats()["entries"] == 1

    resp = client.post("/language", json={"language": "JA"})
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "language": "ja", "changed": True}
    assert client.get("/language").json()["language"] == "ja"
    assert pipeline.cache.stats()["entries"] == 0

    again = client.post("/language", json={"language": "ja"})
    assert again.json()["changed"] is False


def test_language_rejects_unknown(wired):
    client, _, _ = wired
    assert client.post("/language", json={"language": "de"}).status_code == 422


def test_clear_cache_route(wired):
    client, pipeline, _ = wired
    _upload(client)
    resp = client.delete("/cache")
    assert resp.json() == {"ok": True, "removed": 1}
    assert pipeline.cache.stats()["entries"] == 0


def test_status_reports_counters(wired):
    client, _, _ = wired
    _upload(client)
    data = client.get("/status").json()
    assert data["ok"] is True
    assert data["language"] == "en"
    assert data["result_schema"] == "visual-v1"
    assert data["cache"]["entries"] == 1
    assert data["limits"]["max_attempts"] == 3
    for key in ("analyze_total", "cache_hits", "cache_misses", "model_attempts"):
        assert key in data


def test_auth_required_when_token_set(wired, monkeypatch):
    client, _, _ = wired
    monkeypatch.setattr(settings, "WORKER_AUTH_TOKEN", "s3cret")

    assert client.delete("/cache").status_code == 401
    assert client.delete("/cache", headers={"Authorization": "Bearer nope"}).status_code == 401
    ok = client.delete("/cache", headers={"Authorization": "Bearer s3cret"})
    assert ok.status_code == 200
    # read-only routes stay open
    assert client.get("/status").status_code == 200


def test_oversized_upload_rejected_without_reading_body(make_pipeline, monkeypatch):
    import worker.app.routers.analyze as analyze_mod

    pipeline, model = make_pipeline(CAT_REPLY, max_file_bytes=64)
    monkeypatch.setattr(analyze_mod, "get_pipeline", lambda: pipeline)
    reads = []

    async def recording_read(source, *args, **kwargs):
        reads.append(source)
        return b""

    monkeypatch.setattr(analyze_mod, "read_image_bytes", recording_read)

    resp = _upload(TestClient(app), data=b"\0" * 1024)
    assert resp.status_code == 400
    assert resp.json()["error"] == "validation_error"
    assert resp.json()["message"].startswith("File size too large.")
    assert reads == []
    assert model.calls == []
