import json

import pytest
from typer.testing import CliRunner

from conftest import CAT_REPLY, PNG_BYTES
from img2insight import cli

runner = CliRunner()


@pytest.fixture
def wired(make_pipeline, monkeypatch):
    import worker.app.services.pipeline as pipeline_mod

    pipeline, model = make_pipeline(CAT_REPLY)
    monkeypatch.setattr(pipeline_mod, "get_pipeline", lambda: pipeline)
    return pipeline, model


def test_analyze_prints_outcome_json(wired, tmp_path):
    img = tmp_path / "cat.png"
    img.write_bytes(PNG_BYTES)

    result = runner.invoke(cli.app, ["analyze", str(img)])
    assert result.exit_code == 0, result.output
    out = json.loads(result.stdout)
    assert out["result"]["description"] == "a cat"
    assert out["cached"] is False
    assert out["language"] == "en"


def test_analyze_unsupported_type_exits_1(wired, tmp_path):
    doc = tmp_path / "notes.txt"
    doc.write_text("hello", encoding="utf-8")

    result = runner.invoke(cli.app, ["analyze", str(doc), "--lang", "ja"])
    assert result.exit_code == 1
    _, model = wired
    assert model.calls == []


def test_clear_cache(wired, tmp_path):
    img = tmp_path / "cat.png"
    img.write_bytes(PNG_BYTES)
    runner.invoke(cli.app, ["analyze", str(img)])

    result = runner.invoke(cli.app, ["clear-cache"])
    assert result.exit_code == 0
    assert "removed 1" in result.stdout


def test_analyze_oversized_file_rejected_before_reading(make_pipeline, monkeypatch, tmp_path):
    import worker.app.services.hasher as hasher_mod
    import worker.app.services.pipeline as pipeline_mod

    pipeline, model = make_pipeline(CAT_REPLY, max_file_bytes=64)
    monkeypatch.setattr(pipeline_mod, "get_pipeline", lambda: pipeline)
    reads = []
    monkeypatch.setattr(hasher_mod, "read_image_bytes", lambda *a, **kw: reads.append(a))

    img = tmp_path / "big.png"
    img.write_bytes(b"\0" * 1024)

    result = runner.invoke(cli.app, ["analyze", str(img)])
    assert result.exit_code == 1
    assert reads == []
    assert model.calls == []
