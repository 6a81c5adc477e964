"""
HTTP API tests against a service wired to fake tools and a throwaway database.
"""

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from conftest import FakeRunner, make_file
from smolr import config as app_config
from smolr import db
from smolr.conversion.service import get_conversion_service
from smolr.main import app


@pytest.fixture
def database(tmp_path, monkeypatch):
    monkeypatch.setattr(app_config, "DATABASE_URL", f"sqlite:///{tmp_path / 'history.db'}")
    db.reset_engine()
    db.init_db()
    yield
    db.reset_engine()


@pytest.fixture
def service(make_service, database):
    svc = make_service(runner=FakeRunner(sizes={"a_smolr.webp": 40}), output_format="webp")
    svc.add_run_listener(db.record_run)
    app.dependency_overrides[get_conversion_service] = lambda: svc
    yield svc
    app.dependency_overrides.clear()
    svc.shutdown()


@pytest.fixture
def client(service):
    # No context manager: the lifespan would wire up the global service
    return TestClient(app)


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}


def test_formats_and_profiles(client):
    formats = client.get("/api/formats").json()
    assert [f["id"] for f in formats["all"]] == [
        "original", "webp", "avif", "jxl", "png", "jpeg", "gif",
    ]
    assert {"id": "jxl", "name": "JXL"} in formats["all"]
    profiles = client.get("/api/profiles").json()
    assert [p["id"] for p in profiles] == ["fast", "balanced", "quality", "size"]


def test_update_settings(client):
    res = client.put("/api/settings", json={"quality": 70, "profile": "size"})
    assert res.status_code == 200
    assert res.json() == {
        "output_format": "webp", "quality": 70, "profile": "size", "file_suffix": "_smolr",
    }


def test_invalid_settings_rejected(client):
    assert client.put("/api/settings", json={"quality": 20}).status_code == 422
    assert client.put("/api/settings", json={"output_format": "bmp"}).status_code == 400
    assert client.put("/api/settings", json={"file_suffix": "../x"}).status_code == 400
    assert client.get("/api/settings").json()["quality"] == 85


def test_add_list_and_remove_files(client, images_dir):
    make_file(images_dir / "a.png")
    make_file(images_dir / "sub" / "b.webp")
    make_file(images_dir / "notes.txt")

    res = client.post("/api/files", json={"paths": [str(images_dir)]})
    assert res.status_code == 200
    added = res.json()["added"]
    assert [f["name"] for f in added] == ["a.png", "b.webp"]
    assert added[0]["output_path"].endswith("a_smolr.webp")

    assert client.delete(f"/api/files/{added[0]['id']}").status_code == 200
    assert [f["name"] for f in client.get("/api/files").json()] == ["b.webp"]
    assert client.delete("/api/files/unknown").status_code == 404

    client.delete("/api/files")
    assert client.get("/api/files").json() == []


def test_add_files_requires_paths(client):
    assert client.post("/api/files", json={"paths": []}).status_code == 400


def test_collision_warning_reported(client, images_dir):
    make_file(images_dir / "a.png")
    make_file(images_dir / "a_smolr.webp")
    res = client.post("/api/files", json={"paths": [str(images_dir / "a.png")]}).json()
    assert res["warnings"] == ["Some files will be overwritten"]
    assert res["added"][0]["status"] == "warning"
    assert res["added"][0]["status_text"] == "Existing output file will be overwritten"


def test_file_info_reads_dimensions(client, images_dir):
    src = images_dir / "pic.png"
    Image.new("RGB", (12, 7)).save(src, format="PNG")
    [item] = client.post("/api/files", json={"paths": [str(src)]}).json()["added"]
    info = client.get(f"/api/files/{item['id']}/info").json()
    assert (info["width"], info["height"]) == (12, 7)
    assert info["size_bytes"] == src.stat().st_size
    assert client.get("/api/files/nope/info").status_code == 404


def test_convert_records_history(client, service, images_dir):
    make_file(images_dir / "a.webp", 100)
    client.post("/api/files", json={"paths": [str(images_dir)]})

    assert client.post("/api/convert").json() == {"running": True}
    summary = service.wait(timeout=10)

    run = client.get("/api/run").json()
    assert run["running"] is False
    assert run["progress_text"] == "1/1 files got smolr'd"
    assert run["total_bytes_saved"] == 60
    assert client.get("/api/files").json()[0]["status"] == "done"

    history = client.get("/api/runs").json()
    assert history["totals"]["runs"] == 1
    assert history["totals"]["bytes_saved"] == 60
    assert history["runs"][0]["run_id"] == summary.run_id

    detail = client.get(f"/api/runs/{summary.run_id}").json()
    assert detail["items"][0]["filename"] == "a.webp"
    assert detail["items"][0]["status"] == "done"
    assert client.get("/api/runs/missing").status_code == 404


def test_failed_conversion_errors_and_dismissal(client, service, images_dir):
    service.pipeline.runner.fail.update({"cwebp", "magick"})
    make_file(images_dir / "x.png")
    make_file(images_dir / "y.png")
    client.post("/api/files", json={"paths": [str(images_dir)]})
    client.post("/api/convert")
    service.wait(timeout=10)

    messages = client.get("/api/messages").json()
    assert messages["errors"] == ["Failed to convert x.png", "Failed to convert y.png"]

    res = client.delete("/api/messages/errors/0")
    assert res.json() == {"errors": ["Failed to convert y.png"]}
    assert client.delete("/api/messages/errors/3").status_code == 404
    assert client.delete("/api/messages/warnings/0").status_code == 404
