import io
import json
import os
import threading
from urllib.parse import parse_qs

import pytest
import responses

import app as app_module
import config

from conftest import API_BASE

POSTS_URL = f"{API_BASE}/sites/42/posts/new"
MEDIA_URL = f"{API_BASE}/sites/42/media/new"


@pytest.fixture
def client():
    flask_app = app_module.app
    flask_app.config["TESTING"] = True
    yield flask_app.test_client()
    flask_app.config.pop("TESTING", None)


def _png_bytes(png_file):
    return io.BytesIO(png_file.read_bytes())


# --- GET /share ---

def test_state_without_credential_must_abort(client, monkeypatch):
    monkeypatch.setattr(config, "WPCOM_ACCESS_TOKEN", "")
    data = client.get("/share").get_json()
    assert data["decision"] == "must_abort"
    assert data["notice"]["accept_label"] == "Cancel Share"


def test_state_with_primary_site(client):
    data = client.get("/share").get_json()
    assert data["decision"] == "proceed"
    assert data["account_name"] == "jane"
    assert data["content_valid"] is True
    assert data["configuration_items"][0] == {"title": "Post to:", "value": "My Blog"}
    assert data["statuses"] == {"draft": "Draft", "publish": "Publish"}


def test_state_without_primary_site_disables_post(client, monkeypatch):
    monkeypatch.setattr(config, "WPCOM_PRIMARY_SITE_ID", "")
    data = client.get("/share").get_json()
    assert data["content_valid"] is False
    assert data["configuration_items"][0]["value"] == "Select a site"


# --- POST /share ---

@responses.activate
def test_share_text_dispatches_post(client, join_transfers):
    responses.add(responses.POST, POSTS_URL, json={"ID": 1}, status=200)

    resp = client.post("/share", data={
        "text": "Hello world",
        "source_url": "https://example.com",
        "status": "draft",
    })
    join_transfers()

    assert resp.status_code == 200
    data = resp.get_json()
    assert data["complete"] is True
    assert data["session_id"].startswith("share-")
    assert len(responses.calls) == 1
    sent = parse_qs(responses.calls[0].request.body)
    assert sent["title"] == ["Hello world"]
    assert sent["status"] == ["draft"]
    assert sent["content"] == ['<a href="https://example.com">https://example.com</a>']


@responses.activate
def test_share_with_image_uploads_and_cleans_up(client, png_file, join_transfers):
    responses.add(responses.POST, POSTS_URL, json={"ID": 1}, status=200)
    responses.add(responses.POST, MEDIA_URL, json={"media": [{"ID": 2}]}, status=200)

    resp = client.post("/share", data={
        "text": "Photo",
        "site_id": "42",
        "site_name": "My Blog",
        "image": (_png_bytes(png_file), "photo.png"),
    }, content_type="multipart/form-data")
    join_transfers()

    assert resp.status_code == 200
    assert len(responses.calls) == 2
    assert os.listdir(config.UPLOAD_FOLDER) == []


def test_share_without_credential_returns_notice(client, monkeypatch):
    monkeypatch.setattr(config, "WPCOM_ACCESS_TOKEN", "")
    resp = client.post("/share", data={"text": "Hello"})
    assert resp.status_code == 401
    assert resp.get_json()["decision"] == "must_abort"


def test_share_without_destination_is_blocked(client, monkeypatch):
    monkeypatch.setattr(config, "WPCOM_PRIMARY_SITE_ID", "")
    resp = client.post("/share", data={"text": "Hello"})
    assert resp.status_code == 409
    data = resp.get_json()
    assert data["error"] == "programming_contract_violation"
    assert data["cause"] == "missing_destination"
    assert os.listdir(config.TRANSFER_DIR) == []


def test_share_unknown_status_rejected(client):
    resp = client.post("/share", data={"text": "Hello", "status": "private"})
    assert resp.status_code == 400


def test_share_rejects_unsupported_image_type(client):
    resp = client.post("/share", data={
        "text": "Notes",
        "image": (io.BytesIO(b"plain text"), "notes.txt"),
    }, content_type="multipart/form-data")

    assert resp.status_code == 400
    assert "notes.txt" in resp.get_json()["error"]
    assert os.listdir(config.TRANSFER_DIR) == []
    assert os.listdir(config.UPLOAD_FOLDER) == []


# --- GET /share/<id>/outcomes ---

@responses.activate
def test_outcomes_of_finished_session(client, join_transfers):
    responses.add(responses.POST, POSTS_URL, status=403,
                  json={"error": "unauthorized", "message": "Nope"})
    session_id = client.post("/share", data={"text": "Hello"}).get_json()["session_id"]
    join_transfers()

    data = client.get(f"/share/{session_id}/outcomes").get_json()

    assert data["session_id"] == session_id
    assert data["outcomes"] == [{
        "asset_kind": "text",
        "success": False,
        "remote_id": None,
        "error_kind": "authorization_failure",
        "error": "HTTP 403: Nope",
    }]
    assert [t["state"] for t in data["transfers"]] == ["delivered"]
    assert data["transfers"][0]["result"]["success"] is False


def test_outcomes_unknown_session(client):
    assert client.get("/share/share-missing/outcomes").status_code == 404


def test_outcomes_rejects_path_tricks(client):
    assert client.get("/share/..%2Fsecrets/outcomes").status_code == 404


@responses.activate
def test_outcomes_polled_mid_flight_do_not_resend(client, join_transfers):
    release = threading.Event()

    def slow_post(request):
        release.wait(5)
        return (200, {}, json.dumps({"ID": 77}))

    responses.add_callback(responses.POST, POSTS_URL, callback=slow_post)
    session_id = client.post("/share", data={"text": "Hello"}).get_json()["session_id"]

    data = client.get(f"/share/{session_id}/outcomes").get_json()
    release.set()
    join_transfers()

    assert [t["state"] for t in data["transfers"]] == ["pending"]
    assert data["outcomes"] == []
    assert len(responses.calls) == 1

    data = client.get(f"/share/{session_id}/outcomes").get_json()
    assert data["outcomes"][0]["remote_id"] == "77"
    assert len(responses.calls) == 1
