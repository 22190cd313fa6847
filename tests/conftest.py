import threading

import pytest

import config
from platforms.base import Credential, Destination
from platforms.transport import SessionConfiguration

API_BASE = "https://api.test/rest/v1.1"


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point every configurable path and credential at test values."""
    transfer_dir = tmp_path / "transfers"
    upload_dir = tmp_path / "uploads"
    transfer_dir.mkdir()
    upload_dir.mkdir()

    monkeypatch.setattr(config, "WPCOM_API_BASE", API_BASE)
    monkeypatch.setattr(config, "WPCOM_ACCESS_TOKEN", "test-token")
    monkeypatch.setattr(config, "WPCOM_USERNAME", "jane")
    monkeypatch.setattr(config, "WPCOM_PRIMARY_SITE_ID", "42")
    monkeypatch.setattr(config, "WPCOM_PRIMARY_SITE_NAME", "My Blog")
    monkeypatch.setattr(config, "TRANSFER_DIR", str(transfer_dir))
    monkeypatch.setattr(config, "UPLOAD_FOLDER", str(upload_dir))
    monkeypatch.setattr(config, "REQUEST_TIMEOUT", 5.0)
    return tmp_path


@pytest.fixture
def credential():
    return Credential(access_token="test-token", account_name="jane")


@pytest.fixture
def destination():
    return Destination(id=42, display_name="My Blog")


@pytest.fixture
def session_configuration(credential, tmp_path):
    return SessionConfiguration(
        identifier="share-test",
        access_token=credential.access_token,
        base_url=API_BASE,
        timeout=5.0,
        journal_dir=str(tmp_path / "transfers"),
    )


@pytest.fixture
def png_file(tmp_path):
    from PIL import Image

    path = tmp_path / "shared.png"
    Image.new("RGB", (4, 4), color="red").save(path, "PNG")
    return path


@pytest.fixture
def join_transfers():
    """Return a helper that waits for worker threads started by the code under test."""
    def join(timeout=5):
        for thread in threading.enumerate():
            if thread is not threading.current_thread() and thread.name.startswith("share-"):
                thread.join(timeout)
    return join
