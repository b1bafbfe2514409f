"""Shared test fixtures and configuration for backend tests."""
import pytest
from fastapi.testclient import TestClient

from aailar.chat.manager import reset_manager
from aailar.config import (
    AppConfig,
    ChatSettings,
    FileSettings,
    LinkSettings,
    Secrets,
    reset_config,
    set_config,
)
from aailar.files.service import FileStorageService
from aailar.links.service import LinkLibraryService
from aailar.main import app

CHAT_PASSWORD = "letmein"
UPLOAD_PASSWORD = "upload-pw"
DELETE_PASSWORD = "delete-pw"
LINK_PASSWORD = "link-pw"
ADMIN_PASSWORD = "admin-pw"


def make_config(tmp_path, **chat_overrides) -> AppConfig:
    return AppConfig(
        chat=ChatSettings(**chat_overrides),
        files=FileSettings(
            upload_dir=str(tmp_path / "uploads"),
            db_path=str(tmp_path / "files.duckdb"),
            max_file_size_bytes=1024,
        ),
        links=LinkSettings(db_path=str(tmp_path / "links.duckdb")),
        secrets=Secrets(
            chat_password=CHAT_PASSWORD,
            file_upload_password=UPLOAD_PASSWORD,
            file_delete_password=DELETE_PASSWORD,
            link_upload_password=LINK_PASSWORD,
            link_delete_password=LINK_PASSWORD,
            admin_password=ADMIN_PASSWORD,
        ),
    )


@pytest.fixture
def configure(tmp_path):
    """Install a fresh config, chat manager and file store for one test.

    Returns a callable so tests can override chat limits before the app
    starts, e.g. ``configure(max_connections_per_origin=2)``.
    """
    def _configure(**chat_overrides) -> AppConfig:
        config = make_config(tmp_path, **chat_overrides)
        set_config(config)
        FileStorageService.reset_instance()
        LinkLibraryService.reset_instance()
        reset_manager(config)
        return config

    _configure()
    yield _configure
    FileStorageService.reset_instance()
    LinkLibraryService.reset_instance()
    reset_config()


@pytest.fixture
def api_client(configure):
    """Provide a TestClient for the main FastAPI app with lifespan running."""
    with TestClient(app) as client:
        yield client


def join(ws, display_name, password=CHAT_PASSWORD):
    """Join the room and consume the joiner's own history + presence frames.

    Returns (history_replay, presence).
    """
    ws.send_json({"type": "join", "displayName": display_name, "password": password})
    replay = ws.receive_json()
    assert replay["type"] == "history-replay", replay
    presence = ws.receive_json()
    assert presence["type"] == "presence", presence
    return replay, presence
