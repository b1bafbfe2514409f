"""Tests for application assembly."""
from fastapi.testclient import TestClient

from aailar.config import ServerSettings, set_config
from aailar.main import create_app


def test_health(api_client):
    assert api_client.get("/health").json() == {"status": "ok"}


def test_cors_origins_follow_config_at_startup(configure):
    config = configure()
    set_config(config.model_copy(
        update={"server": ServerSettings(allowed_origins=["https://library.example"])}
    ))

    with TestClient(create_app()) as client:
        allowed = client.get("/health", headers={"Origin": "https://library.example"})
        other = client.get("/health", headers={"Origin": "https://elsewhere.example"})

    assert allowed.headers["access-control-allow-origin"] == "https://library.example"
    assert "access-control-allow-origin" not in other.headers
