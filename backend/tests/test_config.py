"""Tests for YAML config loading."""
import pytest
from pydantic import ValidationError

from aailar.config import AppConfig, ChatSettings, RoomPasswordStore, load_config


def test_defaults_when_files_missing(tmp_path):
    cfg = load_config(
        settings_path=tmp_path / "missing.settings.yaml",
        secrets_path=tmp_path / "missing.secrets.yaml",
    )

    assert cfg.chat.max_total_connections == 100
    assert cfg.chat.max_connections_per_origin == 5
    assert cfg.chat.history_limit == 500
    assert cfg.chat.replay_limit == 100
    assert cfg.chat.max_message_length == 1000
    assert cfg.secrets.bulk_delete_password is None
    assert cfg.files.max_file_size_bytes == 15 * 1024 * 1024


def test_settings_and_secrets_merge(tmp_path):
    settings_file = tmp_path / "aailar.settings.yaml"
    settings_file.write_text(
        "chat:\n"
        "  max_connections_per_origin: 2\n"
        "files:\n"
        "  categories: [academic]\n"
        "logging:\n"
        "  level: debug\n",
        encoding="utf-8",
    )
    secrets_file = tmp_path / "aailar.secrets.yaml"
    secrets_file.write_text(
        "chat_password: opensesame\n"
        "bulk_delete_password: wipe\n",
        encoding="utf-8",
    )

    cfg = load_config(settings_path=settings_file, secrets_path=secrets_file)

    assert cfg.chat.max_connections_per_origin == 2
    assert cfg.chat.max_total_connections == 100
    assert cfg.files.categories == ["academic"]
    assert cfg.logging.level == "debug"
    assert cfg.secrets.chat_password == "opensesame"
    assert cfg.secrets.bulk_delete_password == "wipe"


def test_env_var_locates_settings(tmp_path, monkeypatch):
    settings_file = tmp_path / "custom.yaml"
    settings_file.write_text("server:\n  port: 9000\n", encoding="utf-8")
    monkeypatch.setenv("AAILAR_SETTINGS", str(settings_file))
    monkeypatch.setenv("AAILAR_SECRETS", str(tmp_path / "none.yaml"))

    assert load_config().server.port == 9000


def test_limits_must_be_positive():
    with pytest.raises(ValidationError):
        ChatSettings(history_limit=0)


def test_room_password_store():
    store = RoomPasswordStore(AppConfig().secrets.chat_password)
    assert store.get() == "Ak47"

    store.set("new")
    assert store.get() == "new"
