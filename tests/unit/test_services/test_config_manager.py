import pytest
import yaml
from pathlib import Path

from bosswatch.services.config_manager import ConfigManager, ConfigValidationError


@pytest.fixture
def valid_config_file(tmp_path):
    config_content = {
        "discord": {
            "webhook_url": "${TEST_DISCORD_WEBHOOK}",
            "username": "Boss Timer",
        },
        "watcher": {"thresholds_minutes": [5, 30, 5, 1], "tick_interval_seconds": 30},
        "digest": {"slots": ["06:00", "18:00"]},
        "storage": {"state_path": str(tmp_path / "state.json")},
    }
    config_file = tmp_path / "bosswatch.yaml"
    with open(config_file, "w") as f:
        yaml.dump(config_content, f)
    return config_file


def test_load_valid_config(valid_config_file, monkeypatch):
    monkeypatch.setenv(
        "TEST_DISCORD_WEBHOOK", "https://discord.com/api/webhooks/1/token"
    )
    manager = ConfigManager(config_path=str(valid_config_file))
    manager.env_loaded = True

    config = manager.load_config()

    assert str(config.discord.webhook_url) == "https://discord.com/api/webhooks/1/token"
    assert config.watcher.thresholds_minutes == [30, 5, 1]
    assert config.digest.slots == ["06:00", "18:00"]
    assert config.digest.timezone == "Asia/Manila"


def test_unset_webhook_placeholder_disables_url(valid_config_file, monkeypatch):
    monkeypatch.delenv("TEST_DISCORD_WEBHOOK", raising=False)
    content = valid_config_file.read_text().replace(
        "${TEST_DISCORD_WEBHOOK}", "${DISCORD_WEBHOOK_URL}"
    )
    valid_config_file.write_text(content)
    monkeypatch.delenv("DISCORD_WEBHOOK_URL", raising=False)
    manager = ConfigManager(config_path=str(valid_config_file))
    manager.env_loaded = True

    config = manager.load_config()

    assert config.discord.webhook_url is None


def test_config_is_cached(valid_config_file, monkeypatch):
    monkeypatch.setenv(
        "TEST_DISCORD_WEBHOOK", "https://discord.com/api/webhooks/1/token"
    )
    manager = ConfigManager(config_path=str(valid_config_file))
    manager.env_loaded = True

    assert manager.load_config() is manager.load_config()


def test_get_state_path(valid_config_file, tmp_path, monkeypatch):
    monkeypatch.setenv(
        "TEST_DISCORD_WEBHOOK", "https://discord.com/api/webhooks/1/token"
    )
    manager = ConfigManager(config_path=str(valid_config_file))
    manager.env_loaded = True

    assert manager.get_state_path() == Path(tmp_path / "state.json")


def test_load_missing_config():
    manager = ConfigManager(config_path="nonexistent.yaml")
    manager.env_loaded = True
    with pytest.raises(FileNotFoundError):
        manager.load_config()


def test_load_invalid_yaml(tmp_path):
    config_file = tmp_path / "broken.yaml"
    config_file.write_text("watcher: [unclosed")
    manager = ConfigManager(config_path=str(config_file))
    manager.env_loaded = True

    with pytest.raises(ConfigValidationError, match="Failed to parse YAML"):
        manager.load_config()


def test_load_non_mapping_root(tmp_path):
    config_file = tmp_path / "list.yaml"
    config_file.write_text("- a\n- b\n")
    manager = ConfigManager(config_path=str(config_file))
    manager.env_loaded = True

    with pytest.raises(ConfigValidationError, match="mapping"):
        manager.load_config()


def test_load_invalid_values(tmp_path):
    config_file = tmp_path / "bad.yaml"
    config_file.write_text("digest:\n  slots: ['25:00']\n")
    manager = ConfigManager(config_path=str(config_file))
    manager.env_loaded = True

    with pytest.raises(ConfigValidationError, match="Invalid configuration"):
        manager.load_config()


def test_empty_file_uses_defaults(tmp_path):
    config_file = tmp_path / "empty.yaml"
    config_file.write_text("")
    manager = ConfigManager(config_path=str(config_file))
    manager.env_loaded = True

    config = manager.load_config()

    assert config.watcher.tick_interval_seconds == 30
    assert config.storage.state_path == "data/guild_state.json"
