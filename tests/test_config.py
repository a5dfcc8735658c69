import json

import pytest

from core.errors import ConfigError
from storage.config import (
    AppConfig,
    connectivity_settings,
    load_config,
    logging_settings,
    queue_settings,
    save_config,
    update_config,
)


def test_missing_or_corrupt_file_gives_defaults(tmp_path):
    assert load_config(tmp_path / "missing.json") == AppConfig()

    broken = tmp_path / "config.json"
    broken.write_text("{not json", encoding="utf-8")
    assert load_config(broken) == AppConfig()

    broken.write_text("[1, 2]", encoding="utf-8")
    assert load_config(broken) == AppConfig()


def test_save_and_update_roundtrip(tmp_path):
    path = tmp_path / "nested" / "config.json"
    save_config(AppConfig(retry_limit=5), path)
    assert json.loads(path.read_text(encoding="utf-8"))["retry_limit"] == 5
    assert not path.with_suffix(".tmp").exists()

    cfg = update_config(path, health_url="https://api.example.com/", unknown="ignored")
    assert cfg.retry_limit == 5
    assert load_config(path).health_url == "https://api.example.com/"


def test_update_refuses_invalid_retry_limit(tmp_path):
    path = tmp_path / "config.json"
    with pytest.raises(ConfigError):
        update_config(path, retry_limit=0)
    assert not path.exists()


def test_queue_settings_merge_overrides():
    assert queue_settings().retry_limit == 3
    merged = queue_settings(AppConfig(retry_limit=7, idle_reset_delay_sec=0.5))
    assert merged.retry_limit == 7
    assert merged.idle_reset_delay_sec == 0.5

    with pytest.raises(ConfigError):
        queue_settings(AppConfig(retry_limit="many"))
    with pytest.raises(ConfigError):
        queue_settings(AppConfig(idle_reset_delay_sec=-1))


def test_connectivity_and_logging_overrides():
    net = connectivity_settings(AppConfig(health_url="https://api.example.com/", poll_interval_sec=30))
    assert net.health_url == "https://api.example.com"
    assert net.poll_interval_sec == 30.0
    assert connectivity_settings().health_url is None

    with pytest.raises(ConfigError):
        connectivity_settings(AppConfig(poll_interval_sec=0))

    assert logging_settings(AppConfig(log_level="warning")).level == "WARNING"


@pytest.mark.parametrize(
    "changes",
    [
        {"poll_interval_sec": 0},
        {"poll_interval_sec": "often"},
        {"idle_reset_delay_sec": "soon"},
        {"log_level": "chatty"},
    ],
)
def test_update_leaves_file_untouched_on_invalid_values(tmp_path, changes):
    path = tmp_path / "config.json"
    save_config(AppConfig(retry_limit=4, poll_interval_sec=30), path)
    before = path.read_text(encoding="utf-8")

    with pytest.raises(ConfigError):
        update_config(path, **changes)

    assert path.read_text(encoding="utf-8") == before
    loaded = load_config(path)
    queue_settings(loaded)
    connectivity_settings(loaded)
    logging_settings(loaded)


def test_non_numeric_values_from_hand_edited_file_raise_config_error(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps({"idle_reset_delay_sec": "two", "poll_interval_sec": [15]}),
        encoding="utf-8",
    )
    cfg = load_config(path)

    with pytest.raises(ConfigError):
        queue_settings(cfg)
    with pytest.raises(ConfigError):
        connectivity_settings(cfg)
