from __future__ import annotations

from pathlib import Path

import pytest

from mm_backfill.settings import ClientSettings, load_settings

ENV_KEYS = [
    "CONFIG_PATH",
    "BACKFILL_HOST",
    "BACKFILL_PORT",
    "BACKFILL_RECV_TIMEOUT_S",
    "BACKFILL_CONNECT_TIMEOUT_S",
    "BACKFILL_CHUNK_SIZE",
    "BACKFILL_OUTPUT",
    "BACKFILL_OUTPUT_FORMAT",
    "BACKFILL_WRITE_SCHEMA",
    "LOG_LEVEL",
    "LOG_DIR",
    "LOG_TO_FILE",
]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults():
    s = load_settings()
    assert s == ClientSettings()
    assert s.host == "127.0.0.1"
    assert s.port == 3000
    assert s.recv_timeout_s == 5.0
    assert s.output_path == "output.json"


def test_invalid_env_does_not_crash(monkeypatch):
    monkeypatch.setenv("BACKFILL_PORT", "not-a-number")
    monkeypatch.setenv("BACKFILL_RECV_TIMEOUT_S", "nope")
    monkeypatch.setenv("BACKFILL_CHUNK_SIZE", "bad")

    s = load_settings()
    assert s.port == 3000
    assert s.recv_timeout_s == 5.0
    assert s.chunk_size == 1024


def test_env_values(monkeypatch):
    monkeypatch.setenv("BACKFILL_HOST", "10.1.2.3")
    monkeypatch.setenv("BACKFILL_PORT", "4000")
    monkeypatch.setenv("BACKFILL_RECV_TIMEOUT_S", "2.5")
    monkeypatch.setenv("BACKFILL_OUTPUT_FORMAT", "NDJSON")
    monkeypatch.setenv("BACKFILL_WRITE_SCHEMA", "yes")

    s = load_settings()
    assert (s.host, s.port, s.recv_timeout_s) == ("10.1.2.3", 4000, 2.5)
    assert s.output_format == "ndjson"
    assert s.write_schema is True


def test_yaml_then_env_then_overrides(tmp_path: Path, monkeypatch):
    cfg = tmp_path / "backfill.yaml"
    cfg.write_text("host: feed.local\nport: 3100\nrecv_timeout_s: 1.0\noutput_path: out/a.json\n")

    s = load_settings(config_path=cfg)
    assert (s.host, s.port, s.recv_timeout_s, s.output_path) == ("feed.local", 3100, 1.0, "out/a.json")

    monkeypatch.setenv("BACKFILL_PORT", "3200")
    s = load_settings(config_path=cfg)
    assert s.port == 3200
    assert s.host == "feed.local"

    s = load_settings(config_path=cfg, overrides={"port": 3300, "host": None})
    assert s.port == 3300
    assert s.host == "feed.local"


def test_config_path_from_env(tmp_path: Path, monkeypatch):
    cfg = tmp_path / "c.yaml"
    cfg.write_text("port: 3999\n")
    monkeypatch.setenv("CONFIG_PATH", str(cfg))
    assert load_settings().port == 3999


def test_empty_yaml_is_defaults(tmp_path: Path):
    cfg = tmp_path / "empty.yaml"
    cfg.write_text("")
    assert load_settings(config_path=cfg) == ClientSettings()


@pytest.mark.parametrize(
    "overrides",
    [
        {"port": 0},
        {"port": 70000},
        {"host": "  "},
        {"recv_timeout_s": 0},
        {"output_format": "csv"},
        {"no_such_key": 1},
    ],
)
def test_invalid_settings_rejected(overrides):
    with pytest.raises(ValueError):
        load_settings(overrides=overrides)


def test_yaml_must_be_mapping(tmp_path: Path):
    cfg = tmp_path / "list.yaml"
    cfg.write_text("- 1\n- 2\n")
    with pytest.raises(ValueError):
        load_settings(config_path=cfg)
