from __future__ import annotations

import json
from pathlib import Path

import pytest

from tracker.config import (DEFAULT_PROBE_GAS_LIMIT, DEFAULT_RPC_PORT,
                            DEFAULT_TOKEN_STANDARD, load_config)
from tracker.errors import ConfigError


def test_defaults():
    cfg = load_config(env={})
    assert cfg.token.standard == DEFAULT_TOKEN_STANDARD == "NEP-5"
    assert cfg.token.probe_gas_limit == DEFAULT_PROBE_GAS_LIMIT == 100_000_000
    assert cfg.rpc.port == DEFAULT_RPC_PORT
    assert cfg.db_uri.startswith("sqlite:///")
    assert cfg.db_uri.endswith("contract_tracker.db")


def test_precedence_file_env_overrides(tmp_path: Path):
    f = tmp_path / "tracker.toml"
    f.write_text(
        '[token]\nstandard = "NEP-17"\nprobe_gas_limit = 5\n[rpc]\nport = 1111\nhost = "0.0.0.0"\n',
        encoding="utf-8",
    )
    env = {"TRACKER_RPC_PORT": "2222", "TRACKER_PROBE_GAS_LIMIT": "6"}
    cfg = load_config(f, {"rpc": {"port": 3333}}, env=env)
    assert cfg.token.standard == "NEP-17"  # file
    assert cfg.rpc.host == "0.0.0.0"  # file
    assert cfg.token.probe_gas_limit == 6  # env beats file
    assert cfg.rpc.port == 3333  # overrides beat env


def test_json_file_via_env(tmp_path: Path):
    f = tmp_path / "tracker.json"
    f.write_text(json.dumps({"db": {"uri": "memory://"}}), encoding="utf-8")
    cfg = load_config(env={"TRACKER_CONFIG": str(f)})
    assert cfg.db_uri == "memory://"


def test_env_lists_and_logging(tmp_path: Path):
    cfg = load_config(
        env={
            "TRACKER_RPC_CORS_ORIGINS": "http://a, http://b",
            "TRACKER_LOG_LEVEL": "debug",
            "TRACKER_LOG_FORMAT": "JSON",
            "TRACKER_DATA_DIR": str(tmp_path / "d"),
        }
    )
    assert cfg.rpc.cors_allow_origins == ["http://a", "http://b"]
    assert cfg.log.level == "DEBUG"
    assert cfg.log.format == "json"
    assert cfg.paths.data_dir == (tmp_path / "d").resolve()
    assert cfg.to_dict()["paths"]["data_dir"] == str((tmp_path / "d").resolve())


@pytest.mark.parametrize(
    "env",
    [
        {"TRACKER_RPC_PORT": "http"},
        {"TRACKER_RPC_PORT": "70000"},
        {"TRACKER_PROBE_GAS_LIMIT": "0"},
        {"TRACKER_LOG_FORMAT": "xml"},
        {"TRACKER_LOG_LEVEL": "chatty"},
        {"TRACKER_CONFIG": "/nonexistent/tracker.toml"},
    ],
)
def test_invalid_values_raise_config_error(env):
    with pytest.raises(ConfigError):
        load_config(env=env)


def test_bad_file_contents(tmp_path: Path):
    f = tmp_path / "broken.toml"
    f.write_text("[token\n", encoding="utf-8")
    with pytest.raises(ConfigError) as ei:
        load_config(f, env={})
    assert ei.value.data["path"] == str(f.resolve())

    y = tmp_path / "tracker.yaml"
    y.write_text("db: {}", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(y, env={})
