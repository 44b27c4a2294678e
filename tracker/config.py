"""
Contract Tracker configuration loader.

Layered config with clear precedence:
    1) Explicit overrides passed to `load_config()` (highest)
    2) Environment variables (TRACKER_*)
    3) Config file (TOML or JSON)
    4) Built-in defaults (lowest)

Environment variables
---------------------
  TRACKER_DATA_DIR=/var/lib/contract-tracker
  TRACKER_DB_URI=sqlite:////var/lib/contract-tracker/contract_tracker.db
  TRACKER_TOKEN_STANDARD=NEP-5
  TRACKER_PROBE_GAS_LIMIT=100000000
  TRACKER_RPC_HOST=127.0.0.1
  TRACKER_RPC_PORT=10332
  TRACKER_RPC_CORS_ORIGINS=http://localhost:5173,https://explorer.example
  TRACKER_LOG_LEVEL=INFO
  TRACKER_LOG_FORMAT=json|text
  TRACKER_LOG_FILE=/var/log/contract-tracker.log

File layout (TOML)
------------------
    [db]
    uri = "sqlite:///contract_tracker.db"

    [token]
    standard = "NEP-5"
    probe_gas_limit = 100000000

    [rpc]
    port = 10332

Everything is standard-library so the module imports early.
"""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import tomllib

from tracker.errors import ConfigError

DEFAULT_DB_FILENAME = "contract_tracker.db"
DEFAULT_TOKEN_STANDARD = "NEP-5"
# One GAS in its smallest unit; ceiling for every read-only token probe.
DEFAULT_PROBE_GAS_LIMIT = 100_000_000
DEFAULT_RPC_HOST = "127.0.0.1"
DEFAULT_RPC_PORT = 10332


def _expand(p: str | Path) -> Path:
    return Path(p).expanduser().resolve()


def _default_data_dir() -> Path:
    xdg = os.environ.get("XDG_DATA_HOME")
    base = _expand(xdg) if xdg else _expand("~/.local/share")
    return base / "contract-tracker"


def _split_list(v: str) -> List[str]:
    s = v.strip()
    if s.startswith("["):
        try:
            parsed = json.loads(s)
            if isinstance(parsed, list):
                return [str(x) for x in parsed]
        except ValueError:
            pass
    return [item.strip() for item in s.split(",") if item.strip()]


def _as_int(name: str, v: Any) -> int:
    if isinstance(v, bool):
        raise ConfigError(f"{name} must be int", value=v)
    if isinstance(v, int):
        return v
    try:
        return int(str(v).strip(), 0)
    except ValueError as e:
        raise ConfigError(f"{name} must be int", value=v).add_context(cause=str(e)) from e


# ------------------------------
# Typed configuration model
# ------------------------------


@dataclass
class PathsConfig:
    data_dir: Path = field(default_factory=_default_data_dir)


@dataclass
class DBConfig:
    uri: str = ""

    def resolved(self, paths: PathsConfig) -> str:
        if self.uri:
            return self.uri
        return f"sqlite:///{paths.data_dir / DEFAULT_DB_FILENAME}"


@dataclass
class TokenConfig:
    standard: str = DEFAULT_TOKEN_STANDARD
    probe_gas_limit: int = DEFAULT_PROBE_GAS_LIMIT

    def validate(self) -> None:
        if not self.standard.strip():
            raise ConfigError("token.standard must be non-empty")
        if self.probe_gas_limit <= 0:
            raise ConfigError(
                "token.probe_gas_limit must be positive", value=self.probe_gas_limit
            )


@dataclass
class RPCConfig:
    host: str = DEFAULT_RPC_HOST
    port: int = DEFAULT_RPC_PORT
    cors_allow_origins: List[str] = field(default_factory=list)

    def validate(self) -> None:
        if not (0 <= self.port <= 65535):
            raise ConfigError("rpc.port out of range", value=self.port)


@dataclass
class LogConfig:
    level: str = "INFO"
    format: Optional[str] = None  # "json" | "text" | None (auto)
    file: Optional[Path] = None

    def validate(self) -> None:
        self.level = self.level.upper()
        if self.level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ConfigError("log.level is not a logging level", value=self.level)
        if self.format is not None and self.format not in ("json", "text"):
            raise ConfigError("log.format must be 'json' or 'text'", value=self.format)


@dataclass
class Config:
    paths: PathsConfig = field(default_factory=PathsConfig)
    db: DBConfig = field(default_factory=DBConfig)
    token: TokenConfig = field(default_factory=TokenConfig)
    rpc: RPCConfig = field(default_factory=RPCConfig)
    log: LogConfig = field(default_factory=LogConfig)

    @property
    def db_uri(self) -> str:
        return self.db.resolved(self.paths)

    def validate(self) -> None:
        self.token.validate()
        self.rpc.validate()
        self.log.validate()

    def ensure_dirs(self) -> None:
        self.paths.data_dir.mkdir(parents=True, exist_ok=True)

    def to_dict(self) -> Dict[str, Any]:
        def _normalize(obj: Any) -> Any:
            if isinstance(obj, Path):
                return str(obj)
            if isinstance(obj, list):
                return [_normalize(i) for i in obj]
            if isinstance(obj, dict):
                return {k: _normalize(v) for k, v in obj.items()}
            return obj

        d = _normalize(asdict(self))
        d["db"]["uri"] = self.db_uri
        return d


# ------------------------------
# Sources
# ------------------------------


def _load_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigError("config file not found", path=str(path))
    suffix = path.suffix.lower()
    with path.open("rb") as f:
        if suffix in (".toml", ".tml"):
            try:
                return tomllib.load(f)
            except tomllib.TOMLDecodeError as e:
                raise ConfigError("invalid TOML config", path=str(path)).add_context(
                    cause=str(e)
                ) from e
        if suffix == ".json":
            try:
                return json.load(f)
            except ValueError as e:
                raise ConfigError("invalid JSON config", path=str(path)).add_context(
                    cause=str(e)
                ) from e
    raise ConfigError("unsupported config file type", path=str(path))


def _from_env(env: Mapping[str, str]) -> Dict[str, Dict[str, Any]]:
    out: Dict[str, Dict[str, Any]] = {}

    def put(section: str, key: str, value: Any) -> None:
        out.setdefault(section, {})[key] = value

    if env.get("TRACKER_DATA_DIR"):
        put("paths", "data_dir", env["TRACKER_DATA_DIR"])
    if env.get("TRACKER_DB_URI"):
        put("db", "uri", env["TRACKER_DB_URI"])
    if env.get("TRACKER_TOKEN_STANDARD"):
        put("token", "standard", env["TRACKER_TOKEN_STANDARD"])
    if env.get("TRACKER_PROBE_GAS_LIMIT"):
        put("token", "probe_gas_limit", env["TRACKER_PROBE_GAS_LIMIT"])
    if env.get("TRACKER_RPC_HOST"):
        put("rpc", "host", env["TRACKER_RPC_HOST"])
    if env.get("TRACKER_RPC_PORT"):
        put("rpc", "port", env["TRACKER_RPC_PORT"])
    if env.get("TRACKER_RPC_CORS_ORIGINS"):
        put("rpc", "cors_allow_origins", _split_list(env["TRACKER_RPC_CORS_ORIGINS"]))
    if env.get("TRACKER_LOG_LEVEL"):
        put("log", "level", env["TRACKER_LOG_LEVEL"])
    if env.get("TRACKER_LOG_FORMAT"):
        put("log", "format", env["TRACKER_LOG_FORMAT"].strip().lower())
    if env.get("TRACKER_LOG_FILE"):
        put("log", "file", env["TRACKER_LOG_FILE"])
    return out


def _merge(base: Dict[str, Dict[str, Any]], upd: Mapping[str, Any]) -> None:
    for section, values in upd.items():
        if not isinstance(values, Mapping):
            raise ConfigError("config section must be a table", section=section)
        base.setdefault(section, {}).update(values)


def _build(layer: Dict[str, Dict[str, Any]]) -> Config:
    cfg = Config()
    paths = layer.get("paths", {})
    if "data_dir" in paths:
        cfg.paths.data_dir = _expand(paths["data_dir"])

    db = layer.get("db", {})
    if "uri" in db:
        cfg.db.uri = str(db["uri"])

    token = layer.get("token", {})
    if "standard" in token:
        cfg.token.standard = str(token["standard"])
    if "probe_gas_limit" in token:
        cfg.token.probe_gas_limit = _as_int("token.probe_gas_limit", token["probe_gas_limit"])

    rpc = layer.get("rpc", {})
    if "host" in rpc:
        cfg.rpc.host = str(rpc["host"])
    if "port" in rpc:
        cfg.rpc.port = _as_int("rpc.port", rpc["port"])
    if "cors_allow_origins" in rpc:
        origins = rpc["cors_allow_origins"]
        cfg.rpc.cors_allow_origins = (
            _split_list(origins) if isinstance(origins, str) else [str(o) for o in origins]
        )

    log = layer.get("log", {})
    if "level" in log:
        cfg.log.level = str(log["level"]).upper()
    if "format" in log:
        cfg.log.format = str(log["format"]).lower() if log["format"] else None
    if log.get("file"):
        cfg.log.file = _expand(log["file"])

    return cfg


def load_config(
    path: Optional[str | Path] = None,
    overrides: Optional[Mapping[str, Mapping[str, Any]]] = None,
    *,
    env: Optional[Mapping[str, str]] = None,
) -> Config:
    """
    Build a validated Config from file, environment and explicit overrides.

    `path` defaults to TRACKER_CONFIG when set. `overrides` uses the same
    section/key shape as the file, e.g. {"db": {"uri": "memory://"}}.
    """
    env = os.environ if env is None else env
    layer: Dict[str, Dict[str, Any]] = {}

    file_path = path or env.get("TRACKER_CONFIG")
    if file_path:
        _merge(layer, _load_file(_expand(file_path)))
    _merge(layer, _from_env(env))
    if overrides:
        _merge(layer, overrides)

    cfg = _build(layer)
    cfg.validate()
    return cfg


__all__ = [
    "Config",
    "PathsConfig",
    "DBConfig",
    "TokenConfig",
    "RPCConfig",
    "LogConfig",
    "load_config",
    "DEFAULT_TOKEN_STANDARD",
    "DEFAULT_PROBE_GAS_LIMIT",
]
