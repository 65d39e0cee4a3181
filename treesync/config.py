"""
Configuration source for treesync.

Settings are merged once, highest priority first:
CLI flags -> environment (TREESYNC_*, optionally loaded from a .env file)
-> last-used JSON config file -> defaults. The result is frozen and passed
explicitly to every component.
"""
from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .errors import ConfigError
from .models import RetryPolicy, StoreConfig
from .services.ledger import DEFAULT_LEDGER_DIR, DEFAULT_LEDGER_FILE
from .utils.paths import normalize_prefix

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = DEFAULT_LEDGER_DIR / "config.json"
DEFAULT_LEDGER_PATH = DEFAULT_LEDGER_DIR / DEFAULT_LEDGER_FILE
MAX_CONCURRENCY = 100

DEFAULTS: Dict[str, Any] = {
    "source_dir": None,
    "target_prefix": "",
    "concurrency": 10,
    "max_retries": 3,
    "retry_delay_ms": 1000,
    "log_level": "WARNING",
    "ledger": str(DEFAULT_LEDGER_PATH),
    "record_failures": False,
    "flush_every": 1,
    "endpoint": None,
    "bucket": "",
    "access_key_id": None,
    "access_key_secret": None,
    "timeout": 30.0,
    "send_checksum": True,
}

ENV_VARS: Dict[str, str] = {
    "source_dir": "TREESYNC_SOURCE_DIR",
    "target_prefix": "TREESYNC_TARGET_PREFIX",
    "concurrency": "TREESYNC_CONCURRENCY",
    "max_retries": "TREESYNC_MAX_RETRIES",
    "retry_delay_ms": "TREESYNC_RETRY_DELAY_MS",
    "log_level": "TREESYNC_LOG_LEVEL",
    "ledger": "TREESYNC_LEDGER",
    "endpoint": "TREESYNC_ENDPOINT",
    "bucket": "TREESYNC_BUCKET",
    "access_key_id": "TREESYNC_ACCESS_KEY_ID",
    "access_key_secret": "TREESYNC_ACCESS_KEY_SECRET",
}

SECRET_KEYS = frozenset({"access_key_id", "access_key_secret"})

# Behaviour toggles apply to the run that asked for them and are never carried over.
PER_RUN_KEYS = frozenset({"record_failures", "send_checksum", "flush_every"})

DEFAULT_ENV_FILE = Path(".env")

_ENV_LINE = re.compile(r"^\s*(?:export\s+)?([A-Za-z_][A-Za-z0-9_]*)\s*=\s*(.*?)\s*$")


@dataclass(frozen=True)
class SyncConfig:
    """Immutable settings for one sync run."""
    source_dir: Path
    target_prefix: str = ""
    concurrency_limit: int = 10
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    log_level: str = "WARNING"
    ledger_path: Path = DEFAULT_LEDGER_PATH
    record_failures: bool = False
    flush_every: int = 1


def parse_env_file(path: Path) -> Dict[str, str]:
    """
    Parse a .env file into a dict.

    Accepts `KEY=value` and `export KEY=value`; one pair of matching quotes
    around the value is removed. Comments and lines that are not
    assignments are skipped.
    """
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"could not read env file {path}: {exc}") from exc

    values: Dict[str, str] = {}
    for line in content.splitlines():
        if line.lstrip().startswith("#"):
            continue
        match = _ENV_LINE.match(line)
        if match is None:
            continue
        key, value = match.groups()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
            value = value[1:-1]
        values[key] = value
    return values


def load_env_file(path: Path, override: bool = False) -> Dict[str, str]:
    """Export a .env file into os.environ. Returns the variables actually set."""
    applied = {
        key: value
        for key, value in parse_env_file(path).items()
        if override or key not in os.environ
    }
    os.environ.update(applied)
    logger.debug("Loaded %d variable(s) from %s", len(applied), path)
    return applied


def find_env_file(explicit: Optional[Path] = None) -> Optional[Path]:
    """The --env-file path if given, else ./.env when it exists."""
    if explicit is not None:
        return Path(explicit)
    return DEFAULT_ENV_FILE if DEFAULT_ENV_FILE.is_file() else None


def _persistable(key: str) -> bool:
    return key in DEFAULTS and key not in SECRET_KEYS and key not in PER_RUN_KEYS


def load_config_file(path: Path) -> Dict[str, Any]:
    """Read the last-used settings. Missing or unreadable files give {}."""
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Failed to read config %s, using defaults: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring config %s: expected a JSON object", path)
        return {}
    return {k: v for k, v in data.items() if _persistable(k)}


def save_config(path: Path, settings: Mapping[str, Any]) -> None:
    """Persist reusable non-secret settings so the next run can pick them up."""
    data = {
        k: (str(v) if isinstance(v, Path) else v)
        for k, v in settings.items()
        if _persistable(k)
    }
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        logger.debug("Config saved to %s", path)
    except OSError as exc:
        logger.warning("Failed to save config %s: %s", path, exc)


def resolve_settings(
    overrides: Optional[Mapping[str, Any]] = None,
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Dict[str, Any]:
    """Merge defaults, config file, environment and explicit overrides."""
    environ = os.environ if environ is None else environ
    settings = dict(DEFAULTS)
    settings.update(load_config_file(config_path or DEFAULT_CONFIG_FILE))

    for key, var in ENV_VARS.items():
        value = environ.get(var)
        if value not in (None, ""):
            settings[key] = value

    for key, value in (overrides or {}).items():
        if value is not None and key in DEFAULTS:
            settings[key] = value

    return settings


def _as_int(settings: Mapping[str, Any], key: str, minimum: int, maximum: Optional[int] = None) -> int:
    raw = settings.get(key)
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from None
    if value < minimum or (maximum is not None and value > maximum):
        bounds = f"between {minimum} and {maximum}" if maximum is not None else f">= {minimum}"
        raise ConfigError(f"{key} must be {bounds}, got {value}")
    return value


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def build_sync_config(settings: Mapping[str, Any]) -> SyncConfig:
    """Validate merged settings into a SyncConfig."""
    source = settings.get("source_dir")
    if not source or not str(source).strip():
        raise ConfigError("source directory is not set")
    source_dir = Path(str(source).strip()).expanduser()
    if not source_dir.is_dir():
        raise ConfigError(f"source is not a directory: {source_dir}")

    policy = RetryPolicy(
        max_attempts=_as_int(settings, "max_retries", 0),
        base_delay_ms=_as_int(settings, "retry_delay_ms", 1),
    )

    return SyncConfig(
        source_dir=source_dir,
        target_prefix=normalize_prefix(settings.get("target_prefix")),
        concurrency_limit=_as_int(settings, "concurrency", 1, MAX_CONCURRENCY),
        retry_policy=policy,
        log_level=str(settings.get("log_level") or "WARNING").upper(),
        ledger_path=Path(str(settings.get("ledger") or DEFAULT_LEDGER_PATH)),
        record_failures=_as_bool(settings.get("record_failures")),
        flush_every=_as_int(settings, "flush_every", 1),
    )


def build_store_config(settings: Mapping[str, Any]) -> StoreConfig:
    """Validate merged settings into a StoreConfig."""
    endpoint = str(settings.get("endpoint") or "").strip()
    if not endpoint:
        raise ConfigError("store endpoint is not set (--endpoint or TREESYNC_ENDPOINT)")
    if not endpoint.startswith(("http://", "https://")):
        raise ConfigError(f"store endpoint must be an http(s) URL, got {endpoint!r}")

    try:
        timeout = float(settings.get("timeout") or DEFAULTS["timeout"])
    except (TypeError, ValueError):
        raise ConfigError(f"timeout must be a number, got {settings.get('timeout')!r}") from None

    return StoreConfig(
        endpoint=endpoint,
        bucket=str(settings.get("bucket") or "").strip(),
        access_key_id=settings.get("access_key_id") or None,
        access_key_secret=settings.get("access_key_secret") or None,
        timeout=timeout,
        send_checksum=_as_bool(settings.get("send_checksum")),
    )
