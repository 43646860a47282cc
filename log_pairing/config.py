"""Configuration loading from CLI args, env vars, and optional YAML file.

Precedence, lowest to highest: dataclass defaults, YAML file, environment
variables, command-line flags.
"""

import logging
import os
import time
from dataclasses import dataclass

import yaml

from log_pairing.source import LOG_FILENAME

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Config:
    input_dir: str = "."
    db_path: str = "db/events.sqlite"
    log_filename: str = LOG_FILENAME
    workers: int = 0                 # 0 means cpu_count - 1, at least 1
    alert_threshold: int = 4
    idle_interval: float = 0.5
    grace_seconds: float = 0.0
    max_pending: int | None = None   # None keeps every orphan
    max_age: float | None = None
    dump_file: str | None = None
    log_level: str = "INFO"


def default_db_path() -> str:
    """Timestamped database file, one per run."""
    return os.path.join("db", f"db-{int(time.time() * 1000)}.sqlite")


def load_yaml_config(path: str | None) -> dict:
    """Load settings from a YAML file. Returns empty dict if no path."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", path)
        return {}
    except yaml.YAMLError as e:
        raise ValueError(f"invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a mapping, got {type(data).__name__}")
    logger.info("Loaded YAML config from %s", path)
    return data


def _optional_int(value) -> int | None:
    if value is None or str(value).strip().lower() in ("", "none"):
        return None
    return int(value)


def _optional_float(value) -> float | None:
    if value is None or str(value).strip().lower() in ("", "none"):
        return None
    return float(value)


def _pick(cli_value, env_key: str, yaml_data: dict, yaml_key: str, default):
    if cli_value is not None:
        return cli_value
    if env_key in os.environ:
        return os.environ[env_key]
    return yaml_data.get(yaml_key, default)


def load_config(cli_args, yaml_data: dict) -> Config:
    """Build Config from CLI args, env vars, and parsed YAML data."""
    log_level = str(_pick(cli_args.log_level, "PAIRING_LOG_LEVEL", yaml_data,
                          "log_level", Config.log_level)).upper()
    if log_level not in LOG_LEVELS:
        raise ValueError(f"unknown log level: {log_level}")

    workers = int(_pick(cli_args.workers, "PAIRING_WORKERS", yaml_data,
                        "workers", Config.workers))
    if workers < 0:
        raise ValueError("workers must be >= 0")

    return Config(
        input_dir=cli_args.input_dir,
        db_path=cli_args.db_path or yaml_data.get("db_path") or default_db_path(),
        log_filename=yaml_data.get("log_filename", LOG_FILENAME),
        workers=workers,
        alert_threshold=int(_pick(cli_args.threshold, "PAIRING_ALERT_THRESHOLD",
                                  yaml_data, "alert_threshold", Config.alert_threshold)),
        idle_interval=float(_pick(None, "PAIRING_IDLE_INTERVAL", yaml_data,
                                  "idle_interval", Config.idle_interval)),
        grace_seconds=float(_pick(cli_args.grace, "PAIRING_GRACE_SECONDS", yaml_data,
                                  "grace_seconds", Config.grace_seconds)),
        max_pending=_optional_int(_pick(cli_args.max_pending, "PAIRING_MAX_PENDING",
                                        yaml_data, "max_pending", None)),
        max_age=_optional_float(_pick(cli_args.max_age, "PAIRING_MAX_AGE",
                                      yaml_data, "max_age", None)),
        dump_file=cli_args.dump_file or yaml_data.get("dump_file"),
        log_level=log_level,
    )
