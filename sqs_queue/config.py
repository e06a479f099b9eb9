"""
Configuration loader.
Merges default.yaml + environment variables into a typed config object.
Queue, runner and CLI all read from this.
"""

from typing import Dict, Any, Optional
from dataclasses import dataclass, field
import os

import yaml

from .logging import LEVELS


# ============================================================================
# CONFIG SCHEMA
# ============================================================================

@dataclass
class QueueConfig:
    """Queue URL and connection settings"""
    url: str
    region: Optional[str] = None
    endpoint_url: Optional[str] = None  # for ElasticMQ/LocalStack
    access_key: Optional[str] = None
    secret_key: Optional[str] = None


@dataclass
class WorkerConfig:
    """Producer defaults and consumer polling"""
    ttr: int = 300  # seconds a consumer may hold a job
    delay: int = 0  # seconds before a pushed job becomes receivable
    wait_time: int = 20  # long-poll seconds for `run`
    listen_timeout: int = 3  # long-poll seconds for `listen`


@dataclass
class LoggingConfig:
    """Logging settings"""
    level: str = "INFO"


@dataclass
class Settings:
    """Complete configuration."""
    queue: QueueConfig
    worker: WorkerConfig = field(default_factory=WorkerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


# ============================================================================
# ENVIRONMENT VARIABLE NAMES
# ============================================================================

CONFIG_PATH_ENV = "SQS_QUEUE_CONFIG"

DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(__file__), "default.yaml")

# env var -> (section, key)
ENV_OVERRIDES = {
    "QUEUE_URL": ("queue", "url"),
    "AWS_REGION": ("queue", "region"),
    "SQS_ENDPOINT_URL": ("queue", "endpoint_url"),
    "AWS_ACCESS_KEY_ID": ("queue", "access_key"),
    "AWS_SECRET_ACCESS_KEY": ("queue", "secret_key"),
    "QUEUE_TTR": ("worker", "ttr"),
    "QUEUE_DELAY": ("worker", "delay"),
    "QUEUE_WAIT_TIME": ("worker", "wait_time"),
    "QUEUE_LISTEN_TIMEOUT": ("worker", "listen_timeout"),
    "LOG_LEVEL": ("logging", "level"),
}


# ============================================================================
# LOADING FUNCTIONS
# ============================================================================

def load_config(path: Optional[str] = None, environ: Optional[Dict[str, str]] = None) -> Settings:
    """
    Main entry point.

    Priority (highest to lowest):
    1. Environment variables
    2. YAML file: `path`, else $SQS_QUEUE_CONFIG, else sqs_queue/default.yaml

    Raises:
        ValueError if a value is missing or invalid
    """
    environ = os.environ if environ is None else environ
    path = path or environ.get(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH

    raw = merge_configs(load_yaml_file(path), load_env_vars(environ))
    return Settings(
        queue=parse_queue_config(raw.get("queue") or {}),
        worker=parse_worker_config(raw.get("worker") or {}),
        logging=parse_logging_config(raw.get("logging") or {}),
    )


def load_env_vars(environ: Dict[str, str]) -> Dict[str, Any]:
    """Nest the recognised env vars into the same shape as the YAML file."""
    out: Dict[str, Any] = {}
    for name, (section, key) in ENV_OVERRIDES.items():
        value = environ.get(name)
        if value is not None and value != "":
            out.setdefault(section, {})[key] = value
    return out


def load_yaml_file(filepath: str) -> Dict[str, Any]:
    """
    Parse single YAML file.
    Return empty dict if file doesn't exist (not an error).

    Raises:
        yaml.YAMLError if file exists but is invalid YAML
        ValueError if the document is not a mapping
    """
    if not os.path.exists(filepath):
        return {}
    with open(filepath, "r") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {filepath} must contain a mapping")
    return data


def merge_configs(*configs: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep merge multiple config dicts.
    Later configs override earlier ones.

    Example:
        base = {"worker": {"ttr": 300}}
        override = {"worker": {"ttr": 600}}
        result = merge_configs(base, override)
        # {"worker": {"ttr": 600}}
    """
    result: Dict[str, Any] = {}
    for cfg in configs:
        for key, value in (cfg or {}).items():
            if isinstance(value, dict) and isinstance(result.get(key), dict):
                result[key] = merge_configs(result[key], value)
            elif isinstance(value, dict):
                result[key] = merge_configs(value)
            else:
                result[key] = value
    return result


def parse_queue_config(raw: Dict[str, Any]) -> QueueConfig:
    """Convert raw dict to typed QueueConfig. URL must be http(s)."""
    url = raw.get("url")
    if not url:
        raise ValueError("queue.url is required (set QUEUE_URL)")
    if not validate_queue_url(url):
        raise ValueError(f"Invalid queue url: {url}")

    return QueueConfig(
        url=url,
        region=raw.get("region") or None,
        endpoint_url=raw.get("endpoint_url") or None,
        access_key=raw.get("access_key") or None,
        secret_key=raw.get("secret_key") or None,
    )


def parse_worker_config(raw: Dict[str, Any]) -> WorkerConfig:
    """Convert raw dict to typed WorkerConfig. Durations are non-negative ints; waits max out at 20."""
    defaults = WorkerConfig()
    ttr = _non_negative_int(raw, "ttr", defaults.ttr)
    delay = _non_negative_int(raw, "delay", defaults.delay)
    wait_time = _non_negative_int(raw, "wait_time", defaults.wait_time)
    listen_timeout = _non_negative_int(raw, "listen_timeout", defaults.listen_timeout)

    if delay > 900:
        raise ValueError(f"worker.delay must be <= 900, got {delay}")
    for name, value in (("wait_time", wait_time), ("listen_timeout", listen_timeout)):
        if value > 20:
            raise ValueError(f"worker.{name} must be <= 20, got {value}")

    return WorkerConfig(ttr=ttr, delay=delay, wait_time=wait_time, listen_timeout=listen_timeout)


def parse_logging_config(raw: Dict[str, Any]) -> LoggingConfig:
    """Convert raw dict to typed LoggingConfig. Level must be DEBUG/INFO/WARNING/ERROR."""
    level = str(raw.get("level", "INFO")).upper()
    if level not in LEVELS:
        raise ValueError(f"Invalid log level: {level}")
    return LoggingConfig(level=level)


# ============================================================================
# VALIDATION FUNCTIONS
# ============================================================================

def validate_queue_url(url: str) -> bool:
    """Queue URLs are http(s) endpoints (https for AWS, http for local emulators)."""
    return isinstance(url, str) and url.startswith(("https://", "http://")) and len(url) > len("https://")


def _non_negative_int(raw: Dict[str, Any], key: str, default: int) -> int:
    value = raw.get(key, default)
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"worker.{key} must be an integer, got {value!r}") from None
    if parsed < 0:
        raise ValueError(f"worker.{key} must be >= 0, got {parsed}")
    return parsed
