"""Configuration module — frozen dataclasses loaded from YAML, env vars and CLI args."""

import logging
import os
import sys
from dataclasses import dataclass, fields

import yaml

logger = logging.getLogger(__name__)

VERSION = "1.2.0"


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class SinkConfig:
    host: str = "127.0.0.1"
    port: int = 3000
    log_file: str = "./debug.log"
    cors_origin: str = "*"
    debug: bool = False


@dataclass(frozen=True)
class ProducerConfig:
    server_url: str = "http://localhost:3000/debug/log"
    enabled: bool = True
    timeout: float = 2.0
    max_queue_size: int = 100
    default_source: str = "unknown"
    context_url: str = "cli"
    version: str = VERSION


_SINK_ENV = {
    "host": "SINK_HOST",
    "port": "SINK_PORT",
    "log_file": "LOG_FILE",
    "cors_origin": "CORS_ORIGIN",
    "debug": "SINK_DEBUG",
}

_PRODUCER_ENV = {
    "server_url": "DEBUG_SERVER_URL",
    "enabled": "DEBUG_ENABLED",
    "timeout": "DEBUG_TIMEOUT",
    "max_queue_size": "MAX_QUEUE_SIZE",
    "default_source": "DEBUG_SOURCE",
    "context_url": "CONTEXT_URL",
    "version": "CLIENT_VERSION",
}


def _coerce(cls, key: str, value):
    """Convert a raw value to the type of the dataclass field ``key``."""
    kind = type(getattr(cls, key))
    if kind is bool:
        return value if isinstance(value, bool) else _parse_bool(str(value))
    return kind(value)


def _load_yaml_section(path: str | None, section: str) -> dict:
    """Return one top-level mapping from a YAML file, or {} if unavailable."""
    if not path:
        return {}
    try:
        with open(path, "r") as f:
            document = yaml.safe_load(f)
    except FileNotFoundError:
        return {}
    except yaml.YAMLError:
        logger.warning("Invalid YAML in %s, using defaults", path)
        return {}

    if not isinstance(document, dict):
        return {}
    values = document.get(section)
    return values if isinstance(values, dict) else {}


def _parse_cli(argv: list[str]) -> dict[str, str]:
    """Simple --key=value / --key value / --flag parsing."""
    parsed: dict[str, str] = {}
    i = 0
    while i < len(argv):
        arg = argv[i]
        if arg.startswith("--"):
            if "=" in arg:
                key, value = arg[2:].split("=", 1)
            elif i + 1 < len(argv) and not argv[i + 1].startswith("--"):
                key = arg[2:]
                value = argv[i + 1]
                i += 1
            else:
                # Boolean flag with no value (e.g., --debug)
                key = arg[2:]
                value = "true"
            parsed[key.replace("-", "_")] = value
        i += 1
    return parsed


def _build(cls, section: str, env_names: dict[str, str], argv: list[str] | None):
    """Build ``cls`` from defaults <- YAML <- env vars <- CLI args (highest priority)."""
    if argv is None:
        argv = sys.argv[1:]

    cli = _parse_cli(argv)
    config_path = cli.pop("config", None) or os.environ.get("CONFIG_PATH")
    names = {f.name for f in fields(cls)}

    kwargs: dict = {}
    for key, value in _load_yaml_section(config_path, section).items():
        if key in names:
            kwargs[key] = _coerce(cls, key, value)
        else:
            logger.warning("Ignoring unknown %s setting %r in %s", section, key, config_path)

    for key, env_name in env_names.items():
        raw = os.environ.get(env_name)
        if raw is not None:
            kwargs[key] = _coerce(cls, key, raw)

    for key, value in cli.items():
        if key in names:
            kwargs[key] = _coerce(cls, key, value)

    return cls(**kwargs)


def load_sink_config(argv: list[str] | None = None) -> SinkConfig:
    return _build(SinkConfig, "sink", _SINK_ENV, argv)


def load_producer_config(argv: list[str] | None = None) -> ProducerConfig:
    return _build(ProducerConfig, "producer", _PRODUCER_ENV, argv)
