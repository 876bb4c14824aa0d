"""Configuration — frozen dataclass built from defaults, YAML, env vars and CLI args."""

import logging
import os
from dataclasses import dataclass, field

import yaml

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Config:
    base_url: str = "http://localhost:3001/api"
    token: str | None = None
    poll_interval: float = 3.0
    request_timeout: float = 10.0
    display_timezone: str = "Europe/Paris"
    log_level: str = "INFO"
    categories: dict[str, list[str]] = field(default_factory=dict)


def load_yaml_config(path: str | None) -> dict:
    """Load settings from a YAML file. Returns empty dict if missing or invalid."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", path)
        return {}
    except yaml.YAMLError as e:
        logger.warning("Invalid YAML in %s (%s), using defaults", path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Config file %s is not a mapping, using defaults", path)
        return {}
    logger.info("Loaded YAML config from %s", path)
    return data


def _categories(raw) -> dict[str, list[str]]:
    if not isinstance(raw, dict):
        return {}
    return {str(main): [str(s) for s in (subs or [])] for main, subs in raw.items()}


def load_config(cli_args=None, yaml_data: dict | None = None) -> Config:
    """Build Config from defaults <- YAML <- env vars <- CLI args (highest priority)."""
    if yaml_data is None:
        yaml_data = load_yaml_config(
            getattr(cli_args, "config", None) or os.environ.get("CONFIG_PATH")
        )

    kwargs: dict = {
        "base_url": yaml_data.get("base_url", Config.base_url),
        "token": yaml_data.get("token", Config.token),
        "poll_interval": float(yaml_data.get("poll_interval", Config.poll_interval)),
        "request_timeout": float(yaml_data.get("request_timeout", Config.request_timeout)),
        "display_timezone": yaml_data.get("display_timezone", Config.display_timezone),
        "log_level": yaml_data.get("log_level", Config.log_level),
        "categories": _categories(yaml_data.get("categories")),
    }

    env_overrides = {
        "base_url": ("DEBUG_CONSOLE_BASE_URL", str),
        "token": ("DEBUG_CONSOLE_TOKEN", str),
        "poll_interval": ("POLL_INTERVAL", float),
        "request_timeout": ("REQUEST_TIMEOUT", float),
        "display_timezone": ("DISPLAY_TIMEZONE", str),
        "log_level": ("LOG_LEVEL", str),
    }
    for key, (env_name, cast) in env_overrides.items():
        value = os.environ.get(env_name)
        if value:
            kwargs[key] = cast(value)

    if cli_args is not None:
        for key in ("base_url", "token", "poll_interval", "log_level"):
            value = getattr(cli_args, key, None)
            if value is not None:
                kwargs[key] = value

    kwargs["log_level"] = str(kwargs["log_level"]).upper()
    return Config(**kwargs)


def merged_schema(static_schema: dict[str, set[str]], config: Config) -> dict[str, set[str]]:
    """Static taxonomy schema extended with the categories from config."""
    schema = {main: set(subs) for main, subs in static_schema.items()}
    for main, subs in config.categories.items():
        schema.setdefault(main, set()).update(subs)
    return schema
