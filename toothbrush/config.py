"""
Configuration for the toothbrush client.

Settings come from three places, later ones winning:

- built-in defaults
- ``config.json`` inside the metadata directory
- ``TOOTHBRUSH_*`` environment variables

The command line can override any of them on top.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ValidationError, field_validator

from toothbrush.errors import ConfigError

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_HOST = "localhost"
DEFAULT_PORT = 38906
DEFAULT_TIMEOUT = 5.0
DEFAULT_NOTES_DIR = Path.home() / "Dropbox" / "tbrush_notes"
DEFAULT_META_DIR = Path.home() / ".toothbrush_meta"
CONFIG_FILENAME = "config.json"
LOG_FILENAME = "out.log"

ENV_HOST = "TOOTHBRUSH_HOST"
ENV_PORT = "TOOTHBRUSH_PORT"
ENV_META_DIR = "TOOTHBRUSH_META_DIR"


class Settings(BaseModel):
    """Where the search server lives and where notes and scratch files go."""
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    timeout: float = DEFAULT_TIMEOUT
    notes_dir: Path = DEFAULT_NOTES_DIR
    meta_dir: Path = DEFAULT_META_DIR

    @field_validator("notes_dir", "meta_dir")
    @classmethod
    def _expand_user(cls, value: Path) -> Path:
        return value.expanduser()

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    @property
    def log_path(self) -> Path:
        return self.meta_dir / LOG_FILENAME


def default_config_path(environ: Optional[Mapping[str, str]] = None) -> Path:
    """
    Locate the config file.

    Args:
        environ: Environment to read ``TOOTHBRUSH_META_DIR`` from

    Returns:
        Path of ``config.json`` inside the metadata directory
    """
    environ = os.environ if environ is None else environ
    meta_dir = environ.get(ENV_META_DIR)
    base = Path(meta_dir).expanduser() if meta_dir else DEFAULT_META_DIR
    return base / CONFIG_FILENAME


def _read_config_file(config_path: Path) -> Dict[str, Any]:
    if not config_path.exists():
        return {}
    try:
        with open(config_path, "r") as f:
            data = json.load(f)
    except (json.JSONDecodeError, IOError) as e:
        logger.warning("Ignoring unreadable config file %s: %s", config_path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring config file %s: expected a JSON object", config_path)
        return {}
    return data


def _env_overrides(environ: Mapping[str, str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if environ.get(ENV_HOST):
        overrides["host"] = environ[ENV_HOST]
    if environ.get(ENV_PORT):
        overrides["port"] = environ[ENV_PORT]
    if environ.get(ENV_META_DIR):
        overrides["meta_dir"] = environ[ENV_META_DIR]
    return overrides


def load_settings(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """
    Load settings from the config file and environment.

    An unreadable or invalid config file is logged and ignored, so the
    client still starts with defaults. Invalid environment overrides are an
    error, since the user set them explicitly.

    Args:
        config_path: Config file to read, defaults to ``default_config_path()``
        environ: Environment mapping, defaults to ``os.environ``

    Returns:
        The merged Settings

    Raises:
        ConfigError: If an environment override does not validate
    """
    environ = os.environ if environ is None else environ
    if config_path is None:
        config_path = default_config_path(environ)

    file_values = _read_config_file(config_path)
    try:
        settings = Settings(**file_values)
    except ValidationError as e:
        logger.warning("Ignoring invalid config file %s: %s", config_path, e)
        settings = Settings()

    overrides = _env_overrides(environ)
    if not overrides:
        return settings
    try:
        return Settings(**{**settings.model_dump(), **overrides})
    except ValidationError as e:
        raise ConfigError(f"Invalid TOOTHBRUSH_* environment variable: {e}") from e


def save_settings(settings: Settings, config_path: Path) -> None:
    """
    Save settings to a JSON file.

    Args:
        settings: Settings to save
        config_path: Destination file

    Raises:
        ConfigError: If the file cannot be written
    """
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w") as f:
            json.dump(settings.model_dump(mode="json"), f, indent=4)
    except IOError as e:
        raise ConfigError(f"Error saving config: {e}") from e


def ensure_directories(settings: Settings) -> None:
    """Create the notes and metadata directories if they are missing."""
    for path in (settings.notes_dir, settings.meta_dir):
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigError(f"Cannot create directory '{path}': {e}") from e


def configure_logging(settings: Settings, level: int = logging.INFO) -> logging.Handler:
    """
    Send toothbrush logs to ``out.log`` in the metadata directory.

    The terminal is owned by the UI, so nothing is logged to stderr.

    Returns:
        The installed handler, so callers can remove it again
    """
    handler = logging.FileHandler(settings.log_path, encoding="utf-8")
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    package_logger = logging.getLogger("toothbrush")
    package_logger.addHandler(handler)
    package_logger.setLevel(level)
    package_logger.propagate = False
    return handler
