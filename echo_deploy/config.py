"""Load the deploy configuration from ``deploy.yaml``."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from . import constants
from .errors import ConfigurationError
from .models import DeployConfig

log = logging.getLogger(__name__)

ROOT_DIR = Path(__file__).resolve().parents[1]


def load_config(path: Optional[Path] = None) -> DeployConfig:
    """Read the deploy config, falling back to defaults when the file is absent.

    A relative ``work_dir`` is resolved against the directory holding the
    config file so the workflow does not depend on the caller's cwd.
    """
    config_path = path or ROOT_DIR / constants.CONFIG_FILENAME
    data = {}
    if config_path.exists():
        try:
            data = yaml.safe_load(config_path.read_text()) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Cannot parse {config_path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigurationError(f"{config_path} must contain a mapping")
    else:
        log.info("No config at %s, using defaults", config_path)

    try:
        config = DeployConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid deploy config in {config_path}:\n{exc}") from exc

    if not config.work_dir.is_absolute():
        config = config.model_copy(
            update={"work_dir": (config_path.parent / config.work_dir).resolve()}
        )
    return config
