"""
User settings -- where the secrets repository lives, which remote to trust.

Loaded from ``$SKCONFIGURE_HOME/config.yaml``. Environment variables win
over the file; CLI options win over both.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import yaml

from . import SKCONFIGURE_HOME
from .models import Settings

logger = logging.getLogger("skconfigure.settings")

ENV_SECRETS_REPO = "SKCONFIGURE_SECRETS_REPO"
ENV_PROJECT_ROOT = "SKCONFIGURE_PROJECT_ROOT"


def settings_path(home: Optional[Path] = None) -> Path:
    """Location of the settings file."""
    return (home or Path(SKCONFIGURE_HOME)).expanduser() / "config.yaml"


def load_settings(home: Optional[Path] = None) -> Settings:
    """Load settings from disk and apply environment overrides.

    A malformed settings file is reported and ignored so a broken
    ``config.yaml`` never blocks ``apply``.

    Args:
        home: Settings directory. Defaults to ``SKCONFIGURE_HOME``.

    Returns:
        Settings: Resolved settings.
    """
    data: dict = {}
    config_file = settings_path(home)
    if config_file.exists():
        try:
            data = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
        except (yaml.YAMLError, OSError) as exc:
            logger.warning("Failed to load settings from %s: %s", config_file, exc)
            data = {}
        if not isinstance(data, dict):
            logger.warning("Ignoring settings in %s: expected a mapping", config_file)
            data = {}

    if os.environ.get(ENV_SECRETS_REPO):
        data["secrets_repo"] = os.environ[ENV_SECRETS_REPO]
    if os.environ.get(ENV_PROJECT_ROOT):
        data["project_root"] = os.environ[ENV_PROJECT_ROOT]

    try:
        settings = Settings(**data)
    except (TypeError, ValueError) as exc:
        logger.warning("Invalid settings in %s: %s", config_file, exc)
        settings = Settings()

    settings.secrets_repo = settings.secrets_repo.expanduser()
    if settings.project_root is not None:
        settings.project_root = settings.project_root.expanduser()
    return settings

