"""
Project-side state: the project root and its ``.configure`` manifest.
"""

from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from . import CONFIG_FILENAME
from .errors import ConfigurationFileInvalid, ProjectFileWriteError
from .models import ConfigurationFile

logger = logging.getLogger("skconfigure.project")


def find_project_root(start: Optional[Path] = None) -> Path:
    """Return the top of the git work tree containing *start*.

    Falls back to *start* itself (or the cwd) when it is not inside a
    git repository or git is unavailable.
    """
    base = (start or Path.cwd()).resolve()
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--show-toplevel"],
            capture_output=True, text=True, check=False, cwd=str(base),
        )
    except OSError as exc:
        logger.debug("git unavailable for project root lookup: %s", exc)
        return base
    if result.returncode != 0 or not result.stdout.strip():
        return base
    return Path(result.stdout.strip())


class ProjectConfig:
    """Reads and writes a project's ``.configure`` file.

    Args:
        root: Project root directory.
        filename: Manifest filename relative to *root*.
    """

    def __init__(self, root: Path, filename: str = CONFIG_FILENAME) -> None:
        self.root = root
        self.path = root / filename

    def load(self) -> ConfigurationFile:
        """Load the manifest; a missing file is the empty configuration."""
        if not self.path.exists():
            logger.debug("No configuration at %s", self.path)
            return ConfigurationFile()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return ConfigurationFile.model_validate(data)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ConfigurationFileInvalid(f"{self.path} is not valid JSON") from exc
        except OSError as exc:
            raise ConfigurationFileInvalid(f"{self.path} could not be read") from exc
        except ValidationError as exc:
            raise ConfigurationFileInvalid(f"{self.path} has invalid fields: {exc}") from exc

    def save(self, configuration: ConfigurationFile) -> Path:
        """Write the manifest."""
        try:
            self.path.write_text(configuration.to_json(), encoding="utf-8")
        except OSError as exc:
            raise ProjectFileWriteError(f"Unable to write {self.path}") from exc
        logger.info("Wrote configuration to %s", self.path)
        return self.path

    def resolve(self, relative: str) -> Path:
        """Absolute path of a project-relative path."""
        return self.root / relative
