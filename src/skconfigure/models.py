"""
Pydantic models for project secrets configuration.

The ``.configure`` manifest is the single source of truth for which
commit of the secrets repository a project trusts.
"""

from __future__ import annotations

import os
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

ENCRYPTED_SUFFIX = ".enc"
BACKUP_TIMESTAMP_FORMAT = "%Y-%m-%d-%H-%M-%S"


class FileMapping(BaseModel):
    """One secret file: where it lives in the secrets repo, where it lands in the project."""

    model_config = ConfigDict(populate_by_name=True)

    source: str = Field(alias="file", description="Path relative to the secrets repository root")
    destination: str = Field(description="Path relative to the project root")

    @property
    def encrypted_destination(self) -> str:
        return self.destination + ENCRYPTED_SUFFIX

    @property
    def decrypted_destination(self) -> str:
        return self.destination

    def backup_destination(self, now: Optional[datetime] = None) -> str:
        """Sibling path used to preserve an existing decrypted file.

        Args:
            now: Timestamp to embed. Defaults to the current local time.

        Returns:
            ``{dir}/{stem}-{YYYY-MM-DD-HH-MM-SS}.{ext}.bak``
        """
        path = Path(self.destination)
        stamp = (now or datetime.now()).strftime(BACKUP_TIMESTAMP_FORMAT)
        extension = path.suffix[1:]
        filename = f"{path.stem}-{stamp}.{extension}.bak"
        return os.path.join(os.path.dirname(self.destination), filename)


class ConfigurationFile(BaseModel):
    """The persisted project manifest.

    A field is unset iff it is the empty string. Nothing is normalized:
    ``"a/"`` and ``"a"`` are different destinations.
    """

    model_config = ConfigDict(populate_by_name=True)

    project_name: str = ""
    branch: str = ""
    pinned_hash: str = ""
    files_to_copy: list[FileMapping] = Field(default_factory=list)

    def needs_project_name(self) -> bool:
        return self.project_name == ""

    def needs_branch(self) -> bool:
        return self.branch == ""

    def needs_pinned_hash(self) -> bool:
        return self.pinned_hash == ""

    def is_empty(self) -> bool:
        """True only for the all-default configuration."""
        return self == ConfigurationFile()

    def to_json(self) -> str:
        """Serialize with the on-disk field names (``file`` for sources)."""
        return self.model_dump_json(by_alias=True, indent=2) + "\n"


class RepoSyncState(str, Enum):
    """Local branch relative to its remote counterpart."""

    AHEAD = "ahead"
    BEHIND = "behind"
    SYNCED = "synced"


class RepoStatus(BaseModel):
    """Sync state plus the absolute commit count on the diverging side."""

    sync_state: RepoSyncState
    distance: int = Field(default=0, ge=0)


class Settings(BaseModel):
    """User-level settings for the configure tool."""

    secrets_repo: Path = Path("~/.mobile-secrets")
    remote: str = "origin"
    config_filename: str = ".configure"
    project_root: Optional[Path] = None
