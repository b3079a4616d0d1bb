"""
Error taxonomy for the configure workflows.

Every failure a workflow step can hit maps to one of these. Underlying
I/O, JSON and subprocess failures are chained as ``__cause__`` rather
than re-used as domain errors.
"""

from __future__ import annotations

from typing import Optional, Sequence


class ConfigureError(Exception):
    """Base class for all configure failures."""

    default_message = "Configure failed"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.default_message)


class EncryptionUnavailable(ConfigureError):
    default_message = "Unable to initialize underlying encryption"


class DataDecryptionError(ConfigureError):
    default_message = "Unable to decrypt file"


class GitStatusParsingError(ConfigureError):
    default_message = "Invalid git status"


class GitStatusUnknownError(ConfigureError):
    default_message = "Invalid git status"


class SecretsNotPresent(ConfigureError):
    default_message = "No secrets repository could be found on this machine"


class EncryptedFileMissing(ConfigureError):
    default_message = (
        "An encrypted file is missing – unable to apply secrets to project. "
        "Run `configure update` to fix this"
    )


class KeysFileCannotBeRead(ConfigureError):
    default_message = "Unable to read keys.json file in your secrets repo"


class KeysFileIsNotValidJSON(ConfigureError):
    default_message = "keys.json file in your secrets repo is not valid json"


class MissingProjectKey(ConfigureError):
    default_message = "That project key is not defined in keys.json"


class ProjectKeyExists(ConfigureError):
    default_message = "A key for that project already exists in keys.json"


class ConfigurationFileInvalid(ConfigureError):
    default_message = "The .configure file is not valid"


class GitCommandError(ConfigureError):
    """A git invocation against the secrets repository failed."""

    def __init__(self, args: Sequence[str], returncode: int, stderr: str = "") -> None:
        self.command = list(args)
        self.returncode = returncode
        self.stderr = stderr.strip()
        detail = f": {self.stderr}" if self.stderr else ""
        super().__init__(f"`{' '.join(self.command)}` exited with {returncode}{detail}")


class SecretsFileMissing(ConfigureError):
    default_message = "A file listed in .configure does not exist in the secrets repo"


class ProjectFileWriteError(ConfigureError):
    default_message = "Unable to write a file into the project"


class KeysFileCannotBeWritten(ConfigureError):
    default_message = "Unable to write keys.json file in your secrets repo"
