"""
Configure workflows -- apply, update, init, validate.

    configure apply     ->  decrypt every .enc file into place
    configure update    ->  fetch -> pick branch -> drift check -> re-pin
                            -> re-encrypt -> save -> roll back -> apply
    configure init      ->  fill in missing manifest fields, ensure a key
    configure validate  ->  load and show the manifest

The secrets repository is shared with every other project on the
machine. Whatever branch/commit it was on when a workflow started is
where it is when the workflow ends; ``CheckoutGuard`` enforces that.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Optional

from .crypto import CryptoProvider
from .errors import (
    DataDecryptionError,
    EncryptedFileMissing,
    MissingProjectKey,
    ProjectFileWriteError,
    SecretsFileMissing,
)
from .git import CheckoutGuard, SecretsRepoGateway
from .keys import KeyStore
from .models import ConfigurationFile, FileMapping, RepoSyncState
from .project import ProjectConfig
from .prompts import Prompter, heading, info, spinner, warn

logger = logging.getLogger("skconfigure.workflows")


class ConfigureEngine:
    """Runs the configure workflows against a project and a secrets repo.

    Args:
        project: The project's manifest store and root.
        repo: Gateway to the local secrets clone.
        keys: Per-project key lookup.
        crypto: Encryption provider.
        prompter: User interaction.
    """

    def __init__(
        self,
        project: ProjectConfig,
        repo: SecretsRepoGateway,
        keys: KeyStore,
        crypto: CryptoProvider,
        prompter: Prompter,
    ) -> None:
        self.project = project
        self.repo = repo
        self.keys = keys
        self.crypto = crypto
        self.prompter = prompter

    # ------------------------------------------------------------------
    # apply
    # ------------------------------------------------------------------

    def apply(self, configuration: ConfigurationFile, backup: bool = False) -> list[Path]:
        """Decrypt every mapping's ``.enc`` file into its destination.

        Args:
            configuration: The loaded manifest.
            backup: Copy an existing, different destination to its
                ``.bak`` path before overwriting it.

        Returns:
            Written destination paths, in mapping order.

        Raises:
            EncryptedFileMissing: A mapping has no ``.enc`` file.
            MissingProjectKey: No key for ``project_name``.
            DataDecryptionError: Reading or decrypting a file failed.
        """
        key = self._project_key(configuration)
        written: list[Path] = []
        for mapping in configuration.files_to_copy:
            written.append(self._decrypt_file(mapping, key, backup))
        logger.debug("All files copied")
        logger.info("Applied %d secret file(s)", len(written))
        return written

    def _decrypt_file(self, mapping: FileMapping, key: bytes, backup: bool) -> Path:
        source = self.project.resolve(mapping.encrypted_destination)
        destination = self.project.resolve(mapping.decrypted_destination)
        if not source.exists():
            raise EncryptedFileMissing(
                f"{mapping.encrypted_destination} is missing – unable to apply secrets "
                "to project. Run `configure update` to fix this"
            )
        try:
            plaintext = self.crypto.decrypt(source.read_bytes(), key)
        except OSError as exc:
            raise DataDecryptionError(f"Unable to read {source}") from exc

        try:
            if backup and destination.exists() and destination.read_bytes() != plaintext:
                backup_path = self.project.resolve(mapping.backup_destination())
                shutil.copy2(destination, backup_path)
                logger.info("Backed up %s to %s", destination, backup_path)
            destination.parent.mkdir(parents=True, exist_ok=True)
            destination.write_bytes(plaintext)
        except OSError as exc:
            raise DataDecryptionError(f"Unable to write {destination}") from exc

        logger.debug("Decrypted %s -> %s", source, destination)
        return destination

    def _project_key(self, configuration: ConfigurationFile) -> bytes:
        key = self.keys.read_key(configuration.project_name)
        if key is None:
            raise MissingProjectKey(
                f"The project key {configuration.project_name!r} is not defined in keys.json"
            )
        return key

    # ------------------------------------------------------------------
    # update
    # ------------------------------------------------------------------

    def update(self, configuration: ConfigurationFile, backup: bool = False) -> bool:
        """Re-pin the project to the latest secrets and refresh its files.

        Returns:
            True if the workflow ran to completion, False if the user
            declined to continue past the drift check.
        """
        heading("Configure Update")

        with CheckoutGuard(self.repo) as baseline:
            logger.debug("Update started from %s at %s", baseline.branch, baseline.revision)

            with spinner("Fetching Latest Secrets"):
                self.repo.fetch_latest()

            configuration = self.prompt_for_branch(configuration, force=True)
            configuration = self.set_latest_hash_if_needed(configuration)

            if not self._confirm_drift(configuration.branch):
                info("[dim]No changes made.[/]")
                return False

            distance = self.distance_behind(configuration, configuration.branch)
            if distance > 0 and self.prompter.confirm(
                f"This project is {distance} commit(s) behind the latest secrets. "
                "Would you like to use the latest secrets?"
            ):
                configuration.pinned_hash = self.repo.latest_hash_for_branch(configuration.branch)

            logger.debug(
                "Moving the repo to %s at %s", configuration.branch, configuration.pinned_hash
            )
            self.repo.checkout_branch_at_revision(configuration.branch, configuration.pinned_hash)

            # Encrypt before saving so a failure never pins a commit whose
            # secrets were not written.
            self.encrypt_files(configuration)
            self.project.save(configuration)

        self.apply(configuration, backup=backup)
        return True

    def _confirm_drift(self, branch: str) -> bool:
        status = self.repo.sync_status(branch)
        if status.sync_state == RepoSyncState.AHEAD:
            warn(
                f"Your local secrets repo has {status.distance} change(s) "
                "that the server does not"
            )
            return self.prompter.confirm("Would you like to continue?", default=False)
        if status.sync_state == RepoSyncState.BEHIND:
            warn(
                f"The server has {status.distance} change(s) "
                "that your local secrets repo does not"
            )
            return self.prompter.confirm("Would you like to continue?", default=False)
        return True

    def distance_behind(self, configuration: ConfigurationFile, branch: str) -> int:
        """Commits between the pinned hash and the tip of *branch*.

        Checks out *branch* to read its tip; the previous branch/commit
        is restored before returning, whatever happens.
        """
        logger.debug("Checking if configure file is behind secrets repo")
        with CheckoutGuard(self.repo):
            self.repo.checkout_branch(branch)
            latest = self.repo.current_hash()
            return self.repo.hash_distance(configuration.pinned_hash, latest)

    def encrypt_files(self, configuration: ConfigurationFile) -> list[Path]:
        """Encrypt each mapping's source from the secrets repo into the project."""
        key = self._project_key(configuration)
        root = self.repo.find_repo_path()
        written: list[Path] = []
        for mapping in configuration.files_to_copy:
            source = root / mapping.source
            destination = self.project.resolve(mapping.encrypted_destination)
            try:
                plaintext = source.read_bytes()
            except OSError as exc:
                raise SecretsFileMissing(
                    f"{mapping.source} could not be read from the secrets repository"
                ) from exc
            ciphertext = self.crypto.encrypt(plaintext, key)
            try:
                destination.parent.mkdir(parents=True, exist_ok=True)
                destination.write_bytes(ciphertext)
            except OSError as exc:
                raise ProjectFileWriteError(f"Unable to write {destination}") from exc
            logger.debug("Encrypted %s -> %s", source, destination)
            written.append(destination)
        return written

    # ------------------------------------------------------------------
    # init
    # ------------------------------------------------------------------

    def init(self, configuration: ConfigurationFile) -> ConfigurationFile:
        """Interactively fill in whatever the manifest is missing."""
        heading("Configure Setup")
        info("Let's get configuration set up for this project.")

        configuration = self.prompt_for_project_name_if_needed(configuration)
        configuration = self.prompt_for_branch(configuration, force=True)
        configuration = self.set_latest_hash_if_needed(configuration)
        configuration = self.prompt_to_add_files(configuration)

        logger.info("Writing changes to %s", self.project.path.name)
        self.project.save(configuration)

        if self.keys.read_key(configuration.project_name) is None:
            self.keys.generate_key(configuration.project_name)
        return configuration

    def prompt_for_project_name_if_needed(
        self, configuration: ConfigurationFile
    ) -> ConfigurationFile:
        if not configuration.needs_project_name():
            return configuration
        configuration.project_name = self.prompter.prompt_text(
            "What is the name of your project?"
        )
        info(f"Project Name set to: [cyan]{configuration.project_name}[/]")
        return configuration

    def prompt_for_branch(
        self, configuration: ConfigurationFile, force: bool = False
    ) -> ConfigurationFile:
        """Ask which secrets branch to track; skipped if already set unless *force*."""
        if not configuration.needs_branch() and not force:
            return configuration

        repo_path = self.repo.find_repo_path()
        current_branch = self.repo.current_branch()
        branches = self.repo.list_branches()

        info(f"We've found your secrets repository at {repo_path}")
        info("Which branch would you like to use?")
        info(f"Current Branch: [green]{current_branch}[/]")

        default = current_branch if current_branch in branches else ""
        configuration.branch = self.prompter.select(branches, default)
        info(f"Secrets repo branch set to: [cyan]{configuration.branch}[/]")
        return configuration

    def set_latest_hash_if_needed(self, configuration: ConfigurationFile) -> ConfigurationFile:
        if not configuration.needs_pinned_hash():
            return configuration
        configuration.pinned_hash = self.repo.latest_hash_for_branch(configuration.branch)
        return configuration

    def prompt_to_add_files(self, configuration: ConfigurationFile) -> ConfigurationFile:
        message = (
            "Would you like to add additional files?"
            if configuration.files_to_copy
            else "Would you like to add files?"
        )
        while self.prompter.confirm(message):
            mapping = self.prompt_to_add_file()
            if mapping is not None:
                configuration.files_to_copy.append(mapping)
        return configuration

    def prompt_to_add_file(self) -> Optional[FileMapping]:
        source = self.prompter.prompt_text(
            "Enter the source file path (relative to the secrets root):"
        )
        full_source = self.repo.find_repo_path() / source
        if not full_source.is_file():
            warn(f"Source File does not exist: {full_source}")
            return None

        destination = self.prompter.prompt_text(
            "Enter the destination file path (relative to the project root):"
        )
        logger.debug("Destination: %s", self.project.resolve(destination))
        return FileMapping(source=source, destination=destination)

    # ------------------------------------------------------------------
    # validate / keys
    # ------------------------------------------------------------------

    def validate(self) -> ConfigurationFile:
        """Load the manifest for inspection. Nothing is modified."""
        return self.project.load()

    def create_key(self, configuration: ConfigurationFile) -> bytes:
        """Generate a key for the project; fails if one already exists."""
        return self.keys.generate_key(configuration.project_name)
