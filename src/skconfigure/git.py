"""
Secrets repository gateway -- every git call the workflows make.

The secrets repository is a local clone shared by every project on the
machine. Its checked-out branch/commit is global state, so anything that
moves it does so inside a ``CheckoutGuard`` that puts it back.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Optional, Protocol

from .errors import (
    GitCommandError,
    GitStatusParsingError,
    GitStatusUnknownError,
    SecretsNotPresent,
)
from .models import RepoStatus, RepoSyncState

logger = logging.getLogger("skconfigure.git")

DETACHED_HEAD = "HEAD"


class SecretsRepoGateway(Protocol):
    """Queries and mutations against the local secrets clone."""

    def find_repo_path(self) -> Path: ...

    def current_branch(self) -> str: ...

    def current_hash(self) -> str: ...

    def list_branches(self) -> set[str]: ...

    def fetch_latest(self) -> None: ...

    def checkout_branch(self, name: str) -> None: ...

    def checkout_branch_at_revision(self, name: str, revision: str) -> None: ...

    def sync_status(self, branch: str) -> RepoStatus: ...

    def hash_distance(self, older: str, newer: str) -> int: ...

    def latest_hash_for_branch(self, branch: str) -> str: ...


class CheckoutGuard:
    """Record the secrets repo's branch/hash and restore it on exit.

    Restoration runs on every exit path: normal completion, early
    return and exceptions. A failure while restoring is raised unless
    the block is already unwinding from another exception, in which
    case it is logged and the original exception wins.

    Usage:
        with CheckoutGuard(repo):
            repo.checkout_branch("develop")
            ...
    """

    def __init__(self, gateway: SecretsRepoGateway) -> None:
        self.gateway = gateway
        self.branch: Optional[str] = None
        self.revision: Optional[str] = None

    def __enter__(self) -> "CheckoutGuard":
        self.branch = self.gateway.current_branch()
        self.revision = self.gateway.current_hash()
        logger.debug("Captured secrets repo at %s (%s)", self.branch, self.revision)
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        try:
            self.gateway.checkout_branch_at_revision(self.branch, self.revision)
            logger.debug("Restored secrets repo to %s (%s)", self.branch, self.revision)
        except Exception:
            if exc_type is None:
                raise
            logger.error(
                "Unable to roll back secrets repo to %s (%s)",
                self.branch, self.revision, exc_info=True,
            )
        return False


class GitSecretsRepo:
    """``SecretsRepoGateway`` backed by the ``git`` executable.

    Args:
        path: Location of the local secrets clone.
        remote: Remote whose branches are the source of truth.
    """

    def __init__(self, path: Path, remote: str = "origin") -> None:
        self.path = path.expanduser()
        self.remote = remote

    # -- plumbing ---------------------------------------------------------

    def _git(self, *args: str) -> str:
        """Run a git command in the secrets repo and return stripped stdout."""
        cmd = ["git", *args]
        try:
            result = subprocess.run(
                cmd, capture_output=True, text=True,
                check=False, cwd=str(self.find_repo_path()),
            )
        except OSError as exc:
            raise GitCommandError(cmd, -1, str(exc)) from exc
        if result.returncode != 0:
            logger.debug("Git command failed: %s -> %s", " ".join(cmd), result.stderr)
            raise GitCommandError(cmd, result.returncode, result.stderr)
        return result.stdout.strip()

    def _has_ref(self, ref: str) -> bool:
        try:
            self._git("rev-parse", "--verify", "--quiet", ref)
        except GitCommandError:
            return False
        return True

    # -- queries ----------------------------------------------------------

    def find_repo_path(self) -> Path:
        if not (self.path / ".git").exists():
            raise SecretsNotPresent(
                f"No secrets repository could be found at {self.path}"
            )
        return self.path

    def current_branch(self) -> str:
        return self._git("rev-parse", "--abbrev-ref", "HEAD")

    def current_hash(self) -> str:
        return self._git("rev-parse", "HEAD")

    def list_branches(self) -> set[str]:
        output = self._git("for-each-ref", "--format=%(refname:short)", "refs/heads")
        return {line.strip() for line in output.splitlines() if line.strip()}

    def latest_hash_for_branch(self, branch: str) -> str:
        """Tip of *branch* on the remote, or the local tip if it has no remote."""
        remote_ref = f"refs/remotes/{self.remote}/{branch}"
        if self._has_ref(remote_ref):
            return self._git("rev-parse", remote_ref)
        return self._git("rev-parse", f"refs/heads/{branch}")

    def hash_distance(self, older: str, newer: str) -> int:
        """Commits reachable from *newer* but not from *older*."""
        output = self._git("rev-list", "--count", f"{older}..{newer}")
        try:
            return int(output)
        except ValueError as exc:
            raise GitStatusParsingError(f"Unexpected commit count: {output!r}") from exc

    def sync_status(self, branch: str) -> RepoStatus:
        """Compare the local branch with its remote-tracking counterpart."""
        remote_ref = f"refs/remotes/{self.remote}/{branch}"
        if not self._has_ref(remote_ref):
            raise GitStatusUnknownError(
                f"Branch {branch!r} has no counterpart on {self.remote}"
            )
        output = self._git(
            "rev-list", "--left-right", "--count", f"refs/heads/{branch}...{remote_ref}"
        )
        return parse_left_right_count(output)

    # -- mutations --------------------------------------------------------

    def fetch_latest(self) -> None:
        self._git("fetch", "--all", "--prune")

    def checkout_branch(self, name: str) -> None:
        self._git("checkout", "--quiet", name)

    def checkout_branch_at_revision(self, name: str, revision: str) -> None:
        """Check out *name*, detaching at *revision* if the branch tip differs.

        The branch ref itself is never moved.
        """
        if name != DETACHED_HEAD:
            self.checkout_branch(name)
        if self.current_hash() != revision:
            self._git("checkout", "--quiet", "--detach", revision)


def parse_left_right_count(output: str) -> RepoStatus:
    """Turn ``git rev-list --left-right --count`` output into a RepoStatus.

    Left is commits only the local branch has, right is commits only the
    remote has. History that diverged both ways has no single direction
    and is reported as unknown.
    """
    parts = output.split()
    if len(parts) != 2:
        raise GitStatusParsingError(f"Unexpected status output: {output!r}")
    try:
        ahead, behind = (int(part) for part in parts)
    except ValueError as exc:
        raise GitStatusParsingError(f"Unexpected status output: {output!r}") from exc

    if ahead and behind:
        raise GitStatusUnknownError(
            f"Local and remote history have diverged ({ahead} ahead, {behind} behind)"
        )
    if ahead:
        return RepoStatus(sync_state=RepoSyncState.AHEAD, distance=ahead)
    if behind:
        return RepoStatus(sync_state=RepoSyncState.BEHIND, distance=behind)
    return RepoStatus(sync_state=RepoSyncState.SYNCED, distance=0)
