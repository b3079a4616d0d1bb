"""Shared test fixtures for skconfigure."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional

import pytest

from skconfigure.crypto import FernetCrypto
from skconfigure.errors import GitCommandError
from skconfigure.keys import KeysFile
from skconfigure.models import RepoStatus, RepoSyncState
from skconfigure.project import ProjectConfig
from skconfigure.workflows import ConfigureEngine

# Commit history used by most workflow tests:
#   main:    A -> B -> C
#   develop: A -> D
COMMITS = {
    "A": {"secret.yml": b"token: a\n", "other.json": b"{}"},
    "B": {"secret.yml": b"token: b\n", "other.json": b"{}"},
    "C": {"secret.yml": b"token: c\n", "other.json": b'{"x": 1}'},
    "D": {"secret.yml": b"token: d\n", "other.json": b"{}"},
}
HISTORY = {"main": ["A", "B", "C"], "develop": ["A", "D"]}


class FakeSecretsRepo:
    """In-memory ``SecretsRepoGateway`` that writes each commit's files on checkout.

    Args:
        root: Directory standing in for the clone's work tree.
        branch: Branch checked out initially.
        status: What ``sync_status`` reports.
        failures: Method name -> exception raised when it is called.
    """

    def __init__(
        self,
        root: Path,
        branch: str = "develop",
        status: Optional[RepoStatus] = None,
        failures: Optional[dict[str, Exception]] = None,
    ) -> None:
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)
        (self.root / ".git").mkdir(exist_ok=True)
        self.history = {name: list(commits) for name, commits in HISTORY.items()}
        self.remote_tips = {name: commits[-1] for name, commits in self.history.items()}
        self.status = status or RepoStatus(sync_state=RepoSyncState.SYNCED)
        self.failures = failures or {}
        self.calls: list[tuple] = []
        self.branch = branch
        self.head = self.history[branch][-1]
        self._materialize()

    def _record(self, name: str, *args) -> None:
        self.calls.append((name, *args))
        if name in self.failures:
            raise self.failures[name]

    def _materialize(self) -> None:
        for rel, content in COMMITS[self.head].items():
            path = self.root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)

    @property
    def position(self) -> tuple[str, str]:
        return self.branch, self.head

    def find_repo_path(self) -> Path:
        return self.root

    def current_branch(self) -> str:
        self._record("current_branch")
        return self.branch

    def current_hash(self) -> str:
        self._record("current_hash")
        return self.head

    def list_branches(self) -> set[str]:
        self._record("list_branches")
        return set(self.history)

    def fetch_latest(self) -> None:
        self._record("fetch_latest")

    def checkout_branch(self, name: str) -> None:
        self._record("checkout_branch", name)
        if name not in self.history:
            raise GitCommandError(["git", "checkout", name], 1, f"pathspec '{name}' did not match")
        self.branch = name
        self.head = self.history[name][-1]
        self._materialize()

    def checkout_branch_at_revision(self, name: str, revision: str) -> None:
        self._record("checkout_branch_at_revision", name, revision)
        if name != "HEAD":
            self.branch = name
            self.head = self.history[name][-1]
        if self.head != revision:
            self.branch = "HEAD"
            self.head = revision
        self._materialize()

    def sync_status(self, branch: str) -> RepoStatus:
        self._record("sync_status", branch)
        return self.status

    def hash_distance(self, older: str, newer: str) -> int:
        self._record("hash_distance", older, newer)
        for commits in self.history.values():
            if older in commits and newer in commits:
                return max(commits.index(newer) - commits.index(older), 0)
        raise GitCommandError(["git", "rev-list"], 128, "bad revision")

    def latest_hash_for_branch(self, branch: str) -> str:
        self._record("latest_hash_for_branch", branch)
        return self.remote_tips[branch]


class ScriptedPrompter:
    """``Prompter`` that replays canned answers and records the questions."""

    def __init__(
        self,
        confirms: Iterable[bool] = (),
        selections: Iterable[str] = (),
        texts: Iterable[str] = (),
    ) -> None:
        self.confirms = list(confirms)
        self.selections = list(selections)
        self.texts = list(texts)
        self.asked: list[str] = []
        self.confirm_defaults: list[bool] = []

    def confirm(self, message: str, default: bool = True) -> bool:
        self.asked.append(message)
        self.confirm_defaults.append(default)
        assert self.confirms, f"unexpected confirm: {message}"
        return self.confirms.pop(0)

    def select(self, options, default: str) -> str:
        self.asked.append(f"select:{default}:{','.join(sorted(options))}")
        assert self.selections, "unexpected select"
        return self.selections.pop(0)

    def prompt_text(self, message: str) -> str:
        self.asked.append(message)
        assert self.texts, f"unexpected prompt: {message}"
        return self.texts.pop(0)


@pytest.fixture
def crypto() -> FernetCrypto:
    return FernetCrypto()


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """Provide an empty project directory."""
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def secrets_repo(tmp_path: Path) -> FakeSecretsRepo:
    """Fake secrets clone checked out on ``develop`` at ``D``."""
    return FakeSecretsRepo(tmp_path / "secrets")


@pytest.fixture
def keys(secrets_repo: FakeSecretsRepo, crypto: FernetCrypto) -> KeysFile:
    """Keys file with a key for ``demo`` already present."""
    store = KeysFile(secrets_repo.root / "keys.json", crypto)
    store.generate_key("demo")
    return store


@pytest.fixture
def make_repo(tmp_path: Path):
    """Build a FakeSecretsRepo over the same work tree as ``secrets_repo``."""

    def _make(**kwargs) -> FakeSecretsRepo:
        return FakeSecretsRepo(tmp_path / "secrets", **kwargs)

    return _make


@pytest.fixture
def make_engine(project_root: Path, secrets_repo: FakeSecretsRepo, keys: KeysFile, crypto: FernetCrypto):
    """Build a ConfigureEngine with a scripted prompter."""

    def _make(
        repo: Optional[FakeSecretsRepo] = None,
        confirms: Iterable[bool] = (),
        selections: Iterable[str] = (),
        texts: Iterable[str] = (),
    ) -> ConfigureEngine:
        return ConfigureEngine(
            project=ProjectConfig(project_root),
            repo=repo or secrets_repo,
            keys=keys,
            crypto=crypto,
            prompter=ScriptedPrompter(confirms, selections, texts),
        )

    return _make
