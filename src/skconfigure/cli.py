"""
SKConfigure CLI — apply and update a project's encrypted secrets.

Entry point: skconfigure.cli:main (installed as ``configure``).
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import NoReturn, Optional

import click
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .crypto import FernetCrypto
from .errors import ConfigureError
from .git import GitSecretsRepo
from .keys import KEYS_FILENAME, KeysFile
from .models import ConfigurationFile
from .project import ProjectConfig, find_project_root
from .prompts import RichPrompter, console
from .settings import load_settings
from .workflows import ConfigureEngine

logger = logging.getLogger("skconfigure.cli")

LOG_LEVELS = [logging.WARNING, logging.INFO, logging.DEBUG]


def _configure_logging(verbose: int) -> None:
    level = LOG_LEVELS[min(verbose, len(LOG_LEVELS) - 1)]
    logging.basicConfig(level=level, format="%(name)s: %(message)s")
    logging.getLogger("skconfigure").setLevel(level)


def _build_engine(ctx: click.Context) -> ConfigureEngine:
    """Wire the workflow engine from settings and CLI overrides."""
    settings = load_settings()
    opts = ctx.obj or {}
    if opts.get("secrets_repo"):
        settings.secrets_repo = Path(opts["secrets_repo"]).expanduser()
    if opts.get("project_root"):
        settings.project_root = Path(opts["project_root"]).expanduser()

    root = settings.project_root or find_project_root()
    repo = GitSecretsRepo(settings.secrets_repo, remote=settings.remote)
    crypto = FernetCrypto()
    keys = KeysFile(repo.path / KEYS_FILENAME, crypto)
    logger.debug("Engine initialized (project %s, secrets %s)", root, repo.path)
    return ConfigureEngine(
        project=ProjectConfig(root, settings.config_filename),
        repo=repo,
        keys=keys,
        crypto=crypto,
        prompter=RichPrompter(console),
    )


def _fail(message: str) -> NoReturn:
    console.print(f"[bold red]Error:[/] {message}")
    sys.exit(1)


def _load_initialized(engine: ConfigureEngine) -> ConfigurationFile:
    configuration = engine.project.load()
    if configuration.is_empty():
        _fail(f"No configuration found at {engine.project.path}. Run [cyan]configure init[/] first.")
    return configuration


def _render_configuration(configuration: ConfigurationFile, path: Path) -> None:
    console.print(
        Panel(
            f"Project: [cyan]{configuration.project_name or '[dim]unset[/]'}[/]\n"
            f"Branch: [cyan]{configuration.branch or '[dim]unset[/]'}[/]\n"
            f"Pinned Hash: [cyan]{configuration.pinned_hash or '[dim]unset[/]'}[/]",
            title=str(path),
            border_style="cyan",
        )
    )
    if not configuration.files_to_copy:
        console.print("  [dim]No files configured.[/]")
        return
    table = Table(title="Files", show_lines=False)
    table.add_column("Source (secrets repo)", style="cyan")
    table.add_column("Destination (project)")
    for mapping in configuration.files_to_copy:
        table.add_row(mapping.source, mapping.destination)
    console.print(table)


@click.group()
@click.version_option(version=__version__, prog_name="configure")
@click.option("-v", "--verbose", count=True, help="Increase log verbosity (-v info, -vv debug).")
@click.option("--secrets-repo", type=click.Path(), default=None,
              help="Path to the local secrets repository clone.")
@click.option("--project-root", type=click.Path(), default=None,
              help="Project root. Defaults to the enclosing git work tree.")
@click.pass_context
def main(ctx: click.Context, verbose: int, secrets_repo: Optional[str],
         project_root: Optional[str]):
    """Apply configuration secrets with strong encryption.

    Secrets live in a separate git repository. Each project pins one
    commit of it and keeps encrypted copies of the files it needs.
    """
    _configure_logging(verbose)
    ctx.obj = {"secrets_repo": secrets_repo, "project_root": project_root}


@main.command()
@click.option("--backup", is_flag=True, help="Keep a .bak copy of files that change.")
@click.pass_context
def apply(ctx: click.Context, backup: bool):
    """Decrypt the current secrets for this project."""
    try:
        engine = _build_engine(ctx)
        configuration = _load_initialized(engine)
        written = engine.apply(configuration, backup=backup)
    except ConfigureError as exc:
        _fail(str(exc))
    console.print(f"  [green]Applied {len(written)} secret file(s)[/]")


@main.command()
@click.option("--backup", is_flag=True, help="Keep a .bak copy of files that change.")
@click.pass_context
def update(ctx: click.Context, backup: bool):
    """Update this project's encrypted secrets to the latest version.

    Fetches the secrets repository, lets you pick the branch to track,
    offers to move the pinned commit to that branch's tip, re-encrypts
    every configured file and decrypts them into place. The secrets
    repository is left on the branch and commit it started on.
    """
    try:
        engine = _build_engine(ctx)
        configuration = _load_initialized(engine)
        completed = engine.update(configuration, backup=backup)
    except ConfigureError as exc:
        _fail(str(exc))
    if completed:
        console.print("  [green]Done[/]")


@main.command()
@click.pass_context
def init(ctx: click.Context):
    """Change secrets settings, step by step."""
    try:
        engine = _build_engine(ctx)
        configuration = engine.project.load()
        configuration = engine.init(configuration)
    except ConfigureError as exc:
        _fail(str(exc))
    console.print(f"\n  [green]Configuration written to {engine.project.path}[/]\n")
    _render_configuration(configuration, engine.project.path)


@main.command()
@click.pass_context
def validate(ctx: click.Context):
    """Ensure the .configure file is valid."""
    try:
        engine = _build_engine(ctx)
        configuration = engine.validate()
    except ConfigureError as exc:
        _fail(str(exc))
    _render_configuration(configuration, engine.project.path)
    if configuration.is_empty():
        _fail("Configuration is empty. Run [cyan]configure init[/] to set it up.")


@main.command("create-key")
@click.pass_context
def create_key(ctx: click.Context):
    """Create a new encryption key for use with this project."""
    try:
        engine = _build_engine(ctx)
        configuration = engine.project.load()
        if configuration.needs_project_name():
            _fail("No project name configured. Run [cyan]configure init[/] first.")
        engine.create_key(configuration)
    except ConfigureError as exc:
        _fail(str(exc))
    console.print(f"  [green]Created encryption key for {configuration.project_name}[/]")
