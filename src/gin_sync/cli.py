"""Command line interface for GIN Sync."""

import logging
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from . import __version__
from .annex.lifecycle import AnnexLifecycle
from .config import Config, ConfigManager
from .exceptions import GinSyncError
from .models import Repository
from .repos.store import JsonRepositoryStore
from .search.cipher import decrypt_string, encrypt_string
from .search.dispatcher import IndexDispatcher
from .search.rebuilder import IndexRebuilder

console = Console()


def _get_config(ctx: click.Context) -> Config:
    config: Config = ctx.obj["config"]
    return config


@click.group()
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to config.json (default: .gin-sync/config.json)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.version_option(version=__version__, prog_name="gin-sync")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], verbose: bool) -> None:
    """GIN Sync - keep the search index and git-annex sidecars in step.

    \b
    Examples:
      gin-sync index 42 alice/myrepo
      gin-sync rebuild-index
      gin-sync annex setup /data/repos/alice/myrepo.git
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s:%(name)s:%(message)s",
    )
    if not verbose:
        logging.getLogger("httpx").setLevel(logging.WARNING)

    try:
        ctx.obj["config"] = ConfigManager(config_path).load()
    except GinSyncError as e:
        raise click.ClickException(str(e))


@cli.command()
@click.argument("repo_id", type=int)
@click.argument("full_name")
@click.pass_context
def index(ctx: click.Context, repo_id: int, full_name: str) -> None:
    """Send one index request for REPO_ID (FULL_NAME is owner/name) and wait for it."""
    config = _get_config(ctx)
    if not config.search.enabled:
        console.print("[yellow]Indexing not enabled (no index_url configured)[/yellow]")
        return

    try:
        repo = Repository.from_full_name(repo_id, full_name)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="FULL_NAME")

    with IndexDispatcher(config.search) as dispatcher:
        result = dispatcher.dispatch(repo)

    if not result.success:
        raise click.ClickException(
            f"Index request for [{result.repo_id}: {result.repo_path}] failed: {result.error}"
        )
    console.print(f"[green]Index request sent for {result.repo_path}[/green]")


@cli.command("rebuild-index")
@click.option(
    "--registry",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Repository list JSON (default: repository_registry from config)",
)
@click.pass_context
def rebuild_index(ctx: click.Context, registry: Optional[Path]) -> None:
    """Send every repository in the registry to the search service."""
    config = _get_config(ctx)
    registry = registry or config.repository_registry
    if registry is None:
        raise click.ClickException(
            "No repository registry given (use --registry or set repository_registry)"
        )

    dispatcher = IndexDispatcher(config.search)
    try:
        count = IndexRebuilder(dispatcher, JsonRepositoryStore(registry)).rebuild_index()
    except GinSyncError as e:
        raise click.ClickException(str(e))
    finally:
        # Let scheduled dispatches finish before the process exits
        dispatcher.shutdown(wait=True)

    console.print(f"Scheduled {count} index requests")


@cli.command()
@click.argument("text")
@click.pass_context
def encrypt(ctx: click.Context, text: str) -> None:
    """Encrypt TEXT with the configured search key."""
    try:
        click.echo(encrypt_string(_get_config(ctx).search.key_bytes, text))
    except GinSyncError as e:
        raise click.ClickException(str(e))


@cli.command()
@click.argument("token")
@click.pass_context
def decrypt(ctx: click.Context, token: str) -> None:
    """Decrypt TOKEN with the configured search key."""
    try:
        click.echo(decrypt_string(_get_config(ctx).search.key_bytes, token))
    except GinSyncError as e:
        raise click.ClickException(str(e))


@cli.group()
@click.pass_context
def annex(ctx: click.Context) -> None:
    """Manage git-annex sidecars of hosted repositories."""
    ctx.obj["lifecycle"] = AnnexLifecycle(_get_config(ctx).annex)


_repo_dir = click.argument(
    "path", type=click.Path(exists=True, file_okay=False, path_type=Path)
)


@annex.command()
@_repo_dir
@click.pass_context
def setup(ctx: click.Context, path: Path) -> None:
    """Initialise and configure the annex at PATH (safe to re-run)."""
    lifecycle: AnnexLifecycle = ctx.obj["lifecycle"]
    try:
        report = lifecycle.setup(path)
    except GinSyncError as e:
        raise click.ClickException(str(e))

    if report.ok:
        console.print(f"[green]Annex configured in {path}[/green]")
        return
    if not report.completed:
        console.print(f"[yellow]Annex setup incomplete in {path}[/yellow]")
    for step in report.failed_steps:
        console.print(f"[yellow]Step failed: {step}[/yellow]")


@annex.command()
@_repo_dir
@click.pass_context
def sync(ctx: click.Context, path: Path) -> None:
    """Synchronise annexed content at PATH with its remotes."""
    lifecycle: AnnexLifecycle = ctx.obj["lifecycle"]
    try:
        lifecycle.sync(path)
    except GinSyncError as e:
        raise click.ClickException(str(e))
    console.print(f"[green]Annex content synchronised in {path}[/green]")


@annex.command()
@_repo_dir
@click.pass_context
def teardown(ctx: click.Context, path: Path) -> None:
    """Uninit the annex at PATH, fixing permissions if uninit fails."""
    lifecycle: AnnexLifecycle = ctx.obj["lifecycle"]
    failures = lifecycle.teardown(path)
    for failure in failures:
        console.print(f"[red]{failure}[/red]")
    if failures:
        raise click.ClickException(
            f"Could not fix permissions on {len(failures)} path(s) in {path}"
        )
    console.print(f"Annex torn down in {path}")


@annex.command()
@_repo_dir
@click.confirmation_option(prompt="Delete the repository directory?")
@click.pass_context
def purge(ctx: click.Context, path: Path) -> None:
    """Tear down the annex at PATH and delete the directory."""
    lifecycle: AnnexLifecycle = ctx.obj["lifecycle"]
    try:
        lifecycle.purge(path)
    except OSError as e:
        raise click.ClickException(f"Failed to remove {path}: {e}")
    console.print(f"Removed {path}")


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
