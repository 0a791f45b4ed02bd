"""
update-qtile — CLI entrypoint.

Usage:
    update-qtile update --branch next --restart
    update-qtile update --fork alice --commit abc123
    update-qtile source --tag v0.29.0
    update-qtile config show
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click
from pydantic import ValidationError

from update_qtile import __version__
from update_qtile.core.observability.logging_config import setup_logging


def _selector_options(func):
    """Shared --fork/--path/--commit/--branch/--tag options."""
    options = [
        click.option("--fork", "-f", default=None, help="GitHub owner of the qtile fork (default: qtile)."),
        click.option("--path", "-p", default=None, help="Local qtile checkout (excludes --fork)."),
        click.option("--commit", "-c", default=None, help="Commit to build."),
        click.option("--branch", "-b", default=None, help="Branch to build."),
        click.option("--tag", "-t", default=None, help="Tag to build."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _build_selectors(fork, path, commit, branch, tag):
    from update_qtile.core.models.selectors import SelectorSet

    try:
        return SelectorSet(fork=fork, path=path, commit=commit, branch=branch, tag=tag)
    except ValidationError as e:
        messages = "; ".join(err["msg"].removeprefix("Value error, ") for err in e.errors())
        raise click.UsageError(messages) from e


def _load_settings(ctx: click.Context):
    from update_qtile.core.config.loader import ConfigError, load_settings

    try:
        return load_settings(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="update-qtile")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Only show errors.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=False, dir_okay=False),
    default=None,
    help="Path to config.yml (default: $XDG_CONFIG_HOME/update-qtile/config.yml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """update-qtile — rebuild qtile-git from any fork, branch, tag or commit."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("UPDATE_QTILE_LOG_LEVEL", "INFO")

    setup_logging(
        level=level,
        log_file=os.environ.get("UPDATE_QTILE_LOG_FILE"),
        log_file_level=os.environ.get("UPDATE_QTILE_LOG_FILE_LEVEL"),
        quiet_third_party=not debug,
    )


@cli.command()
@_selector_options
@click.option("--restart", "-r", is_flag=True, help="Restart the running qtile after installing.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def update(
    ctx: click.Context,
    fork: str | None,
    path: str | None,
    commit: str | None,
    branch: str | None,
    tag: str | None,
    restart: bool,
    as_json: bool,
) -> None:
    """Rebuild and reinstall qtile-git from the selected source."""
    from update_qtile.core.use_cases.update import run_update

    selectors = _build_selectors(fork, path, commit, branch, tag)
    settings = _load_settings(ctx)
    result = run_update(selectors, settings=settings, restart=restart)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.ok else 1)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red", err=True)
        sys.exit(1)

    report = result.report
    if report is None:
        click.secho("❌ update produced no build report", fg="red", err=True)
        sys.exit(1)
    if not report.ok:
        click.secho(f"❌ {report.error}", fg="red", err=True)
        sys.exit(1)

    click.secho(f"✅ qtile installed from {result.source}", fg="green", bold=True)
    if report.package:
        click.echo(f"   📦 {report.package.name}")
    if report.removed:
        click.echo(f"   🧹 removed {len(report.removed)} stale file(s)")
    click.echo(f"   📄 {report.log_path}")
    if report.restarted:
        click.echo("   🔄 qtile restarted")


@cli.command()
@_selector_options
@click.pass_context
def source(
    ctx: click.Context,
    fork: str | None,
    path: str | None,
    commit: str | None,
    branch: str | None,
    tag: str | None,
) -> None:
    """Print the source reference the PKGBUILD would be pointed at."""
    from update_qtile.core.services.source_locator import resolve_source

    selectors = _build_selectors(fork, path, commit, branch, tag)
    click.echo(resolve_source(selectors, _load_settings(ctx)))


@cli.command()
@click.pass_context
def clean(ctx: click.Context) -> None:
    """Remove the cached AUR checkout."""
    from update_qtile.core.errors import CacheError
    from update_qtile.core.use_cases.update import clean_cache

    try:
        path = clean_cache(_load_settings(ctx))
    except CacheError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)
    click.secho(f"🧹 {path} is clean", fg="green")


@cli.group()
def config() -> None:
    """Configuration commands."""


@config.command("show")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_show(ctx: click.Context, as_json: bool) -> None:
    """Show the effective settings."""
    settings = _load_settings(ctx)
    data = settings.model_dump(mode="json")
    data["working_dir"] = str(settings.working_dir)
    data["upstream_url"] = settings.upstream_url

    if as_json:
        click.echo(json.dumps(data, indent=2))
        return

    click.secho("⚙️  update-qtile settings", fg="cyan", bold=True)
    for key, value in data.items():
        if isinstance(value, list):
            click.echo(f"   {key}:")
            for item in value:
                click.echo(f"     • {item}")
        else:
            click.echo(f"   {key}: {value}")


if __name__ == "__main__":
    cli()
