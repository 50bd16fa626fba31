"""CLI entry point for ripple."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from ripple.bootstrap import run_setup
from ripple.config import CONFIG_FILE, RippleConfig, load_config
from ripple.errors import RippleError
from ripple.pipeline import run_release
from ripple.runner import DelayConfirmation, NoConfirmation
from ripple.shell import Shell

TEMPLATES_DIR = Path(__file__).parent / "templates"


def _load(ctx: click.Context) -> tuple[RippleConfig, Shell]:
    root: Path = ctx.obj["root"]
    try:
        config = load_config(root, ctx.obj["config"])
    except RippleError as exc:
        raise click.ClickException(str(exc)) from exc
    return config, Shell(root)


@click.group()
@click.version_option(package_name="ripple")
@click.option(
    "--root",
    type=click.Path(file_okay=False, path_type=Path),
    default=".",
    show_default=True,
    help="Workspace root holding the sibling repositories.",
)
@click.option(
    "--config",
    "config_file",
    default=CONFIG_FILE,
    show_default=True,
    help="Configuration file, relative to the workspace root.",
)
@click.option("-v", "--verbose", is_flag=True, help="Show debug output.")
@click.pass_context
def cli(ctx: click.Context, root: Path, config_file: str, verbose: bool) -> None:
    """Bootstrap a multi-repo workspace and release what changed, in order."""
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    if verbose:
        logging.getLogger("ripple").setLevel(logging.DEBUG)
    ctx.ensure_object(dict)
    ctx.obj["root"] = root.resolve()
    ctx.obj["config"] = config_file


@cli.command()
@click.option("--force", is_flag=True, help="Overwrite an existing config file.")
@click.pass_context
def init(ctx: click.Context, force: bool) -> None:
    """Scaffold a ripple.toml into the workspace root."""
    root: Path = ctx.obj["root"]

    # Sanity checks
    if not (root / ".git").exists():
        raise click.ClickException("Not a git repository. Run from the workspace root.")

    dest = root / ctx.obj["config"]
    if dest.exists() and not force:
        raise click.ClickException(
            f"{dest.name} already exists. Pass --force to overwrite it."
        )

    template = TEMPLATES_DIR / "ripple.toml"
    dest.write_text(template.read_text())

    click.echo(f"✓ Wrote config to {dest.relative_to(root)}")
    click.echo()
    click.echo("Next steps:")
    click.echo("  1. Adjust namespace, repos and manifests to your workspace")
    click.echo("  2. Bootstrap a checkout:")
    click.echo("       ripple setup")
    click.echo("  3. Test, then publish, what changed:")
    click.echo("       ripple release")
    click.echo("       ripple release --publish")


@cli.command()
@click.pass_context
def setup(ctx: click.Context) -> None:
    """Clone or pull every repository, then install and build its packages."""
    config, shell = _load(ctx)
    try:
        run_setup(config, shell)
    except RippleError as exc:
        raise click.ClickException(str(exc)) from exc


@cli.command()
@click.option("--publish", is_flag=True, help="Bump and publish instead of testing.")
@click.option(
    "--all-repos",
    is_flag=True,
    help="Use the latest commit of every repository, not just the newest one.",
)
@click.option(
    "-y", "--yes", is_flag=True, help="Skip the pause before publishing (CI)."
)
@click.pass_context
def release(ctx: click.Context, publish: bool, all_repos: bool, yes: bool) -> None:
    """Test (or publish) every package affected by the latest changes."""
    config, shell = _load(ctx)
    confirmation = NoConfirmation() if yes else DelayConfirmation()
    try:
        run_release(
            config,
            shell,
            publish=publish,
            all_repos=all_repos,
            confirmation=confirmation,
        )
    except RippleError as exc:
        raise click.ClickException(str(exc)) from exc
