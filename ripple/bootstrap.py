"""Development environment setup: clone → install → build → clean → reinstall.

This module bootstraps a fresh checkout of the workspace:
1. Clone every sibling repository, or pull it if it is already there
2. Install and build the configured packages with bounded concurrency
3. Run the ordered per-directory setup steps
4. Delete dependency directories that break later installs
5. Run the ordered finalize steps
"""

from __future__ import annotations

import logging
import shutil

from .config import RepoConfig, RippleConfig, SetupConfig, SetupStep
from .runner import run_bounded
from .shell import Shell, step

logger = logging.getLogger(__name__)


def clone_or_pull(shell: Shell, repo: RepoConfig) -> None:
    """Pull ``repo`` if it is checked out, otherwise clone it into the root."""
    if shell.path(repo.name).exists():
        shell.run(repo.name, ["git", "pull", "origin", repo.branch])
    else:
        shell.run(".", ["git", "clone", repo.clone_url])


def init_package(shell: Shell, directory: str, setup: SetupConfig) -> None:
    """Install a package's dependencies, then build it."""
    shell.run(directory, setup.install)
    shell.run(directory, setup.build)


def run_steps(shell: Shell, steps: list[SetupStep]) -> None:
    """Run each step's commands in order, one directory after another."""
    for setup_step in steps:
        for command in setup_step.run:
            shell.run(setup_step.dir, command)


def remove_dirs(
    shell: Shell, dirs: list[str], *, log: logging.Logger = logger
) -> None:
    """Delete directories relative to the workspace root. Missing ones are fine."""
    for rel in dirs:
        target = shell.path(rel)
        if target.exists():
            log.info("  Removing %s", rel)
            shutil.rmtree(target)


def run_setup(config: RippleConfig, shell: Shell) -> None:
    """Bootstrap the development environment.

    Args:
        config: Loaded configuration.
        shell: Execution context rooted at the workspace.
    """
    setup = config.setup

    step("Cloning/pulling repositories")
    run_bounded(
        max(len(config.repos), 1),
        lambda repo: clone_or_pull(shell, repo),
        config.repos,
    )

    step(f"Installing and building {len(setup.packages)} packages")
    run_bounded(
        setup.concurrency,
        lambda directory: init_package(shell, directory, setup),
        setup.packages,
    )

    if setup.steps:
        step("Running setup steps")
        run_steps(shell, setup.steps)

    if setup.cleanup:
        step("Cleaning up dependency directories")
        remove_dirs(shell, setup.cleanup)

    if setup.finalize:
        step("Reinstalling")
        run_steps(shell, setup.finalize)

    logger.info("\n%s\nDone!\n%s", "=" * 60, "=" * 60)
