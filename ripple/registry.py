"""Package registry commands.

Thin wrappers that fill the configured command templates and run them in
the right directory.
"""

from __future__ import annotations

from .config import CommandsConfig
from .shell import Shell


def remote_alpha_version(shell: Shell, commands: CommandsConfig, name: str) -> str:
    """Return the version published under the "alpha" dist-tag, or ""."""
    return shell.capture(".", commands.registry_version.format(name=name)).strip()


def upgrade_scope(
    shell: Shell, commands: CommandsConfig, directory: str, namespace: str
) -> None:
    """Upgrade a package's namespace dependencies to their latest versions."""
    shell.run(directory, commands.upgrade.format(namespace=namespace))


def publish_package(
    shell: Shell, commands: CommandsConfig, directory: str, tag: str, version: str
) -> None:
    """Publish the package in ``directory`` with an explicit version and tag."""
    shell.run(directory, commands.publish.format(tag=tag, version=version))
