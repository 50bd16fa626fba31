"""Configuration loading.

Reads ``ripple.toml`` from the workspace root with tomlkit and validates it
into Pydantic models. Every field has a default so an empty file describes
the stock three-repository workspace.
"""

from __future__ import annotations

from pathlib import Path

import tomlkit
from pydantic import BaseModel, Field, ValidationError, field_validator
from tomlkit.exceptions import TOMLKitError

from .errors import ConfigError

CONFIG_FILE = "ripple.toml"


class RepoConfig(BaseModel):
    """A sibling repository checked out under the workspace root."""

    name: str
    org: str = "prisma"
    url: str | None = None
    branch: str = "master"

    @property
    def clone_url(self) -> str:
        return self.url or f"https://github.com/{self.org}/{self.name}.git"


class SetupStep(BaseModel):
    """Commands run sequentially inside one directory."""

    dir: str
    run: list[str] = Field(default_factory=list)


class SetupConfig(BaseModel):
    """How ``ripple setup`` bootstraps a development checkout."""

    packages: list[str] = Field(default_factory=list)
    concurrency: int = Field(default=4, ge=1)
    install: str = "npm i --no-progress --no-package-lock"
    build: str = "yarn build"
    steps: list[SetupStep] = Field(default_factory=list)
    cleanup: list[str] = Field(default_factory=list)
    finalize: list[SetupStep] = Field(default_factory=list)


class CommandsConfig(BaseModel):
    """Command templates. Placeholders are filled with ``str.format``."""

    test: str = "yarn test"
    publish: str = "yarn publish --tag {tag} --new-version {version}"
    upgrade: str = "yarn upgrade --latest --scope {namespace}"
    registry_version: str = "npm info {name}@alpha version"


class RippleConfig(BaseModel):
    """Top-level ripple configuration.

    Attributes:
        namespace: Prefix marking a dependency as in-workspace.
        manifests: Globs (relative to the root) locating package manifests.
        ignore: Globs excluded from manifest discovery.
        repos: Sibling repositories, in the order they are inspected.
        core_packages: Packages released under the shared core version.
        core_base_version: Version the alpha counter is appended to.
        version_env: Environment variable overriding the core version.
        skip_batches: Leading publish batches to leave out of a run.
        publish_concurrency: Packages published at once within a batch.
        latest_delay: Seconds to wait before a non-alpha release.
        alpha_delay: Seconds to wait before an alpha release.
        test_script: Manifest script that marks a package as testable.
        upgrade_retries: Extra attempts for the namespace upgrade step.
    """

    namespace: str = "@prisma"
    manifests: list[str] = Field(
        default_factory=lambda: [
            "lift/package.json",
            "prisma2/cli/**/package.json",
            "photonjs/packages/**/package.json",
        ]
    )
    ignore: list[str] = Field(
        default_factory=lambda: ["**/node_modules/**", "**/examples/**"]
    )
    repos: list[RepoConfig] = Field(
        default_factory=lambda: [
            RepoConfig(name="prisma2"),
            RepoConfig(name="lift"),
            RepoConfig(name="photonjs"),
        ]
    )
    core_packages: list[str] = Field(
        default_factory=lambda: ["prisma2", "@prisma/photon"]
    )
    core_base_version: str = "2.0.0"
    version_env: str = "BUILDKITE_TAG"
    skip_batches: int = Field(default=0, ge=0)
    publish_concurrency: int = Field(default=1, ge=1)
    latest_delay: float = Field(default=10, ge=0)
    alpha_delay: float = Field(default=5, ge=0)
    test_script: str = "test"
    upgrade_retries: int = Field(default=1, ge=0)
    commands: CommandsConfig = Field(default_factory=CommandsConfig)
    setup: SetupConfig = Field(default_factory=SetupConfig)

    @field_validator("namespace")
    @classmethod
    def _namespace_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("namespace must not be empty")
        return value


def load_config(root: Path, filename: str = CONFIG_FILE) -> RippleConfig:
    """Load and validate ripple.toml from the workspace root.

    Raises:
        ConfigError: If the file is missing, is not valid TOML, or fails
                     validation.
    """
    path = root / filename
    if not path.exists():
        raise ConfigError(f"No {filename} found in {root}. Run `ripple init` first.")

    try:
        doc = tomlkit.parse(path.read_text())
    except TOMLKitError as exc:
        raise ConfigError(f"Could not parse {path}: {exc}") from exc

    try:
        return RippleConfig.model_validate(doc.unwrap())
    except ValidationError as exc:
        raise ConfigError(f"Invalid {path}:\n{exc}") from exc
