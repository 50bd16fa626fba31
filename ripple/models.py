"""Data models for ripple.

These Pydantic models represent the core data structures used throughout
the setup and release pipelines.
"""

from __future__ import annotations

import posixpath
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class RawPackage(BaseModel):
    """A discovered manifest before graph construction.

    Attributes:
        path: Manifest path relative to the workspace root (posix form).
        manifest: Parsed package.json contents.
    """

    path: str
    manifest: dict[str, Any]


class PackageRecord(BaseModel):
    """A package in the workspace dependency graph.

    Attributes:
        name: Package name from the manifest.
        path: Manifest path relative to the workspace root.
        version: Current version string from the manifest.
        uses: Namespace-scoped runtime dependencies.
        uses_dev: Namespace-scoped development dependencies.
        used_by: Packages that list this one in ``dependencies``.
        used_by_dev: Packages that list this one in ``devDependencies``.
        manifest: Parsed package.json contents.
    """

    name: str
    path: str
    version: str
    uses: list[str] = Field(default_factory=list)
    uses_dev: list[str] = Field(default_factory=list)
    used_by: list[str] = Field(default_factory=list)
    used_by_dev: list[str] = Field(default_factory=list)
    manifest: dict[str, Any] = Field(default_factory=dict)

    @property
    def directory(self) -> str:
        """Directory holding the manifest, relative to the workspace root."""
        return posixpath.dirname(self.path)

    @property
    def all_uses(self) -> list[str]:
        return [*self.uses, *self.uses_dev]

    @property
    def all_used_by(self) -> list[str]:
        return [*self.used_by, *self.used_by_dev]

    def has_script(self, name: str) -> bool:
        scripts = self.manifest.get("scripts")
        return isinstance(scripts, dict) and bool(scripts.get(name))


PackageGraph = dict[str, PackageRecord]


class Commit(BaseModel):
    """The latest commit of one repository.

    Attributes:
        dir: Repository directory relative to the workspace root.
        date: Author date.
        hash: Commit hash.
        parents: Parent hashes; more than one means a merge commit.
    """

    dir: str
    date: datetime
    hash: str
    parents: list[str] = Field(default_factory=list)

    @property
    def is_merge(self) -> bool:
        return len(self.parents) > 1


class PublishTarget(BaseModel):
    """The resolved publish action for a single package."""

    name: str
    directory: str
    version: str
    tag: str
    core: bool = False
