"""Shared test fixtures."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from ripple.config import RippleConfig
from ripple.graph import build_graph
from ripple.models import PackageGraph, RawPackage
from ripple.shell import Shell


def raw(
    name: str,
    path: str,
    *,
    version: str = "1.0.0",
    deps: list[str] | None = None,
    dev_deps: list[str] | None = None,
    scripts: dict[str, str] | None = None,
) -> RawPackage:
    """Build a RawPackage from a minimal package.json."""
    manifest: dict = {"name": name, "version": version}
    if deps:
        manifest["dependencies"] = {d: "*" for d in deps}
    if dev_deps:
        manifest["devDependencies"] = {d: "*" for d in dev_deps}
    if scripts:
        manifest["scripts"] = scripts
    return RawPackage(path=path, manifest=manifest)


def write_manifest(root: Path, rel: str, manifest: dict) -> Path:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(manifest))
    return path


@pytest.fixture
def chain_graph() -> PackageGraph:
    """@x/c uses @x/b, which uses @x/a."""
    return build_graph(
        {
            "@x/a": raw("@x/a", "repo/a/package.json"),
            "@x/b": raw("@x/b", "repo/b/package.json", deps=["@x/a"]),
            "@x/c": raw("@x/c", "repo/c/package.json", deps=["@x/b"]),
        },
        "@x",
    )


@pytest.fixture
def diamond_graph() -> PackageGraph:
    """@x/left and @x/right use @x/bottom; @x/top uses both."""
    return build_graph(
        {
            "@x/bottom": raw("@x/bottom", "repo/bottom/package.json"),
            "@x/left": raw("@x/left", "repo/left/package.json", deps=["@x/bottom"]),
            "@x/right": raw(
                "@x/right", "repo/right/package.json", dev_deps=["@x/bottom"]
            ),
            "@x/top": raw(
                "@x/top", "repo/top/package.json", deps=["@x/left", "@x/right"]
            ),
        },
        "@x",
    )


@pytest.fixture
def config() -> RippleConfig:
    """Config for the @x test workspace with a single core package."""
    return RippleConfig(
        namespace="@x",
        manifests=["repo/**/package.json"],
        core_packages=["@x/core"],
        core_base_version="2.0.0",
        version_env="RIPPLE_VERSION",
    )


@pytest.fixture
def mock_shell(tmp_path: Path) -> MagicMock:
    """A Shell stand-in with an empty environment rooted at tmp_path."""
    shell = MagicMock(spec=Shell)
    shell.root = tmp_path
    shell.env = {}
    shell.path.side_effect = lambda cwd: tmp_path / cwd
    return shell
