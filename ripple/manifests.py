"""Package manifest discovery.

Walks the configured globs under the workspace root and parses every
package.json found into a RawPackage keyed by package name.
"""

from __future__ import annotations

import json
import logging
from fnmatch import fnmatch
from pathlib import Path

from .errors import ManifestError
from .models import RawPackage

logger = logging.getLogger(__name__)


def _is_ignored(rel_path: str, ignore: list[str]) -> bool:
    return any(fnmatch(rel_path, pattern) for pattern in ignore)


def find_manifest_paths(root: Path, globs: list[str], ignore: list[str]) -> list[str]:
    """Expand manifest globs into sorted, workspace-relative posix paths."""
    found: set[str] = set()
    for pattern in globs:
        for match in root.glob(pattern):
            if not match.is_file():
                continue
            rel = match.relative_to(root).as_posix()
            if not _is_ignored(rel, ignore):
                found.add(rel)
    return sorted(found)


def load_manifest(path: Path) -> dict:
    """Read and parse a single package.json.

    Raises:
        ManifestError: If the file is unreadable, is not JSON, or does not
                       hold a JSON object.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ManifestError(f"Could not parse {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ManifestError(f"Could not parse {path}: expected a JSON object")
    return data


def discover_manifests(
    root: Path,
    globs: list[str],
    ignore: list[str],
    *,
    log: logging.Logger = logger,
) -> dict[str, RawPackage]:
    """Discover every named package manifest in the workspace.

    Parsing is all-or-nothing: the first malformed manifest aborts.
    Manifests without a ``name`` are skipped.

    Raises:
        ManifestError: If a manifest is malformed or its name is not a string.

    Returns:
        Map of package name to RawPackage.
    """
    packages: dict[str, RawPackage] = {}
    for rel in find_manifest_paths(root, globs, ignore):
        manifest = load_manifest(root / rel)
        name = manifest.get("name")
        if not name:
            log.debug("Skipping %s: no package name", rel)
            continue
        if not isinstance(name, str):
            raise ManifestError(f"Could not parse {rel}: name must be a string")
        if name in packages:
            log.debug("%s redeclared by %s", name, rel)
        packages[name] = RawPackage(path=rel, manifest=manifest)
    return packages
