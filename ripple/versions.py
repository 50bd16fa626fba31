"""Version parsing and bumping utilities.

Handles conversion between version strings and semver objects, with
special handling for incomplete version strings (e.g., "1.0" → "1.0.0"),
and computes the shared alpha version of the core packages.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

import semver

ALPHA_RE = re.compile(r"alpha\.(\d+)")


def parse_version(version_str: str) -> semver.Version:
    """Parse a version string into a semver.Version object.

    Full semver strings, including prerelease/build metadata, are parsed
    as-is. Incomplete versions are padded with zeros:
    - "1" → "1.0.0"
    - "1.2" → "1.2.0"
    - "1.2.3-alpha.4" → "1.2.3-alpha.4"
    """
    version_str = version_str.strip()
    if semver.Version.is_valid(version_str):
        return semver.Version.parse(version_str)
    parts = version_str.split(".")
    # Pad with zeros to ensure we have at least 3 parts
    while len(parts) < 3:
        parts.append("0")
    return semver.Version.parse(".".join(parts[:3]))


def bump_patch(version_str: str) -> str:
    """Increment the patch version and return as a string.

    Prerelease and build metadata are dropped.

    Examples:
        "1.2.3" → "1.2.4"
        "1.0" → "1.0.1"
        "2.0.0-alpha.7" → "2.0.1"
    """
    v = parse_version(version_str)
    return str(semver.Version(v.major, v.minor, v.patch + 1))


def alpha_number(version_str: str) -> int | None:
    """Return N from an "alpha.N" prerelease, or None if there is none."""
    match = ALPHA_RE.search(version_str)
    return int(match.group(1)) if match else None


def next_core_version(versions: Iterable[str], base: str) -> str:
    """Compute the next shared version for the core packages.

    Args:
        versions: Local and remote version strings of the core packages.
                  Blank strings are ignored.
        base: Release the alpha counter belongs to, e.g. "2.0.0".

    Examples:
        next_core_version(["2.0.0-alpha.3", "2.0.0-alpha.5"], "2.0.0")
            → "2.0.0-alpha.6"
    """
    numbers = [
        n for n in (alpha_number(v) for v in versions if v.strip()) if n is not None
    ]
    next_alpha = max(numbers) + 1 if numbers else 1
    return f"{base}-alpha.{next_alpha}"


def release_tag(core_version: str, is_core: bool) -> str:
    """Pick the dist-tag: "alpha" for core packages on an alpha release."""
    return "alpha" if is_core and "alpha" in core_version else "latest"
