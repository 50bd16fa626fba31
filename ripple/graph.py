"""Dependency graph utilities.

Builds the cross-linked package graph, checks it for direct circular
dependencies, resolves which packages a set of changed files affects, and
derives a batched publish order. Packages must be published in dependency
order so that when package A depends on package B, B goes out first.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable, Mapping

from pydantic import ValidationError

from .errors import (
    CircularDependencyError,
    DependencyCycleError,
    ManifestError,
    NoChangesError,
)
from .models import PackageGraph, PackageRecord, RawPackage

logger = logging.getLogger(__name__)


def namespace_deps(dependencies: Mapping[str, str] | None, namespace: str) -> list[str]:
    """Return the dependency names that belong to the project namespace.

    Examples:
        namespace_deps({"@prisma/sdk": "*", "chalk": "^2"}, "@prisma")
            → ["@prisma/sdk"]
    """
    if not dependencies:
        return []
    return [name for name in dependencies if name.startswith(namespace)]


def _deps(pkg: RawPackage, field: str) -> Mapping[str, str] | None:
    deps = pkg.manifest.get(field)
    if deps is not None and not isinstance(deps, Mapping):
        raise ManifestError(f"Could not parse {pkg.path}: {field} must be an object")
    return deps


def build_graph(
    raw: Mapping[str, RawPackage],
    namespace: str,
    *,
    log: logging.Logger = logger,
) -> PackageGraph:
    """Convert raw manifests into a fully cross-linked package graph.

    First pass records each package's namespace-scoped ``dependencies`` and
    ``devDependencies`` as ``uses``/``uses_dev``. Second pass appends the
    reverse edges. Dependencies on packages outside the workspace are
    expected; they are logged and get no reverse edge.

    Raises:
        ManifestError: If a manifest field has the wrong type.
    """
    graph: PackageGraph = {}
    for name, pkg in raw.items():
        try:
            graph[name] = PackageRecord(
                name=name,
                path=pkg.path,
                version=pkg.manifest.get("version", "0.0.0"),
                uses=namespace_deps(_deps(pkg, "dependencies"), namespace),
                uses_dev=namespace_deps(_deps(pkg, "devDependencies"), namespace),
                manifest=pkg.manifest,
            )
        except ValidationError as exc:
            raise ManifestError(f"Could not parse {pkg.path}: {exc}") from exc

    for pkg in graph.values():
        for dep in pkg.uses:
            if dep in graph:
                graph[dep].used_by.append(pkg.name)
            else:
                log.info("Skipping %s as it's not in this workspace", dep)
        for dep in pkg.uses_dev:
            if dep in graph:
                graph[dep].used_by_dev.append(pkg.name)
            else:
                log.info("Skipping %s as it's not in this workspace", dep)

    return graph


def find_circular_dependencies(graph: PackageGraph) -> list[list[str]]:
    """Find packages that both use and are used by the same neighbours.

    This is a pairwise check: it catches A ↔ B but not longer loops such as
    A → B → C → A. Those surface later as a DependencyCycleError from
    publish_order().

    Returns:
        One list of offending neighbours per package with a non-empty overlap.
    """
    circles: list[list[str]] = []
    for pkg in graph.values():
        used_by = set(pkg.all_used_by)
        overlap = [dep for dep in pkg.all_uses if dep in used_by]
        if overlap:
            circles.append(overlap)
    return circles


def check_circular_dependencies(graph: PackageGraph) -> None:
    """Raise if the graph has any direct circular dependency.

    Raises:
        CircularDependencyError: Listing every overlap found.
    """
    circles = find_circular_dependencies(graph)
    if circles:
        raise CircularDependencyError(circles)


def _owns(directory: str, path: str) -> bool:
    if directory in ("", "."):
        return True
    return path == directory or path.startswith(directory.rstrip("/") + "/")


def affected_packages(
    graph: PackageGraph,
    changes: Iterable[str],
    *,
    log: logging.Logger = logger,
) -> PackageGraph:
    """Resolve every package affected by a set of changed files.

    A package is changed directly when a changed path lies under its
    manifest directory. Anything that uses an affected package (runtime or
    dev) is affected too, transitively.

    Args:
        graph: Full package graph.
        changes: Workspace-relative changed file paths.

    Returns:
        The affected subset of the graph, in graph order.

    Raises:
        NoChangesError: If ``changes`` is empty.
    """
    changes = list(changes)
    if not changes:
        raise NoChangesError("No changes detected. This must not happen!")

    affected: set[str] = set()
    queue: deque[str] = deque()
    for name, pkg in graph.items():
        if any(_owns(pkg.directory, change) for change in changes):
            log.info("  %s: changed", name)
            affected.add(name)
            queue.append(name)

    # Walk dependents breadth-first; membership is checked before enqueueing
    while queue:
        node = queue.popleft()
        for dependent in graph[node].all_used_by:
            if dependent in graph and dependent not in affected:
                log.info("  %s: affected (uses %s)", dependent, node)
                affected.add(dependent)
                queue.append(dependent)

    return {name: pkg for name, pkg in graph.items() if name in affected}


def publish_order(packages: PackageGraph) -> list[list[str]]:
    """Group packages into batches that can be published in sequence.

    Uses a layered Kahn's algorithm over the "used by" edges: each batch
    holds every package whose dependencies within ``packages`` are already
    scheduled in an earlier batch. Names inside a batch are sorted for
    deterministic output. Edges to packages outside ``packages`` are ignored.

    Returns:
        List of batches; every package appears in exactly one.

    Raises:
        DependencyCycleError: If the edges contain a cycle.

    Example:
        If C uses B and B uses A:
        publish_order({A, B, C}) → [[A], [B], [C]]
    """
    # Count in-set dependencies for each package
    in_degree = {name: 0 for name in packages}
    dependents: dict[str, list[str]] = {name: [] for name in packages}
    for name, pkg in packages.items():
        for dependent in dict.fromkeys(pkg.all_used_by):
            if dependent in packages:
                in_degree[dependent] += 1
                dependents[name].append(dependent)

    batch = sorted(name for name, degree in in_degree.items() if degree == 0)
    batches: list[list[str]] = []
    scheduled = 0

    while batch:
        batches.append(batch)
        scheduled += len(batch)
        ready: list[str] = []
        for node in batch:
            for dependent in dependents[node]:
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    ready.append(dependent)
        batch = sorted(ready)

    # If we didn't schedule every package, there must be a cycle
    if scheduled != len(packages):
        remaining = sorted(name for name, degree in in_degree.items() if degree > 0)
        raise DependencyCycleError(
            f"Dependency cycle detected involving: {', '.join(remaining)}"
        )

    return batches


def flatten(batches: Iterable[Iterable[str]]) -> list[str]:
    return [name for batch in batches for name in batch]
