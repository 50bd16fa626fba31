"""Release pipeline: discover → link → check → diff → order → test/publish.

This module orchestrates the ripple release process:
1. Discover all package manifests in the workspace
2. Build the namespace dependency graph and reject circular dependencies
3. Read the files changed by the latest commit(s)
4. Resolve every package affected by those changes
5. Order the affected packages into publish batches
6. Run their tests, or bump and publish them

Every failure is fatal; nothing is published before the graph checks pass.
"""

from __future__ import annotations

import logging

from .changes import latest_changes
from .config import RippleConfig
from .graph import (
    affected_packages,
    build_graph,
    check_circular_dependencies,
    publish_order,
)
from .manifests import discover_manifests
from .models import PackageGraph
from .runner import Confirmation, DelayConfirmation, publish_packages, run_tests
from .shell import Shell, step

logger = logging.getLogger(__name__)


def load_graph(
    config: RippleConfig, shell: Shell, *, log: logging.Logger = logger
) -> PackageGraph:
    """Discover manifests and link them into a checked package graph.

    Raises:
        ManifestError: If any manifest is malformed.
        CircularDependencyError: If two packages depend on each other.
    """
    step("Discovering workspace packages", log=log)
    raw = discover_manifests(shell.root, config.manifests, config.ignore, log=log)
    graph = build_graph(raw, config.namespace, log=log)

    for name, pkg in graph.items():
        deps = f" → [{', '.join(pkg.all_uses)}]" if pkg.all_uses else ""
        log.info("  %s %s (%s)%s", name, pkg.version, pkg.path, deps)

    check_circular_dependencies(graph)
    return graph


def plan_release(
    config: RippleConfig,
    shell: Shell,
    *,
    all_repos: bool = False,
    log: logging.Logger = logger,
) -> tuple[PackageGraph, PackageGraph, list[list[str]]]:
    """Compute what a release would touch without running anything.

    Returns:
        Tuple of (full graph, affected packages, publish batches). The
        first ``config.skip_batches`` batches are already dropped.
    """
    graph = load_graph(config, shell, log=log)

    step("Detecting changes", log=log)
    changes = latest_changes(
        shell, [repo.name for repo in config.repos], all_repos, log=log
    )
    affected = affected_packages(graph, changes, log=log)

    step("Ordering affected packages", log=log)
    batches = publish_order(affected)
    if config.skip_batches:
        skipped = batches[: config.skip_batches]
        log.info("  Skipping first %d batches: %s", config.skip_batches, skipped)
        batches = batches[config.skip_batches :]
    for index, batch in enumerate(batches, start=1):
        log.info("  %d. %s", index, ", ".join(batch))

    return graph, affected, batches


def run_release(
    config: RippleConfig,
    shell: Shell,
    *,
    publish: bool = False,
    all_repos: bool = False,
    confirmation: Confirmation | None = None,
    log: logging.Logger = logger,
) -> list[list[str]]:
    """Execute the full release pipeline.

    Args:
        config: Loaded configuration.
        shell: Execution context rooted at the workspace.
        publish: If True, bump and publish instead of running tests.
        all_repos: If True, combine changes from every repository's latest
                   commit instead of only the most recent one.
        confirmation: Gate called before publishing. Defaults to a timed
                      delay that can be interrupted with Ctrl-C.

    Returns:
        The batches that were tested or published.
    """
    graph, affected, batches = plan_release(
        config, shell, all_repos=all_repos, log=log
    )

    if publish:
        step("Publishing", log=log)
        publish_packages(
            shell,
            graph,
            affected,
            batches,
            config,
            confirmation or DelayConfirmation(log=log),
            log=log,
        )
    else:
        step("Testing", log=log)
        run_tests(shell, affected, batches, config, log=log)

    log.info("\n%s\nDone!\n%s", "=" * 60, "=" * 60)
    return batches
