"""Test and publish runners.

Both runners consume the batches computed by graph.publish_order(). Tests
run one package at a time; publishes run batch by batch with bounded
concurrency inside a batch, and a batch finishes before the next starts.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Sequence
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Protocol, TypeVar

from .config import RippleConfig
from .errors import CommandError
from .graph import flatten
from .models import PackageGraph, PublishTarget
from .registry import publish_package, remote_alpha_version, upgrade_scope
from .shell import Shell
from .versions import bump_patch, next_core_version, release_tag

logger = logging.getLogger(__name__)

T = TypeVar("T")


def run_bounded(
    max_workers: int, fn: Callable[[T], None], items: Sequence[T]
) -> None:
    """Apply ``fn`` to every item with at most ``max_workers`` running at once.

    The first failure stops the run: items that have not started yet are
    skipped, the running ones finish, and the exception is re-raised.
    """
    if not items:
        return
    failed = threading.Event()

    def guarded(item: T) -> None:
        if failed.is_set():
            return
        try:
            fn(item)
        except Exception:
            failed.set()
            raise

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [executor.submit(guarded, item) for item in items]
        wait(futures, return_when=FIRST_EXCEPTION)
        executor.shutdown(cancel_futures=True)
    for future in futures:
        if not future.cancelled():
            future.result()


class Confirmation(Protocol):
    """Gate called once before anything is published."""

    def confirm(self, message: str, delay: float) -> None: ...


class DelayConfirmation:
    """Give a human ``delay`` seconds to cancel with Ctrl-C."""

    def __init__(
        self,
        sleep: Callable[[float], None] = time.sleep,
        *,
        log: logging.Logger = logger,
    ) -> None:
        self.sleep = sleep
        self.log = log

    def confirm(self, message: str, delay: float) -> None:
        self.log.warning(message)
        self.sleep(delay)


class NoConfirmation:
    """Non-interactive gate for CI: log the message and carry on."""

    def __init__(self, *, log: logging.Logger = logger) -> None:
        self.log = log

    def confirm(self, message: str, delay: float) -> None:
        self.log.info(message)


def run_tests(
    shell: Shell,
    packages: PackageGraph,
    batches: list[list[str]],
    config: RippleConfig,
    *,
    log: logging.Logger = logger,
) -> list[str]:
    """Run the test command of every package that declares a test script.

    Packages are tested sequentially in publish order; the first failure
    propagates.

    Returns:
        Names of the packages that were tested.
    """
    order = flatten(batches)
    log.info("Going to run tests. Testing order: %s", ", ".join(order) or "<none>")

    tested: list[str] = []
    for name in order:
        pkg = packages[name]
        if not pkg.has_script(config.test_script):
            log.debug("Skipping %s: no %s script", name, config.test_script)
            continue
        log.info("\nTesting %s", name)
        shell.run(pkg.directory, config.commands.test)
        tested.append(name)
    return tested


def resolve_core_version(
    shell: Shell, graph: PackageGraph, config: RippleConfig
) -> str:
    """Determine the version every core package is released under.

    The configured environment variable wins. Otherwise the highest alpha
    number among the local and registry versions of the core packages is
    incremented. Local versions come from the full graph, so the core
    packages need not be affected by the change.
    """
    override = shell.env.get(config.version_env)
    if override:
        return override

    local = [graph[name].version for name in config.core_packages if name in graph]
    remote = [
        remote_alpha_version(shell, config.commands, name)
        for name in config.core_packages
    ]
    return next_core_version([*local, *remote], config.core_base_version)


def plan_targets(
    packages: PackageGraph, core_version: str, config: RippleConfig
) -> dict[str, PublishTarget]:
    """Resolve version and dist-tag for every package about to be published."""
    core = set(config.core_packages)
    targets: dict[str, PublishTarget] = {}
    for name, pkg in packages.items():
        is_core = name in core
        targets[name] = PublishTarget(
            name=name,
            directory=pkg.directory,
            version=core_version if is_core else bump_patch(pkg.version),
            tag=release_tag(core_version, is_core),
            core=is_core,
        )
    return targets


def _upgrade_with_retry(
    shell: Shell, target: PublishTarget, config: RippleConfig, log: logging.Logger
) -> None:
    attempts = config.upgrade_retries + 1
    for attempt in range(1, attempts + 1):
        try:
            upgrade_scope(shell, config.commands, target.directory, config.namespace)
            return
        except CommandError:
            if attempt == attempts:
                raise
            log.warning(
                "Upgrade of %s failed, retrying (%d/%d)", target.name, attempt, attempts
            )


def publish_one(
    shell: Shell,
    target: PublishTarget,
    config: RippleConfig,
    *,
    log: logging.Logger = logger,
) -> None:
    """Publish a single package, upgrading its namespace deps first."""
    log.info("\nPublishing %s@%s on %s", target.name, target.version, target.tag)
    # Core packages already pin the versions they need
    if not target.core:
        _upgrade_with_retry(shell, target, config, log)
    publish_package(
        shell, config.commands, target.directory, target.tag, target.version
    )


def publish_packages(
    shell: Shell,
    graph: PackageGraph,
    packages: PackageGraph,
    batches: list[list[str]],
    config: RippleConfig,
    confirmation: Confirmation,
    *,
    log: logging.Logger = logger,
) -> dict[str, PublishTarget]:
    """Bump and publish every package in ``batches``.

    Args:
        shell: Execution context rooted at the workspace.
        graph: Full package graph (used for the local core versions).
        packages: Affected packages.
        batches: Publish order as returned by graph.publish_order().
        config: Loaded configuration.
        confirmation: Gate given one chance to stop the run.

    Returns:
        The publish targets, keyed by package name.
    """
    core_version = resolve_core_version(shell, graph, config)
    scheduled = {name: packages[name] for name in flatten(batches)}
    targets = plan_targets(scheduled, core_version, config)

    log.info(
        "\nPublishing %d packages. New core version: %s. Publish order: %s",
        len(targets),
        core_version,
        batches,
    )

    if "alpha" in core_version:
        confirmation.confirm(
            f"Giving you {config.alpha_delay:g}sec to review the changes...",
            config.alpha_delay,
        )
    else:
        confirmation.confirm(
            f"This will release a new version of the core packages on latest: "
            f"{core_version}\nAre you absolutely sure you want to do this? "
            f"We wait for {config.latest_delay:g}secs just in case...",
            config.latest_delay,
        )

    for batch in batches:
        run_bounded(
            config.publish_concurrency,
            lambda name: publish_one(shell, targets[name], config, log=log),
            batch,
        )

    return targets
