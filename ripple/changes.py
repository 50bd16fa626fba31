"""Change detection across the sibling repositories.

Each repository's latest commit is inspected with git; the files it touched
are reported relative to the workspace root.
"""

from __future__ import annotations

import logging
import posixpath
from collections.abc import Iterable

from .errors import NoChangesError
from .models import Commit
from .shell import Shell

logger = logging.getLogger(__name__)

LOG_FORMAT = "--pretty=format:%ad %H %P"


def parse_commit(repo: str, line: str) -> Commit:
    """Parse one ``%ad %H %P`` log line (``--date=iso-strict``).

    Raises:
        NoChangesError: If the line is empty, i.e. the repository has no
                        commits yet.
    """
    fields = line.split()
    if len(fields) < 2:
        raise NoChangesError(f"No commits found in {repo}.")
    date, commit_hash, *parents = fields
    return Commit(
        dir=repo,
        date=date,
        hash=commit_hash,
        parents=parents,
    )


def latest_commit(shell: Shell, repo: str) -> Commit:
    """Read metadata for the most recent commit of a repository."""
    output = shell.capture(
        repo, ["git", "log", LOG_FORMAT, "--date=iso-strict", "-n", "1"]
    )
    return parse_commit(repo, output)


def changes_from_commit(shell: Shell, commit: Commit) -> list[str]:
    """List the files a commit touched, prefixed with the repository directory.

    For a merge commit the diff is taken between its parents.

    Raises:
        NoChangesError: If git reports no changed files.
    """
    hashes = commit.parents if commit.is_merge else [commit.hash]
    output = shell.capture(
        commit.dir,
        ["git", "diff-tree", "--no-commit-id", "--name-only", "-r", *hashes],
    )
    if not output.strip():
        raise NoChangesError(
            f"No changes detected in {commit.dir} ({commit.hash}). "
            "This must not happen!"
        )
    return [posixpath.join(commit.dir, line) for line in output.splitlines() if line]


def latest_changes(
    shell: Shell,
    repos: Iterable[str],
    all_repos: bool = False,
    *,
    log: logging.Logger = logger,
) -> list[str]:
    """Collect changed files from the most recently committed repository.

    Args:
        shell: Execution context rooted at the workspace.
        repos: Repository directories to inspect.
        all_repos: If True, combine the latest commit of every repository
                   instead of only the newest one.

    Returns:
        Workspace-relative changed file paths.
    """
    commits = [latest_commit(shell, repo) for repo in repos]
    if not commits:
        raise NoChangesError("No repositories configured to read changes from.")
    commits.sort(key=lambda c: c.date, reverse=True)

    for commit in commits:
        kind = "merge" if commit.is_merge else "commit"
        log.info(
            "  %s: %s %s (%s)",
            commit.dir,
            kind,
            commit.hash[:10],
            commit.date.isoformat(),
        )

    if all_repos:
        return [
            path for commit in commits for path in changes_from_commit(shell, commit)
        ]
    return changes_from_commit(shell, commits[0])
