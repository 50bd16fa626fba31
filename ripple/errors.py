"""Exception types raised by ripple.

Every error is fatal to the run. Library code raises these; the CLI turns
them into a readable message and a non-zero exit.
"""

from __future__ import annotations


class RippleError(Exception):
    """Base class for all ripple errors."""


class ConfigError(RippleError):
    """ripple.toml is missing, unparsable, or invalid."""


class ManifestError(RippleError):
    """A package manifest could not be read or parsed."""


class CommandError(RippleError):
    """A shelled-out command exited non-zero.

    Attributes:
        command: The command as it was displayed/run.
        cwd: Working directory relative to the workspace root.
        output: Captured stderr/stdout, if any.
    """

    def __init__(self, command: str, cwd: str, output: str = "") -> None:
        self.command = command
        self.cwd = cwd
        self.output = output
        super().__init__(f"Error running {command} in {cwd}: {output}".rstrip())


class CircularDependencyError(RippleError):
    """Some package both depends on and is depended upon by a neighbour."""

    def __init__(self, circles: list[list[str]]) -> None:
        self.circles = circles
        listed = "; ".join(", ".join(c) for c in circles)
        super().__init__(f"Circular dependencies detected: {listed}")


class DependencyCycleError(RippleError):
    """The publish-order planner could not schedule every package."""


class NoChangesError(RippleError):
    """No changed files were found. This must not happen."""
