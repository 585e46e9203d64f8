"""
Exception hierarchy for cairn.

Core operations raise these; the CLI catches :class:`CairnError`, prints the
message unchanged and exits non-zero.  Messages that originate from an
external tool (resolver, compiler) are carried verbatim.
"""
from __future__ import annotations


class CairnError(Exception):
    """Base class for every fatal cairn failure."""


class ManifestError(CairnError):
    """A manifest is missing, malformed, or lacks a required field."""


class VersionMismatchError(CairnError):
    """A local project satisfies a coordinate but not its version spec."""

    def __init__(self, coordinate: str, required: str, actual: str) -> None:
        self.coordinate = coordinate
        self.required   = required
        self.actual     = actual
        super().__init__(
            f'Local project "{coordinate}" version mismatch: '
            f"required {required}, actual {actual}"
        )


class CircularDependencyError(CairnError):
    """The local project graph contains a cycle."""

    def __init__(self, remaining: list[str]) -> None:
        self.remaining = remaining
        super().__init__(
            "Circular dependency detected in local projects: "
            + ", ".join(remaining)
        )


class ResolutionError(CairnError):
    """Remote resolution failed; the message is the tool's diagnostic text."""


class CompilationError(CairnError):
    """The compiler (or archiver) exited non-zero; message is its output."""


class PluginError(CairnError):
    """A plugin hook raised; the remaining hook chain was aborted."""

    def __init__(self, plugin: str, phase: str, cause: BaseException) -> None:
        self.plugin = plugin
        self.phase  = phase
        super().__init__(f"plugin '{plugin}' failed in {phase}: {cause}")


class SuiteError(CairnError):
    """The test suite cannot start: no test root, no test classes, or no launcher."""
