"""Error taxonomy for the Anvil composition and rendering engine.

Every error carries enough context (a path, a reason, or both) to be shown
as a one-line diagnostic by the calling layer without cross-referencing
source.  Third-party exceptions are translated at the boundary with
``raise ... from exc`` so the original cause stays on ``__cause__``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable


class EngineError(Exception):
    """Base class for every error raised by the engine."""


class TemplateNotFoundError(EngineError):
    """Raised when a named base template does not exist."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Template not found: {name}")


class InvalidConfigError(EngineError):
    """Raised when a manifest fails schema or semantic validation."""

    def __init__(self, reason: str, path: str | Path | None = None) -> None:
        self.reason = reason
        self.path = Path(path) if path is not None else None
        if self.path is not None:
            message = f"Invalid template configuration in {self.path}: {reason}"
        else:
            message = f"Invalid template configuration: {reason}"
        super().__init__(message)


class FileError(EngineError):
    """Raised when a filesystem operation fails.  Always carries the path."""

    def __init__(self, path: str | Path, reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"File operation failed: {self.path}: {reason}")

    @classmethod
    def from_os_error(cls, path: str | Path, exc: OSError) -> "FileError":
        return cls(path, exc.strerror or str(exc))


class ProcessingError(EngineError):
    """Raised when a template fails to render (syntax error, undefined name)."""

    def __init__(self, reason: str, path: str | Path | None = None) -> None:
        self.reason = reason
        self.path = Path(path) if path is not None else None
        if self.path is not None:
            message = f"Template processing failed for {self.path}: {reason}"
        else:
            message = f"Template processing failed: {reason}"
        super().__init__(message)


class VariableError(EngineError):
    """Raised when a value does not satisfy its declared variable type."""

    def __init__(self, variable: str, reason: str) -> None:
        self.variable = variable
        self.reason = reason
        super().__init__(f"Variable validation failed: {variable}: {reason}")


class FeatureDependencyError(EngineError):
    """Raised when a feature's declared dependency is not enabled.

    Reserved: the composition path does not enforce feature dependencies yet.
    """

    def __init__(self, feature: str, dependency: str) -> None:
        self.feature = feature
        self.dependency = dependency
        super().__init__(f"Feature dependency not met: {feature} requires {dependency}")


class CompositionError(EngineError):
    """Raised when service selection validation or conflict resolution fails."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Template composition failed: {reason}")


class StructuredDocumentError(CompositionError):
    """Raised when a structured document cannot be parsed or serialised
    during a structural merge.
    """

    def __init__(self, path: str | Path, sources: Iterable[str], reason: str) -> None:
        self.path = Path(path)
        self.sources = list(sources)
        super().__init__(
            f"Cannot merge {self.path} (sources: {', '.join(self.sources)}): {reason}"
        )
