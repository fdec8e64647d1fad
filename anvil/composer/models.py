"""Runtime models produced and consumed by one composition.

Everything here is owned by a single ``compose_template`` call: selections
come in from the caller, files are collected, filtered and resolved, and the
resulting ``ComposedTemplate`` is handed to the renderer.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from anvil.manifest.models import (
    EnvironmentVariable,
    FileMergingStrategy,
    ServiceCategory,
    TemplateManifest,
)


# ---------------------------------------------------------------------------
# Selections
# ---------------------------------------------------------------------------

class ServiceSelection(BaseModel):
    """A caller's choice of provider for one service category."""

    category: ServiceCategory
    provider: str = Field(..., description="Provider directory name, e.g. 'clerk'")
    config: dict[str, Any] = Field(default_factory=dict, description="Free-form provider settings")

    @property
    def label(self) -> str:
        """``category/provider`` as used in directory paths and messages."""
        return f"{self.category.key}/{self.provider}"


# ---------------------------------------------------------------------------
# Files & provenance
# ---------------------------------------------------------------------------

class SourceKind(str, Enum):
    BASE_TEMPLATE = "base_template"
    SERVICE = "service"
    MERGED = "merged"


class FileSource(BaseModel):
    """Provenance of a composed file."""

    model_config = ConfigDict(frozen=True)

    kind: SourceKind
    category: Optional[ServiceCategory] = None
    provider: Optional[str] = None

    @classmethod
    def base_template(cls) -> "FileSource":
        return cls(kind=SourceKind.BASE_TEMPLATE)

    @classmethod
    def service(cls, category: ServiceCategory, provider: str) -> "FileSource":
        return cls(kind=SourceKind.SERVICE, category=category, provider=provider)

    @classmethod
    def merged(cls) -> "FileSource":
        return cls(kind=SourceKind.MERGED)

    @property
    def label(self) -> str:
        if self.kind is SourceKind.SERVICE and self.category is not None:
            return f"{self.category.key}/{self.provider}"
        return self.kind.value


class ComposedFile(BaseModel):
    """One file of the composed tree.

    ``path`` is the output-relative POSIX path (template marker already
    stripped).  Content and source are only replaced during conflict
    resolution; the renderer reads but never mutates a composed file.
    """

    path: str
    content: str
    source: FileSource
    merge_strategy: FileMergingStrategy = FileMergingStrategy.MERGE
    requires_rendering: bool = False


# ---------------------------------------------------------------------------
# Service context
# ---------------------------------------------------------------------------

class ServiceInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    provider: str
    config: dict[str, Any] = Field(default_factory=dict)
    exports: dict[str, Any] = Field(default_factory=dict)


class ServiceContext(BaseModel):
    """Cross-service facts exported to every rendered file.

    ``services`` is keyed by the canonical category key (``"auth"``).
    """

    model_config = ConfigDict(frozen=True)

    services: dict[str, ServiceInfo] = Field(default_factory=dict)
    shared_config: dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Composition result
# ---------------------------------------------------------------------------

class ComposedTemplate(BaseModel):
    """A fully resolved file tree ready for rendering."""

    base_config: TemplateManifest
    selections: list[ServiceSelection] = Field(default_factory=list)
    files: list[ComposedFile] = Field(default_factory=list)
    merged_dependencies: dict[str, Any] = Field(default_factory=dict)
    environment_variables: list[EnvironmentVariable] = Field(default_factory=list)
    service_context: ServiceContext = Field(default_factory=ServiceContext)

    def get_file(self, path: str) -> Optional[ComposedFile]:
        return next((f for f in self.files if f.path == path), None)
