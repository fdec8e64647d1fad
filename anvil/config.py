"""Anvil engine configuration.

Centralised, typed settings for the composition and rendering engine.  The
settings use a Pydantic v2 model so they are validated at construction time
and can be serialised to/from JSON without boiler-plate.  The engine never
reads environment variables: callers build an ``EngineConfig`` explicitly
(or use the defaults) and pass it in.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from anvil import __version__


class EngineConfig(BaseModel):
    """Settings shared by ``CompositionEngine`` and ``TemplateProcessor``."""

    manifest_filename: str = Field(
        default="anvil.yaml",
        description="Manifest file name for templates and service providers",
    )
    template_suffix: str = Field(
        default=".j2",
        description="Marker suffix identifying files that must be rendered",
    )
    default_dependency_version: str = Field(
        default="^1.0.0",
        description="Version assigned to npm dependencies declared without one",
    )
    executable_extensions: list[str] = Field(
        default_factory=lambda: ["sh", "py", "rb", "pl"],
        description="File extensions that are marked executable in the output",
    )
    executable_filenames: list[str] = Field(
        default_factory=lambda: ["gradlew", "mvnw", "install", "configure", "bootstrap"],
        description="Extension-less file names that are marked executable",
    )
    generator_name: str = Field(default="Anvil Template Engine")
    generator_version: str = Field(default=__version__)

    @field_validator("template_suffix")
    @classmethod
    def _suffix_has_dot(cls, value: str) -> str:
        if not value.startswith(".") or len(value) < 2:
            raise ValueError("template_suffix must look like '.ext'")
        return value

    @field_validator("manifest_filename")
    @classmethod
    def _manifest_is_a_name(cls, value: str) -> str:
        if not value or "/" in value or "\\" in value:
            raise ValueError("manifest_filename must be a bare file name")
        return value

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file.

        Args:
            path: Destination file.  Parent directories are created.

        Returns:
            The path where the file was written.
        """
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "EngineConfig":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)
