"""Rendering pipeline: composed (or plain) template -> final file contents.

Only files flagged ``requires_rendering`` go through Jinja2; everything else
is passed through byte for byte.  Nothing is written to disk here; callers
receive a :class:`ProcessedTemplate` and decide where the files go.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import Any, Iterable

from pydantic import BaseModel, Field

from anvil.composer.collector import FileCollector
from anvil.composer.models import ComposedFile, ComposedTemplate, FileSource
from anvil.config import EngineConfig
from anvil.manifest.models import TemplateManifest

from .context import Context, build_shared_context, validate_context
from .templates import TemplateRenderer

logger = logging.getLogger(__name__)


class ProcessedFile(BaseModel):
    output_path: str
    content: str
    executable: bool = False


class ProcessedTemplate(BaseModel):
    files: list[ProcessedFile] = Field(default_factory=list)

    def get_file(self, output_path: str) -> ProcessedFile | None:
        return next((f for f in self.files if f.output_path == output_path), None)


class TemplateProcessor:
    """Renders template files into :class:`ProcessedTemplate` results."""

    def __init__(self, config: EngineConfig | None = None) -> None:
        self.config = config or EngineConfig()
        self.renderer = TemplateRenderer()
        self.collector = FileCollector(self.config)

    # -- Discovery ---------------------------------------------------------

    async def discover_template_files(self, template_dir: str | Path) -> list[ComposedFile]:
        """Collect a template directory without any service composition."""
        return await self.collector.collect(template_dir, FileSource.base_template())

    # -- Processing --------------------------------------------------------

    async def process_template(
        self, template_dir: str | Path, context: Context
    ) -> ProcessedTemplate:
        """Render a plain template directory with the user context only."""
        files = await self.discover_template_files(template_dir)
        return self._process(files, context.to_template_context())

    async def process_composed_template(
        self,
        composed: ComposedTemplate,
        context: Context,
        now: datetime | None = None,
    ) -> ProcessedTemplate:
        """Render *composed* with the unified render context.

        Args:
            composed: Output of ``CompositionEngine.compose_template``.
            context: User variables and features.
            now: Generation time (current UTC time when omitted).

        Raises:
            ProcessingError: If any renderable file fails to render.
        """
        render_context = build_shared_context(context, composed, self.config, now)
        return self._process(composed.files, render_context)

    def render_string(self, source: str, context: Context) -> str:
        return self.renderer.render_string(source, context.to_template_context())

    def validate_context(self, context: Context, manifest: TemplateManifest) -> None:
        validate_context(context, manifest)

    def should_be_executable(self, path: str) -> bool:
        """True for script extensions, or for known extension-less names."""
        posix = PurePosixPath(path)
        if posix.suffix:
            return posix.suffix[1:] in self.config.executable_extensions
        return posix.name in self.config.executable_filenames

    # -- Internal ----------------------------------------------------------

    def _process(
        self, files: Iterable[ComposedFile], render_context: dict[str, Any]
    ) -> ProcessedTemplate:
        processed: list[ProcessedFile] = []
        rendered = 0
        for file in files:
            if file.requires_rendering:
                content = self.renderer.render_string(file.content, render_context, file.path)
                rendered += 1
            else:
                content = file.content
            processed.append(
                ProcessedFile(
                    output_path=file.path,
                    content=content,
                    executable=self.should_be_executable(file.path),
                )
            )
        logger.debug("Processed %d file(s), %d rendered", len(processed), rendered)
        return ProcessedTemplate(files=processed)
