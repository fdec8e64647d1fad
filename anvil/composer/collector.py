"""File collection for base templates and service providers.

Walks a directory tree depth-first with an explicit stack of pending
directories.  Entries are sorted by name, and within a directory its files
are emitted before its subdirectories are descended into, so the same tree
always yields the same file order.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path, PurePosixPath

from anvil.config import EngineConfig
from anvil.errors import FileError
from anvil.manifest.loader import read_text

from .models import ComposedFile, FileSource

logger = logging.getLogger(__name__)


class FileCollector:
    """Gathers files under a root directory and tags them with provenance."""

    def __init__(self, config: EngineConfig | None = None) -> None:
        self.config = config or EngineConfig()

    def output_path(self, relative: PurePosixPath) -> tuple[str, bool]:
        """Map a source-relative path to ``(output_path, requires_rendering)``.

        The template marker suffix is stripped from the final segment only:
        ``config/app.json.j2`` -> ``("config/app.json", True)``.
        """
        suffix = self.config.template_suffix
        name = relative.name
        if name.endswith(suffix) and len(name) > len(suffix):
            return relative.with_name(name[: -len(suffix)]).as_posix(), True
        return relative.as_posix(), False

    async def collect(self, root: str | Path, source: FileSource) -> list[ComposedFile]:
        """Collect every file below *root*.

        The manifest file at the root of the tree is skipped.

        Raises:
            FileError: If *root* is not a directory, or any directory or file
                cannot be read.
        """
        root_path = Path(root)
        if not await asyncio.to_thread(root_path.is_dir):
            raise FileError(root_path, "not a directory")

        files: list[ComposedFile] = []
        pending: list[Path] = [root_path]
        visited: set[Path] = set()

        while pending:
            directory = pending.pop()
            resolved = await asyncio.to_thread(directory.resolve)
            if resolved in visited:
                continue
            visited.add(resolved)

            file_paths, sub_dirs = await asyncio.to_thread(_list_directory, directory)
            for file_path in file_paths:
                if directory == root_path and file_path.name == self.config.manifest_filename:
                    continue
                relative = PurePosixPath(file_path.relative_to(root_path).as_posix())
                output, requires_rendering = self.output_path(relative)
                content = await read_text(file_path)
                files.append(
                    ComposedFile(
                        path=output,
                        content=content,
                        source=source,
                        requires_rendering=requires_rendering,
                    )
                )
            # Reversed so the alphabetically first subdirectory is popped next.
            pending.extend(reversed(sub_dirs))

        logger.debug("Collected %d file(s) from %s (%s)", len(files), root_path, source.label)
        return files


def _list_directory(directory: Path) -> tuple[list[Path], list[Path]]:
    """Return ``(files, subdirectories)`` of *directory*, each sorted by name."""
    try:
        entries = sorted(directory.iterdir(), key=lambda p: p.name)
    except OSError as exc:
        raise FileError.from_os_error(directory, exc) from exc
    file_paths = [entry for entry in entries if entry.is_file()]
    sub_dirs = [entry for entry in entries if entry.is_dir()]
    return file_paths, sub_dirs
