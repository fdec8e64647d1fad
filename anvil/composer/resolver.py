"""Conflict resolution for files that several sources place at the same path.

Files are grouped by output path (groups are emitted in the order their first
occupant was collected).  A group with one occupant passes through untouched;
larger groups are reduced to one file with the template's merge strategy:

``override``
    Base-template files sort before service files; the last one wins.
``append``
    Contents concatenated in collection order, each followed by a newline.
``merge``
    JSON documents are merged key by key (``dependencies`` and
    ``devDependencies`` are merged entry by entry); other files are appended.
``skip``
    The first collected file is kept.
"""

from __future__ import annotations

import json
import logging
from pathlib import PurePosixPath
from typing import Any, Optional, Sequence

from anvil.errors import StructuredDocumentError
from anvil.manifest.models import CompositionConfig, FileMergingStrategy

from .models import ComposedFile, FileSource, SourceKind

logger = logging.getLogger(__name__)

STRUCTURED_EXTENSIONS = frozenset({".json"})
DEPENDENCY_KEYS = frozenset({"dependencies", "devDependencies"})


class ConflictResolver:
    """Reduces each same-path group of files to a single file."""

    def resolve(
        self,
        files: Sequence[ComposedFile],
        composition_config: Optional[CompositionConfig] = None,
    ) -> list[ComposedFile]:
        strategy = (
            composition_config.file_merging_strategy
            if composition_config is not None
            else FileMergingStrategy.MERGE
        )

        groups: dict[str, list[ComposedFile]] = {}
        for file in files:
            groups.setdefault(file.path, []).append(file)

        resolved: list[ComposedFile] = []
        for path, group in groups.items():
            if len(group) == 1:
                resolved.append(group[0])
                continue
            logger.debug(
                "Resolving %s from %s with strategy %s",
                path, ", ".join(f.source.label for f in group), strategy.value,
            )
            resolved.append(self.resolve_group(path, group, strategy))
        return resolved

    def resolve_group(
        self,
        path: str,
        files: Sequence[ComposedFile],
        strategy: FileMergingStrategy,
    ) -> ComposedFile:
        """Apply *strategy* to one group of same-path files."""
        if len(files) == 1:
            return files[0]
        if strategy is FileMergingStrategy.OVERRIDE:
            return _override(files)
        if strategy is FileMergingStrategy.APPEND:
            return _append(path, files)
        if strategy is FileMergingStrategy.SKIP:
            return files[0]
        if PurePosixPath(path).suffix.lower() in STRUCTURED_EXTENSIONS:
            return _merge_structured(path, files)
        return _append(path, files)


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

def _override(files: Sequence[ComposedFile]) -> ComposedFile:
    ordered = sorted(files, key=lambda f: 0 if f.source.kind is SourceKind.BASE_TEMPLATE else 1)
    return ordered[-1]


def _append(path: str, files: Sequence[ComposedFile]) -> ComposedFile:
    # Rendering is switched off for the combined content, even when the
    # contributors were templates.
    return ComposedFile(
        path=path,
        content="".join(f"{f.content}\n" for f in files),
        source=FileSource.merged(),
        merge_strategy=FileMergingStrategy.APPEND,
        requires_rendering=False,
    )


def _merge_structured(path: str, files: Sequence[ComposedFile]) -> ComposedFile:
    sources = [f.source.label for f in files]
    merged: dict[str, Any] = {}

    for file in files:
        try:
            document = json.loads(file.content)
        except json.JSONDecodeError as exc:
            raise StructuredDocumentError(
                path, sources, f"invalid JSON from {file.source.label}: {exc}"
            ) from exc
        if not isinstance(document, dict):
            raise StructuredDocumentError(
                path, sources, f"top-level value from {file.source.label} is not an object"
            )
        merge_documents(merged, document)

    try:
        content = json.dumps(merged, indent=2, ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise StructuredDocumentError(path, sources, f"cannot serialise merged JSON: {exc}") from exc

    return ComposedFile(
        path=path,
        content=content,
        source=FileSource.merged(),
        merge_strategy=FileMergingStrategy.MERGE,
        requires_rendering=False,
    )


def merge_documents(target: dict[str, Any], incoming: dict[str, Any]) -> dict[str, Any]:
    """Merge *incoming* into *target* in place and return *target*.

    Top-level keys from *incoming* overwrite *target*, except the dependency
    collections, whose entries are combined (later entries win per package).
    """
    for key, value in incoming.items():
        existing = target.get(key)
        if key in DEPENDENCY_KEYS and isinstance(existing, dict) and isinstance(value, dict):
            target[key] = {**existing, **value}
        else:
            target[key] = value
    return target
