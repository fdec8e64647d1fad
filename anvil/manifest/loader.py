"""Parsing, validation and re-serialisation of ``anvil.yaml`` manifests.

Reads are performed off the event loop with :func:`asyncio.to_thread`.  Every
failure is reported as an :class:`~anvil.errors.InvalidConfigError` (bad
document) or :class:`~anvil.errors.FileError` (unreadable file) carrying the
manifest path, so the caller can surface path and reason together.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, TypeVar

import yaml
from pydantic import BaseModel, ValidationError

from anvil.errors import FileError, InvalidConfigError

from .models import ServiceManifest, TemplateManifest

logger = logging.getLogger(__name__)

ManifestT = TypeVar("ManifestT", TemplateManifest, ServiceManifest)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

async def parse_template(path: str | Path) -> TemplateManifest:
    """Parse and validate a template manifest file.

    Args:
        path: Path to the template's ``anvil.yaml``.

    Returns:
        A validated ``TemplateManifest``.

    Raises:
        FileError: If the file cannot be read.
        InvalidConfigError: If the document is malformed or fails validation.
    """
    text = await read_text(path)
    return load_template_text(text, path)


async def parse_service(path: str | Path) -> ServiceManifest:
    """Parse and validate a service-provider manifest file."""
    text = await read_text(path)
    return load_service_text(text, path)


def load_template_text(text: str, path: str | Path | None = None) -> TemplateManifest:
    """Validate a template manifest held in memory."""
    return _load(TemplateManifest, text, path)


def load_service_text(text: str, path: str | Path | None = None) -> ServiceManifest:
    """Validate a service manifest held in memory."""
    return _load(ServiceManifest, text, path)


def dump_manifest(manifest: BaseModel) -> str:
    """Serialise a manifest back to YAML.

    Only fields present in the source document are written, in declaration
    order, so ``dump_manifest(parse(x))`` parses back to an equal model and
    dumping that again yields identical text.
    """
    data = manifest.model_dump(mode="json", by_alias=True, exclude_unset=True)
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)


async def read_text(path: str | Path) -> str:
    """Read a UTF-8 text file without blocking the event loop.

    Line endings are returned exactly as stored.
    """
    file_path = Path(path)
    try:
        return await asyncio.to_thread(_read_utf8, file_path)
    except OSError as exc:
        raise FileError.from_os_error(file_path, exc) from exc
    except UnicodeDecodeError as exc:
        raise FileError(file_path, f"not valid UTF-8 text ({exc.reason})") from exc


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _load(model: type[ManifestT], text: str, path: str | Path | None) -> ManifestT:
    try:
        raw: Any = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise InvalidConfigError(f"YAML parsing failed: {_yaml_reason(exc)}", path) from exc

    if not isinstance(raw, dict):
        raise InvalidConfigError("manifest must be a mapping at the top level", path)

    try:
        manifest = model.model_validate(raw)
    except ValidationError as exc:
        raise InvalidConfigError(_validation_reason(exc), path) from exc

    logger.debug("Loaded %s '%s' from %s", model.__name__, manifest.name, path or "<memory>")
    return manifest


def _validation_reason(exc: ValidationError) -> str:
    """Flatten a Pydantic error list into one line."""
    parts: list[str] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        message = str(error.get("msg", "invalid value"))
        # Model validators report "Value error, <message>".
        message = message.removeprefix("Value error, ")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts)


def _yaml_reason(exc: yaml.YAMLError) -> str:
    mark = getattr(exc, "problem_mark", None)
    problem = getattr(exc, "problem", None) or str(exc)
    if mark is not None:
        return f"{problem} (line {mark.line + 1}, column {mark.column + 1})"
    return problem


def _read_utf8(path: Path) -> str:
    with path.open("r", encoding="utf-8", newline="") as handle:
        return handle.read()
