"""Utility helpers for :mod:`pitstop_server`."""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from pypdf import PdfReader

from .exceptions import FilesystemError
from .types import PDFInfo

_LOGGER = logging.getLogger("pitstop_server")


def resolve_path(path: os.PathLike[str] | str) -> Path:
    """Resolve *path* into an absolute :class:`~pathlib.Path`."""

    resolved = Path(path).expanduser().resolve()
    _LOGGER.debug("Resolved path '%s' to '%s'", path, resolved)
    return resolved


def require_file(path: Path, label: str) -> Path:
    """Raise :class:`FilesystemError` unless *path* is an existing file."""

    if not path.is_file():
        raise FilesystemError(f"The {label} {path} does not exist")
    return path


def require_writable_folder(path: Path) -> Path:
    """Raise :class:`FilesystemError` unless *path* is a writable directory."""

    if not path.is_dir():
        raise FilesystemError(f"The output folder {path} does not exist")
    if not os.access(path, os.W_OK):
        raise FilesystemError(f"The output folder {path} is not writable")
    return path


def which(executables: tuple[str, ...]) -> str | None:
    """Return the first executable from *executables* found on ``PATH``."""

    for candidate in executables:
        found = shutil.which(candidate)
        if found:
            _LOGGER.debug("Detected external tool: %s -> %s", candidate, found)
            return found
    return None


def format_value(value: object) -> str:
    """Render a variable value the way PitStop Server expects it in XML."""

    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def get_pdf_info(pdf_path: str | Path) -> PDFInfo:
    """Return basic information about a PDF using :mod:`pypdf`."""

    path = Path(pdf_path)
    try:
        reader = PdfReader(str(path))
        is_encrypted = reader.is_encrypted
        num_pages = 0 if is_encrypted else len(reader.pages)
        metadata = None if is_encrypted else reader.metadata
    except Exception as exc:
        raise FilesystemError(f"Failed to read PDF {path}: {exc}") from exc

    return PDFInfo(
        num_pages=num_pages,
        file_size=path.stat().st_size,
        title=getattr(metadata, "title", None) if metadata else None,
        producer=getattr(metadata, "producer", None) if metadata else None,
        is_encrypted=is_encrypted,
    )


def format_file_size(size_bytes: float) -> str:
    """
    Format file size in human-readable format.

    Args:
        size_bytes: File size in bytes

    Returns:
        Formatted string (e.g., "1.5 MB", "500 KB")
    """
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if size_bytes < 1024.0:
            return f"{size_bytes:.1f} {unit}"
        size_bytes /= 1024.0
    return f"{size_bytes:.1f} PB"
