"""Discovery of the PitStop Server CLI executable.

The resolved path is cached for the whole process. It is looked up once, on
first use, and only :func:`reset_application_path` clears it again.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

from .exceptions import NotFoundError
from .settings import APPLICATION_PATH_ENV
from .utils import which

_LOGGER = logging.getLogger("pitstop_server")

REGISTRY_KEY = r"SOFTWARE\Microsoft\Windows\CurrentVersion\App Paths\PitStop Server.exe"
WINDOWS_EXECUTABLE = "PitStopServerCLI.exe"
MACOS_APPLICATIONS_DIR = Path("/Applications/Enfocus")
MACOS_BUNDLE_PREFIX = "Enfocus PitStop Server"
CLI_NAME = "PitStopServerCLI"

_application_path: Path | None = None


def get_application_path() -> Path:
    """Return the cached CLI path, discovering it on first use."""

    global _application_path
    if _application_path is None:
        _application_path = discover_application_path()
        _LOGGER.info("Using PitStop Server CLI at %s", _application_path)
    return _application_path


def reset_application_path() -> None:
    """Forget the cached CLI path."""

    global _application_path
    _application_path = None


def check_application_path(path: os.PathLike[str] | str) -> Path:
    """Validate an explicitly supplied CLI path."""

    candidate = Path(path)
    if not candidate.exists():
        raise NotFoundError(f"The path to the CLI does not exist ({candidate})")
    return candidate


def discover_application_path(platform: str | None = None) -> Path:
    """Locate the CLI without consulting the cache.

    The ``PITSTOP_SERVER_CLI`` environment variable wins, followed by the
    platform specific installation lookup and finally a ``PATH`` search.
    """

    configured = os.getenv(APPLICATION_PATH_ENV)
    if configured:
        return check_application_path(configured)

    platform = platform or sys.platform
    errors: list[str] = []
    finder = _find_in_registry if platform.startswith("win") else _find_in_applications
    try:
        return finder()
    except NotFoundError as exc:
        errors.append(exc.message)

    found = which((CLI_NAME, WINDOWS_EXECUTABLE))
    if found:
        return Path(found)
    errors.append(f"{CLI_NAME} is not on the PATH")
    raise NotFoundError("Could not locate PitStop Server: " + "; ".join(errors))


def _find_in_registry() -> Path:
    try:
        import winreg
    except ImportError as exc:
        raise NotFoundError("The Windows registry is not available") from exc

    try:
        with winreg.OpenKey(winreg.HKEY_LOCAL_MACHINE, REGISTRY_KEY) as key:
            value, _ = winreg.QueryValueEx(key, "Path")
    except OSError as exc:
        raise NotFoundError(
            f"No key found with the name Path under PitStop Server.exe in the registry: {exc}"
        ) from exc

    if not str(value).strip():
        raise NotFoundError("No path value found for PitStop Server.exe in the registry")
    return Path(str(value).strip()) / WINDOWS_EXECUTABLE


def _find_in_applications(applications_dir: Path = MACOS_APPLICATIONS_DIR) -> Path:
    # /Applications is only localized in the Finder, the real path is fixed
    try:
        entries = sorted(
            entry for entry in os.listdir(applications_dir)
            if entry.startswith(MACOS_BUNDLE_PREFIX)
        )
    except OSError as exc:
        raise NotFoundError(f"Could not read {applications_dir}: {exc}") from exc

    if not entries:
        raise NotFoundError(
            f"Could not find the Enfocus PitStopServerCLI symbolic link in {applications_dir}"
        )

    link = applications_dir / entries[-1] / CLI_NAME
    target = Path(os.path.realpath(link))
    if not target.exists():
        raise NotFoundError(f"The PitStopServerCLI link {link} does not resolve")
    return target
