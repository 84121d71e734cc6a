"""The :class:`PitStopServer` facade tying options, configuration and invocation together."""

from __future__ import annotations

import logging
import shutil
import threading
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional

from . import locator
from .config import build_config, write_starting_config
from .exceptions import (
    FilesystemError,
    ProcessError,
    RunStateError,
    ValidationError,
)
from .options import resolve_task
from .runner import run_command
from .settings import Settings
from .types import ExecutionResult, RunState, TaskDescriptor
from .utils import require_file
from .variables import EntryLike, create_variable_set_file, update_variable_set_file

_LOGGER = logging.getLogger("pitstop_server")

_active_folders: set[Path] = set()
_active_lock = threading.Lock()


def _claim_folder(folder: Path) -> None:
    with _active_lock:
        if folder in _active_folders:
            raise FilesystemError(f"The output folder {folder} is already used by a running task")
        _active_folders.add(folder)


def _release_folder(folder: Path) -> None:
    with _active_lock:
        _active_folders.discard(folder)


class PitStopServer:
    """
    One PitStop Server run.

    Construction validates the options, resolves the CLI and writes the
    starting configuration to the output folder. :meth:`run` completes the
    configuration and launches the CLI exactly once.

    Example:
        >>> import asyncio
        >>> server = PitStopServer(
        ...     input_pdf="in.pdf",
        ...     output_folder="out",
        ...     preflight_profile="check.ppp",
        ...     xml_report=True,
        ... )
        >>> result = asyncio.run(server.run())
    """

    def __init__(
        self,
        options: Optional[Mapping[str, Any]] = None,
        *,
        settings: Optional[Settings] = None,
        **kwargs: Any,
    ) -> None:
        self.debug_messages: List[str] = []
        self.execution_time = 0.0
        self.state = RunState.CONSTRUCTED

        if settings is None:
            try:
                settings = Settings.from_env()
            except ValueError as exc:
                raise ValidationError(f"Invalid PITSTOP_* environment setting: {exc}") from exc

        self.task: TaskDescriptor = resolve_task(
            options, settings=settings, debug=self._debug, **kwargs
        )

        if self.task.application_path is not None:
            self.application_path = locator.check_application_path(self.task.application_path)
        else:
            self._debug("Searching for the application path")
            self.application_path = locator.get_application_path()

        write_starting_config(self.task)
        self.variable_set_path: Optional[Path] = None
        if self.task.variable_set is not None:
            self._install_variable_set(self.task.variable_set)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _debug(self, message: str) -> None:
        self.debug_messages.append(message)
        _LOGGER.debug(message)

    def _install_variable_set(self, template: Path) -> None:
        require_file(template, "Variable Set")
        destination = self.task.variable_set_path
        if template != destination:
            self._debug(f"Copying the variable set {template}")
            try:
                shutil.copyfile(template, destination)
            except OSError as exc:
                raise FilesystemError(f"Could not copy the variable set {template}: {exc}") from exc
        self.variable_set_path = destination

    def _require_constructed(self, action: str) -> None:
        if self.state is not RunState.CONSTRUCTED:
            raise RunStateError(
                f"Cannot {action} once the configuration is built ({self.state.value})"
            )

    @property
    def config_path(self) -> Path:
        return self.task.config_path

    # ------------------------------------------------------------------
    # Variable sets
    # ------------------------------------------------------------------
    def create_variable_set(self, entries: Iterable[EntryLike]) -> Path:
        """Write a fresh variable set to the output folder and use it for the run."""

        self._require_constructed("create a variable set")
        self._debug("Creating a variable set")
        path = create_variable_set_file(
            self.task.variable_set_path,
            entries,
            self.task.measurement_unit,
            debug=self._debug,
        )
        self.variable_set_path = path
        return path

    def update_variable_set(self, entries: Iterable[EntryLike]) -> Path:
        """Set new values for variables of the variable set in the output folder."""

        self._require_constructed("update the variable set")
        if self.variable_set_path is None:
            raise ValidationError("There is no Variable Set defined")
        self._debug("Modifying the variable set file")
        return update_variable_set_file(
            self.variable_set_path,
            entries,
            self.task.measurement_unit,
            debug=self._debug,
        )

    # ------------------------------------------------------------------
    # Running
    # ------------------------------------------------------------------
    def build_config(self) -> Path:
        """Complete the configuration file; runs once per instance."""

        if self.state is not RunState.CONSTRUCTED:
            raise RunStateError(f"The configuration was already built ({self.state.value})")
        self._debug("Modifying the configuration file")
        path = build_config(self.task, self.variable_set_path, debug=self._debug)
        self.state = RunState.CONFIG_BUILT
        return path

    async def run(self) -> ExecutionResult:
        """Build the configuration and run the CLI.

        Errors in the options or templates are raised before the CLI is
        launched; anything that goes wrong with the CLI itself is reported in
        the returned :class:`ExecutionResult`.
        """

        if self.state in (RunState.INVOKED, RunState.COMPLETED):
            raise RunStateError()

        folder = self.task.output_folder
        _claim_folder(folder)
        try:
            if self.state is RunState.CONSTRUCTED:
                self.build_config()

            self.state = RunState.INVOKED
            self._debug(f"CLI path: {self.application_path}")
            self._debug(f"PitStop Server started at {datetime.now(timezone.utc).isoformat()}")
            start = time.monotonic()
            try:
                result = await run_command(
                    self.application_path,
                    ["-config", str(self.task.config_path)],
                )
            except Exception as exc:
                _LOGGER.exception("PitStop Server invocation failed")
                result = ExecutionResult(command="", exit_code=-1, stdout="", stderr=str(exc))
            finally:
                self.execution_time = time.monotonic() - start
            self._debug(f"PitStop Server ended at {datetime.now(timezone.utc).isoformat()}")
            self.state = RunState.COMPLETED
            return result
        finally:
            _release_folder(folder)

    def get_task_config(self) -> str:
        """Return the text of the configuration file in the output folder."""

        path = self.task.config_path
        if not path.exists():
            raise FilesystemError(f"The configuration file {path} does not exist anymore")
        return path.read_text(encoding="utf-8")

    def cleanup(self) -> None:
        """Remove the output folder and everything in it."""

        folder = self.task.output_folder
        if not folder.exists():
            return
        try:
            shutil.rmtree(folder)
        except FileNotFoundError:
            return
        except OSError as exc:
            raise FilesystemError(f"Could not remove {folder}: {exc}") from exc

    # ------------------------------------------------------------------
    # Application level helpers
    # ------------------------------------------------------------------
    @staticmethod
    def get_application_path() -> Path:
        return locator.get_application_path()

    @staticmethod
    async def get_version(application_path: Optional[Path] = None) -> str:
        """Return the version reported by ``PitStopServerCLI -version``."""

        if application_path is not None:
            executable = locator.check_application_path(application_path)
        else:
            executable = locator.get_application_path()
        result = await run_command(executable, ["-version"])
        if not result.succeeded:
            raise ProcessError(f"Could not query the PitStop Server version: {result.stderr}")
        return result.stdout
