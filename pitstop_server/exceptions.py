"""
Custom exceptions for PitStop Server CLI.

This module defines all custom exceptions used throughout the library.
Errors raised while preparing a run propagate to the caller; failures of the
external process itself are reported through
:class:`~pitstop_server.types.ExecutionResult` instead.
"""


class PitStopError(Exception):
    """Base exception for all PitStop Server CLI errors."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    @property
    def default_message(self) -> str:
        return "An unknown PitStop Server error occurred."


class ValidationError(PitStopError):
    """Raised when mandatory options are missing or contradictory."""

    @property
    def default_message(self) -> str:
        return "The options for running PitStop Server were not correctly defined."


class FilesystemError(PitStopError):
    """Raised when a path is missing, unreadable or not writable."""

    @property
    def default_message(self) -> str:
        return "A required file or folder is missing or not accessible."


class NotFoundError(PitStopError):
    """Raised when the CLI executable or a named variable cannot be found."""

    @property
    def default_message(self) -> str:
        return "The requested item could not be found."


class StructuralError(PitStopError):
    """Raised when an XML document lacks an expected anchor element."""

    @property
    def default_message(self) -> str:
        return "The XML document does not have the expected structure."


class ProcessError(PitStopError):
    """Raised when the external application could not be launched."""

    @property
    def default_message(self) -> str:
        return "The PitStop Server CLI could not be launched."


class RunStateError(PitStopError):
    """Raised when an operation is not allowed in the current run state."""

    @property
    def default_message(self) -> str:
        return "This PitStop Server instance has already been run."
