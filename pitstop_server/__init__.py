"""
PitStop Server CLI - Python wrapper around the Enfocus PitStop Server command line.

The library writes the XML configuration PitStop Server expects, optionally a
variable set, launches ``PitStopServerCLI -config <file>`` and returns the exit
code together with the captured output.

Quick Start:
    >>> import asyncio
    >>> from pitstop_server import PitStopServer
    >>> server = PitStopServer(
    ...     input_pdf="input.pdf",
    ...     output_folder="output/",
    ...     preflight_profile="profile.ppp",
    ...     xml_report=True,
    ... )
    >>> result = asyncio.run(server.run())

Main Classes:
    - PitStopServer: Configure and execute one run

Data Classes:
    - TaskDescriptor: Resolved settings of a run
    - VariableEntry: One variable of a variable set
    - ExecutionResult: Outcome of the CLI invocation

Exceptions:
    - PitStopError: Base exception
    - ValidationError: Missing or contradictory options
    - FilesystemError: Missing or unwritable paths
    - NotFoundError: CLI or variable not found
    - StructuralError: Configuration template lacks an expected node
    - ProcessError: CLI could not be launched
    - RunStateError: Instance was already run

For CLI usage, use the 'pitstop-server' command after installation.
"""

# Core classes
from pitstop_server.server import PitStopServer

# Data types
from pitstop_server.types import (
    ExecutionResult,
    MeasurementUnit,
    RunState,
    TaskDescriptor,
    VariableEntry,
    VariableType,
)

# Exceptions
from pitstop_server.exceptions import (
    PitStopError,
    ValidationError,
    FilesystemError,
    NotFoundError,
    StructuralError,
    ProcessError,
    RunStateError,
)

# Utility functions
from pitstop_server.locator import get_application_path, reset_application_path
from pitstop_server.runner import run_command

__version__ = "1.0.0"
__license__ = "MIT"

__all__ = [
    # Main classes
    "PitStopServer",
    # Data types
    "ExecutionResult",
    "MeasurementUnit",
    "RunState",
    "TaskDescriptor",
    "VariableEntry",
    "VariableType",
    # Exceptions
    "PitStopError",
    "ValidationError",
    "FilesystemError",
    "NotFoundError",
    "StructuralError",
    "ProcessError",
    "RunStateError",
    # Utility functions
    "get_application_path",
    "reset_application_path",
    "run_command",
    # Version info
    "__version__",
]
