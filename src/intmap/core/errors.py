"""
Unified error handling for the integration map engine.

Edits and topology files fail loudly with ``ValidationError``. Layout and
export problems are recoverable: adapters raise ``NoRenderableContent`` which
the view controller turns into a placeholder view, and the export pipeline
returns ``ExportError`` subclasses inside an ``ExportResult`` instead of
raising them.

Exit Codes:
- 0: Success
- 1: Warning (advisory, operation succeeded with warnings)
- 10: Configuration error
- 12: Validation error
- 13: Render error (nothing to draw)
- 14: Export error
- 127: Unknown/internal error
"""

from __future__ import annotations

import functools
import sys
import traceback
from enum import IntEnum
from typing import Any, Callable, TypeVar

import structlog

logger = structlog.get_logger()


class ExitCode(IntEnum):
    """Standardized exit codes for CLI commands."""

    SUCCESS = 0
    WARNING = 1
    CONFIG_ERROR = 10
    VALIDATION_ERROR = 12
    RENDER_ERROR = 13
    EXPORT_ERROR = 14
    UNKNOWN_ERROR = 127


class IntMapError(Exception):
    """Base exception for intmap errors with exit code support."""

    exit_code: ExitCode = ExitCode.UNKNOWN_ERROR
    show_traceback: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(IntMapError):
    """Raised for configuration-related errors."""

    exit_code = ExitCode.CONFIG_ERROR


class ValidationError(IntMapError):
    """Raised when an edit or a topology file breaks a model invariant."""

    exit_code = ExitCode.VALIDATION_ERROR


class DataIntegrityError(ValidationError):
    """A connection in a topology file references a system that is not listed.

    Snapshots built in memory can still carry such entries; adapters skip
    them and label the endpoint "Unknown" wherever a name is shown.
    """


class NoRenderableContent(IntMapError):
    """The active layout has no nodes or no filtered edges to draw."""

    exit_code = ExitCode.RENDER_ERROR


class ExportError(IntMapError):
    """Base class for failures reported by the export pipeline."""

    exit_code = ExitCode.EXPORT_ERROR
    retryable: bool = False


class NoVectorContent(ExportError):
    """Vector export requested for a view that only has pixels."""


class CaptureTimeout(ExportError):
    """Raster capture did not finish within the allotted time."""

    retryable = True


class ExportCancelled(ExportError):
    """Export discarded because the view was torn down."""


# Type variable for decorated functions
F = TypeVar("F", bound=Callable[..., int])


def main_with_error_handling(
    *,
    show_traceback: bool = False,
    log_errors: bool = True,
) -> Callable[[F], F]:
    """
    Decorator for CLI main functions that provides unified error handling.

    Args:
        show_traceback: If True, show full traceback for unexpected errors
        log_errors: If True, log errors to structlog

    Exit codes:
        - IntMapError subclasses: Uses the error's exit_code
        - KeyboardInterrupt: Returns 130 (standard for SIGINT)
        - Other exceptions: Returns 127 (unknown error)
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> int:
            try:
                return func(*args, **kwargs)
            except IntMapError as e:
                if log_errors:
                    logger.error(
                        "command_error",
                        error_type=type(e).__name__,
                        message=e.message,
                        exit_code=e.exit_code,
                        **e.details,
                    )
                from intmap.cli.ux import error as print_error

                print_error(format_error_message(e))
                if e.show_traceback or show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return e.exit_code
            except KeyboardInterrupt:
                if log_errors:
                    logger.info("command_interrupted")
                return 130  # Standard exit code for SIGINT
            except Exception as e:
                if log_errors:
                    logger.error(
                        "unexpected_error",
                        error_type=type(e).__name__,
                        message=str(e),
                        exit_code=ExitCode.UNKNOWN_ERROR,
                    )
                if show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return ExitCode.UNKNOWN_ERROR

        return wrapper  # type: ignore[return-value]

    return decorator


def format_error_message(error: IntMapError) -> str:
    """Format an error message for display to users."""
    msg = error.message
    if error.details:
        detail_str = ", ".join(f"{k}={v}" for k, v in error.details.items())
        msg = f"{msg} ({detail_str})"
    return msg
