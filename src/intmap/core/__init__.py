"""Core modules for intmap - centralized definitions and utilities."""

from intmap.core.errors import (
    CaptureTimeout,
    ConfigurationError,
    DataIntegrityError,
    ExitCode,
    ExportCancelled,
    ExportError,
    IntMapError,
    NoRenderableContent,
    NoVectorContent,
    ValidationError,
    format_error_message,
    main_with_error_handling,
)

__all__ = [
    "ExitCode",
    "IntMapError",
    "ConfigurationError",
    "ValidationError",
    "DataIntegrityError",
    "NoRenderableContent",
    "ExportError",
    "NoVectorContent",
    "CaptureTimeout",
    "ExportCancelled",
    "main_with_error_handling",
    "format_error_message",
]
