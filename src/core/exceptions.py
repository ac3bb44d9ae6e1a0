#!/usr/bin/env python3
"""
Standardized exception hierarchy for the Blind Spot analyzer.

Provides specific exception types for media capture, service adapters,
storage and export failures with structured error context.
"""

from typing import Optional, Dict, Any


class BlindspotError(Exception):
    """Base exception for all Blind Spot errors."""

    def __init__(self, message: str, error_code: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        """
        Initialize base exception.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
            context: Additional error context
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            'error_type': self.__class__.__name__,
            'error_code': self.error_code,
            'message': self.message,
            'context': self.context
        }


# Media-related exceptions
class MediaError(BlindspotError):
    """Base exception for media capture and decoding errors."""
    pass


class MediaAcquisitionError(MediaError):
    """Camera or recording device could not be opened."""

    def __init__(self, device: str, reason: str):
        message = f"Failed to acquire media device {device}: {reason}"
        context = {
            'device': device,
            'reason': reason
        }
        super().__init__(message, context=context)


class UnsupportedMediaError(MediaError):
    """Uploaded file is missing or of an unsupported type."""

    def __init__(self, path: str, mime_type: Optional[str] = None):
        message = f"Unsupported file type for {path}"
        if mime_type:
            message += f" ({mime_type})"
        context = {
            'path': path,
            'mime_type': mime_type
        }
        super().__init__(message, context=context)


# Analysis-related exceptions
class AnalysisError(BlindspotError):
    """Base exception for analysis errors."""
    pass


class AdapterError(AnalysisError):
    """An external service adapter call failed."""

    def __init__(self, service: str, operation: str, original_error: Exception):
        message = f"{service} {operation} failed: {original_error}"
        context = {
            'service': service,
            'operation': operation,
            'original_error': str(original_error)
        }
        super().__init__(message, context=context)
        self.service = service
        self.operation = operation


class AdapterNotInitializedError(AdapterError):
    """Adapter was used before a successful initialize()."""

    def __init__(self, service: str, operation: str):
        super().__init__(service, operation, RuntimeError(f"{service} not initialized"))


class LLMError(AnalysisError):
    """LLM/AI analysis error."""

    def __init__(self, provider: str, model: str, original_error: Exception):
        message = f"LLM error from {provider} ({model})"
        context = {
            'provider': provider,
            'model': model,
            'original_error': str(original_error)
        }
        super().__init__(message, context=context)


# Storage-related exceptions
class StorageError(BlindspotError):
    """Base exception for persistence and archival errors."""
    pass


class PersistenceError(StorageError):
    """Storing or reading an analysis record failed."""

    def __init__(self, operation: str, table: str, original_error: Exception):
        message = f"Storage {operation} failed on table {table}"
        context = {
            'operation': operation,
            'table': table,
            'original_error': str(original_error)
        }
        super().__init__(message, context=context)


class ArchivalError(StorageError):
    """Archiving an analysis to the version-control host failed."""

    def __init__(self, repository: str, path: str, original_error: Exception):
        message = f"Archival of {path} to {repository} failed"
        context = {
            'repository': repository,
            'path': path,
            'original_error': str(original_error)
        }
        super().__init__(message, context=context)


# Export-related exceptions
class ExportError(BlindspotError):
    """Base exception for report export errors."""
    pass


class UnsupportedExportFormatError(ExportError):
    """Requested export format is not available."""

    def __init__(self, export_format: str, supported: list):
        message = f"Unsupported export format '{export_format}'. Supported: {', '.join(supported)}"
        context = {
            'format': export_format,
            'supported': list(supported)
        }
        super().__init__(message, context=context)


# Configuration-related exceptions
class ConfigurationError(BlindspotError):
    """Configuration is invalid or missing."""

    def __init__(self, config_key: str, issue: str):
        message = f"Configuration error for {config_key}: {issue}"
        context = {
            'config_key': config_key,
            'issue': issue
        }
        super().__init__(message, context=context)


# Validation-related exceptions
class ValidationError(BlindspotError):
    """Data validation failed."""

    def __init__(self, field: str, value: Any, expected: str):
        message = f"Validation failed for {field}: expected {expected}, got {value!r}"
        context = {
            'field': field,
            'value': str(value),
            'expected': expected,
            'actual_type': type(value).__name__
        }
        super().__init__(message, context=context)


# Recovery utilities
class ErrorRecovery:
    """Decides how the orchestrator reacts to failures."""

    @staticmethod
    def should_fallback(error: Exception) -> bool:
        """Check if a failed analysis call should be replaced by fallback data."""
        fallback_types = [
            AdapterError,
            LLMError
        ]
        return any(isinstance(error, error_type) for error_type in fallback_types)

    @staticmethod
    def is_optional_failure(error: Exception) -> bool:
        """Check if an error belongs to a best-effort side effect that is ignored."""
        return isinstance(error, StorageError)
