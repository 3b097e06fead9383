"""
Unified error handling for configbridge.

Startup failures (missing base file, unparsable file, certificate lookup,
vault access) are raised as ConfigBridgeError subclasses and propagate out of
snapshot construction. CLI entry points convert them to exit codes.

Exit Codes:
- 0: Success
- 10: Configuration error
- 11: Secret provider error (vault or certificate store failure)
- 12: Validation error (requested key or section not found)
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
    CONFIG_ERROR = 10
    PROVIDER_ERROR = 11
    VALIDATION_ERROR = 12
    UNKNOWN_ERROR = 127


class ConfigBridgeError(Exception):
    """Base exception for configbridge errors with exit code support."""

    exit_code: ExitCode = ExitCode.UNKNOWN_ERROR
    show_traceback: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(ConfigBridgeError):
    """Raised when a configuration source is missing, unreadable or incomplete."""

    exit_code = ExitCode.CONFIG_ERROR


class SecretProviderError(ConfigBridgeError):
    """Raised when a secret provider cannot be reached or listed."""

    exit_code = ExitCode.PROVIDER_ERROR


class CertificateResolutionError(SecretProviderError):
    """Raised when a thumbprint does not resolve to exactly one certificate."""

    def __init__(self, thumbprint: str, matches: int):
        if matches == 0:
            message = "No certificate found for thumbprint"
        else:
            message = "Thumbprint matches more than one certificate"
        super().__init__(message, {"thumbprint": thumbprint, "matches": matches})
        self.thumbprint = thumbprint
        self.matches = matches


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
        - ConfigBridgeError subclasses: Uses the error's exit_code
        - KeyboardInterrupt: Returns 130 (standard for SIGINT)
        - Other exceptions: Returns 127 (unknown error)
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> int:
            try:
                return func(*args, **kwargs)
            except ConfigBridgeError as e:
                if log_errors:
                    logger.error(
                        "command_error",
                        error_type=type(e).__name__,
                        message=e.message,
                        exit_code=e.exit_code,
                        **e.details,
                    )
                if e.show_traceback or show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return e.exit_code
            except KeyboardInterrupt:
                if log_errors:
                    logger.info("command_interrupted")
                return 130
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
