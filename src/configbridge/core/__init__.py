"""Core modules for configbridge - centralized definitions and utilities."""

from configbridge.core.errors import (
    CertificateResolutionError,
    ConfigBridgeError,
    ConfigurationError,
    ExitCode,
    SecretProviderError,
    main_with_error_handling,
)

__all__ = [
    "ExitCode",
    "ConfigBridgeError",
    "ConfigurationError",
    "SecretProviderError",
    "CertificateResolutionError",
    "main_with_error_handling",
]
