"""Resolution of the active deployment environment name.

The first set, non-empty variable in priority order wins. Application
specific names come before the generic web-host names. When nothing is set
the interpreter mode decides: a normal (debug) interpreter defaults to
Development, an optimized one (``python -O``) to Production.
"""

from __future__ import annotations

import os
from typing import Mapping, Sequence

DEVELOPMENT = "Development"
PRODUCTION = "Production"

DEFAULT_ENVIRONMENT = DEVELOPMENT if __debug__ else PRODUCTION

ENVIRONMENT_VARIABLES = (
    "DEMO_ENVIRONMENT",
    "ASPNETCORE_ENVIRONMENT",
    "ASPNET_ENVIRONMENT",
)


def resolve_environment(
    variables: Sequence[str] | None = None,
    default: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Resolve the environment name.

    Args:
        variables: Variable names in priority order
        default: Fallback when no variable is set
        environ: Mapping to read instead of os.environ

    Returns:
        Environment name, e.g. "Development", "Staging", "Production"

    Example:
        >>> resolve_environment(environ={"ASPNETCORE_ENVIRONMENT": "Staging"})
        'Staging'
    """
    environ = environ if environ is not None else os.environ
    for name in variables if variables is not None else ENVIRONMENT_VARIABLES:
        value = environ.get(name)
        if value:
            return value
    return default or DEFAULT_ENVIRONMENT


def is_development(environment: str) -> bool:
    """Development, DevelopmentLocal, development... all count."""
    return environment.casefold().startswith(DEVELOPMENT.casefold())
