"""Command reporting the resolved environment and secret strategy."""

from __future__ import annotations

import os
from typing import Mapping

from configbridge.cli.ux import console, header, print_table
from configbridge.config.environment import (
    DEFAULT_ENVIRONMENT,
    is_development,
    resolve_environment,
)
from configbridge.config.settings import BridgeSettings, get_settings
from configbridge.core.errors import ExitCode


def environment_command(
    settings: BridgeSettings | None = None,
    environ: Mapping[str, str] | None = None,
) -> int:
    """Show which variable decided the environment and which secrets will load.

    Does not build the configuration, so it works when the vault is unreachable.
    """
    settings = settings or get_settings()
    environ = environ if environ is not None else os.environ
    environment = resolve_environment(settings.environment_variables, environ=environ)

    header("configbridge: Environment")

    rows = []
    for name in settings.environment_variables:
        value = environ.get(name)
        rows.append([name, value if value else "(not set)"])
    print_table("Environment variables (priority order)", ["Variable", "Value"], rows)

    console.print(f"[info]Resolved:[/info] {environment}")
    console.print(f"[muted]Default when unset:[/muted] {DEFAULT_ENVIRONMENT}")

    if is_development(environment):
        secrets_path = settings.user_secrets_dir / settings.user_secrets_id
        console.print(f"[info]Secrets:[/info] user secrets ({secrets_path})")
    else:
        console.print(
            f"[info]Secrets:[/info] Azure Key Vault "
            f"(certificates from {settings.certificate_store_path})"
        )

    console.print(f"[info]Base file:[/info] {settings.base_file_path}")
    console.print(f"[info]Overlay file:[/info] {settings.environment_file_path(environment)}")
    return ExitCode.SUCCESS
