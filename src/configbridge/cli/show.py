"""Commands for inspecting the merged configuration."""

from __future__ import annotations

from configbridge.cli.ux import console, error, header, mask, print_table
from configbridge.config.secrets import SecretSource
from configbridge.config.snapshot import ConfigurationRoot, get_configuration
from configbridge.core.errors import ExitCode


def _leaf_keys(root: ConfigurationRoot, section: str | None) -> list[str]:
    keys = sorted(root.as_dict(), key=str.casefold)
    if not section:
        return keys
    prefix = section.casefold() + ":"
    return [key for key in keys if key.casefold().startswith(prefix)]


def show_command(
    section: str | None = None,
    reveal: bool = False,
    root: ConfigurationRoot | None = None,
) -> int:
    """Show merged configuration values and the source each one came from.

    Values that came from a secret provider are masked unless ``reveal``.
    """
    if root is None:
        root = get_configuration()

    header("configbridge: Merged Configuration")
    console.print(f"[info]Environment:[/info] {root.environment or '(unknown)'}")
    console.print()

    rows = []
    for key in _leaf_keys(root, section):
        value = root[key]
        source = root.source_of(key)
        if isinstance(source, SecretSource) and not reveal:
            value = mask(value)
        rows.append([key, value, source.name if source else "?"])

    if not rows:
        error(f"No configuration values under '{section}'" if section else "No configuration values")
        return ExitCode.VALIDATION_ERROR

    print_table("Settings", ["Key", "Value", "Source"], rows)
    return ExitCode.SUCCESS


def get_command(key: str, root: ConfigurationRoot | None = None) -> int:
    """Print a single value; missing keys exit with a validation error."""
    if root is None:
        root = get_configuration()
    value = root.get(key)
    if value is None:
        error(f"Key not found: {key}")
        return ExitCode.VALIDATION_ERROR
    console.print(value, markup=False, highlight=False)
    return ExitCode.SUCCESS
