"""
CLI commands for configbridge.
"""

from configbridge.cli.environment import environment_command
from configbridge.cli.show import get_command, show_command

__all__ = [
    "environment_command",
    "get_command",
    "show_command",
]
