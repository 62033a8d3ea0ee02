"""Command modules for the crossbook CLI."""

from crossbook.cli_module.commands.auth_commands import auth_group
from crossbook.cli_module.commands.booking_commands import booking_group
from crossbook.cli_module.commands.serve_commands import serve_group

__all__ = [
    'auth_group',
    'booking_group',
    'serve_group',
]
