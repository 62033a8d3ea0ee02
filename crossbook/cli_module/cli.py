"""Main CLI entry point for crossbook."""

import click

from crossbook.cli_module.commands.auth_commands import auth_group
from crossbook.cli_module.commands.booking_commands import booking_group
from crossbook.cli_module.commands.serve_commands import serve_group

# Set context settings to properly display help for all commands
CONTEXT_SETTINGS = {
    "help_option_names": ["-h", "--help"],
    "max_content_width": 120,
    "show_default": True
}


@click.group(context_settings=CONTEXT_SETTINGS)
def cli():
    """crossbook: cross-border chauffeur bookings."""
    pass


cli.add_command(auth_group)
cli.add_command(booking_group)
cli.add_command(serve_group)


def main():
    """Entry point for the application."""
    cli()


if __name__ == '__main__':
    main()
