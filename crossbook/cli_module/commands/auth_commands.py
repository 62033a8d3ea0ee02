"""Authentication commands for the crossbook CLI."""

import click

from crossbook.services.auth_service import AuthService, AuthError
from crossbook.cli_module.utils import save_token, get_token, clear_token


@click.group(name="auth")
def auth_group():
    """Authentication commands."""
    pass


@auth_group.command(name="register")
@click.option("--email", prompt=True, help="Your email address")
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True, help="Your password")
@click.option("--name", prompt=True, help="Your full name")
@click.option("--phone", default=None, help="Your phone number")
def register(email, password, name, phone):
    """Register as a client."""
    try:
        result = AuthService.register_client(email, password, name, phone)
        save_token(result["token"])
        click.echo(f"Client {name} registered successfully!")
        click.echo("You are now logged in.")
    except AuthError as e:
        click.echo(f"Error during registration: {str(e)}", err=True)


@auth_group.command(name="login")
@click.option("--email", prompt=True, help="Your email address")
@click.option("--password", prompt=True, hide_input=True, help="Your password")
def login(email, password):
    """Sign in and remember the session token."""
    try:
        result = AuthService.login(email, password)
        save_token(result["token"])
        roles = ", ".join(result["user"].get("roles", []))
        click.echo(f"Welcome back, {result['user'].get('name', email)}! Roles: {roles}")
    except AuthError as e:
        click.echo(f"Login failed: {str(e)}", err=True)


@auth_group.command(name="logout")
def logout():
    """Forget the saved session token."""
    clear_token()
    click.echo("You have been logged out.")


@auth_group.command(name="whoami")
def whoami():
    """Show the signed-in user."""
    token = get_token()
    if not token:
        click.echo("You are not signed in.", err=True)
        return

    try:
        user = AuthService.verify_token(token)
        click.echo(f"{user.get('name')} <{user.get('email')}>")
        click.echo(f"Roles: {', '.join(user.get('roles', []))}")
    except AuthError as e:
        click.echo(f"Session invalid: {str(e)}", err=True)
