"""Utility functions for the CLI interface."""

from functools import wraps
import os
import json
from typing import Optional, List

import click
from crossbook.services.auth_service import AuthService, AuthError, RoleForbiddenError

# Config file to store auth token
CONFIG_DIR = os.path.expanduser("~/.crossbook")
CONFIG_FILE = os.path.join(CONFIG_DIR, "config.json")


def save_token(token: str) -> None:
    """Save auth token to config file."""
    os.makedirs(CONFIG_DIR, exist_ok=True)

    with open(CONFIG_FILE, 'w') as f:
        json.dump({"token": token}, f)


def get_token() -> Optional[str]:
    """Get auth token from config file."""
    if not os.path.exists(CONFIG_FILE):
        return None

    try:
        with open(CONFIG_FILE, 'r') as f:
            return json.load(f).get("token")
    except json.JSONDecodeError:
        return None


def clear_token() -> None:
    """Forget the saved auth token."""
    if os.path.exists(CONFIG_FILE):
        os.remove(CONFIG_FILE)


def require_role(required_roles: List[str]):
    """Decorator that runs a command only for signed-in users holding one of the roles."""
    def decorator(f):
        @wraps(f)
        def wrapped(*args, **kwargs):
            token = get_token()
            if not token:
                click.echo("You are not signed in. Please sign in first.", err=True)
                return

            try:
                AuthService.require_role(token, required_roles)
            except RoleForbiddenError as e:
                click.echo(f"Access denied: {str(e)}", err=True)
                return
            except AuthError as e:
                click.echo(f"Authentication failed: {str(e)}", err=True)
                return

            return f(*args, **kwargs)
        return wrapped
    return decorator
