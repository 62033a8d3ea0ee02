"""Commands that run crossbook's HTTP servers."""

import click

from crossbook.config import DB_FILE


@click.group(name="serve")
def serve_group():
    """Run the document store or the public API."""
    pass


@serve_group.command(name="store")
@click.option("--host", default="127.0.0.1", help="Interface to bind")
@click.option("--port", default=3000, help="Port to run the store on")
@click.option("--db", "db_file", default=DB_FILE, help="JSON file backing the store")
@click.option("--debug/--no-debug", default=False, help="Run Flask in debug mode")
def serve_store(host, port, db_file, debug):
    """Start the JSON document store."""
    from crossbook.store_server import create_app

    click.echo(f"Starting document store on {host}:{port}...")
    click.echo(f"Using database: {db_file}")
    create_app(db_file).run(host=host, port=port, debug=debug, threaded=True)


@serve_group.command(name="api")
@click.option("--host", default="127.0.0.1", help="Interface to bind")
@click.option("--port", default=8000, help="Port to run the API on")
@click.option("--debug/--no-debug", default=False, help="Run Flask in debug mode")
def serve_api(host, port, debug):
    """Start the booking API."""
    from crossbook.api import create_app

    click.echo(f"Starting booking API on {host}:{port}...")
    create_app().run(host=host, port=port, debug=debug, threaded=True)
