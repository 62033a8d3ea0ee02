"""Command-line interface for crossbook."""
