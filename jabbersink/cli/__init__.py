"""jabbersink CLI — Typer-based command-line interface.

Provides the ``jabbersink`` command with subcommands to inspect the
environment-driven configuration and to push messages through a sink.

All output uses Rich for formatted terminal display.
"""
