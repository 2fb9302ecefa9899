"""Wheelforge CLI — Typer-based command-line interface.

Provides the ``wheelforge`` command with subcommands for building wheels
from checkouts or an index, fetching archives, installing and testing
built wheels, and inspecting version aliases.

All output uses Rich for formatted terminal display.
"""
