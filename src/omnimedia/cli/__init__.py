"""Command line interface of the library scanner."""

from __future__ import annotations

from omnimedia.cli.typer_app import app

__all__ = ["app"]
