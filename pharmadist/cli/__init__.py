"""Command line entry point (``pharmadist`` / ``python -m pharmadist.cli``)."""

from .app import main

__all__ = ["main"]
