"""Command-line interface modules."""

from .add_hydrogens import main as add_hydrogens_main

__all__ = ["add_hydrogens_main"]
