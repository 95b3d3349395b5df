#!/usr/bin/env python3
# src/molprep/core/exceptions.py

"""
Exceptions raised by molprep.

Fatal conditions (corrupt topology database, unreadable coordinate file,
bad options) raise; per-atom and per-residue anomalies are logged and
collected by the services instead.
"""


class MolprepError(Exception):
    """Base class for all molprep errors."""


class TopologyError(MolprepError, ValueError):
    """Malformed topology database record."""


class UnknownBondingTypeError(TopologyError):
    """Hydrogen bonding type code outside the supported set."""

    def __init__(self, code, where: str = ""):
        message = f"hydrogen type {code} does not exist in database"
        super().__init__(f"{where}: {message}" if where else message)
        self.code = code


class StructureError(MolprepError, ValueError):
    """Coordinate file cannot be turned into a consistent structure."""


class GeometryError(MolprepError, ArithmeticError):
    """Degenerate geometry, e.g. normalizing a zero-length vector."""


class ConfigurationError(MolprepError, ValueError):
    """Invalid input file or option value."""
