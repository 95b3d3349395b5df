"""Domain model classes."""

from .atom import Atom
from .structure import Chain, RecordType, Residue, SSBond, SSBondPartner, Structure
from .topology import (
    BondingType,
    ControlAtom,
    HydrogenRule,
    MoleculeType,
    TopologyDatabase,
    TopologyEntry,
)

__all__ = [
    "Atom",
    "Chain",
    "RecordType",
    "Residue",
    "SSBond",
    "SSBondPartner",
    "Structure",
    "BondingType",
    "ControlAtom",
    "HydrogenRule",
    "MoleculeType",
    "TopologyDatabase",
    "TopologyEntry",
]
