"""Core domain models and interfaces."""

from .models.atom import Atom
from .models.structure import Chain, RecordType, Residue, Structure
from .models.topology import TopologyDatabase, TopologyEntry
from .interfaces.structure_preprocessor import StructurePreprocessor

__all__ = [
    "Atom",
    "Chain",
    "RecordType",
    "Residue",
    "Structure",
    "TopologyDatabase",
    "TopologyEntry",
    "StructurePreprocessor",
]
