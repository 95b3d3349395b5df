"""Add hydrogens to macromolecular structures from a residue topology database."""

from .config import HBuildConfig, PrepConfig, load_input_file
from .core.exceptions import (
    ConfigurationError,
    GeometryError,
    MolprepError,
    StructureError,
    TopologyError,
    UnknownBondingTypeError,
)
from .core.services.hydrogen_builder import (
    HydrogenBuilder,
    HydrogenBuildReport,
    build_hydrogens,
)
from .io.pdb_reader import PDBReader, read_pdb
from .io.pdb_writer import PDBWriter, write_pdb
from .io.topology_reader import load_default_topology, read_topology

__version__ = "0.1.0"

__all__ = [
    "HBuildConfig",
    "PrepConfig",
    "load_input_file",
    "MolprepError",
    "TopologyError",
    "UnknownBondingTypeError",
    "StructureError",
    "GeometryError",
    "ConfigurationError",
    "HydrogenBuilder",
    "HydrogenBuildReport",
    "build_hydrogens",
    "PDBReader",
    "read_pdb",
    "PDBWriter",
    "write_pdb",
    "read_topology",
    "load_default_topology",
]
