#!/usr/bin/env python3
# src/molprep/core/domain/models/structure.py

"""
Chain / residue / atom model of one structure.

Nodes live in flat arenas and refer to their parents by index. A residue
keeps the ordered indices of its atoms and a chain the ordered indices of
its residues, so boundary tests ("is the next atom still in this
residue?") never need pointer chasing.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional

import numpy as np

from ...exceptions import StructureError
from ...utils.names import format_residue_name
from .atom import Atom


class RecordType(Enum):
    """PDB record a residue's atoms were read from."""

    ATOM = "A"
    HETATM = "H"

    @classmethod
    def from_record(cls, record: str) -> "RecordType":
        return cls.HETATM if record.startswith("HETATM") else cls.ATOM

    @property
    def record_name(self) -> str:
        return "HETATM" if self is RecordType.HETATM else "ATOM  "


@dataclass(eq=False)
class Residue:
    """A residue: name, numbering and its ordered atoms."""

    name: str
    seq_num: int
    insertion_code: str = " "
    record_type: RecordType = RecordType.ATOM
    segment_id: str = ""
    index: int = -1
    chain_index: int = -1
    atom_indices: List[int] = field(default_factory=list)

    def __post_init__(self):
        self.name = format_residue_name(self.name)
        self.insertion_code = self.insertion_code or " "

    @property
    def label(self) -> str:
        """Human readable ``NAME SEQ[ICODE]`` used in diagnostics."""
        return f"{self.name.strip()} {self.seq_num}{self.insertion_code.strip()}"


@dataclass(eq=False)
class Chain:
    """A chain and the ordered indices of its residues."""

    chain_id: str
    index: int = -1
    residue_indices: List[int] = field(default_factory=list)


@dataclass
class SSBondPartner:
    chain_id: str
    seq_num: int
    insertion_code: str = " "
    sym_op: str = ""


@dataclass
class SSBond:
    """One SSBOND record."""

    serial: int
    partner1: SSBondPartner
    partner2: SSBondPartner
    length: float = 0.0


class Structure:
    """Ordered chains of one model plus SSBOND and CRYST1 records."""

    def __init__(self, pdb_id: str = "", model_no: int = 0):
        self.pdb_id = pdb_id
        self.model_no = model_no
        self.cryst1 = ""
        self.ssbonds: List[SSBond] = []
        self.chains: List[Chain] = []
        self.residues: List[Residue] = []
        self.atoms: List[Atom] = []

    # construction

    def add_chain(self, chain_id: str) -> Chain:
        """Append a new chain; chain ids may repeat (e.g. split by TER)."""
        chain = Chain(chain_id=chain_id, index=len(self.chains))
        self.chains.append(chain)
        return chain

    def add_residue(self, chain: Chain, residue: Residue) -> Residue:
        """Append ``residue`` to ``chain``, which must be the last chain."""
        if chain is not self.chains[-1]:
            raise StructureError(
                f"residue {residue.label} must be added to the last chain"
            )
        residue.index = len(self.residues)
        residue.chain_index = chain.index
        self.residues.append(residue)
        chain.residue_indices.append(residue.index)
        return residue

    def add_atom(self, residue: Residue, atom: Atom) -> Atom:
        """Append ``atom`` to ``residue``, which must be the last residue."""
        if residue is not self.residues[-1]:
            raise StructureError(
                f"atom {atom.name} must be added to the last residue"
            )
        atom.index = len(self.atoms)
        atom.residue_index = residue.index
        self.atoms.append(atom)
        residue.atom_indices.append(atom.index)
        return atom

    def insert_atom_after(self, atom: Atom, **fields) -> Atom:
        """
        Create a new atom directly after ``atom`` in its residue.

        The new atom inherits the residue; ``fields`` are passed to
        :class:`Atom` and default to a copy of ``atom``'s position.
        """
        residue = self.residue_of(atom)
        fields.setdefault("name", atom.name)
        fields.setdefault("coordinates", np.array(atom.coordinates))
        new_atom = Atom(**fields)
        new_atom.index = len(self.atoms)
        new_atom.residue_index = residue.index
        self.atoms.append(new_atom)

        position = residue.atom_indices.index(atom.index)
        residue.atom_indices.insert(position + 1, new_atom.index)
        return new_atom

    def rename_residue(self, residue: Residue, name: str) -> None:
        residue.name = format_residue_name(name)

    # navigation

    def chain_of(self, residue: Residue) -> Chain:
        return self.chains[residue.chain_index]

    def residue_of(self, atom: Atom) -> Residue:
        return self.residues[atom.residue_index]

    def residues_of(self, chain: Chain) -> List[Residue]:
        return [self.residues[i] for i in chain.residue_indices]

    def atoms_of(self, residue: Residue) -> List[Atom]:
        return [self.atoms[i] for i in residue.atom_indices]

    def atoms_after(self, atom: Atom) -> Iterator[Atom]:
        """Atoms following ``atom`` within its residue, in order."""
        residue = self.residue_of(atom)
        position = residue.atom_indices.index(atom.index)
        for i in residue.atom_indices[position + 1 :]:
            yield self.atoms[i]

    def previous_residue(self, residue: Residue) -> Optional[Residue]:
        """The residue before ``residue`` in the same chain, if any."""
        chain = self.chain_of(residue)
        position = chain.residue_indices.index(residue.index)
        if position == 0:
            return None
        return self.residues[chain.residue_indices[position - 1]]

    def is_first_in_chain(self, residue: Residue) -> bool:
        return self.chain_of(residue).residue_indices[0] == residue.index

    def is_last_in_chain(self, residue: Residue) -> bool:
        return self.chain_of(residue).residue_indices[-1] == residue.index

    def find_atom(
        self, residue: Residue, name: str, exclude_hydrogens: bool = True
    ) -> Optional[Atom]:
        """First atom called ``name`` in ``residue``."""
        for atom in self.atoms_of(residue):
            if exclude_hydrogens and atom.is_hydrogen:
                continue
            if atom.name == name:
                return atom
        return None

    def iter_residues(self) -> Iterator[Residue]:
        for chain in self.chains:
            yield from self.residues_of(chain)

    def iter_atoms(self, alt_loc: Optional[str] = None) -> Iterator[Atom]:
        """All atoms in chain/residue/atom order, optionally filtered by conformer."""
        for residue in self.iter_residues():
            for atom in self.atoms_of(residue):
                if alt_loc is None or atom.in_alt_loc(alt_loc):
                    yield atom

    def get_coordinates(self, alt_loc: Optional[str] = None) -> np.ndarray:
        """Get coordinates of all atoms, shape (n_atoms, 3)."""
        coords = [atom.coordinates for atom in self.iter_atoms(alt_loc)]
        return np.array(coords).reshape(-1, 3)

    @property
    def n_atoms(self) -> int:
        return len(self.atoms)

    @property
    def n_residues(self) -> int:
        return len(self.residues)

    @property
    def n_chains(self) -> int:
        return len(self.chains)
