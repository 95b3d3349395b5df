#!/usr/bin/env python3
# src/molprep/io/pdb_writer.py

"""
PDB writer for structures with inserted hydrogens.

The standard format goes through Biopython's ``PDBIO``: every chain of the
structure is converted to a one-chain Biopython structure and saved in
turn, so chains sharing an identifier (split by TER) keep their order.
Header records (conversion remark, SSBOND, CRYST1, MODEL) are written
around it. The minimal format is written by hand.
"""

import io
import logging
from pathlib import Path
from typing import List, Optional, Tuple, Union

from Bio.PDB.Atom import Atom as BioAtom
from Bio.PDB.Chain import Chain as BioChain
from Bio.PDB.Model import Model as BioModel
from Bio.PDB.PDBIO import PDBIO
from Bio.PDB.Residue import Residue as BioResidue
from Bio.PDB.Structure import Structure as BioStructure

from ..config import PrepConfig
from ..core.domain.models.atom import Atom
from ..core.domain.models.structure import Chain, RecordType, Residue, Structure
from ..core.utils.names import format_residue_name

logger = logging.getLogger(__name__)

MAX_SERIAL = 99999
RECORD_WIDTH = 80


def _attach(parent, child) -> None:
    """
    Append ``child`` to a Biopython entity without the duplicate id check.

    Hydrogens the forward scan could not see and wrapped residue numbers
    both give repeated ids within one residue or chain. ``PDBIO`` writes
    ``child_list`` in order, so every child is kept; the id lookup keeps
    the first one.
    """
    child.set_parent(parent)
    parent.child_list.append(child)
    parent.child_dict.setdefault(child.get_id(), child)


class MolprepPDBIO(PDBIO):
    """PDBIO keeping four-character residue names and formal charges."""

    def _get_atom_line(self, atom, hetfield, segid, atom_number, resname, *args, **kwargs):
        line = super()._get_atom_line(
            atom, hetfield, segid, atom_number, resname[:3], *args, **kwargs
        )
        if len(resname) > 3:
            line = line[:17] + resname[:4] + line[21:]
        charge = atom.xtra.get("charge", "")
        if charge:
            line = line[:78] + charge.rjust(2)[:2] + line[80:]
        return line


class PDBWriter:
    """Writes a :class:`Structure` in the standard or minimal PDB layout."""

    def __init__(self, config: Optional[PrepConfig] = None):
        """
        Initialize the writer.

        Args:
            config: Run options; output format, alternate location and the
                record switches are taken from it
        """
        self.config = config or PrepConfig()
        self._pdbio = MolprepPDBIO()
        self._serial = 0

    @property
    def alt_loc(self) -> str:
        return self.config.hbuild.alt_loc

    def write(self, structure: Structure, filepath: Union[str, Path]) -> Tuple[int, int, int]:
        """
        Write ``structure`` to ``filepath``.

        Returns:
            Number of atoms, residues and chains written
        """
        self._serial = 0
        minimal = self.config.output_format == "min"
        n_atoms = 0

        with open(filepath, "w") as f:
            self._write_header(f, structure, minimal)

            for chain in structure.chains:
                if minimal:
                    n_atoms += self._write_min_chain(f, structure, chain)
                else:
                    n_atoms += self._write_std_chain(f, structure, chain)

            if structure.model_no > 0 and not self.config.no_model:
                f.write(self._record("ENDMDL", minimal) + "\n")
            if not self.config.no_end:
                f.write(self._record("END", minimal))

        logger.info(
            "%d atoms, %d residues, %d chain%s written",
            n_atoms,
            structure.n_residues,
            structure.n_chains,
            "s" if structure.n_chains > 1 else "",
        )
        return n_atoms, structure.n_residues, structure.n_chains

    @staticmethod
    def _record(text: str, minimal: bool) -> str:
        return text if minimal else text.ljust(RECORD_WIDTH)

    def _write_header(self, f, structure: Structure, minimal: bool) -> None:
        config = self.config

        if structure.pdb_id:
            f.write(f"REMARK   this is a conversion of PDB ID {structure.pdb_id}\n")

        if config.write_ssbonds:
            for bond in structure.ssbonds:
                p1, p2 = bond.partner1, bond.partner2
                line = (
                    f"SSBOND {bond.serial:3d} CYS {p1.chain_id:1s} {p1.seq_num:4d}"
                    f"{p1.insertion_code:1s}   CYS {p2.chain_id:1s} {p2.seq_num:4d}"
                    f"{p2.insertion_code:1s}{'':23s}{p1.sym_op:>6s} {p2.sym_op:>6s}"
                )
                if bond.length > 0.0:
                    line += f" {bond.length:5.2f}"
                else:
                    line += " " * 6
                f.write(line + "\n")

        if structure.cryst1 and not config.no_cryst:
            f.write(self._record(structure.cryst1, minimal) + "\n")

        if structure.model_no > 0 and not config.no_model:
            f.write(self._record(f"MODEL     {structure.model_no:4d}", minimal) + "\n")

    def _output_name(self, structure: Structure, residue: Residue) -> str:
        """Residue name as written; disulfide cysteines become CYS again."""
        name = residue.name
        if (
            structure.ssbonds
            and not self.config.keep_ss_names
            and name == self.config.ss_name
        ):
            name = format_residue_name("CYS")
        return name.strip()

    def _next_serial(self, atom: Atom) -> int:
        # inserted hydrogens have no serial of their own
        if self.config.keep_serials and atom.serial.strip().isdigit():
            return int(atom.serial)
        self._serial += 1
        if self._serial > MAX_SERIAL:
            self._serial = 1
        return self._serial

    def _written_atoms(self, structure: Structure, residue: Residue) -> List[Atom]:
        return [
            atom for atom in structure.atoms_of(residue) if atom.in_alt_loc(self.alt_loc)
        ]

    def _to_biopython(self, structure: Structure, chain: Chain) -> BioStructure:
        bio_structure = BioStructure(structure.pdb_id or "molprep")
        bio_model = BioModel(0)
        bio_chain = BioChain(chain.chain_id)
        bio_structure.add(bio_model)
        bio_model.add(bio_chain)

        for residue in structure.residues_of(chain):
            resname = self._output_name(structure, residue)
            hetfield = " " if residue.record_type is RecordType.ATOM else "H_" + resname
            bio_residue = BioResidue(
                (hetfield, residue.seq_num, residue.insertion_code),
                resname,
                residue.segment_id.ljust(4),
            )
            _attach(bio_chain, bio_residue)
            for atom in self._written_atoms(structure, residue):
                bio_atom = BioAtom(
                    atom.name.strip(),
                    atom.coordinates,
                    atom.temp_factor,
                    atom.occupancy,
                    atom.alt_loc,
                    atom.name,
                    self._next_serial(atom),
                    element=atom.element.strip().upper() or None,
                )
                bio_atom.xtra["charge"] = atom.charge
                _attach(bio_residue, bio_atom)

        return bio_structure

    def _write_std_chain(self, f, structure: Structure, chain: Chain) -> int:
        buffer = io.StringIO()
        self._pdbio.set_structure(self._to_biopython(structure, chain))
        self._pdbio.save(buffer, write_end=False, preserve_atom_numbering=True)

        lines = buffer.getvalue().splitlines(keepends=True)
        n_atoms = sum(1 for line in lines if not line.startswith("TER"))

        # TER closes polymer chains only
        residues = structure.residues_of(chain)
        if lines and lines[-1].startswith("TER"):
            if residues[-1].record_type is RecordType.ATOM:
                if not self.config.keep_serials:
                    self._serial += 1
            else:
                lines.pop()

        f.writelines(lines)
        return n_atoms

    def _write_min_chain(self, f, structure: Structure, chain: Chain) -> int:
        n_atoms = 0
        last: Optional[Residue] = None

        for residue in structure.residues_of(chain):
            record = residue.record_type.record_name
            resname = self._output_name(structure, residue)
            for atom in self._written_atoms(structure, residue):
                x, y, z = atom.coordinates
                f.write(
                    f"{record:6s}{self._next_serial(atom):5d} {atom.name:4s} "
                    f"{resname:4s}{chain.chain_id:1s}{residue.seq_num:4d}    "
                    f"{x:8.3f}{y:8.3f}{z:8.3f}\n"
                )
                n_atoms += 1
            last = residue

        if (
            last is not None
            and last.record_type is RecordType.ATOM
            and not self.config.no_ter
        ):
            f.write("TER\n")
        return n_atoms


def write_pdb(
    structure: Structure,
    filepath: Union[str, Path],
    config: Optional[PrepConfig] = None,
) -> Tuple[int, int, int]:
    """Write a PDB file with :class:`PDBWriter`."""
    return PDBWriter(config).write(structure, filepath)
