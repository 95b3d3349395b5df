"""Shared fixtures: small structures, topology databases and PDB files."""

from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pytest

from molprep.core.domain.models.atom import Atom
from molprep.core.domain.models.structure import Chain, RecordType, Residue, Structure
from molprep.core.domain.models.topology import (
    MoleculeType,
    TopologyDatabase,
    TopologyEntry,
    make_rule,
)

# heavy atoms of an alanine in a reasonable conformation
ALA_ATOMS: List[Tuple[str, Tuple[float, float, float]]] = [
    (" N  ", (-0.966, 0.493, 1.500)),
    (" CA ", (0.257, 0.418, 0.692)),
    (" C  ", (-0.094, 0.017, -0.716)),
    (" O  ", (-1.056, -0.682, -0.923)),
    (" CB ", (1.204, -0.620, 1.296)),
]

# places the N of the next residue 1.31 A from the C above
NEXT_RESIDUE_SHIFT = (1.172, 0.424, -3.116)

ALA_HEAVY = ("N", "CA", "C", "O", "CB")

CRYST1_LINE = "CRYST1   50.000   50.000   50.000  90.00  90.00  90.00 P 1           1"


def add_residue(
    structure: Structure,
    chain: Chain,
    name: str,
    seq_num: int,
    atoms: Iterable[Tuple[str, Sequence[float]]],
    record_type: RecordType = RecordType.ATOM,
    offset: Sequence[float] = (0.0, 0.0, 0.0),
    alt_loc: str = " ",
) -> Residue:
    """Append a residue with the given (name, xyz) atoms to ``chain``."""
    residue = structure.add_residue(
        chain, Residue(name=name, seq_num=seq_num, record_type=record_type)
    )
    for atom_name, xyz in atoms:
        structure.add_atom(
            residue,
            Atom(
                name=atom_name,
                coordinates=np.add(xyz, offset),
                element=atom_name.strip()[0],
                alt_loc=alt_loc,
            ),
        )
    return residue


def ala_rules(n_terminal: bool = False):
    amide = (
        make_rule("H", "N", 3, 4, 1.01, "CA", "C")
        if n_terminal
        else make_rule("H", "N", 1, 1, 1.01, "-C", "CA")
    )
    return [
        amide,
        make_rule("HA", "CA", 1, 5, 1.09, "N", "C", "CB"),
        make_rule("HB", "CB", 3, 4, 1.09, "CA", "N"),
    ]


def ala_entry(name: str = "ALA", n_terminal: bool = False) -> TopologyEntry:
    return TopologyEntry(
        name=name,
        molecule_type=MoleculeType.PROTEIN,
        heavy_atoms=tuple(f" {a}".ljust(4) for a in ALA_HEAVY),
        hydrogen_rules=tuple(ala_rules(n_terminal)),
        record_type=RecordType.ATOM,
    )


def water_entry() -> TopologyEntry:
    return TopologyEntry(
        name="HOH",
        molecule_type=MoleculeType.OTHER,
        heavy_atoms=(" O  ",),
        hydrogen_rules=(make_rule("H", "O", 2, 10, 0.9572),),
        record_type=RecordType.HETATM,
    )


@pytest.fixture
def ala_database() -> TopologyDatabase:
    """ALA and water, no terminal variants."""
    return TopologyDatabase([ala_entry(), water_entry()])


@pytest.fixture
def terminal_database() -> TopologyDatabase:
    """ALA with an N-terminal variant NALA."""
    return TopologyDatabase(
        [ala_entry(), ala_entry("NALA", n_terminal=True), water_entry()],
        terminal_links={"ALA": ("NALA", "")},
    )


def make_dipeptide(names: Tuple[str, str] = ("ALA", "ALA")) -> Structure:
    structure = Structure(pdb_id="TEST")
    chain = structure.add_chain("A")
    add_residue(structure, chain, names[0], 1, ALA_ATOMS)
    add_residue(structure, chain, names[1], 2, ALA_ATOMS, offset=NEXT_RESIDUE_SHIFT)
    return structure


@pytest.fixture
def dipeptide() -> Structure:
    """Chain A with two heavy-atom-only alanines."""
    return make_dipeptide()


def pdb_atom_line(
    serial: int,
    name: str,
    residue_name: str,
    chain_id: str,
    seq_num: int,
    xyz: Sequence[float],
    record: str = "ATOM",
    alt_loc: str = " ",
    occupancy: float = 1.0,
    temp_factor: float = 0.0,
    element: Optional[str] = None,
    icode: str = " ",
) -> str:
    """Format one ATOM/HETATM record in the standard columns."""
    if element is None:
        element = name.strip()[0]
    x, y, z = xyz
    return (
        f"{record:<6s}{serial:5d} {name:<4s}{alt_loc:1s}{residue_name:<4s}"
        f"{chain_id:1s}{seq_num:4d}{icode:1s}   {x:8.3f}{y:8.3f}{z:8.3f}"
        f"{occupancy:6.2f}{temp_factor:6.2f}          {element:>2s}  "
    )


def residue_lines(
    start_serial: int,
    residue_name: str,
    chain_id: str,
    seq_num: int,
    atoms: Iterable[Tuple[str, Sequence[float]]],
    offset: Sequence[float] = (0.0, 0.0, 0.0),
    record: str = "ATOM",
) -> List[str]:
    return [
        pdb_atom_line(
            start_serial + i,
            name,
            residue_name,
            chain_id,
            seq_num,
            np.add(xyz, offset),
            record=record,
        )
        for i, (name, xyz) in enumerate(atoms)
    ]


@pytest.fixture
def write_pdb_file(tmp_path: Path):
    """Write PDB lines to a file in ``tmp_path`` and return its path."""

    def _write(lines: Iterable[str], name: str = "input.pdb") -> Path:
        path = tmp_path / name
        path.write_text("\n".join(lines) + "\n")
        return path

    return _write


@pytest.fixture
def dipeptide_pdb_lines() -> List[str]:
    """HEADER, CRYST1, an ALA-ALA chain and one water."""
    lines = [
        f"{'HEADER':<10s}{'TEST PEPTIDE':<40s}{'01-JAN-00':<12s}{'1ABC':<18s}",
        CRYST1_LINE,
    ]
    lines += residue_lines(1, "ALA", "A", 1, ALA_ATOMS)
    lines += residue_lines(6, "ALA", "A", 2, ALA_ATOMS, offset=NEXT_RESIDUE_SHIFT)
    lines.append("TER      11      ALA A   2")
    lines.append(
        pdb_atom_line(12, " O  ", "HOH", "A", 101, (5.0, 5.0, 5.0), record="HETATM")
    )
    lines.append("END")
    return lines
