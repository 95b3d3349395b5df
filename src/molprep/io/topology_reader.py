#!/usr/bin/env python3
# src/molprep/io/topology_reader.py

"""
Reader for the topology database text format.

Molecule types are tagged as ``[proteins]``, ``[DNA]``, ``[RNA]`` or
``[other]``. ``RESIDUE`` starts an entry (further names on the line are
aliases sharing the same rules), ``FTERM``/``LTERM`` name the first and
last terminal variants, ``RTYPE`` restricts entries to ATOM (``A``) or
HETATM (``H``) records (``@`` accepts both). ``HYDRO`` lines read

    HYDRO  hname  nhyd  type  xhdist  heavy  [ctrl1 [ctrl2 [ctrl3]]]

and ``HEAVY`` lists the heavy atoms of the residue. ``END`` closes the
entry. A control atom prefixed with ``-`` belongs to the previous residue;
an atom name prefixed with ``<`` is taken verbatim (four columns).
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from ..core.domain.models.structure import RecordType
from ..core.domain.models.topology import (
    ControlAtom,
    HydrogenRule,
    MoleculeType,
    TopologyDatabase,
    TopologyEntry,
)
from ..core.exceptions import TopologyError, UnknownBondingTypeError
from ..core.utils.names import (
    format_residue_name,
    parse_atom_token,
    split_previous_reference,
)
from ..core.utils.text import normalize_line

logger = logging.getLogger(__name__)

DEFAULT_TOPOLOGY_FILE = os.path.join(
    os.path.dirname(os.path.dirname(__file__)), "data", "top.dat"
)

_RECORD_TYPES = {"A": RecordType.ATOM, "H": RecordType.HETATM, "@": None}


@dataclass
class _OpenResidue:
    names: List[str]
    molecule_type: MoleculeType
    record_type: Optional[RecordType]
    first_terminal: str = ""
    last_terminal: str = ""
    heavy_atoms: List[str] = field(default_factory=list)
    rules: List[HydrogenRule] = field(default_factory=list)


class TopologyReader:
    """Parses a topology database file into a :class:`TopologyDatabase`."""

    def __init__(self, filepath: Union[str, Path]):
        self.filepath = str(filepath)
        self._line_no = 0

    def _fail(self, message: str) -> TopologyError:
        return TopologyError(f"{self.filepath}: {message} in line {self._line_no}")

    def read(self) -> TopologyDatabase:
        """
        Read the file.

        Returns:
            TopologyDatabase with terminal variants linked

        Raises:
            TopologyError: On any malformed record
        """
        entries: List[TopologyEntry] = []
        links: Dict[str, Tuple[str, str]] = {}
        molecule_type: Optional[MoleculeType] = None
        record_type: Optional[RecordType] = None
        current: Optional[_OpenResidue] = None

        with open(self.filepath, "r") as f:
            for self._line_no, raw in enumerate(f, start=1):
                line = normalize_line(raw)
                if line is None:
                    continue

                if line.startswith("["):
                    try:
                        molecule_type = MoleculeType.from_section(line)
                    except ValueError as e:
                        raise self._fail(str(e)) from None
                    continue

                keyword, *tokens = line.split()

                if keyword == "RESIDUE":
                    if molecule_type is None:
                        raise self._fail("no molecule type set")
                    if current is not None:
                        raise self._fail("previous residue not properly ENDed")
                    if not tokens:
                        raise self._fail("invalid residue entry")
                    current = _OpenResidue(
                        names=[self._residue_name(t) for t in tokens],
                        molecule_type=molecule_type,
                        record_type=record_type,
                    )
                elif keyword == "RTYPE":
                    if not tokens or tokens[0][0] not in _RECORD_TYPES:
                        raise self._fail("unknown residue type")
                    record_type = _RECORD_TYPES[tokens[0][0]]
                    if current is not None:
                        current.record_type = record_type
                elif keyword in ("FTERM", "LTERM"):
                    if current is None:
                        raise self._fail("not inside residue entry")
                    if not tokens:
                        raise self._fail("invalid terminal entry")
                    name = self._residue_name(tokens[0])
                    if keyword == "FTERM":
                        current.first_terminal = name
                    else:
                        current.last_terminal = name
                elif keyword == "HYDRO":
                    if current is None:
                        raise self._fail("not inside residue record")
                    current.rules.append(self._parse_hydro(tokens))
                elif keyword == "HEAVY":
                    if current is None:
                        raise self._fail("not inside residue record")
                    if not tokens:
                        raise self._fail("invalid heavy atom record")
                    current.heavy_atoms.extend(self._atom_name(t) for t in tokens)
                elif keyword == "END":
                    if current is None:
                        raise self._fail("not inside residue record")
                    entries.extend(self._close(current, links))
                    current = None
                else:
                    raise self._fail(f"unknown keyword {keyword}")

        if current is not None:
            raise TopologyError(f"{self.filepath}: last END missing")

        database = TopologyDatabase(entries, links, source=self.filepath)
        logger.info("Read %d residues from %s", len(database), self.filepath)
        return database

    def _close(
        self, current: _OpenResidue, links: Dict[str, Tuple[str, str]]
    ) -> List[TopologyEntry]:
        if not current.rules:
            raise self._fail(
                f"no hydrogen entries found in residue {current.names[0].strip()}"
            )
        if not current.heavy_atoms:
            raise self._fail(
                f"no heavy atom entries found in residue {current.names[0].strip()}"
            )

        closed = []
        for name in current.names:
            closed.append(
                TopologyEntry(
                    name=name,
                    molecule_type=current.molecule_type,
                    heavy_atoms=tuple(current.heavy_atoms),
                    hydrogen_rules=tuple(current.rules),
                    record_type=current.record_type,
                )
            )
            if current.first_terminal or current.last_terminal:
                links[name] = (current.first_terminal, current.last_terminal)
        return closed

    def _parse_hydro(self, tokens: List[str]) -> HydrogenRule:
        if len(tokens) < 5:
            raise self._fail(f"only {len(tokens)} fields read successfully")

        try:
            n_hydrogens = int(tokens[1])
            code = int(tokens[2])
            bond_length = float(tokens[3])
        except ValueError:
            raise self._fail("invalid HYDRO numbers") from None

        controls = []
        for token in tokens[5:]:
            name, previous = split_previous_reference(self._atom_name(token))
            controls.append(ControlAtom(name, previous_residue=previous))

        try:
            return HydrogenRule(
                hydrogen_name=self._atom_name(tokens[0]),
                heavy_atom=self._atom_name(tokens[4]),
                n_hydrogens=n_hydrogens,
                bonding_type=code,
                bond_length=bond_length,
                controls=tuple(controls),
            )
        except UnknownBondingTypeError:
            raise UnknownBondingTypeError(
                code, where=f"{self.filepath} line {self._line_no}"
            ) from None
        except TopologyError as e:
            raise self._fail(str(e)) from None

    def _atom_name(self, token: str) -> str:
        try:
            return parse_atom_token(token)
        except ValueError as e:
            raise self._fail(str(e)) from None

    def _residue_name(self, token: str) -> str:
        try:
            return format_residue_name(token)
        except ValueError:
            raise self._fail(f"residue name {token} longer than 4 characters") from None


def read_topology(filepath: Union[str, Path]) -> TopologyDatabase:
    """Read a topology database file."""
    return TopologyReader(filepath).read()


def load_default_topology() -> TopologyDatabase:
    """Read the database bundled with the package."""
    return read_topology(DEFAULT_TOPOLOGY_FILE)
