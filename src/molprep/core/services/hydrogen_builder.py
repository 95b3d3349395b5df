#!/usr/bin/env python3
# src/molprep/core/services/hydrogen_builder.py

"""
Service adding missing hydrogens to a structure.

Walks chains, residues and heavy atoms once, looks each residue up in the
topology database and splices computed hydrogens in after their heavy
atom. Terminal residues of proteins and nucleic acids can be swapped for
their terminal variants.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from ...config import HBuildConfig
from ..domain.implementations.hydrogen_geometry import place_hydrogens
from ..domain.models.atom import Atom
from ..domain.models.structure import Chain, Residue, Structure
from ..domain.models.topology import HydrogenRule, TopologyDatabase, TopologyEntry
from ..exceptions import GeometryError
from ..utils.diagnostics import OrderedWarningSet
from ..utils.names import numbered_hydrogen_name
from ..utils.vector import dist2

logger = logging.getLogger(__name__)

MAX_XH_DIST2 = 1.5  # generous X-H distance squared


@dataclass
class AtomIssue:
    """A heavy atom the builder had to skip."""

    chain_id: str
    residue: str
    atom_name: str
    n_found: int = 0

    def __str__(self) -> str:
        return f"{self.atom_name.strip()} ({self.residue} {self.chain_id})"


@dataclass
class HydrogenBuildReport:
    """Outcome of one builder run."""

    atoms_added: int = 0
    residues_processed: int = 0
    residues_skipped: int = 0
    residues_not_found: List[str] = field(default_factory=list)
    incomplete_residues: List[Tuple[str, str, List[str]]] = field(default_factory=list)
    too_many_hydrogens: List[AtomIssue] = field(default_factory=list)
    partial_hydrogens: List[AtomIssue] = field(default_factory=list)
    missing_controls: List[AtomIssue] = field(default_factory=list)

    @property
    def has_warnings(self) -> bool:
        return bool(
            self.residues_not_found
            or self.incomplete_residues
            or self.too_many_hydrogens
            or self.partial_hydrogens
            or self.missing_controls
        )


class HydrogenBuilder:
    """Adds hydrogens according to a topology database."""

    def __init__(self, database: TopologyDatabase, config: Optional[HBuildConfig] = None):
        """Initialize the builder with a database and options."""
        self._database = database
        self._config = config or HBuildConfig()

    @property
    def config(self) -> HBuildConfig:
        return self._config

    def build(self, structure: Structure) -> HydrogenBuildReport:
        """
        Add hydrogens to ``structure`` in place.

        Only insertions happen; existing atoms are never moved or removed.

        Args:
            structure: Structure to complete

        Returns:
            HydrogenBuildReport with counts and skipped atoms

        Raises:
            UnknownBondingTypeError: If a rule carries an unsupported type
        """
        report = HydrogenBuildReport()
        not_found = OrderedWarningSet()

        for chain in structure.chains:
            residues = structure.residues_of(chain)
            previous: Optional[Residue] = None

            for position, residue in enumerate(residues):
                entry = self._resolve_entry(residue, not_found)
                if entry is not None:
                    entry = entry.terminal_variant(
                        is_first=position == 0,
                        is_last=position == len(residues) - 1,
                        config=self._config,
                    )
                    self._check_residue(structure, chain, residue, entry, report)
                    self._build_residue(
                        structure, chain, residue, previous, entry, report
                    )
                    report.residues_processed += 1
                else:
                    report.residues_skipped += 1
                previous = residue

        report.residues_not_found = [
            name.strip()
            for name in not_found.flush(
                logger, "residues not found in topology database:"
            )
        ]
        logger.info(
            "%d hydrogens added to %d residues",
            report.atoms_added,
            report.residues_processed,
        )
        return report

    def _resolve_entry(
        self, residue: Residue, not_found: OrderedWarningSet
    ) -> Optional[TopologyEntry]:
        entry = self._database.lookup(residue.name)

        # the record type requirement separates names shared by polymer
        # residues and ligands, e.g. HID or DGN
        if entry is None or not entry.accepts(residue.record_type):
            not_found.add(residue.name)
            return None
        return entry

    def _check_residue(
        self,
        structure: Structure,
        chain: Chain,
        residue: Residue,
        entry: TopologyEntry,
        report: HydrogenBuildReport,
    ) -> None:
        """Warn once per residue about required heavy atoms that are missing."""
        alt_loc = self._config.alt_loc
        present = {
            atom.name for atom in structure.atoms_of(residue) if atom.in_alt_loc(alt_loc)
        }
        missing = OrderedWarningSet(
            name for name in entry.heavy_atoms if name not in present
        )
        flushed = missing.flush(
            logger,
            f"atoms not found in residue {residue.label} {chain.chain_id}:",
        )
        if flushed:
            report.incomplete_residues.append(
                (chain.chain_id, residue.label, [name.strip() for name in flushed])
            )

    def _build_residue(
        self,
        structure: Structure,
        chain: Chain,
        residue: Residue,
        previous: Optional[Residue],
        entry: TopologyEntry,
        report: HydrogenBuildReport,
    ) -> None:
        alt_loc = self._config.alt_loc

        for atom in structure.atoms_of(residue):
            if atom.is_hydrogen or not atom.in_alt_loc(alt_loc):
                continue

            rule = entry.find_hydrogen_rule(atom.name)
            if rule is None:
                continue

            n_found = self.count_hydrogens(structure, atom)
            issue = AtomIssue(chain.chain_id, residue.label, atom.name, n_found)

            if n_found > rule.n_hydrogens:
                logger.warning(
                    "atom %s-%s %s has too many hydrogens (%d) already",
                    atom.name.strip(),
                    residue.label,
                    chain.chain_id,
                    n_found,
                )
                report.too_many_hydrogens.append(issue)
            elif n_found == rule.n_hydrogens:
                continue
            elif n_found > 0:
                logger.warning(
                    "atom %s-%s %s: cannot handle partially (%d) populated hydrogens",
                    atom.name.strip(),
                    residue.label,
                    chain.chain_id,
                    n_found,
                )
                report.partial_hydrogens.append(issue)
            elif self._add_hydrogens(structure, atom, rule, residue, previous):
                report.atoms_added += rule.n_hydrogens
            else:
                logger.warning(
                    "cannot find all control atoms for atom %s (%s %s) in PDB",
                    atom.name.strip(),
                    residue.label,
                    chain.chain_id,
                )
                report.missing_controls.append(issue)

    def count_hydrogens(self, structure: Structure, atom: Atom) -> int:
        """
        Count hydrogens already bonded to ``atom``.

        Only atoms after ``atom`` in its residue are examined, so a hydrogen
        listed before its heavy atom is not counted.
        """
        alt_loc = self._config.alt_loc
        n_found = 0
        for other in structure.atoms_after(atom):
            if not other.in_alt_loc(alt_loc):
                continue
            if other.is_hydrogen and dist2(atom.coordinates, other.coordinates) < MAX_XH_DIST2:
                n_found += 1
        return n_found

    def _find_control(
        self, structure: Structure, residue: Optional[Residue], name: str
    ) -> Optional[Atom]:
        if residue is None:
            return None
        alt_loc = self._config.alt_loc
        for atom in structure.atoms_of(residue):
            if atom.is_hydrogen or not atom.in_alt_loc(alt_loc):
                continue
            if atom.name == name:
                return atom
        return None

    def _add_hydrogens(
        self,
        structure: Structure,
        atom: Atom,
        rule: HydrogenRule,
        residue: Residue,
        previous: Optional[Residue],
    ) -> bool:
        """Place the hydrogens of ``rule`` after ``atom``; False if controls are missing."""
        controls = []
        for control in rule.controls:
            owner = previous if control.previous_residue else residue
            found = self._find_control(structure, owner, control.name)
            if found is None:
                return False
            controls.append(found.coordinates)

        try:
            positions = place_hydrogens(
                rule.bonding_type, atom.coordinates, controls, rule.bond_length
            )
        except GeometryError as e:
            logger.debug("degenerate geometry at %s: %s", atom.name.strip(), e)
            return False

        n = rule.n_hydrogens
        for i in range(n):
            name = (
                numbered_hydrogen_name(rule.hydrogen_name, n - i)
                if n > 1
                else rule.hydrogen_name
            )
            structure.insert_atom_after(
                atom,
                name=name,
                coordinates=positions[i],
                element="H",
                alt_loc=" ",
                occupancy=1.0,
                temp_factor=0.0,
                charge="",
            )
        return True


def build_hydrogens(
    structure: Structure,
    database: TopologyDatabase,
    config: Optional[HBuildConfig] = None,
) -> HydrogenBuildReport:
    """Convenience wrapper around :class:`HydrogenBuilder`."""
    return HydrogenBuilder(database, config).build(structure)
