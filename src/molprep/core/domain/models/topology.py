#!/usr/bin/env python3
# src/molprep/core/domain/models/topology.py

"""
Domain models for the residue topology database.

The database maps residue names to the heavy atoms a residue must have and
to the rules for placing its hydrogens. It is built once, linked in a
second pass (terminal variants) and read-only afterwards.
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum
from types import MappingProxyType
from typing import (
    TYPE_CHECKING,
    Dict,
    Iterable,
    Iterator,
    Mapping,
    Optional,
    Tuple,
)

from ...exceptions import TopologyError, UnknownBondingTypeError
from ...utils.names import format_atom_name, format_residue_name
from .structure import RecordType

if TYPE_CHECKING:
    from ....config import HBuildConfig

logger = logging.getLogger(__name__)


class MoleculeType(Enum):
    """Molecule class a topology entry belongs to."""

    PROTEIN = "P"
    DNA = "D"
    RNA = "R"
    OTHER = "O"

    @classmethod
    def from_section(cls, section: str) -> "MoleculeType":
        """Map a ``[proteins]``-style section header to a molecule type."""
        key = section.strip().strip("[]").strip()
        for prefix, mol_type in (
            ("proteins", cls.PROTEIN),
            ("DNA", cls.DNA),
            ("RNA", cls.RNA),
            ("other", cls.OTHER),
        ):
            if key.startswith(prefix):
                return mol_type
        raise ValueError(f"unknown molecule type {key}")


class BondingType(IntEnum):
    """Geometric construction used to place the hydrogens of one heavy atom."""

    PLANAR = 1
    HYDROXYL = 2
    PLANAR_PAIR = 3
    METHYL = 4
    TETRAHEDRAL = 5
    METHYLENE = 6
    WATER = 10

    @classmethod
    def from_code(cls, code: int) -> "BondingType":
        try:
            return cls(int(code))
        except ValueError:
            raise UnknownBondingTypeError(code) from None

    @property
    def n_controls(self) -> int:
        """Number of control atoms the construction needs."""
        return _CONTROL_COUNTS[self]

    @property
    def max_hydrogens(self) -> int:
        """Number of positions the construction produces."""
        return _POSITION_COUNTS[self]


_CONTROL_COUNTS = {
    BondingType.PLANAR: 2,
    BondingType.HYDROXYL: 2,
    BondingType.PLANAR_PAIR: 2,
    BondingType.METHYL: 2,
    BondingType.TETRAHEDRAL: 3,
    BondingType.METHYLENE: 2,
    BondingType.WATER: 0,
}

_POSITION_COUNTS = {
    BondingType.PLANAR: 1,
    BondingType.HYDROXYL: 1,
    BondingType.PLANAR_PAIR: 2,
    BondingType.METHYL: 3,
    BondingType.TETRAHEDRAL: 1,
    BondingType.METHYLENE: 2,
    BondingType.WATER: 2,
}


@dataclass(frozen=True)
class ControlAtom:
    """Reference to an atom anchoring a hydrogen construction."""

    name: str
    previous_residue: bool = False


@dataclass(frozen=True)
class HydrogenRule:
    """How many hydrogens a heavy atom carries and how to place them."""

    hydrogen_name: str
    heavy_atom: str
    n_hydrogens: int
    bonding_type: BondingType
    bond_length: float
    controls: Tuple[ControlAtom, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "bonding_type", BondingType.from_code(self.bonding_type))
        object.__setattr__(self, "controls", tuple(self.controls))

        if len(self.controls) != self.bonding_type.n_controls:
            raise TopologyError(
                f"bonding type {int(self.bonding_type)} of {self.heavy_atom.strip()} "
                f"needs {self.bonding_type.n_controls} control atoms, "
                f"got {len(self.controls)}"
            )
        if not 1 <= self.n_hydrogens <= self.bonding_type.max_hydrogens:
            raise TopologyError(
                f"bonding type {int(self.bonding_type)} cannot place "
                f"{self.n_hydrogens} hydrogens on {self.heavy_atom.strip()}"
            )
        if self.bond_length <= 0.0:
            raise TopologyError(
                f"invalid X-H distance {self.bond_length} for {self.heavy_atom.strip()}"
            )


@dataclass(frozen=True)
class TopologyEntry:
    """Bonding template of one residue."""

    name: str
    molecule_type: MoleculeType
    heavy_atoms: Tuple[str, ...]
    hydrogen_rules: Tuple[HydrogenRule, ...]
    record_type: Optional[RecordType] = None
    first_terminal: Optional["TopologyEntry"] = field(
        default=None, repr=False, compare=False
    )
    last_terminal: Optional["TopologyEntry"] = field(
        default=None, repr=False, compare=False
    )

    def __post_init__(self):
        object.__setattr__(self, "heavy_atoms", tuple(self.heavy_atoms))
        object.__setattr__(self, "hydrogen_rules", tuple(self.hydrogen_rules))

    def find_hydrogen_rule(self, heavy_atom_name: str) -> Optional[HydrogenRule]:
        """Return the rule for ``heavy_atom_name`` or None if it carries no hydrogens."""
        for rule in self.hydrogen_rules:
            if rule.heavy_atom == heavy_atom_name:
                return rule
        return None

    def accepts(self, record_type: RecordType) -> bool:
        """Check the residue record type against the entry's requirement."""
        return self.record_type is None or self.record_type == record_type

    def terminal_variant(
        self, is_first: bool, is_last: bool, config: "HBuildConfig"
    ) -> "TopologyEntry":
        """
        Pick the entry to use for a residue at a chain end.

        The first-residue variant takes precedence over the last-residue one.
        Returns ``self`` when no substitution applies.
        """
        first_allowed, last_allowed = config.terminal_flags(self.molecule_type)
        if is_first and self.first_terminal is not None and first_allowed:
            return self.first_terminal
        if is_last and self.last_terminal is not None and last_allowed:
            return self.last_terminal
        return self

    @property
    def expected_hydrogens(self) -> int:
        return sum(rule.n_hydrogens for rule in self.hydrogen_rules)


class TopologyDatabase:
    """Residue-name keyed, read-only collection of topology entries."""

    def __init__(
        self,
        entries: Iterable[TopologyEntry],
        terminal_links: Optional[Mapping[str, Tuple[str, str]]] = None,
        source: str = "<topology>",
    ):
        """
        Build the database in two passes.

        Args:
            entries: Topology entries; names must be unique
            terminal_links: Residue name to (first, last) terminal variant
                names; empty strings mean no variant
            source: Name used in diagnostics, usually the file name

        Raises:
            TopologyError: On duplicate names or links from unknown residues
        """
        self.source = source
        table: Dict[str, TopologyEntry] = {}

        for entry in entries:
            key = self._key(entry.name)
            if key in table:
                raise TopologyError(f"{source}: residue {key.strip()} defined twice")
            table[key] = replace(entry, name=key) if key != entry.name else entry

        linked = dict(table)
        for name, (first, last) in (terminal_links or {}).items():
            key = self._key(name)
            if key not in table:
                raise TopologyError(f"{source}: key {key.strip()} not found in database")
            entry = table[key]
            linked[key] = replace(
                entry,
                first_terminal=self._resolve_terminal(table, first, entry.first_terminal),
                last_terminal=self._resolve_terminal(table, last, entry.last_terminal),
            )

        self._entries = MappingProxyType(linked)
        logger.debug("Topology database %s holds %d residues", source, len(linked))

    def _resolve_terminal(
        self,
        table: Mapping[str, TopologyEntry],
        name: Optional[str],
        current: Optional[TopologyEntry],
    ) -> Optional[TopologyEntry]:
        if not name:
            return current
        key = self._key(name)
        if key not in table:
            logger.warning(
                "%s: terminal residue %s does not exist in topology database",
                self.source,
                key.strip(),
            )
            return None
        return table[key]

    @staticmethod
    def _key(name: str) -> str:
        try:
            return format_residue_name(name)
        except ValueError as e:
            raise TopologyError(str(e)) from None

    def lookup(self, residue_name: str) -> Optional[TopologyEntry]:
        """Return the entry for ``residue_name`` or None if unknown."""
        try:
            key = format_residue_name(residue_name)
        except ValueError:
            return None
        return self._entries.get(key)

    @property
    def entries(self) -> Mapping[str, TopologyEntry]:
        return self._entries

    def names(self) -> Tuple[str, ...]:
        return tuple(self._entries)

    def __contains__(self, residue_name: str) -> bool:
        return self.lookup(residue_name) is not None

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[TopologyEntry]:
        return iter(self._entries.values())


def make_rule(
    hydrogen_name: str,
    heavy_atom: str,
    n_hydrogens: int,
    bonding_type: int,
    bond_length: float,
    *controls: str,
) -> HydrogenRule:
    """
    Build a rule from plain atom names, ``-`` marking previous-residue atoms.

    Convenience for code and tests that assemble databases without a file.
    """
    refs = []
    for control in controls:
        previous = control.startswith("-")
        refs.append(
            ControlAtom(format_atom_name(control.lstrip("-")), previous_residue=previous)
        )
    return HydrogenRule(
        hydrogen_name=format_atom_name(hydrogen_name),
        heavy_atom=format_atom_name(heavy_atom),
        n_hydrogens=n_hydrogens,
        bonding_type=bonding_type,
        bond_length=bond_length,
        controls=tuple(refs),
    )
