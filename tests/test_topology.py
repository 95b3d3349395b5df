"""Tests for the topology database model and its file reader."""

import dataclasses
import logging

import pytest

from molprep.config import HBuildConfig
from molprep.core.domain.models.structure import RecordType
from molprep.core.domain.models.topology import (
    BondingType,
    ControlAtom,
    HydrogenRule,
    MoleculeType,
    TopologyDatabase,
    make_rule,
)
from molprep.core.exceptions import TopologyError, UnknownBondingTypeError
from molprep.io.topology_reader import load_default_topology, read_topology

from conftest import ala_entry, water_entry

SMALL_TOPOLOGY = """\
# test database
[proteins]
RTYPE A
RESIDUE GLY
  FTERM NGLY
  HYDRO H   1 1 1.01 N  -C  CA
  HYDRO HA  2 6 1.09 CA N   C    # methylene
  HEAVY N CA C O
END

RESIDUE NGLY
  HYDRO H   3 4 1.01 N  CA  C
  HYDRO HA  2 6 1.09 CA N   C
  HEAVY N CA C O
END

[other]
RTYPE H
RESIDUE HOH WAT
  HYDRO H 2 10 0.9572 O
  HEAVY O
END
"""


@pytest.fixture
def topology_file(tmp_path):
    def _write(text: str):
        path = tmp_path / "top.dat"
        path.write_text(text)
        return path

    return _write


class TestBondingType:
    def test_control_counts(self):
        assert [t.n_controls for t in BondingType] == [2, 2, 2, 2, 3, 2, 0]

    def test_position_counts(self):
        assert [t.max_hydrogens for t in BondingType] == [1, 1, 2, 3, 1, 2, 2]

    @pytest.mark.parametrize("code", [0, 7, 9, 11])
    def test_unknown_code(self, code):
        with pytest.raises(UnknownBondingTypeError):
            BondingType.from_code(code)


class TestHydrogenRule:
    def test_make_rule(self):
        rule = make_rule("H", "N", 1, 1, 1.01, "-C", "CA")
        assert rule.hydrogen_name == " H  "
        assert rule.heavy_atom == " N  "
        assert rule.bonding_type is BondingType.PLANAR
        assert rule.controls == (
            ControlAtom(" C  ", previous_residue=True),
            ControlAtom(" CA ", previous_residue=False),
        )

    def test_wrong_number_of_controls(self):
        with pytest.raises(TopologyError, match="needs 3 control atoms"):
            make_rule("HA", "CA", 1, 5, 1.09, "N", "C")

    def test_too_many_hydrogens(self):
        with pytest.raises(TopologyError):
            make_rule("H", "N", 2, 1, 1.01, "-C", "CA")

    def test_unknown_bonding_type(self):
        with pytest.raises(UnknownBondingTypeError):
            HydrogenRule(" H  ", " N  ", 1, 7, 1.0, ())

    def test_rules_are_frozen(self):
        rule = make_rule("HB", "CB", 3, 4, 1.09, "CA", "N")
        with pytest.raises(dataclasses.FrozenInstanceError):
            rule.n_hydrogens = 2


class TestTopologyDatabase:
    def test_lookup_normalizes_names(self, ala_database):
        assert ala_database.lookup("ALA").name == "ALA "
        assert ala_database.lookup("ALA ") is ala_database.lookup(" ALA")
        assert ala_database.lookup("XYZ") is None
        assert ala_database.lookup("") is None
        assert "HOH" in ala_database
        assert len(ala_database) == 2

    def test_duplicate_names(self):
        with pytest.raises(TopologyError, match="defined twice"):
            TopologyDatabase([ala_entry(), ala_entry()])

    def test_entries_are_read_only(self, ala_database):
        with pytest.raises(TypeError):
            ala_database.entries["GLY "] = ala_entry("GLY")

    def test_terminal_links(self, terminal_database):
        entry = terminal_database.lookup("ALA")
        assert entry.first_terminal is terminal_database.lookup("NALA")
        assert entry.last_terminal is None

    def test_link_from_unknown_residue(self):
        with pytest.raises(TopologyError, match="not found"):
            TopologyDatabase([ala_entry()], terminal_links={"GLY": ("NGLY", "")})

    def test_unresolved_terminal_only_warns(self, caplog):
        with caplog.at_level(logging.WARNING):
            database = TopologyDatabase(
                [ala_entry()], terminal_links={"ALA": ("NALA", "")}
            )
        assert database.lookup("ALA").first_terminal is None
        assert "terminal residue NALA does not exist" in caplog.text

    def test_first_variant_takes_precedence(self):
        database = TopologyDatabase(
            [ala_entry(), ala_entry("NALA", n_terminal=True), ala_entry("CALA")],
            terminal_links={"ALA": ("NALA", "CALA")},
        )
        entry = default_database.lookup("ALA")
        config = HBuildConfig()
        assert entry.terminal_variant(True, True, config).name == "NALA"
        assert entry.terminal_variant(False, True, config).name == "CALA"
        assert entry.terminal_variant(False, False, config) is entry

    def test_terminal_flags_disable_variants(self, terminal_database):
        entry = terminal_database.lookup("ALA")
        config = HBuildConfig(n_terminus=False)
        assert entry.terminal_variant(True, False, config) is entry

    def test_other_molecules_never_substituted(self):
        water = dataclasses.replace(water_entry(), first_terminal=ala_entry())
        assert water.terminal_variant(True, True, HBuildConfig()) is water

    def test_record_type_requirement(self):
        assert ala_entry().accepts(RecordType.ATOM)
        assert not water_entry().accepts(RecordType.ATOM)
        assert dataclasses.replace(water_entry(), record_type=None).accepts(
            RecordType.ATOM
        )

    def test_expected_hydrogens(self):
        assert ala_entry().expected_hydrogens == 5
        assert ala_entry("NALA", n_terminal=True).expected_hydrogens == 7


class TestTopologyReader:
    def test_read_small_database(self, topology_file):
        database = read_topology(topology_file(SMALL_TOPOLOGY))

        assert set(database.names()) == {"GLY ", "NGLY", "HOH ", "WAT "}
        gly = database.lookup("GLY")
        assert gly.molecule_type is MoleculeType.PROTEIN
        assert gly.record_type is RecordType.ATOM
        assert gly.heavy_atoms == (" N  ", " CA ", " C  ", " O  ")
        assert gly.find_hydrogen_rule(" CA ").bonding_type is BondingType.METHYLENE
        assert gly.find_hydrogen_rule(" O  ") is None
        assert gly.first_terminal.name == "NGLY"
        assert gly.last_terminal is None

    def test_aliases_share_rules(self, topology_file):
        database = read_topology(topology_file(SMALL_TOPOLOGY))
        water, alias = default_database.lookup("HOH"), database.lookup("WAT")
        assert water.hydrogen_rules == alias.hydrogen_rules
        assert alias.record_type is RecordType.HETATM
        assert alias.molecule_type is MoleculeType.OTHER

    def test_raw_atom_names(self, topology_file):
        text = (
            "[other]\nRESIDUE LIG\n  HYDRO <1HC 3 4 1.09 <C1  C2 C3\n"
            "  HEAVY <C1  C2 C3\nEND\n"
        )
        entry = read_topology(topology_file(text)).lookup("LIG")
        assert entry.hydrogen_rules[0].hydrogen_name == "1HC "
        assert entry.heavy_atoms[0] == "C1  "
        assert entry.record_type is None

    @pytest.mark.parametrize(
        "text, message",
        [
            ("RESIDUE ALA\n", "no molecule type set"),
            ("[proteins]\nRESIDUE ALA\nRESIDUE GLY\n", "not properly ENDed"),
            ("[proteins]\nHYDRO H 1 1 1.01 N -C CA\n", "not inside residue"),
            ("[proteins]\nRESIDUE ALA\nBOGUS x\nEND\n", "unknown keyword BOGUS"),
            ("[proteins]\nRESIDUE ALA\nHEAVY N\nEND\n", "no hydrogen entries"),
            ("[proteins]\nRESIDUE ALA\nHYDRO H 1 1 1.01 N -C CA\nEND\n", "no heavy atom"),
            ("[proteins]\nRESIDUE ALA\nHYDRO H 1 1 1.01 N -C\nHEAVY N\nEND\n", "control atoms"),
            ("[proteins]\nRESIDUE ALA\nHYDRO H 1 1 1.01\nEND\n", "fields read"),
            ("[proteins]\nRESIDUE ALA\nHYDRO H 1 1 1.01 N -C CA\nHEAVY N\n", "last END missing"),
            ("[lipids]\n", "unknown molecule type"),
        ],
    )
    def test_malformed_database(self, topology_file, text, message):
        with pytest.raises(TopologyError, match=message):
            read_topology(topology_file(text))

    def test_error_names_line(self, topology_file):
        text = "[proteins]\nRESIDUE ALA\n\n  BOGUS\nEND\n"
        with pytest.raises(TopologyError, match="line 4"):
            read_topology(topology_file(text))

    def test_unknown_bonding_type_in_file(self, topology_file):
        text = "[proteins]\nRESIDUE ALA\nHYDRO H 1 7 1.01 N -C CA\nHEAVY N\nEND\n"
        with pytest.raises(UnknownBondingTypeError, match="hydrogen type 7"):
            read_topology(topology_file(text))


@pytest.fixture(scope="module")
def default_database():
    """The bundled topology database."""
    return load_default_topology()


class TestDefaultTopology:
    def test_standard_residues_present(self, default_database):
        for name in ("ALA", "GLY", "PRO", "HIS", "HID", "CYX", "CYS2", "DA", "U", "HOH"):
            assert name in default_database, name

    def test_protein_terminals_linked(self, default_database):
        ala = default_database.lookup("ALA")
        assert ala.first_terminal.name == "NALA"
        assert ala.last_terminal.name == "CALA"
        assert " OXT" in ala.last_terminal.heavy_atoms

    def test_nucleic_terminals_linked(self, default_database):
        da = default_database.lookup("DA")
        assert da.molecule_type is MoleculeType.DNA
        assert da.first_terminal.name == "DA5 "
        assert da.last_terminal.name == "DA3 "

    def test_water(self, default_database):
        rule = default_database.lookup("HOH").find_hydrogen_rule(" O  ")
        assert rule.bonding_type is BondingType.WATER
        assert rule.n_hydrogens == 2
