#!/usr/bin/env python3
# src/molprep/io/pdb_reader.py

"""
Fixed-column PDB reader producing a :class:`Structure`.

Atoms are kept in file order, which the hydrogen builder relies on, and
residue names are read from columns 18-21 so that four-character names
(``CYS2``, ``HID ``) survive. Files ending in ``.gz`` or ``.bz2`` are
decompressed on the fly.
"""

import bz2
import gzip
import logging
import re
import sys
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from ..config import PrepConfig
from ..core.domain.models.atom import Atom
from ..core.domain.models.structure import (
    Chain,
    RecordType,
    Residue,
    SSBond,
    SSBondPartner,
    Structure,
)
from ..core.exceptions import StructureError
from ..core.utils.diagnostics import OrderedWarningSet
from ..core.utils.names import format_residue_name, is_hydrogen

logger = logging.getLogger(__name__)

MIN_ATOM_FIELDS = 10  # serial through z
OCCUPANCY_EPSILON = sys.float_info.epsilon

# (name, slice, converter) in record order; parsing stops at the first failure
_ATOM_FIELDS = (
    ("serial", slice(6, 11), str),
    ("name", slice(12, 16), str),
    ("alt_loc", slice(16, 17), str),
    ("residue_name", slice(17, 21), str),
    ("chain_id", slice(21, 22), str),
    ("seq_num", slice(22, 26), int),
    ("insertion_code", slice(26, 27), str),
    ("x", slice(30, 38), float),
    ("y", slice(38, 46), float),
    ("z", slice(46, 54), float),
    ("occupancy", slice(54, 60), float),
    ("temp_factor", slice(60, 66), float),
    ("segment_id", slice(72, 76), str),
    ("element", slice(76, 78), str),
    ("charge", slice(78, 80), str),
)

_MISSING_REMARKS = {
    "REMARK 465": "PDB warns of missing residues",
    "REMARK 470": "PDB warns of missing atoms",
    "REMARK 475": "PDB warns of residues with zero occupancy",
    "REMARK 480": "PDB warns of non-hydrogens with zero occupancy",
}


def open_text(path: Union[str, Path]):
    """Open a possibly compressed text file for reading."""
    path = str(path)
    if path.endswith(".gz"):
        return gzip.open(path, "rt")
    if path.endswith(".bz2"):
        return bz2.open(path, "rt")
    return open(path, "r")


def _leading_float(text: str) -> Optional[float]:
    match = re.match(r"\s*([-+]?\d*\.?\d+(?:[eE][-+]?\d+)?)", text)
    return float(match.group(1)) if match else None


def _is_ph_remark(line: str) -> bool:
    """REMARK 200-269 (except 22x) lines reporting the pH, e.g. ``REMARK 200  PH : 7.0``."""
    return (
        line.startswith("REMARK 2")
        and line[8:9] in ("0", "1", "3", "4", "5", "6")
        and line[11:15] == " PH "
        and ":" in line
    )


class PDBReader:
    """Reads one model of a PDB file into a :class:`Structure`."""

    def __init__(self, config: Optional[PrepConfig] = None):
        """
        Initialize the reader.

        Args:
            config: Run options; model selection, hydrogen removal, SSBOND
                handling and occupancy warnings are taken from it
        """
        self.config = config or PrepConfig()

    @staticmethod
    def _parse_atom_line(line: str) -> Tuple[Dict, int]:
        """Parse an ATOM/HETATM record; returns the fields and how many were read."""
        record: Dict = {}
        for count, (key, columns, convert) in enumerate(_ATOM_FIELDS):
            text = line[columns]
            if not text:
                return record, count
            try:
                if convert is str:
                    record[key] = text if key in ("name", "residue_name") else text.strip()
                else:
                    record[key] = convert(text.strip())
            except ValueError:
                return record, count
        return record, len(_ATOM_FIELDS)

    @staticmethod
    def _parse_ssbond_line(line: str) -> SSBond:
        line = line.ljust(80)

        def partner(chain_col: int, seq_cols: slice, icode_col: int, sym: slice):
            return SSBondPartner(
                chain_id=line[chain_col],
                seq_num=int(line[seq_cols]),
                insertion_code=line[icode_col],
                sym_op=line[sym].strip(),
            )

        length = _leading_float(line[73:78])
        return SSBond(
            serial=int(line[7:10]),
            partner1=partner(15, slice(17, 21), 21, slice(59, 65)),
            partner2=partner(29, slice(31, 35), 35, slice(66, 72)),
            length=length or 0.0,
        )

    def read(self, filepath: Union[str, Path]) -> Structure:
        """
        Read ``filepath``.

        Returns:
            Structure holding the selected model

        Raises:
            StructureError: On malformed ATOM/HETATM records, residues mixing
                ATOM and HETATM records or carrying two names, or when no
                atom was read
        """
        filepath = str(filepath)
        config = self.config
        model_no = config.model_no
        ss_name = config.ss_name

        structure = Structure()
        chain: Optional[Chain] = None
        residue: Optional[Residue] = None
        residue_raw_name = ""
        model_found = False
        current_model = 0
        ter_found = False
        caveat_found = False
        mdltyp_found = False
        seen_remarks = set()
        low_occupancy = OrderedWarningSet()
        line_no = 0

        with open_text(filepath) as f:
            for line_no, raw in enumerate(f, start=1):
                line = raw.rstrip("\r\n")

                if line.startswith("ATOM") or line.startswith("HETATM"):
                    if model_found and current_model != model_no:
                        continue

                    record, n_fields = self._parse_atom_line(line.ljust(80))
                    if n_fields < MIN_ATOM_FIELDS:
                        raise StructureError(
                            f"{filepath}: only {n_fields} ATOM/HETATM fields read "
                            f"successfully in line {line_no} but expected at least "
                            f"{MIN_ATOM_FIELDS}"
                        )

                    element = record.get("element", "")
                    if is_hydrogen(element, record["name"]):
                        if config.remove_hydrogens:
                            continue
                        element = element or "H"

                    record_type = RecordType.from_record(line)
                    chain_id = record["chain_id"] or " "
                    icode = record["insertion_code"] or " "
                    raw_name = record["residue_name"]

                    new_chain = chain is None or chain_id != chain.chain_id or ter_found
                    new_residue = (
                        new_chain
                        or record["seq_num"] != residue.seq_num
                        or icode != residue.insertion_code
                    )
                    if new_residue:
                        self._flush_occupancy(low_occupancy, residue, chain)
                    if new_chain:
                        chain = structure.add_chain(chain_id)
                        ter_found = False

                    if new_residue:
                        previous = residue
                        residue = structure.add_residue(
                            chain,
                            self._new_residue(
                                raw_name,
                                record,
                                icode,
                                record_type,
                                structure,
                                chain_id,
                                ss_name,
                                filepath,
                                line_no,
                            ),
                        )
                        residue_raw_name = raw_name
                        if not new_chain and record_type is RecordType.ATOM:
                            self._check_gap(previous, residue, chain_id)
                    else:
                        if raw_name != residue_raw_name:
                            raise StructureError(
                                f"residue {residue.label} {chain_id} has also other "
                                f"name: {raw_name.strip()}, check SEQADV/REMARK 999"
                            )
                        if record_type is not residue.record_type:
                            raise StructureError(
                                f"residue {residue.label} {chain_id} has both ATOM "
                                f"and HETATM records"
                            )

                    occupancy = record.get("occupancy", 0.0)
                    atom = structure.add_atom(
                        residue,
                        Atom(
                            name=record["name"],
                            coordinates=(record["x"], record["y"], record["z"]),
                            element=element,
                            alt_loc=record["alt_loc"] or " ",
                            occupancy=occupancy,
                            temp_factor=record.get("temp_factor", 0.0),
                            serial=record["serial"],
                            charge=record.get("charge", ""),
                        ),
                    )
                    if config.hbuild.warn_occupancy and occupancy < OCCUPANCY_EPSILON:
                        low_occupancy.add(atom.name)

                elif line.startswith("MODEL"):
                    model_found = True
                    try:
                        current_model = int(line[10:14])
                    except ValueError:
                        raise StructureError(
                            f"{filepath}: MODEL record requires serial in line {line_no}"
                        ) from None
                    if model_no is None:
                        model_no = current_model

                elif line.startswith("TER"):
                    ter_found = True

                elif line.startswith("SSBOND") and config.read_ssbonds:
                    try:
                        structure.ssbonds.append(self._parse_ssbond_line(line))
                    except ValueError:
                        logger.warning(
                            "%s: cannot read SSBOND record in line %d", filepath, line_no
                        )

                elif line.startswith("CRYST1"):
                    structure.cryst1 = line

                elif line.startswith("HEADER"):
                    logger.info("header of %s: %s", filepath, line[6:].strip())
                    if len(line) > 66:
                        structure.pdb_id = line[62:66].strip()

                elif line.startswith("OBSLTE"):
                    logger.warning("this PDB has been obsoleted by %s", line[31:].strip())
                elif line.startswith("TITLE"):
                    logger.info("   %s", line[10:].strip())
                elif line.startswith("SPLIT"):
                    logger.warning(
                        "PDB has been split.  Required IDs to reconstitute: %s",
                        line[11:].strip(),
                    )
                elif line.startswith("CAVEAT"):
                    if not caveat_found:
                        logger.warning("This PDB contains SEVERE ERRORS:")
                        caveat_found = True
                    logger.warning("    %s", line[10:].strip())
                elif line.startswith("EXPDTA"):
                    logger.info("PDB reports experiment type as %s", line[6:].strip())
                elif line.startswith("NUMMDL"):
                    n_models = _leading_float(line[10:24])
                    if n_models is not None:
                        logger.info("PDB contains %d models", int(n_models))
                elif line.startswith("MDLTYP"):
                    if not mdltyp_found:
                        logger.info("PDB reports model type as")
                        mdltyp_found = True
                    logger.info("    %s", line[10:].strip())
                elif line.startswith("REMARK"):
                    self._log_remark(line, seen_remarks)

        if chain is None:
            raise StructureError(
                f"{line_no} lines read but no atoms extracted from {filepath}"
            )

        self._flush_occupancy(low_occupancy, residue, chain)
        structure.model_no = model_no if model_found else 0

        logger.info(
            "%d atoms, %d residues, %d chain%s read",
            structure.n_atoms,
            structure.n_residues,
            structure.n_chains,
            "s" if structure.n_chains > 1 else "",
        )
        return structure

    def _new_residue(
        self,
        raw_name: str,
        record: Dict,
        icode: str,
        record_type: RecordType,
        structure: Structure,
        chain_id: str,
        ss_name: str,
        filepath: str,
        line_no: int,
    ) -> Residue:
        try:
            name = format_residue_name(raw_name)
        except ValueError:
            raise StructureError(
                f"{filepath}: missing residue name in line {line_no}"
            ) from None

        if name == "CYS " and self._in_ssbond(structure.ssbonds, chain_id, record["seq_num"]):
            name = ss_name

        return Residue(
            name=name,
            seq_num=record["seq_num"],
            insertion_code=icode,
            record_type=record_type,
            segment_id=record.get("segment_id", ""),
        )

    @staticmethod
    def _in_ssbond(ssbonds: List[SSBond], chain_id: str, seq_num: int) -> bool:
        for bond in ssbonds:
            for partner in (bond.partner1, bond.partner2):
                if partner.seq_num == seq_num and partner.chain_id == chain_id:
                    return True
        return False

    @staticmethod
    def _check_gap(previous: Optional[Residue], residue: Residue, chain_id: str) -> None:
        if previous is None:
            return
        gap = residue.seq_num - previous.seq_num - 1
        if gap > 0:
            logger.warning(
                "gap of %d residue%s prior to %s %s",
                gap,
                "s" if gap > 1 else "",
                residue.label,
                chain_id,
            )

    @staticmethod
    def _flush_occupancy(
        low_occupancy: OrderedWarningSet,
        residue: Optional[Residue],
        chain: Optional[Chain],
    ) -> None:
        if residue is None or not low_occupancy:
            return
        low_occupancy.flush(
            logger,
            f"very low occupancy for atoms in residue {residue.label} "
            f"{chain.chain_id if chain else ''}:",
        )

    @staticmethod
    def _log_remark(line: str, seen: set) -> None:
        if line.startswith("REMARK   2 RESOLUTION."):
            resolution = _leading_float(line[22:])
            if resolution is not None:
                logger.info("PDB resolution is %.2f", resolution)
        elif line.startswith("REMARK   4 "):
            if line[30:36] == "FORMAT":
                logger.info("PDB version %s", line[40:].strip())
        elif _is_ph_remark(line):
            ph = _leading_float(line.split(":", 1)[1])
            if ph is not None:
                logger.info("PDB reports a pH of %.2f in REMARK 2nn", ph)
        else:
            key = line[:10]
            if key in _MISSING_REMARKS and key not in seen:
                seen.add(key)
                logger.info(_MISSING_REMARKS[key])


def read_pdb(
    filepath: Union[str, Path], config: Optional[PrepConfig] = None
) -> Structure:
    """Read a PDB file with :class:`PDBReader`."""
    return PDBReader(config).read(filepath)
