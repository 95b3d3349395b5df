#!/usr/bin/env python3
# src/molprep/core/services/protonation_service.py

"""
Service renaming titratable residues according to computed pKa values.

The pKa values come from an external calculator (e.g. PROPKA) as a table
of ``resname resseq chain pKa`` lines; a translation table maps each
titratable residue to the name of its other protonation state.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Tuple, Union

from ..domain.interfaces.structure_preprocessor import StructurePreprocessor
from ..domain.models.structure import Structure
from ..exceptions import ConfigurationError
from ..utils.names import format_residue_name

logger = logging.getLogger(__name__)

TITRATABLE = ("ARG ", "ASP ", "CYS ", "GLU ", "HIS ", "LYS ", "TYR ")
PROTONATE_BELOW_PKA = ("HIS ", "ASP ", "GLU ")
DEPROTONATE_ABOVE_PKA = ("LYS ", "CYS ", "ARG ", "TYR ")

_TTB_DELIMITER = re.compile(r"[ =\->\t]+")


@dataclass(frozen=True)
class PkaValue:
    """Computed pKa of one titratable site."""

    residue_name: str
    seq_num: int
    chain_id: str
    pka: float


def _clean_lines(path: Path) -> Iterable[Tuple[int, str]]:
    with open(path, "r") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.split("#", 1)[0].strip()
            if line:
                yield line_no, line


def read_translation_table(path: Union[str, Path]) -> Dict[str, str]:
    """
    Read ``NAME -> NEW_NAME`` lines.

    Non-titratable names are warned about and ignored.

    Raises:
        ConfigurationError: On lines without a value or over-long names
    """
    path = Path(path)
    table: Dict[str, str] = {}
    logger.info("reading titratable translation table from %s", path)

    for line_no, line in _clean_lines(path):
        parts = [p for p in _TTB_DELIMITER.split(line) if p]
        if len(parts) < 2:
            raise ConfigurationError(f"{path}: no value found in input (line {line_no})")
        try:
            name = format_residue_name(parts[0])
            new_name = format_residue_name(parts[1])
        except ValueError as e:
            raise ConfigurationError(f"{path}: {e} in line {line_no}") from None

        if name not in TITRATABLE:
            logger.warning(
                "%s: %s is not a titratable site in line %d", path, name.strip(), line_no
            )
            continue
        table[name] = new_name

    return table


def read_pka_table(path: Union[str, Path]) -> List[PkaValue]:
    """
    Read ``resname resseq chain pKa`` lines.

    Raises:
        ConfigurationError: If a line cannot be parsed
    """
    path = Path(path)
    values = []
    for line_no, line in _clean_lines(path):
        parts = line.split()
        try:
            if len(parts) == 4:
                name, seq, chain_id, pka = parts
            elif len(parts) == 3:
                (name, seq, pka), chain_id = parts, " "
            else:
                raise ValueError(line)
            values.append(
                PkaValue(format_residue_name(name), int(seq), chain_id, float(pka))
            )
        except ValueError:
            raise ConfigurationError(
                f"{path}: error in parsing pKa table in line {line_no}"
            ) from None
    return values


class ProtonationService(StructurePreprocessor):
    """Rename residues whose protonation state differs from the default at a pH."""

    def __init__(
        self,
        pka_values: Iterable[PkaValue],
        translation_table: Dict[str, str],
        ph: float = 7.0,
    ):
        """
        Initialize the service.

        Args:
            pka_values: Computed pKa values
            translation_table: Titratable residue name to alternative name
            ph: Target pH
        """
        self.ph = ph
        self.translation_table = {
            format_residue_name(k): format_residue_name(v)
            for k, v in translation_table.items()
        }
        self._pka: Dict[Tuple[str, int, str], float] = {
            (v.residue_name, v.seq_num, v.chain_id): v.pka for v in pka_values
        }

    def process(self, structure: Structure) -> int:
        """Apply the protonation states; returns the number of renamed residues."""
        renamed = 0

        for residue in list(structure.iter_residues()):
            name = residue.name
            if name not in TITRATABLE or name not in self.translation_table:
                continue

            chain_id = structure.chain_of(residue).chain_id
            pka = self._pka.get((name, residue.seq_num, chain_id))
            if pka is None:
                continue

            if self.ph < pka and name in PROTONATE_BELOW_PKA:
                action = "protonating"
            elif self.ph >= pka and name in DEPROTONATE_ABOVE_PKA:
                action = "deprotonating"
            else:
                continue

            logger.info(
                "%s %s %s (pKa = %.2f)", action, residue.label, chain_id, pka
            )
            structure.rename_residue(residue, self.translation_table[name])
            renamed += 1

        return renamed
