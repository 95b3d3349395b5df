"""Service tagging cysteines that form disulfide bonds."""

import logging
import math
from typing import List, Optional

from ..domain.interfaces.structure_preprocessor import StructurePreprocessor
from ..domain.models.atom import Atom
from ..domain.models.structure import (
    RecordType,
    Residue,
    SSBond,
    SSBondPartner,
    Structure,
)
from ..utils.names import format_residue_name
from ..utils.vector import dist2

logger = logging.getLogger(__name__)

MAX_SS_DIST2 = 9.0  # S-S distance squared
CYS_NAME = "CYS "
SULFUR_NAME = " SG "


class DisulfideService(StructurePreprocessor):
    """Rename bonded CYS pairs so the database can give them their own template."""

    def __init__(self, ss_name: str = "CYX", alt_loc: str = "A"):
        """
        Initialize the service.

        Args:
            ss_name: Residue name given to cysteines in a disulfide bond
            alt_loc: Alternate location to consider
        """
        self.ss_name = format_residue_name(ss_name)
        self.alt_loc = alt_loc

    def _sulfur(self, structure: Structure, residue: Residue) -> Optional[Atom]:
        if residue.record_type is not RecordType.ATOM or residue.name != CYS_NAME:
            return None
        for atom in structure.atoms_of(residue):
            if atom.name == SULFUR_NAME and atom.in_alt_loc(self.alt_loc):
                return atom
        return None

    def process(self, structure: Structure) -> int:
        """
        Find disulfide bonds and rename both partners.

        Each CYS is paired with the first later CYS whose SG lies within
        3 Angstrom. The bonds found replace ``structure.ssbonds``.

        Returns:
            Number of residues renamed
        """
        residues = list(structure.iter_residues())
        bonds: List[SSBond] = []

        for i, residue1 in enumerate(residues):
            sg1 = self._sulfur(structure, residue1)
            if sg1 is None:
                continue

            for residue2 in residues[i + 1 :]:
                sg2 = self._sulfur(structure, residue2)
                if sg2 is None:
                    continue

                d2 = dist2(sg1.coordinates, sg2.coordinates)
                if d2 < MAX_SS_DIST2:
                    structure.rename_residue(residue1, self.ss_name)
                    structure.rename_residue(residue2, self.ss_name)
                    bonds.append(
                        SSBond(
                            serial=len(bonds) + 1,
                            partner1=self._partner(structure, residue1),
                            partner2=self._partner(structure, residue2),
                            length=math.sqrt(d2),
                        )
                    )
                    logger.info(
                        "disulfide bond between %s %s and %s %s (%.2f A)",
                        residue1.label,
                        structure.chain_of(residue1).chain_id,
                        residue2.label,
                        structure.chain_of(residue2).chain_id,
                        math.sqrt(d2),
                    )
                    break

        structure.ssbonds = bonds
        return 2 * len(bonds)

    @staticmethod
    def _partner(structure: Structure, residue: Residue) -> SSBondPartner:
        return SSBondPartner(
            chain_id=structure.chain_of(residue).chain_id,
            seq_num=residue.seq_num,
            insertion_code=residue.insertion_code,
        )

    def restore_names(self, structure: Structure) -> int:
        """Turn disulfide cysteines back into plain CYS, e.g. for output."""
        renamed = 0
        for residue in structure.iter_residues():
            if residue.name == self.ss_name:
                structure.rename_residue(residue, CYS_NAME)
                renamed += 1
        return renamed


def count_cysteines(structure: Structure) -> int:
    return sum(1 for residue in structure.iter_residues() if residue.name == CYS_NAME)
