"""Interface for steps that rename residues before hydrogens are built."""

from abc import ABC, abstractmethod

from ..models.structure import Structure


class StructurePreprocessor(ABC):
    """Abstract base class for residue renaming steps."""

    @abstractmethod
    def process(self, structure: Structure) -> int:
        """
        Rename residues of a structure in place.

        Args:
            structure: Structure to update

        Returns:
            Number of residues renamed
        """
        pass
