"""Services operating on whole structures."""

from .disulfide_service import DisulfideService
from .hydrogen_builder import HydrogenBuilder, HydrogenBuildReport
from .protonation_service import ProtonationService

__all__ = [
    "DisulfideService",
    "HydrogenBuilder",
    "HydrogenBuildReport",
    "ProtonationService",
]
