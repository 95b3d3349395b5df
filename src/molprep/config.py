#!/usr/bin/env python3
# src/molprep/config.py

"""
Run configuration.

``HBuildConfig`` holds what the hydrogen builder needs; ``PrepConfig``
adds the reader/writer and driver options. ``load_input_file`` reads the
``key = value`` input format of the original molprep program.
"""

import logging
import re
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

from .core.exceptions import ConfigurationError
from .core.utils.names import format_residue_name
from .core.utils.text import normalize_line

logger = logging.getLogger(__name__)

DEFAULT_SS_NAME = "CYX"
OUTPUT_FORMATS = ("std", "min")


@dataclass(frozen=True)
class HBuildConfig:
    """Options consumed by the hydrogen builder."""

    alt_loc: str = "A"
    n_terminus: bool = True
    c_terminus: bool = True
    dna5_terminus: bool = True
    dna3_terminus: bool = True
    rna5_terminus: bool = True
    rna3_terminus: bool = True
    warn_occupancy: bool = False

    def __post_init__(self):
        if len(self.alt_loc) != 1:
            raise ConfigurationError(
                f"alternate location must be a single character, got '{self.alt_loc}'"
            )

    def terminal_flags(self, molecule_type) -> Tuple[bool, bool]:
        """(first, last) terminal treatment for a molecule type."""
        code = getattr(molecule_type, "value", molecule_type)
        if code == "P":
            return self.n_terminus, self.c_terminus
        if code == "D":
            return self.dna5_terminus, self.dna3_terminus
        if code == "R":
            return self.rna5_terminus, self.rna3_terminus
        return False, False


@dataclass
class PrepConfig:
    """Complete options of one preparation run."""

    input_pdb: Optional[Path] = None
    output_pdb: Optional[Path] = None
    topology_file: Optional[Path] = None
    output_format: str = "std"
    ss_name: str = DEFAULT_SS_NAME
    model_no: Optional[int] = None
    remove_hydrogens: bool = False
    read_ssbonds: bool = False
    write_ssbonds: bool = False
    keep_ss_names: bool = False
    keep_serials: bool = False
    no_model: bool = False
    no_cryst: bool = False
    no_ter: bool = False
    no_end: bool = False
    protonate: bool = False
    pka_table: Optional[Path] = None
    translation_table: Optional[Path] = None
    ph: float = 7.0
    hbuild: HBuildConfig = field(default_factory=HBuildConfig)

    def __post_init__(self):
        if self.output_format not in OUTPUT_FORMATS:
            raise ConfigurationError(f"Unknown format type: {self.output_format}")
        try:
            self.ss_name = format_residue_name(self.ss_name)
        except ValueError:
            raise ConfigurationError(
                f"ss_name cannot be longer than 4 characters: {self.ss_name}"
            ) from None
        if self.ph <= 0.0 or self.ph >= 14.0:
            logger.warning("extreme pH = %.2f", self.ph)

    def validate(self) -> None:
        """Check that the files a run needs are set."""
        if self.input_pdb is None:
            raise ConfigurationError("PDB input file required")
        if self.output_pdb is None:
            raise ConfigurationError("PDB output file required")
        if self.protonate and (self.pka_table is None or self.translation_table is None):
            raise ConfigurationError(
                "protonation needs a pKa table and a titratable translation table"
            )


# input file key -> PrepConfig field
_PATH_KEYS = {
    "inPDB": "input_pdb",
    "outPDB": "output_pdb",
    "top_file": "topology_file",
    "protonate_ttb": "translation_table",
    "protonate_pka": "pka_table",
}

# boolean switches of the original option set
_FLAG_KEYS = {
    "remh": "remove_hydrogens",
    "nomodel": "no_model",
    "nocryst": "no_cryst",
    "noter": "no_ter",
    "noend": "no_end",
    "prot": "protonate",
    "rssb": "read_ssbonds",
    "wrss": "write_ssbonds",
    "keepssn": "keep_ss_names",
    "keepser": "keep_serials",
}

_HBUILD_FLAG_KEYS = {
    "nterm": "n_terminus",
    "cterm": "c_terminus",
    "dna5term": "dna5_terminus",
    "dna3term": "dna3_terminus",
    "rna5term": "rna5_terminus",
    "rna3term": "rna3_terminus",
    "warnocc": "warn_occupancy",
}

_DELIMITER = re.compile(r"[ =\t]+")


def _as_flag(value: str) -> bool:
    return value[:1].lower() in ("y", "t")


def load_input_file(path: Union[str, Path]) -> PrepConfig:
    """
    Read a molprep input file.

    Each non-comment line is ``key = value``. Boolean switches are true when
    the value starts with ``y`` or ``t``. Relative paths are kept as given.

    Raises:
        ConfigurationError: On unknown keys, missing values or bad numbers
    """
    path = Path(path)
    values: Dict[str, object] = {}
    hbuild_values: Dict[str, object] = {}

    with open(path, "r") as f:
        for line_no, raw in enumerate(f, start=1):
            line = normalize_line(raw)
            if not line:
                continue

            parts = [p for p in _DELIMITER.split(line) if p]
            if len(parts) < 2:
                raise ConfigurationError(
                    f"{path}: no value found in input (line {line_no})"
                )
            key, value = parts[0], parts[1]

            if key in _PATH_KEYS:
                values[_PATH_KEYS[key]] = Path(value)
            elif key == "output_format":
                values["output_format"] = value
            elif key == "altloc":
                hbuild_values["alt_loc"] = value[0]
            elif key == "ss_name":
                values["ss_name"] = value
            elif key == "model_no":
                values["model_no"] = _parse_number(int, value, path, line_no)
            elif key == "protonate_pH":
                values["ph"] = _parse_number(float, value, path, line_no)
            elif key in _FLAG_KEYS:
                values[_FLAG_KEYS[key]] = _as_flag(value)
            elif key in _HBUILD_FLAG_KEYS:
                hbuild_values[_HBUILD_FLAG_KEYS[key]] = _as_flag(value)
            else:
                raise ConfigurationError(
                    f"{path}: Unknown parameter in line {line_no}: {key}"
                )

    return PrepConfig(hbuild=HBuildConfig(**hbuild_values), **values)


def _parse_number(kind, value: str, path: Path, line_no: int):
    try:
        return kind(value)
    except ValueError:
        raise ConfigurationError(
            f"{path}: cannot convert '{value}' (line {line_no})"
        ) from None


def with_overrides(config: PrepConfig, **overrides) -> PrepConfig:
    """Copy ``config`` replacing the non-None ``overrides``."""
    known = {f.name for f in fields(PrepConfig)}
    hbuild_known = {f.name for f in fields(HBuildConfig)}
    top = {k: v for k, v in overrides.items() if v is not None and k in known}
    nested = {k: v for k, v in overrides.items() if v is not None and k in hbuild_known}
    unknown = set(overrides) - known - hbuild_known
    if unknown:
        raise ConfigurationError(f"Unknown options: {', '.join(sorted(unknown))}")
    if nested:
        top["hbuild"] = replace(config.hbuild, **nested)
    return replace(config, **top)
