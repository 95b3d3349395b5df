"""Command-line interface for adding hydrogens to PDB files."""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from tqdm import tqdm

from ...config import PrepConfig, load_input_file, with_overrides
from ...core.domain.models.structure import Structure
from ...core.domain.models.topology import TopologyDatabase
from ...core.exceptions import ConfigurationError, MolprepError
from ...core.services.disulfide_service import DisulfideService, count_cysteines
from ...core.services.hydrogen_builder import HydrogenBuilder, HydrogenBuildReport
from ...core.services.protonation_service import (
    ProtonationService,
    read_pka_table,
    read_translation_table,
)
from ...io.pdb_reader import PDBReader
from ...io.pdb_writer import PDBWriter
from ...io.topology_reader import DEFAULT_TOPOLOGY_FILE, read_topology

logger = logging.getLogger(__name__)

OUTPUT_SUFFIX = "_h"


def setup_logging(verbose: bool = False, log_file: Optional[Path] = None) -> None:
    """Configure logging."""
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file is not None:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=handlers,
        force=True,
    )


def setup_parser() -> argparse.ArgumentParser:
    """Create and configure argument parser."""
    parser = argparse.ArgumentParser(
        description="Add missing hydrogens to PDB files from a topology database"
    )
    parser.add_argument("pdb_files", nargs="*", type=Path, help="Input PDB files")
    parser.add_argument(
        "-i", "--input", type=Path, help="molprep input file (key = value lines)"
    )
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        help="Output PDB file, or a directory when several inputs are given",
    )
    parser.add_argument(
        "-t", "--topology", type=Path, help="Topology database (default: bundled)"
    )
    parser.add_argument("--format", choices=["std", "min"], help="Output layout")
    parser.add_argument("--altloc", help="Alternate location to use")
    parser.add_argument(
        "--ss-name",
        help="Residue name for disulfide cysteines (default: CYX; earlier molprep "
        "releases used CYS2, which the bundled topology still accepts)",
    )
    parser.add_argument("--model", type=int, help="Model number to read")
    parser.add_argument(
        "--remove-hydrogens", action="store_true", help="Drop hydrogens on input"
    )
    parser.add_argument(
        "--read-ssbonds", action="store_true", help="Use SSBOND records of the input"
    )
    parser.add_argument(
        "--write-ssbonds", action="store_true", help="Write SSBOND records"
    )
    parser.add_argument(
        "--keep-ss-names",
        action="store_true",
        help="Do not rename disulfide cysteines back to CYS",
    )
    parser.add_argument(
        "--keep-serials", action="store_true", help="Keep input atom serials"
    )
    parser.add_argument("--no-model", action="store_true", help="Omit MODEL/ENDMDL")
    parser.add_argument("--no-cryst", action="store_true", help="Omit CRYST1")
    parser.add_argument(
        "--no-ter", action="store_true", help="Omit TER (minimal format only)"
    )
    parser.add_argument("--no-end", action="store_true", help="Omit END")
    parser.add_argument(
        "--no-nterm", action="store_true", help="No protein N-terminal treatment"
    )
    parser.add_argument(
        "--no-cterm", action="store_true", help="No protein C-terminal treatment"
    )
    parser.add_argument(
        "--no-na-terms",
        action="store_true",
        help="No 5'/3' terminal treatment of DNA and RNA",
    )
    parser.add_argument(
        "--warn-occupancy",
        action="store_true",
        help="Warn about atoms with zero occupancy",
    )
    parser.add_argument(
        "--protonate", action="store_true", help="Rename residues by pKa and pH"
    )
    parser.add_argument("--pka-table", type=Path, help="Table of computed pKa values")
    parser.add_argument(
        "--translation-table",
        type=Path,
        help="Titratable residue name translation table",
    )
    parser.add_argument("--ph", type=float, help="pH for protonation (default 7.0)")
    parser.add_argument("--log-file", type=Path, help="Also log to this file")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug output"
    )
    return parser


def _flag(value: bool) -> Optional[bool]:
    return True if value else None


def _negated(value: bool) -> Optional[bool]:
    return False if value else None


def build_config(args: argparse.Namespace) -> PrepConfig:
    """Combine the input file (if any) with command line overrides."""
    config = load_input_file(args.input) if args.input else PrepConfig()
    return with_overrides(
        config,
        topology_file=args.topology,
        output_format=args.format,
        ss_name=args.ss_name,
        model_no=args.model,
        remove_hydrogens=_flag(args.remove_hydrogens),
        read_ssbonds=_flag(args.read_ssbonds),
        write_ssbonds=_flag(args.write_ssbonds),
        keep_ss_names=_flag(args.keep_ss_names),
        keep_serials=_flag(args.keep_serials),
        no_model=_flag(args.no_model),
        no_cryst=_flag(args.no_cryst),
        no_ter=_flag(args.no_ter),
        no_end=_flag(args.no_end),
        protonate=_flag(args.protonate),
        pka_table=args.pka_table,
        translation_table=args.translation_table,
        ph=args.ph,
        alt_loc=args.altloc,
        n_terminus=_negated(args.no_nterm),
        c_terminus=_negated(args.no_cterm),
        dna5_terminus=_negated(args.no_na_terms),
        dna3_terminus=_negated(args.no_na_terms),
        rna5_terminus=_negated(args.no_na_terms),
        rna3_terminus=_negated(args.no_na_terms),
        warn_occupancy=_flag(args.warn_occupancy),
    )


def resolve_jobs(
    args: argparse.Namespace, config: PrepConfig
) -> List[Tuple[Path, Path]]:
    """Pair every input PDB with its output path."""
    inputs = list(args.pdb_files) or (
        [config.input_pdb] if config.input_pdb is not None else []
    )
    if not inputs:
        raise ConfigurationError("PDB input file required")

    if len(inputs) == 1:
        output = args.output or config.output_pdb
        if output is None:
            output = _default_output(inputs[0], inputs[0].parent)
        return [(inputs[0], output)]

    out_dir = args.output or Path(".")
    out_dir.mkdir(parents=True, exist_ok=True)
    return [(path, _default_output(path, out_dir)) for path in inputs]


def _default_output(path: Path, out_dir: Path) -> Path:
    name = path.name
    for suffix in (".gz", ".bz2"):
        if name.endswith(suffix):
            name = name[: -len(suffix)]
    stem = name[:-4] if name.lower().endswith(".pdb") else name
    return out_dir / f"{stem}{OUTPUT_SUFFIX}.pdb"


def preprocess(structure: Structure, config: PrepConfig) -> None:
    """Disulfide detection and protonation renaming ahead of the builder."""
    if not config.read_ssbonds and count_cysteines(structure) > 1:
        renamed = DisulfideService(config.ss_name, config.hbuild.alt_loc).process(
            structure
        )
        logger.info("%d cysteines renamed to %s", renamed, config.ss_name.strip())

    if config.protonate:
        service = ProtonationService(
            read_pka_table(config.pka_table),
            read_translation_table(config.translation_table),
            ph=config.ph,
        )
        service.process(structure)


def prepare_file(config: PrepConfig, database: TopologyDatabase) -> HydrogenBuildReport:
    """Read, complete and write the structure named by ``config``."""
    structure = PDBReader(config).read(config.input_pdb)
    preprocess(structure, config)
    report = HydrogenBuilder(database, config.hbuild).build(structure)
    PDBWriter(config).write(structure, config.output_pdb)
    return report


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the hydrogen builder CLI."""
    parser = setup_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose, args.log_file)

    try:
        config = build_config(args)
        jobs = resolve_jobs(args, config)

        topology = config.topology_file or Path(DEFAULT_TOPOLOGY_FILE)
        database = read_topology(topology)

        total = 0
        for input_pdb, output_pdb in tqdm(
            jobs, desc="Adding hydrogens", unit="file", disable=len(jobs) == 1
        ):
            job = with_overrides(config, input_pdb=input_pdb, output_pdb=output_pdb)
            job.validate()
            logger.info("processing %s -> %s", input_pdb, output_pdb)
            report = prepare_file(job, database)
            total += report.atoms_added
    except MolprepError as e:
        logger.error("%s", e)
        return 1
    except OSError as e:
        logger.error("%s: %s", e.filename or "", e.strerror or e)
        return 1

    if len(jobs) > 1:
        logger.info("%d hydrogens added to %d files", total, len(jobs))
    return 0


if __name__ == "__main__":
    sys.exit(main())
