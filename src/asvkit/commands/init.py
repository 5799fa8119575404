# src/asvkit/commands/init.py
from __future__ import annotations

import sys
from pathlib import Path
from typing import Dict, List

from asvkit.config.load import write_params
from asvkit.config.schema import DatasetConfig, Params, SampleNaming
from asvkit.errors import ConfigError
from asvkit.metadata import DEFAULT_METADATA_COLS
from asvkit.metadata.template import write_metadata_template
from asvkit.utils.logger import get_logger
from asvkit.utils.samples import check_unique_across, discover_samples

LOG = get_logger("init")


def setup_parser(subparsers, parent) -> None:
    p = subparsers.add_parser(
        "init", parents=[parent],
        help="Scan dataset folders, check sample naming, write params.yaml and a metadata template.",
    )
    p.add_argument("--dataset", action="append", required=True, metavar="NAME=DIR",
                   help="Dataset name and FASTQ folder; repeat for several runs.")
    p.add_argument("--suffix", type=str, default=None,
                   help="Filename suffix stripped to leave the sample id (e.g. _IBESTGRC_JU_988_R2_ITS-hdr.fastq).")
    p.add_argument("--id-regex", type=str, default=None,
                   help="Regex extracting the sample id (named group 'id' or group 1).")
    p.add_argument("--pattern", type=str, default="*.fastq*", help="Glob for raw read files.")
    p.add_argument("--reference", type=Path, default=None, help="Reference database FASTA for taxonomy.")
    p.add_argument("--output-file", type=Path, default=Path("params.yaml"))
    p.add_argument("--metadata-out", type=Path, default=Path("metadata.tsv"))
    p.add_argument("--force", action="store_true")
    p.set_defaults(func=run)


def _parse_dataset_args(values: List[str]) -> Dict[str, Path]:
    out: Dict[str, Path] = {}
    for v in values:
        name, sep, folder = v.partition("=")
        if not sep or not name.strip() or not folder.strip():
            raise ConfigError(f"--dataset expects NAME=DIR, got {v!r}")
        out[name.strip()] = Path(folder.strip())
    return out


def run(args) -> None:
    for target in (args.output_file, args.metadata_out):
        if target.exists() and not args.force:
            LOG.error("Refusing to overwrite: %s (use --force)", target)
            print(f"error: {target} exists (use --force)", file=sys.stderr)
            sys.exit(1)

    try:
        naming = SampleNaming(suffix=args.suffix, regex=args.id_regex)
    except ValueError as e:
        raise ConfigError(str(e)) from e

    datasets = [
        DatasetConfig(name=name, fastq_dir=folder.resolve(), pattern=args.pattern, naming=naming)
        for name, folder in _parse_dataset_args(args.dataset).items()
    ]
    found = {ds.name: discover_samples(ds) for ds in datasets}
    clash = check_unique_across(found)
    if clash:
        raise ConfigError(clash)

    params = Params(datasets=datasets)
    params.taxonomy.reference = args.reference.resolve() if args.reference else None
    params.metadata.file = args.metadata_out.resolve()
    write_params(args.output_file, params.model_dump(mode="json"))
    print(f"[ok] params → {args.output_file}")

    ids = [s.sample_id for samples in found.values() for s in samples]
    write_metadata_template(ids, args.metadata_out, DEFAULT_METADATA_COLS)
    print(f"[ok] metadata template ({len(ids)} samples) → {args.metadata_out}")
