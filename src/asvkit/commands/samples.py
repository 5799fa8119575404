# src/asvkit/commands/samples.py
from __future__ import annotations

from typing import Dict, List

from asvkit.commands.common import add_dataset_arg, load_context, select_datasets
from asvkit.config.schema import Params
from asvkit.errors import SampleNameError
from asvkit.utils.logger import get_logger
from asvkit.utils.samples import Sample, check_unique_across, discover_samples

LOG = get_logger("samples.cmd")


def setup_parser(subparsers, parent) -> None:
    p = subparsers.add_parser(
        "samples", parents=[parent],
        help="List raw FASTQs per dataset and the sample id each one maps to.",
    )
    add_dataset_arg(p)
    p.set_defaults(func=run)


def discover_all(params: Params, names=None) -> Dict[str, List[Sample]]:
    """Samples per dataset; ids must be unique within and across datasets."""
    found = {ds.name: discover_samples(ds) for ds in select_datasets(params, names)}
    clash = check_unique_across(found)
    if clash:
        raise SampleNameError(clash)
    return found


def run(args) -> None:
    ctx = load_context(args)
    found = discover_all(ctx.params, args.datasets)
    for name, samples in found.items():
        print(f"# {name} ({len(samples)} samples)")
        for s in samples:
            print(f"{s.sample_id}\t{s.raw_path}")
    print(f"[ok] {sum(len(v) for v in found.values())} samples")
