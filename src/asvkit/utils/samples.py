# src/asvkit/utils/samples.py
from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from asvkit.config.schema import DatasetConfig, SampleNaming
from asvkit.errors import SampleNameError
from asvkit.utils.logger import get_logger

LOG = get_logger("samples")


@dataclass(frozen=True)
class Sample:
    sample_id: str
    dataset: str
    raw_path: Path


def discover_fastqs(fastq_dir: Path, pattern: str = "*.fastq*") -> List[Path]:
    if not fastq_dir.is_dir():
        raise NotADirectoryError(fastq_dir)
    paths = sorted(p for p in fastq_dir.glob(pattern) if p.is_file())
    if not paths:
        LOG.info("No FASTQs at top level of %s; searching recursively…", fastq_dir)
        paths = sorted(p for p in fastq_dir.rglob(pattern) if p.is_file())
    return paths


def parse_sample_id(filename: str, naming: SampleNaming) -> str:
    """
    Cut the sample id out of a bare filename.

    suffix: the filename must end with the suffix; the id is what precedes it.
    regex:  the named group 'id' (or the first group, or the whole match) is the id.
    Raises SampleNameError when the rule does not apply or yields an empty id.
    """
    if naming.suffix:
        if not filename.endswith(naming.suffix):
            raise SampleNameError(f"{filename!r} does not end with suffix {naming.suffix!r}")
        sid = filename[: -len(naming.suffix)]
    else:
        m = re.search(naming.regex or "", filename)
        if not m:
            raise SampleNameError(f"{filename!r} does not match regex {naming.regex!r}")
        if "id" in m.groupdict():
            sid = m.group("id")
        elif m.groups():
            sid = m.group(1)
        else:
            sid = m.group(0)
    sid = (sid or "").strip()
    if not sid:
        raise SampleNameError(f"empty sample id parsed from {filename!r}")
    return sid


def sample_ids_for(paths: List[Path], naming: SampleNaming) -> Dict[str, Path]:
    """
    Map sample id -> file. Ids must be unique; a collision raises SampleNameError.
    With naming.strict=False, unparseable files are skipped with a warning.
    """
    out: Dict[str, Path] = {}
    for p in paths:
        try:
            sid = parse_sample_id(p.name, naming)
        except SampleNameError as e:
            if naming.strict:
                raise
            LOG.warning("Skipping %s: %s", p, e)
            continue
        if sid in out:
            raise SampleNameError(
                f"sample id {sid!r} produced by both {out[sid].name} and {p.name}"
            )
        out[sid] = p
    return out


def discover_samples(dataset: DatasetConfig) -> List[Sample]:
    paths = discover_fastqs(dataset.fastq_dir, dataset.pattern)
    if not paths:
        raise SampleNameError(f"no files matching {dataset.pattern!r} under {dataset.fastq_dir}")
    ids = sample_ids_for(paths, dataset.naming)
    samples = [Sample(sample_id=sid, dataset=dataset.name, raw_path=p) for sid, p in ids.items()]
    LOG.info("Dataset %s: %d samples discovered", dataset.name, len(samples))
    return samples


def check_unique_across(datasets: Dict[str, List[Sample]]) -> Optional[str]:
    """Return a message describing ids shared between datasets, or None."""
    seen: Dict[str, str] = {}
    clashes: List[str] = []
    for name, samples in datasets.items():
        for s in samples:
            if s.sample_id in seen:
                clashes.append(f"{s.sample_id} ({seen[s.sample_id]}, {name})")
            else:
                seen[s.sample_id] = name
    if not clashes:
        return None
    return "sample ids shared between datasets: " + ", ".join(clashes[:5]) + ("..." if len(clashes) > 5 else "")
