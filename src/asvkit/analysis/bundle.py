# src/asvkit/analysis/bundle.py
from __future__ import annotations

import io
import json
import zipfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, Optional

import pandas as pd
from Bio import SeqIO
from Bio.Seq import Seq
from Bio.SeqRecord import SeqRecord

from asvkit import __version__
from asvkit.analysis.tables import validate_abundance
from asvkit.analysis.taxonomy import RANKS, format_lineage, normalize_taxonomy
from asvkit.errors import TableError
from asvkit.metadata.read import coerce_numeric_columns, write_metadata
from asvkit.metadata.validate import join_metadata, validate_against_table
from asvkit.utils.logger import get_logger

LOG = get_logger("bundle")

BUNDLE_FORMAT = 1
_MEMBERS = {
    "abundance": "abundance.tsv",
    "taxonomy": "taxonomy.tsv",
    "metadata": "metadata.tsv",
    "sequences": "sequences.fasta",
    "manifest": "bundle.json",
}


@dataclass
class AnalysisBundle:
    """
    Abundance matrix (samples x ASV ids), taxonomy (ASV id x RANKS),
    sample metadata (sample x attributes) and ASV sequences, kept consistent.
    """
    abundance: pd.DataFrame
    taxonomy: pd.DataFrame
    metadata: pd.DataFrame
    sequences: Dict[str, str]

    def __post_init__(self) -> None:
        self.abundance = validate_abundance(self.abundance)
        extra = sorted(set(self.taxonomy.index) - set(self.abundance.columns))
        if extra:
            raise TableError(f"taxonomy rows without a variant in the matrix: {extra[:5]}")
        self.taxonomy = self.taxonomy.reindex(self.abundance.columns)
        self.metadata = join_metadata(self.metadata, self.abundance)
        missing = [a for a in self.abundance.columns if a not in self.sequences]
        if missing:
            raise TableError(f"variants without a sequence: {missing[:5]}")

    @property
    def sample_ids(self):
        return list(self.abundance.index)

    @property
    def asv_ids(self):
        return list(self.abundance.columns)

    def sample_totals(self) -> pd.Series:
        return self.abundance.sum(axis=1)


def name_variants(seqtab: pd.DataFrame) -> Dict[str, str]:
    """sequence -> 'ASV<n>' ordered by total abundance (desc), ties by sequence."""
    totals = seqtab.sum(axis=0)
    order = sorted(totals.index, key=lambda s: (-int(totals[s]), s))
    return {seq: f"ASV{i}" for i, seq in enumerate(order, start=1)}


def build_bundle(
    seqtab: pd.DataFrame,
    taxonomy_by_seq: Optional[pd.DataFrame],
    metadata: pd.DataFrame,
) -> AnalysisBundle:
    """Assemble the composite object from the chimera-free table, taxonomy and metadata."""
    seqtab = validate_abundance(seqtab, what="chimera-free sequence table")
    validate_against_table(metadata, seqtab)
    names = name_variants(seqtab)
    order = sorted(names, key=lambda s: int(names[s][3:]))
    abundance = seqtab[order].rename(columns=names)
    abundance.columns.name = None

    if taxonomy_by_seq is None:
        taxonomy = pd.DataFrame(pd.NA, index=abundance.columns, columns=list(RANKS), dtype="object")
    else:
        unknown = [s for s in order if s not in taxonomy_by_seq.index]
        if unknown:
            LOG.warning("%d variants have no taxonomy assignment", len(unknown))
        taxonomy = normalize_taxonomy(taxonomy_by_seq.reindex(order))
        taxonomy.index = [names[s] for s in order]

    sequences = {names[s]: s for s in order}
    bundle = AnalysisBundle(abundance=abundance, taxonomy=taxonomy, metadata=metadata, sequences=sequences)
    LOG.info("Built bundle: %d samples x %d ASVs", *bundle.abundance.shape)
    return bundle


# ---------------------------
# Persistence
# ---------------------------

def _frame_to_tsv(df: pd.DataFrame, index_label: str) -> str:
    buf = io.StringIO()
    df.to_csv(buf, sep="\t", index_label=index_label)
    return buf.getvalue()


def _fasta_text(sequences: Dict[str, str]) -> str:
    buf = io.StringIO()
    records = [SeqRecord(Seq(seq), id=asv, description="") for asv, seq in sequences.items()]
    SeqIO.write(records, buf, "fasta")
    return buf.getvalue()


def save_bundle(bundle: AnalysisBundle, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    manifest = {
        "format": BUNDLE_FORMAT,
        "created": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        "asvkit_version": __version__,
        "n_samples": int(bundle.abundance.shape[0]),
        "n_asvs": int(bundle.abundance.shape[1]),
        "members": _MEMBERS,
        "metadata_numeric": [
            str(c) for c in bundle.metadata.columns
            if pd.api.types.is_numeric_dtype(bundle.metadata[c]) and not pd.api.types.is_bool_dtype(bundle.metadata[c])
        ],
    }
    tmp = path.with_suffix(path.suffix + ".tmp")
    with zipfile.ZipFile(tmp, "w", compression=zipfile.ZIP_DEFLATED) as z:
        z.writestr(_MEMBERS["manifest"], json.dumps(manifest, indent=2))
        z.writestr(_MEMBERS["abundance"], _frame_to_tsv(bundle.abundance, "sample"))
        z.writestr(_MEMBERS["taxonomy"], _frame_to_tsv(bundle.taxonomy, "asv"))
        z.writestr(_MEMBERS["metadata"], _frame_to_tsv(bundle.metadata, "sample"))
        z.writestr(_MEMBERS["sequences"], _fasta_text(bundle.sequences))
    tmp.replace(path)
    LOG.info("Bundle saved → %s", path)
    return path


def load_bundle(path: Path) -> AnalysisBundle:
    if not path.exists():
        raise FileNotFoundError(f"Missing {path}; run 'build' first.")
    with zipfile.ZipFile(path) as z:
        manifest = json.loads(z.read(_MEMBERS["manifest"]).decode("utf-8"))
        if int(manifest.get("format", 0)) != BUNDLE_FORMAT:
            raise TableError(f"{path}: unsupported bundle format {manifest.get('format')!r}")

        def _tsv(member: str, **kw) -> pd.DataFrame:
            return pd.read_csv(io.StringIO(z.read(member).decode("utf-8")), sep="\t", index_col=0, **kw)

        # sample ids stay text ("001" is not 1)
        abundance = _tsv(_MEMBERS["abundance"], dtype={"sample": str})
        taxonomy = _tsv(_MEMBERS["taxonomy"], dtype=str)
        metadata = _tsv(_MEMBERS["metadata"], dtype=str, keep_default_na=False)
        metadata = coerce_numeric_columns(metadata, manifest.get("metadata_numeric"))
        fasta = io.StringIO(z.read(_MEMBERS["sequences"]).decode("utf-8"))
        sequences = {rec.id: str(rec.seq) for rec in SeqIO.parse(fasta, "fasta")}
    return AnalysisBundle(
        abundance=abundance,
        taxonomy=normalize_taxonomy(taxonomy),
        metadata=metadata,
        sequences=sequences,
    )


def export_bundle(bundle: AnalysisBundle, out_dir: Path) -> Dict[str, Path]:
    """Plain-text exports: counts (ASV x sample), taxonomy with lineage, FASTA, metadata."""
    out_dir.mkdir(parents=True, exist_ok=True)
    paths = {
        "counts": out_dir / "asv_counts.tsv",
        "taxonomy": out_dir / "asv_taxonomy.tsv",
        "sequences": out_dir / "asv_seqs.fasta",
        "metadata": out_dir / "metadata.tsv",
    }
    bundle.abundance.T.to_csv(paths["counts"], sep="\t", index_label="asv")
    tax = bundle.taxonomy.copy()
    tax["lineage"] = tax.apply(format_lineage, axis=1)
    tax.to_csv(paths["taxonomy"], sep="\t", index_label="asv")
    paths["sequences"].write_text(_fasta_text(bundle.sequences), encoding="utf-8")
    write_metadata(bundle.metadata, paths["metadata"])
    LOG.info("Exported %d files → %s", len(paths), out_dir)
    return paths


# ---------------------------
# Subsetting
# ---------------------------

def subset_samples(bundle: AnalysisBundle, sample_ids: Iterable[str]) -> AnalysisBundle:
    """Keep only *sample_ids* (in that order); ASVs left without reads are pruned."""
    ids = [str(i) for i in sample_ids]
    return prune_empty_asvs(AnalysisBundle(
        abundance=bundle.abundance.loc[ids],
        taxonomy=bundle.taxonomy,
        metadata=bundle.metadata.loc[ids],
        sequences=bundle.sequences,
    ))


def prune_empty_asvs(bundle: AnalysisBundle) -> AnalysisBundle:
    keep = bundle.abundance.columns[bundle.abundance.sum(axis=0) > 0]
    return AnalysisBundle(
        abundance=bundle.abundance[keep],
        taxonomy=bundle.taxonomy.loc[keep],
        metadata=bundle.metadata,
        sequences={a: bundle.sequences[a] for a in keep},
    )
