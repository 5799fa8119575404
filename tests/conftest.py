# tests/conftest.py
from __future__ import annotations

import json
import subprocess
from pathlib import Path
from typing import Dict

import pandas as pd
import pytest

from asvkit.analysis.tables import read_sequence_table, write_sample_table, write_sequence_table

SEQ_A = "ACGTTGCAACGTTGCA"
SEQ_B = "ACGTTGCAACGTAAAA"
SEQ_C = "TTTTGCAACGTTGCAA"
SEQ_D = "GGGGTTGCAACGTTGC"
CHIMERA = "ACGTTGCAAAAATTTT"

# per-sample denoised counts the fake R step hands back
COUNTS: Dict[str, Dict[str, int]] = {
    "s1": {SEQ_A: 120, SEQ_B: 30, CHIMERA: 5},
    "s2": {SEQ_A: 100, SEQ_B: 40, SEQ_C: 10},
    "s3": {SEQ_C: 90, SEQ_D: 60},
    "s4": {SEQ_C: 80, SEQ_D: 50, SEQ_A: 5},
    "s5": {SEQ_A: 110, SEQ_B: 35},
    "s6": {SEQ_D: 100, SEQ_C: 70, CHIMERA: 3},
}
SITES = {"s1": "north", "s2": "north", "s3": "south", "s4": "south", "s5": "north", "s6": "south"}


def seqtab_for(samples) -> pd.DataFrame:
    df = pd.DataFrame({s: COUNTS[s] for s in samples}).T.fillna(0).astype("int64")
    df.index.name = "sample"
    return df


@pytest.fixture
def seqtab() -> pd.DataFrame:
    return seqtab_for(sorted(COUNTS))


@pytest.fixture
def metadata() -> pd.DataFrame:
    df = pd.DataFrame(
        {
            "site": [SITES[s] for s in sorted(SITES)],
            "depth": [10, 20, 10, 20, 30, 30],
        },
        index=pd.Index(sorted(SITES), name="sample"),
    )
    return df


@pytest.fixture
def taxonomy_by_seq() -> pd.DataFrame:
    rows = {
        SEQ_A: ["k__Fungi", "p__Ascomycota", "c__Sordariomycetes", "o__Hypocreales", "", "", ""],
        SEQ_B: ["k__Fungi", "p__Ascomycota", "c__Dothideomycetes", "", "", "", ""],
        SEQ_C: ["k__Fungi", "p__Basidiomycota", "c__Agaricomycetes", "o__Agaricales", "f__Agaricaceae",
                "g__Agaricus", "s__unidentified"],
        SEQ_D: ["k__Fungi", "", "", "", "", "", ""],
        CHIMERA: ["k__Fungi", "p__Ascomycota", "", "", "", "", ""],
    }
    df = pd.DataFrame.from_dict(
        rows, orient="index",
        columns=["Kingdom", "Phylum", "Class", "Order", "Family", "Genus", "Species"],
    )
    df.index.name = "sequence"
    return df


def make_fastq_dirs(root: Path) -> Dict[str, Path]:
    """Two sequencing runs with three samples each, '<id>_R1.fastq' naming."""
    dirs = {"run1": root / "run1", "run2": root / "run2"}
    for name, samples in (("run1", ["s1", "s2", "s3"]), ("run2", ["s4", "s5", "s6"])):
        dirs[name].mkdir(parents=True)
        for s in samples:
            (dirs[name] / f"{s}_R1.fastq").write_text(f"@{s}\nACGT\n+\nIIII\n")
    return dirs


class FakeR:
    """Stands in for run_command: reads the JSON request and writes what the R step would."""

    def __init__(self) -> None:
        self.calls = []

    def __call__(self, cmd, *, dry_run=False, capture=False, cwd=None, env=None):
        step, req_path = cmd[2], Path(cmd[3])
        self.calls.append(step)
        if dry_run:
            return subprocess.CompletedProcess(list(cmd), 0, "", "")
        req = json.loads(req_path.read_text())
        getattr(self, "_" + step.replace("-", "_"))(req)
        return subprocess.CompletedProcess(list(cmd), 0, "", "")

    def _filter(self, req) -> None:
        rows = []
        for r in req["samples"]:
            Path(r["filtered"]).write_bytes(b"filtered")
            total = sum(COUNTS[r["sample"]].values())
            rows.append({"sample": r["sample"], "reads_in": total + 100, "reads_out": total + 10})
        write_sample_table(pd.DataFrame(rows).set_index("sample"), Path(req["output"]))

    def _learn_errors(self, req) -> None:
        Path(req["output"]).write_bytes(b"rds")

    def _denoise(self, req) -> None:
        samples = [r["sample"] for r in req["samples"]]
        write_sequence_table(seqtab_for(samples), Path(req["seqtab"]))
        stats = pd.DataFrame(
            {
                "dereplicated": [len(COUNTS[s]) * 4 for s in samples],
                "denoised": [sum(COUNTS[s].values()) for s in samples],
            },
            index=pd.Index(samples, name="sample"),
        )
        write_sample_table(stats, Path(req["stats"]))

    def _remove_chimeras(self, req) -> None:
        tab = read_sequence_table(Path(req["seqtab"]))
        write_sequence_table(tab.drop(columns=[CHIMERA]), Path(req["output"]))

    def _assign_taxonomy(self, req) -> None:
        tab = read_sequence_table(Path(req["seqtab"]))
        rows = [
            {"sequence": s, "Kingdom": "k__Fungi", "Phylum": "p__Ascomycota" if s != SEQ_D else "",
             "Class": "c__Sordariomycetes" if s in (SEQ_A, SEQ_B) else "c__Agaricomycetes"}
            for s in tab.columns
        ]
        pd.DataFrame(rows).to_csv(req["output"], sep="\t", index=False)


@pytest.fixture
def fake_r(monkeypatch) -> FakeR:
    fake = FakeR()
    monkeypatch.setattr("asvkit.dada2.commands.run_command", fake)
    return fake
