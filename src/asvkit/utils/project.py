# src/asvkit/utils/project.py
from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from pathlib import Path


def slugify(s: str, max_len: int = 60) -> str:
    """Directory-safe dataset slug; keeps [A-Za-z0-9._-], hashes overly long names."""
    s = re.sub(r"[^A-Za-z0-9._-]+", "-", s).strip("-_.")
    if not s:
        return "dataset"
    if len(s) <= max_len:
        return s
    h = hashlib.sha1(s.encode("utf-8")).hexdigest()[:8]
    return s[: max_len - 9] + "-" + h


@dataclass(frozen=True)
class DatasetLayout:
    root: Path

    @property
    def filtered_dir(self) -> Path:
        return self.root / "filtered"

    def filtered_path(self, sample_id: str) -> Path:
        return self.filtered_dir / f"{sample_id}_filt.fastq.gz"

    @property
    def filter_results(self) -> Path:
        return self.root / "filter_results.tsv"

    @property
    def error_model(self) -> Path:
        return self.root / "errors.rds"

    @property
    def error_plot(self) -> Path:
        return self.root / "errors.pdf"

    @property
    def seqtab(self) -> Path:
        return self.root / "seqtab.tsv"

    @property
    def denoise_stats(self) -> Path:
        return self.root / "denoise_stats.tsv"

    def request(self, step: str) -> Path:
        return self.root / f"{step}.request.json"


@dataclass(frozen=True)
class ProjectLayout:
    """Fixed file locations under a project directory."""
    project_dir: Path

    def dataset(self, name: str) -> DatasetLayout:
        return DatasetLayout(self.project_dir / "datasets" / slugify(name))

    @property
    def filter_results(self) -> Path:
        return self.project_dir / "filter_results.tsv"

    @property
    def seqtab(self) -> Path:
        return self.project_dir / "seqtab.tsv"

    @property
    def denoise_stats(self) -> Path:
        return self.project_dir / "denoise_stats.tsv"

    @property
    def seqtab_nochim(self) -> Path:
        return self.project_dir / "seqtab_nochim.tsv"

    @property
    def chimera_report(self) -> Path:
        return self.project_dir / "chimeras.json"

    @property
    def taxonomy(self) -> Path:
        return self.project_dir / "taxonomy.tsv"

    @property
    def track(self) -> Path:
        return self.project_dir / "track.tsv"

    @property
    def bundle(self) -> Path:
        return self.project_dir / "bundle.zip"

    @property
    def exports_dir(self) -> Path:
        return self.project_dir / "exports"

    @property
    def stats_dir(self) -> Path:
        return self.project_dir / "stats"

    def request(self, step: str) -> Path:
        return self.project_dir / f"{step}.request.json"

    def ensure(self) -> "ProjectLayout":
        self.project_dir.mkdir(parents=True, exist_ok=True)
        return self


def require(path: Path, produced_by: str) -> Path:
    """Raise FileNotFoundError naming the stage that should have produced *path*."""
    if not path.exists():
        raise FileNotFoundError(f"Missing {path}; run '{produced_by}' first.")
    return path
