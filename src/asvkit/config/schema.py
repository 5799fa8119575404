# src/asvkit/config/schema.py
from __future__ import annotations

import re
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class SampleNaming(BaseModel):
    """How a sample id is cut out of a raw read filename (exactly one of suffix/regex)."""
    suffix: Optional[str] = None
    regex: Optional[str] = None
    # strict=False skips (and logs) files that do not match instead of failing
    strict: bool = True

    @field_validator("regex")
    @classmethod
    def _check_regex(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"invalid sample regex {v!r}: {e}") from e
        return v

    @model_validator(mode="after")
    def _one_rule(self) -> "SampleNaming":
        if bool(self.suffix) == bool(self.regex):
            raise ValueError("naming needs exactly one of 'suffix' or 'regex'")
        return self


class DatasetConfig(BaseModel):
    name: str
    fastq_dir: Path
    pattern: str = "*.fastq*"
    naming: SampleNaming


class FilterParams(BaseModel):
    trunc_len: int = 0
    trim_left: int = 0
    max_n: int = 0
    max_ee: float = 2.0
    trunc_q: int = 2
    min_len: int = 50
    rm_phix: bool = True
    compress: bool = True


class ErrorParams(BaseModel):
    nbases: int = 100_000_000
    randomize: bool = False
    plot: bool = True


class DenoiseParams(BaseModel):
    pool: str = "false"

    @field_validator("pool")
    @classmethod
    def _check_pool(cls, v: str) -> str:
        v = str(v).lower()
        if v not in ("false", "true", "pseudo"):
            raise ValueError("pool must be one of: false, true, pseudo")
        return v


class ChimeraParams(BaseModel):
    method: str = "consensus"

    @field_validator("method")
    @classmethod
    def _check_method(cls, v: str) -> str:
        if v not in ("consensus", "pooled", "per-sample"):
            raise ValueError("chimera method must be one of: consensus, pooled, per-sample")
        return v


class TaxonomyParams(BaseModel):
    reference: Optional[Path] = None
    min_boot: int = 50
    try_rc: bool = False


class MetadataParams(BaseModel):
    file: Optional[Path] = None
    delimiter: str = "\t"
    header: int = 0
    sample_column: Optional[str] = None


class StatsParams(BaseModel):
    group_cols: List[str] = Field(default_factory=lambda: ["site", "source"])
    color_col: Optional[str] = "site"
    metric: str = "braycurtis"
    alpha_metrics: List[str] = Field(default_factory=lambda: ["observed_otus", "shannon", "simpson"])
    permutations: int = 999
    rarefy: bool = True
    rarefaction_depth: int = 0
    retain_fraction: float = 0.90
    min_depth: int = 1000
    rarefaction_steps: int = 20
    rank: str = "Class"
    top_n: int = 10
    seed: int = 42
    plot_format: str = "png"

    @field_validator("metric")
    @classmethod
    def _check_metric(cls, v: str) -> str:
        if v not in ("braycurtis", "jaccard"):
            raise ValueError("metric must be one of: braycurtis, jaccard")
        return v

    @field_validator("retain_fraction")
    @classmethod
    def _check_fraction(cls, v: float) -> float:
        if not 0.0 < v <= 1.0:
            raise ValueError("retain_fraction must be in (0, 1]")
        return v


class Params(BaseModel):
    datasets: List[DatasetConfig] = Field(default_factory=list)

    filter: FilterParams = Field(default_factory=FilterParams)
    errors: ErrorParams = Field(default_factory=ErrorParams)
    denoise: DenoiseParams = Field(default_factory=DenoiseParams)
    chimeras: ChimeraParams = Field(default_factory=ChimeraParams)
    taxonomy: TaxonomyParams = Field(default_factory=TaxonomyParams)
    metadata: MetadataParams = Field(default_factory=MetadataParams)
    stats: StatsParams = Field(default_factory=StatsParams)

    # passed straight through to DADA2; 0 lets R pick
    multithread: int = 0
    rscript: str = "Rscript"

    @field_validator("datasets")
    @classmethod
    def _unique_names(cls, v: List[DatasetConfig]) -> List[DatasetConfig]:
        names = [d.name for d in v]
        dupes = sorted({n for n in names if names.count(n) > 1})
        if dupes:
            raise ValueError(f"duplicate dataset names: {', '.join(dupes)}")
        return v

    def dataset(self, name: str) -> DatasetConfig:
        for d in self.datasets:
            if d.name == name:
                return d
        raise KeyError(name)
