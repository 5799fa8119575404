# tests/test_stats.py
from __future__ import annotations

import json

import pandas as pd
import pytest

from asvkit.analysis.bundle import build_bundle, subset_samples
from asvkit.analysis.stats import eligible_group_columns, run_stats
from asvkit.config.schema import StatsParams
from asvkit.errors import TableError


@pytest.fixture
def bundle(seqtab, taxonomy_by_seq, metadata):
    return build_bundle(seqtab, taxonomy_by_seq, metadata)


def _params(**kw) -> StatsParams:
    base = dict(group_cols=["site", "depth"], color_col="site", min_depth=10, permutations=19,
                rarefaction_steps=5)
    base.update(kw)
    return StatsParams(**base)


def test_full_run_writes_tables_and_plots(tmp_path, bundle):
    summary = run_stats(bundle, tmp_path, _params())

    for name in (
        "rarefaction.tsv", "rarefaction.png", "alpha_diversity.tsv", "taxa_class.tsv", "taxa_class.png",
        "braycurtis_distance.tsv", "pcoa_coordinates.tsv", "pcoa_proportion_explained.tsv", "pcoa.png",
        "dispersion_site.tsv", "dispersion_site.png", "beta_tests.tsv", "summary.json",
    ):
        assert (tmp_path / name).exists(), name

    # smallest sample (s4) sets the depth, so nobody is dropped
    assert summary["rarefaction_depth"] == 135
    assert summary["n_samples"] == 6
    tests = pd.read_csv(tmp_path / "beta_tests.tsv", sep="\t")
    assert sorted(set(tests["column"])) == ["depth", "site"]
    assert sorted(set(tests["method"])) == ["PERMANOVA", "PERMDISP"]

    alpha = pd.read_csv(tmp_path / "alpha_diversity.tsv", sep="\t", index_col=0)
    assert {"observed_otus", "shannon", "simpson", "site"} <= set(alpha.columns)
    assert json.loads((tmp_path / "summary.json").read_text())["n_samples_in"] == 6


def test_fixed_depth_drops_shallow_samples(tmp_path, bundle):
    summary = run_stats(bundle, tmp_path, _params(rarefaction_depth=150, group_cols=["site"]))
    assert summary["n_samples"] == 4
    coords = pd.read_csv(tmp_path / "pcoa_coordinates.tsv", sep="\t", index_col=0)
    assert sorted(coords.index) == ["s1", "s2", "s3", "s6"]


def test_depth_beyond_every_sample(tmp_path, bundle):
    with pytest.raises(TableError):
        run_stats(bundle, tmp_path, _params(rarefaction_depth=10_000))


def test_too_few_samples_skips_tests(tmp_path, bundle):
    small = subset_samples(bundle, ["s1", "s3"])
    summary = run_stats(small, tmp_path, _params(rarefy=False))
    assert summary["tests"] == []
    assert (tmp_path / "alpha_diversity.tsv").exists()
    assert not (tmp_path / "braycurtis_distance.tsv").exists()


def test_eligible_group_columns(metadata):
    md = metadata.assign(unique=[f"x{i}" for i in range(6)], constant="soil", partial=["a", "b", "a", "b", "a", None])
    assert eligible_group_columns(md, ["site", "unique", "constant", "partial", "missing"]) == ["site"]
