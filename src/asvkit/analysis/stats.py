# src/asvkit/analysis/stats.py
from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List

import pandas as pd

from asvkit.analysis import plots
from asvkit.analysis.bundle import AnalysisBundle, subset_samples
from asvkit.analysis.depth import choose_depth_and_count
from asvkit.analysis.diversity import (
    alpha_diversity_table,
    beta_distance,
    distances_to_centroid,
    ordinate,
    permanova_test,
    permdisp_test,
    rarefaction_curves,
    rarefy,
)
from asvkit.analysis.taxonomy import collapse_by_rank
from asvkit.config.schema import StatsParams
from asvkit.errors import TableError
from asvkit.utils.logger import get_logger, log_success

LOG = get_logger("stats")


def eligible_group_columns(metadata: pd.DataFrame, columns: List[str]) -> List[str]:
    """
    Columns usable as a grouping: present, no missing values, at least two levels,
    and fewer levels than samples (a level per sample cannot be tested).
    """
    out: List[str] = []
    for col in columns:
        if col not in metadata.columns:
            LOG.warning("Skipping group column %r: not in metadata", col)
            continue
        vals = metadata[col]
        if vals.isna().any() or (vals.astype(str).str.strip() == "").any():
            LOG.warning("Skipping group column %r: missing values", col)
            continue
        n = vals.astype(str).nunique()
        if n < 2 or n >= len(vals):
            LOG.warning("Skipping group column %r: %d levels for %d samples", col, n, len(vals))
            continue
        out.append(col)
    return out


def run_stats(bundle: AnalysisBundle, out_dir: Path, params: StatsParams) -> Dict[str, object]:
    """
    Alpha diversity, distance + PCoA, PERMANOVA/PERMDISP per grouping column,
    rarefaction curves and plots. Tables land in out_dir as TSV; plots as
    <name>.<plot_format>. Returns a summary that is also written to summary.json.
    """
    out_dir.mkdir(parents=True, exist_ok=True)
    ext = params.plot_format
    summary: Dict[str, object] = {"n_samples_in": len(bundle.sample_ids), "n_asvs_in": len(bundle.asv_ids)}

    totals = bundle.sample_totals()
    empty = [s for s in bundle.sample_ids if totals[s] == 0]
    if empty:
        LOG.warning("Dropping %d samples without reads: %s", len(empty), empty[:5])
        bundle = subset_samples(bundle, [s for s in bundle.sample_ids if totals[s] > 0])

    # rarefaction curves on the raw counts
    curves = rarefaction_curves(bundle.abundance, steps=params.rarefaction_steps, seed=params.seed)
    curves.to_csv(out_dir / "rarefaction.tsv", sep="\t", index=False)

    work = bundle
    if params.rarefy:
        if params.rarefaction_depth > 0:
            depth = params.rarefaction_depth
        else:
            depth, _ = choose_depth_and_count(
                bundle.sample_totals(), retain_fraction=params.retain_fraction, min_depth=params.min_depth,
            )
        summary["rarefaction_depth"] = int(depth)
        rare = rarefy(bundle.abundance, depth, seed=params.seed)
        if rare.empty:
            raise TableError(f"no sample reaches the rarefaction depth {depth}")
        work = AnalysisBundle(
            abundance=rare,
            taxonomy=bundle.taxonomy.loc[rare.columns],
            metadata=bundle.metadata.loc[rare.index],
            sequences={a: bundle.sequences[a] for a in rare.columns},
        )
        LOG.info("Rarefied to %d reads: %d samples retained", depth, len(work.sample_ids))
    plots.plot_rarefaction(curves, out_dir / f"rarefaction.{ext}", depth=summary.get("rarefaction_depth"))

    alpha = alpha_diversity_table(work.abundance, params.alpha_metrics)
    alpha.join(work.metadata).to_csv(out_dir / "alpha_diversity.tsv", sep="\t")

    collapsed = collapse_by_rank(work.abundance, work.taxonomy, params.rank)
    collapsed.to_csv(out_dir / f"taxa_{params.rank.lower()}.tsv", sep="\t", index_label="sample")
    plots.plot_taxa_bars(collapsed, out_dir / f"taxa_{params.rank.lower()}.{ext}", top_n=params.top_n, rank=params.rank)

    summary["n_samples"] = len(work.sample_ids)
    if len(work.sample_ids) < 3:
        LOG.warning("Only %d samples after filtering; skipping ordination and tests.", len(work.sample_ids))
        summary["tests"] = []
        (out_dir / "summary.json").write_text(json.dumps(summary, indent=2), encoding="utf-8")
        return summary

    dm = beta_distance(work.abundance, params.metric)
    dm.to_data_frame().to_csv(out_dir / f"{params.metric}_distance.tsv", sep="\t", index_label="sample")
    coords, explained = ordinate(dm)
    coords.to_csv(out_dir / "pcoa_coordinates.tsv", sep="\t")
    explained.to_csv(out_dir / "pcoa_proportion_explained.tsv", sep="\t", header=["proportion_explained"])

    color = work.metadata[params.color_col] if params.color_col in work.metadata.columns else None
    plots.plot_ordination(coords, explained, out_dir / f"pcoa.{ext}", groups=color,
                          title=f"PCoA ({params.metric})")

    tests: List[Dict[str, object]] = []
    for col in eligible_group_columns(work.metadata, params.group_cols):
        tests.append(permanova_test(dm, work.metadata, col, permutations=params.permutations, seed=params.seed))
        tests.append(permdisp_test(dm, work.metadata, col, permutations=params.permutations, seed=params.seed))
        disp = distances_to_centroid(coords, work.metadata[col])
        disp.to_csv(out_dir / f"dispersion_{col}.tsv", sep="\t")
        plots.plot_dispersion(disp, out_dir / f"dispersion_{col}.{ext}", column=col)
        LOG.info("%s: PERMANOVA p=%.4g, PERMDISP p=%.4g", col, tests[-2]["p_value"], tests[-1]["p_value"])
    pd.DataFrame(tests).to_csv(out_dir / "beta_tests.tsv", sep="\t", index=False)
    summary["tests"] = tests

    (out_dir / "summary.json").write_text(json.dumps(summary, indent=2, default=str), encoding="utf-8")
    log_success(f"Statistics written → {out_dir}", LOG)
    return summary
