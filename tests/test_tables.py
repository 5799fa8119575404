# tests/test_tables.py
from __future__ import annotations

import pandas as pd
import pytest

from asvkit.analysis.tables import (
    bind_rows,
    build_read_tracking,
    chimera_retention_percent,
    chimera_summary,
    merge_sequence_tables,
    read_sequence_table,
    validate_abundance,
    write_sequence_table,
)
from asvkit.errors import TableError


def _frame(rows, columns):
    return pd.DataFrame(rows, columns=columns).set_index("sample")


def test_bind_rows_keeps_every_row():
    a = _frame([["s1", 100, 90], ["s2", 50, 40]], ["sample", "reads_in", "reads_out"])
    b = _frame([["s3", 70, 0]], ["sample", "reads_in", "reads_out"])
    out = bind_rows([a, b])
    assert list(out.index) == ["s1", "s2", "s3"]
    assert int(out.loc["s3", "reads_out"]) == 0


def test_bind_rows_rejects_shared_ids():
    a = _frame([["s1", 1, 1]], ["sample", "reads_in", "reads_out"])
    with pytest.raises(TableError, match="s1"):
        bind_rows([a, a.copy()])
    with pytest.raises(TableError):
        bind_rows([])


def test_merge_fills_absent_variants_and_orders_by_abundance():
    run1 = pd.DataFrame({"AAA": [5, 1], "CCC": [10, 0]}, index=["s1", "s2"])
    run2 = pd.DataFrame({"CCC": [3], "GGG": [40]}, index=["s3"])
    merged = merge_sequence_tables([run1, run2])

    assert list(merged.columns) == ["GGG", "CCC", "AAA"]
    assert merged.loc["s3", "AAA"] == 0
    assert merged.loc["s1", "GGG"] == 0
    assert (merged.dtypes == "int64").all()
    assert int(merged.to_numpy().sum()) == 59


def test_chimera_retention_percent():
    pre = pd.DataFrame({"A": [600, 300], "B": [50, 50]}, index=["s1", "s2"])
    post = pd.DataFrame({"A": [600, 300], "B": [0, 50]}, index=["s1", "s2"])
    assert chimera_retention_percent(pre, post) == 95.0

    post3 = pd.DataFrame({"A": [1, 0]}, index=["s1", "s2"])
    pre3 = pd.DataFrame({"A": [2, 1]}, index=["s1", "s2"])
    assert chimera_retention_percent(pre3, post3) == 33.3333


def test_chimera_retention_needs_reads():
    empty = pd.DataFrame({"A": [0, 0]}, index=["s1", "s2"])
    with pytest.raises(TableError):
        chimera_retention_percent(empty, empty)


def test_chimera_summary_counts_variants():
    pre = pd.DataFrame({"A": [10], "B": [5], "C": [5]}, index=["s1"])
    post = pre[["A", "C"]]
    s = chimera_summary(pre, post)
    assert s["variants_before"] == 3
    assert s["variants_removed"] == 1
    assert s["reads_after"] == 15
    assert s["percent_reads_retained"] == 75.0


@pytest.mark.parametrize(
    "values, message",
    [
        ([[1, -1]], "negative"),
        ([[1.5, 2]], "non-integer"),
        ([[None, 2]], "missing"),
    ],
)
def test_validate_abundance_rejects_bad_counts(values, message):
    df = pd.DataFrame(values, index=["s1"], columns=["A", "B"])
    with pytest.raises(TableError, match=message):
        validate_abundance(df)


def test_validate_abundance_rejects_duplicate_labels():
    df = pd.DataFrame([[1, 2], [3, 4]], index=["s1", "s1"], columns=["A", "B"])
    with pytest.raises(TableError, match="duplicate sample"):
        validate_abundance(df)


def test_sequence_table_io(tmp_path, seqtab):
    path = write_sequence_table(seqtab, tmp_path / "seqtab.tsv")
    assert path.read_text().splitlines()[0].startswith("sample\t")
    back = read_sequence_table(path)
    assert back.shape == seqtab.shape
    assert back.loc["s6"].sum() == seqtab.loc["s6"].sum()

    bad = tmp_path / "bad.tsv"
    bad.write_text("id\tAAA\ns1\t3\n")
    with pytest.raises(TableError, match="first column"):
        read_sequence_table(bad)


def test_read_tracking_joins_on_sample_id():
    filt = _frame([["s1", 100, 80], ["s2", 60, 50], ["s3", 40, 0]], ["sample", "reads_in", "reads_out"])
    # deliberately in another order, and missing the sample lost at filtering
    denoised = _frame([["s2", 12, 45], ["s1", 20, 75]], ["sample", "dereplicated", "denoised"])
    nonchim = pd.DataFrame({"AAA": [70, 40], "CCC": [1, 0]}, index=["s1", "s2"])

    track = build_read_tracking(filt, denoised, nonchim)
    assert list(track.columns) == ["input", "filtered", "dereplicated", "denoised", "nonchim"]
    assert track.loc["s1"].tolist() == [100, 80, 20, 75, 71]
    assert track.loc["s2"].tolist() == [60, 50, 12, 45, 40]
    assert track.loc["s3"].tolist() == [40, 0, 0, 0, 0]


def test_read_tracking_without_later_stages():
    filt = _frame([["s1", 10, 9]], ["sample", "reads_in", "reads_out"])
    track = build_read_tracking(filt)
    assert list(track.columns) == ["input", "filtered"]
