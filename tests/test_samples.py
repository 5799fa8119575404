# tests/test_samples.py
from __future__ import annotations

import pytest
from pydantic import ValidationError

from asvkit.config.schema import DatasetConfig, SampleNaming
from asvkit.errors import SampleNameError
from asvkit.utils.samples import (
    Sample,
    check_unique_across,
    discover_fastqs,
    discover_samples,
    parse_sample_id,
    sample_ids_for,
)

SUFFIX = "_IBESTGRC_JU_988_R2_ITS-hdr.fastq"


def test_suffix_rule_cuts_sample_id():
    naming = SampleNaming(suffix=SUFFIX)
    assert parse_sample_id("sample1" + SUFFIX, naming) == "sample1"
    assert parse_sample_id("T-12_b" + SUFFIX, naming) == "T-12_b"


def test_suffix_rule_rejects_other_names():
    with pytest.raises(SampleNameError):
        parse_sample_id("sample1_R1.fastq", SampleNaming(suffix=SUFFIX))
    with pytest.raises(SampleNameError, match="empty"):
        parse_sample_id(SUFFIX, SampleNaming(suffix=SUFFIX))


def test_regex_rule_prefers_named_group():
    assert parse_sample_id("run7-plot3_S12_L001.fastq.gz", SampleNaming(regex=r"-(?P<id>plot\d+)_")) == "plot3"
    assert parse_sample_id("A12_S1.fastq", SampleNaming(regex=r"^([A-Z]\d+)_")) == "A12"
    assert parse_sample_id("A12_S1.fastq", SampleNaming(regex=r"^[A-Z]\d+")) == "A12"


def test_naming_requires_exactly_one_rule():
    with pytest.raises(ValidationError):
        SampleNaming()
    with pytest.raises(ValidationError):
        SampleNaming(suffix="_R1.fastq", regex="x")
    with pytest.raises(ValidationError):
        SampleNaming(regex="([unclosed")


def test_colliding_ids_raise(tmp_path):
    for name in ("A_1.fastq", "A_2.fastq"):
        (tmp_path / name).write_text("")
    paths = discover_fastqs(tmp_path)
    with pytest.raises(SampleNameError, match="'A'"):
        sample_ids_for(paths, SampleNaming(regex=r"^([A-Z]+)_"))


def test_non_strict_skips_unparseable(tmp_path):
    (tmp_path / "s1_R1.fastq").write_text("")
    (tmp_path / "Undetermined.fastq").write_text("")
    paths = discover_fastqs(tmp_path)

    with pytest.raises(SampleNameError):
        sample_ids_for(paths, SampleNaming(suffix="_R1.fastq"))
    ids = sample_ids_for(paths, SampleNaming(suffix="_R1.fastq", strict=False))
    assert list(ids) == ["s1"]


def test_discovery_falls_back_to_subdirectories(tmp_path):
    nested = tmp_path / "lane1"
    nested.mkdir()
    (nested / "b_R1.fastq.gz").write_text("")
    (nested / "a_R1.fastq.gz").write_text("")
    (tmp_path / "notes.txt").write_text("")

    ds = DatasetConfig(name="run", fastq_dir=tmp_path, naming=SampleNaming(suffix="_R1.fastq.gz"))
    samples = discover_samples(ds)
    assert [s.sample_id for s in samples] == ["a", "b"]
    assert all(s.dataset == "run" for s in samples)


def test_missing_directory(tmp_path):
    with pytest.raises(NotADirectoryError):
        discover_fastqs(tmp_path / "nope")


def test_ids_shared_between_datasets(tmp_path):
    found = {
        "run1": [Sample("s1", "run1", tmp_path / "a"), Sample("s2", "run1", tmp_path / "b")],
        "run2": [Sample("s2", "run2", tmp_path / "c")],
    }
    msg = check_unique_across(found)
    assert msg is not None and "s2 (run1, run2)" in msg
    assert check_unique_across({"run1": found["run1"]}) is None
