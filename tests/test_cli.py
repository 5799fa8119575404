# tests/test_cli.py
from __future__ import annotations

import pytest

from asvkit import cli
from asvkit.commands import filter_reads, stats
from asvkit.config.load import load_params
from asvkit.metadata.read import load_metadata

from conftest import make_fastq_dirs


@pytest.fixture(autouse=True)
def _in_tmp(tmp_path, monkeypatch):
    # the CLI writes asvkit.log and the default project dir into the cwd
    monkeypatch.chdir(tmp_path)


def test_every_subcommand_is_registered():
    parser = cli.build_parser()
    args = parser.parse_args(["filter", "--datasets", "run1", "--multithread", "4", "--no-show-r"])
    assert args.func is filter_reads.run
    assert args.datasets == "run1"
    assert args.multithread == 4 and args.show_r is False

    args = parser.parse_args(["stats", "--no-rarefy", "--group-cols", "site,source"])
    assert args.func is stats.run
    for name in ("init", "doctor", "samples", "metadata-validate", "learn-errors", "denoise",
                 "remove-chimeras", "assign-taxonomy", "build", "export", "auto-run"):
        assert parser.parse_args([name] + (["--dataset", "a=b"] if name == "init" else [])).command == name


def test_init_writes_params_and_template(tmp_path, capsys):
    dirs = make_fastq_dirs(tmp_path / "reads")
    argv = ["init", "--dataset", f"run1={dirs['run1']}", "--dataset", f"run2={dirs['run2']}",
            "--suffix", "_R1.fastq", "--output-file", "params.yaml", "--metadata-out", "metadata.tsv"]
    cli.main(argv)
    assert "[ok]" in capsys.readouterr().out

    params = load_params(tmp_path / "params.yaml")
    assert [d.name for d in params.datasets] == ["run1", "run2"]
    assert params.dataset("run2").naming.suffix == "_R1.fastq"
    md = load_metadata(tmp_path / "metadata.tsv")
    assert list(md.index) == ["s1", "s2", "s3", "s4", "s5", "s6"]
    assert list(md.columns) == ["site", "source", "depth", "number"]

    with pytest.raises(SystemExit) as exc:
        cli.main(argv)
    assert exc.value.code == 1


def test_init_rejects_ambiguous_naming(tmp_path, capsys):
    dirs = make_fastq_dirs(tmp_path / "reads")
    with pytest.raises(SystemExit) as exc:
        cli.main(["init", "--dataset", f"run1={dirs['run1']}"])
    assert exc.value.code == 1
    assert "[fail]" in capsys.readouterr().err


def test_metadata_validate_exit_codes(tmp_path, capsys):
    (tmp_path / "seqtab.tsv").write_text("sample\tAAAA\ns1\t5\ns2\t3\n")
    (tmp_path / "good.tsv").write_text("sample\tsite\ns2\tnorth\ns1\tsouth\n")
    (tmp_path / "bad.tsv").write_text("sample\tsite\ns1\tsouth\ns9\tnorth\n")

    cli.main(["metadata-validate", "--metadata-file", "good.tsv", "--table", "seqtab.tsv"])
    assert "[ok] 2 metadata rows match" in capsys.readouterr().out

    with pytest.raises(SystemExit) as exc:
        cli.main(["metadata-validate", "--metadata-file", "bad.tsv", "--table", "seqtab.tsv"])
    assert exc.value.code == 1
    err = capsys.readouterr().err
    assert "IDs only in metadata: ['s9']" in err
    assert "IDs missing from metadata: ['s2']" in err


def test_samples_lists_ids(tmp_path, capsys):
    dirs = make_fastq_dirs(tmp_path / "reads")
    (tmp_path / "params.yaml").write_text(
        "params:\n  datasets:\n"
        f"    - {{name: run1, fastq_dir: {dirs['run1']}, naming: {{suffix: _R1.fastq}}}}\n"
    )
    cli.main(["samples", "--params", "params.yaml"])
    out = capsys.readouterr().out
    assert "# run1 (3 samples)" in out
    assert "[ok] 3 samples" in out


def test_missing_bundle_fails_cleanly(capsys):
    with pytest.raises(SystemExit) as exc:
        cli.main(["export"])
    assert exc.value.code == 1
    assert "run 'build' first" in capsys.readouterr().err
