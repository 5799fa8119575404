# tests/test_config.py
from __future__ import annotations

import json

import pytest

from asvkit.config.load import load_params, write_params
from asvkit.config.schema import Params, StatsParams
from asvkit.errors import ConfigError

YAML = """\
params:
  datasets:
    - name: run1
      fastq_dir: reads/run1
      naming:
        suffix: _R1.fastq
    - name: run2
      fastq_dir: /data/run2
      naming:
        regex: "^(?P<id>[^_]+)_"
  filter:
    trunc_len: 240
  denoise:
    pool: pseudo
  taxonomy:
    reference: refs/unite.fasta
  metadata:
    file: metadata.tsv
  stats:
    group_cols: [site]
    permutations: 199
"""


def test_yaml_params_resolve_relative_paths(tmp_path):
    p = tmp_path / "params.yaml"
    p.write_text(YAML, encoding="utf-8")
    params = load_params(p)

    assert params.dataset("run1").fastq_dir == tmp_path.resolve() / "reads/run1"
    assert str(params.dataset("run2").fastq_dir) == "/data/run2"
    assert params.dataset("run2").naming.regex == "^(?P<id>[^_]+)_"
    assert params.taxonomy.reference == tmp_path.resolve() / "refs/unite.fasta"
    assert params.metadata.file == tmp_path.resolve() / "metadata.tsv"
    assert params.filter.trunc_len == 240
    assert params.filter.max_ee == 2.0
    assert params.denoise.pool == "pseudo"
    assert params.stats.group_cols == ["site"]
    assert params.stats.permutations == 199
    with pytest.raises(KeyError):
        params.dataset("run3")


def test_json_bare_mapping(tmp_path):
    p = tmp_path / "params.json"
    p.write_text(json.dumps({"multithread": 8, "chimeras": {"method": "per-sample"}}), encoding="utf-8")
    params = load_params(p)
    assert params.multithread == 8
    assert params.chimeras.method == "per-sample"
    assert params.datasets == []


def test_defaults_without_file():
    params = load_params(None)
    assert params.rscript == "Rscript"
    assert params.stats.metric == "braycurtis"
    assert params.taxonomy.min_boot == 50


@pytest.mark.parametrize(
    "body",
    [
        "params:\n  denoise:\n    pool: maybe\n",
        "params:\n  chimeras:\n    method: fancy\n",
        "params:\n  stats:\n    retain_fraction: 1.5\n",
        "params:\n  datasets:\n    - {name: a, fastq_dir: x, naming: {suffix: _R1.fastq}}\n"
        "    - {name: a, fastq_dir: y, naming: {suffix: _R1.fastq}}\n",
        "- just\n- a list\n",
    ],
)
def test_invalid_params(tmp_path, body):
    p = tmp_path / "params.yaml"
    p.write_text(body, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_params(p)


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_params(tmp_path / "nope.yaml")


def test_write_then_load(tmp_path):
    params = Params(stats=StatsParams(metric="jaccard", rank="Genus"))
    out = tmp_path / "out" / "params.yaml"
    write_params(out, params.model_dump(mode="json"))
    back = load_params(out)
    assert back.stats.metric == "jaccard"
    assert back.stats.rank == "Genus"
