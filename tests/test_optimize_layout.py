from __future__ import annotations

import argparse
import sys

import matplotlib
matplotlib.use("Agg")

import pandas as pd
import pytest
import yaml

import optimize_layout
from config import load_config
from layout import slot_of_label
from scoring import PROHIBITIVE_REACH_WEIGHT


@pytest.fixture
def config_path(tmp_path):
    conj = tmp_path / "conj.tsv"
    conj.write_text("です\t185\nます\t179\nがっこう\t41\nぱん\t12\n、\t310\n", encoding="utf-8")
    freq = tmp_path / "freq.tsv"
    freq.write_text("で\t10\nす\t20\nま\t15\n", encoding="utf-8")

    data = {
        'paths': {
            'conjunction_file': str(conj),
            'frequency_file': str(freq),
            'results_folder': str(tmp_path / "results"),
        },
        'optimization': {
            'population_size': 4,
            'generations': 2,
            'seed': 5,
            'workers': 2,
            'max_attempts': 2000,
        },
        'visualization': {'print_keyboard': True},
    }
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump(data, allow_unicode=True), encoding="utf-8")
    return str(path)


def test_apply_overrides(config_path):
    args = argparse.Namespace(generations=7, population=9, seed=None, workers=1, verbose=True)
    config = optimize_layout.apply_overrides(load_config(config_path), args)

    assert config.optimization.generations == 7
    assert config.optimization.population_size == 9
    assert config.optimization.seed == 5
    assert config.optimization.workers == 1
    assert config.visualization.verbose_output is True


def test_apply_overrides_revalidates(config_path):
    args = argparse.Namespace(generations=0, population=None, seed=None, workers=None, verbose=False)
    with pytest.raises(ValueError):
        optimize_layout.apply_overrides(load_config(config_path), args)


def test_main_end_to_end(config_path, tmp_path, monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", [
        "optimize_layout.py", "--config", config_path, "--generations", "2", "--plot",
    ])
    optimize_layout.main()

    out = capsys.readouterr().out
    assert "Optimization Results:" in out
    assert "[semiturbid]" in out

    results = tmp_path / "results"
    history = list(results.glob("ga_history_*.csv"))
    assert len(history) == 1
    assert len(pd.read_csv(history[0])) == 2
    assert list(results.glob("ga_keymap_*.csv"))
    assert (results / "score_history.png").exists()
    assert (results / "key_usage.png").exists()


def test_build_evaluator_uses_reach_key_weight(config_path):
    config = load_config(config_path)
    config.optimization.reach_key_weight = PROHIBITIVE_REACH_WEIGHT

    evaluator = optimize_layout.build_evaluator(config)
    assert evaluator.table.geometry.finger_weight(slot_of_label("t")) == PROHIBITIVE_REACH_WEIGHT
    assert len(evaluator.corpus) == 5
