from __future__ import annotations

import os

import pytest
import yaml

from config import create_default_config, load_config, validate_files_exist


def write_config(path, data):
    path.write_text(yaml.dump(data, allow_unicode=True), encoding="utf-8")
    return str(path)


@pytest.fixture
def raw_config(tmp_path):
    return {
        'paths': {
            'conjunction_file': str(tmp_path / "conj.tsv"),
            'results_folder': str(tmp_path / "results"),
        },
        'optimization': {
            'population_size': 10,
            'generations': 5,
            'seed': 3,
            'workers': 2,
        },
    }


def test_load_config_with_defaults(tmp_path, raw_config):
    config = load_config(write_config(tmp_path / "config.yaml", raw_config))

    assert config.optimization.population_size == 10
    assert config.optimization.clone_probability == 0.94
    assert config.optimization.max_attempts == 10000
    assert config.optimization.reach_key_weight is None
    assert config.paths.frequency_file is None
    assert config.visualization.print_keyboard is True
    assert os.path.isdir(config.paths.results_folder)


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "nope.yaml"))


def test_empty_file(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    with pytest.raises(ValueError, match="empty"):
        load_config(str(path))


def test_missing_paths_section(tmp_path):
    with pytest.raises(ValueError, match="Missing required"):
        load_config(write_config(tmp_path / "c.yaml", {'optimization': {}}))


def test_unknown_option(tmp_path, raw_config):
    raw_config['optimization']['temperature'] = 1.0
    with pytest.raises(ValueError, match="optimization"):
        load_config(write_config(tmp_path / "c.yaml", raw_config))


@pytest.mark.parametrize("key,value", [
    ('cross_probability', 0.5),
    ('clone_probability', 1.2),
    ('elitism', 0.0),
    ('population_size', 1),
    ('generations', 0),
    ('workers', 0),
    ('seed', "abc"),
    ('reach_key_weight', -5),
])
def test_invalid_values(tmp_path, raw_config, key, value):
    raw_config['optimization'][key] = value
    with pytest.raises(ValueError):
        load_config(write_config(tmp_path / "c.yaml", raw_config))


def test_validate_files_exist(tmp_path, raw_config):
    config = load_config(write_config(tmp_path / "c.yaml", raw_config))
    with pytest.raises(FileNotFoundError):
        validate_files_exist(config)

    (tmp_path / "conj.tsv").write_text("か\t1\n", encoding="utf-8")
    validate_files_exist(config)


def test_create_default_config(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    create_default_config("config.yaml")
    config = load_config("config.yaml")

    assert config.paths.conjunction_file == "input/conjunctions.tsv"
    assert config.optimization.cross_probability == 0.05
    assert config.optimization.mutation_probability == 0.01
    assert config.optimization.elitism == 0.3
