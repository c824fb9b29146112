from __future__ import annotations

import random

import numpy as np
import pytest

from optimizer import (GenerationResult, Optimizer, OptimizerSettings, draw_index,
                       selection_probabilities)


class FixedRandom:
    def __init__(self, value):
        self.value = value

    def random(self):
        return self.value


def small_settings(**overrides) -> OptimizerSettings:
    values = dict(population_size=6, workers=2, max_attempts=2000)
    values.update(overrides)
    return OptimizerSettings(**values)


@pytest.mark.parametrize("value,expected", [
    (0.0, 0),
    (0.19, 0),
    (0.45, 1),
    (0.5, 2),
    (0.9999999, 2),
])
def test_draw_index(value, expected):
    assert draw_index(FixedRandom(value), [0.2, 0.3, 0.5]) == expected


def test_draw_index_skips_zero_probabilities():
    assert draw_index(FixedRandom(0.3), [0.0, 1.0, 0.0]) == 1
    # r beyond a cumulative sum that rounded below 1
    assert draw_index(FixedRandom(0.9999999), [0.3, 0.6, 0.0]) == 1


def test_selection_probabilities_favor_low_scores():
    probabilities = selection_probabilities([10.0, 20.0, 30.0])
    assert probabilities.tolist() == pytest.approx([5 / 12, 1 / 3, 1 / 4])
    assert probabilities.sum() == pytest.approx(1.0)


@pytest.mark.parametrize("totals", [[0.0, 0.0], [42.0]])
def test_selection_probabilities_fall_back_to_uniform(totals):
    probabilities = selection_probabilities(totals)
    assert probabilities.tolist() == pytest.approx([1 / len(totals)] * len(totals))


@pytest.mark.parametrize("overrides", [
    dict(cross_probability=0.5),
    dict(clone_probability=-0.1, mutation_probability=0.11),
    dict(elitism=0.0),
    dict(workers=0),
    dict(population_size=0),
])
def test_settings_validation(overrides):
    with pytest.raises(ValueError):
        small_settings(**overrides)


def test_new_population_is_valid(evaluator):
    optimizer = Optimizer.new(evaluator, small_settings(), random.Random(0))
    assert len(optimizer.members) == 6
    assert all(m.keymap.meet_requirements() for m in optimizer.members)
    assert all(m.lineage is None for m in optimizer.members)
    assert optimizer.generation == 0


def test_evaluate_population_keeps_member_order(evaluator):
    optimizer = Optimizer.new(evaluator, small_settings(), random.Random(1))
    scores = optimizer.evaluate_population()
    expected = [evaluator.evaluate(m.keymap).total for m in optimizer.members]
    assert [s.total for s in scores] == pytest.approx(expected)


def test_advance(evaluator):
    rng = random.Random(2)
    optimizer = Optimizer.new(evaluator, small_settings(), rng)
    result = optimizer.advance(rng)

    assert isinstance(result, GenerationResult)
    assert result.generation == 0
    assert optimizer.generation == 1
    assert result.best_score <= result.mean_score
    assert result.best_keymap.meet_requirements()
    assert len(optimizer.members) == 6
    assert all(m.keymap.meet_requirements() for m in optimizer.members)


def test_lineage_scores_match_full_evaluation(evaluator):
    rng = random.Random(3)
    settings = small_settings(cross_probability=0.2, mutation_probability=0.6, clone_probability=0.2)
    optimizer = Optimizer.new(evaluator, settings, rng)
    optimizer.advance(rng)

    assert any(m.lineage is not None for m in optimizer.members)
    for member in optimizer.members:
        assert optimizer._fitness(member).total == pytest.approx(
            evaluator.evaluate(member.keymap).total)


def test_clone_only_copies_the_best(evaluator):
    rng = random.Random(4)
    settings = small_settings(cross_probability=0.0, mutation_probability=0.0,
                              clone_probability=1.0, elitism=0.1)
    optimizer = Optimizer.new(evaluator, settings, rng)
    result = optimizer.advance(rng)

    assert all(m.keymap == result.best_keymap for m in optimizer.members)
    assert result.rejected == 0


def test_run_is_reproducible(evaluator):
    def run(seed):
        rng = random.Random(seed)
        optimizer = Optimizer.new(evaluator, small_settings(), rng)
        return optimizer.run(3, rng, show_progress=False)

    first, second = run(11), run(11)
    assert len(first.history) == 3
    assert [h.best_score for h in first.history] == [h.best_score for h in second.history]
    assert first.best.best_score == min(h.best_score for h in first.history)
    assert [h.generation for h in first.history] == [0, 1, 2]


def test_settings_from_config():
    from config import Config, OptimizationConfig, PathConfig, VisualizationConfig

    config = Config(PathConfig("conj.tsv"), OptimizationConfig(population_size=12, workers=3),
                    VisualizationConfig())
    settings = OptimizerSettings.from_config(config)
    assert settings.population_size == 12
    assert settings.workers == 3
    assert settings.operation_probabilities() == (0.05, 0.01, 0.94)
    assert np.isclose(sum(settings.operation_probabilities()), 1.0)
