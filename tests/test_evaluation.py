from __future__ import annotations

import random

import numpy as np
import pytest

from characters import find
from corpus import Corpus
from evaluation import CorpusEvaluator, Score, evaluate, evaluate_only_diff, rank
from key_assignment import KeyAssignment
from keymap import Keymap
from layout import R_TURBID


def test_full_evaluation_sums_conjunction_costs(evaluator, keymap):
    score = evaluator.evaluate(keymap)
    corpus = evaluator.corpus

    expected = [evaluator.text_cost(keymap, conj.text()) * conj.appearances
                for conj in corpus.conjunctions]
    assert score.contributions.tolist() == pytest.approx(expected)
    assert score.total == pytest.approx(sum(expected))
    assert score.total > 0


def test_two_slot_turbid_press(table):
    keymap = Keymap([KeyAssignment(find("あ"), find("か")), KeyAssignment.unshift_from(find("さ"))])
    evaluator = CorpusEvaluator(Corpus.from_texts([("が", 2)]), table)

    press = keymap.press_of("が")
    assert press.slot == 0
    assert press.shifter == R_TURBID
    # (30 + 10) * 1.3 per press, twice
    assert evaluator.evaluate(keymap).total == pytest.approx(104.0)


def test_unplaced_character_raises(evaluator):
    with pytest.raises(ValueError):
        evaluator.evaluate(Keymap.empty())


def test_empty_diff_is_noop(evaluator, keymap):
    score = evaluator.evaluate(keymap)
    again = evaluator.evaluate_only_diff(score, keymap, frozenset())
    assert again.total == score.total
    assert np.array_equal(again.contributions, score.contributions)


@pytest.mark.parametrize("seed", range(6))
def test_incremental_matches_full(evaluator, keymap, seed):
    rng = random.Random(seed)
    score = evaluator.evaluate(keymap)
    current = keymap

    for _ in range(5):
        mutant = current.mutate(rng)
        changed = current.changed_characters(mutant)
        score = evaluator.evaluate_only_diff(score, mutant, changed)
        current = mutant

        full = evaluator.evaluate(current)
        assert score.total == pytest.approx(full.total)
        assert score.contributions.tolist() == pytest.approx(full.contributions.tolist())


def test_incremental_leaves_input_score_untouched(evaluator, keymap, rng):
    score = evaluator.evaluate(keymap)
    before = score.contributions.copy()
    mutant = keymap.mutate(rng)

    evaluator.evaluate_only_diff(score, mutant, keymap.changed_characters(mutant))
    assert np.array_equal(score.contributions, before)


def test_score_is_read_only(evaluator, keymap):
    score = evaluator.evaluate(keymap)
    with pytest.raises(ValueError):
        score.contributions[0] = 0.0


def test_char_weights_scale_load(table, keymap):
    plain = CorpusEvaluator(Corpus.from_texts([("な", 1)]), table)
    weights = np.ones(len(plain.corpus.char_weights))
    weights[:] = 2.0
    doubled = CorpusEvaluator(Corpus.from_texts([("な", 1)], weights), table)

    assert doubled.evaluate(keymap).total == pytest.approx(2 * plain.evaluate(keymap).total)


def test_functional_interface(corpus, table, keymap, rng):
    score = evaluate(corpus, table, keymap)
    assert score.total == pytest.approx(CorpusEvaluator(corpus, table).evaluate(keymap).total)

    mutant = keymap.mutate(rng)
    patched = evaluate_only_diff(score, corpus, table, mutant, keymap.changed_characters(mutant))
    assert patched.total == pytest.approx(evaluate(corpus, table, mutant).total)


def test_rank_breaks_ties_by_index():
    scores = [Score(np.zeros(1), total) for total in (5.0, 1.0, 5.0, 0.5)]
    assert rank(scores) == (3, 1, 0, 2)
