from __future__ import annotations

import numpy as np
import pytest

import characters
from corpus import (CHAR_PRIMES, Conjunction, Corpus, first_primes, load_char_weights,
                    load_conjunctions, load_corpus, prime_of)


def write_tsv(path, rows):
    path.write_text("".join(f"{a}\t{b}\n" for a, b in rows), encoding="utf-8")
    return str(path)


def test_primes():
    assert first_primes(6) == [2, 3, 5, 7, 11, 13]
    assert len(CHAR_PRIMES) == characters.n_chars()
    assert len(set(CHAR_PRIMES)) == len(CHAR_PRIMES)


def test_conjunction_hash_is_prime_product():
    conj = Conjunction.from_text("かがか", 7)
    ka, ga = characters.char_id("か"), characters.char_id("が")
    assert conj.ids == (ka, ga, ka)
    assert conj.hash == prime_of(ka) ** 2 * prime_of(ga)
    assert conj.contains_any([ga])
    assert not conj.contains_any([characters.char_id("な")])
    assert conj.text() == "かがか"


@pytest.mark.parametrize("ids", [(), (0, 1, 2, 3, 4)])
def test_conjunction_length_limits(ids):
    with pytest.raises(ValueError):
        Conjunction(ids, 1)


def test_negative_appearances_rejected():
    with pytest.raises(ValueError):
        Conjunction((0,), -1)


def test_corpus_arrays():
    corpus = Corpus.from_texts([("かが", 3), ("あ", 1)])
    ka, ga, a = (characters.char_id(c) for c in "かがあ")

    assert len(corpus) == 2
    assert corpus.ids.tolist() == [[ka, ga, -1, -1], [a, -1, -1, -1]]
    assert corpus.appearances.tolist() == [3.0, 1.0]
    assert corpus.char_weights.tolist() == [1.0] * characters.n_chars()
    assert corpus.total_appearances() == 4.0


def test_affected_rows():
    corpus = Corpus.from_texts([("かが", 3), ("あ", 1), ("なか", 2)])
    ka = characters.char_id("か")
    assert corpus.affected_rows([ka]).tolist() == [0, 2]
    assert corpus.affected_rows([]).tolist() == []


def test_char_weights_validated():
    with pytest.raises(ValueError):
        Corpus([], np.ones(3))
    with pytest.raises(ValueError):
        Corpus([], -np.ones(characters.n_chars()))


def test_load_conjunctions_skips_unusable(tmp_path):
    path = write_tsv(tmp_path / "conj.tsv", [
        ("かな", 10),
        ("abc", 5),
        ("あいうえお", 3),
        ("です", 8),
    ])
    conjunctions = load_conjunctions(path)
    assert [c.text() for c in conjunctions] == ["かな", "です"]
    assert [c.appearances for c in conjunctions] == [10, 8]


def test_load_conjunctions_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_conjunctions(str(tmp_path / "missing.tsv"))

    bad = write_tsv(tmp_path / "bad.tsv", [("かな", "many")])
    with pytest.raises(ValueError):
        load_conjunctions(bad)

    unknown = write_tsv(tmp_path / "unknown.tsv", [("abc", 1)])
    with pytest.raises(ValueError):
        load_conjunctions(unknown)


def test_load_char_weights_normalizes(tmp_path):
    path = write_tsv(tmp_path / "freq.tsv", [("あ", 2), ("い", 6), ("x", 100)])
    weights = load_char_weights(path)

    assert weights.shape == (characters.n_chars(),)
    assert weights.mean() == pytest.approx(1.0)
    assert weights[characters.char_id("う")] == 0.0
    assert weights[characters.char_id("い")] == pytest.approx(3 * weights[characters.char_id("あ")])


def test_load_corpus(tmp_path):
    conj = write_tsv(tmp_path / "conj.tsv", [("かな", 10), ("あ", 4)])
    freq = write_tsv(tmp_path / "freq.tsv", [("か", 5), ("な", 5)])

    corpus = load_corpus(conj, freq)
    assert len(corpus) == 2
    assert corpus.char_weights[characters.char_id("か")] > 0
    assert corpus.char_weights[characters.char_id("あ")] == 0.0

    unweighted = load_corpus(conj)
    assert unweighted.char_weights.tolist() == [1.0] * characters.n_chars()


def test_hashes_are_int64_array(corpus):
    assert corpus.hashes.dtype == np.int64
    assert corpus.hashes.tolist() == [c.hash for c in corpus.conjunctions]
    with pytest.raises(ValueError):
        corpus.hashes[0] = 1


def test_largest_hash_fits_int64():
    last = characters.n_chars() - 1
    corpus = Corpus([Conjunction((last,) * 4, 1)])
    assert int(corpus.hashes[0]) == CHAR_PRIMES[-1] ** 4


@pytest.mark.parametrize("changed", [
    "か", "が", "のす", "っん", "ぱぴ、", "ー。",
])
def test_affected_rows_match_contains_any(corpus, changed):
    ids = characters.char_ids(changed)
    expected = [row for row, conj in enumerate(corpus.conjunctions) if conj.contains_any(ids)]
    assert corpus.affected_rows(ids).tolist() == expected
