from __future__ import annotations

import random

import pytest

from corpus import Corpus
from evaluation import CorpusEvaluator
from scoring import ScoringTable
from validation import valid_keymap

SAMPLE_TEXTS = [
    ("の", 520),
    ("です", 185),
    ("ます", 179),
    ("した", 138),
    ("ている", 96),
    ("がっこう", 41),
    ("ぱん", 12),
    ("ぴったり", 5),
    ("じゃない", 15),
    ("ふぁん", 4),
    ("、", 310),
    ("。ー", 2),
    ("ぶん", 38),
]


@pytest.fixture(scope="session")
def table() -> ScoringTable:
    return ScoringTable()


@pytest.fixture(scope="session")
def corpus() -> Corpus:
    return Corpus.from_texts(SAMPLE_TEXTS)


@pytest.fixture(scope="session")
def evaluator(corpus, table) -> CorpusEvaluator:
    return CorpusEvaluator(corpus, table)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def keymap(rng):
    return valid_keymap(rng)
