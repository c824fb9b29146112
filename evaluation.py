# evaluation.py
"""
Corpus-level fitness of a keymap.

Full evaluation resolves every catalog character to its key press once,
then scores all conjunctions in one vectorized pass over the ScoringTable.
Incremental evaluation recomputes only conjunctions that contain a changed
character and patches the running total.
"""

from dataclasses import dataclass
from typing import Iterable, Tuple

import numpy as np

import characters
from corpus import Corpus
from keymap import Keymap
from scoring import ABSENT, ScoringTable


@dataclass(frozen=True)
class Score:
    """Per-conjunction cost contributions and their total. Lower is better."""
    contributions: np.ndarray
    total: float

    def __post_init__(self):
        self.contributions.flags.writeable = False


@dataclass(frozen=True)
class PressTable:
    """
    Per-character press data for one keymap.

    Arrays have one trailing entry for id -1 (padding) that resolves to an
    absent key with zero load.
    """
    slots: np.ndarray
    shifters: np.ndarray
    loads: np.ndarray


class CorpusEvaluator:
    """Scores keymaps against a fixed corpus and scoring table."""

    def __init__(self, corpus: Corpus, table: ScoringTable):
        self.corpus = corpus
        self.table = table

    def press_table(self, keymap: Keymap) -> PressTable:
        chars = characters.all_chars()
        n = len(chars)
        slots = np.full(n + 1, ABSENT, dtype=np.int64)
        shifters = np.full(n + 1, ABSENT, dtype=np.int64)
        loads = np.zeros(n + 1, dtype=np.float64)

        for i, c in enumerate(chars):
            press = keymap.press_of(c)
            if press is None:
                continue
            slots[i] = press.slot
            if press.shifter is not None:
                shifters[i] = press.shifter
            loads[i] = self.table.press_load(press, float(self.corpus.char_weights[i]))

        return PressTable(slots, shifters, loads)

    def _check_placed(self, presses: PressTable, ids: np.ndarray) -> None:
        used = np.unique(ids[ids >= 0])
        missing = used[presses.slots[used] == ABSENT]
        if len(missing):
            chars = characters.all_chars()
            names = ", ".join(chars[i] for i in missing)
            raise ValueError(f"Keymap does not place corpus characters: {names}")

    def _costs(self, presses: PressTable, rows: np.ndarray) -> np.ndarray:
        ids = self.corpus.ids[rows]
        self._check_placed(presses, ids)
        costs = self.table.evaluate_batch(presses.slots[ids], presses.shifters[ids],
                                          presses.loads[ids].sum(axis=1))
        return costs * self.corpus.appearances[rows]

    def evaluate(self, keymap: Keymap) -> Score:
        """Score every conjunction from scratch."""
        presses = self.press_table(keymap)
        contributions = self._costs(presses, np.arange(len(self.corpus)))
        return Score(contributions, float(contributions.sum()))

    def evaluate_only_diff(self, score: Score, keymap: Keymap,
                           changed: Iterable[int]) -> Score:
        """
        Re-score only conjunctions containing a changed character.

        Args:
            score: Score of the keymap this one was derived from
            keymap: The derived keymap
            changed: Ids of every character whose press differs between the two

        Returns:
            New Score; `score` is left untouched
        """
        rows = self.corpus.affected_rows(changed)
        if len(rows) == 0:
            return Score(score.contributions.copy(), score.total)

        contributions = score.contributions.copy()
        total = score.total - float(contributions[rows].sum())

        fresh = self._costs(self.press_table(keymap), rows)
        contributions[rows] = fresh
        total += float(fresh.sum())

        return Score(contributions, total)

    def text_cost(self, keymap: Keymap, text: str) -> float:
        """Unweighted-by-count cost of typing one short text (up to four characters)."""
        presses = [keymap.press_of(c) for c in text]
        if any(p is None for p in presses):
            raise ValueError(f"Keymap cannot type '{text}'")
        weights = [float(self.corpus.char_weights[i]) for i in characters.char_ids(text)]
        return self.table.evaluate(presses, weights)


#-----------------------------------------------------------------------------
# Functional interface
#-----------------------------------------------------------------------------
def evaluate(corpus: Corpus, table: ScoringTable, keymap: Keymap) -> Score:
    return CorpusEvaluator(corpus, table).evaluate(keymap)


def evaluate_only_diff(score: Score, corpus: Corpus, table: ScoringTable,
                       keymap: Keymap, changed: Iterable[int]) -> Score:
    return CorpusEvaluator(corpus, table).evaluate_only_diff(score, keymap, changed)


def rank(scores: Iterable[Score]) -> Tuple[int, ...]:
    """Member indices ordered best first; ties keep index order."""
    totals = [s.total for s in scores]
    return tuple(sorted(range(len(totals)), key=lambda i: (totals[i], i)))
