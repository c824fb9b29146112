# corpus.py
"""
Weighted corpus of character sequences used as the optimization workload.

A conjunction is a sequence of 1-4 catalog character ids with an appearance
count. Each conjunction also carries a hash equal to the product of one prime
per character id, so "does this conjunction contain any of these characters"
is a divisibility test.

Corpus files are tab-separated without a header:
- conjunction file: <ngram>\t<count>
- frequency file:   <char>\t<count>
"""

import csv
import os
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

import characters

MAX_CONJUNCTION_LENGTH = 4


def first_primes(n: int) -> List[int]:
    """Return the first n primes."""
    primes: List[int] = []
    candidate = 2
    while len(primes) < n:
        if all(candidate % p for p in primes if p * p <= candidate):
            primes.append(candidate)
        candidate += 1
    return primes


CHAR_PRIMES: Tuple[int, ...] = tuple(first_primes(characters.n_chars()))


def prime_of(char_id: int) -> int:
    return CHAR_PRIMES[char_id]


#-----------------------------------------------------------------------------
# Conjunctions
#-----------------------------------------------------------------------------
@dataclass(frozen=True)
class Conjunction:
    """A corpus n-gram: character ids plus how often it appears."""
    ids: Tuple[int, ...]
    appearances: int
    hash: int = field(init=False)

    def __post_init__(self):
        if not self.ids:
            raise ValueError("Conjunction must contain at least one character")
        if len(self.ids) > MAX_CONJUNCTION_LENGTH:
            raise ValueError(
                f"Conjunction has {len(self.ids)} characters, at most {MAX_CONJUNCTION_LENGTH} allowed")
        if self.appearances < 0:
            raise ValueError(f"Appearance count must be non-negative, got {self.appearances}")

        object.__setattr__(self, 'ids', tuple(int(i) for i in self.ids))
        value = 1
        for i in self.ids:
            value *= prime_of(i)
        object.__setattr__(self, 'hash', value)

    @classmethod
    def from_text(cls, text: str, appearances: int) -> "Conjunction":
        return cls(tuple(characters.char_ids(text)), appearances)

    def contains_any(self, changed: Iterable[int]) -> bool:
        return any(self.hash % prime_of(c) == 0 for c in changed)

    def text(self) -> str:
        chars = characters.all_chars()
        return "".join(chars[i] for i in self.ids)


#-----------------------------------------------------------------------------
# Corpus
#-----------------------------------------------------------------------------
class Corpus:
    """
    Conjunctions packed into numpy arrays for batch evaluation.

    Attributes:
        conjunctions: Conjunction objects, in input order
        ids: (n, 4) int64 character ids, padded with -1
        appearances: (n,) float64 appearance counts
        hashes: (n,) int64 prime-product hashes (four primes below 432 fit in 64 bits)
        char_weights: (n_chars,) per-character frequency weights
    """

    def __init__(self, conjunctions: Sequence[Conjunction],
                 char_weights: Optional[np.ndarray] = None):
        n_chars = characters.n_chars()
        self.conjunctions: Tuple[Conjunction, ...] = tuple(conjunctions)

        n = len(self.conjunctions)
        self.ids = np.full((n, MAX_CONJUNCTION_LENGTH), -1, dtype=np.int64)
        self.appearances = np.zeros(n, dtype=np.float64)
        for row, conj in enumerate(self.conjunctions):
            self.ids[row, :len(conj.ids)] = conj.ids
            self.appearances[row] = conj.appearances
        self.hashes = np.array([conj.hash for conj in self.conjunctions], dtype=np.int64)

        if char_weights is None:
            char_weights = np.ones(n_chars, dtype=np.float64)
        char_weights = np.asarray(char_weights, dtype=np.float64)
        if char_weights.shape != (n_chars,):
            raise ValueError(f"Expected {n_chars} character weights, got shape {char_weights.shape}")
        if not np.all(np.isfinite(char_weights)) or np.any(char_weights < 0):
            raise ValueError("Character weights must be finite and non-negative")
        self.char_weights = char_weights

        for arr in (self.ids, self.appearances, self.hashes, self.char_weights):
            arr.flags.writeable = False

    @classmethod
    def from_texts(cls, entries: Iterable[Tuple[str, int]],
                   char_weights: Optional[np.ndarray] = None) -> "Corpus":
        """Build a corpus from (text, count) pairs of catalog characters."""
        return cls([Conjunction.from_text(text, count) for text, count in entries], char_weights)

    def __len__(self) -> int:
        return len(self.conjunctions)

    def affected_rows(self, changed: Iterable[int]) -> np.ndarray:
        """Rows whose conjunction contains any of the `changed` character ids."""
        primes = np.array([prime_of(c) for c in changed], dtype=np.int64)
        if len(primes) == 0:
            return np.zeros(0, dtype=np.int64)
        hit = np.any(self.hashes[:, None] % primes[None, :] == 0, axis=1)
        return np.nonzero(hit)[0].astype(np.int64)

    def total_appearances(self) -> float:
        return float(self.appearances.sum())


#-----------------------------------------------------------------------------
# Loaders
#-----------------------------------------------------------------------------
def _read_tsv(filepath: str, names: List[str]) -> pd.DataFrame:
    if not os.path.exists(filepath):
        raise FileNotFoundError(f"Corpus file not found: {filepath}")
    try:
        df = pd.read_csv(filepath, sep='\t', header=None, names=names,
                         dtype={names[0]: str}, quoting=csv.QUOTE_NONE,
                         keep_default_na=False)
    except pd.errors.EmptyDataError:
        raise ValueError(f"Corpus file is empty: {filepath}")
    except pd.errors.ParserError as e:
        raise ValueError(f"Error parsing corpus file {filepath}: {e}")
    if df.empty:
        raise ValueError(f"Corpus file is empty: {filepath}")
    counts = pd.to_numeric(df[names[1]], errors='coerce')
    if counts.isna().any():
        bad_row = int(counts.isna().idxmax()) + 1
        raise ValueError(f"Invalid count on line {bad_row} of {filepath}")
    if (counts < 0).any():
        raise ValueError(f"Negative count in {filepath}")
    df[names[1]] = counts
    return df


def load_conjunctions(filepath: str, verbose: bool = False) -> List[Conjunction]:
    """
    Load n-gram counts into conjunctions.

    N-grams that are empty, longer than four characters, or that contain
    characters outside the catalog are skipped and reported.
    """
    df = _read_tsv(filepath, ['ngram', 'count'])
    known = set(characters.all_chars())

    conjunctions = []
    skipped_unknown = 0
    skipped_length = 0
    for ngram, count in zip(df['ngram'], df['count']):
        if not ngram or len(ngram) > MAX_CONJUNCTION_LENGTH:
            skipped_length += 1
            continue
        if any(c not in known for c in ngram):
            skipped_unknown += 1
            continue
        conjunctions.append(Conjunction.from_text(ngram, int(count)))

    if skipped_unknown or skipped_length:
        print(f"  Skipped {skipped_unknown} n-grams with unknown characters "
              f"and {skipped_length} with unsupported length")
    if verbose:
        print(f"  Loaded {len(conjunctions)} conjunctions from {filepath}")

    if not conjunctions:
        raise ValueError(f"No usable conjunctions in {filepath}")
    return conjunctions


def load_char_weights(filepath: str, verbose: bool = False) -> np.ndarray:
    """
    Load per-character counts as frequency weights.

    Weights are normalized so catalog characters average 1.0. Catalog
    characters missing from the file weigh 0; unknown characters are ignored.
    """
    df = _read_tsv(filepath, ['char', 'count'])
    counts = df.groupby('char')['count'].sum()

    chars = characters.all_chars()
    weights = np.array([float(counts.get(c, 0.0)) for c in chars], dtype=np.float64)
    mean = weights.mean()
    if mean <= 0:
        raise ValueError(f"No catalog characters with positive counts in {filepath}")

    if verbose:
        missing = sum(1 for c in chars if c not in counts.index)
        print(f"  Loaded frequencies for {len(chars) - missing}/{len(chars)} characters")
    return weights / mean


def load_corpus(conjunction_file: str, frequency_file: Optional[str] = None,
                verbose: bool = False) -> Corpus:
    """Load conjunctions and (optionally) character weights into a Corpus."""
    conjunctions = load_conjunctions(conjunction_file, verbose=verbose)
    weights = load_char_weights(frequency_file, verbose=verbose) if frequency_file else None
    return Corpus(conjunctions, weights)
