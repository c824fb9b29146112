# optimizer.py
"""
Generational genetic search over valid keymaps.

Each generation:
1. Scores every member in parallel (threads share the read-only corpus and
   scoring table) and waits for all of them.
2. Keeps the best `elitism` fraction as the selection pool and weights each
   pool member by 1 - (score / pool total).
3. Fills the next generation by drawing cross / mutate / clone operations,
   discarding invalid offspring.

Mutants and clones remember their parent's Score and the characters that
moved, so the next fitness pass only re-scores the affected conjunctions.
"""

import random
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional, Sequence, Tuple

import numpy as np
from tqdm import tqdm

from evaluation import CorpusEvaluator, Score, rank
from keymap import DEFAULT_MAX_ATTEMPTS, Keymap, RetryLimitExceeded

OPERATIONS = ('cross', 'mutate', 'clone')


@dataclass
class OptimizerSettings:
    population_size: int = 100
    cross_probability: float = 0.05
    mutation_probability: float = 0.01
    clone_probability: float = 0.94
    elitism: float = 0.3
    workers: int = 20
    max_attempts: int = DEFAULT_MAX_ATTEMPTS

    def __post_init__(self):
        if self.population_size < 1:
            raise ValueError(f"population_size must be positive, got {self.population_size}")
        if self.workers < 1:
            raise ValueError(f"workers must be positive, got {self.workers}")
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be positive, got {self.max_attempts}")
        if not 0 < self.elitism <= 1:
            raise ValueError(f"elitism must be in (0, 1], got {self.elitism}")

        probabilities = self.operation_probabilities()
        if any(p < 0 for p in probabilities):
            raise ValueError(f"Operation probabilities must be non-negative, got {probabilities}")
        if abs(sum(probabilities) - 1.0) > 1e-6:
            raise ValueError(f"Operation probabilities must sum to 1, got {sum(probabilities):.6f}")

    def operation_probabilities(self) -> Tuple[float, float, float]:
        return (self.cross_probability, self.mutation_probability, self.clone_probability)

    @classmethod
    def from_config(cls, config) -> "OptimizerSettings":
        opt = config.optimization
        return cls(
            population_size=opt.population_size,
            cross_probability=opt.cross_probability,
            mutation_probability=opt.mutation_probability,
            clone_probability=opt.clone_probability,
            elitism=opt.elitism,
            workers=opt.workers,
            max_attempts=opt.max_attempts,
        )


@dataclass(frozen=True)
class Lineage:
    """Parent score plus the character ids whose press changed since."""
    score: Score
    changed: FrozenSet[int]


@dataclass(frozen=True)
class Member:
    keymap: Keymap
    lineage: Optional[Lineage] = None


@dataclass
class GenerationResult:
    generation: int
    best_score: float
    mean_score: float
    best_keymap: Keymap
    rejected: int


@dataclass
class OptimizationResult:
    history: List[GenerationResult] = field(default_factory=list)
    best: Optional[GenerationResult] = None
    elapsed_time: float = 0.0


def draw_index(rng: random.Random, probabilities: Sequence[float]) -> int:
    """Draw an index from a discrete distribution with one rng.random() call."""
    r = rng.random()
    cumulative = 0.0
    for i, p in enumerate(probabilities):
        cumulative += p
        if r < cumulative:
            return i
    # Rounding left r above the last cumulative bound
    for i in range(len(probabilities) - 1, -1, -1):
        if probabilities[i] > 0:
            return i
    return len(probabilities) - 1


def selection_probabilities(totals: Sequence[float]) -> np.ndarray:
    """
    Inverted fitness-proportionate weights over a ranked pool.

    Each weight is 1 - total/sum(totals), normalized to sum to 1; falls back
    to uniform when the pool total is zero or only one member exists.
    """
    totals = np.asarray(totals, dtype=np.float64)
    n = len(totals)
    pool_total = totals.sum()
    if n == 0:
        return totals
    if pool_total <= 0:
        return np.full(n, 1.0 / n)

    weights = 1.0 - totals / pool_total
    weight_sum = weights.sum()
    if weight_sum <= 0:
        return np.full(n, 1.0 / n)
    return weights / weight_sum


class Optimizer:
    """Owns the population and drives it through generations."""

    def __init__(self, evaluator: CorpusEvaluator, settings: OptimizerSettings,
                 members: Sequence[Member], generation: int = 0):
        self.evaluator = evaluator
        self.settings = settings
        self.members: List[Member] = list(members)
        self.generation = generation

    @classmethod
    def new(cls, evaluator: CorpusEvaluator, settings: OptimizerSettings,
            rng: random.Random, show_progress: bool = False) -> "Optimizer":
        """Generate valid keymaps until the population is full."""
        members: List[Member] = []
        consecutive_invalid = 0

        with tqdm(total=settings.population_size, desc="Creating population",
                  unit=" keymaps", disable=not show_progress) as pbar:
            while len(members) < settings.population_size:
                keymap = Keymap.generate(rng, settings.max_attempts)
                if not keymap.meet_requirements():
                    consecutive_invalid += 1
                    if consecutive_invalid >= settings.max_attempts:
                        raise RetryLimitExceeded(
                            f"{consecutive_invalid} generated keymaps in a row were invalid")
                    continue
                consecutive_invalid = 0
                members.append(Member(keymap))
                pbar.update(1)

        return cls(evaluator, settings, members)

    #-------------------------------------------------------------------------
    # Fitness
    #-------------------------------------------------------------------------
    def _fitness(self, member: Member) -> Score:
        if member.lineage is None:
            return self.evaluator.evaluate(member.keymap)
        return self.evaluator.evaluate_only_diff(
            member.lineage.score, member.keymap, member.lineage.changed)

    def evaluate_population(self) -> List[Score]:
        """Score all members in parallel; returns scores in member order."""
        scores: List[Optional[Score]] = [None] * len(self.members)

        with ThreadPoolExecutor(max_workers=self.settings.workers) as executor:
            future_to_index = {
                executor.submit(self._fitness, member): i
                for i, member in enumerate(self.members)
            }
            for future in as_completed(future_to_index):
                scores[future_to_index[future]] = future.result()

        return scores

    def selection_pool(self, scores: Sequence[Score]) -> Tuple[Tuple[int, ...], np.ndarray]:
        """Top `elitism` fraction of members (best first) and their draw probabilities."""
        order = rank(scores)
        pool_size = max(1, int(len(order) * self.settings.elitism))
        pool = order[:pool_size]
        return pool, selection_probabilities([scores[i].total for i in pool])

    #-------------------------------------------------------------------------
    # Reproduction
    #-------------------------------------------------------------------------
    def _offspring(self, operation: str, rng: random.Random, scores: Sequence[Score],
                   pool: Sequence[int], probabilities: np.ndarray) -> Tuple[List[Member], int]:
        """Apply one operation; returns (valid offspring, rejected count)."""
        if operation == 'cross':
            first = self.members[pool[draw_index(rng, probabilities)]]
            second = self.members[pool[draw_index(rng, probabilities)]]
            children = first.keymap.cross(second.keymap, rng)
            valid = [Member(child) for child in children if child.meet_requirements()]
            return valid, len(children) - len(valid)

        index = pool[draw_index(rng, probabilities)]
        parent = self.members[index]

        if operation == 'mutate':
            try:
                mutant = parent.keymap.mutate(rng, self.settings.max_attempts)
            except RetryLimitExceeded:
                return [], 1
            changed = parent.keymap.changed_characters(mutant)
            return [Member(mutant, Lineage(scores[index], changed))], 0

        return [Member(parent.keymap, Lineage(scores[index], frozenset()))], 0

    def advance(self, rng: random.Random) -> GenerationResult:
        """Score the current population and replace it with the next generation."""
        scores = self.evaluate_population()
        pool, probabilities = self.selection_pool(scores)
        operation_probabilities = self.settings.operation_probabilities()

        size = self.settings.population_size
        next_members: List[Member] = []
        rejected = 0
        consecutive_rejected = 0

        while len(next_members) < size:
            operation = OPERATIONS[draw_index(rng, operation_probabilities)]
            offspring, n_rejected = self._offspring(operation, rng, scores, pool, probabilities)
            rejected += n_rejected

            if not offspring:
                consecutive_rejected += 1
                if consecutive_rejected >= self.settings.max_attempts:
                    raise RetryLimitExceeded(
                        f"{consecutive_rejected} offspring in a row were rejected")
                continue

            consecutive_rejected = 0
            next_members.extend(offspring[:size - len(next_members)])

        best = pool[0]
        result = GenerationResult(
            generation=self.generation,
            best_score=scores[best].total,
            mean_score=float(np.mean([s.total for s in scores])),
            best_keymap=self.members[best].keymap,
            rejected=rejected,
        )

        self.members = next_members
        self.generation += 1
        return result

    def run(self, generations: int, rng: random.Random, verbose: bool = False,
            show_progress: bool = True) -> OptimizationResult:
        """Advance `generations` times, keeping the per-generation history."""
        result = OptimizationResult()
        start_time = time.time()

        pbar = tqdm(range(generations), desc="Optimizing", unit=" gen",
                    disable=not show_progress)
        for _ in pbar:
            step = self.advance(rng)
            result.history.append(step)
            if result.best is None or step.best_score < result.best.best_score:
                result.best = step
            pbar.set_postfix(best=f"{result.best.best_score:.1f}")

            if verbose:
                print(f"  Generation {step.generation}: best {step.best_score:.2f}, "
                      f"mean {step.mean_score:.2f}, rejected {step.rejected}")

        pbar.close()
        result.elapsed_time = time.time() - start_time
        return result
