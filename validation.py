# validation.py
"""
Self-checks for the kana layout optimization system.

This module runs quick consistency checks against the live scoring table
and corpus:
- Generated keymaps place the catalog and pass the requirement checks
- Mutations keep keymaps valid
- A single bare press costs exactly its finger weight
- Batch and per-conjunction scoring agree
- Incremental evaluation matches full evaluation
"""

import math
import random
import time
from typing import Dict, List, Optional
from dataclasses import dataclass

from evaluation import CorpusEvaluator
from keymap import Keymap, RetryLimitExceeded, covers_catalog_exactly
from layout import N_SLOTS, KeyPress
from scoring import ScoringTable

REL_TOLERANCE = 1e-9

#-----------------------------------------------------------------------------
# Validation result classes
#-----------------------------------------------------------------------------
@dataclass
class ValidationResult:
    """Result of a single validation test."""
    test_name: str
    passed: bool
    message: str
    details: Optional[Dict] = None

    def __str__(self) -> str:
        status = "✅ PASS" if self.passed else "❌ FAIL"
        return f"{status}: {self.test_name} - {self.message}"


@dataclass
class ValidationSuite:
    """Results from a complete validation suite."""
    results: List[ValidationResult]

    @property
    def all_passed(self) -> bool:
        return all(result.passed for result in self.results)

    @property
    def passed_count(self) -> int:
        return sum(1 for result in self.results if result.passed)

    @property
    def failed_count(self) -> int:
        return sum(1 for result in self.results if not result.passed)

    def print_summary(self):
        """Print validation summary."""
        print(f"\nValidation Summary: {self.passed_count}/{len(self.results)} tests passed")

        for result in self.results:
            print(f"  {result}")
            if result.details and not result.passed:
                for key, value in result.details.items():
                    print(f"    {key}: {value}")

        if self.all_passed:
            print("\n🎉 All validation tests passed!")
        else:
            print(f"\n⚠️  {self.failed_count} test(s) failed - review results above")

#-----------------------------------------------------------------------------
# Helpers
#-----------------------------------------------------------------------------
def valid_keymap(rng: random.Random, max_attempts: int = 10000) -> Keymap:
    """Generate keymaps until one meets every requirement."""
    for _ in range(max_attempts):
        keymap = Keymap.generate(rng, max_attempts)
        if keymap.meet_requirements():
            return keymap
    raise RetryLimitExceeded(f"No valid keymap in {max_attempts} generations")


def _close(a: float, b: float) -> bool:
    return math.isclose(a, b, rel_tol=REL_TOLERANCE, abs_tol=1e-6)

#-----------------------------------------------------------------------------
# Core validation functions
#-----------------------------------------------------------------------------
def check_generated_keymaps(rng: random.Random, n_tests: int = 20) -> ValidationResult:
    """Generated keymaps place every character exactly once; report the valid rate."""
    try:
        uncovered = 0
        valid = 0
        for _ in range(n_tests):
            keymap = Keymap.generate(rng)
            if not covers_catalog_exactly(keymap.slots):
                uncovered += 1
            if keymap.meet_requirements():
                valid += 1

        passed = uncovered == 0
        message = f"{n_tests} keymaps generated, {valid} fully valid, {uncovered} with catalog errors"
        return ValidationResult("Keymap Generation", passed, message,
                                {"uncovered": uncovered, "valid": valid, "total_tests": n_tests})
    except Exception as e:
        return ValidationResult("Keymap Generation", False, f"Test failed with error: {e}")


def check_mutation_validity(rng: random.Random, n_tests: int = 20) -> ValidationResult:
    """Every mutation of a valid keymap is valid."""
    try:
        invalid = 0
        keymap = valid_keymap(rng)
        for _ in range(n_tests):
            keymap = keymap.mutate(rng)
            if not keymap.meet_requirements():
                invalid += 1

        passed = invalid == 0
        message = f"{n_tests} chained mutations, {invalid} invalid"
        return ValidationResult("Mutation Validity", passed, message,
                                {"invalid": invalid, "total_tests": n_tests})
    except Exception as e:
        return ValidationResult("Mutation Validity", False, f"Test failed with error: {e}")


def check_single_press_cost(table: ScoringTable) -> ValidationResult:
    """A single bare press costs exactly the finger weight of its key."""
    try:
        mismatches = {}
        for slot in range(N_SLOTS):
            expected = table.geometry.finger_weight(slot)
            actual = table.evaluate([KeyPress(slot)])
            if actual != expected:
                mismatches[slot] = (actual, expected)

        passed = not mismatches
        message = f"{N_SLOTS} keys checked, {len(mismatches)} mismatches"
        return ValidationResult("Single Press Cost", passed, message,
                                {"mismatches": mismatches} if mismatches else None)
    except Exception as e:
        return ValidationResult("Single Press Cost", False, f"Test failed with error: {e}")


def check_batch_consistency(evaluator: CorpusEvaluator, rng: random.Random,
                            n_tests: int = 20) -> ValidationResult:
    """Vectorized corpus scores equal per-conjunction scalar scores."""
    try:
        keymap = valid_keymap(rng)
        score = evaluator.evaluate(keymap)
        corpus = evaluator.corpus

        rows = list(range(len(corpus)))
        rng.shuffle(rows)
        mismatches = 0
        for row in rows[:n_tests]:
            conj = corpus.conjunctions[row]
            expected = evaluator.text_cost(keymap, conj.text()) * conj.appearances
            if not _close(float(score.contributions[row]), expected):
                mismatches += 1

        passed = mismatches == 0
        message = f"{min(n_tests, len(rows))} conjunctions checked, {mismatches} mismatches"
        return ValidationResult("Batch Consistency", passed, message, {"mismatches": mismatches})
    except Exception as e:
        return ValidationResult("Batch Consistency", False, f"Test failed with error: {e}")


def check_incremental_consistency(evaluator: CorpusEvaluator, rng: random.Random,
                                  n_tests: int = 20) -> ValidationResult:
    """Incremental re-scoring after mutation matches a full evaluation."""
    try:
        keymap = valid_keymap(rng)
        score = evaluator.evaluate(keymap)
        max_error = 0.0
        mismatches = 0

        for _ in range(n_tests):
            mutant = keymap.mutate(rng)
            changed = keymap.changed_characters(mutant)
            incremental = evaluator.evaluate_only_diff(score, mutant, changed)
            full = evaluator.evaluate(mutant)

            max_error = max(max_error, abs(incremental.total - full.total))
            if not _close(incremental.total, full.total):
                mismatches += 1
            keymap, score = mutant, incremental

        passed = mismatches == 0
        message = f"{n_tests} chained mutations, max error {max_error:.3g}"
        return ValidationResult("Incremental Consistency", passed, message,
                                {"mismatches": mismatches, "max_error": max_error})
    except Exception as e:
        return ValidationResult("Incremental Consistency", False, f"Test failed with error: {e}")


def check_empty_diff(evaluator: CorpusEvaluator, rng: random.Random) -> ValidationResult:
    """An empty changed set leaves the score untouched."""
    try:
        keymap = valid_keymap(rng)
        score = evaluator.evaluate(keymap)
        again = evaluator.evaluate_only_diff(score, keymap, frozenset())

        passed = again.total == score.total
        message = f"total {score.total:.3f} -> {again.total:.3f}"
        return ValidationResult("Empty Diff", passed, message)
    except Exception as e:
        return ValidationResult("Empty Diff", False, f"Test failed with error: {e}")


def check_performance(evaluator: CorpusEvaluator, rng: random.Random,
                      n_tests: int = 10, max_seconds: float = 5.0) -> ValidationResult:
    """Mean full-evaluation time stays under a bound."""
    try:
        keymap = valid_keymap(rng)
        start = time.time()
        for _ in range(n_tests):
            evaluator.evaluate(keymap)
        mean_time = (time.time() - start) / n_tests

        passed = mean_time < max_seconds
        message = (f"{mean_time * 1000:.1f} ms per evaluation over "
                   f"{len(evaluator.corpus):,} conjunctions")
        return ValidationResult("Evaluation Performance", passed, message,
                                {"mean_time": mean_time, "max_seconds": max_seconds})
    except Exception as e:
        return ValidationResult("Evaluation Performance", False, f"Test failed with error: {e}")


def run_validation_suite(evaluator: CorpusEvaluator, rng: random.Random,
                         n_tests: int = 20, quick: bool = False) -> ValidationSuite:
    """
    Run every check and print the summary.

    Args:
        evaluator: Evaluator bound to the corpus and scoring table in use
        rng: Random source for generated keymaps
        n_tests: Repetitions per randomized check
        quick: If True, run fewer repetitions

    Returns:
        ValidationSuite with one result per check
    """
    if quick:
        n_tests = max(1, n_tests // 4)

    results = [
        check_generated_keymaps(rng, n_tests),
        check_mutation_validity(rng, n_tests),
        check_single_press_cost(evaluator.table),
        check_batch_consistency(evaluator, rng, n_tests),
        check_incremental_consistency(evaluator, rng, n_tests),
        check_empty_diff(evaluator, rng),
        check_performance(evaluator, rng, max(1, n_tests // 2)),
    ]

    suite = ValidationSuite(results)
    suite.print_summary()
    return suite
