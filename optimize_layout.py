# optimize_layout.py
"""
Kana layout optimization software

Searches, with a genetic algorithm, for an ergonomic assignment of kana
(with turbid and semiturbid variants) onto a 26-key chorded layout with
shift, turbid and semiturbid modifier keys. Layouts are scored against a
frequency-weighted corpus of 1-4 character sequences; lower is better.

Usage:
    # Optimize with the settings in config.yaml
    python optimize_layout.py --config config.yaml

    # Short run with overrides
    python optimize_layout.py --generations 50 --population 40 --seed 1

    # Check scoring and operators before optimizing, plot the result
    python optimize_layout.py --validate --plot --verbose

"""

import argparse
import os
import random
import time
from pathlib import Path

import psutil

from config import Config, load_config, validate_config, validate_files_exist, print_config_summary
from corpus import load_corpus
from evaluation import CorpusEvaluator
from optimizer import Optimizer, OptimizerSettings
from scoring import Geometry, ScoringTable
from display import (print_optimization_header, print_table_info, print_corpus_info,
                     print_optimization_results, save_history_to_csv, save_keymap_to_csv)
from plots import plot_score_history, plot_slot_usage
from validation import run_validation_suite

#-----------------------------------------------------------------------------
# Optimization functions
#-----------------------------------------------------------------------------
def print_memory_usage(label: str) -> None:
    process = psutil.Process(os.getpid())
    memory_mb = process.memory_info().rss / (1024 ** 2)
    print(f"  Memory ({label}): {memory_mb:.1f} MB")


def build_evaluator(config: Config, verbose: bool = False) -> CorpusEvaluator:
    """Load the corpus and build the scoring table."""
    print("\nLoading corpus...")
    validate_files_exist(config)
    corpus = load_corpus(config.paths.conjunction_file, config.paths.frequency_file, verbose)
    print_corpus_info(corpus)

    print("\nBuilding scoring table...")
    start_time = time.time()
    table = ScoringTable(Geometry(reach_key_weight=config.optimization.reach_key_weight))
    print_table_info(table, time.time() - start_time)
    print_memory_usage("after table build")

    return CorpusEvaluator(corpus, table)


def run_optimization(config: Config, evaluator: CorpusEvaluator, rng: random.Random,
                     plot: bool = False, verbose: bool = False) -> None:
    """
    Run the genetic search and save its results.

    Args:
        config: Configuration object
        evaluator: Corpus evaluator shared by all fitness workers
        rng: Single random source for the whole run
        plot: Whether to save convergence and key usage plots
        verbose: Whether to print every generation
    """
    settings = OptimizerSettings.from_config(config)

    print(f"\nCreating population of {settings.population_size} keymaps...")
    optimizer = Optimizer.new(evaluator, settings, rng, show_progress=True)

    print(f"\nRunning {config.optimization.generations} generations "
          f"with {settings.workers} workers...")
    result = optimizer.run(config.optimization.generations, rng, verbose=verbose)
    print_memory_usage("after optimization")

    print_optimization_results(result, config, verbose)

    history_path = save_history_to_csv(result.history, config)
    print(f"\nHistory saved to: {history_path}")
    if result.best is not None:
        keymap_path = save_keymap_to_csv(result.best.best_keymap, config, result.best.best_score)
        print(f"Best keymap saved to: {keymap_path}")

    if plot and result.history:
        plot_dir = Path(config.paths.results_folder)
        plot_score_history(result.history, plot_dir / 'score_history.png')
        plot_slot_usage(evaluator, result.best.best_keymap, plot_dir / 'key_usage.png')

#-----------------------------------------------------------------------------
# Command-line interface
#-----------------------------------------------------------------------------
def parse_arguments():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Optimize a chorded kana keyboard layout with a genetic algorithm.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Optimize with configuration defaults
  python optimize_layout.py --config config.yaml

  # Override run size and seed
  python optimize_layout.py --generations 200 --population 50 --seed 7

  # With validation, plots and per-generation output
  python optimize_layout.py --validate --plot --verbose
        """
    )

    # Basic options
    parser.add_argument('--config', type=str, default='config.yaml',
                        help='Path to configuration file (default: config.yaml)')
    parser.add_argument('--verbose', action='store_true',
                        help='Print every generation and the keystroke table')

    # Overrides
    parser.add_argument('--generations', type=int, default=None,
                        help='Number of generations (overrides config)')
    parser.add_argument('--population', type=int, default=None,
                        help='Population size (overrides config)')
    parser.add_argument('--seed', type=int, default=None,
                        help='Random seed (overrides config)')
    parser.add_argument('--workers', type=int, default=None,
                        help='Number of fitness worker threads (overrides config)')

    # Output and validation
    parser.add_argument('--plot', action='store_true',
                        help='Save score history and key usage plots')
    parser.add_argument('--validate', action='store_true',
                        help='Run validation suite before optimization')

    return parser.parse_args()


def apply_overrides(config: Config, args) -> Config:
    """Apply command-line overrides and re-validate."""
    opt = config.optimization
    if args.generations is not None:
        opt.generations = args.generations
    if args.population is not None:
        opt.population_size = args.population
    if args.seed is not None:
        opt.seed = args.seed
    if args.workers is not None:
        opt.workers = args.workers
    if args.verbose:
        config.visualization.verbose_output = True
    validate_config(config)
    return config


def main():
    """Main entry point."""
    args = parse_arguments()

    config = apply_overrides(load_config(args.config), args)
    verbose = config.visualization.verbose_output

    print_optimization_header(config)
    print_config_summary(config)

    rng = random.Random(config.optimization.seed)
    evaluator = build_evaluator(config, verbose)

    if args.validate:
        print(f"\n🧪 Running validation suite...")
        suite = run_validation_suite(evaluator, rng)
        if not suite.all_passed:
            print("❌ Validation failed. Please fix issues before running optimization.")
            return
        print("✅ Validation passed!\n")

    run_optimization(config, evaluator, rng, plot=args.plot, verbose=verbose)


if __name__ == "__main__":
    main()
