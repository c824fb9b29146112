# plots.py
"""
Plots of optimization runs: score convergence and per-key usage.
"""

from pathlib import Path
from typing import Sequence, Union

import numpy as np
import matplotlib.pyplot as plt
import seaborn as sns

from evaluation import CorpusEvaluator
from keymap import Keymap
from layout import N_COLS, N_ROWS, point_of


def plot_score_history(history: Sequence, output_path: Union[str, Path]) -> Path:
    """
    Plot best and mean score per generation.

    Args:
        history: List of GenerationResult
        output_path: PNG file to write

    Returns:
        Path of the saved plot
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    generations = [step.generation for step in history]
    best = [step.best_score for step in history]
    mean = [step.mean_score for step in history]

    plt.figure(figsize=(12, 6))
    sns.set_style("whitegrid")

    plt.plot(generations, mean, 'b-', alpha=0.4, label='Mean score')
    plt.plot(generations, best, 'r-', linewidth=2, label='Best score')
    if best:
        i = int(np.argmin(best))
        plt.annotate(f'{best[i]:.1f}', (generations[i], best[i]),
                     textcoords="offset points", xytext=(0, -15), ha='center')

    plt.title('Layout Score by Generation (lower is better)', fontsize=14, pad=20)
    plt.xlabel('Generation', fontsize=12)
    plt.ylabel('Score', fontsize=12)
    plt.legend()

    plt.tight_layout()
    plt.savefig(output_path, dpi=150, bbox_inches='tight')
    print(f"Saved score history plot to: {output_path.absolute()}")
    plt.close()
    return output_path


def slot_usage(evaluator: CorpusEvaluator, keymap: Keymap) -> np.ndarray:
    """
    Corpus-weighted press count of every grid point.

    Modifier keys count once for every chord they take part in. Excluded
    grid points are NaN.
    """
    presses = evaluator.press_table(keymap)
    corpus = evaluator.corpus

    per_slot = np.zeros(len(keymap), dtype=np.float64)
    for row in range(len(corpus)):
        ids = corpus.ids[row]
        ids = ids[ids >= 0]
        for slots in (presses.slots[ids], presses.shifters[ids]):
            np.add.at(per_slot, slots[slots >= 0], corpus.appearances[row])

    grid = np.full((N_ROWS, N_COLS), np.nan)
    for slot, count in enumerate(per_slot):
        r, c = point_of(slot)
        grid[r, c] = count
    return grid


def plot_slot_usage(evaluator: CorpusEvaluator, keymap: Keymap,
                    output_path: Union[str, Path]) -> Path:
    """Heatmap of slot_usage() over the keyboard grid."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    usage = slot_usage(evaluator, keymap)
    total = np.nansum(usage)
    percent = usage / total * 100 if total > 0 else usage

    plt.figure(figsize=(12, 4))
    sns.heatmap(percent, annot=True, fmt='.1f', cmap='YlOrRd', cbar_kws={'label': '% of presses'},
                linewidths=0.5, square=True, mask=np.isnan(percent))
    plt.title('Key Usage', fontsize=14, pad=20)
    plt.xticks([])
    plt.yticks([])

    plt.tight_layout()
    plt.savefig(output_path, dpi=150, bbox_inches='tight')
    print(f"Saved key usage plot to: {output_path.absolute()}")
    plt.close()
    return output_path
