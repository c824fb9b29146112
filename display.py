# display.py
"""
Display and output formatting for kana layout optimization.
"""

import os
from datetime import datetime
from typing import List, Optional, Sequence

import pandas as pd

import characters
from config import Config
from keymap import Keymap
from layout import N_COLS, N_ROWS, keystrokes, label_of, slot_grid

PLANES = ('unshift', 'shift', 'turbid', 'semiturbid')

# Kana are double-width; blanks use an ideographic space to keep cells aligned
BLANK = '　'
EXCLUDED = '  '

#-----------------------------------------------------------------------------
# Keyboard visualization
#-----------------------------------------------------------------------------
def _render_grid(cells: Sequence[Sequence[str]]) -> List[str]:
    """Box-drawing grid of 2-column cells with a double bar between hands."""
    def border(left: str, mid: str, split: str, right: str) -> str:
        parts = []
        for c in range(N_COLS):
            parts.append('────')
            if c < N_COLS - 1:
                parts.append(split if c == 4 else mid)
        return left + ''.join(parts) + right

    lines = [border('┌', '┬', '╥', '┐')]
    for r, row in enumerate(cells):
        line = '│'
        for c, cell in enumerate(row):
            line += f" {cell} " + ('║' if c == 4 else '│')
        lines.append(line)
        if r < len(cells) - 1:
            lines.append(border('├', '┼', '╫', '┤'))
    lines.append(border('└', '┴', '╨', '┘'))
    return lines


def render_plane(keymap: Keymap, plane: str) -> str:
    """Render one character plane (unshift, shift, turbid or semiturbid)."""
    if plane not in PLANES:
        raise ValueError(f"Unknown plane '{plane}'. Must be one of: {list(PLANES)}")

    grid = slot_grid()
    cells = []
    for r in range(N_ROWS):
        row = []
        for c in range(N_COLS):
            slot = grid.get((r, c))
            if slot is None:
                row.append(EXCLUDED)
            else:
                row.append(getattr(keymap[slot], plane) or BLANK)
        cells.append(row)
    return '\n'.join(_render_grid(cells))


def render_keymap(keymap: Keymap, title: Optional[str] = None) -> str:
    """Render all four planes of a keymap, one after the other."""
    blocks = []
    if title:
        blocks.append(f"Layout: {title}")
    for plane in PLANES:
        blocks.append(f"[{plane}]")
        blocks.append(render_plane(keymap, plane))
    return '\n'.join(blocks)


def print_keymap(keymap: Keymap, title: Optional[str] = None) -> None:
    print(render_keymap(keymap, title))


def keystroke_table(keymap: Keymap) -> pd.DataFrame:
    """One row per catalog character: how it is typed on this keymap."""
    rows = []
    for c in characters.all_chars():
        found = keymap.get(c)
        if found is None:
            rows.append({'char': c, 'kind': None, 'slot': None, 'keystrokes': None})
            continue
        kind, slot = found
        rows.append({
            'char': c,
            'kind': kind.value,
            'slot': slot,
            'keystrokes': keystrokes(keymap.press_of(c)),
        })
    return pd.DataFrame(rows)

#-----------------------------------------------------------------------------
# Results display
#-----------------------------------------------------------------------------
def print_optimization_header(config: Config) -> None:
    """Print header for optimization run."""
    print(f"\n" + "="*60)
    print("KANA LAYOUT GENETIC OPTIMIZATION")
    print("="*60)


def print_table_info(table, build_time: float) -> None:
    print(f"\nScoring table:")
    print(f"  Entries: {len(table.table):,}")
    print(f"  Memory: {table.nbytes / 1024 / 1024:.1f} MB")
    print(f"  Build time: {build_time:.2f}s")


def print_corpus_info(corpus) -> None:
    print(f"\nCorpus:")
    print(f"  Conjunctions: {len(corpus):,}")
    print(f"  Total appearances: {corpus.total_appearances():,.0f}")


def print_optimization_results(result, config: Config, verbose: bool = False) -> None:
    """
    Print the outcome of a run.

    Args:
        result: OptimizationResult from Optimizer.run
        config: Configuration object
        verbose: Whether to also list per-character keystrokes
    """
    best = result.best
    if best is None:
        print("\nNo generations were run.")
        return

    first = result.history[0]
    improvement = first.best_score - best.best_score

    print(f"\nOptimization Results:")
    print(f"  Generations: {len(result.history)}")
    print(f"  Best score: {best.best_score:.2f} (generation {best.generation})")
    print(f"  Initial best score: {first.best_score:.2f}")
    if first.best_score > 0:
        print(f"  Improvement: {improvement:.2f} ({100 * improvement / first.best_score:.1f}%)")
    print(f"  Rejected offspring: {sum(step.rejected for step in result.history):,}")
    print(f"  Elapsed time: {result.elapsed_time:.2f}s")

    if config.visualization.print_keyboard:
        print()
        print_keymap(best.best_keymap, f"best of generation {best.generation}")

    if verbose:
        print(f"\nKeystrokes:")
        print(keystroke_table(best.best_keymap).to_string(index=False))

#-----------------------------------------------------------------------------
# CSV output
#-----------------------------------------------------------------------------
def _output_path(config: Config, prefix: str) -> str:
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    config_name = os.path.basename(config._config_path).replace('.yaml', '')
    filename = f"{prefix}_{config_name}_{timestamp}.csv"
    os.makedirs(config.paths.results_folder, exist_ok=True)
    return os.path.join(config.paths.results_folder, filename)


def save_history_to_csv(history, config: Config) -> str:
    """
    Save per-generation results to CSV.

    Args:
        history: List of GenerationResult
        config: Configuration object

    Returns:
        Path to saved CSV file
    """
    output_path = _output_path(config, "ga_history")
    df = pd.DataFrame({
        'generation': [step.generation for step in history],
        'best_score': [step.best_score for step in history],
        'mean_score': [step.mean_score for step in history],
        'rejected': [step.rejected for step in history],
    })
    df.to_csv(output_path, index=False)
    return output_path


def save_keymap_to_csv(keymap: Keymap, config: Config,
                       score: Optional[float] = None) -> str:
    """
    Save a keymap slot by slot to CSV.

    Returns:
        Path to saved CSV file
    """
    output_path = _output_path(config, "ga_keymap")
    rows = []
    for slot, key in enumerate(keymap):
        row = {'slot': slot, 'key': label_of(slot)}
        for plane in PLANES:
            row[plane] = getattr(key, plane) or ''
        rows.append(row)

    df = pd.DataFrame(rows)
    if score is not None:
        df['score'] = score
    df.to_csv(output_path, index=False, encoding='utf-8')
    return output_path
