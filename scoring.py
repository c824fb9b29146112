# scoring.py
"""
Precomputed ergonomic cost table for key sequences.

Every ordered tuple of up to four key positions is scored once, when the
table is built, against a fixed rule set:

Two-key rules (each consecutive pair):
- the same key twice
- the same finger skipping a row (top <-> bottom in one column)
- the same hand and finger
- the same hand skipping a row
- explicit overrides for notable transitions (e.g. index stretch to pinky)

Three-key rules (each consecutive triple):
- the same finger skipping rows twice in a row (heaviest)
- the same hand and finger three times
- the same hand three times

Positions are packed as 5-bit grid codes (row*10+col, 31 = absent) into a
20-bit index, so a sequence lookup is a single array access. Finger load is
not part of the table; it is added per press at evaluation time, weighted by
the typed character's frequency weight. Chorded presses (a modifier held with
the key) look up their modifier sequence separately and cost 1.3x.
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np
from numba import jit

from layout import N_COLS, N_ROWS, N_SLOTS, KeyPress, grid_code, point_of

ABSENT = -1         # slot index meaning "no key"
ABSENT_CODE = 31    # 5-bit code meaning "no key"
CODE_BITS = 5
MAX_SEQUENCE = 4
TABLE_SIZE = 1 << (CODE_BITS * MAX_SEQUENCE)

#-----------------------------------------------------------------------------
# Geometry constants
#-----------------------------------------------------------------------------
FINGER_WEIGHTS = (
    # (0,0) and (0,9) are not part of the layout
    (0,  30, 20, 50, 60, 60, 50, 20, 30,  0),
    (30, 20, 10, 10, 30, 30, 10, 10, 20, 30),
    (50, 30, 30, 20, 60, 60, 20, 30, 30, 50),
)

# Index-finger stretches to the top centre keys (T and Y)
REACH_KEY_POINTS = ((0, 4), (0, 5))

# Weight that keeps frequent kana off the reach keys altogether
PROHIBITIVE_REACH_WEIGHT = 1000

# 1 = left hand, 2 = right hand
HAND_ASSIGNMENT = (
    (1, 1, 1, 1, 1, 2, 2, 2, 2, 2),
    (1, 1, 1, 1, 1, 2, 2, 2, 2, 2),
    (1, 1, 1, 1, 1, 2, 2, 2, 2, 2),
)

# 1 = index, 2 = middle, 3 = ring, 4 = pinky
FINGER_ASSIGNMENT = (
    (4, 3, 2, 1, 1, 1, 1, 2, 3, 4),
    (4, 3, 2, 1, 1, 1, 1, 2, 3, 4),
    (4, 3, 2, 1, 1, 1, 1, 2, 3, 4),
)

# Ordered (from, to, penalty) transitions
TWO_KEY_OVERRIDES = (
    # Right hand: index stretch <-> pinky
    ((2, 5), (2, 9), 150),
    ((1, 5), (2, 9), 150),
    ((2, 9), (2, 5), 150),
    ((2, 9), (1, 5), 150),
    ((2, 5), (1, 9), 150),
    ((1, 5), (1, 9), 90),
    ((1, 9), (2, 5), 150),
    ((1, 9), (1, 5), 90),
    # Middle home -> index top
    ((1, 7), (0, 6), 90),
    # Ring top -> pinky bottom
    ((0, 8), (2, 9), 140),
    # Left hand mirror
    ((2, 4), (2, 0), 150),
    ((1, 4), (2, 0), 150),
    ((2, 0), (2, 4), 150),
    ((2, 0), (1, 4), 150),
    ((2, 4), (1, 0), 150),
    ((1, 4), (1, 0), 90),
    ((1, 0), (2, 4), 150),
    ((1, 0), (1, 4), 90),
    ((1, 2), (0, 3), 90),
    ((0, 1), (2, 0), 140),
)


@dataclass(frozen=True)
class Geometry:
    """Static ergonomic data injected into a ScoringTable."""
    finger_weights: Tuple[Tuple[int, ...], ...] = FINGER_WEIGHTS
    hand_assignment: Tuple[Tuple[int, ...], ...] = HAND_ASSIGNMENT
    finger_assignment: Tuple[Tuple[int, ...], ...] = FINGER_ASSIGNMENT
    two_key_overrides: Tuple[Tuple[Tuple[int, int], Tuple[int, int], int], ...] = TWO_KEY_OVERRIDES

    same_key_penalty: int = 150
    same_finger_row_skip_penalty: int = 100
    same_finger_penalty: int = 50
    row_skip_penalty: int = 100
    triple_row_skip_penalty: int = 300
    triple_same_finger_penalty: int = 250
    triple_same_hand_penalty: int = 100

    # Cost factor of a chorded press relative to a bare press
    shift_multiplier: float = 1.3

    # Overrides finger_weights at REACH_KEY_POINTS when set
    reach_key_weight: Optional[int] = None

    def finger_weight(self, slot: int) -> int:
        r, c = point_of(slot)
        if self.reach_key_weight is not None and (r, c) in REACH_KEY_POINTS:
            return self.reach_key_weight
        return self.finger_weights[r][c]

    def penalties(self) -> np.ndarray:
        return np.array([
            self.same_key_penalty,
            self.same_finger_row_skip_penalty,
            self.same_finger_penalty,
            self.row_skip_penalty,
            self.triple_row_skip_penalty,
            self.triple_same_finger_penalty,
            self.triple_same_hand_penalty,
        ], dtype=np.int64)

    def code_arrays(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """Row, column, hand, finger and override lookups indexed by grid code."""
        size = 1 << CODE_BITS
        rows = np.zeros(size, dtype=np.int64)
        cols = np.zeros(size, dtype=np.int64)
        hands = np.zeros(size, dtype=np.int64)
        fingers = np.zeros(size, dtype=np.int64)
        for r in range(N_ROWS):
            for c in range(N_COLS):
                code = r * N_COLS + c
                rows[code] = r
                cols[code] = c
                hands[code] = self.hand_assignment[r][c]
                fingers[code] = self.finger_assignment[r][c]

        overrides = np.zeros((size, size), dtype=np.int64)
        for (r1, c1), (r2, c2), penalty in self.two_key_overrides:
            overrides[r1 * N_COLS + c1, r2 * N_COLS + c2] = penalty

        return rows, cols, hands, fingers, overrides


DEFAULT_GEOMETRY = Geometry()

#-----------------------------------------------------------------------------
# JIT-compiled table construction
#-----------------------------------------------------------------------------
@jit(nopython=True)
def _pair_cost(a, b, rows, cols, hands, fingers, overrides, penalties):
    cost = 0
    same_hand = hands[a] == hands[b]
    row_gap = abs(rows[a] - rows[b])

    if a == b:
        cost += penalties[0]
    if cols[a] == cols[b] and row_gap == 2:
        cost += penalties[1]
    if same_hand and fingers[a] == fingers[b]:
        cost += penalties[2]
    if same_hand and row_gap == 2:
        cost += penalties[3]

    return cost + overrides[a, b]


@jit(nopython=True)
def _triple_cost(a, b, c, rows, cols, hands, fingers, penalties):
    cost = 0

    skip_ab = cols[a] == cols[b] and abs(rows[a] - rows[b]) == 2
    skip_bc = cols[b] == cols[c] and abs(rows[b] - rows[c]) == 2
    if skip_ab and skip_bc:
        cost += penalties[4]

    finger_ab = hands[a] == hands[b] and fingers[a] == fingers[b]
    finger_bc = hands[b] == hands[c] and fingers[b] == fingers[c]
    if finger_ab and finger_bc:
        cost += penalties[5]

    if hands[a] == hands[b] and hands[b] == hands[c]:
        cost += penalties[6]

    return cost


@jit(nopython=True)
def _build_table(codes, rows, cols, hands, fingers, overrides, penalties, absent):
    """Score every 4-tuple of layout codes (absent allowed in any place)."""
    n = len(codes) + 1
    candidates = np.empty(n, dtype=np.int64)
    for i in range(n - 1):
        candidates[i] = codes[i]
    candidates[n - 1] = absent

    table = np.zeros(1 << 20, dtype=np.uint32)
    seq = np.empty(4, dtype=np.int64)

    for i in range(n):
        seq[0] = candidates[i]
        for j in range(n):
            seq[1] = candidates[j]
            for k in range(n):
                seq[2] = candidates[k]
                for l in range(n):
                    seq[3] = candidates[l]

                    cost = 0
                    for p in range(3):
                        a = seq[p]
                        b = seq[p + 1]
                        if a != absent and b != absent:
                            cost += _pair_cost(a, b, rows, cols, hands, fingers,
                                               overrides, penalties)
                    for p in range(2):
                        a = seq[p]
                        b = seq[p + 1]
                        c = seq[p + 2]
                        if a != absent and b != absent and c != absent:
                            cost += _triple_cost(a, b, c, rows, cols, hands, fingers,
                                                 penalties)

                    index = (seq[0] << 15) | (seq[1] << 10) | (seq[2] << 5) | seq[3]
                    table[index] = cost

    return table

#-----------------------------------------------------------------------------
# Scoring table
#-----------------------------------------------------------------------------
class ScoringTable:
    """
    Immutable lookup table of transition costs for up to four key presses.

    Slots are layout slot indices (0-25); ABSENT (-1) marks a missing key.
    Safe to share between threads once built.
    """

    def __init__(self, geometry: Geometry = DEFAULT_GEOMETRY):
        self.geometry = geometry
        self.shift_multiplier = float(geometry.shift_multiplier)

        # Trailing entry makes index -1 resolve to "absent"
        self._slot_codes = np.array(
            [grid_code(s) for s in range(N_SLOTS)] + [ABSENT_CODE], dtype=np.int64)
        self.slot_weights = np.array(
            [geometry.finger_weight(s) for s in range(N_SLOTS)] + [0], dtype=np.float64)

        rows, cols, hands, fingers, overrides = geometry.code_arrays()
        self.table = _build_table(self._slot_codes[:N_SLOTS], rows, cols, hands, fingers,
                                  overrides, geometry.penalties(), ABSENT_CODE)
        self.table.flags.writeable = False
        self._slot_codes.flags.writeable = False
        self.slot_weights.flags.writeable = False

    @property
    def nbytes(self) -> int:
        return self.table.nbytes

    #-------------------------------------------------------------------------
    # Packing and lookup
    #-------------------------------------------------------------------------
    def pack(self, slots: Sequence[Optional[int]]) -> int:
        """Pack up to four slots into the 20-bit table index."""
        if len(slots) > MAX_SEQUENCE:
            raise ValueError(f"At most {MAX_SEQUENCE} keys can be packed, got {len(slots)}")
        index = 0
        for i in range(MAX_SEQUENCE):
            slot = slots[i] if i < len(slots) else None
            code = ABSENT_CODE if slot is None or slot == ABSENT else int(self._slot_codes[slot])
            index = (index << CODE_BITS) | code
        return index

    def lookup(self, slots: Sequence[Optional[int]]) -> int:
        return int(self.table[self.pack(slots)])

    def pack_batch(self, slots: np.ndarray) -> np.ndarray:
        """Vectorized pack of an (n, 4) slot array, ABSENT allowed."""
        codes = self._slot_codes[slots]
        return (codes[:, 0] << 15) | (codes[:, 1] << 10) | (codes[:, 2] << 5) | codes[:, 3]

    #-------------------------------------------------------------------------
    # Evaluation
    #-------------------------------------------------------------------------
    def press_load(self, press: KeyPress, weight: float = 1.0) -> float:
        """Finger load of one press, scaled by the character's weight."""
        if press.shifter is None:
            return float(self.slot_weights[press.slot]) * weight
        load = float(self.slot_weights[press.slot]) + float(self.slot_weights[press.shifter])
        return load * weight * self.shift_multiplier

    def evaluate(self, presses: Sequence[KeyPress],
                 weights: Optional[Sequence[float]] = None) -> float:
        """
        Cost of typing up to four presses in order.

        Args:
            presses: KeyPress sequence (at most four)
            weights: Per-press character frequency weights (default 1.0)

        Returns:
            Transition cost of the keys, plus 1.3x the transition cost of the
            modifiers held with them, plus the weighted finger load
        """
        if len(presses) > MAX_SEQUENCE:
            raise ValueError(f"At most {MAX_SEQUENCE} presses can be evaluated, got {len(presses)}")
        if weights is None:
            weights = [1.0] * len(presses)

        base = self.lookup([p.slot for p in presses])
        shifted = self.lookup([p.shifter for p in presses])

        load = 0.0
        for press, weight in zip(presses, weights):
            load += self.press_load(press, weight)

        return float(base) + self.shift_multiplier * float(shifted) + load

    def evaluate_batch(self, slots: np.ndarray, shifters: np.ndarray,
                       loads: np.ndarray) -> np.ndarray:
        """
        Vectorized evaluate() over many sequences.

        Args:
            slots: (n, 4) key slots, ABSENT padded
            shifters: (n, 4) modifier slots, ABSENT where no modifier is held
            loads: (n,) summed finger load of each sequence

        Returns:
            (n,) float64 costs
        """
        base = self.table[self.pack_batch(slots)].astype(np.float64)
        shifted = self.table[self.pack_batch(shifters)].astype(np.float64)
        return base + self.shift_multiplier * shifted + loads
