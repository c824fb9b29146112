# layout.py
"""
Physical geometry of the 26-key layout.

Keys are addressed by slot index (0-25) into a linearized 3x10 grid with four
positions removed. Slot order follows the QWERTY labels below. Six slots are
modifier keys: left/right shift, left/right turbid, left/right semiturbid.
"""

from enum import Enum
from typing import Dict, FrozenSet, List, NamedTuple, Optional, Tuple

N_ROWS = 3
N_COLS = 10

# Grid points never used by the layout
EXCLUDED_POINTS: Tuple[Tuple[int, int], ...] = ((0, 0), (0, 9), (2, 4), (2, 5))

QWERTY_LABELS = "wertyuioasdfghjkl;zxcvm,./"

LINEAR_LAYOUT: Tuple[Tuple[int, int], ...] = tuple(
    (r, c) for r in range(N_ROWS) for c in range(N_COLS)
    if (r, c) not in EXCLUDED_POINTS
)

N_SLOTS = len(LINEAR_LAYOUT)

# Modifier slots
L_SHIFT = 10        # d
R_SHIFT = 15        # k
L_TURBID = 11       # f
R_TURBID = 14       # j
L_SEMITURBID = 21   # v
R_SEMITURBID = 22   # m

SHIFT_SLOTS: Tuple[int, int] = (L_SHIFT, R_SHIFT)
SPECIAL_SLOTS: FrozenSet[int] = frozenset(
    (L_SHIFT, R_SHIFT, L_TURBID, R_TURBID, L_SEMITURBID, R_SEMITURBID))


class Hand(Enum):
    LEFT = 1
    RIGHT = 2


def point_of(slot: int) -> Tuple[int, int]:
    """Return the (row, col) grid point of a slot."""
    return LINEAR_LAYOUT[slot]


def grid_code(slot: int) -> int:
    """Return row*10+col for a slot; always fits in 5 bits."""
    r, c = LINEAR_LAYOUT[slot]
    return r * N_COLS + c


def hand_of(slot: int) -> Hand:
    _, c = LINEAR_LAYOUT[slot]
    return Hand.LEFT if c <= 4 else Hand.RIGHT


def label_of(slot: int) -> str:
    return QWERTY_LABELS[slot]


def slot_of_label(label: str) -> int:
    return QWERTY_LABELS.index(label)


def regular_slots() -> List[int]:
    """Slots that are not modifier keys."""
    return [s for s in range(N_SLOTS) if s not in SPECIAL_SLOTS]


def slot_grid() -> Dict[Tuple[int, int], int]:
    return {p: s for s, p in enumerate(LINEAR_LAYOUT)}


#-----------------------------------------------------------------------------
# Key presses
#-----------------------------------------------------------------------------
class KeyPress(NamedTuple):
    """One typing action: a key, plus a modifier key held at the same time."""
    slot: int
    shifter: Optional[int] = None

    @property
    def is_chord(self) -> bool:
        return self.shifter is not None


# Modifier slots by kind name, as (left-hand slot, right-hand slot)
MODIFIER_SLOTS: Dict[str, Tuple[int, int]] = {
    'shift': (L_SHIFT, R_SHIFT),
    'turbid': (L_TURBID, R_TURBID),
    'semiturbid': (L_SEMITURBID, R_SEMITURBID),
}


def modifier_for(kind: str, slot: int) -> int:
    """Return the modifier slot of `kind` pressed by the hand opposite `slot`."""
    left, right = MODIFIER_SLOTS[kind]
    return left if hand_of(slot) is Hand.RIGHT else right


def keystrokes(press: KeyPress) -> str:
    """QWERTY keystrokes of a press, modifier first."""
    if press.shifter is None:
        return label_of(press.slot)
    return label_of(press.shifter) + label_of(press.slot)
