# keymap.py
"""
Constrained kana keymap and its genetic operators.

A Keymap is an immutable sequence of 26 KeyAssignment slots laid out on the
linearized grid defined in layout.py. Every operator (generate, mutate,
cross) builds a new Keymap; callers validate it with meet_requirements()
and discard failures instead of repairing them.

Requirements checked by meet_requirements():
1. Left and right shift keys carry the same shift character
2. That shift character is clear-tone
3. At most one of the two turbid keys defines a turbid form
4. At most one of the two semiturbid keys defines a semiturbid form
5. Left turbid / right semiturbid (and right turbid / left semiturbid)
   do not both define the derivation their simultaneous press would produce
6. All producible characters cover the catalog exactly once
"""

import random
from collections import Counter
from typing import Callable, Dict, FrozenSet, List, Optional, Sequence, Tuple

import characters
from characters import CharacterDefinition
from key_assignment import KeyAssignment, KeyKind, UNASSIGNED
from layout import (N_SLOTS, L_SHIFT, R_SHIFT, L_TURBID, R_TURBID,
                    L_SEMITURBID, R_SEMITURBID, SHIFT_SLOTS,
                    KeyPress, modifier_for, regular_slots)

DEFAULT_MAX_ATTEMPTS = 10000

#-----------------------------------------------------------------------------
# Errors
#-----------------------------------------------------------------------------
class LayoutError(Exception):
    """Base class for keymap construction failures."""


class CatalogExhaustedError(LayoutError):
    """The catalog holds more characters than the layout can place."""


class UnplaceableCharacterError(LayoutError):
    """A character found neither an open nor a mergeable key."""


class RetryLimitExceeded(LayoutError):
    """A randomized operator gave up after its attempt cap."""

#-----------------------------------------------------------------------------
# Requirements
#-----------------------------------------------------------------------------
def shift_keys_share_shift_char(slots: Sequence[KeyAssignment]) -> bool:
    left, right = slots[L_SHIFT], slots[R_SHIFT]
    return left.shift is not None and left.shift == right.shift


def shift_char_is_cleartone(slots: Sequence[KeyAssignment]) -> bool:
    return all(slots[s].shift_def is not None and slots[s].shift_def.is_cleartone()
               for s in SHIFT_SLOTS)


def at_most_one_turbid(slots: Sequence[KeyAssignment]) -> bool:
    return not (slots[L_TURBID].turbid is not None and slots[R_TURBID].turbid is not None)


def at_most_one_semiturbid(slots: Sequence[KeyAssignment]) -> bool:
    return not (slots[L_SEMITURBID].semiturbid is not None
                and slots[R_SEMITURBID].semiturbid is not None)


def explicit_left_turbid_right_semiturbid(slots: Sequence[KeyAssignment]) -> bool:
    # Pressing both keys together must resolve to a single derivation
    return not (slots[R_SEMITURBID].turbid is not None
                and slots[L_TURBID].semiturbid is not None)


def explicit_right_turbid_left_semiturbid(slots: Sequence[KeyAssignment]) -> bool:
    return not (slots[L_SEMITURBID].turbid is not None
                and slots[R_TURBID].semiturbid is not None)


def covers_catalog_exactly(slots: Sequence[KeyAssignment]) -> bool:
    counts = Counter(c for key in slots for c in key.chars())

    # The shared shift character lives on both shift keys
    shared = slots[L_SHIFT].shift
    if shared is not None and shared == slots[R_SHIFT].shift:
        counts[shared] -= 1

    expected = characters.all_chars()
    if len(counts) != len(expected) or set(counts) != set(expected):
        return False
    return all(n == 1 for n in counts.values())


REQUIREMENTS: Tuple[Tuple[str, Callable[[Sequence[KeyAssignment]], bool]], ...] = (
    ("shift keys share shift character", shift_keys_share_shift_char),
    ("shift character is clear-tone", shift_char_is_cleartone),
    ("at most one turbid key defines turbid", at_most_one_turbid),
    ("at most one semiturbid key defines semiturbid", at_most_one_semiturbid),
    ("left turbid / right semiturbid explicit", explicit_left_turbid_right_semiturbid),
    ("right turbid / left semiturbid explicit", explicit_right_turbid_left_semiturbid),
    ("catalog covered exactly", covers_catalog_exactly),
)

#-----------------------------------------------------------------------------
# Generation helpers
#-----------------------------------------------------------------------------
def _pick(remaining: List[CharacterDefinition], rng: random.Random,
          pred: Callable[[CharacterDefinition], bool]) -> CharacterDefinition:
    """Remove and return a random definition matching `pred`."""
    candidates = [i for i, d in enumerate(remaining) if pred(d)]
    if not candidates:
        raise UnplaceableCharacterError("No remaining definition satisfies the placement rule")
    return remaining.pop(rng.choice(candidates))


def _try_place(key: KeyAssignment, definition: CharacterDefinition,
               rng: random.Random) -> Optional[KeyAssignment]:
    if key.is_empty:
        if rng.random() < 0.5:
            return KeyAssignment.shift_from(definition)
        return KeyAssignment.unshift_from(definition)
    return key.merge(definition)


def _place(slots: List[KeyAssignment], definition: CharacterDefinition,
           rng: random.Random, max_attempts: int) -> None:
    for _ in range(max_attempts):
        slot = rng.randrange(len(slots))
        placed = _try_place(slots[slot], definition, rng)
        if placed is not None:
            slots[slot] = placed
            return

    # Random draws exhausted: look at every key once before giving up
    order = list(range(len(slots)))
    rng.shuffle(order)
    for slot in order:
        placed = _try_place(slots[slot], definition, rng)
        if placed is not None:
            slots[slot] = placed
            return

    raise UnplaceableCharacterError(f"No key can take '{definition.unshift}'")


def _build_slots(rng: random.Random, max_attempts: int) -> List[KeyAssignment]:
    slots = [UNASSIGNED] * N_SLOTS
    remaining = characters.definitions()

    # 1. Shared shift character, paired with a distinct unshift on each shift key
    shift_def = _pick(remaining, rng, lambda d: d.is_cleartone())
    for slot in SHIFT_SLOTS:
        unshift_def = _pick(remaining, rng, lambda d: not d.conflicts(shift_def))
        slots[slot] = KeyAssignment(unshift_def, shift_def)

    # 2. Dual-diacritic characters first, outside the modifier keys
    regular = regular_slots()
    for target in characters.dual_diacritic_definitions():
        definition = _pick(remaining, rng, lambda d: d == target)
        free = [s for s in regular if slots[s].is_empty]
        if not free:
            raise UnplaceableCharacterError(f"No free key for '{definition.unshift}'")
        slot = rng.choice(free)
        slots[slot] = _try_place(UNASSIGNED, definition, rng)

    # 3. Everything else, merging into half-filled keys where possible
    while remaining:
        definition = _pick(remaining, rng, lambda d: True)
        _place(slots, definition, rng, max_attempts)

    return slots

#-----------------------------------------------------------------------------
# Keymap
#-----------------------------------------------------------------------------
class Keymap:
    """Immutable assignment of catalog characters to the 26 layout keys."""

    OPERATORS = ('swap_unshift', 'swap_shift', 'flip',
                 'swap_shift_of_shift', 'swap_shift_and_unshift')

    def __init__(self, slots: Sequence[KeyAssignment]):
        self._slots: Tuple[KeyAssignment, ...] = tuple(slots)
        self._index: Dict[str, Tuple[KeyKind, int]] = {}
        for slot, key in enumerate(self._slots):
            for c in key.chars():
                if c not in self._index:
                    self._index[c] = (key.kind_of(c), slot)

    @classmethod
    def empty(cls, n_slots: int = N_SLOTS) -> "Keymap":
        return cls([UNASSIGNED] * n_slots)

    @property
    def slots(self) -> Tuple[KeyAssignment, ...]:
        return self._slots

    def __len__(self) -> int:
        return len(self._slots)

    def __getitem__(self, slot: int) -> KeyAssignment:
        return self._slots[slot]

    def __iter__(self):
        return iter(self._slots)

    def __eq__(self, other) -> bool:
        return isinstance(other, Keymap) and self._slots == other._slots

    def __hash__(self) -> int:
        return hash(self._slots)

    def __repr__(self) -> str:
        return "Keymap(" + " ".join(str(k) for k in self._slots) + ")"

    def replace(self, updates: Dict[int, KeyAssignment]) -> "Keymap":
        """Return a copy with the given slots replaced."""
        slots = list(self._slots)
        for slot, key in updates.items():
            slots[slot] = key
        return Keymap(slots)

    #-------------------------------------------------------------------------
    # Queries
    #-------------------------------------------------------------------------
    def get(self, char: str) -> Optional[Tuple[KeyKind, int]]:
        """Return (kind, slot) of the first key producing `char`, or None."""
        return self._index.get(char)

    def chars(self) -> List[str]:
        return [c for key in self._slots for c in key.chars()]

    def press_of(self, char: str) -> Optional[KeyPress]:
        """Return the key press that types `char` on this keymap."""
        found = self.get(char)
        if found is None:
            return None
        kind, slot = found
        if kind is KeyKind.NORMAL:
            return KeyPress(slot)
        return KeyPress(slot, modifier_for(kind.value, slot))

    def changed_characters(self, other: "Keymap") -> FrozenSet[int]:
        """Ids of characters whose kind or key differs between two keymaps."""
        return frozenset(
            i for i, c in enumerate(characters.all_chars())
            if self.get(c) != other.get(c)
        )

    #-------------------------------------------------------------------------
    # Validation
    #-------------------------------------------------------------------------
    def unmet_requirements(self) -> List[str]:
        if len(self._slots) != N_SLOTS:
            return [f"layout must have {N_SLOTS} keys"]
        return [name for name, check in REQUIREMENTS if not check(self._slots)]

    def meet_requirements(self) -> bool:
        if len(self._slots) != N_SLOTS:
            return False
        return all(check(self._slots) for _, check in REQUIREMENTS)

    #-------------------------------------------------------------------------
    # Generation
    #-------------------------------------------------------------------------
    @classmethod
    def generate(cls, rng: random.Random,
                 max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> "Keymap":
        """
        Build a random keymap.

        The result places every catalog character but is not guaranteed to
        meet the modifier-key requirements; check meet_requirements().

        Raises:
            CatalogExhaustedError: If the catalog cannot fit the layout at all
            RetryLimitExceeded: If construction kept dead-ending
        """
        # The shared shift character uses two sides for one definition
        capacity = 2 * N_SLOTS - 1
        n_definitions = len(characters.definitions())
        if n_definitions > capacity:
            raise CatalogExhaustedError(
                f"{n_definitions} definitions exceed the {capacity} placeable key sides")

        for _ in range(max_attempts):
            try:
                return cls(_build_slots(rng, max_attempts))
            except UnplaceableCharacterError:
                continue
        raise RetryLimitExceeded(f"Keymap construction failed {max_attempts} times")

    #-------------------------------------------------------------------------
    # Mutation
    #-------------------------------------------------------------------------
    def mutate(self, rng: random.Random,
               max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> "Keymap":
        """
        Apply one randomly chosen local edit and return a valid keymap.

        Each attempt draws a fresh operator and fresh targets; an edit that
        breaks a requirement is discarded, never patched.
        """
        for _ in range(max_attempts):
            operator = getattr(self, '_' + rng.choice(self.OPERATORS))
            candidate = operator(rng, max_attempts)
            if candidate is not None and candidate.meet_requirements():
                return candidate
        raise RetryLimitExceeded(f"No valid mutation found in {max_attempts} attempts")

    def _distinct_pair(self, rng: random.Random, allowed: Sequence[int]) -> Tuple[int, int]:
        i, j = rng.sample(allowed, 2)
        return i, j

    def _swap_unshift(self, rng: random.Random, max_attempts: int) -> Optional["Keymap"]:
        allowed = list(range(len(self._slots)))
        for _ in range(max_attempts):
            i, j = self._distinct_pair(rng, allowed)
            a, b = self._slots[i], self._slots[j]
            new_a = a.with_unshift(b.unshift_def)
            new_b = b.with_unshift(a.unshift_def)
            if new_a is None or new_b is None:
                continue
            return self.replace({i: new_a, j: new_b})
        return None

    def _swap_shift(self, rng: random.Random, max_attempts: int) -> Optional["Keymap"]:
        allowed = [s for s in range(len(self._slots)) if s not in SHIFT_SLOTS]
        for _ in range(max_attempts):
            i, j = self._distinct_pair(rng, allowed)
            a, b = self._slots[i], self._slots[j]
            new_a = a.with_shift(b.shift_def)
            new_b = b.with_shift(a.shift_def)
            if new_a is None or new_b is None:
                continue
            return self.replace({i: new_a, j: new_b})
        return None

    def _flip(self, rng: random.Random, max_attempts: int) -> Optional["Keymap"]:
        slot = rng.randrange(len(self._slots))
        updates = {slot: self._slots[slot].flip()}
        if slot in SHIFT_SLOTS:
            paired = R_SHIFT if slot == L_SHIFT else L_SHIFT
            updates[paired] = self._slots[paired].flip()
        return self.replace(updates)

    def _swap_shift_of_shift(self, rng: random.Random, max_attempts: int) -> Optional["Keymap"]:
        allowed = [s for s in range(len(self._slots)) if s not in SHIFT_SLOTS]
        shared = self._slots[L_SHIFT].shift_def
        for _ in range(max_attempts):
            slot = rng.choice(allowed)
            key = self._slots[slot]
            new_key = key.with_shift(shared)
            new_left = self._slots[L_SHIFT].with_shift(key.shift_def)
            new_right = self._slots[R_SHIFT].with_shift(key.shift_def)
            if new_key is None or new_left is None or new_right is None:
                continue
            return self.replace({slot: new_key, L_SHIFT: new_left, R_SHIFT: new_right})
        return None

    def _swap_shift_and_unshift(self, rng: random.Random, max_attempts: int) -> Optional["Keymap"]:
        allowed = [s for s in range(len(self._slots)) if s not in SHIFT_SLOTS]
        for _ in range(max_attempts):
            i, j = self._distinct_pair(rng, allowed)
            flipped = self._slots[i].flip()
            other = self._slots[j]
            new_i = flipped.with_unshift(other.shift_def)
            new_j = other.with_shift(flipped.unshift_def)
            if new_i is None or new_j is None:
                continue
            return self.replace({i: new_i, j: new_j})
        return None

    #-------------------------------------------------------------------------
    # Crossover
    #-------------------------------------------------------------------------
    def cross(self, other: "Keymap", rng: random.Random) -> Tuple["Keymap", "Keymap"]:
        """
        Exchange randomly paired regular keys between two parents.

        Regular keys are partitioned into random pairs; each pair is swapped
        between the parents with even odds. Children may be invalid.
        """
        order = [s for s in regular_slots() if s < len(self._slots)]
        rng.shuffle(order)

        first, second = list(self._slots), list(other._slots)
        for k in range(len(order) // 2):
            if rng.random() < 0.5:
                continue
            for slot in (order[2 * k], order[2 * k + 1]):
                first[slot], second[slot] = second[slot], first[slot]

        return Keymap(first), Keymap(second)
