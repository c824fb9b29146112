# key_assignment.py
"""
Character payload of a single physical key.

A key carries an unshift character and a shift character. Turbid and
semiturbid forms are derived from whichever side defines them; the conflict
rule on CharacterDefinition guarantees that at most one side does.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from characters import CharacterDefinition


class KeyKind(Enum):
    """How a character is produced from its key."""
    NORMAL = "normal"
    SHIFT = "shift"
    TURBID = "turbid"
    SEMITURBID = "semiturbid"


@dataclass(frozen=True)
class KeyAssignment:
    """Unshift/shift definitions of one key. Both None means unassigned."""
    unshift_def: Optional[CharacterDefinition] = None
    shift_def: Optional[CharacterDefinition] = None

    @classmethod
    def unshift_from(cls, definition: CharacterDefinition) -> "KeyAssignment":
        return cls(unshift_def=definition)

    @classmethod
    def shift_from(cls, definition: CharacterDefinition) -> "KeyAssignment":
        return cls(shift_def=definition)

    @classmethod
    def assigned(cls, unshift: CharacterDefinition,
                 shift: CharacterDefinition) -> Optional["KeyAssignment"]:
        """Build a full assignment, or None if both definitions conflict."""
        if unshift.conflicts(shift):
            return None
        return cls(unshift, shift)

    @property
    def is_empty(self) -> bool:
        return self.unshift_def is None and self.shift_def is None

    @property
    def is_full(self) -> bool:
        return self.unshift_def is not None and self.shift_def is not None

    def flip(self) -> "KeyAssignment":
        return KeyAssignment(self.shift_def, self.unshift_def)

    def _conflicts_with(self, definition: CharacterDefinition) -> bool:
        for side in (self.unshift_def, self.shift_def):
            if side is not None and side.conflicts(definition):
                return True
        return False

    def merge(self, definition: CharacterDefinition) -> Optional["KeyAssignment"]:
        """
        Place `definition` on the free side of this key.

        An empty key receives it as unshift. Returns None if the key is full
        or the definition conflicts with the one already present.
        """
        if self.is_full or self._conflicts_with(definition):
            return None
        if self.unshift_def is None and self.shift_def is None:
            return KeyAssignment(definition, None)
        if self.unshift_def is None:
            return KeyAssignment(definition, self.shift_def)
        return KeyAssignment(self.unshift_def, definition)

    def with_unshift(self, definition: Optional[CharacterDefinition]) -> Optional["KeyAssignment"]:
        """Replace the unshift side; None if the result would conflict."""
        if definition is not None and self.shift_def is not None and self.shift_def.conflicts(definition):
            return None
        return KeyAssignment(definition, self.shift_def)

    def with_shift(self, definition: Optional[CharacterDefinition]) -> Optional["KeyAssignment"]:
        """Replace the shift side; None if the result would conflict."""
        if definition is not None and self.unshift_def is not None and self.unshift_def.conflicts(definition):
            return None
        return KeyAssignment(self.unshift_def, definition)

    #-------------------------------------------------------------------------
    # Derived characters
    #-------------------------------------------------------------------------
    @property
    def unshift(self) -> Optional[str]:
        return self.unshift_def.unshift if self.unshift_def is not None else None

    @property
    def shift(self) -> Optional[str]:
        return self.shift_def.unshift if self.shift_def is not None else None

    @property
    def turbid(self) -> Optional[str]:
        if self.unshift_def is not None and self.unshift_def.turbid is not None:
            return self.unshift_def.turbid
        if self.shift_def is not None:
            return self.shift_def.turbid
        return None

    @property
    def semiturbid(self) -> Optional[str]:
        if self.unshift_def is not None and self.unshift_def.semiturbid is not None:
            return self.unshift_def.semiturbid
        if self.shift_def is not None:
            return self.shift_def.semiturbid
        return None

    def chars(self) -> List[str]:
        """Every character this key can produce."""
        chars = []
        for c in (self.unshift, self.shift, self.turbid, self.semiturbid):
            if c is not None:
                chars.append(c)
        return chars

    def kind_of(self, char: str) -> Optional[KeyKind]:
        """Return how `char` is produced on this key, or None."""
        if char == self.unshift:
            return KeyKind.NORMAL
        if char == self.shift:
            return KeyKind.SHIFT
        if char == self.turbid:
            return KeyKind.TURBID
        if char == self.semiturbid:
            return KeyKind.SEMITURBID
        return None

    def contains(self, char: str) -> bool:
        return self.kind_of(char) is not None

    def __str__(self) -> str:
        if self.is_empty:
            return "<unassigned>"
        return f"{self.unshift or '　'}/{self.shift or '　'}"


UNASSIGNED = KeyAssignment()
