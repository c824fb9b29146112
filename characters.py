# characters.py
"""
Character catalog for kana layout optimization.

The catalog is a fixed, ordered list of character definitions. Each definition
has an unshift character and optionally a turbid (dakuten) and a semiturbid
(handakuten) variant. Positions in the catalog, and in the flattened list
returned by all_chars(), are used as dense integer identities everywhere else.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple


@dataclass(frozen=True)
class CharacterDefinition:
    """A base character and its optional diacritic variants."""
    unshift: str
    turbid: Optional[str] = None
    semiturbid: Optional[str] = None

    def conflicts(self, other: "CharacterDefinition") -> bool:
        """Return True if both definitions cannot share one key."""
        if self.turbid is not None and other.turbid is not None:
            return True
        if self.semiturbid is not None and other.semiturbid is not None:
            return True
        return self.unshift == other.unshift

    def is_cleartone(self) -> bool:
        return self.turbid is None and self.semiturbid is None

    def chars(self) -> List[str]:
        """Characters defined here: unshift, then turbid, then semiturbid."""
        chars = [self.unshift]
        if self.turbid is not None:
            chars.append(self.turbid)
        if self.semiturbid is not None:
            chars.append(self.semiturbid)
        return chars


#-----------------------------------------------------------------------------
# Catalog
#-----------------------------------------------------------------------------
_D = CharacterDefinition

CATALOG: Tuple[CharacterDefinition, ...] = (
    _D('あ', semiturbid='ぁ'),
    _D('い', semiturbid='ぃ'),
    _D('う', semiturbid='ぅ'),
    _D('え', semiturbid='ぇ'),
    _D('お', semiturbid='ぉ'),
    _D('か', turbid='が'),
    _D('き', turbid='ぎ'),
    _D('く', turbid='ぐ'),
    _D('け', turbid='げ'),
    _D('こ', turbid='ご'),
    _D('さ', turbid='ざ'),
    _D('し', turbid='じ'),
    _D('す', turbid='ず'),
    _D('せ', turbid='ぜ'),
    _D('そ', turbid='ぞ'),
    _D('た', turbid='だ'),
    _D('ち', turbid='ぢ'),
    _D('つ', turbid='づ'),
    _D('て', turbid='で'),
    _D('と', turbid='ど'),
    _D('な'),
    _D('に'),
    _D('ぬ'),
    _D('ね'),
    _D('の'),
    _D('は', turbid='ば', semiturbid='ぱ'),
    _D('ひ', turbid='び', semiturbid='ぴ'),
    _D('ふ', turbid='ぶ', semiturbid='ぷ'),
    _D('へ', turbid='べ', semiturbid='ぺ'),
    _D('ほ', turbid='ぼ', semiturbid='ぽ'),
    _D('ま'),
    _D('み'),
    _D('む'),
    _D('め'),
    _D('も'),
    _D('や', semiturbid='ゃ'),
    _D('ゆ', semiturbid='ゅ'),
    _D('よ', semiturbid='ょ'),
    _D('ら'),
    _D('り'),
    _D('る'),
    _D('れ'),
    _D('ろ'),
    _D('わ'),
    _D('を'),
    _D('ん'),
    _D('っ'),
    _D('ー'),
    _D('、'),
    _D('。'),
)

_ALL_CHARS: Tuple[str, ...] = tuple(c for d in CATALOG for c in d.chars())
_CHAR_IDS: Dict[str, int] = {c: i for i, c in enumerate(_ALL_CHARS)}
_BY_UNSHIFT: Dict[str, CharacterDefinition] = {d.unshift: d for d in CATALOG}


def definitions() -> List[CharacterDefinition]:
    """Return the catalog in its fixed order."""
    return list(CATALOG)


def find(char: str) -> Optional[CharacterDefinition]:
    """Return the definition whose unshift character is `char`."""
    return _BY_UNSHIFT.get(char)


def all_chars() -> List[str]:
    """Return every producible character, in catalog order."""
    return list(_ALL_CHARS)


def char_id(char: str) -> int:
    """Return the dense id of a producible character (KeyError if unknown)."""
    return _CHAR_IDS[char]


def char_ids(text: Sequence[str]) -> List[int]:
    return [_CHAR_IDS[c] for c in text]


def n_chars() -> int:
    return len(_ALL_CHARS)


def dual_diacritic_definitions() -> List[CharacterDefinition]:
    """Definitions carrying both turbid and semiturbid forms (the ha row)."""
    return [d for d in CATALOG if d.turbid is not None and d.semiturbid is not None]
