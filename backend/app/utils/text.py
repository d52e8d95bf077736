"""Text helpers for Vietnamese legal text: tone folding and clause-number ordering."""

import re
import unicodedata

_ROMAN_NUMERAL = re.compile(r"^[IVXLCDM]+$")
_ROMAN_VALUES = {"I": 1, "V": 5, "X": 10, "L": 50, "C": 100, "D": 500, "M": 1000}


def remove_tones(text: str) -> str:
    """Strip Vietnamese diacritics ("Phạm vi điều chỉnh" -> "Pham vi dieu chinh")."""
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.replace("đ", "d").replace("Đ", "D")


def roman_to_int(numeral: str) -> int | None:
    """Convert an upper-case Roman numeral; None if it is not one."""
    if not _ROMAN_NUMERAL.match(numeral):
        return None
    total = 0
    previous = 0
    for ch in reversed(numeral):
        value = _ROMAN_VALUES[ch]
        if value < previous:
            total -= value
        else:
            total += value
            previous = value
    return total


def clause_number_sort_key(number: str) -> tuple[int, int, str]:
    """Natural ordering key for clause numbers.

    Arabic numbers sort numerically ("3" before "10"), then Roman numerals by
    value, then anything else alphabetically.
    """
    stripped = number.strip()
    if stripped.isdigit():
        return (0, int(stripped), "")
    roman = roman_to_int(stripped)
    if roman is not None:
        return (1, roman, "")
    return (2, 0, stripped.lower())
