"""Unit tests for text helpers."""

import pytest

from backend.app.utils.text import clause_number_sort_key, remove_tones, roman_to_int


def test_remove_tones() -> None:
    assert remove_tones("Phạm vi điều chỉnh") == "Pham vi dieu chinh"
    assert remove_tones("ĐIỀU") == "DIEU"


@pytest.mark.parametrize(
    ("numeral", "expected"),
    [("I", 1), ("IV", 4), ("IX", 9), ("XIV", 14), ("MCMXC", 1990), ("iv", None), ("12", None)],
)
def test_roman_to_int(numeral: str, expected: int | None) -> None:
    assert roman_to_int(numeral) == expected


def test_clause_numbers_sort_naturally() -> None:
    numbers = ["10", "?", "2", "IV", "1", "II"]

    assert sorted(numbers, key=clause_number_sort_key) == ["1", "2", "10", "II", "IV", "?"]
