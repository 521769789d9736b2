"""Monetary amount parsing with unit normalization.

Deal headlines quote the same figure in several forms ("$500M",
"$500 million", "500 million", "$0.5B"). Every form is normalized to a plain
numeric value so that amounts compare across forms.
"""

import re
from typing import FrozenSet, Iterable

UNIT_MULTIPLIERS = {
    "k": 1e3,
    "thousand": 1e3,
    "m": 1e6,
    "mm": 1e6,
    "million": 1e6,
    "b": 1e9,
    "bn": 1e9,
    "billion": 1e9,
    "t": 1e12,
    "trillion": 1e12,
}

_UNIT_PATTERN = r"trillion|billion|million|thousand|bn|mm|[kmbt]"

# "$500M", "$1.2B", "$500 million", "$1,250,000"
SYMBOLIC_AMOUNT_RE = re.compile(
    r"\$\s?(\d[\d,]*(?:\.\d+)?)\s?(" + _UNIT_PATTERN + r")?\b",
    re.IGNORECASE,
)

# "500 million", "1.2 billion" (no currency symbol)
WRITTEN_AMOUNT_RE = re.compile(
    r"(?<![$\d.,])(\d[\d,]*(?:\.\d+)?)\s*(trillion|billion|million|thousand)\b",
    re.IGNORECASE,
)


def _to_value(number: str, unit: str) -> float:
    value = float(number.replace(",", ""))
    if unit:
        value *= UNIT_MULTIPLIERS[unit.lower()]
    return round(value, 2)


def parse_amounts(text: str) -> FrozenSet[float]:
    """Extract every monetary amount in ``text`` as a normalized number."""
    if not text:
        return frozenset()

    amounts = set()
    for match in SYMBOLIC_AMOUNT_RE.finditer(text):
        try:
            amounts.add(_to_value(match.group(1), match.group(2) or ""))
        except ValueError:
            continue
    for match in WRITTEN_AMOUNT_RE.finditer(text):
        try:
            amounts.add(_to_value(match.group(1), match.group(2)))
        except ValueError:
            continue

    return frozenset(a for a in amounts if a > 0)


def amounts_match(
    amounts_a: Iterable[float],
    amounts_b: Iterable[float],
    tolerance: float = 0.01,
) -> bool:
    """Whether any amount of one side equals one of the other within tolerance."""
    amounts_b = list(amounts_b)
    for a in amounts_a:
        for b in amounts_b:
            if abs(a - b) <= tolerance * max(a, b):
                return True
    return False
