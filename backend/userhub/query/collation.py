"""
Value ordering shared by both storage backends.

Text is compared at "base" strength: accents, tone marks and case are
ignored, so "Ánh", "anh" and "Anh" are equal. Personal names are ordered by
given name first (the last whitespace-separated component), then family
name, then the middle part, which is how Vietnamese names are alphabetized.
"""

from __future__ import annotations

import unicodedata
from datetime import datetime
from functools import cmp_to_key
from typing import Any, Dict, List, Sequence, Tuple

ASC = "asc"
DESC = "desc"

_EXTRA_FOLDS = str.maketrans({"đ": "d", "Đ": "d", "ø": "o", "Ø": "o", "ł": "l", "Ł": "l"})


def fold(text: str) -> str:
    """Reduce a string to its base letters, lower-cased."""
    decomposed = unicodedata.normalize("NFD", text.translate(_EXTRA_FOLDS))
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.casefold()


def _sign(n: float) -> int:
    return (n > 0) - (n < 0)


def compare_text(a: str, b: str) -> int:
    fa, fb = fold(a), fold(b)
    return (fa > fb) - (fa < fb)


def split_name(name: str) -> Tuple[str, str, str]:
    """Return (first, middle, last) components of a full name."""
    parts = name.split()
    if not parts:
        return "", "", ""
    middle = " ".join(parts[1:-1])
    return parts[0], middle, parts[-1]


def compare_names(a: str, b: str) -> int:
    first_a, middle_a, last_a = split_name(a)
    first_b, middle_b, last_b = split_name(b)
    return (
        compare_text(last_a, last_b)
        or compare_text(first_a, first_b)
        or compare_text(middle_a, middle_b)
    )


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def compare_values(a: Any, b: Any, field: str = "") -> int:
    """Ascending comparison for two non-null values of one field."""
    if field == "name" and isinstance(a, str) and isinstance(b, str):
        return compare_names(a, b)
    if isinstance(a, str) and isinstance(b, str):
        return compare_text(a, b)
    if _is_number(a) and _is_number(b):
        return _sign(a - b)
    if isinstance(a, datetime) and isinstance(b, datetime):
        return _sign((a - b).total_seconds())
    return compare_text(str(a), str(b))


def sort_rows(rows: Sequence[Dict[str, Any]], field: str, direction: str = ASC) -> List[Dict[str, Any]]:
    """Stable sort of row mappings by one field.

    Missing/None values go last ascending and first descending; rows with
    equal keys keep their incoming relative order either way.
    """
    descending = direction == DESC

    def cmp(left: Dict[str, Any], right: Dict[str, Any]) -> int:
        a, b = left.get(field), right.get(field)
        if a is None and b is None:
            return 0
        if a is None:
            return -1 if descending else 1
        if b is None:
            return 1 if descending else -1
        result = compare_values(a, b, field)
        return -result if descending else result

    return sorted(rows, key=cmp_to_key(cmp))
