#!/usr/bin/env python3
"""
KUBEREPL RANGE EXPRESSIONS
--------------------------
Parses the index expressions an operator types to pick objects out of the
last listing:

    3          a single index
    1..4       indices 1, 2, 3 (end exclusive)
    1..=4      indices 1, 2, 3, 4
    ..3, 5..   open-ended on either side
    1,3,7..9   comma-separated combination of the above
    *  / all   every listed object

Indices are 0-based and always resolved in ascending listing order, no
matter how the expression orders them.
"""

import re
from typing import List, Tuple

from kuberepl.core.errors import InvalidRangeError

WILDCARDS = ("*", "all")

_TERM = re.compile(r"^(?P<start>[0-9]+)?(?P<op>\.\.=?)(?P<end>[0-9]+)?$")


def looks_like_range(text: str) -> bool:
    """True if `text` could be a range expression rather than a command word."""
    text = text.strip()
    if text in WILDCARDS:
        return True
    return bool(text) and all(_is_term(t.strip()) for t in text.split(","))


def _is_index(term: str) -> bool:
    return term.isascii() and term.isdigit()


def _is_term(term: str) -> bool:
    return _is_index(term) or bool(_TERM.match(term))


def _parse_term(term: str, size: int) -> Tuple[int, int]:
    """Returns an inclusive (first, last) pair for one comma-separated term."""
    if _is_index(term):
        index = int(term)
        return index, index

    match = _TERM.match(term)
    if not match:
        raise InvalidRangeError(f"Invalid range term '{term}'")

    start = int(match.group("start")) if match.group("start") else 0
    if match.group("end") is None:
        if match.group("op") == "..=":
            raise InvalidRangeError(f"Invalid range term '{term}': '..=' needs an end")
        end = size - 1
    else:
        end = int(match.group("end"))
        if match.group("op") == "..":
            end -= 1

    if start >= size:
        raise InvalidRangeError(f"Index {start} out of range (last listing has {size} objects)")
    if end < start:
        raise InvalidRangeError(f"Range '{term}' selects nothing")
    return start, end


def parse_range(expr: str, size: int) -> List[int]:
    """
    Resolves `expr` against a listing of `size` objects.

    Returns:
        Sorted, de-duplicated indices.

    Raises:
        InvalidRangeError: empty listing, malformed expression, or any index
        out of bounds.
    """
    if size <= 0:
        raise InvalidRangeError("No objects listed to select from (run a listing command first)")

    expr = (expr or "").strip()
    if not expr:
        raise InvalidRangeError("Empty range expression")
    if expr in WILDCARDS:
        return list(range(size))

    indices = set()
    for raw_term in expr.split(","):
        term = raw_term.strip()
        if not term:
            raise InvalidRangeError(f"Invalid range expression '{expr}'")
        first, last = _parse_term(term, size)
        if last >= size:
            raise InvalidRangeError(f"Index {last} out of range (last listing has {size} objects)")
        indices.update(range(first, last + 1))
    return sorted(indices)
