"""
Size Breakup Module

Expands a size range such as "4-8" into size labels, builds the size → pairs
map used by the catalogue and purchase-order forms, and checks that the pair
total packs into whole cartons.
"""

import re
from typing import Dict, List, Mapping, Optional

from constants.catalogue import PAIRS_PER_CARTON

_RANGE_PATTERN = re.compile(r"^(\d+)-(\d+)$")


def parse_size_range(size_range: str) -> List[str]:
    """
    Expand an inclusive size range into its labels.

    Args:
        size_range: Text like "4-8"; whitespace is ignored

    Returns:
        List[str]: ["4", "5", "6", "7", "8"], or [] for a malformed range
    """
    cleaned = re.sub(r"\s", "", size_range or "")
    match = _RANGE_PATTERN.match(cleaned)
    if not match:
        return []

    start, end = int(match.group(1)), int(match.group(2))
    if end < start:
        return []

    return [str(size) for size in range(start, end + 1)]


def apply_size_range(size_range: str, previous: Optional[Mapping[str, int]] = None) -> Dict[str, int]:
    """
    Build a size breakup for a range, keeping counts already entered for sizes
    that are still in the range and defaulting new sizes to 0.
    """
    previous = previous or {}
    return {size: previous.get(size, 0) for size in parse_size_range(size_range)}


def total_pairs(size_breakup: Mapping[str, int]) -> int:
    total = 0
    for value in (size_breakup or {}).values():
        try:
            total += int(value or 0)
        except (TypeError, ValueError):
            continue
    return total


def is_valid_multiple(size_breakup: Mapping[str, int]) -> bool:
    """True when the pair total is 0, 24, 48, ..."""
    pairs = total_pairs(size_breakup)
    return pairs >= 0 and pairs % PAIRS_PER_CARTON == 0


def cartons_hint(size_breakup: Mapping[str, int]) -> Optional[int]:
    pairs = total_pairs(size_breakup)
    if pairs > 0 and pairs % PAIRS_PER_CARTON == 0:
        return pairs // PAIRS_PER_CARTON
    return None


def summarize_breakup(size_range: str, size_breakup: Optional[Mapping[str, int]] = None) -> Dict:
    """
    Summary of a size breakup as shown next to the form.

    Returns:
        dict: sizes, breakup, total pairs, validity and cartons hint
    """
    breakup = apply_size_range(size_range, size_breakup)
    return {
        "sizes": list(breakup.keys()),
        "breakup": breakup,
        "total_pairs": total_pairs(breakup),
        "is_valid_multiple": is_valid_multiple(breakup),
        "cartons_hint": cartons_hint(breakup),
    }
