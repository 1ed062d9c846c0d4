"""
Version string helpers.

Update availability is decided by plain string inequality, never by
ordering. compare_versions exists for display and sorting only.
"""
from __future__ import annotations

import re
from typing import List, Optional

_NON_DIGITS = re.compile(r"\D")


def is_update_available(
    current_version: Optional[str],
    known_latest_version: Optional[str],
    fetched_version: Optional[str],
) -> bool:
    """
    Three-way availability check.

    Available when the fetched version is non-empty and differs from both
    the operator's current version and the previously known latest. With
    no current version set, any non-empty fetched version is available.
    """
    if not fetched_version:
        return False
    if not current_version:
        return True
    return fetched_version != current_version and fetched_version != known_latest_version


def _numeric_parts(version: str) -> List[int]:
    cleaned = version.lstrip("vV")
    parts = []
    for part in cleaned.split("."):
        digits = _NON_DIGITS.sub("", part)
        parts.append(int(digits) if digits else 0)
    return parts


def compare_versions(left: Optional[str], right: Optional[str]) -> int:
    """
    Lenient dotted-numeric comparison.

    Returns 1 if left > right, -1 if left < right, 0 if equal or either is empty.
    "v1.10" > "1.9", "2.0-beta" == "2.0".
    """
    if not left or not right:
        return 0

    a = _numeric_parts(left)
    b = _numeric_parts(right)
    for i in range(max(len(a), len(b))):
        x = a[i] if i < len(a) else 0
        y = b[i] if i < len(b) else 0
        if x > y:
            return 1
        if x < y:
            return -1
    return 0
