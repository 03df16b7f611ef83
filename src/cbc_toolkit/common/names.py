"""Name normalisation shared by every lookup in the toolkit.

Subject, class, pathway, term and exam names arrive from hand-typed forms, so
they are compared after collapsing whitespace and case-folding. Admission
numbers are stored upper-case.
"""

from __future__ import annotations

from typing import Any, Optional


def normalise_name(value: Optional[str]) -> str:
    """
    Canonical comparison key for a free-text name.

    Example:
        >>> normalise_name("  Business   Studies ")
        'business studies'
    """
    return " ".join(str(value or "").split()).casefold()


def normalise_adm_no(value: Any) -> str:
    """Canonical admission number (trimmed, upper-case)."""
    if value is None:
        return ""
    return str(value).strip().upper()


def names_equal(left: Optional[str], right: Optional[str]) -> bool:
    return normalise_name(left) == normalise_name(right)
