"""
Text utilities for product names coming from stock reports.

Used for catalog matching and for cleaning cell text before storage.
"""

from typing import Any, Optional


def normalize_product_name(name: Optional[str]) -> str:
    """
    Normalize a product name into its matching key.

    Only surrounding whitespace and case are ignored:
    - "  steel rods " -> "steel rods"
    - "Steel Rods"    -> "steel rods"
    - "Stéel Rods"    -> "stéel rods" (accents are significant)

    Returns:
        Case-folded, trimmed name, or "" for empty input
    """
    if not name:
        return ""
    return name.strip().casefold()


def clean_cell(value: Any) -> Optional[str]:
    """
    Trim a raw cell value for storage.

    Returns None for empty/whitespace-only cells.
    """
    if value is None:
        return None
    text = str(value).strip()
    return text or None
