"""
Column semantic resolver.

Accounting exports label the same column many ways ("Product Name",
"Particulars", "Item"; "Qty", "Closing Stock"). The resolver maps each
semantic role to one header by keyword containment so uploads work without
a fixed template.

Roles are scanned in a fixed order (name, quantity, unit, category). Each role
takes the first header, left to right, containing one of its keywords that an
earlier role has not already taken. Templates exported by accounting systems
depend on this order, so keep it stable.
"""

from dataclasses import dataclass, fields
from typing import Optional, Sequence
import structlog

from exceptions import UnresolvableColumnsError

logger = structlog.get_logger(__name__)


# Keyword sets are part of the upload contract; matched as lowercase substrings.
ROLE_KEYWORDS: dict[str, tuple[str, ...]] = {
    "name": ("product", "name", "item", "particulars"),
    "quantity": ("quantity", "qty", "stock", "closing"),
    "unit": ("unit",),
    "category": ("category", "group"),
}

ROLE_ORDER = ("name", "quantity", "unit", "category")
REQUIRED_ROLES = ("name", "quantity")


@dataclass(frozen=True)
class ColumnRoleMap:
    """Resolved header label per role. None means unresolved."""
    name: Optional[str] = None
    quantity: Optional[str] = None
    unit: Optional[str] = None
    category: Optional[str] = None

    def missing_required(self) -> list[str]:
        """Required roles that have no column."""
        return [role for role in REQUIRED_ROLES if getattr(self, role) is None]

    def to_dict(self) -> dict[str, Optional[str]]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def resolve_columns(headers: Sequence[str]) -> ColumnRoleMap:
    """
    Resolve semantic roles from header labels.

    Examples:
        ["Item", "Qty", "Group"] -> name=Item, quantity=Qty, category=Group
        ["Product Name", "Closing Stock"] -> name, quantity; unit/category None

    Raises:
        UnresolvableColumnsError: name or quantity has no matching header
    """
    claimed: set[int] = set()
    resolved: dict[str, Optional[str]] = {}

    for role in ROLE_ORDER:
        resolved[role] = None
        keywords = ROLE_KEYWORDS[role]
        for index, header in enumerate(headers):
            if index in claimed:
                continue
            label = str(header).lower()
            if any(keyword in label for keyword in keywords):
                resolved[role] = header
                claimed.add(index)
                break

    role_map = ColumnRoleMap(**resolved)

    missing = role_map.missing_required()
    if missing:
        logger.warning(
            "columns_unresolvable",
            missing_roles=missing,
            headers=list(headers)
        )
        raise UnresolvableColumnsError(missing, headers)

    logger.info(
        "columns_resolved",
        name_column=role_map.name,
        quantity_column=role_map.quantity,
        unit_column=role_map.unit,
        category_column=role_map.category
    )
    return role_map
