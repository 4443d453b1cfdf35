"""
Catalog matcher.

Partitions parsed rows into matched and unmatched against one catalog
snapshot. Names are compared after trimming and case-folding only; there
is no fuzzy matching, so a typo produces a new product rather than a wrong
update.
"""

from dataclasses import dataclass, field
from typing import Sequence
import structlog

from models.stock_import import CatalogEntry, StagedRow, RowPartition
from parsers.row_normalizer import ParsedStockRow, RowParseWarning
from utils.text_utils import normalize_product_name

logger = structlog.get_logger(__name__)


@dataclass
class CatalogMatch:
    """Matcher output, both partitions in input order."""
    matched: list[StagedRow] = field(default_factory=list)
    unmatched: list[StagedRow] = field(default_factory=list)
    warnings: list[RowParseWarning] = field(default_factory=list)


def build_catalog_index(catalog: Sequence[CatalogEntry]) -> dict[str, CatalogEntry]:
    """
    Index catalog entries by normalized name.

    With duplicate names the first entry in snapshot order wins.
    """
    index: dict[str, CatalogEntry] = {}
    for entry in catalog:
        key = normalize_product_name(entry.name)
        if not key:
            continue
        if key in index:
            logger.warning(
                "duplicate_catalog_name",
                name=entry.name,
                kept_id=index[key].id,
                ignored_id=entry.id
            )
            continue
        index[key] = entry
    return index


def match_rows(rows: Sequence[ParsedStockRow], catalog: Sequence[CatalogEntry]) -> CatalogMatch:
    """
    Partition rows into matched/unmatched staged rows.

    Each catalog entry is targeted by at most one row: a later row with
    the same normalized name as an earlier one is discarded with a warning.
    """
    index = build_catalog_index(catalog)
    result = CatalogMatch()
    seen: dict[str, int] = {}

    for row in rows:
        key = normalize_product_name(row.product_name)

        if key in seen:
            result.warnings.append(RowParseWarning(
                row_number=row.row_number,
                field="product_name",
                value=row.product_name,
                message=f"Duplicate of row {seen[key]}; ignored"
            ))
            continue
        seen[key] = row.row_number

        entry = index.get(key)
        if entry is None:
            result.unmatched.append(StagedRow(
                partition=RowPartition.UNMATCHED,
                product_name=row.product_name,
                quantity=row.quantity,
                unit=row.unit,
                category=row.category,
                row_number=row.row_number,
            ))
            continue

        inventory = entry.current_inventory
        result.matched.append(StagedRow(
            partition=RowPartition.MATCHED,
            product_name=row.product_name,
            quantity=row.quantity,
            unit=row.unit,
            category=row.category,
            row_number=row.row_number,
            catalog_entry_id=entry.id,
            inventory_id=inventory.id if inventory else None,
            previous_quantity=inventory.quantity if inventory else None,
        ))

    logger.info(
        "catalog_matched",
        catalog_size=len(catalog),
        matched=len(result.matched),
        unmatched=len(result.unmatched),
        duplicates=len(result.warnings)
    )

    return result
