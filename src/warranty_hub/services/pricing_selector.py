"""Default pricing row selection for a draft contract."""

from __future__ import annotations

import math
from typing import Sequence

from warranty_hub.domain.enums import ContractStatus
from warranty_hub.domain.schemas import Contract, ProductPricing


def pricing_sort_key(row: ProductPricing) -> tuple[float, float, int]:
    """Unlimited term months / km sort after every finite value."""
    return (
        row.term_months if row.term_months is not None else math.inf,
        row.term_km if row.term_km is not None else math.inf,
        row.deductible_cents,
    )


def sort_pricing_rows(rows: Sequence[ProductPricing]) -> list[ProductPricing]:
    # sorted() is stable, so ties keep input order
    return sorted(rows, key=pricing_sort_key)


def default_pricing_row(rows: Sequence[ProductPricing]) -> ProductPricing | None:
    ordered = sort_pricing_rows(rows)
    return ordered[0] if ordered else None


def should_auto_select_pricing(
    contract: Contract, eligible_rows: Sequence[ProductPricing]
) -> bool:
    """Auto-select only fills a gap; it never overrides a dealer's choice."""
    return (
        contract.status == ContractStatus.DRAFT
        and bool(contract.product_id)
        and not contract.product_pricing_id
        and len(eligible_rows) > 0
    )
