"""Add-on applicability and the frozen price snapshot stored on a contract.

Once written, a snapshot is the contract's record of what was charged. It is
never recomputed from live catalog data.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Sequence

from warranty_hub.domain.schemas import AddonSnapshotItem, ProductAddon
from warranty_hub.services.money import cost_of, retail_from_cost


def addon_applies_to_pricing_row(addon: ProductAddon, pricing_row_id: str | None) -> bool:
    if not addon.active:
        return False
    if not pricing_row_id:
        return True
    # Records written before the flag existed apply everywhere
    if addon.applies_to_all_pricing_rows is None or addon.applies_to_all_pricing_rows:
        return True
    return pricing_row_id in (addon.applicable_pricing_row_ids or [])


def applicable_addons(
    addons: Iterable[ProductAddon], pricing_row_id: str | None
) -> list[ProductAddon]:
    return [a for a in addons if addon_applies_to_pricing_row(a, pricing_row_id)]


def snapshot_item(addon: ProductAddon, markup_pct: float) -> AddonSnapshotItem:
    cost = cost_of(addon)
    retail = retail_from_cost(cost, markup_pct)
    if retail is None:
        retail = cost
    min_price = addon.min_price_cents if addon.min_price_cents is not None else addon.base_price_cents
    max_price = addon.max_price_cents if addon.max_price_cents is not None else min_price
    return AddonSnapshotItem(
        id=addon.id,
        name=addon.name,
        description=addon.description,
        pricing_type=addon.pricing_type,
        base_price_cents=addon.base_price_cents,
        min_price_cents=min_price,
        max_price_cents=max_price,
        chosen_price_cents=retail or 0,
    )


@dataclass(frozen=True)
class AddonSnapshot:
    items: tuple[AddonSnapshotItem, ...] = field(default_factory=tuple)

    @property
    def total_retail_cents(self) -> int:
        return sum(item.chosen_price_cents for item in self.items)

    @property
    def total_cost_cents(self) -> int:
        return sum(item.base_price_cents for item in self.items)

    @property
    def addon_ids(self) -> list[str]:
        return [item.id for item in self.items]

    def as_contract_patch(self) -> dict:
        return {
            "addon_snapshot": [item.model_dump() for item in self.items],
            "addon_total_retail_cents": self.total_retail_cents,
            "addon_total_cost_cents": self.total_cost_cents,
        }


def build_addon_snapshot(
    selected_ids: Sequence[str],
    addons: Iterable[ProductAddon],
    markup_pct: float,
) -> AddonSnapshot:
    """Freeze the selected add-ons in selection order.

    `addons` should already be filtered to those applicable to the contract's
    pricing row; ids not present there are skipped.
    """
    by_id = {addon.id: addon for addon in addons}
    seen: set[str] = set()
    items = []
    for addon_id in selected_ids:
        if addon_id in seen or addon_id not in by_id:
            continue
        seen.add(addon_id)
        items.append(snapshot_item(by_id[addon_id], markup_pct))
    return AddonSnapshot(items=tuple(items))
