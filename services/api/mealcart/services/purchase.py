"""
Purchase quantities: what you need vs. what you actually buy.

Presentation only. The stored entry is never changed.

Rules, first match wins:
- Meat in lb/oz: whole pounds, never less than 1 lb.
- count/slice/clove: whole items.
- Profile pack size in the entry's unit: whole packs (or a count of
  labelled packages when the profile names one).
- Everything else: buy what you need.
"""

import math
import sys
from dataclasses import dataclass
from typing import Optional

from ..schemas import UnitProfile
from .unit_conversion import is_meat

COUNT_LIKE_UNITS = ("count", "slice", "clove")


@dataclass(frozen=True)
class PurchaseQuantity:
    need_amount: float
    need_unit: str
    buy_amount: float
    buy_unit: str
    reason: Optional[str] = None


def round_to_two(amount: float) -> float:
    """Half-up to 2 decimals; nudged so 1.005 does not truncate to 1.0."""
    if not math.isfinite(amount):
        return 0.0
    return math.floor((amount + sys.float_info.epsilon) * 100 + 0.5) / 100


def _to_lb(amount: float, unit: str) -> Optional[float]:
    if not math.isfinite(amount):
        return None
    if unit == "lb":
        return amount
    if unit == "oz":
        return amount / 16
    return None


def purchase_quantity(entry, profile: Optional[UnitProfile] = None) -> PurchaseQuantity:
    """Compute the buy quantity for a grocery entry (anything with amount/unit/category)."""
    need_amount = entry.amount
    need_unit = entry.unit
    category = getattr(entry, "category", None)

    buy_amount = need_amount
    buy_unit = need_unit
    reason = None

    need_lb = _to_lb(need_amount, need_unit) if is_meat(category) else None

    if need_lb is not None:
        buy_amount = math.ceil(max(1.0, need_lb))
        buy_unit = "lb"
        reason = "Commonly sold in ~1 lb increments"

    elif need_unit in COUNT_LIKE_UNITS:
        buy_amount = math.ceil(max(0.0, need_amount)) if math.isfinite(need_amount) else 0
        reason = "Count items are purchased whole"

    elif (
        profile is not None
        and profile.pack_size_amount
        and profile.pack_size_unit
        and profile.pack_size_unit == need_unit
        and math.isfinite(need_amount)
    ):
        pack_size = profile.pack_size_amount
        packs = math.ceil(max(0.0, need_amount) / pack_size)
        if profile.buy_unit_label:
            buy_amount = packs
            buy_unit = profile.buy_unit_label
        else:
            buy_amount = packs * pack_size
            buy_unit = profile.pack_size_unit
        reason = f"Sold in packs of {pack_size:g} {profile.pack_size_unit}"

    # Guardrails
    if not math.isfinite(buy_amount) or buy_amount < 0:
        buy_amount = 0.0

    return PurchaseQuantity(
        need_amount=round_to_two(need_amount),
        need_unit=need_unit,
        buy_amount=round_to_two(buy_amount),
        buy_unit=buy_unit,
        reason=reason,
    )
