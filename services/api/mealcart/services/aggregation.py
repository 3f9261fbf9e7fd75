"""
Grocery list aggregation.

Pure functions over list snapshots: a snapshot goes in, a new snapshot comes
out, nothing is mutated and nothing touches storage. Entries are matched on
``(name_normalized, unit)``; the same ingredient in two incompatible units
stays on two lines.
"""

import math
from dataclasses import dataclass, field
from typing import Literal, Optional, Sequence

from ..schemas import GroceryListEntry
from .unit_conversion import CanonicalizedIngredient, DEFAULT_CATEGORY

REMOVAL_EPSILON = 0.01


@dataclass
class AddResult:
    entries: list[GroceryListEntry]
    entry: Optional[GroceryListEntry]
    operation: Literal["insert", "update", "skip"]


@dataclass
class RemoveResult:
    entries: list[GroceryListEntry]
    delete_ids: list[str] = field(default_factory=list)
    update_ids: list[str] = field(default_factory=list)


@dataclass
class WritePlan:
    inserts: list[GroceryListEntry] = field(default_factory=list)
    updates: list[GroceryListEntry] = field(default_factory=list)
    delete_ids: list[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.inserts or self.updates or self.delete_ids)


def compute_scale(servings: float, base_servings: Optional[float] = None) -> float:
    """servings / base_servings when the base is usable, else servings."""
    if base_servings is not None and math.isfinite(base_servings) and base_servings > 0:
        return servings / base_servings
    return servings


def find_entry_index(
    entries: Sequence[GroceryListEntry], name_normalized: str, unit: str
) -> Optional[int]:
    for i, entry in enumerate(entries):
        if entry.name_normalized == name_normalized and entry.unit == unit:
            return i
    return None


def _scaled(amount: float, scale: float) -> float:
    scaled = amount * scale
    return scaled if math.isfinite(scaled) else amount


def add_contribution(
    entries: Sequence[GroceryListEntry],
    canonical: CanonicalizedIngredient,
    scale: float = 1.0,
    epsilon: float = REMOVAL_EPSILON,
) -> AddResult:
    """Fold one canonicalized ingredient into the list snapshot.

    A new line at or below ``epsilon`` is not created, so every entry on
    the list stays above it.
    """
    added = _scaled(canonical.amount, scale)
    idx = find_entry_index(entries, canonical.name_normalized, canonical.unit)

    if idx is not None:
        existing = entries[idx]
        updated = existing.model_copy(update={"amount": existing.amount + added})
        next_entries = list(entries)
        next_entries[idx] = updated
        return AddResult(entries=next_entries, entry=updated, operation="update")

    if added <= epsilon:
        return AddResult(entries=list(entries), entry=None, operation="skip")

    entry = GroceryListEntry(
        name=canonical.display_name,
        name_normalized=canonical.name_normalized,
        amount=added,
        unit=canonical.unit,
        category=canonical.category or DEFAULT_CATEGORY,
    )
    return AddResult(entries=[*entries, entry], entry=entry, operation="insert")


def remove_contribution(
    entries: Sequence[GroceryListEntry],
    canonical: CanonicalizedIngredient,
    scale: float = 1.0,
    epsilon: float = REMOVAL_EPSILON,
) -> RemoveResult:
    """Take one canonicalized ingredient back out of the list snapshot.

    Removing something that is not on the list is a no-op. An entry left at
    or below ``epsilon`` is dropped instead of keeping float residue.
    """
    idx = find_entry_index(entries, canonical.name_normalized, canonical.unit)
    if idx is None:
        return RemoveResult(entries=list(entries))

    existing = entries[idx]
    new_amount = existing.amount - _scaled(canonical.amount, scale)
    if not math.isfinite(new_amount):
        return RemoveResult(entries=list(entries))

    if new_amount <= epsilon:
        next_entries = [e for i, e in enumerate(entries) if i != idx]
        return RemoveResult(
            entries=next_entries,
            delete_ids=[existing.id] if existing.id else [],
        )

    next_entries = list(entries)
    next_entries[idx] = existing.model_copy(update={"amount": new_amount})
    return RemoveResult(
        entries=next_entries,
        update_ids=[existing.id] if existing.id else [],
    )


def plan_writes(
    before: Sequence[GroceryListEntry], after: Sequence[GroceryListEntry]
) -> WritePlan:
    """Diff two snapshots into the writes that turn one into the other.

    Entries without an id are new. Entries whose id disappeared are deleted.
    Only amount changes count as updates.
    """
    plan = WritePlan()
    before_by_id = {e.id: e for e in before if e.id}
    after_ids = set()

    for entry in after:
        if not entry.id:
            plan.inserts.append(entry)
            continue
        after_ids.add(entry.id)
        previous = before_by_id.get(entry.id)
        if previous is not None and previous.amount != entry.amount:
            plan.updates.append(entry)

    plan.delete_ids = [eid for eid in before_by_id if eid not in after_ids]
    return plan
