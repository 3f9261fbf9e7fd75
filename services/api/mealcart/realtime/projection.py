"""In-memory projection of a grocery list driven by change events.

Clients (or a server-side cache) keep a snapshot and fold events from the
change channel into it. Events may arrive out of order with the snapshot
they were read against, so inserts and updates both upsert by id.
"""

from typing import Sequence

from mealcart.schemas import GroceryChangeEvent, GroceryListEntry


def apply_change_event(
    entries: Sequence[GroceryListEntry], event: GroceryChangeEvent
) -> list[GroceryListEntry]:
    if event.type == "delete":
        gone = set(event.ids)
        return [e for e in entries if e.id not in gone]

    entry = event.entry
    if entry is None or not entry.id:
        return list(entries)

    for i, existing in enumerate(entries):
        if existing.id == entry.id:
            updated = list(entries)
            updated[i] = entry
            return updated

    # Newest first, like a fresh read
    return [entry, *entries]
