"""Grocery list operations.

Every mutation follows the same shape: read the user's snapshot, fold the
changes in memory with the pure aggregation functions, then apply the
resulting writes one at a time. The first failing write stops the batch;
writes already applied stay applied and the list reconciles on the next
read.
"""

import logging
from typing import Callable, Iterable, Optional

from ..errors import PersistenceFailure, PartialBatchFailure
from ..schemas import (
    GroceryCustomItemRequest,
    GroceryItemView,
    GroceryListEntry,
    GroceryListView,
    GroceryMutationResponse,
    IngredientMention,
    PurchaseQuantityOut,
    RecipeIn,
    UnitProfile,
)
from ..settings import settings
from .aggregation import (
    WritePlan,
    add_contribution,
    compute_scale,
    plan_writes,
    remove_contribution,
)
from .amount_format import format_amount
from .grocery_store import SqlGroceryListStore
from .ingredient_normalize import normalize_ingredient_name
from .purchase import purchase_quantity
from .unit_conversion import CanonicalizedIngredient, canonicalize_ingredient

logger = logging.getLogger("mealcart.grocery")

ProfileLookup = Callable[[Iterable[str]], dict[str, UnitProfile]]


def _canonicalize_all(
    ingredients: list[IngredientMention],
    lookup_profiles: ProfileLookup,
    honour_exclusions: bool = True,
) -> tuple[list[CanonicalizedIngredient], list[str]]:
    keys = [normalize_ingredient_name(ing.name) for ing in ingredients]
    profiles = lookup_profiles(set(keys))

    canonicals = []
    skipped = []
    for ing, key in zip(ingredients, keys):
        profile = profiles.get(key)
        if honour_exclusions and profile is not None and profile.exclude_always:
            skipped.append(key)
            continue
        canonicals.append(canonicalize_ingredient(ing, profile))
    return canonicals, skipped


def _apply_plan(
    store: SqlGroceryListStore,
    user_id: str,
    plan: WritePlan,
    skipped: Optional[list[str]] = None,
) -> GroceryMutationResponse:
    result = GroceryMutationResponse(skipped=sorted(set(skipped or [])))
    applied = 0

    ops = [("insert", entry) for entry in plan.inserts]
    ops += [("update", entry) for entry in plan.updates]
    if plan.delete_ids:
        ops.append(("delete", plan.delete_ids))

    for operation, payload in ops:
        try:
            if operation == "insert":
                store.insert_entry(user_id, payload)
                result.inserted += 1
            elif operation == "update":
                store.update_entry(user_id, payload.id, amount=payload.amount)
                result.updated += 1
            else:
                result.deleted += store.delete_entries(user_id, payload)
        except PersistenceFailure as e:
            logger.error(
                f"Grocery batch for {user_id} stopped at {operation} "
                f"after {applied}/{len(ops)} writes: {e}"
            )
            if applied:
                raise PartialBatchFailure(str(e), operation=operation, applied=applied) from e
            raise
        applied += 1

    logger.info(
        f"Grocery list {user_id}: +{result.inserted} ~{result.updated} "
        f"-{result.deleted} (skipped {len(result.skipped)})"
    )
    return result


def add_to_grocery_list(
    store: SqlGroceryListStore,
    lookup_profiles: ProfileLookup,
    user_id: str,
    recipe: RecipeIn,
    servings: float = 1,
    base_servings: Optional[float] = None,
) -> GroceryMutationResponse:
    """Add a recipe's ingredients, scaled to ``servings``.

    Not idempotent: adding the same recipe twice doubles its contribution.
    """
    scale = compute_scale(servings, base_servings)
    canonicals, skipped = _canonicalize_all(recipe.ingredients, lookup_profiles)

    before = store.list_entries(user_id)
    after = before
    for canonical in canonicals:
        after = add_contribution(
            after, canonical, scale, epsilon=settings.removal_epsilon
        ).entries

    return _apply_plan(store, user_id, plan_writes(before, after), skipped)


def remove_ingredients_for_recipe(
    store: SqlGroceryListStore,
    lookup_profiles: ProfileLookup,
    user_id: str,
    recipe: RecipeIn,
    servings: float = 1,
    base_servings: Optional[float] = None,
) -> GroceryMutationResponse:
    """Take a recipe's scaled contribution back off the list."""
    scale = compute_scale(servings, base_servings)
    canonicals, skipped = _canonicalize_all(recipe.ingredients, lookup_profiles)

    before = store.list_entries(user_id)
    after = before
    for canonical in canonicals:
        after = remove_contribution(
            after, canonical, scale, epsilon=settings.removal_epsilon
        ).entries

    return _apply_plan(store, user_id, plan_writes(before, after), skipped)


def add_custom_item(
    store: SqlGroceryListStore,
    lookup_profiles: ProfileLookup,
    user_id: str,
    item: GroceryCustomItemRequest,
) -> GroceryMutationResponse:
    """Add one hand-typed item. Typed items are kept even when a profile
    would normally exclude them from generated lists."""
    mention = IngredientMention(
        name=item.name,
        amount=item.amount or 1,
        unit=item.unit,
        category=item.category,
    )
    canonicals, _ = _canonicalize_all([mention], lookup_profiles, honour_exclusions=False)

    before = store.list_entries(user_id)
    after = before
    for canonical in canonicals:
        after = add_contribution(
            after, canonical, epsilon=settings.removal_epsilon
        ).entries

    return _apply_plan(store, user_id, plan_writes(before, after))


def set_item_checked(
    store: SqlGroceryListStore, user_id: str, item_id: str, is_checked: bool
) -> Optional[GroceryListEntry]:
    return store.update_entry(user_id, item_id, is_checked=is_checked)


def set_all_checked(
    store: SqlGroceryListStore, user_id: str, ids: list[str], is_checked: bool
) -> int:
    return store.set_checked(user_id, ids, is_checked)


def remove_item(store: SqlGroceryListStore, user_id: str, item_id: str) -> bool:
    return store.delete_entries(user_id, [item_id]) > 0


def clear_gathered(store: SqlGroceryListStore, user_id: str) -> int:
    gathered = [e.id for e in store.list_entries(user_id) if e.is_checked and e.id]
    return store.delete_entries(user_id, gathered)


def build_item_view(entry: GroceryListEntry, profile: Optional[UnitProfile]) -> GroceryItemView:
    purchase = purchase_quantity(entry, profile)
    return GroceryItemView(
        id=entry.id,
        name=entry.name,
        name_normalized=entry.name_normalized,
        amount=entry.amount,
        unit=entry.unit,
        category=entry.category,
        is_checked=entry.is_checked,
        amount_display=format_amount(entry.amount, entry.unit),
        purchase=PurchaseQuantityOut(
            need_amount=purchase.need_amount,
            need_unit=purchase.need_unit,
            buy_amount=purchase.buy_amount,
            buy_unit=purchase.buy_unit,
            reason=purchase.reason,
        ),
        pantry_staple=bool(profile and profile.pantry_staple),
    )


def list_items(
    store: SqlGroceryListStore, lookup_profiles: ProfileLookup, user_id: str
) -> GroceryListView:
    """Current list with display amounts and buy quantities."""
    entries = store.list_entries(user_id)
    profiles = lookup_profiles({e.name_normalized for e in entries})

    items = [build_item_view(e, profiles.get(e.name_normalized)) for e in entries]
    return GroceryListView(
        items=items,
        total=len(items),
        checked=sum(1 for i in items if i.is_checked),
    )
