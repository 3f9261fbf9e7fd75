from functools import partial

import pytest

from mealcart.errors import PartialBatchFailure, PersistenceFailure
from mealcart.schemas import GroceryCustomItemRequest, RecipeIn
from mealcart.services.grocery_list import (
    add_custom_item,
    add_to_grocery_list,
    clear_gathered,
    list_items,
    remove_ingredients_for_recipe,
    remove_item,
    set_all_checked,
    set_item_checked,
)
from mealcart.services.grocery_store import SqlGroceryListStore
from mealcart.services.unit_profiles import fetch_unit_profiles

USER = "user-1"

BURGER = RecipeIn(id="1", title="Burger", ingredients=[
    {"name": "Ground Beef", "amount": 1, "unit": "lb"},
    {"name": "Onion", "amount": 1, "unit": "count"},
])
STROGANOFF = RecipeIn(id="2", title="Stroganoff", ingredients=[
    {"name": "Ground Beef", "amount": 1, "unit": "lb"},
    {"name": "Mushroom", "amount": 8, "unit": "oz"},
])


@pytest.fixture
def events():
    return []


@pytest.fixture
def store(db_session, events):
    return SqlGroceryListStore(db_session, publish=events.append)


@pytest.fixture
def lookup(db_session):
    return partial(fetch_unit_profiles, db_session)


def by_name(store):
    return {e.name_normalized: e for e in store.list_entries(USER)}


def test_recipes_aggregate(store, lookup):
    res = add_to_grocery_list(store, lookup, USER, BURGER)
    assert (res.inserted, res.updated, res.deleted) == (2, 0, 0)

    res = add_to_grocery_list(store, lookup, USER, STROGANOFF)
    assert (res.inserted, res.updated) == (1, 1)

    items = by_name(store)
    assert len(items) == 3
    assert items["ground beef"].amount == 2
    assert items["ground beef"].unit == "lb"
    assert items["mushroom"].unit == "oz"


def test_adding_twice_doubles(store, lookup):
    add_to_grocery_list(store, lookup, USER, BURGER)
    add_to_grocery_list(store, lookup, USER, BURGER)
    assert by_name(store)["onion"].amount == 2


def test_servings_scale_contribution(store, lookup):
    add_to_grocery_list(store, lookup, USER, STROGANOFF, servings=2, base_servings=4)
    items = by_name(store)
    assert items["ground beef"].amount == pytest.approx(0.5)
    assert items["mushroom"].amount == pytest.approx(4)


def test_remove_recipe_restores_previous_list(store, lookup):
    add_to_grocery_list(store, lookup, USER, BURGER)
    add_to_grocery_list(store, lookup, USER, STROGANOFF)

    res = remove_ingredients_for_recipe(store, lookup, USER, STROGANOFF)
    assert (res.updated, res.deleted) == (1, 1)

    items = by_name(store)
    assert set(items) == {"ground beef", "onion"}
    assert items["ground beef"].amount == pytest.approx(1)


def test_remove_leaving_residue_within_epsilon_deletes(store, lookup):
    add_to_grocery_list(store, lookup, USER, RecipeIn(ingredients=[
        {"name": "Ground Beef", "amount": 1.0, "unit": "lb"},
        {"name": "Onion", "amount": 1.0, "unit": "count"},
    ]))

    res = remove_ingredients_for_recipe(store, lookup, USER, RecipeIn(ingredients=[
        {"name": "Ground Beef", "amount": 0.995, "unit": "lb"},
        {"name": "Onion", "amount": 0.985, "unit": "count"},
    ]))
    assert (res.updated, res.deleted) == (1, 1)

    items = by_name(store)
    assert set(items) == {"onion"}
    assert items["onion"].amount == pytest.approx(0.015)


def test_tiny_scaled_contribution_adds_no_line(store, lookup):
    recipe = RecipeIn(ingredients=[
        {"name": "Saffron", "amount": 1, "unit": "pinch"},
        {"name": "Rice", "amount": 400, "unit": "g"},
    ])
    res = add_to_grocery_list(store, lookup, USER, recipe, servings=1, base_servings=200)
    assert res.inserted == 1

    items = by_name(store)
    assert set(items) == {"rice"}
    assert all(e.amount > 0.01 for e in items.values())


def test_remove_recipe_not_on_list_is_noop(store, lookup):
    res = remove_ingredients_for_recipe(store, lookup, USER, BURGER)
    assert (res.inserted, res.updated, res.deleted) == (0, 0, 0)


def test_lists_are_per_user(store, lookup):
    add_to_grocery_list(store, lookup, USER, BURGER)
    assert store.list_entries("someone-else") == []


def test_profiles_shape_the_list(store, lookup, add_profile):
    add_profile("onion", canonical_unit="count", grams_per_count=150)
    add_profile("water", canonical_unit="ml", exclude_always=True)

    recipe = RecipeIn(ingredients=[
        {"name": "Onions, diced", "amount": 300, "unit": "g"},
        {"name": "Water", "amount": 2, "unit": "cup"},
    ])
    res = add_to_grocery_list(store, lookup, USER, recipe)
    assert res.skipped == ["water"]

    items = by_name(store)
    assert set(items) == {"onion"}
    assert items["onion"].unit == "count"
    assert items["onion"].amount == pytest.approx(2)


def test_custom_item_ignores_exclusions(store, lookup, add_profile):
    add_profile("water", canonical_unit="ml", exclude_always=True)
    res = add_custom_item(store, lookup, USER, GroceryCustomItemRequest(name="Sparkling Water"))
    assert res.inserted == 1
    res = add_custom_item(store, lookup, USER, GroceryCustomItemRequest(name="Water", unit="l", amount=1))
    assert res.inserted == 1

    items = by_name(store)
    assert items["sparkling water"].amount == 1
    assert items["sparkling water"].unit == "count"
    assert (items["water"].amount, items["water"].unit) == (1000, "ml")


def test_check_uncheck_and_clear(store, lookup):
    add_to_grocery_list(store, lookup, USER, STROGANOFF)
    items = by_name(store)
    beef_id = items["ground beef"].id

    entry = set_item_checked(store, USER, beef_id, True)
    assert entry.is_checked is True
    assert set_item_checked(store, USER, "missing", True) is None

    assert clear_gathered(store, USER) == 1
    assert set(by_name(store)) == {"mushroom"}


def test_bulk_check(store, lookup):
    add_to_grocery_list(store, lookup, USER, BURGER)
    ids = [e.id for e in store.list_entries(USER)]
    assert set_all_checked(store, USER, ids, True) == 2
    assert all(e.is_checked for e in store.list_entries(USER))
    assert set_all_checked(store, USER, [], True) == 0


def test_remove_item(store, lookup):
    add_to_grocery_list(store, lookup, USER, BURGER)
    onion_id = by_name(store)["onion"].id
    assert remove_item(store, USER, onion_id) is True
    assert remove_item(store, USER, onion_id) is False
    # Another user's id is not ours to delete
    beef_id = by_name(store)["ground beef"].id
    assert remove_item(store, "someone-else", beef_id) is False


def test_committed_writes_are_announced(store, lookup, events):
    add_to_grocery_list(store, lookup, USER, BURGER)
    assert [e.type for e in events] == ["insert", "insert"]
    assert all(e.user_id == USER for e in events)

    onion_id = by_name(store)["onion"].id
    remove_item(store, USER, onion_id)
    assert events[-1].type == "delete"
    assert events[-1].ids == [onion_id]


def test_list_view(store, lookup, add_profile):
    add_profile("olive oil", canonical_unit="tbsp", pantry_staple=True)
    recipe = RecipeIn(ingredients=[
        {"name": "Ground Beef", "amount": 12, "unit": "oz", "category": "Meat"},
        {"name": "Olive Oil", "amount": 1.5, "unit": "tbsp"},
    ])
    add_to_grocery_list(store, lookup, USER, recipe)

    view = list_items(store, lookup, USER)
    assert (view.total, view.checked) == (2, 0)
    items = {i.name_normalized: i for i in view.items}

    beef = items["ground beef"]
    assert beef.unit == "lb"
    assert beef.amount_display == "0.75"
    assert (beef.purchase.buy_amount, beef.purchase.buy_unit) == (1, "lb")

    oil = items["olive oil"]
    assert oil.amount_display == "1 1/2"
    assert oil.pantry_staple is True


# --- Failure handling ---

class FailingUpdateStore(SqlGroceryListStore):
    def update_entry(self, user_id, entry_id, **kw):
        raise PersistenceFailure("Grocery list update failed", operation="update")


class FailingInsertStore(SqlGroceryListStore):
    def insert_entry(self, user_id, entry):
        raise PersistenceFailure("Grocery list insert failed", operation="insert")


def test_failure_after_applied_writes_is_partial(db_session, store, lookup):
    add_to_grocery_list(store, lookup, USER, BURGER)

    failing = FailingUpdateStore(db_session, publish=None)
    with pytest.raises(PartialBatchFailure) as exc:
        add_to_grocery_list(failing, lookup, USER, STROGANOFF)
    assert exc.value.applied == 1
    assert exc.value.operation == "update"

    # The mushroom insert went through; beef was not updated
    items = by_name(store)
    assert "mushroom" in items
    assert items["ground beef"].amount == 1


def test_failure_on_first_write_is_plain(db_session, lookup):
    failing = FailingInsertStore(db_session, publish=None)
    with pytest.raises(PersistenceFailure) as exc:
        add_to_grocery_list(failing, lookup, USER, BURGER)
    assert not isinstance(exc.value, PartialBatchFailure)
