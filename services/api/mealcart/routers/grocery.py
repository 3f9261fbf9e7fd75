import json
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, StreamingResponse

from .. import schemas
from ..deps import get_user_id, get_grocery_store, get_profile_lookup
from ..errors import PersistenceFailure
from ..infra.idempotency import idempotency_precheck, idempotency_store_result, idempotency_clear_key
from ..realtime.grocery_bus import subscribe_user
from ..services.grocery_store import SqlGroceryListStore
from ..services.grocery_list import (
    ProfileLookup,
    add_custom_item,
    add_to_grocery_list,
    clear_gathered,
    list_items,
    remove_ingredients_for_recipe,
    remove_item,
    set_all_checked,
    set_item_checked,
)

router = APIRouter()
logger = logging.getLogger("mealcart.grocery")

RETRY_DETAIL = "Could not update grocery list, please retry"


def _unavailable(e: PersistenceFailure) -> HTTPException:
    # Users see success or a retryable failure, never per-item results
    logger.error(f"Grocery list write failed ({e.operation}): {e}")
    return HTTPException(status_code=503, detail=RETRY_DETAIL)


async def _idempotent(request: Request, user_id: str, route_key: str, run):
    """Run a mutation under an optional Idempotency-Key."""
    pre = await idempotency_precheck(request, user_id=user_id, route_key=route_key)
    if isinstance(pre, JSONResponse):
        return pre
    redis_key: Optional[str] = pre[0] if pre else None

    try:
        result = run()
    except PersistenceFailure as e:
        await idempotency_clear_key(redis_key)
        raise _unavailable(e)
    except Exception:
        await idempotency_clear_key(redis_key)
        raise

    if pre:
        await idempotency_store_result(redis_key, pre[1], status=200, body=result.model_dump(mode="json"))
    return result


@router.get("", response_model=schemas.GroceryListView)
def get_grocery_list(
    user_id: str = Depends(get_user_id),
    store: SqlGroceryListStore = Depends(get_grocery_store),
    lookup: ProfileLookup = Depends(get_profile_lookup),
):
    """Current list with display amounts and buy quantities."""
    try:
        return list_items(store, lookup, user_id)
    except PersistenceFailure as e:
        raise _unavailable(e)


@router.post("/recipes", response_model=schemas.GroceryMutationResponse)
async def add_recipe_to_list(
    request: Request,
    body: schemas.GroceryRecipeRequest,
    user_id: str = Depends(get_user_id),
    store: SqlGroceryListStore = Depends(get_grocery_store),
    lookup: ProfileLookup = Depends(get_profile_lookup),
):
    """Merge a recipe's ingredients into the list."""
    return await _idempotent(
        request, user_id, "grocery_add_recipe",
        lambda: add_to_grocery_list(
            store, lookup, user_id, body.recipe,
            servings=body.servings, base_servings=body.base_servings,
        ),
    )


@router.post("/recipes/remove", response_model=schemas.GroceryMutationResponse)
def remove_recipe_from_list(
    body: schemas.GroceryRecipeRequest,
    user_id: str = Depends(get_user_id),
    store: SqlGroceryListStore = Depends(get_grocery_store),
    lookup: ProfileLookup = Depends(get_profile_lookup),
):
    """Take a recipe's contribution back off the list."""
    try:
        return remove_ingredients_for_recipe(
            store, lookup, user_id, body.recipe,
            servings=body.servings, base_servings=body.base_servings,
        )
    except PersistenceFailure as e:
        raise _unavailable(e)


@router.post("/items", response_model=schemas.GroceryMutationResponse)
async def add_item(
    request: Request,
    body: schemas.GroceryCustomItemRequest,
    user_id: str = Depends(get_user_id),
    store: SqlGroceryListStore = Depends(get_grocery_store),
    lookup: ProfileLookup = Depends(get_profile_lookup),
):
    """Add a hand-typed item."""
    return await _idempotent(
        request, user_id, "grocery_add_item",
        lambda: add_custom_item(store, lookup, user_id, body),
    )


@router.post("/items/check")
def check_items(
    body: schemas.GroceryBulkCheckRequest,
    user_id: str = Depends(get_user_id),
    store: SqlGroceryListStore = Depends(get_grocery_store),
):
    """Check or uncheck several items at once."""
    try:
        updated = set_all_checked(store, user_id, body.ids, body.is_checked)
    except PersistenceFailure as e:
        raise _unavailable(e)
    return {"updated": updated}


@router.patch("/items/{item_id}", response_model=schemas.GroceryListEntry)
def update_item(
    item_id: str,
    body: schemas.GroceryItemCheckUpdate,
    user_id: str = Depends(get_user_id),
    store: SqlGroceryListStore = Depends(get_grocery_store),
):
    """Toggle an item's gathered state."""
    try:
        entry = set_item_checked(store, user_id, item_id, body.is_checked)
    except PersistenceFailure as e:
        raise _unavailable(e)
    if entry is None:
        raise HTTPException(status_code=404, detail="Item not found")
    return entry


@router.delete("/items/{item_id}", status_code=204)
def delete_item(
    item_id: str,
    user_id: str = Depends(get_user_id),
    store: SqlGroceryListStore = Depends(get_grocery_store),
):
    try:
        removed = remove_item(store, user_id, item_id)
    except PersistenceFailure as e:
        raise _unavailable(e)
    if not removed:
        raise HTTPException(status_code=404, detail="Item not found")
    return


@router.delete("/gathered")
def delete_gathered(
    user_id: str = Depends(get_user_id),
    store: SqlGroceryListStore = Depends(get_grocery_store),
):
    """Drop every checked item."""
    try:
        deleted = clear_gathered(store, user_id)
    except PersistenceFailure as e:
        raise _unavailable(e)
    return {"deleted": deleted}


@router.get("/events")
async def grocery_events(
    request: Request,
    user_id: str = Depends(get_user_id),
):
    """Server-Sent Events relay of list changes via Redis Pub/Sub."""

    async def event_generator():
        pubsub = await subscribe_user(user_id)
        try:
            while True:
                if await request.is_disconnected():
                    break
                message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=15.0)
                if message:
                    data_str = message["data"]
                    if isinstance(data_str, bytes):
                        data_str = data_str.decode("utf-8")
                    yield f"event: change\ndata: {data_str}\n\n"
                else:
                    payload = json.dumps({"type": "heartbeat", "ts": datetime.now(timezone.utc).isoformat()})
                    yield f"event: ping\ndata: {payload}\n\n"
        finally:
            await pubsub.unsubscribe()
            await pubsub.close()

    return StreamingResponse(event_generator(), media_type="text/event-stream")
