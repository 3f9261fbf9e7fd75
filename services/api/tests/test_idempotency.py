import pytest
import uuid
import json
from unittest.mock import patch, AsyncMock
from fakeredis import FakeAsyncRedis
from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse

from mealcart.infra.idempotency import (
    idempotency_clear_key,
    idempotency_precheck,
    idempotency_store_result,
)

# --- Mocking Redis ---

@pytest.fixture
def fake_redis():
    return FakeAsyncRedis(decode_responses=True)


@pytest.fixture
def patch_redis_client(fake_redis):
    # Patch the get_redis used inside idempotency module
    with patch("mealcart.infra.idempotency.get_redis", return_value=fake_redis):
        yield


def make_request(idem_key=None, body=b'{"name": "Milk"}'):
    req = AsyncMock(spec=Request)
    req.headers = {"Idempotency-Key": idem_key} if idem_key else {}
    req.method = "POST"
    req.url.path = "/api/grocery/items"
    req.body = AsyncMock(return_value=body)
    return req


# --- Unit Tests for Logic ---

@pytest.mark.asyncio
async def test_precheck_without_header_proceeds(patch_redis_client):
    assert await idempotency_precheck(make_request(), user_id="u1", route_key="test") is None


@pytest.mark.asyncio
async def test_idempotency_flow(fake_redis, patch_redis_client):
    idem_key = str(uuid.uuid4())
    req = make_request(idem_key)

    # 1. First call -> returns key to proceed
    res = await idempotency_precheck(req, user_id="u1", route_key="add_item")
    assert isinstance(res, tuple)
    rkey, rhash, body = res
    assert rkey == f"mealcart:idemp:u1:add_item:{idem_key}"
    assert b"Milk" in body

    data = json.loads(await fake_redis.get(rkey))
    assert data["state"] == "processing"

    # 2. Concurrent retry -> 409
    with pytest.raises(HTTPException) as exc:
        await idempotency_precheck(req, user_id="u1", route_key="add_item")
    assert exc.value.status_code == 409

    # 3. Store result
    await idempotency_store_result(rkey, rhash, status=200, body={"inserted": 1})
    data = json.loads(await fake_redis.get(rkey))
    assert data["state"] == "done"

    # 4. Replay
    res2 = await idempotency_precheck(req, user_id="u1", route_key="add_item")
    assert isinstance(res2, JSONResponse)
    assert json.loads(res2.body) == {"inserted": 1}
    assert res2.status_code == 200


@pytest.mark.asyncio
async def test_key_reused_with_different_payload(patch_redis_client):
    idem_key = str(uuid.uuid4())
    res = await idempotency_precheck(make_request(idem_key), user_id="u1", route_key="add_item")
    await idempotency_store_result(res[0], res[1], status=200, body={"inserted": 1})

    with pytest.raises(HTTPException) as exc:
        await idempotency_precheck(
            make_request(idem_key, body=b'{"name": "Eggs"}'), user_id="u1", route_key="add_item"
        )
    assert exc.value.status_code == 409


@pytest.mark.asyncio
async def test_clear_key_allows_retry(fake_redis, patch_redis_client):
    idem_key = str(uuid.uuid4())
    res = await idempotency_precheck(make_request(idem_key), user_id="u1", route_key="add_item")
    await idempotency_clear_key(res[0])
    assert await fake_redis.get(res[0]) is None

    again = await idempotency_precheck(make_request(idem_key), user_id="u1", route_key="add_item")
    assert isinstance(again, tuple)

    # No key, nothing to clear
    await idempotency_clear_key(None)


# --- Integration Test with DB and Client ---

BURGER = {
    "ingredients": [
        {"name": "Ground Beef", "amount": 1, "unit": "lb"},
        {"name": "Onion", "amount": 1, "unit": "count"},
    ],
}


def test_double_submit_adds_recipe_once(client, user_headers):
    headers = {**user_headers, "Idempotency-Key": str(uuid.uuid4())}

    resp1 = client.post("/api/grocery/recipes", json={"recipe": BURGER}, headers=headers)
    assert resp1.status_code == 200, resp1.text
    resp2 = client.post("/api/grocery/recipes", json={"recipe": BURGER}, headers=headers)
    assert resp2.status_code == 200, resp2.text
    assert resp1.json() == resp2.json()

    items = client.get("/api/grocery", headers=user_headers).json()["items"]
    onion = next(i for i in items if i["name_normalized"] == "onion")
    assert onion["amount"] == 1


def test_without_key_adding_twice_adds_twice(client, user_headers):
    client.post("/api/grocery/recipes", json={"recipe": BURGER}, headers=user_headers)
    client.post("/api/grocery/recipes", json={"recipe": BURGER}, headers=user_headers)

    items = client.get("/api/grocery", headers=user_headers).json()["items"]
    onion = next(i for i in items if i["name_normalized"] == "onion")
    assert onion["amount"] == 2
