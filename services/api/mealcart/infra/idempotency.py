"""Idempotency-Key replay for list mutations.

A double-clicked "add to list" sends the same key twice; the second request
replays the first response instead of adding the recipe again. Requests
without the header are not deduplicated: adding a recipe twice on purpose
adds it twice.
"""

import hashlib
import json
import logging
from datetime import datetime, timezone
from typing import Optional, Union

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError

from mealcart.infra.redis_client import get_redis
from mealcart.settings import settings

logger = logging.getLogger("mealcart.idempotency")


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _hash_request(method: str, path: str, body_bytes: bytes) -> str:
    h = hashlib.sha256()
    h.update(method.encode("utf-8"))
    h.update(b"|")
    h.update(path.encode("utf-8"))
    h.update(b"|")
    h.update(body_bytes or b"")
    return h.hexdigest()


def _idemp_redis_key(user_id: str, route_key: str, idem_key: str) -> str:
    return f"mealcart:idemp:{user_id}:{route_key}:{idem_key}"


async def idempotency_precheck(
    request: Request, *, user_id: str, route_key: str
) -> Union[tuple[str, str, bytes], JSONResponse, None]:
    """Return (redis_key, request_hash, body_bytes) if the caller should proceed,
    a JSONResponse to replay, or None when the request carries no key."""
    idem_key = request.headers.get("Idempotency-Key")
    if not idem_key:
        return None

    body_bytes = await request.body()
    req_hash = _hash_request(request.method, request.url.path, body_bytes)

    rkey = _idemp_redis_key(user_id, route_key, idem_key)
    r = await get_redis()

    raw = await r.get(rkey)
    if raw:
        data = json.loads(raw)
        # Same key, different payload: almost certainly a client bug
        if data.get("request_hash") and data["request_hash"] != req_hash:
            raise HTTPException(status_code=409, detail="Idempotency-Key reused with different request payload")
        if data.get("state") == "done":
            return JSONResponse(content=data.get("body"), status_code=int(data.get("status", 200)))
        raise HTTPException(status_code=409, detail="Request with this Idempotency-Key is still processing. Retry shortly.")

    processing_payload = {
        "state": "processing",
        "status": None,
        "body": None,
        "created_at": _iso_now(),
        "completed_at": None,
        "request_hash": req_hash,
    }
    ok = await r.set(rkey, json.dumps(processing_payload), ex=settings.idempotency_processing_ttl_sec, nx=True)
    if not ok:
        raise HTTPException(status_code=409, detail="Request with this Idempotency-Key is still processing. Retry shortly.")

    return (rkey, req_hash, body_bytes)


async def idempotency_store_result(redis_key: str, req_hash: str, *, status: int, body: dict):
    r = await get_redis()
    payload = {
        "state": "done",
        "status": int(status),
        "body": body,
        "created_at": None,
        "completed_at": _iso_now(),
        "request_hash": req_hash,
    }
    await r.set(redis_key, json.dumps(payload), ex=settings.idempotency_ttl_sec)


async def idempotency_clear_key(redis_key: Optional[str]):
    """Release the key after a failed request so the client can retry."""
    if not redis_key:
        return
    try:
        r = await get_redis()
        await r.delete(redis_key)
    except RedisError as e:
        logger.warning(f"Failed to clear idempotency key {redis_key}: {e}")
