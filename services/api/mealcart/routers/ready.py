import logging

from fastapi import APIRouter, Depends
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mealcart.db import get_db
from mealcart.infra.redis_client import get_redis

router = APIRouter()
logger = logging.getLogger("mealcart.ready")


@router.get("/ready")
async def ready(db: Session = Depends(get_db)):
    redis_ok = False
    try:
        r = await get_redis()
        redis_ok = bool(await r.ping())
    except RedisError as e:
        logger.warning(f"Redis not ready: {e}")

    db_ok = False
    try:
        db.execute(text("SELECT 1"))
        db_ok = True
    except SQLAlchemyError as e:
        logger.warning(f"Database not ready: {e}")

    return {"ok": True, "redis_ok": redis_ok, "db_ok": db_ok}
