"""FastAPI dependencies for the mealcart API.

Provides:
- Database session dependency
- Caller resolution (X-User-Id, set by the auth layer in front of us)
- Grocery store and unit profile lookup, injected per request
"""

from functools import partial
from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from .db import get_db
from .services.grocery_store import SqlGroceryListStore
from .services.grocery_list import ProfileLookup
from .services.unit_profiles import fetch_unit_profiles


def get_user_id(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
) -> str:
    """Resolve the caller.

    Raises:
        HTTPException 401 if the header is missing or blank
    """
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="User not authenticated")
    return user_id


def get_grocery_store(db: Session = Depends(get_db)) -> SqlGroceryListStore:
    return SqlGroceryListStore(db)


def get_profile_lookup(db: Session = Depends(get_db)) -> ProfileLookup:
    return partial(fetch_unit_profiles, db)
