"""
Router for unit helpers: formatting, canonicalization preview, purchase
quantities and read-only unit profile lookup.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..deps import get_profile_lookup
from ..schemas import (
    CanonicalIngredientOut,
    IngredientMention,
    PurchaseQuantityOut,
    UnitFormatRequest,
    UnitFormatResponse,
    UnitProfileListResponse,
    UnitPurchaseRequest,
)
from ..services.amount_format import format_amount
from ..services.grocery_list import ProfileLookup
from ..services.ingredient_normalize import normalize_ingredient_name
from ..services.purchase import purchase_quantity
from ..services.unit_conversion import canonicalize_ingredient

router = APIRouter()


@router.post("/format", response_model=UnitFormatResponse)
def format_units(req: UnitFormatRequest):
    return UnitFormatResponse(text=format_amount(req.amount, req.unit))


@router.post("/canonicalize", response_model=CanonicalIngredientOut)
def canonicalize_units(
    req: IngredientMention,
    lookup: ProfileLookup = Depends(get_profile_lookup),
):
    """Show how an ingredient would be stored on the grocery list."""
    key = normalize_ingredient_name(req.name)
    profile = lookup([key]).get(key)
    canonical = canonicalize_ingredient(req, profile)
    return CanonicalIngredientOut(
        name_normalized=canonical.name_normalized,
        display_name=canonical.display_name,
        amount=canonical.amount,
        unit=canonical.unit,
        category=canonical.category,
        profile_applied=profile is not None,
    )


@router.post("/purchase", response_model=PurchaseQuantityOut)
def purchase_units(
    req: UnitPurchaseRequest,
    lookup: ProfileLookup = Depends(get_profile_lookup),
):
    key = normalize_ingredient_name(req.name)
    profile = lookup([key]).get(key)
    pq = purchase_quantity(req, profile)
    return PurchaseQuantityOut(
        need_amount=pq.need_amount,
        need_unit=pq.need_unit,
        buy_amount=pq.buy_amount,
        buy_unit=pq.buy_unit,
        reason=pq.reason,
    )


@router.get("/profiles", response_model=UnitProfileListResponse)
def list_profiles(
    names: Optional[list[str]] = Query(None),
    lookup: ProfileLookup = Depends(get_profile_lookup),
):
    """Profiles for the given ingredient names (normalized before lookup)."""
    keys = {normalize_ingredient_name(n) for n in (names or [])}
    profiles = lookup(keys)
    return UnitProfileListResponse(items=[profiles[k] for k in sorted(profiles)])
