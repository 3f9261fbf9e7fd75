"""Unit profile lookup against the curated reference table."""

import logging
from typing import Iterable, Optional

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import ReferenceDataUnavailable
from ..models import IngredientUnitProfile
from ..schemas import UnitProfile

logger = logging.getLogger("mealcart.profiles")


def _select_profiles(db: Session, names: list[str]) -> list[IngredientUnitProfile]:
    try:
        return list(db.scalars(
            select(IngredientUnitProfile).where(
                IngredientUnitProfile.name_normalized.in_(names)
            )
        ).all())
    except SQLAlchemyError as e:
        db.rollback()
        raise ReferenceDataUnavailable(f"Unit profile query failed: {e}") from e


def fetch_unit_profiles(db: Session, names: Iterable[str]) -> dict[str, UnitProfile]:
    """Return ``{name_normalized: profile}`` for the names that have one.

    Missing profiles are simply absent. A storage failure is logged and
    yields an empty mapping; callers fall back to built-in conversions.
    """
    wanted = sorted({n for n in names if n})
    if not wanted:
        return {}

    try:
        rows = _select_profiles(db, wanted)
    except ReferenceDataUnavailable as e:
        logger.warning(f"Unit profiles unavailable, using fallback conversions: {e}")
        return {}

    profiles: dict[str, UnitProfile] = {}
    for row in rows:
        try:
            profile = UnitProfile.model_validate(row)
        except ValidationError as e:
            logger.warning(f"Skipping malformed unit profile '{row.name_normalized}': {e}")
            continue
        profiles[profile.name_normalized] = profile
    return profiles


def fetch_unit_profile(db: Session, name_normalized: str) -> Optional[UnitProfile]:
    return fetch_unit_profiles(db, [name_normalized]).get(name_normalized)
