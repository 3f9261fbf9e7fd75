"""
Unit canonicalization for grocery aggregation.

Only safe same-family conversions are performed: mass via grams, volume via
millilitres, and mass -> count when a profile knows the weight of one item.
Cups, spoons and discrete units are never converted; mixing them up would
change the shopping list in ways nobody asked for.
"""

import math
from dataclasses import dataclass
from typing import Optional, Tuple, Literal

from ..schemas import IngredientMention, UnitProfile
from ..settings import settings
from .ingredient_normalize import normalize_ingredient_name

# --- Types ---

UnitFamily = Literal["mass", "volume", "discrete"]


@dataclass(frozen=True)
class CanonicalizedIngredient:
    name_normalized: str
    display_name: str
    amount: float
    unit: str
    category: str


# --- Data Tables ---

GRAMS_PER_OZ = 28.349523125
GRAMS_PER_LB = 453.59237

# Unit -> (family, factor_to_base)
# Base units: g (mass), ml (volume). Discrete units have no base.
UNITS_DB = {
    # Mass (base: g)
    "g": ("mass", 1.0),
    "kg": ("mass", 1000.0),
    "oz": ("mass", GRAMS_PER_OZ),
    "lb": ("mass", GRAMS_PER_LB),

    # Volume (base: ml)
    "ml": ("volume", 1.0),
    "l": ("volume", 1000.0),

    # No built-in conversion
    "cup": ("discrete", None),
    "tbsp": ("discrete", None),
    "tsp": ("discrete", None),
    "count": ("discrete", None),
    "slice": ("discrete", None),
    "clove": ("discrete", None),
    "pinch": ("discrete", None),
}

MASS_UNITS = frozenset(u for u, (fam, _) in UNITS_DB.items() if fam == "mass")
VOLUME_UNITS = frozenset(u for u, (fam, _) in UNITS_DB.items() if fam == "volume")

DEFAULT_CATEGORY = settings.default_category

# --- Core Functions ---

def get_unit_info(unit: str) -> Tuple[UnitFamily, Optional[float]]:
    """Get family and factor-to-base for a unit."""
    return UNITS_DB.get(unit, ("discrete", None))


def _to_base(amount: float, unit: str, family: UnitFamily) -> Optional[float]:
    if not math.isfinite(amount):
        return None
    fam, factor = get_unit_info(unit)
    if fam != family or factor is None:
        return None
    return amount * factor


def _from_base(base_amount: float, unit: str, family: UnitFamily) -> Optional[float]:
    if not math.isfinite(base_amount):
        return None
    fam, factor = get_unit_info(unit)
    if fam != family or factor is None:
        return None
    return base_amount / factor


def to_grams(amount: float, unit: str) -> Optional[float]:
    return _to_base(amount, unit, "mass")


def from_grams(grams: float, unit: str) -> Optional[float]:
    return _from_base(grams, unit, "mass")


def to_ml(amount: float, unit: str) -> Optional[float]:
    return _to_base(amount, unit, "volume")


def from_ml(ml: float, unit: str) -> Optional[float]:
    return _from_base(ml, unit, "volume")


def convert_within_family(amount: float, from_unit: str, to_unit: str) -> Optional[float]:
    """Convert between two units of the same family; None when not possible."""
    fam_from, _ = get_unit_info(from_unit)
    fam_to, _ = get_unit_info(to_unit)
    if fam_from != fam_to or fam_from == "discrete":
        return None
    base = _to_base(amount, from_unit, fam_from)
    if base is None:
        return None
    return _from_base(base, to_unit, fam_to)


def is_meat(category: Optional[str]) -> bool:
    return (category or "").strip().lower() == "meat"


def canonicalize_ingredient(
    ingredient: IngredientMention,
    profile: Optional[UnitProfile] = None,
) -> CanonicalizedIngredient:
    """
    Convert an ingredient mention into the unit it should be aggregated in.

    Without a profile only unambiguous conversions are applied (meat oz/lb
    to lb, l/ml to ml, kg/g to g). With a profile, conversion goes toward
    ``profile.canonical_unit`` where the families allow it. Amounts are not
    rounded here.
    """
    name_normalized = normalize_ingredient_name(ingredient.name)
    category = ingredient.category or DEFAULT_CATEGORY
    display_name = (profile.display_name if profile else None) or ingredient.name
    amount = ingredient.amount
    unit = ingredient.unit

    def result(new_amount: Optional[float], new_unit: str) -> CanonicalizedIngredient:
        # Conversion failures keep the original amount instead of leaking NaN
        if new_amount is None or not math.isfinite(new_amount):
            new_amount = amount
        return CanonicalizedIngredient(
            name_normalized=name_normalized,
            display_name=display_name,
            amount=new_amount,
            unit=new_unit,
            category=category,
        )

    if profile is None:
        # Meat: oz/lb share lb so one cut never splits across two lines
        if is_meat(category) and unit in ("oz", "lb"):
            return result(convert_within_family(amount, unit, "lb"), "lb")

        if unit in VOLUME_UNITS:
            return result(to_ml(amount, unit), "ml")

        if unit in ("kg", "g"):
            return result(to_grams(amount, unit), "g")

        return result(amount, unit)

    canonical_unit = profile.canonical_unit

    if canonical_unit == unit:
        return result(amount, canonical_unit)

    if canonical_unit == "count" and profile.grams_per_count:
        grams = to_grams(amount, unit)
        if grams is not None:
            return result(grams / profile.grams_per_count, "count")

    # Cloves per head vary too much; keep what the recipe said
    if canonical_unit == "clove":
        return result(amount, unit)

    if canonical_unit in MASS_UNITS and unit in MASS_UNITS:
        converted = convert_within_family(amount, unit, canonical_unit)
        if converted is not None:
            return result(converted, canonical_unit)

    if canonical_unit in VOLUME_UNITS and unit in VOLUME_UNITS:
        converted = convert_within_family(amount, unit, canonical_unit)
        if converted is not None:
            return result(converted, canonical_unit)

    return result(amount, unit)
