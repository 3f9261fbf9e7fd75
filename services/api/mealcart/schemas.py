"""Pydantic schemas for the mealcart API.

Request/response models for:
- Recipe payloads and ingredient mentions
- Grocery list entries (typed decoding of stored rows)
- Ingredient unit profiles
- Unit helper endpoints
"""

from typing import Optional, Literal, get_args

from pydantic import BaseModel, Field


Unit = Literal[
    "lb", "oz", "cup", "tbsp", "tsp", "g", "kg", "ml", "l",
    "count", "slice", "clove", "pinch",
]
UNITS: tuple[str, ...] = get_args(Unit)


# --- Recipe input ---

class IngredientMention(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    amount: float = Field(..., gt=0, allow_inf_nan=False)
    unit: Unit
    category: Optional[str] = Field(None, max_length=50)


class RecipeIn(BaseModel):
    """Recipe as supplied by the generator or the saved collection."""
    id: Optional[str] = None
    title: Optional[str] = None
    servings: Optional[float] = None
    ingredients: list[IngredientMention] = []


# --- Unit Profile ---

class UnitProfile(BaseModel):
    name_normalized: str
    canonical_unit: Unit
    grams_per_count: Optional[float] = Field(None, gt=0, allow_inf_nan=False)
    ml_per_count: Optional[float] = Field(None, gt=0, allow_inf_nan=False)
    pack_size_amount: Optional[float] = Field(None, gt=0, allow_inf_nan=False)
    pack_size_unit: Optional[Unit] = None
    display_name: Optional[str] = None
    exclude_always: bool = False
    pantry_staple: bool = False
    buy_unit_label: Optional[str] = None

    class Config:
        from_attributes = True


class UnitProfileListResponse(BaseModel):
    items: list[UnitProfile]


# --- Grocery ---

class GroceryListEntry(BaseModel):
    id: Optional[str] = None  # None until inserted
    name: str
    name_normalized: str
    amount: float = Field(..., allow_inf_nan=False)
    unit: Unit
    category: str = "Other"
    is_checked: bool = False

    class Config:
        from_attributes = True


class GroceryRecipeRequest(BaseModel):
    recipe: RecipeIn
    servings: float = Field(1, gt=0, allow_inf_nan=False)
    base_servings: Optional[float] = None


class GroceryCustomItemRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    amount: Optional[float] = Field(None, gt=0, allow_inf_nan=False)
    unit: Unit = "count"
    category: Optional[str] = Field(None, max_length=50)


class GroceryItemCheckUpdate(BaseModel):
    is_checked: bool


class GroceryBulkCheckRequest(BaseModel):
    ids: list[str] = []
    is_checked: bool


class GroceryMutationResponse(BaseModel):
    inserted: int = 0
    updated: int = 0
    deleted: int = 0
    skipped: list[str] = []  # normalized names excluded by profile


class PurchaseQuantityOut(BaseModel):
    need_amount: float
    need_unit: str
    buy_amount: float
    buy_unit: str  # a Unit, or a profile's buy_unit_label
    reason: Optional[str] = None


class GroceryItemView(BaseModel):
    id: str
    name: str
    name_normalized: str
    amount: float
    unit: Unit
    category: str
    is_checked: bool
    amount_display: str
    purchase: PurchaseQuantityOut
    pantry_staple: bool = False


class GroceryListView(BaseModel):
    items: list[GroceryItemView]
    total: int
    checked: int


class GroceryChangeEvent(BaseModel):
    type: Literal["insert", "update", "delete"]
    user_id: str
    entry: Optional[GroceryListEntry] = None
    ids: list[str] = []


# --- Unit helpers ---

class UnitFormatRequest(BaseModel):
    amount: float
    unit: Unit


class UnitFormatResponse(BaseModel):
    text: str


class CanonicalIngredientOut(BaseModel):
    name_normalized: str
    display_name: str
    amount: float
    unit: Unit
    category: str
    profile_applied: bool = False


class UnitPurchaseRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    amount: float = Field(..., allow_inf_nan=False)
    unit: Unit
    category: Optional[str] = None
