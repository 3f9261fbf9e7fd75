import sys
import os
from sqlalchemy.exc import SQLAlchemyError

# Add api path to sys.path
sys.path.append(os.path.join(os.path.dirname(__file__), "../"))

from mealcart.db import Base, get_engine, session_factory
from mealcart.models import IngredientUnitProfile
from mealcart.schemas import UnitProfile
from mealcart.services.ingredient_normalize import normalize_ingredient_name
from mealcart.settings import settings

# Starter reference set. Weights are typical US grocery sizes.
STARTER_PROFILES = [
    {"name": "onion", "canonical_unit": "count", "grams_per_count": 150},
    {"name": "carrot", "canonical_unit": "count", "grams_per_count": 60},
    {"name": "potato", "canonical_unit": "count", "grams_per_count": 170},
    {"name": "lemon", "canonical_unit": "count", "grams_per_count": 100},
    {"name": "bell pepper", "canonical_unit": "count", "grams_per_count": 120},
    {"name": "egg", "canonical_unit": "count", "grams_per_count": 50, "pack_size_amount": 12,
     "pack_size_unit": "count", "buy_unit_label": "carton"},
    {"name": "garlic", "canonical_unit": "clove", "display_name": "Garlic"},
    {"name": "ground beef", "canonical_unit": "lb", "display_name": "Ground Beef"},
    {"name": "chicken breast", "canonical_unit": "lb", "display_name": "Chicken Breast"},
    {"name": "butter", "canonical_unit": "g", "pack_size_amount": 454, "pack_size_unit": "g",
     "buy_unit_label": "pound block"},
    {"name": "milk", "canonical_unit": "ml", "pack_size_amount": 946, "pack_size_unit": "ml",
     "buy_unit_label": "quart"},
    {"name": "chicken broth", "canonical_unit": "ml", "pack_size_amount": 946, "pack_size_unit": "ml",
     "buy_unit_label": "carton"},
    {"name": "rice", "canonical_unit": "g", "pack_size_amount": 907, "pack_size_unit": "g"},
    {"name": "water", "canonical_unit": "ml", "exclude_always": True},
    {"name": "salt", "canonical_unit": "tsp", "pantry_staple": True},
    {"name": "black pepper", "canonical_unit": "tsp", "pantry_staple": True},
    {"name": "olive oil", "canonical_unit": "tbsp", "pantry_staple": True},
]


def seed_unit_profiles():
    print(f"Connecting to {settings.database_url}...")
    Base.metadata.create_all(bind=get_engine())
    session = session_factory()()

    try:
        for raw in STARTER_PROFILES:
            data = dict(raw)
            key = normalize_ingredient_name(data.pop("name"))
            # Validate before it becomes reference data
            profile = UnitProfile(name_normalized=key, **data)
            session.merge(IngredientUnitProfile(**profile.model_dump()))
            print(f"Profile '{key}': {profile.canonical_unit}")

        session.commit()
        print(f"Seeded {len(STARTER_PROFILES)} unit profiles.")
    except SQLAlchemyError as e:
        print(f"Error seeding profiles: {e}")
        session.rollback()
        raise
    finally:
        session.close()


if __name__ == "__main__":
    seed_unit_profiles()
