"""Ingredient data providers for recipe scaling."""

from nutriflow.providers.ingredient_cache import IngredientCache
from nutriflow.providers.ingredient_provider import (
    IngredientProvider,
    RecipeLine,
    StoreIngredientProvider,
)

__all__ = [
    "IngredientCache",
    "IngredientProvider",
    "RecipeLine",
    "StoreIngredientProvider",
]
