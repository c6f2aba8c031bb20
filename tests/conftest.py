"""Shared fixtures: an in-memory ingredient store and FDC food builders."""

import json

import pytest

from nutriflow.data_layer.ingredient_store import IngredientStore
from nutriflow.data_layer.models import DatasetSource, IngredientRecord, NutrientValues


@pytest.fixture
def store():
    """Fresh in-memory store with schema."""
    store = IngredientStore.from_url("sqlite://")
    store.create_schema()
    yield store
    store.engine.dispose()


def nutrient(nutrient_id, amount):
    return {"nutrient": {"id": nutrient_id}, "amount": amount}


def make_food(description, calories=100.0, protein=0.0, carbs=0.0, fat=0.0, **extra):
    """Foundation-shaped FDC food object."""
    food = {
        "fdcId": sum(map(ord, description)),
        "description": description,
        "foodNutrients": [
            nutrient(1008, calories),
            nutrient(1003, protein),
            nutrient(1005, carbs),
            nutrient(1004, fat),
        ],
    }
    food.update(extra)
    return food


def write_dataset(path, array_key, foods):
    path.write_text(json.dumps({array_key: foods}), encoding="utf-8")
    return str(path)


def make_record(name, calories=100.0, source=DatasetSource.FOUNDATION, category="Proteins", **nutrients):
    return IngredientRecord(
        name=name,
        nutrients=NutrientValues(calories=calories, **nutrients),
        category=category,
        aisle="Meat",
        source=source,
        description=f"USDA {source.value} food: {name}",
    )
