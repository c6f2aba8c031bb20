"""Ingredient data providers for the scaling engine.

Consumers of ingredient data (RecipeScalingEngine callers, the CLI) depend
only on IngredientProvider. StoreIngredientProvider reads from the durable
store through a TTL cache.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from nutriflow.data_layer.ingredient_store import IngredientStore
from nutriflow.data_layer.models import (
    IngredientRecord,
    RecipeIngredientInput,
    normalize_name,
)
from nutriflow.providers.ingredient_cache import IngredientCache


logger = logging.getLogger(__name__)


@dataclass
class RecipeLine:
    """A recipe ingredient as written, before lookup."""

    name: str
    amount: float
    unit: str = "g"
    is_optional: bool = False
    notes: str = ""


class IngredientProvider(ABC):
    """Abstraction for ingredient nutrition lookup."""

    @abstractmethod
    def resolve(self, name: str) -> Optional[IngredientRecord]:
        """Return the stored record for *name* or ``None`` if unknown.

        Args:
            name: Ingredient name (matched after normalization).
        """
        ...

    def build_inputs(self, lines: List[RecipeLine]) -> List[RecipeIngredientInput]:
        """Link recipe lines to records; unknown names become Unavailable."""
        inputs = []
        for line in lines:
            record = self.resolve(line.name)
            if record is None:
                logger.info("No nutrition data for '%s'", line.name)
                inputs.append(RecipeIngredientInput.unavailable(
                    name=line.name,
                    amount=line.amount,
                    unit=line.unit,
                    is_optional=line.is_optional,
                    notes=line.notes,
                    reason=f"'{normalize_name(line.name)}' not found in ingredient store",
                ))
            else:
                inputs.append(RecipeIngredientInput.linked(
                    record,
                    amount=line.amount,
                    unit=line.unit,
                    is_optional=line.is_optional,
                    notes=line.notes,
                    name=line.name,
                ))
        return inputs


class StoreIngredientProvider(IngredientProvider):
    """Exact normalized-name lookup against the store, cached.

    Misses are cached too, so a recipe with an unknown ingredient does not
    hit the store on every render.
    """

    def __init__(self, store: IngredientStore, cache: Optional[IngredientCache] = None):
        self.store = store
        self.cache = cache if cache is not None else IngredientCache()

    def resolve(self, name: str) -> Optional[IngredientRecord]:
        key = normalize_name(name)
        if not key:
            return None
        found, record = self.cache.get(key)
        if found:
            return record
        record = self.store.get_by_name(key)
        self.cache.set(key, record)
        return record
