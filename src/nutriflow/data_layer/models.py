"""Data models for the nutrition ingestion pipeline and recipe scaling engine."""
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Dict, List, Optional, Union


class DatasetSource(Enum):
    """USDA FoodData Central dataset variants (plus hand-entered records)."""

    FOUNDATION = "foundation"
    LEGACY = "legacy"
    SURVEY = "survey"
    BRANDED = "branded"
    MANUAL = "manual"

    @classmethod
    def from_array_key(cls, array_key: Optional[str]) -> Optional["DatasetSource"]:
        """Map the top-level array key of an FDC export to its variant.

        Args:
            array_key: Key name such as "FoundationFoods" or "BrandedFoods"

        Returns:
            DatasetSource or None if the key is not a known export
        """
        if array_key is None:
            return None
        return ARRAY_KEY_TO_SOURCE.get(array_key)

    @classmethod
    def ingestion_sources(cls) -> List["DatasetSource"]:
        """Sources produced by the ingestion pipeline (cleared on re-seed)."""
        return [cls.FOUNDATION, cls.LEGACY, cls.SURVEY, cls.BRANDED]


ARRAY_KEY_TO_SOURCE: Dict[str, DatasetSource] = {
    "FoundationFoods": DatasetSource.FOUNDATION,
    "SRLegacyFoods": DatasetSource.LEGACY,
    "SR_LegacyFoods": DatasetSource.LEGACY,
    "SurveyFoods": DatasetSource.SURVEY,
    "BrandedFoods": DatasetSource.BRANDED,
}


@dataclass
class NutrientValues:
    """Named nutrient fields on a per-100 basis.

    Every field defaults to zero so arithmetic never needs null checks.
    Units: energy in kcal, sodium/cholesterol/calcium/potassium in mg,
    everything else in grams.
    """

    calories: float = 0.0
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0
    fiber: float = 0.0
    sugar: float = 0.0
    sodium: float = 0.0
    cholesterol: float = 0.0
    saturated_fat: float = 0.0
    trans_fat: float = 0.0
    monounsaturated_fat: float = 0.0
    polyunsaturated_fat: float = 0.0
    calcium: float = 0.0
    potassium: float = 0.0

    @property
    def net_carbs(self) -> float:
        """Carbohydrates minus fiber, floored at zero."""
        return max(self.carbs - self.fiber, 0.0)

    def to_dict(self) -> Dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def field_names(cls) -> List[str]:
        return [f.name for f in fields(cls)]

    def scaled(self, multiplier: float, places: Optional[int] = None) -> "NutrientValues":
        """Return a copy with every field multiplied (and optionally rounded).

        Args:
            multiplier: Factor applied to every field
            places: Decimal places to round to, or None to keep full precision

        Returns:
            New NutrientValues instance
        """
        values = {}
        for name, value in self.to_dict().items():
            scaled_value = value * multiplier
            if places is not None:
                scaled_value = round(scaled_value, places)
            values[name] = scaled_value
        return NutrientValues(**values)


@dataclass
class IngredientRecord:
    """Normalized ingredient, the unit of ingestion output.

    Nutrients are stored per ``serving_size_basis`` (100g or 100ml).
    """

    name: str
    nutrients: NutrientValues
    category: str
    aisle: str
    source: DatasetSource
    serving_size_basis: str = "100g"
    description: str = ""
    basis_assumed: bool = False  # no serving size where the variant expects one
    id: Optional[int] = None

    @property
    def calories(self) -> float:
        return self.nutrients.calories

    def is_complete(self) -> bool:
        """A record is persistable only with a name and positive energy."""
        return bool(self.name) and self.nutrients.calories > 0

    def with_nutrients(self, nutrients: NutrientValues) -> "IngredientRecord":
        return replace(self, nutrients=nutrients)


def normalize_name(raw_name: Optional[str]) -> str:
    """Lower-case, trim and collapse whitespace (the dedup key)."""
    if not raw_name:
        return ""
    return " ".join(raw_name.split()).lower()


@dataclass(frozen=True)
class Unavailable:
    """Marker for a recipe ingredient with no nutrition data."""

    reason: str = "no nutrition data"


@dataclass
class RecipeIngredientInput:
    """One recipe line handed to the scaling engine."""

    name: str
    amount: float
    nutrition: Union[IngredientRecord, Unavailable]
    unit: str = "g"
    is_optional: bool = False
    notes: str = ""

    @property
    def is_available(self) -> bool:
        return isinstance(self.nutrition, IngredientRecord)

    @classmethod
    def linked(
        cls,
        record: IngredientRecord,
        amount: float,
        unit: str = "g",
        is_optional: bool = False,
        notes: str = "",
        name: Optional[str] = None,
    ) -> "RecipeIngredientInput":
        return cls(
            name=name or record.name,
            amount=amount,
            nutrition=record,
            unit=unit,
            is_optional=is_optional,
            notes=notes,
        )

    @classmethod
    def unavailable(
        cls,
        name: str,
        amount: float,
        unit: str = "g",
        is_optional: bool = False,
        notes: str = "",
        reason: str = "no nutrition data",
    ) -> "RecipeIngredientInput":
        return cls(
            name=name,
            amount=amount,
            nutrition=Unavailable(reason=reason),
            unit=unit,
            is_optional=is_optional,
            notes=notes,
        )


@dataclass
class ScaledIngredient:
    """Scaling output for one ingredient, keeping the pre-scale amount."""

    name: str
    unit: str
    original_amount: float
    amount: float
    scaling_factor: float
    calories: int = 0
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0
    fiber: float = 0.0
    sugar: float = 0.0
    sodium: int = 0
    is_optional: bool = False
    notes: str = ""
    is_available: bool = True
    is_seasoning: bool = False


@dataclass
class NutritionSummary:
    """Calories and macros for a recipe (total or per serving)."""

    calories: int = 0
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0
    fiber: float = 0.0
    sugar: float = 0.0
    sodium: int = 0


@dataclass
class NutritionTotals:
    """Aggregate nutrition over all available scaled ingredients."""

    total: NutritionSummary
    per_serving: NutritionSummary
    servings: int
    unavailable: List[str] = field(default_factory=list)
