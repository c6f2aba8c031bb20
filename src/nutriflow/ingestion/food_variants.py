"""Tagged FDC dataset variants and their adapters to IngredientRecord.

The four FoodData Central exports share most fields but differ in where
the category lives and whether nutrients are per serving:

    Variant      Category field                                   Basis
    ----------   ----------------------------------------------   -----------
    Foundation   foodCategory.description                         per 100 g
    SR Legacy    foodCategory.description                         per 100 g
    Survey       wweiaFoodCategory.wweiaFoodCategoryDescription   per 100 g
    Branded      brandedFoodCategory                              per serving

Each variant is parsed into its own dataclass; FoodAdapter turns any of
them into an IngredientRecord candidate.
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Optional, Type

from nutriflow.data_layer.models import DatasetSource, IngredientRecord, normalize_name
from nutriflow.ingestion.classifier import Classifier
from nutriflow.ingestion.nutrient_mapper import NutrientMapper
from nutriflow.ingestion.unit_normalizer import UnitNormalizer


def clean_description(description: Optional[str]) -> str:
    """Collapse whitespace, lower-case, then capitalize the first letter."""
    if not description:
        return ""
    cleaned = " ".join(str(description).split()).lower()
    return cleaned[:1].upper() + cleaned[1:]


def _first_portion_grams(raw: Dict[str, Any]) -> Optional[float]:
    portions = raw.get("foodPortions")
    if isinstance(portions, list) and portions and isinstance(portions[0], dict):
        return portions[0].get("gramWeight")
    return None


def _nested(raw: Dict[str, Any], key: str, inner: str) -> Optional[str]:
    value = raw.get(key)
    if isinstance(value, dict):
        return value.get(inner)
    if isinstance(value, str):
        return value
    return None


@dataclass
class FoodVariant:
    """Fields common to every FDC food object."""

    SOURCE: ClassVar[DatasetSource]
    EXPECTS_SERVING_SIZE: ClassVar[bool] = False

    description: str
    food_nutrients: List[Dict[str, Any]] = field(default_factory=list)
    source_category: Optional[str] = None
    fdc_id: Optional[int] = None
    serving_size: Optional[float] = None
    serving_size_unit: Optional[str] = None
    portion_gram_weight: Optional[float] = None

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "FoodVariant":
        """Build the variant from a parsed FDC object.

        Raises:
            TypeError: If raw is not a JSON object
        """
        if not isinstance(raw, dict):
            raise TypeError(f"expected a JSON object, got {type(raw).__name__}")
        nutrients = raw.get("foodNutrients")
        return cls(
            description=raw.get("description") or "",
            food_nutrients=nutrients if isinstance(nutrients, list) else [],
            source_category=cls.category_from(raw),
            fdc_id=raw.get("fdcId"),
            serving_size=raw.get("servingSize"),
            serving_size_unit=raw.get("servingSizeUnit"),
            portion_gram_weight=_first_portion_grams(raw),
        )

    @classmethod
    def category_from(cls, raw: Dict[str, Any]) -> Optional[str]:
        return _nested(raw, "foodCategory", "description")


@dataclass
class FoundationFood(FoodVariant):
    SOURCE: ClassVar[DatasetSource] = DatasetSource.FOUNDATION


@dataclass
class LegacyFood(FoodVariant):
    SOURCE: ClassVar[DatasetSource] = DatasetSource.LEGACY


@dataclass
class SurveyFood(FoodVariant):
    SOURCE: ClassVar[DatasetSource] = DatasetSource.SURVEY

    @classmethod
    def category_from(cls, raw: Dict[str, Any]) -> Optional[str]:
        return (
            _nested(raw, "wweiaFoodCategory", "wweiaFoodCategoryDescription")
            or _nested(raw, "foodCategory", "description")
        )


@dataclass
class BrandedFood(FoodVariant):
    SOURCE: ClassVar[DatasetSource] = DatasetSource.BRANDED
    EXPECTS_SERVING_SIZE: ClassVar[bool] = True

    brand_owner: str = ""

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "BrandedFood":
        food = super().from_dict(raw)
        food.brand_owner = raw.get("brandOwner") or ""
        return food

    @classmethod
    def category_from(cls, raw: Dict[str, Any]) -> Optional[str]:
        category = raw.get("brandedFoodCategory")
        return category if isinstance(category, str) else None


VARIANT_TYPES: Dict[DatasetSource, Type[FoodVariant]] = {
    DatasetSource.FOUNDATION: FoundationFood,
    DatasetSource.LEGACY: LegacyFood,
    DatasetSource.SURVEY: SurveyFood,
    DatasetSource.BRANDED: BrandedFood,
}


def parse_food(raw: Any, source: DatasetSource) -> FoodVariant:
    """Parse one raw object into the variant dataclass for source.

    Raises:
        KeyError: If source has no ingestion variant (MANUAL)
        TypeError: If raw is not a JSON object
    """
    return VARIANT_TYPES[source].from_dict(raw)


class FoodAdapter:
    """Converts a parsed variant into an IngredientRecord candidate.

    Usage:
        adapter = FoodAdapter()
        record = adapter.adapt(parse_food(raw, DatasetSource.BRANDED))
        if record.is_complete():
            persister.write_batch([record])
    """

    def __init__(
        self,
        mapper: Optional[NutrientMapper] = None,
        normalizer: Optional[UnitNormalizer] = None,
        classifier: Optional[Classifier] = None,
    ):
        self.mapper = mapper or NutrientMapper()
        self.normalizer = normalizer or UnitNormalizer()
        self.classifier = classifier or Classifier()

    def adapt(self, food: FoodVariant) -> IngredientRecord:
        """Map, normalize and classify one food.

        Returns:
            IngredientRecord (may be incomplete; callers check is_complete())

        Raises:
            UnsupportedUnitError: If the serving unit cannot be converted
        """
        display_name = clean_description(food.description)
        nutrients = self.mapper.map_nutrients(food.food_nutrients)

        normalized = self.normalizer.normalize(
            nutrients,
            serving_size=food.serving_size,
            serving_unit=food.serving_size_unit,
            portion_gram_weight=food.portion_gram_weight,
            food_name=display_name,
        )
        basis_assumed = normalized.basis_assumed and food.EXPECTS_SERVING_SIZE

        classification = self.classifier.classify(food.source_category, display_name)

        return IngredientRecord(
            name=normalize_name(display_name),
            nutrients=normalized.nutrients,
            category=classification.category,
            aisle=classification.aisle,
            source=food.SOURCE,
            serving_size_basis=normalized.serving_size_basis,
            description=f"USDA {food.SOURCE.value} food: {food.description}",
            basis_assumed=basis_assumed,
        )
