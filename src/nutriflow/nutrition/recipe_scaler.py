"""Recipe nutrition scaling against stored per-100 ingredient records.

Turns a recipe's ingredient lines into per-ingredient and aggregate
nutrition, optionally re-targeted to a calorie goal per serving.

MODES:
- Display: factor 1 everywhere; totals are the literal sums
- Target: factor = target / current per-serving calories
- Factor: a caller-supplied factor (same rules as target mode)

RULES:
- Seasonings (category "Spices and Herbs", or a name containing salt,
  pepper, vanilla, extract, chili or spice) scale by min(factor, 2.0)
- Totals are recomputed from the scaled ingredients, never from the
  original totals times the recipe-wide factor
- Rounding is half-up: amounts, protein, carbs, fat, fiber and sugar to
  1 decimal; calories and sodium to integers
- A stored record with zero calories falls back to 4P + 4C + 9F
- Unavailable ingredients keep their scaled amount but add nothing
- A line's unit must match its record's basis: grams against "100g",
  milliliters against "100ml"

Failures are returned as ScalingResult.failure(ScalingError), never raised.
"""

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional

from nutriflow.data_layer.models import (
    IngredientRecord,
    NutritionSummary,
    NutritionTotals,
    RecipeIngredientInput,
    ScaledIngredient,
)
from nutriflow.ingestion.ingredient_errors import ScalingError


SEASONING_CATEGORY = "Spices and Herbs"
SEASONING_KEYWORDS = ("salt", "pepper", "vanilla", "extract", "chili", "spice")
SEASONING_FACTOR_CAP = 2.0

SUPPORTED_UNITS = ("g", "ml")

# Atwater factors, kcal per gram
KCAL_PER_G_PROTEIN = 4
KCAL_PER_G_CARBS = 4
KCAL_PER_G_FAT = 9

SUMMARY_FIELDS = ("calories", "protein", "carbs", "fat", "fiber", "sugar", "sodium")
INTEGER_FIELDS = ("calories", "sodium")


def round_half_up(value: float, places: int = 0) -> float:
    """Round like a person would (2.5 → 3), not banker's rounding."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def _round_field(name: str, value: float):
    if name in INTEGER_FIELDS:
        return int(round_half_up(value, 0))
    return round_half_up(value, 1)


def is_seasoning(name: str, category: Optional[str] = None) -> bool:
    if category == SEASONING_CATEGORY:
        return True
    lowered = name.lower()
    return any(keyword in lowered for keyword in SEASONING_KEYWORDS)


def basis_unit_of(record: IngredientRecord) -> str:
    """Unit of the record's per-100 basis ("100ml" → "ml"); grams by default."""
    basis = (record.serving_size_basis or "").lower()
    return "ml" if basis.endswith("ml") else "g"


def record_calories(record: IngredientRecord) -> float:
    """Stored calories per basis, or the Atwater estimate when zero."""
    nutrients = record.nutrients
    if nutrients.calories > 0:
        return nutrients.calories
    return (
        KCAL_PER_G_PROTEIN * nutrients.protein
        + KCAL_PER_G_CARBS * nutrients.carbs
        + KCAL_PER_G_FAT * nutrients.fat
    )


@dataclass
class ScalingResult:
    """Result of scaling a recipe.

    Attributes:
        success: False when error is set
        ingredients: Scaled lines, in input order
        totals: Aggregate nutrition over available ingredients
        scaling_factor: Recipe-wide factor (seasonings may use less)
        error: ScalingError describing the failure
    """
    success: bool
    ingredients: List[ScaledIngredient] = field(default_factory=list)
    totals: Optional[NutritionTotals] = None
    scaling_factor: float = 1.0
    error: Optional[ScalingError] = None

    @classmethod
    def failure(cls, error: ScalingError) -> "ScalingResult":
        return cls(success=False, error=error, scaling_factor=0.0)


class RecipeScalingEngine:
    """Pure, synchronous recipe scaler.

    Usage:
        engine = RecipeScalingEngine()
        result = engine.scale(ingredients, servings=4, target_calories_per_serving=300)
        if result.success:
            result.totals.per_serving.calories
        else:
            result.error.to_dict()
    """

    def scale(
        self,
        ingredients: List[RecipeIngredientInput],
        servings: int,
        target_calories_per_serving: Optional[float] = None,
    ) -> ScalingResult:
        """Scale a recipe, optionally to a calorie target per serving.

        Args:
            ingredients: Recipe lines with linked records or Unavailable
            servings: Number of servings (positive)
            target_calories_per_serving: None for display mode

        Returns:
            ScalingResult
        """
        error = self._validate(ingredients, servings)
        if error is not None:
            return ScalingResult.failure(error)

        if target_calories_per_serving is None:
            return self._apply(ingredients, servings, 1.0, cap_seasonings=False)

        if target_calories_per_serving <= 0:
            return ScalingResult.failure(ScalingError.invalid(
                "target_calories_per_serving", target_calories_per_serving, "must be positive"
            ))

        current = self.current_calories_per_serving(ingredients, servings)
        if current <= 0:
            return ScalingResult.failure(
                ScalingError.degenerate(servings, target_calories_per_serving)
            )

        factor = target_calories_per_serving / current
        return self._apply(ingredients, servings, factor, cap_seasonings=True)

    def scale_by_factor(
        self,
        ingredients: List[RecipeIngredientInput],
        servings: int,
        factor: float,
    ) -> ScalingResult:
        """Scale every ingredient by a manual factor (seasonings capped)."""
        error = self._validate(ingredients, servings)
        if error is not None:
            return ScalingResult.failure(error)
        if factor <= 0:
            return ScalingResult.failure(ScalingError.invalid("factor", factor, "must be positive"))
        return self._apply(ingredients, servings, factor, cap_seasonings=True)

    def current_calories_per_serving(
        self,
        ingredients: List[RecipeIngredientInput],
        servings: int,
    ) -> float:
        total = sum(
            self._base_values(ingredient)["calories"]
            for ingredient in ingredients
            if ingredient.is_available
        )
        return total / servings

    def _validate(
        self,
        ingredients: List[RecipeIngredientInput],
        servings: int,
    ) -> Optional[ScalingError]:
        if servings is None or servings <= 0:
            return ScalingError.invalid("servings", servings, "must be positive")
        for ingredient in ingredients:
            if ingredient.amount < 0:
                return ScalingError.invalid(
                    f"{ingredient.name}.amount", ingredient.amount, "must not be negative"
                )
            if not ingredient.is_available:
                continue
            unit = ingredient.unit.lower()
            if unit not in SUPPORTED_UNITS:
                return ScalingError.unsupported_unit(ingredient.unit, ingredient.name)
            basis_unit = basis_unit_of(ingredient.nutrition)
            if unit != basis_unit:
                # no density data to convert between mass and volume
                return ScalingError.unsupported_unit(
                    ingredient.unit, ingredient.name, supported_units=(basis_unit,)
                )
        return None

    def _base_values(self, ingredient: RecipeIngredientInput) -> Dict[str, float]:
        """Unrounded nutrition of the line at its stated amount."""
        record = ingredient.nutrition
        portion = ingredient.amount / 100.0
        nutrients = record.nutrients
        return {
            "calories": record_calories(record) * portion,
            "protein": nutrients.protein * portion,
            "carbs": nutrients.carbs * portion,
            "fat": nutrients.fat * portion,
            "fiber": nutrients.fiber * portion,
            "sugar": nutrients.sugar * portion,
            "sodium": nutrients.sodium * portion,
        }

    def _apply(
        self,
        ingredients: List[RecipeIngredientInput],
        servings: int,
        factor: float,
        cap_seasonings: bool,
    ) -> ScalingResult:
        scaled: List[ScaledIngredient] = []
        unavailable: List[str] = []
        sums = {name: 0.0 for name in SUMMARY_FIELDS}

        for ingredient in ingredients:
            category = ingredient.nutrition.category if ingredient.is_available else None
            seasoning = is_seasoning(ingredient.name, category)
            line_factor = min(factor, SEASONING_FACTOR_CAP) if cap_seasonings and seasoning else factor

            line = ScaledIngredient(
                name=ingredient.name,
                unit=ingredient.unit,
                original_amount=ingredient.amount,
                amount=round_half_up(ingredient.amount * line_factor, 1),
                scaling_factor=line_factor,
                is_optional=ingredient.is_optional,
                notes=ingredient.notes,
                is_available=ingredient.is_available,
                is_seasoning=seasoning,
            )

            if ingredient.is_available:
                for name, value in self._base_values(ingredient).items():
                    rounded = _round_field(name, value * line_factor)
                    setattr(line, name, rounded)
                    sums[name] += rounded
            else:
                unavailable.append(ingredient.name)

            scaled.append(line)

        total = NutritionSummary(**{name: _round_field(name, sums[name]) for name in SUMMARY_FIELDS})
        per_serving = NutritionSummary(**{
            name: _round_field(name, sums[name] / servings) for name in SUMMARY_FIELDS
        })

        return ScalingResult(
            success=True,
            ingredients=scaled,
            totals=NutritionTotals(
                total=total,
                per_serving=per_serving,
                servings=servings,
                unavailable=unavailable,
            ),
            scaling_factor=factor,
        )
