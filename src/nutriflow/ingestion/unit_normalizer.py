"""Serving-size normalization to a per-100g / per-100ml basis.

Foods arrive with nutrients per declared serving (Branded) or already per
100 g (Foundation, SR Legacy, Survey). This module rescales every nutrient so
records from all variants are comparable.

DESIGN DECISIONS:
- Strict unit → canonical unit conversion table (explicit, documented)
- Mass units normalize to a "100g" basis, volume units to "100ml"
- multiplier = 100 / serving_in_canonical_units; every field is multiplied
  and rounded to 2 decimals
- Absent or zero serving size: no rescale (the record is reported as
  basis_assumed when its variant was expected to declare one)
- Unknown unit: the first food portion's gram weight is used when present,
  otherwise UnsupportedUnitError is raised
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from nutriflow.data_layer.models import NutrientValues
from nutriflow.ingestion.ingredient_errors import UnsupportedUnitError


logger = logging.getLogger(__name__)


# ============================================================================
# UNIT CONVERSION TABLE
# ============================================================================
#
# unit → (canonical unit, factor). Liquids are measured in ml and never
# converted to grams; no density is assumed.
# ============================================================================

UNIT_CONVERSIONS: Dict[str, Tuple[str, float]] = {
    # Mass units
    "g": ("g", 1.0),
    "grm": ("g", 1.0),          # FDC unit code
    "gram": ("g", 1.0),
    "grams": ("g", 1.0),
    "kg": ("g", 1000.0),
    "mg": ("g", 0.001),
    "mc": ("g", 0.001),         # FDC code for milligram servings
    "oz": ("g", 28.35),
    "onz": ("g", 28.35),
    "lb": ("g", 453.592),

    # Volume units
    "ml": ("ml", 1.0),
    "mlt": ("ml", 1.0),         # FDC unit code
    "l": ("ml", 1000.0),
    "cup": ("ml", 240.0),
    "tbsp": ("ml", 14.79),
    "tsp": ("ml", 4.93),
    "fl oz": ("ml", 29.57),
    "floz": ("ml", 29.57),
}

BASIS_FOR_CANONICAL = {"g": "100g", "ml": "100ml"}

NORMALIZED_PLACES = 2


@dataclass
class NormalizedNutrients:
    """Nutrients rescaled to a 100-unit basis.

    Attributes:
        nutrients: Values per serving_size_basis
        serving_size_basis: "100g" or "100ml"
        multiplier: Factor applied (1.0 when no rescale happened)
        basis_assumed: True if no usable serving size was declared
    """
    nutrients: NutrientValues
    serving_size_basis: str
    multiplier: float
    basis_assumed: bool = False


class UnitNormalizer:
    """Rescales per-serving nutrients to per-100 units.

    Usage:
        normalizer = UnitNormalizer()

        # 50 g serving with 100 kcal → 200 kcal per 100 g
        result = normalizer.normalize(nutrients, serving_size=50, serving_unit="g")
        result.nutrients.calories  # 200.0
    """

    def normalize(
        self,
        nutrients: NutrientValues,
        serving_size: Optional[float],
        serving_unit: Optional[str],
        portion_gram_weight: Optional[float] = None,
        food_name: str = "",
    ) -> NormalizedNutrients:
        """Normalize nutrients declared per serving.

        Args:
            nutrients: Raw per-serving values
            serving_size: Declared serving size (None or 0 when absent)
            serving_unit: Unit of serving_size
            portion_gram_weight: Gram weight of the first food portion, used
                when the unit is not in the conversion table
            food_name: For error context

        Returns:
            NormalizedNutrients on a 100g or 100ml basis

        Raises:
            UnsupportedUnitError: If the unit is unknown and no gram weight exists
        """
        size = _positive_or_none(serving_size)
        if size is None:
            return NormalizedNutrients(
                nutrients=nutrients,
                serving_size_basis="100g",
                multiplier=1.0,
                basis_assumed=True,
            )

        canonical_unit, serving_in_canonical = self._to_canonical(
            size, serving_unit, portion_gram_weight, food_name
        )
        multiplier = 100.0 / serving_in_canonical
        return NormalizedNutrients(
            nutrients=nutrients.scaled(multiplier, places=NORMALIZED_PLACES),
            serving_size_basis=BASIS_FOR_CANONICAL[canonical_unit],
            multiplier=multiplier,
        )

    def _to_canonical(
        self,
        size: float,
        unit: Optional[str],
        portion_gram_weight: Optional[float],
        food_name: str,
    ) -> Tuple[str, float]:
        """Convert a serving to (canonical unit, amount)."""
        unit_key = _unit_key(unit)
        if unit_key is None:
            # No unit at all; FDC reports bare sizes in grams
            return "g", size

        if unit_key in UNIT_CONVERSIONS:
            canonical_unit, factor = UNIT_CONVERSIONS[unit_key]
            return canonical_unit, size * factor

        gram_weight = _positive_or_none(portion_gram_weight)
        if gram_weight is not None:
            logger.debug(
                "Unit '%s' for '%s' resolved through portion weight %.2fg",
                unit, food_name, gram_weight,
            )
            return "g", gram_weight

        raise UnsupportedUnitError(
            unit=str(unit),
            supported_units=self.get_supported_units(),
            food_name=food_name,
        )

    def get_supported_units(self) -> list:
        """Get list of units that convert without extra context."""
        return sorted(UNIT_CONVERSIONS.keys())


def _unit_key(unit: Optional[str]) -> Optional[str]:
    if unit is None:
        return None
    key = " ".join(str(unit).split()).lower().rstrip(".")
    return key or None


def _positive_or_none(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number or number <= 0:
        return None
    return number
