"""Nutrient mapping from USDA FoodData Central records to named fields.

Converts a food's ``foodNutrients`` array into NutrientValues. Mapping is
deterministic: a static table keyed by USDA nutrient ID.

DESIGN DECISIONS:
- Static mapping table: USDA nutrient ID → internal field name
- Some fields have several IDs in priority order (sugar: 2000 in newer
  exports, 1063 in Foundation); the first non-zero one wins
- Older Survey payloads carry only the legacy nutrient number ("208" for
  energy); numbers are translated to IDs before lookup
- Abridged payloads with flat ``nutrientId``/``value`` keys are accepted
- Value resolution per entry: amount, then value, then median
- Unknown nutrients are ignored; missing nutrients default to zero
- Negative or non-numeric values are treated as zero
"""

from typing import Dict, Any, List, Optional, Tuple

from nutriflow.data_layer.models import NutrientValues


# ============================================================================
# USDA NUTRIENT ID MAPPING TABLE
# ============================================================================
#
# Format:
#   USDA_ID: {
#       "field": NutrientValues field name,
#       "unit": USDA unit (for documentation),
#       "description": USDA nutrient name,
#       "legacy_number": nutrient number used by older exports
#   }
# ============================================================================

USDA_NUTRIENT_MAP: Dict[int, Dict[str, Any]] = {
    # === ENERGY & MACRONUTRIENTS ===
    1008: {
        "field": "calories",
        "unit": "kcal",
        "description": "Energy",
        "legacy_number": "208",
    },
    1003: {
        "field": "protein",
        "unit": "g",
        "description": "Protein",
        "legacy_number": "203",
    },
    1004: {
        "field": "fat",
        "unit": "g",
        "description": "Total lipid (fat)",
        "legacy_number": "204",
    },
    1005: {
        "field": "carbs",
        "unit": "g",
        "description": "Carbohydrate, by difference",
        "legacy_number": "205",
    },
    1079: {
        "field": "fiber",
        "unit": "g",
        "description": "Fiber, total dietary",
        "legacy_number": "291",
    },
    # Sugar moved IDs between dataset vintages
    2000: {
        "field": "sugar",
        "unit": "g",
        "description": "Total Sugars",
        "legacy_number": "269",
    },
    1063: {
        "field": "sugar",
        "unit": "g",
        "description": "Sugars, Total",
        "legacy_number": "269.3",
    },

    # === FATS ===
    1258: {
        "field": "saturated_fat",
        "unit": "g",
        "description": "Fatty acids, total saturated",
        "legacy_number": "606",
    },
    1257: {
        "field": "trans_fat",
        "unit": "g",
        "description": "Fatty acids, total trans",
        "legacy_number": "605",
    },
    1292: {
        "field": "monounsaturated_fat",
        "unit": "g",
        "description": "Fatty acids, total monounsaturated",
        "legacy_number": "645",
    },
    1293: {
        "field": "polyunsaturated_fat",
        "unit": "g",
        "description": "Fatty acids, total polyunsaturated",
        "legacy_number": "646",
    },
    1253: {
        "field": "cholesterol",
        "unit": "mg",
        "description": "Cholesterol",
        "legacy_number": "601",
    },

    # === MINERALS ===
    1093: {
        "field": "sodium",
        "unit": "mg",
        "description": "Sodium, Na",
        "legacy_number": "307",
    },
    1087: {
        "field": "calcium",
        "unit": "mg",
        "description": "Calcium, Ca",
        "legacy_number": "301",
    },
    1092: {
        "field": "potassium",
        "unit": "mg",
        "description": "Potassium, K",
        "legacy_number": "306",
    },
}

# Field → IDs in lookup priority order
FIELD_PRIORITY: Dict[str, Tuple[int, ...]] = {
    "sugar": (2000, 1063),
}

LEGACY_NUMBER_TO_ID: Dict[str, int] = {
    mapping["legacy_number"]: nutrient_id
    for nutrient_id, mapping in USDA_NUTRIENT_MAP.items()
}

VALUE_KEYS = ("amount", "value", "median")


class NutrientMapper:
    """Maps a food's nutrient array to NutrientValues.

    Usage:
        mapper = NutrientMapper()
        nutrients = mapper.map_nutrients(food["foodNutrients"])
        nutrients.calories, nutrients.sugar, ...
    """

    def __init__(self):
        self._ids_by_field: Dict[str, Tuple[int, ...]] = {}
        for nutrient_id, mapping in USDA_NUTRIENT_MAP.items():
            field_name = mapping["field"]
            if field_name in FIELD_PRIORITY:
                self._ids_by_field[field_name] = FIELD_PRIORITY[field_name]
            else:
                self._ids_by_field[field_name] = (nutrient_id,)

    def map_nutrients(self, food_nutrients: Optional[List[Dict[str, Any]]]) -> NutrientValues:
        """Map a foodNutrients array to named fields.

        Args:
            food_nutrients: Raw array from an FDC food object (may be None)

        Returns:
            NutrientValues with every field populated (missing = 0.0)
        """
        values_by_id = self.index_by_id(food_nutrients)

        resolved: Dict[str, float] = {}
        for field_name, nutrient_ids in self._ids_by_field.items():
            value = 0.0
            for nutrient_id in nutrient_ids:
                candidate = values_by_id.get(nutrient_id)
                if candidate:
                    value = candidate
                    break
            resolved[field_name] = value

        return NutrientValues(**resolved)

    def index_by_id(self, food_nutrients: Optional[List[Dict[str, Any]]]) -> Dict[int, float]:
        """Build a nutrient ID → value index (first occurrence wins).

        Args:
            food_nutrients: Raw nutrient entries

        Returns:
            Dictionary of tracked nutrient IDs to non-negative values
        """
        index: Dict[int, float] = {}
        if not isinstance(food_nutrients, list):
            return index

        for entry in food_nutrients:
            if not isinstance(entry, dict):
                continue
            nutrient_id = self._resolve_nutrient_id(entry)
            if nutrient_id is None or nutrient_id in index:
                continue
            value = self._resolve_value(entry)
            if value is None:
                continue
            index[nutrient_id] = value
        return index

    def _resolve_nutrient_id(self, entry: Dict[str, Any]) -> Optional[int]:
        """Find the tracked USDA ID of one nutrient entry."""
        nutrient_info = entry.get("nutrient")
        if not isinstance(nutrient_info, dict):
            nutrient_info = {}

        raw_id = nutrient_info.get("id", entry.get("nutrientId"))
        nutrient_id = _to_int(raw_id)
        if nutrient_id in USDA_NUTRIENT_MAP:
            return nutrient_id

        raw_number = nutrient_info.get("number", entry.get("nutrientNumber"))
        if raw_number is not None:
            return LEGACY_NUMBER_TO_ID.get(str(raw_number).strip())
        return None

    def _resolve_value(self, entry: Dict[str, Any]) -> Optional[float]:
        """First non-null of amount, value, median; None if all are absent."""
        for key in VALUE_KEYS:
            raw = entry.get(key)
            if raw is None:
                continue
            try:
                value = float(raw)
            except (TypeError, ValueError):
                return 0.0
            if value != value or value < 0:  # NaN or negative
                return 0.0
            return value
        return None

    def get_tracked_nutrient_ids(self) -> set:
        """Get set of USDA nutrient IDs that are tracked."""
        return set(USDA_NUTRIENT_MAP.keys())

    def get_field_for_nutrient_id(self, nutrient_id: int) -> Optional[str]:
        """Get internal field name for a USDA nutrient ID.

        Args:
            nutrient_id: USDA FoodData Central nutrient ID

        Returns:
            Field name or None if not tracked
        """
        mapping = USDA_NUTRIENT_MAP.get(nutrient_id)
        return mapping["field"] if mapping else None


def _to_int(raw: Any) -> Optional[int]:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None
