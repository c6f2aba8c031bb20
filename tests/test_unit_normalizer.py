"""Tests for serving-size normalization to a 100 g / 100 ml basis."""

import pytest

from nutriflow.data_layer.models import NutrientValues
from nutriflow.ingestion.ingredient_errors import IngestionErrorCode, UnsupportedUnitError
from nutriflow.ingestion.unit_normalizer import UNIT_CONVERSIONS, UnitNormalizer


class TestUnitNormalizer:
    """Tests for UnitNormalizer.normalize()."""

    @pytest.fixture
    def normalizer(self):
        return UnitNormalizer()

    @pytest.fixture
    def nutrients(self):
        return NutrientValues(calories=100.0, protein=1.0, sodium=50.0)

    def test_fifty_gram_serving_doubles(self, normalizer, nutrients):
        """100 kcal per 50 g serving is 200 kcal per 100 g."""
        result = normalizer.normalize(nutrients, serving_size=50, serving_unit="g")

        assert result.nutrients.calories == 200.0
        assert result.nutrients.sodium == 100.0
        assert result.serving_size_basis == "100g"
        assert result.multiplier == 2.0
        assert result.basis_assumed is False

    def test_hundred_gram_serving_unchanged(self, normalizer, nutrients):
        result = normalizer.normalize(nutrients, serving_size=100, serving_unit="g")
        assert result.nutrients == nutrients

    def test_volume_unit_gives_ml_basis(self, normalizer, nutrients):
        result = normalizer.normalize(nutrients, serving_size=250, serving_unit="ml")

        assert result.serving_size_basis == "100ml"
        assert result.nutrients.calories == 40.0

    @pytest.mark.parametrize("unit,basis", [("GRM", "100g"), ("MLT", "100ml"), ("Grams", "100g")])
    def test_fdc_unit_codes(self, normalizer, nutrients, unit, basis):
        result = normalizer.normalize(nutrients, serving_size=100, serving_unit=unit)
        assert result.serving_size_basis == basis
        assert result.nutrients.calories == 100.0

    def test_ounce_serving(self, normalizer, nutrients):
        result = normalizer.normalize(nutrients, serving_size=1, serving_unit="oz")
        assert result.nutrients.calories == 352.73

    def test_cup_serving(self, normalizer, nutrients):
        result = normalizer.normalize(nutrients, serving_size=1, serving_unit="cup")

        assert result.serving_size_basis == "100ml"
        assert result.nutrients.calories == pytest.approx(41.67)

    def test_rounds_to_two_decimals(self, normalizer, nutrients):
        result = normalizer.normalize(nutrients, serving_size=30, serving_unit="g")
        assert result.nutrients.protein == 3.33

    @pytest.mark.parametrize("serving_size", [None, 0, "", "abc", -10])
    def test_absent_serving_keeps_values(self, normalizer, nutrients, serving_size):
        """No usable serving size: no rescale, basis assumed."""
        result = normalizer.normalize(nutrients, serving_size=serving_size, serving_unit="g")

        assert result.nutrients == nutrients
        assert result.serving_size_basis == "100g"
        assert result.multiplier == 1.0
        assert result.basis_assumed is True

    def test_missing_unit_treated_as_grams(self, normalizer, nutrients):
        result = normalizer.normalize(nutrients, serving_size=50, serving_unit=None)
        assert result.nutrients.calories == 200.0

    def test_unknown_unit_uses_portion_weight(self, normalizer, nutrients):
        """A portion gram weight rescues units outside the table."""
        result = normalizer.normalize(
            nutrients, serving_size=1, serving_unit="bar", portion_gram_weight=40
        )

        assert result.nutrients.calories == 250.0
        assert result.serving_size_basis == "100g"

    def test_unknown_unit_without_portion_raises(self, normalizer, nutrients):
        with pytest.raises(UnsupportedUnitError) as exc_info:
            normalizer.normalize(
                nutrients, serving_size=2, serving_unit="pieces", food_name="Gummy bears"
            )

        error = exc_info.value
        assert error.code == IngestionErrorCode.UNIT_NOT_SUPPORTED
        assert error.unit == "pieces"
        assert error.context["food_name"] == "Gummy bears"
        assert "g" in error.supported_units

    def test_input_not_mutated(self, normalizer, nutrients):
        normalizer.normalize(nutrients, serving_size=50, serving_unit="g")
        assert nutrients.calories == 100.0


class TestUnitConversions:
    """Tests for the conversion table."""

    def test_mass_and_volume_factors(self):
        assert UNIT_CONVERSIONS["kg"] == ("g", 1000.0)
        assert UNIT_CONVERSIONS["mg"] == ("g", 0.001)
        assert UNIT_CONVERSIONS["lb"] == ("g", 453.592)
        assert UNIT_CONVERSIONS["l"] == ("ml", 1000.0)
        assert UNIT_CONVERSIONS["tbsp"] == ("ml", 14.79)
        assert UNIT_CONVERSIONS["tsp"] == ("ml", 4.93)
        assert UNIT_CONVERSIONS["fl oz"] == ("ml", 29.57)
