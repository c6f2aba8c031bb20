"""Tests for recipe nutrition scaling.

Covers display, target and factor modes, the seasoning cap, rounding
and the typed failure results.
"""

import pytest

from conftest import make_record
from nutriflow.data_layer.models import RecipeIngredientInput
from nutriflow.ingestion.ingredient_errors import IngestionErrorCode
from nutriflow.nutrition.recipe_scaler import (
    RecipeScalingEngine,
    is_seasoning,
    record_calories,
    round_half_up,
)


def line(name, amount, calories, unit="g", category="Proteins", basis=None, **nutrients):
    record = make_record(name, calories, category=category, **nutrients)
    record.serving_size_basis = basis or ("100ml" if unit == "ml" else "100g")
    return RecipeIngredientInput.linked(record, amount=amount, unit=unit)


@pytest.fixture
def engine():
    return RecipeScalingEngine()


@pytest.fixture
def stir_fry():
    """Four servings totalling 800 kcal, plus salt."""
    return [
        line("white rice, cooked", 400, 130, category="Grains and Flours", carbs=28.0, sodium=1.0),
        line("chicken breast", 100, 280, protein=31.0, fat=3.6, sodium=74.0),
        line("salt, table", 5, 0, category="Spices and Herbs", sodium=38758.0),
    ]


class TestDisplayMode:
    """Tests for scaling without a target."""

    def test_factor_one_and_literal_sums(self, engine, stir_fry):
        result = engine.scale(stir_fry, servings=4)

        assert result.success
        assert result.scaling_factor == 1.0
        assert [i.scaling_factor for i in result.ingredients] == [1.0, 1.0, 1.0]
        assert [i.calories for i in result.ingredients] == [520, 280, 0]
        assert result.totals.total.calories == 800
        assert result.totals.per_serving.calories == 200
        assert result.totals.total.carbs == 112.0
        assert result.totals.total.protein == 31.0
        assert result.totals.total.sodium == 4 + 74 + 1938

    def test_amounts_preserved(self, engine, stir_fry):
        result = engine.scale(stir_fry, servings=4)
        assert [i.amount for i in result.ingredients] == [400.0, 100.0, 5.0]
        assert [i.original_amount for i in result.ingredients] == [400, 100, 5]


class TestTargetMode:
    """Tests for scaling to a calorie target per serving."""

    def test_factor_from_target(self, engine, stir_fry):
        """800 kcal over 4 servings is 200; a 300 target gives 1.5."""
        result = engine.scale(stir_fry, servings=4, target_calories_per_serving=300)

        assert result.success
        assert result.scaling_factor == 1.5
        rice, chicken, salt = result.ingredients
        assert rice.amount == 600.0
        assert chicken.amount == 150.0
        assert salt.amount == 7.5
        assert salt.scaling_factor == 1.5
        assert result.totals.total.calories == 1200
        assert result.totals.per_serving.calories == 300

    def test_seasoning_capped_at_two(self, engine, stir_fry):
        result = engine.scale(stir_fry, servings=4, target_calories_per_serving=1000)

        rice, chicken, salt = result.ingredients
        assert result.scaling_factor == 5.0
        assert chicken.scaling_factor == 5.0
        assert chicken.amount == 500.0
        assert salt.scaling_factor == 2.0
        assert salt.amount == 10.0
        assert salt.is_seasoning is True

    def test_totals_recomputed_from_scaled_ingredients(self, engine, stir_fry):
        """Capped seasoning sodium is not multiplied by the full factor."""
        result = engine.scale(stir_fry, servings=4, target_calories_per_serving=1000)

        expected_sodium = sum(i.sodium for i in result.ingredients)
        assert result.totals.total.sodium == expected_sodium
        assert expected_sodium == 20 + 370 + 3876

    def test_scaling_down_not_capped(self, engine, stir_fry):
        result = engine.scale(stir_fry, servings=4, target_calories_per_serving=100)
        assert result.ingredients[2].scaling_factor == 0.5

    def test_degenerate_recipe(self, engine):
        result = engine.scale([line("water", 250, 0, unit="ml")], servings=2, target_calories_per_serving=300)

        assert not result.success
        assert result.error.code == IngestionErrorCode.DEGENERATE_SCALING_INPUT
        assert result.totals is None

    def test_empty_recipe_degenerate(self, engine):
        result = engine.scale([], servings=1, target_calories_per_serving=300)
        assert result.error.code == IngestionErrorCode.DEGENERATE_SCALING_INPUT

    @pytest.mark.parametrize("target", [0, -100])
    def test_non_positive_target(self, engine, stir_fry, target):
        result = engine.scale(stir_fry, servings=4, target_calories_per_serving=target)
        assert result.error.code == IngestionErrorCode.INVALID_SCALING_INPUT

    def test_deterministic(self, engine, stir_fry):
        first = engine.scale(stir_fry, servings=3, target_calories_per_serving=333)
        second = engine.scale(stir_fry, servings=3, target_calories_per_serving=333)
        assert first == second


class TestFactorMode:
    """Tests for scale_by_factor()."""

    def test_manual_factor_with_cap(self, engine):
        ingredients = [
            line("flour", 200, 364, category="Grains and Flours"),
            line("vanilla extract", 5, 288, category="Baking Essentials"),
        ]
        result = engine.scale_by_factor(ingredients, servings=8, factor=3)

        flour, vanilla = result.ingredients
        assert flour.amount == 600.0
        assert vanilla.amount == 10.0
        assert vanilla.scaling_factor == 2.0
        assert result.scaling_factor == 3

    @pytest.mark.parametrize("factor", [0, -1])
    def test_invalid_factor(self, engine, stir_fry, factor):
        result = engine.scale_by_factor(stir_fry, servings=4, factor=factor)
        assert result.error.code == IngestionErrorCode.INVALID_SCALING_INPUT


class TestInputs:
    """Tests for availability, fallbacks and validation."""

    def test_unavailable_ingredient_excluded_from_totals(self, engine, stir_fry):
        ingredients = stir_fry + [RecipeIngredientInput.unavailable("saffron", 1, notes="a pinch")]

        result = engine.scale(ingredients, servings=4, target_calories_per_serving=300)

        saffron = result.ingredients[-1]
        assert saffron.is_available is False
        assert saffron.amount == 1.5
        assert saffron.calories == 0
        assert result.totals.total.calories == 1200
        assert result.totals.unavailable == ["saffron"]

    def test_optional_ingredient_included(self, engine):
        ingredients = [
            line("oats", 50, 380),
            RecipeIngredientInput.linked(make_record("walnuts", 650), amount=20, is_optional=True),
        ]
        result = engine.scale(ingredients, servings=1)

        assert result.ingredients[1].is_optional is True
        assert result.totals.total.calories == 190 + 130

    def test_atwater_fallback(self, engine):
        """Zero stored calories fall back to 4P + 4C + 9F."""
        result = engine.scale([line("mystery mix", 100, 0, protein=10.0, carbs=20.0, fat=5.0)], servings=1)
        assert result.ingredients[0].calories == 165

    def test_ml_units_accepted(self, engine):
        result = engine.scale([line("whole milk", 250, 61, unit="ml", category="Dairy")], servings=1)
        assert result.totals.total.calories == 153

    @pytest.mark.parametrize("servings", [0, -2])
    def test_invalid_servings(self, engine, stir_fry, servings):
        result = engine.scale(stir_fry, servings=servings)
        assert result.error.code == IngestionErrorCode.INVALID_SCALING_INPUT

    def test_negative_amount(self, engine):
        result = engine.scale([line("rice", -10, 130)], servings=1)
        assert result.error.code == IngestionErrorCode.INVALID_SCALING_INPUT
        assert "rice.amount" in result.error.context["field"]

    def test_unsupported_unit(self, engine):
        result = engine.scale([line("rice", 1, 130, unit="cup")], servings=1)

        assert result.error.code == IngestionErrorCode.UNIT_NOT_SUPPORTED
        assert result.error.context["unit"] == "cup"

    @pytest.mark.parametrize("unit,basis,expected_unit", [
        ("ml", "100g", "g"),
        ("g", "100ml", "ml"),
    ])
    def test_unit_must_match_record_basis(self, engine, unit, basis, expected_unit):
        result = engine.scale([line("whole milk", 250, 61, unit=unit, basis=basis)], servings=1)

        assert result.error.code == IngestionErrorCode.UNIT_NOT_SUPPORTED
        assert result.error.context["supported_units"] == [expected_unit]
        assert result.totals is None

    def test_basis_unit_case_insensitive(self, engine):
        result = engine.scale([line("whole milk", 100, 61, unit="ML", basis="100ml")], servings=1)
        assert result.totals.total.calories == 61

    def test_unavailable_line_unit_not_checked(self, engine):
        result = engine.scale([RecipeIngredientInput.unavailable("stock", 1, unit="cup")], servings=1)
        assert result.success

    def test_failure_to_dict(self, engine):
        result = engine.scale([line("rice", 1, 130)], servings=0)
        payload = result.error.to_dict()
        assert payload["error_code"] == "INVALID_SCALING_INPUT"
        assert payload["context"]["field"] == "servings"


class TestRounding:
    """Tests for half-up rounding rules."""

    @pytest.mark.parametrize("value,places,expected", [
        (0.5, 0, 1.0),
        (2.5, 0, 3.0),
        (2.25, 1, 2.3),
        (1.04, 1, 1.0),
        (-0.5, 0, -1.0),
    ])
    def test_round_half_up(self, value, places, expected):
        assert round_half_up(value, places) == expected

    def test_field_precision(self, engine):
        result = engine.scale(
            [line("beans", 33, 347, protein=21.4, fiber=15.2, sugar=2.1, sodium=5.0)],
            servings=1,
        )
        beans = result.ingredients[0]

        assert beans.calories == 115
        assert isinstance(beans.calories, int)
        assert beans.protein == 7.1
        assert beans.fiber == 5.0
        assert beans.sugar == 0.7
        assert beans.sodium == 2
        assert isinstance(beans.sodium, int)


class TestHelpers:
    """Tests for seasoning detection and calorie fallback."""

    @pytest.mark.parametrize("name,category,expected", [
        ("sea salt", None, True),
        ("black pepper", None, True),
        ("Vanilla Extract", None, True),
        ("chili flakes", None, True),
        ("pumpkin spice", None, True),
        ("oregano", "Spices and Herbs", True),
        ("chicken breast", "Proteins", False),
    ])
    def test_is_seasoning(self, name, category, expected):
        assert is_seasoning(name, category) is expected

    def test_record_calories_prefers_stored(self):
        assert record_calories(make_record("x", 50, protein=100.0)) == 50
