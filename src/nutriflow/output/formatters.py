"""Formatters for scaled recipes and ingestion reports (JSON and Markdown)."""

import json
from dataclasses import asdict
from typing import Any, Dict, List

from nutriflow.data_layer.models import NutritionSummary, ScaledIngredient
from nutriflow.ingestion.pipeline import SeedReport
from nutriflow.nutrition.recipe_scaler import ScalingResult


def format_amount(amount: float) -> str:
    """Format an amount without a trailing ".0" (e.g., 150 or 37.5)."""
    if amount == int(amount):
        return str(int(amount))
    return f"{amount:.1f}".rstrip('0').rstrip('.')


def format_ingredient_string(ingredient: ScaledIngredient) -> str:
    """Format a scaled ingredient as a string (e.g., "150g chicken breast").

    Args:
        ingredient: ScaledIngredient object

    Returns:
        Formatted string, with markers for optional and unavailable lines
    """
    text = f"{format_amount(ingredient.amount)}{ingredient.unit} {ingredient.name}"
    if ingredient.is_optional:
        text += " (optional)"
    if ingredient.notes:
        text += f", {ingredient.notes}"
    if not ingredient.is_available:
        text += " [no nutrition data]"
    return text


def format_nutrition_breakdown(nutrition: NutritionSummary, indent: str = "") -> str:
    """Format a nutrition summary as a readable breakdown.

    Args:
        nutrition: NutritionSummary object
        indent: Optional indentation prefix

    Returns:
        Formatted string with calories, macros and sodium
    """
    lines = [
        f"{indent}**Calories:** {nutrition.calories} kcal",
        f"{indent}**Protein:** {nutrition.protein:.1f}g",
        f"{indent}**Carbs:** {nutrition.carbs:.1f}g",
        f"{indent}**Fat:** {nutrition.fat:.1f}g",
        f"{indent}**Fiber:** {nutrition.fiber:.1f}g",
        f"{indent}**Sugar:** {nutrition.sugar:.1f}g",
        f"{indent}**Sodium:** {nutrition.sodium}mg",
    ]
    return "\n".join(lines)


def format_scaling_markdown(result: ScalingResult, title: str = "Scaled Recipe") -> str:
    """Format a ScalingResult as Markdown.

    Args:
        result: ScalingResult from RecipeScalingEngine
        title: Heading text

    Returns:
        Formatted Markdown string
    """
    lines = [f"# {title}\n"]

    if not result.success:
        lines.append(f"⚠️ **Scaling failed:** {result.error.message}")
        return "\n".join(lines)

    totals = result.totals
    lines.append(f"**Servings:** {totals.servings}")
    lines.append(f"**Scaling Factor:** {result.scaling_factor:.2f}")
    lines.append("")

    lines.append("## Ingredients")
    for ingredient in result.ingredients:
        line = f"- {format_ingredient_string(ingredient)}"
        if ingredient.scaling_factor != result.scaling_factor:
            line += f" (scaled x{ingredient.scaling_factor:.2f})"
        lines.append(line)
    lines.append("")

    lines.append("## Per Serving")
    lines.append(format_nutrition_breakdown(totals.per_serving))
    lines.append("")

    lines.append("## Total")
    lines.append(format_nutrition_breakdown(totals.total))
    lines.append("")

    if totals.unavailable:
        lines.append("## Missing Nutrition Data")
        for name in totals.unavailable:
            lines.append(f"- {name}")
        lines.append("")

    return "\n".join(lines)


def format_scaling_json(result: ScalingResult) -> Dict[str, Any]:
    """Format a ScalingResult as a JSON-ready dictionary.

    Args:
        result: ScalingResult from RecipeScalingEngine

    Returns:
        Dictionary ready for JSON serialization
    """
    if not result.success:
        return {"success": False, "error": result.error.to_dict()}

    return {
        "success": True,
        "scaling_factor": round(result.scaling_factor, 4),
        "ingredients": [
            dict(asdict(ingredient), display=format_ingredient_string(ingredient))
            for ingredient in result.ingredients
        ],
        "totals": {
            "servings": result.totals.servings,
            "total": asdict(result.totals.total),
            "per_serving": asdict(result.totals.per_serving),
            "unavailable": list(result.totals.unavailable),
        },
    }


def format_scaling_json_string(result: ScalingResult, indent: int = 2) -> str:
    return json.dumps(format_scaling_json(result), indent=indent)


def format_seed_report(report: SeedReport) -> List[str]:
    """Terminal summary lines for a seed run."""
    lines = []
    if report.cleared:
        lines.append(f"Cleared {report.cleared} previously ingested ingredients")
    lines.extend(report.summary_lines())
    return lines
