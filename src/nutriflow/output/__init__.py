"""Output formatting for scaled recipes and seed reports."""

from nutriflow.output.formatters import (
    format_scaling_json,
    format_scaling_json_string,
    format_scaling_markdown,
    format_ingredient_string,
    format_nutrition_breakdown,
    format_seed_report,
)

__all__ = [
    "format_scaling_json",
    "format_scaling_json_string",
    "format_scaling_markdown",
    "format_ingredient_string",
    "format_nutrition_breakdown",
    "format_seed_report",
]
