"""nutriflow: USDA FoodData Central ingestion and recipe nutrition scaling."""

__version__ = "0.1.0"
