"""Category and aisle classification for ingested foods.

Maps source-specific category strings to a closed {category, aisle}
taxonomy. Classification never fails: persistence requires both values.

DESIGN DECISIONS:
- Static table lookup first (source category → category → aisle)
- Category lookup is case- and whitespace-insensitive
- Fallback: whole-word keyword heuristics against the food description
  ("milk" matches "Milk, whole" but not "buttermilk")
- Final default: ("Other", "Pantry")
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple


# ============================================================================
# SOURCE CATEGORY → CATEGORY
# ============================================================================
#
# Keys cover Foundation/SR Legacy foodCategory descriptions, Branded
# brandedFoodCategory strings and Survey WWEIA category descriptions.
# ============================================================================

CATEGORY_MAPPINGS: Dict[str, str] = {
    "Vegetables and Vegetable Products": "Vegetables",
    "Vegetable and Lentil Mixes": "Vegetables",
    "Fruits and Fruit Juices": "Fruits",
    "Dairy and Egg Products": "Dairy",
    "Legumes and Legume Products": "Proteins",
    "Poultry Products": "Proteins",
    "Pork Products": "Proteins",
    "Beef Products": "Proteins",
    "Lamb, Veal, and Game Products": "Proteins",
    "Finfish and Shellfish Products": "Proteins",
    "Sausages and Luncheon Meats": "Proteins",
    "Nut and Seed Products": "Proteins",
    "Cereal Grains and Pasta": "Grains and Flours",
    "Breakfast Cereals": "Grains and Flours",
    "Cereal": "Grains and Flours",
    "Rice": "Grains and Flours",
    "Spices and Herbs": "Spices and Herbs",
    "Fats and Oils": "Oils and Fats",
    "Sweets": "Sweeteners",
    "Beverages": "Beverages",
    "Baked Products": "Breads and Grains",
    "Meals, Entrees, and Side Dishes": "Snacks",
    "American Indian/Alaska Native Foods": "Snacks",
    "Ethnic Foods": "Snacks",
    "Baby Foods": "Snacks",
    "Fast Foods": "Snacks",
    "Restaurant Foods": "Snacks",
    "Chewing Gum & Mints": "Snacks",
    "Snacks": "Snacks",
    "Crusts & Dough": "Baking Essentials",
    "Cake, Cookie & Cupcake Mixes": "Baking Essentials",
    "Soups, Sauces, and Gravies": "Condiments",
    "Canned & Bottled Beans": "Canned Goods",
    "Canned Vegetables": "Canned Goods",
    "Canned Fruit": "Canned Goods",
}

AISLE_MAPPINGS: Dict[str, str] = {
    "Vegetables": "Produce",
    "Fruits": "Produce",
    "Dairy": "Dairy",
    "Proteins": "Meat",
    "Grains and Flours": "Baking",
    "Baking Essentials": "Baking",
    "Oils and Fats": "Oils",
    "Condiments": "Condiments",
    "Spices and Herbs": "Spices",
    "Sweeteners": "Baking",
    "Breads and Grains": "Bread",
    "Snacks": "Snacks",
    "Beverages": "Beverages",
    "Canned Goods": "Canned Goods",
}

# Checked in order; first category with a matching keyword wins.
KEYWORD_HEURISTICS: List[Tuple[str, Tuple[str, ...]]] = [
    ("Spices and Herbs", ("salt", "pepper", "cinnamon", "oregano", "basil",
                          "thyme", "cumin", "paprika", "spice", "spices")),
    ("Dairy", ("milk", "cheese", "yogurt", "butter", "cream", "egg", "eggs")),
    ("Proteins", ("chicken", "beef", "pork", "turkey", "lamb", "fish",
                  "salmon", "tuna", "shrimp", "tofu", "beans", "lentils")),
    ("Oils and Fats", ("oil", "lard", "shortening", "margarine")),
    ("Breads and Grains", ("bread", "bagel", "tortilla", "bun", "roll")),
    ("Grains and Flours", ("rice", "flour", "oats", "pasta", "noodles", "quinoa")),
    ("Fruits", ("apple", "banana", "orange", "berries", "strawberries",
                "grapes", "lemon", "mango")),
    ("Vegetables", ("broccoli", "carrot", "carrots", "spinach", "lettuce",
                    "onion", "onions", "tomato", "tomatoes", "potato", "potatoes")),
    ("Sweeteners", ("sugar", "honey", "syrup", "candy", "chocolate")),
    ("Condiments", ("sauce", "ketchup", "mustard", "mayonnaise", "dressing", "gravy")),
    ("Beverages", ("juice", "soda", "coffee", "tea", "drink", "beverage")),
    ("Snacks", ("chips", "crackers", "cookies", "pretzels", "popcorn")),
]

DEFAULT_CATEGORY = "Other"
DEFAULT_AISLE = "Pantry"


@dataclass(frozen=True)
class Classification:
    category: str
    aisle: str
    matched_by: str  # "table", "keyword" or "default"


class Classifier:
    """Assigns {category, aisle} to a food.

    Usage:
        classifier = Classifier()
        result = classifier.classify("Dairy and Egg Products", "Milk, whole")
        result.category, result.aisle  # ("Dairy", "Dairy")
    """

    def __init__(
        self,
        category_mappings: Optional[Dict[str, str]] = None,
        aisle_mappings: Optional[Dict[str, str]] = None,
    ):
        mappings = category_mappings if category_mappings is not None else CATEGORY_MAPPINGS
        self._categories = {_key(source): target for source, target in mappings.items()}
        self._aisles = aisle_mappings if aisle_mappings is not None else AISLE_MAPPINGS
        self._keyword_patterns = [
            (category, re.compile(r"\b(?:" + "|".join(map(re.escape, words)) + r")\b"))
            for category, words in KEYWORD_HEURISTICS
        ]

    def classify(self, source_category: Optional[str], description: Optional[str]) -> Classification:
        """Classify a food from its source category and description.

        Args:
            source_category: Category string carried by the record, if any
            description: Food description used for keyword fallback

        Returns:
            Classification (never raises)
        """
        if source_category:
            category = self._categories.get(_key(source_category))
            if category:
                return Classification(category, self.aisle_for(category), "table")

        if description:
            text = description.lower()
            for category, pattern in self._keyword_patterns:
                if pattern.search(text):
                    return Classification(category, self.aisle_for(category), "keyword")

        return Classification(DEFAULT_CATEGORY, DEFAULT_AISLE, "default")

    def aisle_for(self, category: str) -> str:
        return self._aisles.get(category, DEFAULT_AISLE)


def _key(text: str) -> str:
    return " ".join(str(text).split()).lower()
