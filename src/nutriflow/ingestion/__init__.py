"""Ingestion layer for streaming USDA FoodData Central exports into the store."""

from nutriflow.ingestion.chunked_reader import (
    read_chunks,
    DEFAULT_CHUNK_SIZE,
)

from nutriflow.ingestion.object_extractor import (
    StreamingObjectExtractor,
    ExtractorPhase,
    extract_objects,
)

from nutriflow.ingestion.nutrient_mapper import (
    NutrientMapper,
    USDA_NUTRIENT_MAP,
    LEGACY_NUMBER_TO_ID,
)

from nutriflow.ingestion.unit_normalizer import (
    UnitNormalizer,
    NormalizedNutrients,
    UNIT_CONVERSIONS,
)

from nutriflow.ingestion.classifier import (
    Classifier,
    Classification,
    CATEGORY_MAPPINGS,
    AISLE_MAPPINGS,
)

from nutriflow.ingestion.food_variants import (
    FoodAdapter,
    FoodVariant,
    FoundationFood,
    LegacyFood,
    SurveyFood,
    BrandedFood,
    parse_food,
)

from nutriflow.ingestion.persister import (
    IngredientPersister,
    BatchOutcome,
)

from nutriflow.ingestion.pipeline import (
    IngestionPipeline,
    IngestionStats,
    SeedReport,
    seed_datasets,
)

from nutriflow.ingestion.reconciler import (
    CalorieReconciler,
    ReconcileReport,
)

from nutriflow.ingestion.ingredient_errors import (
    PipelineError,
    IngestionErrorCode,
    DatasetFileError,
    MalformedObjectError,
    UnsupportedUnitError,
    PersistenceError,
    ScalingError,
)

__all__ = [
    # Reading and extraction
    "read_chunks",
    "DEFAULT_CHUNK_SIZE",
    "StreamingObjectExtractor",
    "ExtractorPhase",
    "extract_objects",
    # Nutrient mapping
    "NutrientMapper",
    "USDA_NUTRIENT_MAP",
    "LEGACY_NUMBER_TO_ID",
    # Serving normalization
    "UnitNormalizer",
    "NormalizedNutrients",
    "UNIT_CONVERSIONS",
    # Classification
    "Classifier",
    "Classification",
    "CATEGORY_MAPPINGS",
    "AISLE_MAPPINGS",
    # Dataset variants
    "FoodAdapter",
    "FoodVariant",
    "FoundationFood",
    "LegacyFood",
    "SurveyFood",
    "BrandedFood",
    "parse_food",
    # Persistence and pipeline
    "IngredientPersister",
    "BatchOutcome",
    "IngestionPipeline",
    "IngestionStats",
    "SeedReport",
    "seed_datasets",
    "CalorieReconciler",
    "ReconcileReport",
    # Error types
    "PipelineError",
    "IngestionErrorCode",
    "DatasetFileError",
    "MalformedObjectError",
    "UnsupportedUnitError",
    "PersistenceError",
    "ScalingError",
]
