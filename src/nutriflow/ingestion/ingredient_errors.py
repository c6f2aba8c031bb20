"""Structured error types for the ingestion pipeline and scaling engine.

Every failure mode has its own error type carrying a machine-readable code,
a human-readable message and a context dictionary.

DESIGN PRINCIPLES:
1. Per-object failures (malformed JSON, unsupported units) are counted by the
   pipeline and never abort a run
2. Per-file failures (missing or unreadable dataset) are fatal for that file
   only; sibling pipelines keep running
3. Scaling failures are returned to the caller inside a result object so the
   UI can render a specific message

PIPELINE ERROR FLOW:
    ┌─────────────────────────────────────────────────────┐
    │ Open dataset file     → DatasetFileError (fatal)    │
    └─────────────────────────────────────────────────────┘
                              │
                              ▼
    ┌─────────────────────────────────────────────────────┐
    │ Extract / parse object → MalformedObjectError       │
    └─────────────────────────────────────────────────────┘
                              │
                              ▼
    ┌─────────────────────────────────────────────────────┐
    │ Normalize serving     → UnsupportedUnitError        │
    └─────────────────────────────────────────────────────┘
                              │
                              ▼
    ┌─────────────────────────────────────────────────────┐
    │ Persist batch         → PersistenceError            │
    └─────────────────────────────────────────────────────┘
"""

from enum import Enum
from typing import Dict, Any, List, Optional, Sequence


class IngestionErrorCode(Enum):
    """Enumeration of all pipeline and scaling error codes."""

    # File-level errors
    DATASET_FILE_ERROR = "DATASET_FILE_ERROR"
    UNKNOWN_DATASET = "UNKNOWN_DATASET"

    # Object-level errors
    MALFORMED_OBJECT = "MALFORMED_OBJECT"
    UNIT_NOT_SUPPORTED = "UNIT_NOT_SUPPORTED"

    # Store errors
    PERSISTENCE_FAILURE = "PERSISTENCE_FAILURE"

    # Scaling errors
    DEGENERATE_SCALING_INPUT = "DEGENERATE_SCALING_INPUT"
    INVALID_SCALING_INPUT = "INVALID_SCALING_INPUT"


class PipelineError(Exception):
    """Base exception for all pipeline errors.

    Attributes:
        code: IngestionErrorCode identifying the error type
        message: Human-readable error description
        context: Dictionary of relevant error context
    """

    def __init__(
        self,
        code: IngestionErrorCode,
        message: str,
        context: Optional[Dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.context = context or {}
        super().__init__(f"[{code.value}] {message}")

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"code={self.code!r}, "
            f"message={self.message!r}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logs and caller-facing results.

        Returns:
            Dictionary with error code, message, and context
        """
        return {
            "error_code": self.code.value,
            "message": self.message,
            "context": self.context
        }


class DatasetFileError(PipelineError):
    """Raised when a dataset file cannot be opened, read or identified.

    Fatal for the pipeline instance processing that file.

    Context includes:
        - path: The dataset file path
        - reason: What went wrong
    """

    def __init__(self, path: str, reason: str, unknown_dataset: bool = False):
        code = (
            IngestionErrorCode.UNKNOWN_DATASET
            if unknown_dataset
            else IngestionErrorCode.DATASET_FILE_ERROR
        )
        super().__init__(
            code=code,
            message=f"Cannot ingest '{path}': {reason}",
            context={"path": path, "reason": reason}
        )
        self.path = path
        self.reason = reason


class MalformedObjectError(PipelineError):
    """Raised when an extracted object is not valid JSON or not a food object.

    Context includes:
        - object_index: Position of the object in the stream
        - reason: Parser message
        - preview: First characters of the offending text
    """

    PREVIEW_LENGTH = 80

    def __init__(self, object_index: int, reason: str, raw_text: str = ""):
        preview = raw_text[:self.PREVIEW_LENGTH]
        super().__init__(
            code=IngestionErrorCode.MALFORMED_OBJECT,
            message=f"Malformed object #{object_index}: {reason}",
            context={
                "object_index": object_index,
                "reason": reason,
                "preview": preview,
            }
        )
        self.object_index = object_index
        self.reason = reason


class UnsupportedUnitError(PipelineError):
    """Raised when a unit cannot be converted to grams or milliliters.

    Context includes:
        - unit: The unsupported unit
        - supported_units: Units that would work
    """

    def __init__(self, unit: str, supported_units: List[str], food_name: str = ""):
        context: Dict[str, Any] = {
            "unit": unit,
            "supported_units": supported_units,
        }
        if food_name:
            context["food_name"] = food_name

        units_str = ", ".join(supported_units) if supported_units else "none"
        message = f"Unit '{unit}' is not supported"
        if food_name:
            message += f" for '{food_name}'"
        message += f". Supported units: {units_str}"

        super().__init__(
            code=IngestionErrorCode.UNIT_NOT_SUPPORTED,
            message=message,
            context=context
        )
        self.unit = unit
        self.supported_units = supported_units


class PersistenceError(PipelineError):
    """Raised when writing a record to the store fails for non-conflict reasons.

    Context includes:
        - ingredient_name: Record that could not be written
        - reason: Driver error text
    """

    def __init__(self, ingredient_name: str, reason: str):
        super().__init__(
            code=IngestionErrorCode.PERSISTENCE_FAILURE,
            message=f"Failed to persist '{ingredient_name}': {reason}",
            context={"ingredient_name": ingredient_name, "reason": reason}
        )
        self.ingredient_name = ingredient_name
        self.reason = reason


class ScalingError(PipelineError):
    """Typed scaling failure returned (not raised) by the scaling engine.

    Use the classmethod constructors so every failure carries a stable code.
    """

    @classmethod
    def degenerate(cls, servings: int, target_calories: float) -> "ScalingError":
        """Current per-serving calories are zero, so no factor exists."""
        return cls(
            code=IngestionErrorCode.DEGENERATE_SCALING_INPUT,
            message=(
                "Recipe has zero calories per serving; "
                f"cannot scale to {target_calories} kcal"
            ),
            context={"servings": servings, "target_calories": target_calories}
        )

    @classmethod
    def invalid(cls, field: str, value: Any, reason: str) -> "ScalingError":
        return cls(
            code=IngestionErrorCode.INVALID_SCALING_INPUT,
            message=f"Invalid '{field}': {reason} (value: {value})",
            context={"field": field, "value": value, "reason": reason}
        )

    @classmethod
    def unsupported_unit(
        cls,
        unit: str,
        ingredient_name: str,
        supported_units: Sequence[str] = ("g", "ml"),
    ) -> "ScalingError":
        return cls(
            code=IngestionErrorCode.UNIT_NOT_SUPPORTED,
            message=(
                f"Unit '{unit}' is not supported for '{ingredient_name}'. "
                f"Supported units: {', '.join(supported_units)}"
            ),
            context={
                "unit": unit,
                "ingredient_name": ingredient_name,
                "supported_units": list(supported_units),
            }
        )
