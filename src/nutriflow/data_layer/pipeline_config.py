"""Pipeline configuration loader for YAML settings files."""
import os
import yaml
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional

from nutriflow.data_layer.ingredient_store import DEFAULT_DATABASE_URL
from nutriflow.data_layer.models import DatasetSource


@dataclass
class PipelineConfig:
    """Settings for seeding, reconciliation and scaling lookups."""

    database_url: str = DEFAULT_DATABASE_URL
    chunk_size: int = 1024 * 1024
    batch_size: int = 100
    max_workers: int = 4
    progress_every: int = 1000
    kj_threshold: float = 1000.0
    cache_ttl_seconds: float = 300.0
    cache_max_entries: int = 1024
    log_level: str = "INFO"
    datasets: Dict[DatasetSource, str] = field(default_factory=dict)


class PipelineConfigLoader:
    """Loader for pipeline configuration from YAML.

    Environment variables win over the file:
    NUTRIFLOW_DATABASE_URL (or DATABASE_URL) and NUTRIFLOW_LOG_LEVEL.
    """

    def __init__(self, yaml_path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None):
        """Initialize loader.

        Args:
            yaml_path: Path to YAML file, or None to use defaults only
            environ: Environment mapping (defaults to os.environ)
        """
        self.yaml_path = Path(yaml_path) if yaml_path else None
        self.environ = environ if environ is not None else os.environ

    def load(self) -> PipelineConfig:
        """Load configuration.

        Returns:
            PipelineConfig object

        Raises:
            FileNotFoundError: If the YAML file doesn't exist
            ValueError: If a value has the wrong type or an unknown dataset key
        """
        data = {}
        if self.yaml_path is not None:
            with open(self.yaml_path, "r") as f:
                data = yaml.safe_load(f) or {}
            if not isinstance(data, dict):
                raise ValueError(f"{self.yaml_path}: top level must be a mapping")

        defaults = PipelineConfig()
        config = PipelineConfig(
            database_url=str(data.get("database_url", defaults.database_url)),
            chunk_size=_positive_int(data, "chunk_size", defaults.chunk_size),
            batch_size=_positive_int(data, "batch_size", defaults.batch_size),
            max_workers=_positive_int(data, "max_workers", defaults.max_workers),
            progress_every=int(data.get("progress_every", defaults.progress_every)),
            kj_threshold=float(data.get("kj_threshold", defaults.kj_threshold)),
            cache_ttl_seconds=float(data.get("cache_ttl_seconds", defaults.cache_ttl_seconds)),
            cache_max_entries=_positive_int(data, "cache_max_entries", defaults.cache_max_entries),
            log_level=str(data.get("log_level", defaults.log_level)).upper(),
            datasets=_datasets(data.get("datasets") or {}),
        )

        database_url = self.environ.get("NUTRIFLOW_DATABASE_URL") or self.environ.get("DATABASE_URL")
        if database_url:
            config.database_url = database_url
        log_level = self.environ.get("NUTRIFLOW_LOG_LEVEL")
        if log_level:
            config.log_level = log_level.upper()

        return config


def _positive_int(data: dict, key: str, default: int) -> int:
    value = int(data.get(key, default))
    if value <= 0:
        raise ValueError(f"Invalid {key}: {value}. Must be positive.")
    return value


def _datasets(raw: dict) -> Dict[DatasetSource, str]:
    if not isinstance(raw, dict):
        raise ValueError("datasets must be a mapping of variant to file path")
    datasets = {}
    for key, path in raw.items():
        try:
            source = DatasetSource(str(key).lower())
        except ValueError:
            raise ValueError(f"Unknown dataset variant: {key}")
        if source not in DatasetSource.ingestion_sources():
            raise ValueError(f"Dataset variant '{key}' cannot be ingested")
        if path:
            datasets[source] = str(path)
    return datasets
