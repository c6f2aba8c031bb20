"""Per-file ingestion pipeline and the multi-file seed runner.

Data flows one way:

    file → read_chunks → StreamingObjectExtractor → json.loads
         → parse_food (tagged variant) → FoodAdapter (map, normalize, classify)
         → batch buffer → IngredientPersister → IngredientStore

DESIGN DECISIONS:
- One pipeline instance per file, single-threaded; files run concurrently
  in a bounded ThreadPoolExecutor sharing one persister
- Memory is bounded by one chunk plus the object in flight plus one batch
- Per-object failures (malformed, incomplete, unsupported unit) are counted
  and never abort a run; a file-level failure is fatal for that file only
- Cancellation is a shared threading.Event checked before every object;
  the pending partial batch is still flushed
- Counters live on IngestionStats and are readable while a run is going
"""

import json
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

from nutriflow.data_layer.ingredient_store import IngredientStore
from nutriflow.data_layer.models import DatasetSource, IngredientRecord
from nutriflow.ingestion.chunked_reader import DEFAULT_CHUNK_SIZE, read_chunks
from nutriflow.ingestion.food_variants import FoodAdapter, parse_food
from nutriflow.ingestion.ingredient_errors import (
    DatasetFileError,
    MalformedObjectError,
    PipelineError,
    UnsupportedUnitError,
)
from nutriflow.ingestion.object_extractor import StreamingObjectExtractor
from nutriflow.ingestion.persister import IngredientPersister


logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100
DEFAULT_PROGRESS_EVERY = 1000


@dataclass
class IngestionStats:
    """Running counters for one file.

    skipped covers duplicates and incomplete records; incomplete and
    malformed are also reported on their own.
    """

    path: str = ""
    source: Optional[DatasetSource] = None
    processed: int = 0
    added: int = 0
    skipped: int = 0
    errored: int = 0
    malformed: int = 0
    incomplete: int = 0
    flagged: int = 0
    cancelled: bool = False
    elapsed_seconds: float = 0.0

    def summary(self) -> str:
        source = self.source.value if self.source else "unknown"
        line = (
            f"{self.path} [{source}]: {self.processed} processed, {self.added} added, "
            f"{self.skipped} skipped, {self.errored} errored, {self.malformed} malformed "
            f"in {self.elapsed_seconds:.1f}s"
        )
        if self.flagged:
            line += f" ({self.flagged} flagged: serving size assumed)"
        if self.cancelled:
            line += " (cancelled)"
        return line


class IngestionPipeline:
    """Streams one FDC export file into the store.

    Usage:
        persister = IngredientPersister(store)
        pipeline = IngestionPipeline(persister)
        stats = pipeline.run("FoodData_Central_foundation_food_json.json")
        print(stats.summary())
    """

    def __init__(
        self,
        persister: IngredientPersister,
        adapter: Optional[FoodAdapter] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        batch_size: int = DEFAULT_BATCH_SIZE,
        cancel_event: Optional[threading.Event] = None,
        progress_every: int = DEFAULT_PROGRESS_EVERY,
        max_logged_errors: int = 5,
    ):
        if batch_size <= 0:
            raise ValueError(f"Invalid batch_size: {batch_size}. Must be positive.")
        self.persister = persister
        self.adapter = adapter or FoodAdapter()
        self.chunk_size = chunk_size
        self.batch_size = batch_size
        self.cancel_event = cancel_event or threading.Event()
        self.progress_every = progress_every
        self.max_logged_errors = max_logged_errors
        self.stats = IngestionStats()
        self._batch: List[IngredientRecord] = []
        self._started_at = 0.0
        self._object_errors_logged = 0

    def run(self, path: str, source: Optional[DatasetSource] = None) -> IngestionStats:
        """Ingest one file.

        Args:
            path: Dataset file
            source: Variant override; detected from the array key when None

        Returns:
            Final IngestionStats (also available live as self.stats)

        Raises:
            DatasetFileError: If the file is unreadable or its variant unknown
        """
        self.stats = IngestionStats(path=str(path), source=source)
        self._batch = []
        self._object_errors_logged = 0
        self._started_at = time.monotonic()
        extractor = StreamingObjectExtractor()

        logger.info("Ingesting %s", path)
        try:
            for chunk in read_chunks(path, self.chunk_size):
                if self._cancelled():
                    break
                for text in extractor.feed(chunk):
                    if self._cancelled():
                        break
                    if self.stats.source is None:
                        self.stats.source = self._detect_source(path, extractor.array_key)
                    self._process_object(text)
                if self.stats.cancelled:
                    break

            if not self.stats.cancelled and extractor.finish():
                self.stats.malformed += 1
        finally:
            self._flush()
            self.stats.elapsed_seconds = time.monotonic() - self._started_at

        logger.info("%s", self.stats.summary())
        return self.stats

    def _cancelled(self) -> bool:
        if self.cancel_event.is_set():
            if not self.stats.cancelled:
                logger.warning("Ingestion of %s cancelled", self.stats.path)
            self.stats.cancelled = True
        return self.stats.cancelled

    def _detect_source(self, path: str, array_key: Optional[str]) -> DatasetSource:
        source = DatasetSource.from_array_key(array_key)
        if source is None:
            raise DatasetFileError(
                str(path),
                f"unrecognized dataset array key {array_key!r}",
                unknown_dataset=True,
            )
        logger.info("Detected %s dataset (key %r)", source.value, array_key)
        return source

    def _process_object(self, text: str) -> None:
        self.stats.processed += 1
        index = self.stats.processed

        try:
            raw = json.loads(text)
            food = parse_food(raw, self.stats.source)
        except (ValueError, TypeError) as e:
            self.stats.malformed += 1
            self._log_object_error(MalformedObjectError(index, str(e), text))
            self._report_progress()
            return

        try:
            record = self.adapter.adapt(food)
        except UnsupportedUnitError as e:
            self.stats.incomplete += 1
            self.stats.skipped += 1
            logger.debug("Skipping object #%d: %s", index, e)
            self._report_progress()
            return

        if not record.is_complete():
            self.stats.incomplete += 1
            self.stats.skipped += 1
        else:
            if record.basis_assumed:
                self.stats.flagged += 1
            self._batch.append(record)
            if len(self._batch) >= self.batch_size:
                self._flush()

        self._report_progress()

    def _flush(self) -> None:
        if not self._batch:
            return
        batch, self._batch = self._batch, []
        outcome = self.persister.write_batch(batch)
        self.stats.added += outcome.added
        self.stats.skipped += outcome.skipped
        self.stats.errored += outcome.errored

    def _report_progress(self) -> None:
        if not self.progress_every or self.stats.processed % self.progress_every:
            return
        elapsed = time.monotonic() - self._started_at
        rate = self.stats.processed / elapsed if elapsed > 0 else 0.0
        logger.info(
            "%s: %d processed (%d added, %d skipped, %d errored) %.0f objects/s",
            self.stats.path, self.stats.processed, self.stats.added,
            self.stats.skipped, self.stats.errored, rate,
        )

    def _log_object_error(self, error: PipelineError) -> None:
        self._object_errors_logged += 1
        if self._object_errors_logged <= self.max_logged_errors:
            logger.warning("%s", error, extra={"context": error.context})


# ============================================================================
# SEED RUNNER
# ============================================================================


@dataclass
class FileResult:
    path: str
    stats: Optional[IngestionStats] = None
    error: Optional[PipelineError] = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class SeedReport:
    """Outcome of a multi-file seed run."""

    files: List[FileResult] = field(default_factory=list)
    cleared: int = 0
    elapsed_seconds: float = 0.0

    def total(self, counter: str) -> int:
        return sum(getattr(f.stats, counter) for f in self.files if f.stats is not None)

    @property
    def failed(self) -> List[FileResult]:
        return [f for f in self.files if not f.success]

    def summary_lines(self) -> List[str]:
        lines = []
        for result in self.files:
            if result.success:
                lines.append(result.stats.summary())
            else:
                lines.append(f"{result.path}: FAILED {result.error}")
        lines.append(
            f"Total: {self.total('processed')} processed, {self.total('added')} added, "
            f"{self.total('skipped')} skipped, {self.total('errored')} errored "
            f"in {self.elapsed_seconds:.1f}s"
        )
        return lines


DatasetPaths = Union[List[str], Dict[DatasetSource, str]]


def seed_datasets(
    store: IngredientStore,
    datasets: DatasetPaths,
    reseed: bool = False,
    max_workers: int = 4,
    cancel_event: Optional[threading.Event] = None,
    adapter: Optional[FoodAdapter] = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    batch_size: int = DEFAULT_BATCH_SIZE,
    progress_every: int = DEFAULT_PROGRESS_EVERY,
) -> SeedReport:
    """Ingest several dataset files concurrently into one store.

    Args:
        store: Target store (schema must exist)
        datasets: File paths, or a source → path mapping to pin variants
        reseed: Clear ingestion-sourced records first
        max_workers: Upper bound on concurrently ingested files
        cancel_event: Shared event; setting it stops every pipeline

    Returns:
        SeedReport with one FileResult per file, in input order
    """
    started = time.monotonic()
    report = SeedReport()
    cancel_event = cancel_event or threading.Event()

    if isinstance(datasets, dict):
        jobs = [(str(path), source) for source, path in datasets.items()]
    else:
        jobs = [(str(path), None) for path in datasets]

    if reseed:
        report.cleared = store.clear(DatasetSource.ingestion_sources())

    persister = IngredientPersister(store)
    results: Dict[int, FileResult] = {}

    def ingest(path: str, source: Optional[DatasetSource]) -> IngestionStats:
        pipeline = IngestionPipeline(
            persister,
            adapter=adapter,
            chunk_size=chunk_size,
            batch_size=batch_size,
            cancel_event=cancel_event,
            progress_every=progress_every,
        )
        return pipeline.run(path, source)

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
        futures = {
            executor.submit(ingest, path, source): (position, path)
            for position, (path, source) in enumerate(jobs)
        }
        for future in as_completed(futures):
            position, path = futures[future]
            try:
                results[position] = FileResult(path=path, stats=future.result())
            except PipelineError as e:
                logger.error("%s", e, extra={"context": e.context})
                results[position] = FileResult(path=path, error=e)
            except Exception as e:
                logger.exception("Ingestion of %s aborted", path)
                error = DatasetFileError(path, f"ingestion aborted ({e.__class__.__name__}: {e})")
                results[position] = FileResult(path=path, error=error)

    report.files = [results[position] for position in range(len(jobs))]
    report.elapsed_seconds = time.monotonic() - started
    return report
