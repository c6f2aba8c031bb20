"""Deduplicating batch persister shared by every pipeline of a seed run.

DESIGN DECISIONS:
- One instance per run; a lock keeps exactly one batch write in flight
- Per batch: drop in-batch duplicates, drop names already stored, then
  bulk insert the rest in one transaction
- Bulk failure falls back to per-record inserts so one bad record never
  costs the whole batch
- Unique-constraint conflicts (a concurrent writer won) count as skipped;
  any other failure counts as errored and is logged
- A failed existing-name lookup counts every record of the batch as
  errored; later batches still run
"""

import logging
import threading
from dataclasses import dataclass
from typing import List

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from nutriflow.data_layer.ingredient_store import IngredientStore
from nutriflow.data_layer.models import IngredientRecord
from nutriflow.ingestion.ingredient_errors import PersistenceError


logger = logging.getLogger(__name__)


@dataclass
class BatchOutcome:
    added: int = 0
    skipped: int = 0
    errored: int = 0


class IngredientPersister:
    """Idempotently writes IngredientRecord batches to the store.

    Usage:
        persister = IngredientPersister(store)
        outcome = persister.write_batch(records)
        outcome.added, outcome.skipped, outcome.errored
    """

    def __init__(self, store: IngredientStore, max_logged_errors: int = 5):
        self.store = store
        self.max_logged_errors = max_logged_errors
        self._lock = threading.Lock()
        self._errors_logged = 0

    def write_batch(self, candidates: List[IngredientRecord]) -> BatchOutcome:
        """Persist one batch of complete candidates.

        Args:
            candidates: Records with normalized names

        Returns:
            BatchOutcome counting every candidate exactly once
        """
        outcome = BatchOutcome()
        if not candidates:
            return outcome

        with self._lock:
            unique: List[IngredientRecord] = []
            seen = set()
            for record in candidates:
                if record.name in seen:
                    outcome.skipped += 1
                    continue
                seen.add(record.name)
                unique.append(record)

            try:
                existing = self.store.existing_names(seen)
            except SQLAlchemyError as e:
                logger.warning(
                    "Existing-name lookup for %d records failed (%s)",
                    len(unique), e.__class__.__name__,
                )
                for record in unique:
                    outcome.errored += 1
                    self._log_error(PersistenceError(record.name, str(e.__cause__ or e)))
                return outcome

            pending = [record for record in unique if record.name not in existing]
            outcome.skipped += len(unique) - len(pending)

            if not pending:
                return outcome

            try:
                outcome.added += self.store.insert_many(pending)
            except SQLAlchemyError as e:
                logger.warning(
                    "Bulk insert of %d records failed (%s); retrying one by one",
                    len(pending), e.__class__.__name__,
                )
                self._insert_individually(pending, outcome)

        return outcome

    def _insert_individually(self, records: List[IngredientRecord], outcome: BatchOutcome) -> None:
        for record in records:
            try:
                self.store.insert_one(record)
                outcome.added += 1
            except IntegrityError:
                outcome.skipped += 1
            except SQLAlchemyError as e:
                outcome.errored += 1
                self._log_error(PersistenceError(record.name, str(e.__cause__ or e)))

    def _log_error(self, error: PersistenceError) -> None:
        self._errors_logged += 1
        if self._errors_logged <= self.max_logged_errors:
            logger.error("%s", error, extra={"context": error.context})
        elif self._errors_logged == self.max_logged_errors + 1:
            logger.error("Further persistence errors suppressed")
