"""Calorie reconciliation pass.

Some exports label kilojoules as kilocalories. No food exceeds ~900 kcal per
100 g (pure fat), so any stored energy above the threshold is taken as kJ
and overwritten by name with round(kj / 4.184).
"""

import logging
from dataclasses import dataclass, field, replace
from typing import List

from nutriflow.data_layer.ingredient_store import IngredientStore


logger = logging.getLogger(__name__)

KJ_PER_KCAL = 4.184
DEFAULT_KJ_THRESHOLD = 1000.0


@dataclass
class ReconcileReport:
    examined: int = 0
    corrected: int = 0
    corrected_names: List[str] = field(default_factory=list)


class CalorieReconciler:
    """Rewrites kJ-as-kcal energy values in the store.

    Usage:
        report = CalorieReconciler(store).reconcile()
    """

    def __init__(self, store: IngredientStore, threshold: float = DEFAULT_KJ_THRESHOLD):
        if threshold <= 0:
            raise ValueError(f"Invalid threshold: {threshold}. Must be positive.")
        self.store = store
        self.threshold = threshold

    def reconcile(self, dry_run: bool = False) -> ReconcileReport:
        """Correct every record above the threshold.

        Args:
            dry_run: Report what would change without writing

        Returns:
            ReconcileReport
        """
        report = ReconcileReport()
        for record in self.store.iter_records(min_calories=self.threshold):
            report.examined += 1
            corrected = round(record.calories / KJ_PER_KCAL)
            logger.info(
                "%s: %.0f → %d kcal%s",
                record.name, record.calories, corrected, " (dry run)" if dry_run else "",
            )
            if not dry_run:
                nutrients = replace(record.nutrients, calories=float(corrected))
                self.store.overwrite(record.name, nutrients)
            report.corrected += 1
            report.corrected_names.append(record.name)
        return report
