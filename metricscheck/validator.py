"""Label-set validation of observed samples against a label schema."""
from typing import Dict, Iterable, List, Set
import logging

from metricscheck.config import LabelSchema
from metricscheck.series import INTERNAL_LABEL_PREFIX, ObservedData

logger = logging.getLogger(__name__)


class LabelReport:
    """Accumulates label keys per metric name.

    Several validation passes may write into the same report; findings
    for one metric are merged as a set union.
    """

    def __init__(self):
        self._labels: Dict[str, Set[str]] = {}

    def add(self, metric: str, label: str):
        """Record one label key for a metric."""
        self._labels.setdefault(metric, set()).add(label)

    def merge(self, other: "LabelReport"):
        """Union another report into this one."""
        for metric, labels in other.items():
            for label in labels:
                self.add(metric, label)

    def items(self):
        return self._labels.items()

    def get(self, metric: str) -> Set[str]:
        return set(self._labels.get(metric, set()))

    def is_empty(self) -> bool:
        return not self._labels

    def as_dict(self) -> Dict[str, Set[str]]:
        return {metric: set(labels) for metric, labels in self._labels.items()}

    def to_sorted(self) -> Dict[str, List[str]]:
        """Sorted plain form for stable output."""
        return {metric: sorted(self._labels[metric]) for metric in sorted(self._labels)}

    def __contains__(self, metric: str) -> bool:
        return metric in self._labels

    def __len__(self) -> int:
        return len(self._labels)

    def __eq__(self, other) -> bool:
        if isinstance(other, LabelReport):
            return self._labels == other._labels
        if isinstance(other, dict):
            return self._labels == other
        return NotImplemented

    def __repr__(self) -> str:
        return f"LabelReport({self.to_sorted()})"


def invalid_labels_for(allowed: Iterable[str], label_keys: Iterable[str]) -> Set[str]:
    """Label keys not permitted by `allowed`, ignoring internal labels."""
    allowed = set(allowed)
    return {
        key for key in label_keys
        if not key.startswith(INTERNAL_LABEL_PREFIX) and key not in allowed
    }


def validate_label_set(
    schema: LabelSchema,
    data: ObservedData,
    invalid: LabelReport,
    missing: LabelReport,
) -> List[str]:
    """
    Check observed labels against the schema for every declared metric.

    Label keys seen in the data but not declared for the metric are added
    to `invalid`. Metrics present in `data` without a schema entry are not
    inspected. `missing` is accepted so callers can share one pair of
    reports across passes, but this pass never writes to it: declared labels
    that never show up in the data are not detected.

    Args:
        schema: Metric name -> permitted label keys (not modified)
        data: Observed samples per metric name (not modified)
        invalid: Report receiving undeclared label keys
        missing: Report for declared-but-unobserved labels (left untouched)

    Returns:
        Declared metric names absent from `data`, in schema order. Asserting
        their presence is up to the caller.
    """
    absent = []
    for metric, labels in schema.items():
        series = data.get(metric)
        if series is None:
            absent.append(metric)
            continue
        if not series:
            continue

        for sample in series:
            for label in invalid_labels_for(labels, sample.labels):
                invalid.add(metric, label)

    if absent:
        logger.debug(f"Declared metrics absent from data: {absent}")
    return absent
