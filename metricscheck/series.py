"""Data structures for observed metric samples."""
from dataclasses import dataclass, field
from typing import Dict, List

# Label keys carrying this prefix are internal to the Prometheus data model
INTERNAL_LABEL_PREFIX = "__"


@dataclass
class Sample:
    """A single observed data point with labels."""
    name: str
    labels: Dict[str, str] = field(default_factory=dict)
    value: float = 0.0


# Metric name -> samples observed for it, as returned by one grab
ObservedData = Dict[str, List[Sample]]


def observed_from_labels(raw: Dict[str, List[Dict[str, str]]]) -> ObservedData:
    """Build ObservedData from a plain mapping of metric name to label dicts."""
    data: ObservedData = {}
    for name, label_sets in raw.items():
        data[name] = [Sample(name=name, labels=dict(labels or {})) for labels in (label_sets or [])]
    return data
