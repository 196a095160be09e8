"""Conformance checking of a grab response against common and component schemas."""
from typing import Any, Dict, Iterable, List, Optional
import logging

from metricscheck.config import LabelSchema, SchemaRegistry
from metricscheck.self_metrics import SelfMetrics
from metricscheck.series import ObservedData
from metricscheck.validator import LabelReport, validate_label_set

logger = logging.getLogger(__name__)


class ConformanceError(AssertionError):
    """Observed metrics do not conform to the declared schema."""

    def __init__(self, message: str, result: Optional["CheckResult"] = None):
        self.result = result
        super().__init__(message)


class CheckResult:
    """Findings of one conformance check."""

    def __init__(
        self,
        component: Optional[str] = None,
        invalid_labels: Optional[LabelReport] = None,
        unknown_labels: Optional[LabelReport] = None,
        absent_metrics: Optional[List[str]] = None,
        unknown_metrics: Optional[List[str]] = None,
        error: Optional[str] = None,
    ):
        self.component = component
        self.invalid_labels = invalid_labels if invalid_labels is not None else LabelReport()
        self.unknown_labels = unknown_labels if unknown_labels is not None else LabelReport()
        self.absent_metrics = absent_metrics or []
        self.unknown_metrics = unknown_metrics or []
        self.error = error

    @property
    def ok(self) -> bool:
        return (
            self.invalid_labels.is_empty()
            and self.unknown_labels.is_empty()
            and not self.absent_metrics
            and not self.unknown_metrics
            and self.error is None
        )

    def invalid_label_count(self) -> int:
        return sum(len(labels) for _, labels in self.invalid_labels.items())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "component": self.component,
            "ok": self.ok,
            "invalid_labels": self.invalid_labels.to_sorted(),
            "unknown_labels": self.unknown_labels.to_sorted(),
            "absent_metrics": sorted(self.absent_metrics),
            "unknown_metrics": sorted(self.unknown_metrics),
            "error": self.error,
        }

    def describe(self) -> str:
        """Human readable summary listing every finding."""
        parts = []
        if self.error:
            parts.append(self.error)
        if self.unknown_metrics:
            parts.append(f"unknown metrics: {sorted(self.unknown_metrics)}")
        if self.absent_metrics:
            parts.append(f"absent metrics: {sorted(self.absent_metrics)}")
        if not self.invalid_labels.is_empty():
            parts.append(f"invalid labels: {self.invalid_labels.to_sorted()}")
        if not self.unknown_labels.is_empty():
            parts.append(f"unknown labels: {self.unknown_labels.to_sorted()}")
        target = self.component or "metrics"
        if not parts:
            return f"{target}: conformant"
        return f"{target}: " + "; ".join(parts)


def assert_empty(name: str, collection: Iterable, result: Optional[CheckResult] = None):
    """Fail with ConformanceError when `collection` has any element."""
    if isinstance(collection, LabelReport):
        if not collection.is_empty():
            raise ConformanceError(f"Expected {name} to be empty, got {collection.to_sorted()}", result)
        return
    items = list(collection)
    if items:
        raise ConformanceError(f"Expected {name} to be empty, got {sorted(items)}", result)


def merge_schemas(*schemas: LabelSchema) -> LabelSchema:
    """Union of permitted labels per metric, keeping first-seen order."""
    merged: LabelSchema = {}
    for schema in schemas:
        for metric, labels in schema.items():
            allowed = merged.setdefault(metric, [])
            allowed.extend(label for label in labels if label not in allowed)
    return merged


def collect_findings(
    response: ObservedData,
    assumed_schema: LabelSchema,
    common_schema: LabelSchema,
    component: Optional[str] = None,
) -> CheckResult:
    """
    Run the common and component label passes into one shared pair of reports.

    A metric declared by both schemas may carry labels permitted by either.
    """
    result = CheckResult(component=component)
    allowed = merge_schemas(common_schema, assumed_schema)
    absent = []
    for schema in (common_schema, assumed_schema):
        view = {metric: allowed[metric] for metric in schema}
        for metric in validate_label_set(view, response, result.invalid_labels, result.unknown_labels):
            if metric not in absent:
                absent.append(metric)
    result.absent_metrics = absent
    return result


def check_metrics(
    response: ObservedData,
    assumed_schema: LabelSchema,
    common_schema: Optional[LabelSchema] = None,
    component: Optional[str] = None,
) -> CheckResult:
    """
    Check a grab response against the common schema and a component schema.

    Raises:
        ConformanceError: if a declared metric is absent, or any invalid or
            unknown labels were found. The error carries the full result.
    """
    result = collect_findings(response, assumed_schema, common_schema or {}, component)

    if result.ok:
        logger.info(f"{result.component or 'metrics'} conform: {len(response)} metrics checked")
        return result

    logger.error(f"Conformance check failed - {result.describe()}")
    raise ConformanceError(result.describe(), result)


class ConformanceChecker:
    """Checks grab responses against an injected schema registry."""

    def __init__(self, schemas: SchemaRegistry, self_metrics: Optional[SelfMetrics] = None):
        self.schemas = schemas
        self.self_metrics = self_metrics

    def check(self, component: str, response: ObservedData) -> CheckResult:
        """Check one component's grab response, raising ConformanceError on findings."""
        assumed = self.schemas.for_component(component)
        try:
            result = check_metrics(response, assumed, self.schemas.common, component=component)
        except ConformanceError as e:
            if self.self_metrics and e.result is not None:
                self.self_metrics.record_check(component, False, e.result.invalid_label_count())
            raise
        if self.self_metrics:
            self.self_metrics.record_check(component, True)
        return result

    def report(self, component: str, response: ObservedData) -> CheckResult:
        """Collect findings without raising."""
        assumed = self.schemas.for_component(component)
        result = collect_findings(response, assumed, self.schemas.common, component=component)
        if self.self_metrics:
            self.self_metrics.record_check(component, result.ok, result.invalid_label_count())
        return result
