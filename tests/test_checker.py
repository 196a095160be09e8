#!/usr/bin/env python3
"""Tests for the two-pass conformance check."""
import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from metricscheck.checker import (
    CheckResult, ConformanceChecker, ConformanceError, assert_empty, check_metrics, collect_findings,
    merge_schemas
)
from metricscheck.config import SchemaRegistry
from metricscheck.self_metrics import SelfMetrics
from metricscheck.series import observed_from_labels
from metricscheck.validator import LabelReport, validate_label_set


def test_two_schema_merge():
    """Labels allowed by neither schema survive both passes."""
    print("Testing two-schema merge...")

    data = observed_from_labels({"m": [{"x": "1", "y": "1", "z": "1"}]})

    result = collect_findings(data, {"m": ["y"]}, {"m": ["x"]})

    assert result.invalid_labels.as_dict() == {"m": {"z"}}
    assert result.unknown_labels.is_empty()
    print("  ✓ Only 'z' reported")


def test_two_schema_scenario_raises():
    """The {x,y,z} scenario fails with 'z' as the sole invalid label."""
    data = observed_from_labels({"m": [{"x": "1", "y": "1", "z": "1"}]})

    with pytest.raises(ConformanceError) as excinfo:
        check_metrics(data, {"m": ["y"]}, common_schema={"m": ["x"]})

    assert excinfo.value.result.invalid_labels.to_sorted() == {"m": ["z"]}


def test_union_equivalence():
    """Checking with two schemas equals validating against their union."""
    print("\nTesting union merge property...")

    common = {"a": ["x"], "b": []}
    component = {"a": ["y"], "c": ["k"]}
    data = observed_from_labels({
        "a": [{"x": "1"}, {"y": "2", "q": "3"}],
        "b": [{"p": "1"}],
        "c": [{"k": "1", "j": "2"}],
    })

    found = collect_findings(data, component, common).invalid_labels

    expected = LabelReport()
    validate_label_set(merge_schemas(common, component), data, expected, LabelReport())

    assert found == expected
    assert found.to_sorted() == {"a": ["q"], "b": ["p"], "c": ["j"]}
    print(f"  ✓ {found}")


def test_merge_schemas_keeps_order():
    merged = merge_schemas({"m": ["b", "a"]}, {"m": ["a", "c"], "n": []})
    assert merged == {"m": ["b", "a", "c"], "n": []}


def test_conformant_response_passes():
    """A response matching both schemas returns an ok result."""
    data = observed_from_labels({
        "process_open_fds": [{"__name__": "process_open_fds"}],
        "requests": [{"code": "200", "handler": "/"}],
    })

    result = check_metrics(data, {"requests": ["code", "handler"]}, common_schema={"process_open_fds": []})

    assert result.ok
    assert result.to_dict() == {
        "component": None,
        "ok": True,
        "invalid_labels": {},
        "unknown_labels": {},
        "absent_metrics": [],
        "unknown_metrics": [],
        "error": None,
    }


def test_absent_declared_metric_fails():
    """A declared metric missing from the response is a failure, not an invalid label."""
    print("\nTesting absent declared metric...")

    with pytest.raises(ConformanceError) as excinfo:
        check_metrics({}, {"a": ["x"]}, component="scheduler")

    result = excinfo.value.result
    assert result.absent_metrics == ["a"]
    assert result.invalid_labels.is_empty()
    assert result.unknown_labels.is_empty()
    assert "absent metrics" in str(excinfo.value)
    print("  ✓ Absence reported separately from labels")


def test_metric_declared_in_both_schemas_listed_once():
    result = collect_findings({}, {"m": []}, {"m": []})
    assert result.absent_metrics == ["m"]


def test_empty_series_passes():
    """A declared metric exposed without samples is not a violation."""
    result = check_metrics({"m": []}, {"m": ["x"]})
    assert result.ok


def test_assert_empty():
    """assert_empty lists what it found."""
    assert_empty("unknown metrics", set())
    assert_empty("labels", LabelReport())

    with pytest.raises(ConformanceError, match="foo_total"):
        assert_empty("unknown metrics", {"foo_total"})

    report = LabelReport()
    report.add("m", "x")
    with pytest.raises(ConformanceError, match="'m'"):
        assert_empty("invalid labels", report)


def test_checker_uses_injected_schemas():
    """ConformanceChecker validates against the registry it was given."""
    print("\nTesting injected schemas...")

    schemas = SchemaRegistry(
        common={"up": []},
        components={"kubelet": {"kubelet_running_pod_count": []}},
    )
    metrics = SelfMetrics()
    checker = ConformanceChecker(schemas, metrics)

    good = observed_from_labels({"up": [{}], "kubelet_running_pod_count": [{}]})
    assert checker.check("kubelet", good).ok

    bad = observed_from_labels({"up": [{"instance": "a"}], "kubelet_running_pod_count": [{"node": "n"}]})
    with pytest.raises(ConformanceError):
        checker.check("kubelet", bad)

    registry = metrics.registry
    assert registry.get_sample_value(
        "conformance_checks_total", {"component": "kubelet", "result": "pass"}) == 1.0
    assert registry.get_sample_value(
        "conformance_checks_total", {"component": "kubelet", "result": "fail"}) == 1.0
    assert registry.get_sample_value(
        "conformance_invalid_labels_total", {"component": "kubelet"}) == 2.0
    print("  ✓ Self metrics recorded")


def test_report_does_not_raise():
    schemas = SchemaRegistry(components={"apiserver": {"m": ["a"]}})
    result = ConformanceChecker(schemas).report("apiserver", observed_from_labels({"m": [{"b": "1"}]}))
    assert not result.ok
    assert result.to_dict()["invalid_labels"] == {"m": ["b"]}
    assert "invalid labels" in result.describe()


def test_describe_conformant():
    assert CheckResult(component="apiserver").describe() == "apiserver: conformant"


def main():
    """Run all tests."""
    return pytest.main([__file__, "-v"])


if __name__ == "__main__":
    sys.exit(main())
