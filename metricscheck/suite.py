"""Per-component grab-and-check runs."""
from typing import Dict, Iterable, List, Optional
import logging

from metricscheck.checker import CheckResult, ConformanceChecker, ConformanceError, assert_empty
from metricscheck.config import COMPONENT_KINDS, SchemaRegistry
from metricscheck.grabber import Grabber, GrabError
from metricscheck.self_metrics import SelfMetrics

logger = logging.getLogger(__name__)


def master_registered(node_names: Iterable[str], suffix: str = "master") -> bool:
    """Whether any node name marks a registered master."""
    return any(name.endswith(suffix) for name in node_names)


class ComponentSuite:
    """Grabs each component's metrics and checks them against its schema."""

    def __init__(
        self,
        grabber: Grabber,
        schemas: SchemaRegistry,
        self_metrics: Optional[SelfMetrics] = None,
        master_suffix: str = "master",
    ):
        self.grabber = grabber
        self.self_metrics = self_metrics
        self.checker = ConformanceChecker(schemas, self_metrics)
        self.master_suffix = master_suffix

    def _grab_and_check(self, component: str, node_name: Optional[str] = None) -> CheckResult:
        unknown_metrics = set()
        response = self.grabber.grab(component, unknown_metrics, node_name=node_name)
        assert_empty(
            f"unknown {component} metrics",
            unknown_metrics,
            CheckResult(component=component, unknown_metrics=sorted(unknown_metrics)),
        )
        return self.checker.check(component, response)

    def _master_gate(self, component: str, node_names: Iterable[str]) -> bool:
        if master_registered(node_names, self.master_suffix):
            return True
        logger.info(f"Master node is not registered. Skipping testing {component} metrics.")
        if self.self_metrics:
            self.self_metrics.record_skip(component)
        return False

    def check_api_server(self) -> CheckResult:
        return self._grab_and_check("apiserver")

    def check_kubelet(self, node_names: List[str]) -> CheckResult:
        """Check the kubelet on the first schedulable node."""
        if not node_names:
            raise ConformanceError(
                "Expected at least one schedulable node, got none",
                CheckResult(component="kubelet", error="no schedulable nodes"),
            )
        return self._grab_and_check("kubelet", node_name=node_names[0])

    def check_scheduler(self, node_names: Iterable[str]) -> Optional[CheckResult]:
        if not self._master_gate("scheduler", node_names):
            return None
        return self._grab_and_check("scheduler")

    def check_controller_manager(self, node_names: Iterable[str]) -> Optional[CheckResult]:
        if not self._master_gate("controller_manager", node_names):
            return None
        return self._grab_and_check("controller_manager")

    def run_all(self, node_names: List[str]) -> Dict[str, Optional[CheckResult]]:
        """
        Check every enabled component.

        A failing component does not stop the others. Raises ConformanceError
        after all components ran if any of them failed.
        """
        node_names = list(node_names)
        runs = {
            "apiserver": lambda: self.check_api_server(),
            "kubelet": lambda: self.check_kubelet(node_names),
            "scheduler": lambda: self.check_scheduler(node_names),
            "controller_manager": lambda: self.check_controller_manager(node_names),
        }

        results: Dict[str, Optional[CheckResult]] = {}
        failures = []
        for component in COMPONENT_KINDS:
            if not self.grabber.enabled.get(component, False):
                continue
            try:
                results[component] = runs[component]()
            except ConformanceError as e:
                logger.error(f"{component} failed conformance: {e}")
                results[component] = e.result if e.result is not None else CheckResult(component=component, error=str(e))
                failures.append(f"{component}: {e}")
            except GrabError as e:
                logger.error(f"Failed to grab {component} metrics: {e}")
                results[component] = CheckResult(component=component, error=str(e))
                failures.append(f"{component}: {e}")

        if failures:
            error = ConformanceError("; ".join(failures))
            error.results = results
            raise error
        return results
