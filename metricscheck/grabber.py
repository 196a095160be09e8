"""Metric grabbers returning already-parsed samples per component."""
from abc import ABC, abstractmethod
from typing import Dict, Optional, Set
import logging

from prometheus_client import CollectorRegistry

from metricscheck.config import SchemaRegistry
from metricscheck.series import Sample, ObservedData

logger = logging.getLogger(__name__)

_CREATED_TYPES = ("counter", "histogram", "gaugehistogram", "summary")


class GrabError(Exception):
    """Metrics could not be grabbed from a component."""

    def __init__(self, message: str, *, component: Optional[str] = None):
        self.component = component
        super().__init__(message)


class Grabber(ABC):
    """Base class for grabbing metrics from cluster components."""

    def __init__(
        self,
        schemas: SchemaRegistry,
        apiserver: bool = True,
        kubelets: bool = True,
        scheduler: bool = True,
        controller_manager: bool = True,
    ):
        self.schemas = schemas
        self.enabled = {
            "apiserver": apiserver,
            "kubelet": kubelets,
            "scheduler": scheduler,
            "controller_manager": controller_manager,
        }

    @abstractmethod
    def _grab(self, component: str, node_name: Optional[str] = None) -> ObservedData:
        """Fetch and parse metrics for one component."""
        pass

    def grab(self, component: str, unknown_metrics: Set[str], node_name: Optional[str] = None) -> ObservedData:
        """
        Grab metrics from a component.

        Metric names the component exposes that no known schema covers are
        added to `unknown_metrics`.
        """
        if not self.enabled.get(component, False):
            raise GrabError(f"Grabbing from {component} is disabled", component=component)

        data = self._grab(component, node_name)
        known = self.schemas.known_metric_names(component)
        for name in data:
            if name not in known:
                unknown_metrics.add(name)

        logger.debug(f"Grabbed {len(data)} metrics from {component}")
        return data

    def grab_from_api_server(self, unknown_metrics: Set[str]) -> ObservedData:
        return self.grab("apiserver", unknown_metrics)

    def grab_from_kubelet(self, node_name: str, unknown_metrics: Set[str]) -> ObservedData:
        return self.grab("kubelet", unknown_metrics, node_name=node_name)

    def grab_from_scheduler(self, unknown_metrics: Set[str]) -> ObservedData:
        return self.grab("scheduler", unknown_metrics)

    def grab_from_controller_manager(self, unknown_metrics: Set[str]) -> ObservedData:
        return self.grab("controller_manager", unknown_metrics)


def observed_from_registry(registry: CollectorRegistry) -> ObservedData:
    """
    Flatten a prometheus_client registry into ObservedData.

    Series are keyed by sample name (so a counter `foo` yields `foo_total`),
    and each sample carries its name under the `__name__` label. The
    client-side `<name>_created` timestamps of counters, histograms and
    summaries are dropped.
    """
    data: ObservedData = {}
    for family in registry.collect():
        created = f"{family.name}_created"
        for s in family.samples:
            if s.name == created and family.type in _CREATED_TYPES:
                continue
            labels = dict(s.labels)
            labels["__name__"] = s.name
            data.setdefault(s.name, []).append(Sample(name=s.name, labels=labels, value=s.value))
    return data


class RegistryGrabber(Grabber):
    """Grabs from in-process prometheus_client registries, one per component."""

    def __init__(
        self,
        schemas: SchemaRegistry,
        registries: Optional[Dict[str, CollectorRegistry]] = None,
        kubelet_registries: Optional[Dict[str, CollectorRegistry]] = None,
        **enabled
    ):
        super().__init__(schemas, **enabled)
        self.registries = registries or {}
        self.kubelet_registries = kubelet_registries or {}

    def _grab(self, component: str, node_name: Optional[str] = None) -> ObservedData:
        if component == "kubelet":
            registry = self.kubelet_registries.get(node_name)
            if registry is None:
                raise GrabError(f"No kubelet registered for node '{node_name}'", component=component)
        else:
            registry = self.registries.get(component)
            if registry is None:
                raise GrabError(f"No registry registered for {component}", component=component)

        return observed_from_registry(registry)
