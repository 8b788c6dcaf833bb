"""Shared fixtures: an in-memory cluster, a frozen clock and plugin settings."""

import threading
import time
from datetime import datetime, timezone
from typing import Any, Optional

import pytest

from elastic_pods.clock import FrozenClock
from elastic_pods.cluster.client import ClientFactory, Pod
from elastic_pods.constants import KIND_LABEL_KEY, KIND_LABEL_VALUE
from elastic_pods.errors import ClusterPlatformError, PodNotFoundError
from elastic_pods.instances.reconciler import KubernetesAgentInstances
from elastic_pods.settings import PluginSettings

T0 = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClusterClient:
    """Pods API stand-in that keeps pods in a dict and records calls."""

    def __init__(self, clock: FrozenClock, list_delay: float = 0.0) -> None:
        self.clock = clock
        self.list_delay = list_delay
        self.pods: dict[str, Pod] = {}
        self.created: list[dict[str, Any]] = []
        self.deleted: list[str] = []
        self.list_calls = 0
        self.fail_create = False
        self.fail_list = False
        self.fail_get: set[str] = set()
        self.fail_delete: set[str] = set()
        self._lock = threading.Lock()

    def add_pod(
        self,
        name: str,
        created_at: Optional[datetime],
        labels: Optional[dict[str, str]] = None,
        annotations: Optional[dict[str, str]] = None,
    ) -> Pod:
        if labels is None:
            labels = {KIND_LABEL_KEY: KIND_LABEL_VALUE}
        pod = Pod(
            name=name,
            creation_timestamp=created_at,
            labels=labels,
            annotations=annotations or {},
        )
        self.pods[name] = pod
        return pod

    def create_pod(self, namespace: str, manifest: dict[str, Any]) -> Pod:
        if self.fail_create:
            raise ClusterPlatformError("pods is forbidden", status_code=403)
        metadata = manifest["metadata"]
        self.created.append(manifest)
        return self.add_pod(
            metadata["name"],
            self.clock.now(),
            labels=dict(metadata["labels"]),
            annotations=dict(metadata["annotations"]),
        )

    def list_pods(self, namespace: str, label_selector: Optional[str] = None) -> list[Pod]:
        with self._lock:
            self.list_calls += 1
        if self.list_delay:
            time.sleep(self.list_delay)
        if self.fail_list:
            raise ClusterPlatformError("connection refused")
        pods = list(self.pods.values())
        if label_selector:
            key, _, value = label_selector.partition("=")
            pods = [p for p in pods if p.labels.get(key) == value]
        return pods

    def get_pod(self, namespace: str, name: str) -> Pod:
        if name in self.fail_get:
            raise ClusterPlatformError("etcdserver: request timed out", status_code=500)
        if name not in self.pods:
            raise PodNotFoundError(namespace, name)
        return self.pods[name]

    def delete_pod(self, namespace: str, name: str) -> bool:
        if name in self.fail_delete:
            raise ClusterPlatformError("internal error", status_code=500)
        self.deleted.append(name)
        return self.pods.pop(name, None) is not None


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(T0)


@pytest.fixture
def cluster(clock: FrozenClock) -> FakeClusterClient:
    return FakeClusterClient(clock)


@pytest.fixture
def settings() -> PluginSettings:
    return PluginSettings(
        go_server_url="https://ci.example.com/go",
        kubernetes_cluster_url="https://k8s.example.com:6443",
        auto_register_timeout=10,
    )


@pytest.fixture
def instances(cluster: FakeClusterClient, clock: FrozenClock) -> KubernetesAgentInstances:
    return KubernetesAgentInstances(
        factory=ClientFactory(builder=lambda _settings: cluster),
        clock=clock,
    )
