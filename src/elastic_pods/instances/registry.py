"""Thread-safe cache of the elastic agent pods this process knows about."""

from __future__ import annotations

import threading
from typing import Optional

import structlog

from elastic_pods.instances.instance import KubernetesInstance

logger = structlog.get_logger(__name__)


class InstanceRegistry:
    """Name-keyed store of ``KubernetesInstance`` records.

    Every operation takes a short internal lock, so callers on request
    threads and the background sweeper can share one registry. Iteration
    goes through ``all()``, which returns a snapshot list.
    """

    def __init__(self) -> None:
        self._instances: dict[str, KubernetesInstance] = {}
        self._lock = threading.Lock()

    def register(self, instance: KubernetesInstance) -> None:
        """Insert or replace the record stored under ``instance.name``."""
        with self._lock:
            self._instances[instance.name] = instance
        logger.debug("instance_registered", name=instance.name)

    def find(self, name: str) -> Optional[KubernetesInstance]:
        with self._lock:
            return self._instances.get(name)

    def has(self, name: str) -> bool:
        with self._lock:
            return name in self._instances

    def remove(self, name: str) -> Optional[KubernetesInstance]:
        """Drop ``name`` if present. Returns the removed record, if any."""
        with self._lock:
            removed = self._instances.pop(name, None)
        if removed is not None:
            logger.debug("instance_removed", name=name)
        return removed

    def all(self) -> list[KubernetesInstance]:
        with self._lock:
            return list(self._instances.values())

    def names(self) -> list[str]:
        with self._lock:
            return list(self._instances)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has(name)

    def __len__(self) -> int:
        with self._lock:
            return len(self._instances)
