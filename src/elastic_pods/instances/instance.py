"""A single elastic agent pod as the plugin remembers it."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from types import MappingProxyType
from typing import Mapping, Optional

from elastic_pods.clock import DEFAULT_CLOCK, Clock
from elastic_pods.cluster.client import Pod
from elastic_pods.constants import CREATED_AT_LABEL_KEY, ENVIRONMENT_LABEL_KEY


def is_stale(created_at: datetime, now: datetime, period: timedelta) -> bool:
    """True once ``now`` is strictly past the registration grace period."""
    return now > created_at + period


def _created_at_from_label(labels: dict[str, str]) -> Optional[datetime]:
    value = labels.get(CREATED_AT_LABEL_KEY)
    if not value:
        return None
    try:
        return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)
    except ValueError:
        return None


def pod_created_at(pod: Pod) -> Optional[datetime]:
    """Creation time of a pod: the cluster's own timestamp, else our label."""
    return pod.creation_timestamp or _created_at_from_label(pod.labels)


@dataclass(frozen=True)
class KubernetesInstance:
    """Snapshot of one elastic agent pod.

    Two instances are equal when their names are equal; everything else is
    metadata.

    Attributes:
        name: Pod name, also the elastic agent id the agent registers with.
        created_at: When the pod was created (UTC).
        environment: Go environment the agent was created for, if any.
        properties: Profile properties the pod was created from (read-only).
    """

    name: str
    created_at: datetime = field(compare=False)
    environment: Optional[str] = field(default=None, compare=False)
    properties: Mapping[str, str] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "properties", MappingProxyType(dict(self.properties)))

    @classmethod
    def from_pod(
        cls,
        pod: Pod,
        clock: Clock = DEFAULT_CLOCK,
        default_created_at: Optional[datetime] = None,
    ) -> "KubernetesInstance":
        created_at = pod_created_at(pod) or default_created_at or clock.now()
        return cls(
            name=pod.name,
            created_at=created_at,
            environment=pod.labels.get(ENVIRONMENT_LABEL_KEY),
            properties=dict(pod.annotations),
        )

    def age(self, now: datetime) -> timedelta:
        return now - self.created_at

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "created_at": self.created_at.isoformat(),
            "environment": self.environment,
            "properties": dict(self.properties),
        }
