"""elastic-pods: Kubernetes elastic agents for the Go server.

Creates agent pods on request, remembers which pods it owns, and reclaims
pods whose agents never registered with the server in time.
"""

from elastic_pods.agents import Agent, Agents, CreateAgentRequest
from elastic_pods.clock import FrozenClock, SystemClock
from elastic_pods.errors import (
    ClusterPlatformError,
    ConfigError,
    ElasticPodsError,
    PodNotFoundError,
    ValidationError,
)
from elastic_pods.instances import InstanceRegistry, KubernetesAgentInstances, KubernetesInstance
from elastic_pods.profile import FIELDS as PROFILE_FIELDS, validate_profile
from elastic_pods.settings import PluginSettings, load_settings
from elastic_pods.sweeper import Sweeper

__all__ = [
    "Agent",
    "Agents",
    "ClusterPlatformError",
    "ConfigError",
    "CreateAgentRequest",
    "ElasticPodsError",
    "FrozenClock",
    "InstanceRegistry",
    "KubernetesAgentInstances",
    "KubernetesInstance",
    "PluginSettings",
    "PodNotFoundError",
    "PROFILE_FIELDS",
    "Sweeper",
    "SystemClock",
    "ValidationError",
    "load_settings",
    "validate_profile",
]
