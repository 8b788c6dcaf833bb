"""Elastic agent instance tracking and reclamation."""

from elastic_pods.instances.instance import KubernetesInstance, is_stale
from elastic_pods.instances.reconciler import KubernetesAgentInstances
from elastic_pods.instances.registry import InstanceRegistry

__all__ = ["InstanceRegistry", "KubernetesAgentInstances", "KubernetesInstance", "is_stale"]
