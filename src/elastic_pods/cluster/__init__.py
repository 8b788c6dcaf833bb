"""Cluster platform access: the pods API client and pod manifests."""

from elastic_pods.cluster.client import ClientFactory, ClusterClient, KubernetesClient, Pod

__all__ = ["ClientFactory", "ClusterClient", "KubernetesClient", "Pod"]
