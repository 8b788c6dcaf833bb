"""Elastic agent instances: create, terminate, and reclaim agent pods.

``KubernetesAgentInstances`` is what the Go server's requests are routed to.
It keeps an ``InstanceRegistry`` of the pods this process knows about and
only goes to the cluster when it has to:

- ``refresh_all`` lists the cluster once per process lifetime to seed the
  registry. After that the registry is authoritative and is kept current
  by ``create`` and ``terminate``.
- ``terminate_unregistered_instances`` re-reads each candidate pod from the
  cluster before deciding to delete it, so a stale cached timestamp never
  causes a premature termination.
"""

from __future__ import annotations

import threading
from typing import Callable, Optional

import structlog

from elastic_pods.agents import Agents, CreateAgentRequest
from elastic_pods.clock import DEFAULT_CLOCK, Clock
from elastic_pods.cluster.client import ClientFactory
from elastic_pods.cluster.manifest import build_pod_manifest
from elastic_pods.constants import KIND_LABEL_KEY, KIND_LABEL_VALUE
from elastic_pods.errors import ClusterPlatformError, PodNotFoundError
from elastic_pods.instances.instance import KubernetesInstance, is_stale
from elastic_pods.instances.registry import InstanceRegistry
from elastic_pods.settings import PluginSettings

logger = structlog.get_logger(__name__)

KIND_SELECTOR = f"{KIND_LABEL_KEY}={KIND_LABEL_VALUE}"


class KubernetesAgentInstances:
    """Lifecycle manager for elastic agent pods.

    Args:
        factory: Source of cluster clients for a given ``PluginSettings``.
        clock: Source of "now" for timeout decisions.
        registry: Instance cache; a fresh one is created when omitted.
    """

    def __init__(
        self,
        factory: Optional[ClientFactory] = None,
        clock: Clock = DEFAULT_CLOCK,
        registry: Optional[InstanceRegistry] = None,
    ) -> None:
        self.factory = factory or ClientFactory()
        self.clock = clock
        self._registry = registry if registry is not None else InstanceRegistry()
        self._refresh_lock = threading.Lock()
        self._refreshed = False

    # ── Server requests ───────────────────────────────────────────

    def create(self, request: CreateAgentRequest, settings: PluginSettings) -> KubernetesInstance:
        """Start a new agent pod and remember it.

        Raises:
            ValidationError: The profile is unusable. Nothing was sent to the cluster.
            ClusterPlatformError: The cluster rejected the pod. Nothing was cached.
        """
        manifest = build_pod_manifest(request, settings, created_at=self.clock.now())
        client = self.factory.client_for(settings)
        pod = client.create_pod(settings.namespace, manifest)

        instance = KubernetesInstance.from_pod(pod, self.clock)
        self._registry.register(instance)
        logger.info(
            "instance_created",
            name=instance.name,
            environment=instance.environment,
            image=manifest["spec"]["containers"][0]["image"],
        )
        return instance

    def terminate(self, name: str, settings: PluginSettings) -> None:
        """Delete the agent pod ``name`` and forget it.

        Unknown names are logged and ignored. A pod that is already gone in
        the cluster is still removed from the cache. If the delete call fails
        the cache entry is kept so the caller can retry.
        """
        instance = self._registry.find(name)
        if instance is None:
            logger.warning("terminate_unknown_instance", name=name)
            return

        client = self.factory.client_for(settings)
        deleted = client.delete_pod(settings.namespace, name)
        if not deleted:
            logger.info("instance_already_deleted", name=name)
        self._registry.remove(name)
        logger.info("instance_terminated", name=name)

    def refresh_all(self, settings: PluginSettings) -> bool:
        """Seed the cache from the cluster, once per process.

        Concurrent callers serialise on a lock and only the first one does the
        listing. A failed listing leaves the cache unrefreshed so a later call
        can try again.

        Returns:
            True if this call performed the sync.
        """
        if self._refreshed:
            return False

        with self._refresh_lock:
            if self._refreshed:
                return False

            logger.debug("refreshing_elastic_agents", namespace=settings.namespace)
            client = self.factory.client_for(settings)
            pods = client.list_pods(settings.namespace, label_selector=KIND_SELECTOR)

            synced = 0
            for pod in pods:
                if pod.labels.get(KIND_LABEL_KEY) != KIND_LABEL_VALUE:
                    continue
                self._registry.register(KubernetesInstance.from_pod(pod, self.clock))
                synced += 1

            self._refreshed = True
            logger.info("elastic_agents_synced", count=synced, namespace=settings.namespace)
            return True

    def instances_created_after_timeout(self, settings: PluginSettings, agents: Agents) -> Agents:
        """Agents the server knows whose pods are older than the grace period."""
        period = settings.auto_register_period
        now = self.clock.now()
        old_agents = []
        for agent in agents:
            instance = self._registry.find(agent.elastic_agent_id)
            if instance is None:
                continue
            if is_stale(instance.created_at, now, period):
                old_agents.append(agent)
        return Agents(old_agents)

    def terminate_unregistered_instances(
        self,
        settings: PluginSettings,
        agents: Agents,
        agents_provider: Optional[Callable[[], Agents]] = None,
    ) -> list[str]:
        """Terminate cached pods that never registered within the grace period.

        Args:
            settings: Plugin settings; supplies the grace period and cluster.
            agents: Agents the server reported for this call.
            agents_provider: Optional callable returning the server's current
                agents. When given, each candidate is checked against a fresh
                agent list right before it is terminated.

        Returns:
            Names of the instances that were terminated.
        """
        to_terminate = self._unregistered_after_timeout(settings, agents)
        if not to_terminate:
            return []

        logger.warning(
            "terminating_unregistered_instances",
            names=[instance.name for instance in to_terminate],
        )
        terminated = []
        for instance in to_terminate:
            if agents_provider is not None:
                try:
                    registered = agents_provider().contains_agent_with_id(instance.name)
                except Exception as e:
                    logger.error("agents_recheck_failed", name=instance.name, error=str(e))
                    continue
                if registered:
                    logger.info("instance_registered_before_termination", name=instance.name)
                    continue
            try:
                self.terminate(instance.name, settings)
            except ClusterPlatformError as e:
                logger.error("terminate_unregistered_failed", name=instance.name, error=str(e))
                continue
            terminated.append(instance.name)
        return terminated

    def _unregistered_after_timeout(
        self,
        settings: PluginSettings,
        known_agents: Agents,
    ) -> list[KubernetesInstance]:
        period = settings.auto_register_period
        client = self.factory.client_for(settings)
        unregistered = []

        for cached in self._registry.all():
            if known_agents.contains_agent_with_id(cached.name):
                continue
            try:
                pod = client.get_pod(settings.namespace, cached.name)
            except PodNotFoundError:
                logger.warning("instance_pod_missing", name=cached.name)
                continue
            except ClusterPlatformError as e:
                logger.error("instance_lookup_failed", name=cached.name, error=str(e))
                continue

            live = KubernetesInstance.from_pod(pod, self.clock, default_created_at=cached.created_at)
            if is_stale(live.created_at, self.clock.now(), period):
                unregistered.append(live)
        return unregistered

    # ── Queries ───────────────────────────────────────────────────

    def find(self, name: str) -> Optional[KubernetesInstance]:
        return self._registry.find(name)

    def has_instance(self, name: str) -> bool:
        return self._registry.has(name)

    def instances(self) -> list[KubernetesInstance]:
        return self._registry.all()

    @property
    def refreshed(self) -> bool:
        return self._refreshed
