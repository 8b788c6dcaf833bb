"""Background sweep that reclaims agents which never registered.

Each cycle:
  1. Seeds the instance cache from the cluster (first cycle only).
  2. Terminates cached pods older than the auto-register timeout that the
     server does not list as agents.
"""

from __future__ import annotations

import threading
from typing import Callable, Optional

import structlog

from elastic_pods.agents import Agents
from elastic_pods.instances.reconciler import KubernetesAgentInstances
from elastic_pods.settings import PluginSettings

logger = structlog.get_logger(__name__)


class Sweeper:
    """Runs the reclamation sweep on a daemon thread.

    Args:
        instances: The process-wide ``KubernetesAgentInstances``.
        settings_provider: Returns the current plugin settings.
        agents_provider: Returns the agents the server currently knows.
        interval: Seconds between sweeps.
    """

    def __init__(
        self,
        instances: KubernetesAgentInstances,
        settings_provider: Callable[[], PluginSettings],
        agents_provider: Callable[[], Agents],
        interval: float = 60.0,
    ) -> None:
        self.instances = instances
        self.settings_provider = settings_provider
        self.agents_provider = agents_provider
        self.interval = interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def run_once(self) -> list[str]:
        """Run one sweep. Returns the names of terminated instances."""
        settings = self.settings_provider()
        self.instances.refresh_all(settings)
        terminated = self.instances.terminate_unregistered_instances(
            settings,
            self.agents_provider(),
            agents_provider=self.agents_provider,
        )
        if terminated:
            logger.info("sweep_terminated_instances", count=len(terminated), names=terminated)
        return terminated

    def _loop(self) -> None:
        while not self._stop.is_set():
            try:
                self.run_once()
            except Exception as e:
                logger.warning("sweep_failed", error=str(e))
            self._stop.wait(self.interval)

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, daemon=True, name="elastic-pods-sweeper")
        self._thread.start()
        logger.info("sweeper_started", interval=self.interval)

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("sweeper_stopped")

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
