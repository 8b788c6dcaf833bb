"""Tests for the background reclamation sweeper."""

import threading
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from elastic_pods.agents import Agent, Agents
from elastic_pods.errors import ClusterPlatformError
from elastic_pods.sweeper import Sweeper


class TestSweeper:
    @pytest.fixture
    def known(self) -> list:
        return []

    @pytest.fixture
    def sweeper(self, instances, settings, known) -> Sweeper:
        return Sweeper(
            instances,
            settings_provider=lambda: settings,
            agents_provider=lambda: Agents(known),
            interval=0.01,
        )

    def test_run_once_refreshes_and_reclaims(self, sweeper, instances, cluster, clock) -> None:
        cluster.add_pod("old", clock.now() - timedelta(hours=1))
        cluster.add_pod("young", clock.now())

        assert sweeper.run_once() == ["old"]
        assert instances.refreshed
        assert instances.has_instance("young")
        assert not instances.has_instance("old")

    def test_run_once_spares_registered(self, sweeper, instances, cluster, clock, known) -> None:
        cluster.add_pod("old", clock.now() - timedelta(hours=1))
        known.append(Agent(agent_id="u1", elastic_agent_id="old"))

        assert sweeper.run_once() == []
        assert instances.has_instance("old")

    def test_loop_survives_failures(self, settings) -> None:
        instances = MagicMock()
        calls = threading.Event()

        def refresh(_settings):
            calls.set()
            raise ClusterPlatformError("connection refused")

        instances.refresh_all.side_effect = refresh
        sweeper = Sweeper(instances, lambda: settings, lambda: Agents(), interval=0.01)

        sweeper.start()
        try:
            assert calls.wait(2.0)
            assert sweeper.running
        finally:
            sweeper.stop(timeout=2.0)

        assert not sweeper.running
        assert instances.refresh_all.call_count >= 1
