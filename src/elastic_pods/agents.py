"""Objects the Go server hands the plugin: create requests and its view of agents."""

from __future__ import annotations

from typing import Iterable, Iterator, Optional

from pydantic import BaseModel, Field

from elastic_pods.constants import (
    AUTO_REGISTER_AGENT_ID_ENV,
    AUTO_REGISTER_ENVIRONMENT_ENV,
    AUTO_REGISTER_KEY_ENV,
    AUTO_REGISTER_PLUGIN_ID_ENV,
    PLUGIN_ID,
)


class CreateAgentRequest(BaseModel):
    """A request from the server to start one elastic agent.

    Attributes:
        auto_register_key: Key the agent presents when it registers itself.
        properties: Elastic profile properties (Image, MaxMemory, ...).
        environment: Go environment the agent should join, if any.
    """

    auto_register_key: Optional[str] = Field(default=None, description="Auto-register key")
    properties: dict[str, str] = Field(default_factory=dict, description="Profile properties")
    environment: Optional[str] = Field(default=None, description="Go environment name")

    def autoregister_properties_as_environment_vars(self, elastic_agent_id: str) -> list[str]:
        """Build the ``KEY=VALUE`` variables an agent needs to register itself."""
        env_vars = []
        if self.auto_register_key and self.auto_register_key.strip():
            env_vars.append(f"{AUTO_REGISTER_KEY_ENV}={self.auto_register_key}")
        if self.environment and self.environment.strip():
            env_vars.append(f"{AUTO_REGISTER_ENVIRONMENT_ENV}={self.environment}")
        env_vars.append(f"{AUTO_REGISTER_AGENT_ID_ENV}={elastic_agent_id}")
        env_vars.append(f"{AUTO_REGISTER_PLUGIN_ID_ENV}={PLUGIN_ID}")
        return env_vars


class Agent(BaseModel):
    """An agent the server currently knows about."""

    agent_id: str = Field(..., description="Server-side agent UUID")
    elastic_agent_id: str = Field(..., description="Name of the pod backing this agent")
    agent_state: Optional[str] = Field(default=None, description="Idle, Building, ...")
    build_state: Optional[str] = Field(default=None, description="Idle, Building, Cancelled")
    config_state: Optional[str] = Field(default=None, description="Enabled, Disabled")


class Agents:
    """The set of agents reported by the server for one call."""

    def __init__(self, agents: Optional[Iterable[Agent]] = None) -> None:
        self._agents: dict[str, Agent] = {}
        for agent in agents or []:
            self._agents[agent.elastic_agent_id] = agent

    def agents(self) -> list[Agent]:
        return list(self._agents.values())

    def contains_agent_with_id(self, elastic_agent_id: str) -> bool:
        return elastic_agent_id in self._agents

    def find(self, elastic_agent_id: str) -> Optional[Agent]:
        return self._agents.get(elastic_agent_id)

    def agent_ids(self) -> list[str]:
        return list(self._agents)

    def __iter__(self) -> Iterator[Agent]:
        return iter(self.agents())

    def __len__(self) -> int:
        return len(self._agents)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Agents):
            return NotImplemented
        return self._agents == other._agents

    def __repr__(self) -> str:
        return f"Agents({self.agent_ids()!r})"
