"""Messages exchanged between agents and controllers."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Union


class AgentSimulationState(enum.Enum):
    """Simulation phase reported by an agent."""

    IDLE = "idle"
    READY = "ready"
    WAITING = "waiting"
    RUNNING = "running"
    STOPPING = "stopping"


class AgentGroup(enum.Enum):
    """Named groups of agents a command can be addressed to."""

    ALL = "all"


@dataclass
class ClientGroupStates:
    """Number of bots of a model found in one state."""

    state_id: int
    count: int


@dataclass
class ModelStateSnapshot:
    """Bot counts by state at a given instant."""

    timestamp: Optional[datetime] = None
    states: list[ClientGroupStates] = field(default_factory=list)


@dataclass
class PerformanceHistogram:
    """Response time histogram for one action outcome."""

    status: int
    buckets: list[int] = field(default_factory=list)
    sum: int = 0


@dataclass
class PerformanceSnapshot:
    """Histograms of an action captured at a given instant."""

    action: str
    timestamp: Optional[datetime] = None
    histograms: list[PerformanceHistogram] = field(default_factory=list)


@dataclass
class ModelStats:
    """State and performance statistics of one bot model."""

    model: str
    states: list[ModelStateSnapshot] = field(default_factory=list)
    performance: list[PerformanceSnapshot] = field(default_factory=list)

    def last_ts(self) -> Optional[datetime]:
        """Most recent timestamp amongst all states and performance snapshots."""
        stamps = [s.timestamp for s in self.states if s.timestamp is not None]
        stamps += [p.timestamp for p in self.performance if p.timestamp is not None]
        return max(stamps, default=None)


@dataclass
class AgentUpdate:
    """Periodic report of one agent."""

    agent_id: int
    update_id: int
    stats: list[ModelStats] = field(default_factory=list)
    timestamp: Optional[datetime] = None
    name: str = ""
    state: AgentSimulationState = AgentSimulationState.IDLE
    simulation_id: str = ""

    def last_ts(self) -> Optional[datetime]:
        """Most recent statistics timestamp."""
        stamps = [ts for ts in (s.last_ts() for s in self.stats) if ts is not None]
        return max(stamps, default=None)

    def update_ts(self) -> Optional[datetime]:
        """Timestamp of the update itself."""
        return self.timestamp


@dataclass
class AgentMessage:
    """Batch of agent updates sent upstream."""

    updates: list[AgentUpdate] = field(default_factory=list)


@dataclass
class ClientDistribution:
    """Bot model paired with its load shape expression."""

    model: str
    shape: str


@dataclass
class LoadSimCommand:
    """Load a simulation script and its client distributions."""

    clients_evolution: list[ClientDistribution] = field(default_factory=list)
    script: str = ""


@dataclass
class LaunchCommand:
    """Start the loaded simulation at a given time."""

    start_ts: Optional[datetime] = None


@dataclass
class StopCommand:
    """Stop the running simulation, optionally resetting it."""

    reset: bool = False


@dataclass
class UpdateAgentsCount:
    """Tell agents how many agents take part in the simulation."""

    count: int


Command = Union[LoadSimCommand, LaunchCommand, StopCommand, UpdateAgentsCount]


@dataclass(frozen=True)
class GroupTarget:
    """Address a whole group of agents."""

    group: AgentGroup = AgentGroup.ALL

    def includes_agent(self, agent_id: int) -> bool:
        return self.group == AgentGroup.ALL


@dataclass(frozen=True)
class AgentIdTarget:
    """Address a single agent."""

    agent_id: int

    def includes_agent(self, agent_id: int) -> bool:
        return self.agent_id == agent_id


@dataclass(frozen=True)
class AgentsTarget:
    """Address a set of agents."""

    agent_ids: tuple[int, ...] = ()

    def includes_agent(self, agent_id: int) -> bool:
        return agent_id in self.agent_ids


Target = Union[GroupTarget, AgentIdTarget, AgentsTarget]


@dataclass
class ControllerCommand:
    """Commands sent downstream, optionally restricted to a target."""

    commands: list[Command] = field(default_factory=list)
    target: Optional[Target] = None