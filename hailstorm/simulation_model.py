"""Simulation definitions and the controller's simulation lifecycle states."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Union

from hailstorm.messages import AgentSimulationState, ClientDistribution, LoadSimCommand


@dataclass(frozen=True)
class BotDef:
    """A bot model paired with the expression shaping its count over time."""

    model: str = ""
    shape: str = ""

    def to_distribution(self) -> ClientDistribution:
        return ClientDistribution(model=self.model, shape=self.shape)


@dataclass(frozen=True)
class SimulationDef:
    """Bot definitions together with the script defining their behaviour."""

    bots: tuple[BotDef, ...] = field(default_factory=tuple)
    script: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "bots", tuple(self.bots))

    def to_load_command(self) -> LoadSimCommand:
        return LoadSimCommand(
            clients_evolution=[bot.to_distribution() for bot in self.bots],
            script=self.script,
        )


@dataclass(frozen=True)
class IdleSimulation:
    """No simulation is loaded."""

    def is_aligned(self, agent_state: AgentSimulationState) -> bool:
        """Whether an agent's reported state matches this one."""
        return agent_state in (AgentSimulationState.IDLE, AgentSimulationState.STOPPING)


@dataclass(frozen=True)
class ReadySimulation:
    """A simulation is loaded and ready to be launched."""

    simulation: SimulationDef

    def is_aligned(self, agent_state: AgentSimulationState) -> bool:
        """Whether an agent's reported state matches this one."""
        return agent_state is AgentSimulationState.READY


@dataclass(frozen=True)
class LaunchedSimulation:
    """The simulation is launched, running or waiting for its start time."""

    start_ts: datetime
    simulation: SimulationDef

    def is_aligned(self, agent_state: AgentSimulationState) -> bool:
        """Whether an agent's reported state matches this one."""
        if agent_state is AgentSimulationState.RUNNING:
            return True
        if agent_state is AgentSimulationState.WAITING:
            return self.start_ts > datetime.now(timezone.utc)
        return False


SimulationState = Union[IdleSimulation, ReadySimulation, LaunchedSimulation]