"""Controller orchestrating the simulation state of connected agents."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Iterable, NamedTuple

from hailstorm.downstream import DownstreamClient
from hailstorm.messages import (
    AgentSimulationState,
    AgentUpdate,
    Command,
    LaunchCommand,
    StopCommand,
    UpdateAgentsCount,
)
from hailstorm.simulation_model import (
    IdleSimulation,
    LaunchedSimulation,
    ReadySimulation,
    SimulationDef,
    SimulationState,
)

log = logging.getLogger(__name__)

AGENT_TIMEOUT = timedelta(seconds=60)

MetricsRecipient = Callable[[list[AgentUpdate]], Awaitable[None]]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class _AgentState(NamedTuple):
    timestamp: datetime
    state: AgentSimulationState


class ControllerActor:
    """Tracks agent states and keeps them aligned with the desired simulation."""

    def __init__(
        self,
        downstream: DownstreamClient,
        metrics_storage: MetricsRecipient,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.downstream = downstream
        self._metrics_storage = metrics_storage
        self._clock = clock
        self.agents_state: dict[int, _AgentState] = {}
        self.simulation: SimulationState = IdleSimulation()

    def count_agents(self) -> int:
        return len(self.agents_state)

    def misaligned_agents(self) -> dict[int, _AgentState]:
        """Agents whose reported state differs from the desired one."""
        return {
            agent_id: agent
            for agent_id, agent in self.agents_state.items()
            if not self.simulation.is_aligned(agent.state)
        }

    def simulation_state_commands(self) -> list[Command]:
        """Commands that bring an agent to the desired simulation state."""
        commands: list[Command] = [
            StopCommand(reset=True),
            UpdateAgentsCount(self.count_agents()),
        ]
        if isinstance(self.simulation, (ReadySimulation, LaunchedSimulation)):
            commands.append(self.simulation.simulation.to_load_command())
        if isinstance(self.simulation, LaunchedSimulation):
            commands.append(LaunchCommand(start_ts=self.simulation.start_ts))
        return commands

    async def handle_updates(self, updates: Iterable[AgentUpdate]) -> None:
        """Record agent updates, realign agents and forward the metrics."""
        updates = list(updates)
        pre_count = self.count_agents()
        alignment = self._align_agents(updates)
        post_count = self.count_agents()

        await asyncio.gather(alignment, self._send_metrics(updates))

        if pre_count != post_count:
            log.info("Update agents count %s -> %s", pre_count, post_count)
            try:
                await self.downstream.send_broadcast([UpdateAgentsCount(post_count)])
            except Exception as err:
                log.error("Error sending count update - %s", err)

    async def load_simulation(self, simulation: SimulationDef) -> None:
        """Make the given simulation the desired one and broadcast it."""
        self.simulation = ReadySimulation(simulation)
        await self._broadcast_state()

    async def start_simulation(self, start_ts: datetime) -> None:
        """Launch the loaded simulation at the given time and broadcast it."""
        current = self.simulation
        if isinstance(current, IdleSimulation):
            log.warning("Ignoring StartSimulation command as state is idle")
        else:
            self.simulation = LaunchedSimulation(start_ts, current.simulation)
        await self._broadcast_state()

    async def _broadcast_state(self) -> None:
        try:
            await self.downstream.send_broadcast(self.simulation_state_commands())
        except Exception as err:
            log.error("Error sending load-sim command - %s", err)

    async def _send_metrics(self, updates: list[AgentUpdate]) -> None:
        try:
            await self._metrics_storage(updates)
        except Exception as err:
            log.error("Error sending metrics - %s", err)

    def _align_agents(self, updates: list[AgentUpdate]) -> Awaitable[None]:
        for update in updates:
            timestamp = update.update_ts()
            if timestamp is None:
                continue
            entry = self.agents_state.get(update.agent_id)
            if entry is None or entry.timestamp < timestamp:
                self.agents_state[update.agent_id] = _AgentState(timestamp, update.state)

        now = self._clock()
        self.agents_state = {
            agent_id: agent
            for agent_id, agent in self.agents_state.items()
            if agent.timestamp + AGENT_TIMEOUT > now
        }

        misaligned = list(self.misaligned_agents())
        commands = self.simulation_state_commands()

        async def send() -> None:
            if not misaligned:
                return
            try:
                await self.downstream.send_to_agents(misaligned, commands)
            except Exception as err:
                log.error("Error aligning simulation state - %s", err)

        return send()