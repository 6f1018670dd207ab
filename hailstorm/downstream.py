"""Client that sends controller commands to downstream agents."""

from __future__ import annotations

from typing import Awaitable, Callable, Iterable

from hailstorm.messages import (
    AgentGroup,
    AgentIdTarget,
    AgentsTarget,
    Command,
    ControllerCommand,
    GroupTarget,
    Target,
)

CommandRecipient = Callable[[ControllerCommand], Awaitable[None]]


class DownstreamClient:
    """Wraps commands in a targeted controller command and hands them on."""

    def __init__(self, recipient: CommandRecipient) -> None:
        self._recipient = recipient

    async def _send(self, commands: Iterable[Command], target: Target) -> ControllerCommand:
        message = ControllerCommand(commands=list(commands), target=target)
        await self._recipient(message)
        return message

    async def send_to_agent(
        self, agent_id: int, commands: Iterable[Command]
    ) -> ControllerCommand:
        """Send commands to a single agent."""
        return await self._send(commands, AgentIdTarget(agent_id))

    async def send_to_agents(
        self, agent_ids: Iterable[int], commands: Iterable[Command]
    ) -> ControllerCommand:
        """Send commands to a set of agents."""
        return await self._send(commands, AgentsTarget(tuple(agent_ids)))

    async def send_broadcast(self, commands: Iterable[Command]) -> ControllerCommand:
        """Send commands to every agent."""
        return await self._send(commands, GroupTarget(AgentGroup.ALL))