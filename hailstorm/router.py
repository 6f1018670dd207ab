"""Routing of agent updates and controller commands over downstream connections."""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable

from hailstorm.messages import (
    AgentIdTarget,
    AgentMessage,
    AgentsTarget,
    AgentUpdate,
    ControllerCommand,
    GroupTarget,
)

log = logging.getLogger(__name__)

AGENT_TIMEOUT = timedelta(seconds=60)

UpdateRecipient = Callable[[list[AgentUpdate]], None]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DownstreamAgent:
    """Forwards controller commands into the command queue of one connection.

    Setting ``closed`` marks the queue as no longer read; the next command
    sent then stops the agent instead of being queued.
    """

    def __init__(self, cmd_queue: asyncio.Queue) -> None:
        self.cmd_queue = cmd_queue
        self.closed = False
        self.connected = True

    async def send(self, command: ControllerCommand) -> None:
        if not self.connected:
            log.warning("Downstream agent is stopped, dropping command")
            return
        if self.closed:
            log.warning("Downstream channel is closed. Stopping actor")
            self.connected = False
            return
        try:
            await self.cmd_queue.put(command)
        except Exception as err:
            log.error("Error sending command downstream %s", err)


@dataclass
class _Connection:
    agent: DownstreamAgent
    agent_ids: dict[int, datetime] = field(default_factory=dict)


class ServerRouter:
    """Tracks downstream connections and the agents seen behind each of them."""

    def __init__(
        self,
        agent_update_recipient: UpdateRecipient,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._recipient = agent_update_recipient
        self._clock = clock
        self.connections: dict[int, _Connection] = {}

    def register_connection(self, cmd_queue: asyncio.Queue) -> int:
        """Register a new downstream connection and return its id."""
        connection_id = random.getrandbits(64)
        self.connections[connection_id] = _Connection(DownstreamAgent(cmd_queue))
        return connection_id

    def handle_agent_message(self, connection_id: int, message: AgentMessage) -> None:
        """Record the agents of a message and forward its updates."""
        connection = self.connections.get(connection_id)
        if connection is None:
            raise KeyError(f"Connection not defined: {connection_id}")

        for update in message.updates:
            stamps = [
                snapshot.timestamp
                for stats in update.stats
                for snapshot in stats.states
                if snapshot.timestamp is not None
            ]
            last_ts = max(stamps) if stamps else self._clock()
            previous = connection.agent_ids.setdefault(update.agent_id, last_ts)
            if last_ts > previous:
                connection.agent_ids[update.agent_id] = last_ts

        try:
            self._recipient(list(message.updates))
        except Exception as err:
            log.error("Error sending update message %r", err)

        now = self._clock()
        for conn in self.connections.values():
            conn.agent_ids = {
                agent_id: ts
                for agent_id, ts in conn.agent_ids.items()
                if ts + AGENT_TIMEOUT > now
            }

    def connections_cleanup(self) -> None:
        """Forget connections whose downstream agent has stopped."""
        self.connections = {
            cid: conn for cid, conn in self.connections.items() if conn.agent.connected
        }

    async def dispatch(self, command: ControllerCommand) -> list[int]:
        """Send a command to the connections its target covers.

        Returns the ids of the connections the command was sent to.
        """
        self.connections_cleanup()
        target = command.target
        selected = [
            (cid, conn)
            for cid, conn in self.connections.items()
            if self._covers(target, conn)
        ]
        if not selected and not (target is None or isinstance(target, GroupTarget)):
            log.warning("No connection available for target %r", target)

        for _, conn in selected:
            try:
                await conn.agent.send(command)
            except Exception as err:
                log.error("Error sending command to downstream agent client %s", err)
        return [cid for cid, _ in selected]

    @staticmethod
    def _covers(target, conn: _Connection) -> bool:
        if target is None or isinstance(target, GroupTarget):
            return True
        if isinstance(target, AgentIdTarget):
            return target.agent_id in conn.agent_ids
        if isinstance(target, AgentsTarget):
            return any(agent_id in conn.agent_ids for agent_id in target.agent_ids)
        return False