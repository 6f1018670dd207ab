"""Collects agent updates and hands them to registered upstream senders."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Callable, Iterable

from hailstorm.messages import AgentMessage, AgentUpdate

log = logging.getLogger(__name__)

FLUSH_INTERVAL = timedelta(seconds=5)

MessageSender = Callable[[AgentMessage], None]


class UpdatesNotifier:
    """Buffers updates by id and sends them in batches to every sender."""

    def __init__(self) -> None:
        self.frames: dict[int, AgentUpdate] = {}
        self.connected_clients: list[MessageSender] = []

    def register_sender(self, sender: MessageSender) -> None:
        self.connected_clients.append(sender)

    def add_updates(self, updates: Iterable[AgentUpdate]) -> None:
        for upd in updates:
            self.frames[upd.update_id] = upd

    def flush(self) -> AgentMessage:
        """Send all buffered updates to every sender and clear the buffer."""
        updates = list(self.frames.values())
        self.frames.clear()
        for client in self.connected_clients:
            try:
                client(AgentMessage(list(updates)))
            except Exception as err:
                log.error("Error sending frames %r", err)
        return AgentMessage(updates)