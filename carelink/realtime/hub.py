# carelink/realtime/hub.py
from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Dict, Iterable, Optional, Protocol, Set

from carelink.config.settings import settings

logger = logging.getLogger(__name__)

BROADCAST = "broadcast"
TARGETED = "targeted"


class Connection(Protocol):
    async def accept(self) -> None: ...

    async def send_json(self, data: Any) -> None: ...


class RealtimeHub:
    """
    Publish/subscribe over open WebSocket connections.

    Frames look like {"event": "<name>", "data": {...}}.

    Delivery policy
    - broadcast (default): every connection gets every event, recipients are ignored.
    - targeted: events with recipients only go to connections that joined
      one of those groups. Events without recipients are still broadcast.
    """

    def __init__(self, policy: str = BROADCAST):
        if policy not in (BROADCAST, TARGETED):
            raise ValueError(f"unknown realtime policy: {policy}")
        self.policy = policy
        self.connections: Dict[str, Connection] = {}
        self.groups: Dict[str, Set[str]] = {}

    async def connect(self, websocket: Connection) -> str:
        await websocket.accept()
        conn_id = uuid.uuid4().hex
        self.connections[conn_id] = websocket
        logger.info("[realtime] connected %s (total=%d)", conn_id, len(self.connections))
        return conn_id

    def disconnect(self, conn_id: str) -> None:
        if self.connections.pop(conn_id, None) is None:
            return
        for members in self.groups.values():
            members.discard(conn_id)
        self.groups = {name: members for name, members in self.groups.items() if members}
        logger.info("[realtime] disconnected %s (total=%d)", conn_id, len(self.connections))

    def join(self, conn_id: str, group: Any) -> None:
        if conn_id not in self.connections:
            return
        self.groups.setdefault(str(group), set()).add(conn_id)

    def _targets(self, recipients: Optional[Iterable[Any]]) -> Set[str]:
        if self.policy == BROADCAST:
            return set(self.connections)
        names = {str(r) for r in (recipients or []) if r is not None}
        if not names:
            return set(self.connections)
        targets: Set[str] = set()
        for name in names:
            targets |= self.groups.get(name, set())
        return targets

    async def publish(self, event: str, data: Any, recipients: Optional[Iterable[Any]] = None) -> int:
        """Send one event to all targets at once. Returns the number of connections it reached."""
        frame = {"event": event, "data": data}
        targets = [(cid, self.connections[cid]) for cid in self._targets(recipients) if cid in self.connections]
        if not targets:
            return 0

        outcomes = await asyncio.gather(
            *(websocket.send_json(frame) for _, websocket in targets),
            return_exceptions=True,
        )

        delivered = 0
        for (conn_id, _), outcome in zip(targets, outcomes):
            if isinstance(outcome, BaseException):
                logger.warning("[realtime] send failed conn=%s event=%s err=%s, dropping", conn_id, event, outcome)
                self.disconnect(conn_id)
            else:
                delivered += 1
        return delivered


hub = RealtimeHub(policy=settings.realtime_policy)


# FastAPI dependency
def get_hub() -> RealtimeHub:
    return hub
