"""Interfaces the ticket system calls out to.

A ``RoomProvisioner`` gives advanced-mode tickets their own space, and a
``NotificationGateway`` delivers every message the tickets post. Both raise
``CollaboratorFailure`` when they cannot do what was asked.
"""
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Hashable, List, Optional, Sequence

Identity = Hashable
ActionCallback = Callable[[Identity], Awaitable[None]]


@dataclass
class NoticeField:
    name: str
    value: str
    inline: bool = False


@dataclass
class Notice:
    """A message with an optional list of fields, rendered by the gateway"""
    title: str
    description: str = ""
    color: Optional[int] = None
    fields: List[NoticeField] = field(default_factory=list)
    mention: Optional[str] = None


@dataclass
class Action:
    """A user interaction attached to a notice (button, reaction, ...)"""
    label: str
    emoji: Optional[str]
    callback: ActionCallback
    description: str = ""


Actions = Dict[str, Action]


@dataclass
class Room:
    """An isolated space for one ticket. ``created_at`` is on the timer clock."""
    ticket_id: int
    created_at: float
    ref: Any = None


@dataclass
class ActivityFeed:
    last_activity: float
    occupancy: int = 0


class RoomProvisioner:
    async def create(self, ticket_id: int, participants: Sequence[Identity]) -> Room:
        raise NotImplementedError

    async def grant_access(self, room: Room, identity: Identity):
        raise NotImplementedError

    async def revoke_access(self, room: Room, identity: Identity):
        raise NotImplementedError

    async def destroy(self, room: Room):
        raise NotImplementedError

    async def observe_activity(self, room: Room) -> ActivityFeed:
        raise NotImplementedError


class NotificationGateway:
    async def count_helpers(self, pool_id) -> int:
        raise NotImplementedError

    async def post_to_pool(self, pool_id, notice: Notice, actions: Optional[Actions] = None):
        raise NotImplementedError

    async def notify_individual(self, identity: Identity, notice: Notice, actions: Optional[Actions] = None):
        raise NotImplementedError

    async def post_to_room(self, room: Room, notice: Notice, actions: Optional[Actions] = None):
        raise NotImplementedError

    async def add_actions(self, handle, actions: Actions):
        raise NotImplementedError

    async def update_notice(self, handle, fields: Sequence[NoticeField] = (), color: Optional[int] = None):
        raise NotImplementedError

    async def close_notice(self, handle):
        raise NotImplementedError
