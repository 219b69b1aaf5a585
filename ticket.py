# ticket.py
# One help request and its lifecycle: open -> taken -> closed

import enum
from dataclasses import dataclass
from typing import List, Optional

import config
import tickets_notices as notices
from tickets_collaborators import Action
from tickets_errors import CollaboratorFailure, InvalidModeError
from tickets_timers import minutes

# Close reasons shown to the group leader and the helpers
LEADER_CANCELED = "leader canceled"
MANAGER_CLOSED = "manager closed"
NO_PARTICIPANTS = "no participants remaining"
HELPER_DEPARTED = "helper departed"
INACTIVITY = "inactivity"

CANCEL_EMOJI = "⚔️"
LEAVE_EMOJI = "👋"
KEEP_EMOJI = "🔄"


class TicketStatus(enum.Enum):
    OPEN = "open"      # waiting for a helper to take it
    TAKEN = "taken"    # being handled
    CLOSED = "closed"  # done, nothing else can happen


@dataclass
class GarbageCollectionInfo:
    # excluded tickets are never deleted automatically
    excluded: bool = False
    # a deletion confirmation is waiting for an answer
    deletion_sequence_started: bool = False


class Ticket:
    """A help request from a group of users.

    Tickets are created and owned by a ``TicketManager``. Every status change
    goes through the methods below; the status is set before the first await
    of a transition so a racing transition sees it and becomes a no-op.
    """

    def __init__(self, ticket_id: int, group, question: str, requested_capability, manager):
        self.id = ticket_id
        # group leader first, keeps insertion order
        self.group: List = list(dict.fromkeys(group))
        if not self.group:
            raise ValueError("A ticket needs at least one group member!")
        self.question = question
        self.requested_capability = requested_capability
        self.helpers: List = []
        self.garbage_collection = GarbageCollectionInfo()
        self.status = TicketStatus.OPEN
        self.close_reason: Optional[str] = None
        self.room = None
        self.created_at = manager.timers.now()

        self._manager = manager
        self._notices = {}
        self._inactivity_timer = None
        self._buffer_timer = None

    def __repr__(self):
        return f"<Ticket id={self.id} status={self.status.value}>"

    @property
    def leader(self):
        return self.group[0] if self.group else None

    @property
    def advanced(self) -> bool:
        return self._manager.mode.is_advanced

    @property
    def _gateway(self):
        return self._manager.gateway

    def age(self, now: float) -> float:
        """Seconds since the room was created, or since the ticket was if there is no room yet"""
        started = self.room.created_at if self.room is not None else self.created_at
        return now - started

    # ---------- COLLABORATOR CALLS ----------
    async def _call(self, what: str, coro):
        try:
            return await coro
        except CollaboratorFailure as e:
            print(f"⚠️ Ticket {self.id}: failed to {what}: {e}")
            return None

    async def _post(self, key: str, what: str, coro):
        handle = await self._call(what, coro)
        if handle is None:
            return None
        self._notices[key] = handle
        # closed while we were posting, the notice still gets the closing update
        if self.status is TicketStatus.CLOSED:
            await self._retire_notice(key)
        return handle

    async def _update(self, key: str, fields=(), color=None):
        handle = self._notices.get(key)
        if handle is not None:
            await self._call(f"update the {key} notice", self._gateway.update_notice(handle, fields=fields, color=color))

    async def _close_notice(self, key: str):
        handle = self._notices.get(key)
        if handle is not None:
            await self._call(f"close the {key} notice", self._gateway.close_notice(handle))

    async def _retire_notice(self, key: str):
        """Tell the notice's readers why the ticket closed, then close the notice"""
        if key == "dispatch":
            await self._update(key, [notices.closed_field(self.close_reason)], config.COLORS["TICKET_CLOSED"])
        elif key == "leader":
            await self._update(key, [notices.leader_closed_field(self.close_reason)])
        await self._close_notice(key)

    # ---------- OPEN ----------
    async def open(self):
        """Contact the group leader and dispatch the ticket to the helpers"""
        cancel = Action(
            "Remove the ticket", CANCEL_EMOJI, self._leader_cancels,
            "React to this message if you don't need help any more!",
        )
        await self._post(
            "leader", "contact the group leader",
            self._gateway.notify_individual(self.leader, notices.leader_notice(self, self._manager.name), {"cancel": cancel}),
        )

        claim = Action(
            "Can you help them?", self._manager.dispatch.take_emoji, self.claim,
            "If so, react to this message with the emoji!",
        )
        type_name = self._manager.type_name(self.requested_capability)
        await self._post(
            "dispatch", "dispatch the ticket",
            self._gateway.post_to_pool(self.requested_capability, notices.dispatch_notice(self, type_name), {"claim": claim}),
        )

    async def _leader_cancels(self, identity):
        # only the leader can cancel, and only if no one has taken the ticket
        if self.status is not TicketStatus.OPEN or identity != self.leader:
            return False
        return await self.close(LEADER_CANCELED)

    async def remind_helpers(self, pool_id):
        if self.status is not TicketStatus.OPEN:
            return
        await self._update("dispatch", color=config.COLORS["TICKET_REMINDER"])
        await self._call("remind the helpers", self._gateway.post_to_pool(pool_id, notices.reminder_notice(self, pool_id)))

    # ---------- TAKEN ----------
    async def claim(self, helper) -> bool:
        """A helper takes the ticket. Returns False if someone else got there first."""
        if helper is None:
            raise ValueError("A helper is needed when taking a ticket!")
        if self.status is not TicketStatus.OPEN:
            return False
        self.status = TicketStatus.TAKEN
        self._manager._cancel_reminder(self.id)
        self.helpers.append(helper)

        await self._update("dispatch", [notices.taken_field(helper)], config.COLORS["TICKET_TAKEN"])
        await self._update("leader", [notices.leader_taken_field(self.advanced)])
        await self._close_notice("leader")

        if self.advanced:
            await self._open_room(helper)
        return True

    async def _open_room(self, helper):
        provisioner = self._manager.mode.provisioner
        room = await self._call("create the ticket room", provisioner.create(self.id, list(self.group)))
        if room is None:
            return
        if self.status is TicketStatus.CLOSED:
            await self._call("delete the ticket room", provisioner.destroy(room))
            return
        self.room = room
        await self._call("give the helper access", provisioner.grant_access(room, helper))

        join_emoji = self._manager.dispatch.join_emoji
        join = Action("Still want to help?", join_emoji, self.join, f"Click the {join_emoji} emoji to join the ticket!")
        handle = self._notices.get("dispatch")
        if handle is not None and self.status is TicketStatus.TAKEN:
            await self._call("add the join option", self._gateway.add_actions(handle, {"join": join}))

        leave = Action("When done:", LEAVE_EMOJI, self.leave, "React to this message to lose access to these channels!")
        await self._post(
            "room", "send the room notice",
            self._gateway.post_to_room(room, notices.room_notice(self, helper), {"leave": leave}),
        )
        self._arm_inactivity_watch()

    async def join(self, helper) -> bool:
        """Another helper joins a taken ticket"""
        if not self.advanced:
            raise InvalidModeError("Helpers can only join tickets when advanced mode is on!")
        if self.status is not TicketStatus.TAKEN or helper in self.helpers:
            return False
        self.helpers.append(helper)
        if self.room is not None:
            await self._call("give the helper access", self._manager.mode.provisioner.grant_access(self.room, helper))
        await self._update("dispatch", [notices.joined_field(helper)])
        await self._update("room", [notices.joined_field(helper)])
        return True

    async def leave(self, identity) -> bool:
        """A helper or group member leaves the ticket and loses access to the room"""
        if not self.advanced:
            raise InvalidModeError("Leaving a ticket is only available when advanced mode is on!")
        if self.status is not TicketStatus.TAKEN:
            return False
        was_helper = identity in self.helpers
        if not was_helper and identity not in self.group:
            return False
        if was_helper:
            self.helpers.remove(identity)
        if identity in self.group:
            self.group.remove(identity)
        if self.room is not None:
            await self._call("remove access", self._manager.mode.provisioner.revoke_access(self.room, identity))

        if not self.group:
            await self.close(NO_PARTICIPANTS)
        elif was_helper and not self.helpers and not self.garbage_collection.excluded:
            await self.ask_to_delete(HELPER_DEPARTED)
        return True

    # ---------- GARBAGE COLLECTION ----------
    def include_exclude(self, exclude: bool):
        """Exclude from or re-include in automatic garbage collection"""
        old_exclude = self.garbage_collection.excluded
        self.garbage_collection.excluded = exclude
        if exclude:
            self._cancel_inactivity_watch()
        elif old_exclude:
            self._arm_inactivity_watch()

    def _arm_inactivity_watch(self, delay: Optional[float] = None):
        mode = self._manager.mode
        if not mode.is_advanced or not mode.garbage_collector.enabled:
            return
        info = self.garbage_collection
        if self.status is not TicketStatus.TAKEN or self.room is None or info.excluded or info.deletion_sequence_started:
            return
        self._cancel_inactivity_watch()
        if delay is None:
            delay = minutes(mode.garbage_collector.inactivity_minutes)
        self._inactivity_timer = self._manager.timers.call_later(delay, self._check_inactivity)

    def _cancel_inactivity_watch(self):
        if self._inactivity_timer is not None:
            self._inactivity_timer.cancel()
            self._inactivity_timer = None

    def _cancel_deletion_buffer(self):
        if self._buffer_timer is not None:
            self._buffer_timer.cancel()
            self._buffer_timer = None

    async def _check_inactivity(self):
        self._inactivity_timer = None
        info = self.garbage_collection
        if self.status is not TicketStatus.TAKEN or info.excluded or info.deletion_sequence_started:
            return
        feed = await self._call("check the room activity", self._manager.mode.provisioner.observe_activity(self.room))
        if feed is None or self.status is not TicketStatus.TAKEN:
            return

        period = minutes(self._manager.mode.garbage_collector.inactivity_minutes)
        idle = self._manager.timers.now() - feed.last_activity
        if feed.occupancy > 0:
            self._arm_inactivity_watch()
        elif idle < period:
            self._arm_inactivity_watch(period - idle)
        else:
            await self.ask_to_delete(INACTIVITY)

    async def ask_to_delete(self, reason: str) -> bool:
        """Ask the room if the ticket can be deleted; it is closed if no one answers in time.

        ``reason`` is INACTIVITY or HELPER_DEPARTED. Only one of these runs at a time.
        """
        info = self.garbage_collection
        if self.status is not TicketStatus.TAKEN or self.room is None or info.excluded or info.deletion_sequence_started:
            return False
        info.deletion_sequence_started = True
        self._cancel_inactivity_watch()

        buffer_minutes = self._manager.mode.garbage_collector.buffer_minutes
        keep = Action("Keep the ticket", KEEP_EMOJI, self._keep_ticket, "React if you still need this ticket!")
        handle = await self._post(
            "warning", "ask to delete the ticket",
            self._gateway.post_to_room(self.room, notices.deletion_warning(self, reason, buffer_minutes), {"keep": keep}),
        )
        if handle is None or self.status is not TicketStatus.TAKEN:
            # room is gone, nothing left to confirm
            info.deletion_sequence_started = False
            return False
        self._buffer_timer = self._manager.timers.call_later(minutes(buffer_minutes), self._deletion_buffer_expired)
        return True

    async def _keep_ticket(self, identity):
        if not self.garbage_collection.deletion_sequence_started or self.status is not TicketStatus.TAKEN:
            return
        self._cancel_deletion_buffer()
        self.garbage_collection.deletion_sequence_started = False
        await self._close_notice("warning")
        if self.status is TicketStatus.TAKEN:
            await self._call("send the more time notice", self._gateway.post_to_room(self.room, notices.more_time_notice()))
        self._arm_inactivity_watch()

    async def _deletion_buffer_expired(self):
        self._buffer_timer = None
        self.garbage_collection.deletion_sequence_started = False
        if self.status is not TicketStatus.TAKEN:
            return
        await self._close_notice("warning")
        if self.garbage_collection.excluded:
            return
        await self.close(INACTIVITY)

    # ---------- CLOSED ----------
    async def close(self, reason: str) -> bool:
        """Close the ticket, update every notice and delete the room. Closing twice does nothing."""
        if self.status is TicketStatus.CLOSED:
            return False
        self.status = TicketStatus.CLOSED
        self.close_reason = reason
        self._cancel_inactivity_watch()
        self._cancel_deletion_buffer()
        self.garbage_collection.deletion_sequence_started = False
        self._manager._ticket_closed(self)

        for key in ("dispatch", "leader", "room", "warning"):
            await self._retire_notice(key)

        if self.room is not None:
            await self._call("delete the ticket room", self._manager.mode.provisioner.destroy(self.room))

        await self._manager._notify_closed(self, reason)
        return True
