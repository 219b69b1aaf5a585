# ticket_manager.py
# Creates tickets, hands out ticket numbers, reminds helpers and removes tickets in bulk

import asyncio
import traceback
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from ticket import MANAGER_CLOSED, Ticket, TicketStatus
from tickets_errors import InvalidModeError, NoHelperAvailable
from tickets_settings import AdvancedMode, BasicMode, DispatchConfig
from tickets_timers import TimerService, minutes


@dataclass
class TicketType:
    name: str
    emoji: str
    description: str = ""


class TicketManager:
    """A ticket system for one group of helpers.

    Works with one main helper pool plus any number of specialty pools
    (``add_ticket_type``). In ``AdvancedMode`` every taken ticket gets its own
    room and is garbage collected when it goes quiet; in ``BasicMode`` helpers
    are expected to contact the requesters directly.
    """

    def __init__(self, gateway, dispatch: DispatchConfig, mode=None, timers: Optional[TimerService] = None,
                 name: str = "Help Desk", on_ticket_closed=None):
        if mode is None:
            mode = BasicMode()
        if not isinstance(mode, (BasicMode, AdvancedMode)):
            raise TypeError(f"Unknown ticket mode: {mode!r}")

        self.gateway = gateway
        self.dispatch = dispatch
        self.mode = mode
        self.timers = timers or TimerService()
        self.name = name
        self.on_ticket_closed = on_ticket_closed

        self.tickets: Dict[int, Ticket] = {}
        # separate from len(tickets), ticket numbers are never reused
        self.ticket_count = 1
        self.ticket_types: Dict[object, TicketType] = {
            dispatch.main_helper_pool: TicketType("General Ticket", "🎫", "A general ticket aimed to all helpers."),
        }
        self._reminders = {}

    # ---------- TICKET TYPES ----------
    def add_ticket_type(self, capability, name: str, emoji: str):
        """Adds a specialty ticket type dispatched to its own helper pool"""
        self.ticket_types[capability] = TicketType(f"Question about {name}", emoji)
        return self.ticket_types[capability]

    def type_name(self, capability) -> str:
        ticket_type = self.ticket_types.get(capability)
        return ticket_type.name if ticket_type else str(capability)

    # ---------- CREATION ----------
    async def create_ticket(self, group: Iterable, question: str, capability=None) -> Ticket:
        """Create and dispatch a new ticket. The first group member is the group leader.

        Raises NoHelperAvailable if the requested pool is empty; no ticket is created then.
        """
        group = list(dict.fromkeys(group))
        if not group:
            raise ValueError("A ticket needs at least one group member!")
        if capability is None:
            capability = self.dispatch.main_helper_pool

        if await self.gateway.count_helpers(capability) <= 0:
            print(f"⚠️ {self.name} received a ticket from {group[0]} but no helper has the role {capability}")
            raise NoHelperAvailable(capability)

        ticket = Ticket(self.ticket_count, group, question, capability, self)
        self.tickets[ticket.id] = ticket
        self.ticket_count += 1
        self._set_reminder(ticket)

        await ticket.open()
        return ticket

    # ---------- REMINDERS ----------
    def _set_reminder(self, ticket: Ticket):
        reminder = self.dispatch.reminder
        if not reminder.enabled:
            return

        async def remind():
            if ticket.status is not TicketStatus.OPEN:
                self._cancel_reminder(ticket.id)
                return
            await ticket.remind_helpers(self.dispatch.main_helper_pool)

        self._reminders[ticket.id] = self.timers.call_every(minutes(reminder.interval_minutes), remind)

    def _cancel_reminder(self, ticket_id: int):
        timer = self._reminders.pop(ticket_id, None)
        if timer is not None:
            timer.cancel()

    # ---------- QUERIES ----------
    def get_ticket(self, ticket_id: int) -> Optional[Ticket]:
        return self.tickets.get(ticket_id)

    def get_ticket_count(self) -> int:
        """Number of tickets that are not closed yet"""
        return len(self.tickets)

    def get_open_count(self) -> int:
        """Number of tickets still waiting for a helper"""
        return sum(1 for ticket in self.tickets.values() if ticket.status is TicketStatus.OPEN)

    # ---------- REMOVAL ----------
    async def remove_ticket(self, ticket_id: int, reason: str = MANAGER_CLOSED) -> bool:
        """Close a ticket and delete its room. Unknown or closed tickets are ignored."""
        ticket = self.tickets.get(ticket_id)
        if ticket is None:
            return False
        return await ticket.close(reason)

    async def remove_tickets_by_id(self, ticket_ids: Iterable[int]) -> List[int]:
        ticket_ids = list(dict.fromkeys(ticket_ids))
        results = await asyncio.gather(*(self.remove_ticket(ticket_id) for ticket_id in ticket_ids))
        return [ticket_id for ticket_id, removed in zip(ticket_ids, results) if removed]

    async def remove_all_tickets(self, exclude_ids: Iterable[int] = ()) -> List[int]:
        """Close every ticket except the excluded ones"""
        exclude_ids = set(exclude_ids)
        return await self.remove_tickets_by_id(
            [ticket_id for ticket_id in self.tickets if ticket_id not in exclude_ids]
        )

    async def remove_tickets_older_than(self, min_age_minutes: float) -> List[int]:
        """Close every ticket older than the given age in minutes.

        Raises InvalidModeError when advanced mode is off.
        """
        if not self.mode.is_advanced:
            raise InvalidModeError("Remove by age is only available when advanced mode is on!")
        now = self.timers.now()
        limit = minutes(min_age_minutes)
        return await self.remove_tickets_by_id(
            [ticket_id for ticket_id, ticket in self.tickets.items() if ticket.age(now) > limit]
        )

    def include_exclude(self, ticket_id: int, exclude: bool) -> bool:
        """Exclude a ticket from garbage collection, or include it again"""
        ticket = self.tickets.get(ticket_id)
        if ticket is None:
            return False
        ticket.include_exclude(exclude)
        return True

    # ---------- CALLED BY TICKETS ----------
    def _ticket_closed(self, ticket: Ticket):
        self._cancel_reminder(ticket.id)
        self.tickets.pop(ticket.id, None)

    async def _notify_closed(self, ticket: Ticket, reason: str):
        if self.on_ticket_closed is None:
            return
        try:
            await self.on_ticket_closed(ticket, reason)
        except Exception as e:
            print(f"⚠️ Error recording closed ticket {ticket.id}: {e}")
            traceback.print_exc()
