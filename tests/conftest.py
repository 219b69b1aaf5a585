import pytest

from ticket_manager import TicketManager
from tickets_collaborators import ActivityFeed, Room
from tickets_errors import CollaboratorFailure
from tickets_settings import AdvancedMode, BasicMode, DispatchConfig, GarbageCollectorConfig, ReminderConfig

MAIN_POOL = 100
PYTHON_POOL = 200
EMPTY_POOL = 300

LEADER = 1
TEAMMATE = 2
HELPER = 10
OTHER_HELPER = 11


class ManualTimerHandle:
    def __init__(self, when, interval, callback):
        self.when = when
        self.interval = interval
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualTimers:
    """Timer service driven by advance() instead of the event loop"""

    def __init__(self):
        self.clock = 0.0
        self.handles = []

    def now(self):
        return self.clock

    def call_later(self, delay, callback):
        handle = ManualTimerHandle(self.clock + delay, None, callback)
        self.handles.append(handle)
        return handle

    def call_every(self, interval, callback):
        handle = ManualTimerHandle(self.clock + interval, interval, callback)
        self.handles.append(handle)
        return handle

    def pending(self):
        return [h for h in self.handles if not h.cancelled]

    async def advance(self, minutes=0, seconds=0):
        target = self.clock + minutes * 60 + seconds
        while True:
            due = [h for h in self.pending() if h.when <= target]
            if not due:
                break
            handle = min(due, key=lambda h: h.when)
            self.clock = max(self.clock, handle.when)
            if handle.interval:
                handle.when += handle.interval
            else:
                self.handles.remove(handle)
            await handle.callback()
        self.clock = target
        self.handles = self.pending()


class FakeHandle:
    def __init__(self, kind, target, notice, actions):
        self.kind = kind
        self.target = target
        self.notice = notice
        self.actions = dict(actions or {})
        self.closed = False

    @property
    def field_names(self):
        return [f.name for f in self.notice.fields]


class FakeGateway:
    def __init__(self, helpers=None):
        self.helpers = helpers if helpers is not None else {MAIN_POOL: 3, PYTHON_POOL: 1}
        self.handles = []
        self.fail_rooms = False

    async def count_helpers(self, pool_id):
        return self.helpers.get(pool_id, 0)

    def _record(self, kind, target, notice, actions):
        handle = FakeHandle(kind, target, notice, actions)
        self.handles.append(handle)
        return handle

    async def post_to_pool(self, pool_id, notice, actions=None):
        return self._record("pool", pool_id, notice, actions)

    async def notify_individual(self, identity, notice, actions=None):
        return self._record("individual", identity, notice, actions)

    async def post_to_room(self, room, notice, actions=None):
        if self.fail_rooms or room.ref["destroyed"]:
            raise CollaboratorFailure("room is gone")
        return self._record("room", room.ticket_id, notice, actions)

    async def add_actions(self, handle, actions):
        handle.actions.update(actions)

    async def update_notice(self, handle, fields=(), color=None):
        handle.notice.fields.extend(fields)
        if color is not None:
            handle.notice.color = color

    async def close_notice(self, handle):
        handle.closed = True

    async def act(self, handle, name, identity):
        """A user uses an action; closed notices have no actions left"""
        if handle.closed or name not in handle.actions:
            return None
        return await handle.actions[name].callback(identity)

    def find(self, kind, title_prefix="", target=None):
        return [
            h for h in self.handles
            if h.kind == kind and h.notice.title.startswith(title_prefix) and (target is None or h.target == target)
        ]

    def dispatch_for(self, ticket):
        return self.find("pool", f"New Ticket - {ticket.id}")[0]

    def leader_notice_for(self, ticket):
        return [h for h in self.find("individual", "Ticket was Successful!") if h.notice.description.endswith(f"ticket number {ticket.id}")][0]

    def room_notice_for(self, ticket):
        return self.find("room", "Original Question", target=ticket.id)[0]

    def warnings_for(self, ticket):
        return self.find("room", "Is this ticket still needed?", target=ticket.id)

    def reminders(self):
        return self.find("pool", "Ticket number")


class FakeProvisioner:
    def __init__(self, timers):
        self.timers = timers
        self.rooms = {}
        self.occupancy = 0
        self.fail_create = False

    async def create(self, ticket_id, participants):
        if self.fail_create:
            raise CollaboratorFailure("cannot create channels")
        room = Room(
            ticket_id=ticket_id,
            created_at=self.timers.now(),
            ref={"members": set(participants), "destroyed": False, "last_activity": self.timers.now()},
        )
        self.rooms[ticket_id] = room
        return room

    async def grant_access(self, room, identity):
        if room.ref["destroyed"]:
            raise CollaboratorFailure("room is gone")
        room.ref["members"].add(identity)

    async def revoke_access(self, room, identity):
        if room.ref["destroyed"]:
            raise CollaboratorFailure("room is gone")
        room.ref["members"].discard(identity)

    async def destroy(self, room):
        room.ref["destroyed"] = True

    async def observe_activity(self, room):
        if room.ref["destroyed"]:
            raise CollaboratorFailure("room is gone")
        return ActivityFeed(last_activity=room.ref["last_activity"], occupancy=self.occupancy)

    def message(self, ticket_id):
        self.rooms[ticket_id].ref["last_activity"] = self.timers.now()


@pytest.fixture
def timers():
    return ManualTimers()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def provisioner(timers):
    return FakeProvisioner(timers)


@pytest.fixture
def dispatch():
    return DispatchConfig(main_helper_pool=MAIN_POOL, reminder=ReminderConfig(enabled=True, interval_minutes=1))


@pytest.fixture
def collector():
    return GarbageCollectorConfig(enabled=True, inactivity_minutes=10, buffer_minutes=3)


@pytest.fixture
def closed_log():
    return []


@pytest.fixture
def advanced_manager(gateway, provisioner, timers, dispatch, collector, closed_log):
    async def on_closed(ticket, reason):
        closed_log.append((ticket.id, reason))

    return TicketManager(
        gateway, dispatch, AdvancedMode(provisioner, collector), timers=timers, on_ticket_closed=on_closed,
    )


@pytest.fixture
def basic_manager(gateway, timers, dispatch):
    return TicketManager(gateway, dispatch, BasicMode(), timers=timers)
