import asyncio

import pytest

import config
from conftest import HELPER, LEADER, MAIN_POOL, OTHER_HELPER, TEAMMATE, FakeGateway, FakeProvisioner
from ticket import LEADER_CANCELED, NO_PARTICIPANTS, TicketStatus
from ticket_manager import TicketManager
from tickets_errors import InvalidModeError
from tickets_settings import AdvancedMode, BasicMode


async def test_open_contacts_leader_and_dispatches(basic_manager, gateway):
    ticket = await basic_manager.create_ticket([LEADER, TEAMMATE], "need help")

    leader = gateway.leader_notice_for(ticket)
    assert leader.target == LEADER
    assert list(leader.actions) == ["cancel"]

    dispatch = gateway.dispatch_for(ticket)
    assert dispatch.target == MAIN_POOL
    assert list(dispatch.actions) == ["claim"]
    assert dispatch.actions["claim"].emoji == basic_manager.dispatch.take_emoji
    assert "need help" in dispatch.notice.description
    assert dispatch.notice.color == config.COLORS["TICKET_OPEN"]


async def test_claim_takes_the_ticket(basic_manager, gateway):
    ticket = await basic_manager.create_ticket([LEADER], "need help")

    assert await gateway.act(gateway.dispatch_for(ticket), "claim", HELPER) is True

    assert ticket.status is TicketStatus.TAKEN
    assert ticket.helpers == [HELPER]
    assert ticket.room is None
    dispatch = gateway.dispatch_for(ticket)
    assert "This ticket is being handled!" in dispatch.field_names
    assert dispatch.notice.color == config.COLORS["TICKET_TAKEN"]
    leader = gateway.leader_notice_for(ticket)
    assert leader.closed
    assert leader.notice.fields[-1].value == "Expect a DM from a helper soon!"


async def test_second_claim_is_a_no_op(basic_manager, gateway):
    ticket = await basic_manager.create_ticket([LEADER], "need help")
    claim = gateway.dispatch_for(ticket).actions["claim"].callback

    assert await claim(HELPER) is True
    assert await claim(OTHER_HELPER) is False
    assert ticket.helpers == [HELPER]


async def test_claim_without_helper_fails_loudly(basic_manager):
    ticket = await basic_manager.create_ticket([LEADER], "need help")

    with pytest.raises(ValueError):
        await ticket.claim(None)
    assert ticket.status is TicketStatus.OPEN


async def test_leader_can_cancel_open_ticket(basic_manager, gateway):
    ticket = await basic_manager.create_ticket([LEADER, TEAMMATE], "never mind")
    leader = gateway.leader_notice_for(ticket)

    assert await gateway.act(leader, "cancel", TEAMMATE) is False
    assert ticket.status is TicketStatus.OPEN

    assert await gateway.act(leader, "cancel", LEADER) is True
    assert ticket.status is TicketStatus.CLOSED
    assert ticket.close_reason == LEADER_CANCELED
    assert leader.closed
    assert leader.notice.fields[-1].name == "Ticket Closed!"
    assert gateway.dispatch_for(ticket).closed


async def test_cancel_while_dispatching_still_tells_the_pool(timers, dispatch):
    class CancellingGateway(FakeGateway):
        async def post_to_pool(self, pool_id, notice, actions=None):
            # the leader cancels before the dispatch message is out
            await self.act(self.find("individual")[0], "cancel", LEADER)
            return await super().post_to_pool(pool_id, notice, actions)

    gateway = CancellingGateway()
    manager = TicketManager(gateway, dispatch, BasicMode(), timers=timers)
    ticket = await manager.create_ticket([LEADER], "never mind")

    assert ticket.status is TicketStatus.CLOSED
    dispatch_notice = gateway.dispatch_for(ticket)
    assert dispatch_notice.closed
    assert "Ticket Closed" in dispatch_notice.field_names
    assert dispatch_notice.notice.fields[-1].value == f"This ticket has been closed due to {LEADER_CANCELED}"
    assert dispatch_notice.notice.color == config.COLORS["TICKET_CLOSED"]


async def test_claim_and_cancel_race_has_one_winner(basic_manager, gateway):
    ticket = await basic_manager.create_ticket([LEADER], "need help")
    claim = gateway.dispatch_for(ticket).actions["claim"].callback
    cancel = gateway.leader_notice_for(ticket).actions["cancel"].callback

    results = await asyncio.gather(claim(HELPER), cancel(LEADER))

    assert results.count(True) == 1
    assert ticket.status is TicketStatus.TAKEN
    # the losing transition stays a no-op when applied again
    assert await cancel(LEADER) is False
    assert ticket.status is TicketStatus.TAKEN


async def test_cancel_first_wins_over_claim(basic_manager, gateway):
    ticket = await basic_manager.create_ticket([LEADER], "need help")
    claim = gateway.dispatch_for(ticket).actions["claim"].callback
    cancel = gateway.leader_notice_for(ticket).actions["cancel"].callback

    assert await cancel(LEADER) is True
    assert await claim(HELPER) is False
    assert ticket.status is TicketStatus.CLOSED
    assert ticket.helpers == []


async def test_status_never_goes_back(advanced_manager, gateway):
    ticket = await advanced_manager.create_ticket([LEADER], "need help")
    seen = [ticket.status]
    await gateway.act(gateway.dispatch_for(ticket), "claim", HELPER)
    seen.append(ticket.status)
    await advanced_manager.remove_ticket(ticket.id)
    seen.append(ticket.status)
    await ticket.claim(OTHER_HELPER)
    await ticket.join(OTHER_HELPER)
    await ticket.leave(LEADER)
    seen.append(ticket.status)

    assert seen == [TicketStatus.OPEN, TicketStatus.TAKEN, TicketStatus.CLOSED, TicketStatus.CLOSED]


async def test_advanced_claim_opens_a_room(advanced_manager, gateway, provisioner):
    ticket = await advanced_manager.create_ticket([LEADER, TEAMMATE], "need help")
    await gateway.act(gateway.dispatch_for(ticket), "claim", HELPER)

    room = provisioner.rooms[ticket.id]
    assert ticket.room is room
    assert room.ref["members"] == {LEADER, TEAMMATE, HELPER}
    assert set(gateway.dispatch_for(ticket).actions) == {"claim", "join"}
    room_notice = gateway.room_notice_for(ticket)
    assert list(room_notice.actions) == ["leave"]
    assert "need help" in room_notice.notice.description


async def test_helpers_can_join_taken_tickets(advanced_manager, gateway, provisioner):
    ticket = await advanced_manager.create_ticket([LEADER], "need help")
    dispatch = gateway.dispatch_for(ticket)
    await gateway.act(dispatch, "claim", HELPER)

    assert await gateway.act(dispatch, "join", OTHER_HELPER) is True
    assert await gateway.act(dispatch, "join", OTHER_HELPER) is False

    assert ticket.helpers == [HELPER, OTHER_HELPER]
    assert OTHER_HELPER in provisioner.rooms[ticket.id].ref["members"]
    assert "More hands on deck!" in dispatch.field_names
    assert "More hands on deck!" in gateway.room_notice_for(ticket).field_names


async def test_join_only_while_taken(advanced_manager):
    ticket = await advanced_manager.create_ticket([LEADER], "need help")
    assert await ticket.join(HELPER) is False

    await advanced_manager.remove_ticket(ticket.id)
    assert await ticket.join(HELPER) is False
    assert ticket.helpers == []


async def test_join_and_leave_need_advanced_mode(basic_manager, gateway):
    ticket = await basic_manager.create_ticket([LEADER], "need help")
    await gateway.act(gateway.dispatch_for(ticket), "claim", HELPER)

    with pytest.raises(InvalidModeError):
        await ticket.join(OTHER_HELPER)
    with pytest.raises(InvalidModeError):
        await ticket.leave(HELPER)


async def test_member_leaving_loses_access(advanced_manager, gateway, provisioner):
    ticket = await advanced_manager.create_ticket([LEADER, TEAMMATE], "need help")
    await gateway.act(gateway.dispatch_for(ticket), "claim", HELPER)

    assert await gateway.act(gateway.room_notice_for(ticket), "leave", TEAMMATE) is True

    assert ticket.group == [LEADER]
    assert TEAMMATE not in provisioner.rooms[ticket.id].ref["members"]
    assert ticket.status is TicketStatus.TAKEN
    assert gateway.warnings_for(ticket) == []


async def test_strangers_cannot_leave(advanced_manager, gateway):
    ticket = await advanced_manager.create_ticket([LEADER], "need help")
    await gateway.act(gateway.dispatch_for(ticket), "claim", HELPER)

    assert await ticket.leave(999) is False
    assert ticket.group == [LEADER]
    assert ticket.helpers == [HELPER]


async def test_last_group_member_leaving_closes_ticket(advanced_manager, gateway, provisioner):
    ticket = await advanced_manager.create_ticket([LEADER, TEAMMATE], "need help")
    await gateway.act(gateway.dispatch_for(ticket), "claim", HELPER)
    room_notice = gateway.room_notice_for(ticket)

    await gateway.act(room_notice, "leave", LEADER)
    assert ticket.leader == TEAMMATE
    await gateway.act(room_notice, "leave", TEAMMATE)

    assert ticket.status is TicketStatus.CLOSED
    assert ticket.close_reason == NO_PARTICIPANTS
    assert provisioner.rooms[ticket.id].ref["destroyed"]
    assert room_notice.closed


async def test_close_tears_everything_down(advanced_manager, gateway, provisioner, timers):
    ticket = await advanced_manager.create_ticket([LEADER], "need help")
    await gateway.act(gateway.dispatch_for(ticket), "claim", HELPER)

    await advanced_manager.remove_ticket(ticket.id)

    dispatch = gateway.dispatch_for(ticket)
    assert dispatch.closed
    assert dispatch.notice.color == config.COLORS["TICKET_CLOSED"]
    assert dispatch.notice.fields[-1].value == "This ticket has been closed due to manager closed"
    assert gateway.room_notice_for(ticket).closed
    assert provisioner.rooms[ticket.id].ref["destroyed"]
    assert timers.pending() == []
    assert advanced_manager.get_ticket(ticket.id) is None


async def test_room_failure_does_not_block_the_lifecycle(advanced_manager, gateway, provisioner):
    provisioner.fail_create = True
    ticket = await advanced_manager.create_ticket([LEADER], "need help")

    assert await gateway.act(gateway.dispatch_for(ticket), "claim", HELPER) is True
    assert ticket.status is TicketStatus.TAKEN
    assert ticket.room is None

    assert await advanced_manager.remove_ticket(ticket.id) is True
    assert ticket.status is TicketStatus.CLOSED


async def test_room_created_after_close_is_destroyed(gateway, timers, dispatch, collector):
    class SlowProvisioner(FakeProvisioner):
        async def create(self, ticket_id, participants):
            room = await super().create(ticket_id, participants)
            # the ticket gets closed while the channels are being made
            await manager.remove_ticket(ticket_id)
            return room

    provisioner = SlowProvisioner(timers)
    manager = TicketManager(gateway, dispatch, AdvancedMode(provisioner, collector), timers=timers)
    ticket = await manager.create_ticket([LEADER], "need help")

    await gateway.act(gateway.dispatch_for(ticket), "claim", HELPER)

    assert ticket.status is TicketStatus.CLOSED
    assert ticket.room is None
    assert provisioner.rooms[ticket.id].ref["destroyed"]
    assert gateway.find("room") == []
    assert timers.pending() == []
