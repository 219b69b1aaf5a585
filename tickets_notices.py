"""Notice builders for every message a ticket posts"""
from typing import Iterable

import config
from tickets_collaborators import Notice, NoticeField


def mention(identity) -> str:
    return f"<@{identity}>"


def mention_pool(pool_id) -> str:
    return f"<@&{pool_id}>"


def mention_all(identities: Iterable) -> str:
    return " ".join(mention(i) for i in identities)


def dispatch_notice(ticket, type_name: str) -> Notice:
    """Notice sent to the helper pool when a ticket opens"""
    notice = Notice(
        title=f"New Ticket - {ticket.id}",
        description=f"{mention(ticket.leader)} has the question: {ticket.question}",
        color=config.COLORS["TICKET_OPEN"],
        mention=mention_pool(ticket.requested_capability),
    )
    notice.fields.append(NoticeField("Requested", type_name, inline=True))
    notice.fields.append(NoticeField("Team members", mention_all(ticket.group), inline=True))
    return notice


def leader_notice(ticket, system_name: str) -> Notice:
    return Notice(
        title="Ticket was Successful!",
        description=f"Your ticket to the {system_name} group was successful! It is ticket number {ticket.id}",
        color=config.COLORS["PRIMARY"],
    )


def taken_field(helper) -> NoticeField:
    return NoticeField("This ticket is being handled!", f"{mention(helper)} is helping this team!")


def leader_taken_field(advanced: bool) -> NoticeField:
    if advanced:
        return NoticeField(
            "Your ticket has been taken by a helper!",
            "Please go to the corresponding channel and read the instructions there.",
        )
    return NoticeField("Your ticket has been taken by a helper!", "Expect a DM from a helper soon!")


def room_notice(ticket, helper) -> Notice:
    notice = Notice(
        title="Original Question",
        description=f"{mention(ticket.leader)} has the question: {ticket.question}",
        color=config.COLORS["PRIMARY"],
        mention=f"{mention(helper)} {mention_all(ticket.group)}",
    )
    notice.fields.append(NoticeField("Thank you for helping this team.", f"{mention(helper)} best of luck!"))
    return notice


def joined_field(helper) -> NoticeField:
    return NoticeField("More hands on deck!", f"{mention(helper)} Joined the ticket!")


def reminder_notice(ticket, pool_id) -> Notice:
    return Notice(
        title=f"Ticket number {ticket.id} still needs help!",
        description=f"{mention(ticket.leader)} has the question: {ticket.question}",
        color=config.COLORS["TICKET_REMINDER"],
        mention=mention_pool(pool_id),
    )


def deletion_warning(ticket, reason: str, buffer_minutes: float) -> Notice:
    """Asks the room if the ticket can go, the keep action stops the deletion"""
    if reason == "inactivity":
        intro = "Hello! I detected some inactivity on this channel and wanted to check in."
        mentions = mention_all(list(ticket.group) + list(ticket.helpers))
    else:
        intro = "Hello! Your helper(s) has/have left the ticket."
        mentions = mention_all(ticket.group)
    return Notice(
        title="Is this ticket still needed?",
        description=(
            f"{intro}\n"
            "If the ticket has been solved, please use the leave option on the ticket message. "
            "If you need to keep the channel, please use the option below, "
            f"**otherwise this ticket will be deleted in {buffer_minutes:g} minutes**."
        ),
        color=config.COLORS["WARNING"],
        mention=mentions,
    )


def more_time_notice() -> Notice:
    return Notice(
        title="More time granted",
        description="You have indicated that you need more time. I'll check in with you later!",
        color=config.COLORS["SUCCESS"],
    )


def closed_field(reason: str) -> NoticeField:
    return NoticeField("Ticket Closed", f"This ticket has been closed due to {reason}")


def leader_closed_field(reason: str) -> NoticeField:
    return NoticeField(
        "Ticket Closed!",
        f"Your ticket was closed due to {reason}. If you need more help, please request another ticket!",
    )
