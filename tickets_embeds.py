"""Embed creation utilities for tickets"""
from typing import Optional

import discord
import config
from tickets_collaborators import Actions, Notice, NoticeField

# Discord rejects embeds over these limits
MAX_FIELDS = 25
MAX_FIELD_VALUE = 1024


def add_field(notice: Notice, new: NoticeField):
    """Add a field to a notice, folding repeats (every helper that joins) into the existing field"""
    for existing in notice.fields:
        if existing.name == new.name:
            lines = f"{existing.value}\n{new.value}".split("\n")
            # oldest lines go first once the value is full
            while len(lines) > 1 and len("\n".join(lines)) > MAX_FIELD_VALUE:
                lines.pop(0)
            existing.value = "\n".join(lines)[-MAX_FIELD_VALUE:]
            return
    notice.fields.append(new)


def notice_embed(notice: Notice, actions: Optional[Actions] = None) -> discord.Embed:
    """Create the embed shown for a ticket notice, with one field per live action"""
    embed = discord.Embed(
        title=notice.title,
        description=notice.description or None,
        color=notice.color if notice.color is not None else config.COLORS["PRIMARY"],
    )
    actions = actions or {}
    fields = notice.fields
    room = MAX_FIELDS - len(actions)
    if len(fields) > room:
        # keep the newest fields, they carry the ticket's current status
        fields = fields[len(fields) - room:]
    for field in fields:
        embed.add_field(name=field.name, value=field.value, inline=field.inline)

    for action in actions.values():
        name = f"{action.emoji} {action.label}" if action.emoji else action.label
        embed.add_field(name=name, value=action.description or "\u200b", inline=False)
    return embed
