"""Utility functions for ticket system"""
import re
from typing import List

import discord
import config

MEMBER_ID_PATTERN = re.compile(r"(?:<@!?)?(\d{15,20})>?")


def parse_member_ids(text: str) -> List[int]:
    """Pull user IDs out of mentions like <@123> or plain IDs, keeping order and dropping duplicates"""
    if not text:
        return []
    ids = [int(match) for match in MEMBER_ID_PATTERN.findall(text)]
    return list(dict.fromkeys(ids))


def parse_ticket_ids(text: str) -> List[int]:
    """Parse a comma separated list of ticket numbers, ignoring anything that is not a number"""
    if not text:
        return []
    return [int(part.strip()) for part in text.split(",") if part.strip().isdigit()]


def is_admin_or_staff(interaction: discord.Interaction) -> bool:
    """Check if user has admin or staff role"""
    member = interaction.user
    return any(
        member.get_role(rid)
        for rid in [config.ROLE_IDS.get("ADMIN"), config.ROLE_IDS.get("STAFF")]
        if rid
    )
