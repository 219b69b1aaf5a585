"""Discord implementation of the notification gateway and room provisioner"""

import time
import traceback
from dataclasses import dataclass, field
from typing import Dict, Optional

import discord

from tickets_collaborators import (
    Action, Actions, ActivityFeed, NotificationGateway, Notice, Room, RoomProvisioner,
)
from tickets_embeds import add_field, notice_embed
from tickets_errors import CollaboratorFailure


async def _discord_call(what: str, coro):
    """Await a Discord API call, turning Discord errors into CollaboratorFailure"""
    try:
        return await coro
    except discord.HTTPException as e:
        raise CollaboratorFailure(f"{what}: {e}") from e


class ActionButton(discord.ui.Button):
    """Button that runs one ticket action for whoever clicks it"""
    def __init__(self, name: str, action: Action):
        super().__init__(label=action.label, emoji=action.emoji or None, style=discord.ButtonStyle.secondary)
        self.name = name
        self.action = action

    async def callback(self, interaction: discord.Interaction):
        await interaction.response.defer(ephemeral=True, thinking=True)
        try:
            result = await self.action.callback(interaction.user.id)
            if result is False:
                await interaction.followup.send("⚠️ That is not possible for this ticket right now.", ephemeral=True)
            else:
                await interaction.followup.send("✅ Done!", ephemeral=True)
        except Exception as e:
            print(f"❌ Ticket action '{self.name}' failed: {e}")
            traceback.print_exc()
            try:
                await interaction.followup.send(f"❌ Error: {str(e)}", ephemeral=True)
            except discord.HTTPException:
                pass


class ActionView(discord.ui.View):
    """Buttons for every live action on a notice"""
    def __init__(self, actions: Actions):
        super().__init__(timeout=None)
        for name, action in actions.items():
            self.add_item(ActionButton(name, action))


@dataclass
class NoticeHandle:
    message: discord.Message
    notice: Notice
    actions: Actions = field(default_factory=dict)
    view: Optional[ActionView] = None
    closed: bool = False


class DiscordGateway(NotificationGateway):
    """Helper pools are roles; pool notices go to the dispatch channel, individual ones by DM"""

    def __init__(self, bot, guild_id: int, dispatch_channel_id: int):
        self.bot = bot
        self.guild_id = guild_id
        self.dispatch_channel_id = dispatch_channel_id

    @property
    def guild(self) -> discord.Guild:
        guild = self.bot.get_guild(self.guild_id)
        if guild is None:
            raise CollaboratorFailure(f"Guild {self.guild_id} not found")
        return guild

    async def count_helpers(self, pool_id) -> int:
        role = self.guild.get_role(int(pool_id))
        if role is None:
            return 0
        return sum(1 for member in role.members if not member.bot)

    async def _send(self, channel, notice: Notice, actions: Optional[Actions]) -> NoticeHandle:
        actions = dict(actions or {})
        view = ActionView(actions) if actions else None
        kwargs = {"content": notice.mention, "embed": notice_embed(notice, actions)}
        if view is not None:
            kwargs["view"] = view
        message = await _discord_call("send notice", channel.send(**kwargs))
        return NoticeHandle(message=message, notice=notice, actions=actions, view=view)

    async def post_to_pool(self, pool_id, notice: Notice, actions: Optional[Actions] = None):
        channel = self.bot.get_channel(self.dispatch_channel_id)
        if channel is None:
            raise CollaboratorFailure(f"Dispatch channel {self.dispatch_channel_id} not found")
        return await self._send(channel, notice, actions)

    async def notify_individual(self, identity, notice: Notice, actions: Optional[Actions] = None):
        user = self.bot.get_user(int(identity))
        if user is None:
            user = await _discord_call("fetch user", self.bot.fetch_user(int(identity)))
        return await self._send(user, notice, actions)

    async def post_to_room(self, room: Room, notice: Notice, actions: Optional[Actions] = None):
        return await self._send(room.ref.text, notice, actions)

    async def _render(self, handle: NoticeHandle):
        if handle.closed:
            await _discord_call("edit notice", handle.message.edit(embed=notice_embed(handle.notice), view=None))
            return
        handle.view = ActionView(handle.actions) if handle.actions else None
        await _discord_call(
            "edit notice",
            handle.message.edit(embed=notice_embed(handle.notice, handle.actions), view=handle.view),
        )

    async def add_actions(self, handle: NoticeHandle, actions: Actions):
        if handle.closed:
            return
        if handle.view is not None:
            handle.view.stop()
        handle.actions.update(actions)
        await self._render(handle)

    async def update_notice(self, handle: NoticeHandle, fields=(), color=None):
        for new in fields:
            add_field(handle.notice, new)
        if color is not None:
            handle.notice.color = color
        await self._render(handle)

    async def close_notice(self, handle: NoticeHandle):
        if handle.closed:
            return
        handle.closed = True
        if handle.view is not None:
            handle.view.stop()
        await self._render(handle)


@dataclass
class DiscordRoom:
    category: discord.CategoryChannel
    text: discord.TextChannel
    voice: discord.VoiceChannel

    @property
    def channels(self):
        return [self.text, self.voice, self.category]


class DiscordRoomProvisioner(RoomProvisioner):
    """Each room is a private category with a text and a voice channel"""

    def __init__(self, bot, guild_id: int):
        self.bot = bot
        self.guild_id = guild_id
        # text channel id -> monotonic time of the last message from a user
        self.last_activity: Dict[int, float] = {}

    @property
    def guild(self) -> discord.Guild:
        guild = self.bot.get_guild(self.guild_id)
        if guild is None:
            raise CollaboratorFailure(f"Guild {self.guild_id} not found")
        return guild

    async def _member(self, identity) -> discord.Member:
        member = self.guild.get_member(int(identity))
        if member is None:
            member = await _discord_call("fetch member", self.guild.fetch_member(int(identity)))
        return member

    async def create(self, ticket_id: int, participants) -> Room:
        guild = self.guild
        overwrites = {
            guild.default_role: discord.PermissionOverwrite(view_channel=False),
            guild.me: discord.PermissionOverwrite(view_channel=True, send_messages=True),
        }
        for identity in participants:
            member = await self._member(identity)
            overwrites[member] = discord.PermissionOverwrite(view_channel=True, send_messages=True)

        category = await _discord_call(
            "create category",
            guild.create_category(f"Ticket-{ticket_id}", overwrites=overwrites, reason=f"Ticket {ticket_id} was taken"),
        )
        made = [category]
        try:
            text = await _discord_call(
                "create text channel", category.create_text_channel(f"ticket-{ticket_id}-banter")
            )
            made.insert(0, text)
            voice = await _discord_call(
                "create voice channel", category.create_voice_channel(f"ticket-{ticket_id}-room")
            )
        except CollaboratorFailure:
            # half made rooms belong to no ticket, nothing else would delete them
            await self._delete_channels(made, f"Ticket {ticket_id} room could not be created")
            raise

        created_at = time.monotonic()
        self.last_activity[text.id] = created_at
        print(f"✅ Created room for ticket {ticket_id}")
        return Room(ticket_id=ticket_id, created_at=created_at, ref=DiscordRoom(category, text, voice))

    async def grant_access(self, room: Room, identity):
        member = await self._member(identity)
        for channel in room.ref.channels:
            await _discord_call(
                "give access",
                channel.set_permissions(member, view_channel=True, send_messages=True),
            )

    async def revoke_access(self, room: Room, identity):
        member = await self._member(identity)
        for channel in room.ref.channels:
            await _discord_call("remove access", channel.set_permissions(member, overwrite=None))

    async def destroy(self, room: Room):
        self.last_activity.pop(room.ref.text.id, None)
        errors = await self._delete_channels(room.ref.channels, f"Ticket {room.ticket_id} closed")
        if errors:
            raise CollaboratorFailure("delete channels: " + "; ".join(errors))

    async def _delete_channels(self, channels, reason: str):
        """Try to delete every channel, returning the errors instead of stopping at the first one"""
        errors = []
        for channel in channels:
            try:
                await channel.delete(reason=reason)
            except discord.NotFound:
                pass  # already gone
            except discord.HTTPException as e:
                print(f"⚠️ Could not delete channel {channel.id}: {e}")
                errors.append(f"{channel.id}: {e}")
        return errors

    async def observe_activity(self, room: Room) -> ActivityFeed:
        text = room.ref.text
        if text.id not in self.last_activity:
            raise CollaboratorFailure(f"Room for ticket {room.ticket_id} is gone")
        occupancy = sum(1 for member in room.ref.voice.members if not member.bot)
        return ActivityFeed(last_activity=self.last_activity[text.id], occupancy=occupancy)

    async def record_message(self, message: discord.Message):
        """on_message listener feeding the inactivity watch"""
        if message.author.bot:
            return
        if message.channel.id in self.last_activity:
            self.last_activity[message.channel.id] = time.monotonic()
