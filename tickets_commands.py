"""Slash commands, panel and modal for the ticket system"""

import discord
from discord import app_commands
import traceback
from typing import Optional
import config
from ticket_manager import TicketManager
from tickets_errors import InvalidModeError, NoHelperAvailable
from tickets_settings import settings_from_config
from tickets_utils import is_admin_or_staff, parse_member_ids, parse_ticket_ids


class TicketModal(discord.ui.Modal):
    """Modal asking for the question and the team members"""
    def __init__(self, manager: TicketManager, capability):
        super().__init__(title=manager.type_name(capability)[:45])
        self.manager = manager
        self.capability = capability

        self.question = discord.ui.TextInput(
            label="What do you need help with?",
            placeholder="A one liner of your problem",
            required=True,
            max_length=1000,
            style=discord.TextStyle.paragraph
        )
        self.add_item(self.question)

        self.team = discord.ui.TextInput(
            label="Team members",
            placeholder="Optional: mention or paste the IDs of your team members",
            required=False,
            max_length=500,
            style=discord.TextStyle.short
        )
        self.add_item(self.team)

    async def on_submit(self, interaction: discord.Interaction):
        """Create the ticket when the modal is submitted"""
        await interaction.response.defer(ephemeral=True)
        group = [interaction.user.id] + parse_member_ids(self.team.value)
        try:
            ticket = await self.manager.create_ticket(group, self.question.value, self.capability)
        except NoHelperAvailable as e:
            await interaction.followup.send(f"❌ {e}", ephemeral=True)
            return
        except Exception as e:
            print(f"❌ Ticket creation error: {e}")
            traceback.print_exc()
            await interaction.followup.send(f"❌ Error: {str(e)}", ephemeral=True)
            return
        await interaction.followup.send(
            f"✅ Your ticket number **{ticket.id}** was created! Check your DMs to follow it.",
            ephemeral=True
        )


class TicketButton(discord.ui.Button):
    """Button for each ticket type"""
    def __init__(self, manager: TicketManager, capability, row: int):
        ticket_type = manager.ticket_types[capability]
        super().__init__(
            label=ticket_type.name[:80],
            style=discord.ButtonStyle.secondary,
            custom_id=f"open_ticket::{capability}",
            emoji=ticket_type.emoji,
            row=row
        )
        self.manager = manager
        self.capability = capability

    async def callback(self, interaction: discord.Interaction):
        await interaction.response.send_modal(TicketModal(self.manager, self.capability))


class TicketView(discord.ui.View):
    """Persistent view for ticket panel buttons"""
    def __init__(self, manager: TicketManager):
        super().__init__(timeout=None)
        for i, capability in enumerate(manager.ticket_types):
            self.add_item(TicketButton(manager, capability, row=i // 4))


async def _deny(interaction: discord.Interaction) -> bool:
    if is_admin_or_staff(interaction):
        return False
    await interaction.response.send_message("❌ You don't have permission to use this command.", ephemeral=True)
    return True


async def setup_tickets(bot, manager: TicketManager):
    """Setup ticket commands"""

    bot.add_view(TicketView(manager))

    @bot.tree.command(name="panel", description="Post the ticket panel (Staff only)")
    async def panel(interaction: discord.Interaction):
        """Post ticket panel"""
        if await _deny(interaction):
            return
        lines = [f"{t.emoji} **{t.name}** {t.description}".rstrip() for t in manager.ticket_types.values()]
        embed = discord.Embed(
            title=f"🎫 {manager.name}",
            description="Need help? Pick the ticket type that fits your question!\n\n" + "\n".join(lines),
            color=config.COLORS["PRIMARY"]
        )
        embed.set_footer(text="Ticket System | Click a button to get started")
        await interaction.response.send_message(embed=embed, view=TicketView(manager))

    @bot.tree.command(name="ticket", description="Ask the helpers for help")
    @app_commands.describe(role="Specialty helper role (leave empty for a general ticket)")
    async def ticket(interaction: discord.Interaction, role: Optional[discord.Role] = None):
        capability = role.id if role else manager.dispatch.main_helper_pool
        await interaction.response.send_modal(TicketModal(manager, capability))

    @bot.tree.command(name="tickets_remove", description="Close a ticket (Staff only)")
    @app_commands.describe(ticket_id="Ticket number")
    async def tickets_remove(interaction: discord.Interaction, ticket_id: int):
        if await _deny(interaction):
            return
        await interaction.response.defer(ephemeral=True)
        if await manager.remove_ticket(ticket_id):
            await interaction.followup.send(f"✅ Ticket {ticket_id} closed.", ephemeral=True)
        else:
            await interaction.followup.send(f"❌ No open ticket with number {ticket_id}.", ephemeral=True)

    @bot.tree.command(name="tickets_remove_all", description="Close every ticket (Staff only)")
    @app_commands.describe(exclude="Ticket numbers to keep, comma separated")
    async def tickets_remove_all(interaction: discord.Interaction, exclude: Optional[str] = None):
        if await _deny(interaction):
            return
        await interaction.response.defer(ephemeral=True)
        removed = await manager.remove_all_tickets(parse_ticket_ids(exclude))
        await interaction.followup.send(f"✅ Closed {len(removed)} ticket(s).", ephemeral=True)

    @bot.tree.command(name="tickets_remove_older", description="Close tickets older than some minutes (Staff only)")
    @app_commands.describe(minutes="Minimum age in minutes")
    async def tickets_remove_older(interaction: discord.Interaction, minutes: app_commands.Range[int, 1]):
        if await _deny(interaction):
            return
        await interaction.response.defer(ephemeral=True)
        try:
            removed = await manager.remove_tickets_older_than(minutes)
        except InvalidModeError as e:
            await interaction.followup.send(f"❌ {e}", ephemeral=True)
            return
        await interaction.followup.send(f"✅ Closed {len(removed)} ticket(s) older than {minutes} minutes.", ephemeral=True)

    @bot.tree.command(name="tickets_exclude", description="Keep a ticket from being deleted for inactivity (Staff only)")
    @app_commands.describe(ticket_id="Ticket number")
    async def tickets_exclude(interaction: discord.Interaction, ticket_id: int):
        if await _deny(interaction):
            return
        if manager.include_exclude(ticket_id, True):
            await interaction.response.send_message(f"✅ Ticket {ticket_id} is excluded from garbage collection.", ephemeral=True)
        else:
            await interaction.response.send_message(f"❌ No open ticket with number {ticket_id}.", ephemeral=True)

    @bot.tree.command(name="tickets_include", description="Let a ticket be deleted for inactivity again (Staff only)")
    @app_commands.describe(ticket_id="Ticket number")
    async def tickets_include(interaction: discord.Interaction, ticket_id: int):
        if await _deny(interaction):
            return
        if manager.include_exclude(ticket_id, False):
            await interaction.response.send_message(f"✅ Ticket {ticket_id} is included in garbage collection.", ephemeral=True)
        else:
            await interaction.response.send_message(f"❌ No open ticket with number {ticket_id}.", ephemeral=True)

    @bot.tree.command(name="tickets_status", description="Show the ticket system status")
    async def tickets_status(interaction: discord.Interaction):
        closed_today = await bot.db.get_tickets_last_24h()
        embed = discord.Embed(title=f"📊 {manager.name}", color=config.COLORS["PRIMARY"])
        embed.add_field(name="Waiting for help", value=str(manager.get_open_count()), inline=True)
        embed.add_field(name="Active", value=str(manager.get_ticket_count()), inline=True)
        embed.add_field(name="Closed (24h)", value=str(closed_today), inline=True)
        embed.add_field(name="Mode", value="Advanced" if manager.mode.is_advanced else "Basic", inline=True)
        await interaction.response.send_message(embed=embed, ephemeral=True)

    @bot.tree.command(name="tickets_setup", description="Configure the ticket system, applied on restart (Admin only)")
    @app_commands.describe(
        mode="basic or advanced",
        reminder_minutes="Minutes between reminders, 0 turns them off",
        inactivity_minutes="Minutes without activity before asking to delete a ticket",
        buffer_minutes="Minutes users get to keep a ticket alive"
    )
    @app_commands.choices(mode=[
        app_commands.Choice(name="Basic", value="basic"),
        app_commands.Choice(name="Advanced", value="advanced"),
    ])
    async def tickets_setup(
        interaction: discord.Interaction,
        mode: Optional[app_commands.Choice[str]] = None,
        reminder_minutes: Optional[int] = None,
        inactivity_minutes: Optional[int] = None,
        buffer_minutes: Optional[int] = None,
    ):
        if not interaction.user.guild_permissions.administrator:
            await interaction.response.send_message("You are not allowed to run this.", ephemeral=True)
            return
        current = await bot.db.load_config("ticket_settings") or {}
        if mode is not None:
            current["mode"] = mode.value
        if reminder_minutes is not None:
            reminder = current.setdefault("reminder", {})
            reminder["enabled"] = reminder_minutes > 0
            if reminder_minutes > 0:
                reminder["interval_minutes"] = reminder_minutes
        collector = current.setdefault("garbage_collector", {})
        if inactivity_minutes is not None:
            collector["enabled"] = inactivity_minutes > 0
            if inactivity_minutes > 0:
                collector["inactivity_minutes"] = inactivity_minutes
        if buffer_minutes is not None:
            collector["buffer_minutes"] = buffer_minutes

        try:
            settings = settings_from_config(current)
        except ValueError as e:
            await interaction.response.send_message(f"❌ {e}", ephemeral=True)
            return
        await bot.db.save_config("ticket_settings", current)

        embed = discord.Embed(title="✅ Ticket settings updated", color=config.COLORS["SUCCESS"])
        embed.add_field(name="Mode", value=settings.mode_name)
        embed.add_field(
            name="Reminders",
            value=f"Enabled: {settings.dispatch.reminder.enabled} / Every {settings.dispatch.reminder.interval_minutes:g} min"
        )
        embed.add_field(
            name="Garbage collector",
            value=(
                f"Enabled: {settings.garbage_collector.enabled} / "
                f"{settings.garbage_collector.inactivity_minutes:g} min inactive, "
                f"{settings.garbage_collector.buffer_minutes:g} min buffer"
            )
        )
        embed.set_footer(text="Restart the bot to apply")
        await interaction.response.send_message(embed=embed, ephemeral=True)
