# main.py
# Help Desk Ticket Bot - Main Entry Point

import discord
from discord.ext import commands
import os
from dotenv import load_dotenv
import config
from database import Database, record_closed_ticket
from ticket_manager import TicketManager
from tickets_discord import DiscordGateway, DiscordRoomProvisioner
from tickets_settings import settings_from_config

# Load environment variables
load_dotenv()

# Bot configuration
TOKEN = os.getenv("DISCORD_BOT_TOKEN")
if not TOKEN:
    raise ValueError("❌ DISCORD_BOT_TOKEN not found in environment variables!")
GUILD_ID = int(os.getenv("GUILD_ID", 0))
PORT = int(os.getenv("PORT", 8080))

# Initialize bot with intents
intents = discord.Intents.default()
intents.message_content = True
intents.members = True
intents.guilds = True
intents.voice_states = True

bot = commands.Bot(
    command_prefix="!",  # Prefix for text commands (mainly using slash commands)
    intents=intents,
    help_command=None,
)

# Store database in bot for access in modules
bot.db = Database()
bot.ticket_manager = None


async def build_ticket_manager():
    """Create the ticket manager from config.py plus the overrides saved with /tickets_setup"""
    overrides = await bot.db.load_config("ticket_settings")
    settings = settings_from_config(overrides)

    gateway = DiscordGateway(bot, GUILD_ID, config.CHANNEL_IDS["TICKET_DISPATCH"])
    provisioner = None
    if settings.mode_name == "advanced":
        provisioner = DiscordRoomProvisioner(bot, GUILD_ID)
        bot.add_listener(provisioner.record_message, "on_message")

    async def on_ticket_closed(ticket, reason):
        await record_closed_ticket(bot.db, ticket, reason)

    manager = TicketManager(
        gateway,
        settings.dispatch,
        settings.build_mode(provisioner),
        name="Help Desk",
        on_ticket_closed=on_ticket_closed,
    )
    for ticket_type in config.TICKET_TYPES:
        manager.add_ticket_type(ticket_type["ROLE_ID"], ticket_type["NAME"], ticket_type["EMOJI"])
    return manager


@bot.event
async def on_ready():
    """Called when bot successfully connects to Discord"""
    print(f"✅ Bot logged in as {bot.user.name} (ID: {bot.user.id})")
    if bot.ticket_manager is not None:
        return  # reconnected, everything is already set up

    await bot.db.init()
    print("✅ Database initialized")

    bot.ticket_manager = await build_ticket_manager()
    mode = "advanced" if bot.ticket_manager.mode.is_advanced else "basic"
    print(f"✅ Ticket manager ready ({mode} mode)")

    from tickets_commands import setup_tickets
    await setup_tickets(bot, bot.ticket_manager)
    print("✅ Ticket system loaded")

    # Import webserver for uptime monitoring
    try:
        import webserver
        webserver.start(bot.ticket_manager.get_open_count, PORT)
        print("✅ Webserver started for uptime monitoring")
    except Exception as e:
        print(f"⚠️ Webserver not started: {e}")

    # Sync slash commands
    try:
        synced = await bot.tree.sync()
        print(f"✅ Synced {len(synced)} slash command(s)")
    except Exception as e:
        print(f"⚠️ Failed to sync commands: {e}")

    await bot.change_presence(
        activity=discord.Activity(
            type=discord.ActivityType.watching,
            name="tickets | /ticket"
        )
    )
    print("✅ Bot is ready!")


@bot.event
async def on_error(event, *args, **kwargs):
    """Global error handler"""
    print(f"❌ Error in {event}: {args} {kwargs}")


@bot.event
async def on_command_error(ctx, error):
    """Command error handler"""
    if isinstance(error, commands.CommandNotFound):
        pass  # Ignore unknown commands
    else:
        print(f"❌ Command error: {error}")


if __name__ == "__main__":
    try:
        bot.run(TOKEN)
    except KeyboardInterrupt:
        print("\n👋 Bot shutting down...")
    except Exception as e:
        print(f"❌ Fatal error: {e}")
