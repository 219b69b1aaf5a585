# config.py
# Help Desk Ticket Bot Configuration
# Replace all IDs with your actual Discord server IDs

# ============================================================================
# ROLE IDS - Replace with your Discord role IDs
# ============================================================================
ROLE_IDS = {
    "ADMIN": 1345073680610496602,        # Admin role ID
    "STAFF": 1374821509268373686,        # Staff role ID
    "MAIN_HELPER": 1393262175170334750,  # Every helper has this role, general tickets go here
}

# ============================================================================
# CHANNEL IDS - Replace with your Discord channel IDs
# ============================================================================
CHANNEL_IDS = {
    "TICKET_DISPATCH": 1357314571525816442,  # Channel where helpers see incoming tickets
}

# ============================================================================
# TICKET SYSTEM
# ============================================================================
# "advanced" creates a private category per ticket and watches it for inactivity,
# "basic" only tracks the ticket and expects helpers to DM the requester
TICKET_MODE = "advanced"

TAKE_EMOJI = "🤝"  # Helpers use this to take an open ticket
JOIN_EMOJI = "🏃"  # Helpers use this to join a taken ticket

REMINDER = {
    "ENABLED": True,
    "INTERVAL_MINUTES": 5,  # Remind the main helper role while a ticket stays open
}

GARBAGE_COLLECTOR = {
    "ENABLED": True,
    "INACTIVITY_MINUTES": 20,  # Minutes without messages before asking to delete
    "BUFFER_MINUTES": 5,       # Minutes users get to keep the ticket alive
}

# Specialty ticket types, each one dispatched to its own helper role
TICKET_TYPES = [
    {"ROLE_ID": 1405930080256921732, "NAME": "Python", "EMOJI": "🐍"},
    {"ROLE_ID": 1445116463253033053, "NAME": "Web", "EMOJI": "🌐"},
]

# ============================================================================
# COLORS - Embed colors (Discord color codes)
# ============================================================================
COLORS = {
    "PRIMARY": 0x5865F2,          # Discord Blurple
    "SUCCESS": 0x57F287,          # Green
    "WARNING": 0xFEE75C,          # Yellow
    "DANGER": 0xED4245,           # Red
    "TICKET_OPEN": 0xFFF536,      # Waiting for a helper
    "TICKET_REMINDER": 0xFF5736,  # Still waiting after a reminder
    "TICKET_TAKEN": 0x36C3FF,     # Being handled
    "TICKET_CLOSED": 0x43E65E,    # Done
}
