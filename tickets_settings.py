"""Settings for the ticket system: dispatch, reminders, garbage collection and mode"""
from dataclasses import dataclass, field
from typing import ClassVar, Optional

import config
from tickets_collaborators import RoomProvisioner


@dataclass(frozen=True)
class ReminderConfig:
    enabled: bool = True
    interval_minutes: float = 5

    def __post_init__(self):
        if self.interval_minutes <= 0:
            raise ValueError("Reminder interval must be more than 0 minutes")


@dataclass(frozen=True)
class GarbageCollectorConfig:
    enabled: bool = True
    # minutes a ticket room can be inactive before the bot asks to delete it
    inactivity_minutes: float = 20
    # minutes the bot waits for someone to keep the ticket before deleting it
    buffer_minutes: float = 5

    def __post_init__(self):
        if self.inactivity_minutes <= 0:
            raise ValueError("Inactivity period must be more than 0 minutes")
        if self.buffer_minutes < 0 or self.buffer_minutes >= self.inactivity_minutes:
            raise ValueError("Buffer time must be between 0 and the inactivity period")


@dataclass(frozen=True)
class DispatchConfig:
    main_helper_pool: int
    take_emoji: str = "🤝"
    join_emoji: str = "🏃"
    reminder: ReminderConfig = field(default_factory=ReminderConfig)


@dataclass(frozen=True)
class BasicMode:
    """Tickets are only tracked, helpers contact the requester directly"""
    is_advanced: ClassVar[bool] = False


@dataclass(frozen=True)
class AdvancedMode:
    """Every taken ticket gets a room, several helpers and inactivity detection"""
    provisioner: RoomProvisioner
    garbage_collector: GarbageCollectorConfig = field(default_factory=GarbageCollectorConfig)
    is_advanced: ClassVar[bool] = True


@dataclass(frozen=True)
class TicketSettings:
    dispatch: DispatchConfig
    mode_name: str
    garbage_collector: GarbageCollectorConfig

    def build_mode(self, provisioner: Optional[RoomProvisioner] = None):
        if self.mode_name == "basic":
            return BasicMode()
        if provisioner is None:
            raise ValueError("Advanced mode needs a room provisioner")
        return AdvancedMode(provisioner, self.garbage_collector)


def settings_from_config(overrides: Optional[dict] = None) -> TicketSettings:
    """Merge stored overrides (from /tickets_setup) over the values in config.py"""
    overrides = overrides or {}
    reminder = overrides.get("reminder") or {}
    collector = overrides.get("garbage_collector") or {}

    mode_name = str(overrides.get("mode", config.TICKET_MODE)).lower()
    if mode_name not in ("basic", "advanced"):
        raise ValueError(f"Unknown ticket mode: {mode_name}")

    dispatch = DispatchConfig(
        main_helper_pool=int(overrides.get("main_helper_pool", config.ROLE_IDS["MAIN_HELPER"])),
        take_emoji=overrides.get("take_emoji", config.TAKE_EMOJI),
        join_emoji=overrides.get("join_emoji", config.JOIN_EMOJI),
        reminder=ReminderConfig(
            enabled=bool(reminder.get("enabled", config.REMINDER["ENABLED"])),
            interval_minutes=float(reminder.get("interval_minutes", config.REMINDER["INTERVAL_MINUTES"])),
        ),
    )
    garbage_collector = GarbageCollectorConfig(
        enabled=bool(collector.get("enabled", config.GARBAGE_COLLECTOR["ENABLED"])),
        inactivity_minutes=float(collector.get("inactivity_minutes", config.GARBAGE_COLLECTOR["INACTIVITY_MINUTES"])),
        buffer_minutes=float(collector.get("buffer_minutes", config.GARBAGE_COLLECTOR["BUFFER_MINUTES"])),
    )
    return TicketSettings(dispatch=dispatch, mode_name=mode_name, garbage_collector=garbage_collector)
