"""Errors raised by the ticket system"""


class TicketError(Exception):
    """Base class for ticket system errors"""


class NoHelperAvailable(TicketError):
    """Raised when a ticket is requested for a pool with no helpers in it"""
    def __init__(self, capability):
        super().__init__(f"There are no helpers available for {capability}. Please request another role or the general role!")
        self.capability = capability


class InvalidModeError(TicketError):
    """Raised when an advanced-only operation is used in basic mode"""


class CollaboratorFailure(TicketError):
    """Raised by a room provisioner or notification gateway that rejected a call"""
