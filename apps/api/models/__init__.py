"""Models package."""

from .user import User
from .event_config import EventConfig
from .hotel import Hotel
from .room import Room
from .guest import Guest
from .payment import Payment
from .audit import AuditEntry
