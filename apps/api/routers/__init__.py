"""Routers package."""

from . import (
    health,
    auth,
    dashboard,
    wedding,
    rooms,
    guests,
    payments,
    audit,
)
