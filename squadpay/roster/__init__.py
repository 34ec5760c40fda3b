"""Roster blueprint: tournaments, participants and payments."""

from flask import Blueprint

bp = Blueprint("roster", __name__)

from . import routes  # noqa: E402, F401
from .live import RosterFeed, RosterViewModel  # noqa: E402
from .models import Participant, Tournament  # noqa: E402
from .services import RosterService  # noqa: E402

__all__ = [
    "Participant",
    "RosterFeed",
    "RosterService",
    "RosterViewModel",
    "Tournament",
    "routes",
]
