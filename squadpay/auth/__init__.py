"""The auth blueprint."""

from flask import Blueprint

bp = Blueprint("auth", __name__, url_prefix="/auth")

from . import routes  # noqa: E402
from .decorators import login_required  # noqa: E402
from .session import IdentitySession  # noqa: E402

__all__ = ["IdentitySession", "login_required", "routes"]
