"""Receipt blueprint."""

from flask import Blueprint

bp = Blueprint("receipt", __name__)

from . import routes  # noqa: E402, F401
from .services import ReceiptService, ReceiptWatcher  # noqa: E402

__all__ = ["ReceiptService", "ReceiptWatcher", "routes"]
