"""Payment status helpers."""

from .status import PAID, PARTIAL, PENDING, STATUS_LABELS, compute_status, remaining

__all__ = [
    "PAID",
    "PARTIAL",
    "PENDING",
    "STATUS_LABELS",
    "compute_status",
    "remaining",
]
