"""Service layer for payment receipts."""

from __future__ import annotations

import datetime
import threading
from typing import TYPE_CHECKING, Any, Callable, TypedDict

from squadpay.core.constants import (
    DEFAULT_TOURNAMENT_NAME,
    RECEIPT_DATE_FORMAT,
    RECEIPT_ID_LENGTH,
    RECEIPT_PREFIX,
)
from squadpay.errors import NotFoundError
from squadpay.payments import STATUS_LABELS, compute_status, remaining
from squadpay.roster.models import Participant, Tournament
from squadpay.roster.services import RosterService
from squadpay.roster.utils import display_name

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

    from squadpay.live import Subscription
    from squadpay.roster.live import RosterFeed


class ReceiptSummary(TypedDict):
    """Everything a rendered receipt shows."""

    receipt_id: str
    tournament_id: str
    tournament_name: str
    participant_id: str
    name: str
    team_name: str | None
    display_name: str
    contact: str | None
    amount_due: float
    amount_paid: float
    remaining: float
    status: str
    status_label: str
    payment_ref: str | None
    issued_at: datetime.datetime
    issued_on: str


def receipt_id_for(participant_id: str) -> str:
    """``RCT-`` plus the last six characters of the id, upper-cased."""
    return f"{RECEIPT_PREFIX}{participant_id[-RECEIPT_ID_LENGTH:].upper()}"


def issued_at_for(created_at: Any, now: datetime.datetime | None = None) -> datetime.datetime:
    """Resolve a Firestore timestamp to a datetime, falling back to now."""
    if isinstance(created_at, datetime.datetime):
        return created_at
    if hasattr(created_at, "to_datetime"):
        return created_at.to_datetime()
    return now or datetime.datetime.now(datetime.timezone.utc)


def build_summary(
    tournament_id: str,
    participant: Participant,
    tournament: Tournament | None = None,
    now: datetime.datetime | None = None,
) -> ReceiptSummary:
    """Assemble the static receipt view for one participant."""
    amount_due = participant.get("amountDue") or 0
    amount_paid = participant.get("amountPaid") or 0
    status = compute_status(amount_due, amount_paid)
    issued_at = issued_at_for(participant.get("createdAt"), now=now)
    tournament_name = (
        tournament.get("name") if tournament else None
    ) or DEFAULT_TOURNAMENT_NAME

    return {
        "receipt_id": receipt_id_for(participant["id"]),
        "tournament_id": tournament_id,
        "tournament_name": tournament_name,
        "participant_id": participant["id"],
        "name": participant.get("name") or "",
        "team_name": participant.get("teamName"),
        "display_name": display_name(participant),
        "contact": participant.get("contact"),
        "amount_due": amount_due,
        "amount_paid": amount_paid,
        "remaining": remaining(amount_due, amount_paid),
        "status": status,
        "status_label": STATUS_LABELS[status],
        "payment_ref": participant.get("paymentRef"),
        "issued_at": issued_at,
        "issued_on": issued_at.strftime(RECEIPT_DATE_FORMAT),
    }


class ReceiptService:
    """Loads the data behind a receipt."""

    @staticmethod
    def get_summary(
        tournament_id: str, participant_id: str, db: Client | None = None
    ) -> ReceiptSummary:
        """Load a receipt summary, raising NotFoundError for a missing participant."""
        participant = RosterService.get_participant(tournament_id, participant_id, db=db)
        if participant is None:
            raise NotFoundError("Receipt not found.")
        tournament = RosterService.get_tournament(tournament_id, db=db)
        return build_summary(tournament_id, participant, tournament)

    @staticmethod
    def share_text(summary: ReceiptSummary, brand: str = "SquadPay") -> str:
        """Caption sent along with a shared receipt image."""
        return f"{brand} receipt for {summary['display_name']} - {summary['tournament_name']}"


class ReceiptWatcher:
    """Keeps a receipt summary current from live participant and tournament data.

    ``summary`` is None until the participant arrives; ``not_found`` turns
    True if the participant document is missing and stays that way.
    """

    def __init__(
        self,
        feed: RosterFeed,
        tournament_id: str,
        participant_id: str,
        on_change: Callable[[ReceiptWatcher], None] | None = None,
    ) -> None:
        self.tournament_id = tournament_id
        self.participant_id = participant_id
        self._feed = feed
        self._on_change = on_change
        self._lock = threading.Lock()
        self._participant: Participant | None = None
        self._tournament: Tournament | None = None
        self._subs: list[Subscription] = []

        self.loading = True
        self.not_found = False
        self.error: str | None = None

    def start(self) -> None:
        self._subs = [
            self._feed.watch_participant(
                self.tournament_id,
                self.participant_id,
                self._on_participant,
                self._on_error,
            ),
            self._feed.watch_tournament(
                self.tournament_id, self._on_tournament, self._on_error
            ),
        ]

    def stop(self) -> None:
        subs, self._subs = self._subs, []
        for sub in subs:
            sub.cancel()

    def poll(self) -> None:
        """Surface a listener the server has shut down as a load error."""
        for sub in list(self._subs):
            sub.poll()

    @property
    def summary(self) -> ReceiptSummary | None:
        with self._lock:
            if self._participant is None:
                return None
            return build_summary(self.tournament_id, self._participant, self._tournament)

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change(self)

    def _on_participant(self, participant: Participant | None) -> None:
        with self._lock:
            if self.not_found:
                return
            self.loading = False
            if participant is None:
                self._participant = None
                self.not_found = True
            else:
                self._participant = participant
        self._changed()

    def _on_tournament(self, tournament: Tournament | None) -> None:
        if tournament is None:
            return
        with self._lock:
            self._tournament = tournament
        self._changed()

    def _on_error(self, error: Exception) -> None:
        with self._lock:
            self.loading = False
            self.error = "Failed to load receipt."
        self._changed()
