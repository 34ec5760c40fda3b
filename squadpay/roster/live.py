"""Live roster view-model driven by Firestore snapshot listeners."""

from __future__ import annotations

import functools
import logging
import threading
from typing import TYPE_CHECKING, Any, Callable

from squadpay.errors import ValidationError
from squadpay.live import Subscription, watch_document, watch_query

from .models import Participant, Reminder, RosterTotals, Tournament
from .services import RosterService
from .utils import (
    compose_reminder,
    compute_totals,
    participant_from_doc,
    tournament_from_doc,
)

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

logger = logging.getLogger(__name__)

# Participant roster states
UNSELECTED = "unselected"
LOADING = "loading"
LOADED = "loaded"
FAILED = "failed"

TOURNAMENTS_FAILED_MESSAGE = "Failed to load tournaments."
PARTICIPANTS_FAILED_MESSAGE = "Failed to load participants."

Listener = Callable[["RosterViewModel"], None]


class RosterFeed:
    """Firestore-backed source of live roster snapshots."""

    def __init__(self, db: Client) -> None:
        self.db = db

    def watch_tournaments(self, on_snapshot, on_error) -> Subscription:
        return watch_query(
            RosterService.tournaments_query(self.db),
            on_snapshot,
            on_error,
            tournament_from_doc,
            name="tournaments",
        )

    def watch_participants(self, tournament_id, on_snapshot, on_error) -> Subscription:
        return watch_query(
            RosterService.participants_query(self.db, tournament_id),
            on_snapshot,
            on_error,
            participant_from_doc,
            name=f"tournaments/{tournament_id}/participants",
        )

    def watch_tournament(self, tournament_id, on_snapshot, on_error) -> Subscription:
        return watch_document(
            RosterService.tournament_ref(self.db, tournament_id),
            on_snapshot,
            on_error,
            tournament_from_doc,
            name=f"tournaments/{tournament_id}",
        )

    def watch_participant(
        self, tournament_id, participant_id, on_snapshot, on_error
    ) -> Subscription:
        return watch_document(
            RosterService.participant_ref(self.db, tournament_id, participant_id),
            on_snapshot,
            on_error,
            participant_from_doc,
            name=f"tournaments/{tournament_id}/participants/{participant_id}",
        )


class RosterViewModel:
    """Tournaments plus the live roster of the selected tournament.

    One tournament-list subscription lives for the whole view-model. The
    participant subscription is replaced on every selection: the old one
    is cancelled before the new one is opened, and every callback carries
    the selection generation it was opened for so late deliveries are
    ignored.

    Writes go straight to the store. Nothing is updated locally; the next
    snapshot reflects the change.
    """

    def __init__(self, feed: Any, db: Client | None = None) -> None:
        self._feed = feed
        self._db = db
        self._lock = threading.RLock()
        self._listeners: list[Listener] = []
        self._generation = 0
        self._tournaments_sub: Subscription | None = None
        self._participants_sub: Subscription | None = None
        self._opened: list[Subscription] = []

        self.tournaments: list[Tournament] = []
        self.tournaments_state = LOADING
        self.selected_tournament_id: str | None = None
        self.participants: list[Participant] = []
        self.state = UNSELECTED
        self.error: str | None = None

    # Subscriptions

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener and return a function removing it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(self)

    def start(self, tournament_id: str | None = None) -> None:
        """Open the tournament-list subscription, optionally preselecting."""
        if self._tournaments_sub is not None:
            return
        if tournament_id:
            self.select(tournament_id)
        self._tournaments_sub = self._feed.watch_tournaments(
            self._on_tournaments, self._on_tournaments_error
        )

    def _on_tournaments(self, tournaments: list[Tournament]) -> None:
        with self._lock:
            self.tournaments = list(tournaments)
            self.tournaments_state = LOADED
            pick_first = self.selected_tournament_id is None and bool(tournaments)
        if pick_first:
            self.select(tournaments[0]["id"])
        else:
            self._notify()

    def _on_tournaments_error(self, error: Exception) -> None:
        logger.error(f"Error loading tournaments: {error}")
        with self._lock:
            self.tournaments_state = FAILED
            self.error = TOURNAMENTS_FAILED_MESSAGE
        self._notify()

    def select(self, tournament_id: str | None) -> None:
        """Point the participant subscription at another tournament."""
        with self._lock:
            previous, self._participants_sub = self._participants_sub, None
            self._generation += 1
            generation = self._generation
            self.selected_tournament_id = tournament_id
            self.participants = []
            if self.error == PARTICIPANTS_FAILED_MESSAGE:
                self.error = None
            self.state = LOADING if tournament_id else UNSELECTED
        if previous is not None:
            previous.cancel()
        self._notify()

        if not tournament_id:
            return

        subscription = self._feed.watch_participants(
            tournament_id,
            functools.partial(self._on_participants, generation),
            functools.partial(self._on_participants_error, generation),
        )
        with self._lock:
            self._opened = [sub for sub in self._opened if sub.active]
            self._opened.append(subscription)
            if generation == self._generation:
                stale, self._participants_sub = self._participants_sub, subscription
            else:
                stale = subscription
        if stale is not None:
            stale.cancel()

    def _on_participants(
        self, generation: int, participants: list[Participant]
    ) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self.participants = list(participants)
            self.state = LOADED
        self._notify()

    def _on_participants_error(self, generation: int, error: Exception) -> None:
        with self._lock:
            if generation != self._generation:
                return
            logger.error(f"Error loading participants: {error}")
            self.state = FAILED
            self.error = PARTICIPANTS_FAILED_MESSAGE
        self._notify()

    def close(self) -> None:
        """Tear down every subscription and drop listeners."""
        with self._lock:
            self._generation += 1
            subs = [self._tournaments_sub, self._participants_sub, *self._opened]
            self._tournaments_sub = None
            self._participants_sub = None
            self._opened = []
            self._listeners.clear()
        for sub in subs:
            if sub is not None:
                sub.cancel()

    def poll(self) -> bool:
        """Check the listeners for a server-side shutdown; False once any has failed."""
        with self._lock:
            subs = [self._tournaments_sub, self._participants_sub]
        healthy = True
        for sub in subs:
            if sub is not None and not sub.poll():
                healthy = False
        return healthy

    # Derived data

    @property
    def totals(self) -> RosterTotals:
        with self._lock:
            return compute_totals(self.participants)

    @property
    def selected_tournament(self) -> Tournament | None:
        with self._lock:
            for t in self.tournaments:
                if t["id"] == self.selected_tournament_id:
                    return t
        return None

    def find_participant(self, participant_id: str) -> Participant | None:
        with self._lock:
            for p in self.participants:
                if p["id"] == participant_id:
                    return p
        return None

    def snapshot(self) -> dict[str, Any]:
        """A JSON-friendly view of the current state."""
        with self._lock:
            return {
                "state": self.state,
                "tournaments_state": self.tournaments_state,
                "error": self.error,
                "selected_tournament_id": self.selected_tournament_id,
                "tournaments": [
                    {"id": t["id"], "name": t["name"]} for t in self.tournaments
                ],
                "participants": [
                    {k: v for k, v in p.items() if k != "createdAt"}
                    for p in self.participants
                ],
                "totals": compute_totals(self.participants),
            }

    # Actions

    def create_tournament(self, name: str | None) -> str:
        """Create a tournament and select it."""
        tournament_id = RosterService.create_tournament(name, db=self._db)
        self.select(tournament_id)
        return tournament_id

    def add_participant(
        self,
        name: str | None,
        fee: Any,
        team_name: str | None = None,
        contact: str | None = None,
    ) -> str:
        return RosterService.add_participant(
            self.selected_tournament_id,
            name,
            fee,
            team_name=team_name,
            contact=contact,
            db=self._db,
        )

    def update_paid(
        self,
        participant: Participant,
        amount_paid: Any,
        payment_ref: str | None = None,
    ) -> str:
        if not self.selected_tournament_id:
            raise ValidationError("Please create or select a tournament first.")
        return RosterService.update_paid_amount(
            self.selected_tournament_id,
            participant,
            amount_paid,
            payment_ref=payment_ref,
            db=self._db,
        )

    def compose_reminder(self, participant: Participant, **kwargs: Any) -> Reminder:
        return compose_reminder(participant, **kwargs)
