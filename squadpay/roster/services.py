"""Service layer for roster business logic."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from firebase_admin import firestore
from flask import current_app, has_app_context
from google.api_core.exceptions import GoogleAPIError

from squadpay.core.constants import (
    CREATED_AT,
    PARTICIPANTS_COLLECTION,
    TOURNAMENTS_COLLECTION,
)
from squadpay.errors import ConfigurationError, StoreWriteError, ValidationError
from squadpay.payments import compute_status

from .models import Participant, Tournament
from .utils import (
    clean_optional,
    participant_from_doc,
    tournament_from_doc,
    validate_paid_amount,
    validate_participant,
    validate_tournament_name,
)

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.collection import CollectionReference
    from google.cloud.firestore_v1.document import DocumentReference

logger = logging.getLogger(__name__)


def get_db(db: Client | None = None) -> Client:
    """Return the given client or the default one, if Firebase is set up."""
    if db is not None:
        return db
    if has_app_context() and not current_app.config.get("FIREBASE_CONFIGURED"):
        raise ConfigurationError()
    return firestore.client()


class RosterService:
    """Handles business logic and data access for tournaments and participants."""

    @staticmethod
    def tournaments_query(db: Client) -> Any:
        """All tournaments, oldest first."""
        return db.collection(TOURNAMENTS_COLLECTION).order_by(CREATED_AT)

    @staticmethod
    def tournament_ref(db: Client, tournament_id: str) -> DocumentReference:
        return db.collection(TOURNAMENTS_COLLECTION).document(tournament_id)

    @staticmethod
    def participants_ref(db: Client, tournament_id: str) -> CollectionReference:
        return RosterService.tournament_ref(db, tournament_id).collection(
            PARTICIPANTS_COLLECTION
        )

    @staticmethod
    def participants_query(db: Client, tournament_id: str) -> Any:
        """Participants of one tournament, oldest first."""
        return RosterService.participants_ref(db, tournament_id).order_by(CREATED_AT)

    @staticmethod
    def participant_ref(
        db: Client, tournament_id: str, participant_id: str
    ) -> DocumentReference:
        return RosterService.participants_ref(db, tournament_id).document(
            participant_id
        )

    @staticmethod
    def list_tournaments(db: Client | None = None) -> list[Tournament]:
        """Fetch all tournaments ordered by creation time."""
        db = get_db(db)
        return [
            tournament_from_doc(doc)
            for doc in RosterService.tournaments_query(db).stream()
        ]

    @staticmethod
    def get_tournament(
        tournament_id: str, db: Client | None = None
    ) -> Tournament | None:
        """Fetch a single tournament, or None if it does not exist."""
        db = get_db(db)
        doc = RosterService.tournament_ref(db, tournament_id).get()
        if not doc.exists:
            return None
        return tournament_from_doc(doc)

    @staticmethod
    def create_tournament(name: str | None, db: Client | None = None) -> str:
        """Create a tournament and return its ID."""
        name = validate_tournament_name(name)
        db = get_db(db)
        try:
            _, ref = db.collection(TOURNAMENTS_COLLECTION).add(
                {"name": name, "createdAt": firestore.SERVER_TIMESTAMP}
            )
        except GoogleAPIError as e:
            logger.error(f"Error creating tournament: {e}")
            raise StoreWriteError("Failed to create tournament.") from e
        return str(ref.id)

    @staticmethod
    def list_participants(
        tournament_id: str | None, db: Client | None = None
    ) -> list[Participant]:
        """Fetch a tournament's participants ordered by creation time."""
        if not tournament_id:
            return []
        db = get_db(db)
        return [
            participant_from_doc(doc)
            for doc in RosterService.participants_query(db, tournament_id).stream()
        ]

    @staticmethod
    def get_participant(
        tournament_id: str, participant_id: str, db: Client | None = None
    ) -> Participant | None:
        """Fetch a single participant, or None if it does not exist."""
        db = get_db(db)
        doc = RosterService.participant_ref(db, tournament_id, participant_id).get()
        if not doc.exists:
            return None
        return participant_from_doc(doc)

    @staticmethod
    def add_participant(
        tournament_id: str | None,
        name: str | None,
        fee: Any,
        team_name: str | None = None,
        contact: str | None = None,
        db: Client | None = None,
    ) -> str:
        """Register a participant with nothing paid yet and return its ID."""
        if not tournament_id:
            raise ValidationError("Please create or select a tournament first.")
        fields = validate_participant(name, fee, team_name, contact)

        payload = {
            **fields,
            "amountPaid": 0,
            "status": compute_status(fields["amountDue"], 0),
            "createdAt": firestore.SERVER_TIMESTAMP,
        }
        db = get_db(db)
        try:
            _, ref = RosterService.participants_ref(db, tournament_id).add(payload)
        except GoogleAPIError as e:
            logger.error(f"Error adding participant: {e}")
            raise StoreWriteError("Failed to add participant.") from e
        return str(ref.id)

    @staticmethod
    def update_paid_amount(
        tournament_id: str,
        participant: Participant,
        amount_paid: Any,
        payment_ref: str | None = None,
        db: Client | None = None,
    ) -> str:
        """Record a new paid amount and return the recomputed status.

        Status uses the participant's stored fee. Both fields go out in a
        single update so the document never holds a mismatched pair.
        ``payment_ref=None`` leaves the stored reference alone; a blank string
        clears it.
        """
        value = validate_paid_amount(amount_paid)
        status = compute_status(participant.get("amountDue") or 0, value)

        update: dict[str, Any] = {"amountPaid": value, "status": status}
        if payment_ref is not None:
            payment_ref = clean_optional(payment_ref)
            if payment_ref or participant.get("paymentRef"):
                update["paymentRef"] = payment_ref

        db = get_db(db)
        try:
            RosterService.participant_ref(db, tournament_id, participant["id"]).update(
                update
            )
        except GoogleAPIError as e:
            logger.error(f"Error updating paid amount: {e}")
            raise StoreWriteError("Failed to update paid amount.") from e
        return status
