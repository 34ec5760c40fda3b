"""Routes for the roster blueprint."""

from __future__ import annotations

import json
import queue
from typing import Any

from flask import (
    Response,
    current_app,
    flash,
    redirect,
    render_template,
    request,
    stream_with_context,
    url_for,
)
from google.api_core.exceptions import GoogleAPIError

from squadpay.auth.decorators import login_required
from squadpay.errors import NotFoundError, StoreWriteError, ValidationError
from squadpay.payments import STATUS_LABELS

from . import bp
from .forms import PaidAmountForm, ParticipantForm, TournamentForm
from .live import FAILED, RosterFeed, RosterViewModel
from .services import RosterService, get_db
from .utils import compose_reminder, compute_totals, format_amount

HEARTBEAT_SECONDS = 15


def _first_error(form) -> str:
    for errors in form.errors.values():
        if errors:
            return errors[0]
    return "Validation failed."


def _render_dashboard(
    selected_id: str | None = None,
    tournament_form: TournamentForm | None = None,
    participant_form: ParticipantForm | None = None,
    status: int = 200,
) -> Any:
    """Load tournaments and the selected roster, then render the dashboard."""
    db = get_db()
    context: dict[str, Any] = {
        "tournament_form": tournament_form or TournamentForm(formdata=None),
        "participant_form": participant_form or ParticipantForm(formdata=None),
        "tournaments": [],
        "selected_tournament": None,
        "participants": [],
        "totals": compute_totals([]),
        "error": None,
    }

    try:
        tournaments = RosterService.list_tournaments(db)
    except GoogleAPIError as e:
        current_app.logger.error(f"Error loading tournaments: {e}")
        context["error"] = "Failed to load tournaments."
        return render_template("roster/dashboard.html", **context), 500
    context["tournaments"] = tournaments

    # Default to the first tournament when none (or an unknown one) is asked for.
    selected = next((t for t in tournaments if t["id"] == selected_id), None)
    if selected is None and tournaments:
        selected = tournaments[0]
    context["selected_tournament"] = selected

    if selected is not None:
        try:
            participants = RosterService.list_participants(selected["id"], db)
        except GoogleAPIError as e:
            current_app.logger.error(f"Error loading participants: {e}")
            context["error"] = "Failed to load participants."
            return render_template("roster/dashboard.html", **context), 500
        context["participants"] = participants
        context["totals"] = compute_totals(participants)

    return render_template("roster/dashboard.html", **context), status


@bp.route("/", methods=["GET"])
@login_required
def dashboard() -> Any:
    """Tournament selector, totals and the selected roster."""
    return _render_dashboard(request.args.get("t"))


@bp.route("/tournaments", methods=["POST"])
@login_required
def create_tournament() -> Any:
    """Create a tournament and select it."""
    form = TournamentForm()
    if not form.validate_on_submit():
        flash(_first_error(form), "danger")
        return _render_dashboard(
            request.form.get("selected"), tournament_form=form, status=400
        )

    try:
        tournament_id = RosterService.create_tournament(form.name.data)
    except ValidationError as e:
        flash(e.message, "danger")
        return _render_dashboard(tournament_form=form, status=e.status_code)
    except StoreWriteError as e:
        flash(e.message, "danger")
        return _render_dashboard(tournament_form=form, status=e.status_code)

    flash("Tournament created.", "success")
    return redirect(url_for(".dashboard", t=tournament_id))


@bp.route("/t/<string:tournament_id>/participants", methods=["POST"])
@login_required
def add_participant(tournament_id: str) -> Any:
    """Register a squad or player with their fee."""
    form = ParticipantForm()
    if not form.validate_on_submit():
        flash(_first_error(form), "danger")
        return _render_dashboard(tournament_id, participant_form=form, status=400)

    try:
        RosterService.add_participant(
            tournament_id,
            form.name.data,
            form.fee.data,
            team_name=form.team_name.data,
            contact=form.contact.data,
        )
    except (ValidationError, StoreWriteError) as e:
        flash(e.message, "danger")
        return _render_dashboard(
            tournament_id, participant_form=form, status=e.status_code
        )

    flash(f"{form.name.data.strip()} added.", "success")
    return redirect(url_for(".dashboard", t=tournament_id))


def _load_participant(tournament_id: str, participant_id: str) -> dict[str, Any]:
    participant = RosterService.get_participant(tournament_id, participant_id)
    if participant is None:
        raise NotFoundError("Participant not found.")
    return dict(participant)


@bp.route(
    "/t/<string:tournament_id>/participants/<string:participant_id>/paid",
    methods=["GET", "POST"],
)
@login_required
def update_paid(tournament_id: str, participant_id: str) -> Any:
    """Edit the amount a participant has paid so far."""
    participant = _load_participant(tournament_id, participant_id)
    form = PaidAmountForm(
        amount_paid=format_amount(participant["amountPaid"]),
        payment_ref=participant.get("paymentRef"),
    )

    if form.validate_on_submit():
        try:
            status = RosterService.update_paid_amount(
                tournament_id,
                participant,
                form.amount_paid.data,
                payment_ref=form.payment_ref.data,
            )
        except (ValidationError, StoreWriteError) as e:
            flash(e.message, "danger")
            return (
                render_template(
                    "roster/edit_paid.html",
                    form=form,
                    participant=participant,
                    tournament_id=tournament_id,
                ),
                e.status_code,
            )
        flash(
            f"Payment updated for {participant['name']}: {STATUS_LABELS[status]}.",
            "success",
        )
        return redirect(url_for(".dashboard", t=tournament_id))

    if request.method == "POST":
        flash(_first_error(form), "danger")

    return render_template(
        "roster/edit_paid.html",
        form=form,
        participant=participant,
        tournament_id=tournament_id,
    )


@bp.route("/t/<string:tournament_id>/participants/<string:participant_id>/remind")
@login_required
def send_reminder(tournament_id: str, participant_id: str) -> Any:
    """Open WhatsApp with a pre-filled payment reminder."""
    participant = _load_participant(tournament_id, participant_id)
    try:
        reminder = compose_reminder(
            participant,
            currency=current_app.config["CURRENCY_SYMBOL"],
            country_code=current_app.config["REMINDER_COUNTRY_CODE"],
            brand=current_app.config["BRAND_NAME"],
        )
    except ValidationError as e:
        flash(e.message, "danger")
        return redirect(url_for(".dashboard", t=tournament_id))
    return redirect(reminder["url"])


@bp.route("/t/<string:tournament_id>/live")
@login_required
def live_roster(tournament_id: str) -> Any:
    """Server-Sent Events stream of roster snapshots for one tournament."""
    db = get_db()
    view_model = RosterViewModel(RosterFeed(db), db=db)
    updates: queue.Queue[dict[str, Any]] = queue.Queue()

    def generate():
        # Listeners open on the first read of the stream; finally closes them.
        unsubscribe = view_model.subscribe(lambda vm: updates.put(vm.snapshot()))
        try:
            view_model.start(tournament_id)
            yield "event: connected\ndata: ok\n\n"
            while True:
                try:
                    snapshot = updates.get(timeout=HEARTBEAT_SECONDS)
                except queue.Empty:
                    view_model.poll()
                    if updates.empty():
                        # Keep the connection alive through proxies.
                        yield ": heartbeat\n\n"
                    continue
                yield f"event: roster\ndata: {json.dumps(snapshot, default=str)}\n\n"
                if FAILED in (snapshot["state"], snapshot["tournaments_state"]):
                    break
        finally:
            unsubscribe()
            view_model.close()

    return Response(
        stream_with_context(generate()),
        mimetype="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        },
    )
