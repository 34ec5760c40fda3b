"""Routes for the receipt blueprint."""

from __future__ import annotations

import io
import json
import queue
from typing import Any

from flask import (
    Response,
    current_app,
    render_template,
    request,
    send_file,
    stream_with_context,
)

from squadpay.auth.decorators import login_required
from squadpay.core.constants import RECEIPT_FILENAME
from squadpay.errors import NotFoundError
from squadpay.roster.live import RosterFeed
from squadpay.roster.services import get_db

from . import bp
from .render import render_receipt_png
from .services import ReceiptService, ReceiptWatcher

HEARTBEAT_SECONDS = 15
RECEIPT_PATH = "/t/<string:tournament_id>/receipt/<string:participant_id>"


def _not_found() -> Any:
    return render_template("receipt/not_found.html"), 404


def _receipt_event(watcher: ReceiptWatcher) -> tuple[str, Any]:
    """The SSE event describing the watcher's state right now."""
    if watcher.not_found:
        return "not_found", {}
    if watcher.error:
        return "error", {"error": watcher.error}
    return "receipt", watcher.summary


@bp.route(RECEIPT_PATH)
@login_required
def view_receipt(tournament_id: str, participant_id: str) -> Any:
    """Printable, shareable payment receipt for one participant."""
    try:
        summary = ReceiptService.get_summary(tournament_id, participant_id)
    except NotFoundError:
        return _not_found()
    return render_template(
        "receipt/view.html",
        summary=summary,
        share_text=ReceiptService.share_text(
            summary, brand=current_app.config["BRAND_NAME"]
        ),
    )


@bp.route(f"{RECEIPT_PATH}/image.png")
@login_required
def receipt_image(tournament_id: str, participant_id: str) -> Any:
    """The receipt card as a PNG at twice its on-screen size."""
    try:
        summary = ReceiptService.get_summary(tournament_id, participant_id)
    except NotFoundError:
        return _not_found()

    png = render_receipt_png(
        summary,
        currency=current_app.config["CURRENCY_SYMBOL"],
        brand=current_app.config["BRAND_NAME"],
    )
    return send_file(
        io.BytesIO(png),
        mimetype="image/png",
        as_attachment=bool(request.args.get("download")),
        download_name=RECEIPT_FILENAME,
    )


@bp.route(f"{RECEIPT_PATH}/print")
@login_required
def print_receipt(tournament_id: str, participant_id: str) -> Any:
    """Just the receipt card, opening the browser print dialog."""
    try:
        summary = ReceiptService.get_summary(tournament_id, participant_id)
    except NotFoundError:
        return _not_found()
    return render_template("receipt/print.html", summary=summary)


@bp.route(f"{RECEIPT_PATH}/live")
@login_required
def live_receipt(tournament_id: str, participant_id: str) -> Any:
    """Server-Sent Events stream that pushes the receipt whenever it changes."""
    updates: queue.Queue[tuple[str, Any]] = queue.Queue()
    watcher = ReceiptWatcher(
        RosterFeed(get_db()),
        tournament_id,
        participant_id,
        on_change=lambda w: updates.put(_receipt_event(w)),
    )

    def generate():
        # Listeners open on the first read of the stream; finally closes them.
        try:
            watcher.start()
            yield "event: connected\ndata: ok\n\n"
            while True:
                try:
                    event, data = updates.get(timeout=HEARTBEAT_SECONDS)
                except queue.Empty:
                    watcher.poll()
                    if updates.empty():
                        yield ": heartbeat\n\n"
                    continue
                if data is None:
                    # Tournament arrived before the participant.
                    continue
                yield f"event: {event}\ndata: {json.dumps(data, default=str)}\n\n"
                if event != "receipt":
                    break
        finally:
            watcher.stop()

    return Response(
        stream_with_context(generate()),
        mimetype="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        },
    )
