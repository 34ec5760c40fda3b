import json

from flask import (
    Response,
    current_app,
    flash,
    jsonify,
    redirect,
    render_template,
    request,
    url_for,
)

from squadpay.errors import AuthenticationError

from . import bp
from .forms import LogoutForm
from .session import IdentitySession


def _log_identity_change(identity):
    if identity:
        current_app.logger.info(f"Organizer signed in: {identity['email']}")
    else:
        current_app.logger.info("Organizer signed out")


@bp.route("/login", methods=["GET"])
def login():
    """
    Renders the login page.
    The actual sign-in happens in the browser with the Firebase client SDK,
    which then posts the ID token to session_login.
    """
    if IdentitySession().is_authenticated:
        return redirect(url_for("roster.dashboard"))
    return render_template("auth/login.html")


@bp.route("/session_login", methods=["POST"])
def session_login():
    """Exchange a Firebase ID token for a server-side session."""
    payload = request.get_json(silent=True) or {}
    identity_session = IdentitySession()
    identity_session.subscribe(_log_identity_change)
    try:
        identity_session.sign_in(payload.get("idToken"))
    except AuthenticationError as e:
        return jsonify({"status": "error", "message": e.message}), e.status_code
    return jsonify({"status": "success"})


@bp.route("/logout", methods=["GET", "POST"])
def logout():
    """Ask for confirmation, then clear the organizer's session."""
    form = LogoutForm()
    if form.validate_on_submit():
        identity_session = IdentitySession()
        identity_session.subscribe(_log_identity_change)
        identity_session.sign_out()
        flash("You have been signed out.", "success")
        return redirect(url_for("auth.login"))
    return render_template("auth/logout.html", form=form)


@bp.route("/firebase-config.js")
def firebase_config():
    api_key = current_app.config.get("FIREBASE_WEB_API_KEY")
    if not api_key:
        current_app.logger.error(
            "FIREBASE_WEB_API_KEY is not set. Frontend will not be able to sign in."
        )
        error_script = 'console.error("Firebase web API key is missing. Set FIREBASE_WEB_API_KEY.");'
        return Response(error_script, mimetype="application/javascript")

    project_id = current_app.config.get("FIREBASE_PROJECT_ID")
    config = {
        "apiKey": api_key,
        "authDomain": current_app.config.get("FIREBASE_AUTH_DOMAIN")
        or f"{project_id}.firebaseapp.com",
        "projectId": project_id,
    }
    js_config = f"const firebaseConfig = {json.dumps(config)};"
    return Response(js_config, mimetype="application/javascript")
