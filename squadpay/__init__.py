"""Initialize the Flask app and its extensions."""

import json
import os

import firebase_admin
from firebase_admin import credentials
from flask import Flask, g, session
from werkzeug.middleware.proxy_fix import ProxyFix

from .extensions import csrf


def _load_credentials(app):
    """Find Firebase credentials from the environment, a local file or ADC."""
    cred = None
    project_id = None

    # First, try to load from environment variable (for production)
    cred_json = os.environ.get("FIREBASE_CREDENTIALS_JSON")
    if cred_json:
        try:
            cred_info = json.loads(cred_json)
            project_id = cred_info.get("project_id")
            cred = credentials.Certificate(cred_info)
        except (json.JSONDecodeError, ValueError) as e:
            app.logger.error(f"Error parsing FIREBASE_CREDENTIALS_JSON: {e}")

    # If env var fails or is not present, try loading from file (for local dev)
    if not cred:
        cred_path = os.path.join(
            os.path.dirname(os.path.dirname(__file__)), "firebase_credentials.json"
        )
        if os.path.exists(cred_path):
            try:
                with open(cred_path, "r") as f:
                    cred_info = json.load(f)
                project_id = cred_info.get("project_id")
                cred = credentials.Certificate(cred_path)
            except (json.JSONDecodeError, ValueError) as e:
                app.logger.error(f"Error loading credentials from file: {e}")

    # If both methods fail, fallback to default credentials
    if not cred:
        try:
            cred = credentials.ApplicationDefault()
            project_id = os.environ.get("FIREBASE_PROJECT_ID")
        except Exception as e:
            app.logger.error(
                f"Could not find any valid credentials (env, file, or default): {e}"
            )

    return cred, project_id


def _init_firebase(app):
    """Initialize the Admin SDK and report whether Firestore is usable."""
    if firebase_admin._apps:
        return True

    cred, project_id = _load_credentials(app)
    if not cred:
        app.logger.warning("Firebase is not configured; data features are disabled.")
        return False

    options = {}
    if project_id:
        options["projectId"] = project_id
    try:
        firebase_admin.initialize_app(cred, options)
    except ValueError:
        # This can happen if the app is already initialized, which is fine.
        app.logger.info("Firebase app already initialized.")
    return True


def create_app(test_config=None):
    """Create and configure an instance of the Flask application."""
    app = Flask(
        __name__,
        instance_relative_config=True,
        static_folder="static",
        static_url_path="/static",
    )

    # Load configuration
    app.config.from_mapping(
        SECRET_KEY=os.environ.get("SECRET_KEY") or "dev",
        BRAND_NAME=os.environ.get("BRAND_NAME") or "SquadPay",
        CURRENCY_SYMBOL=os.environ.get("CURRENCY_SYMBOL") or "₹",
        REMINDER_COUNTRY_CODE=os.environ.get("REMINDER_COUNTRY_CODE") or "91",
        FIREBASE_WEB_API_KEY=os.environ.get("FIREBASE_WEB_API_KEY"),
        FIREBASE_AUTH_DOMAIN=os.environ.get("FIREBASE_AUTH_DOMAIN"),
        FIREBASE_PROJECT_ID=os.environ.get("FIREBASE_PROJECT_ID"),
    )

    if test_config:
        app.config.update(test_config)

    # Initialize Firebase Admin SDK only if not in testing mode
    if app.config.get("TESTING"):
        app.config.setdefault("FIREBASE_CONFIGURED", True)
    else:
        app.config["FIREBASE_CONFIGURED"] = _init_firebase(app)

    # Initialize extensions
    csrf.init_app(app)

    # Register blueprints
    from . import auth as auth_bp

    app.register_blueprint(auth_bp.bp)

    from . import roster as roster_bp

    app.register_blueprint(roster_bp.bp)

    from . import receipt as receipt_bp

    app.register_blueprint(receipt_bp.bp)

    from . import error_handlers

    app.register_blueprint(error_handlers.error_handlers_bp)

    @app.before_request
    def load_logged_in_user():
        """Expose the signed-in organizer (if any) on g."""
        g.user = None
        if session.get("user_id") is None:
            return
        g.user = {"uid": session["user_id"], "email": session.get("email")}

    from .payments import STATUS_LABELS
    from .roster.utils import format_amount

    app.jinja_env.filters["amount"] = format_amount
    app.jinja_env.filters["status_label"] = lambda status: STATUS_LABELS.get(
        status, status
    )

    @app.context_processor
    def inject_branding():
        """Injects brand and currency settings into the template context."""
        return dict(
            brand_name=app.config["BRAND_NAME"],
            currency=app.config["CURRENCY_SYMBOL"],
            app_version=os.environ.get("APP_VERSION", "dev"),
        )

    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    return app
