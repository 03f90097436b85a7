import io
import logging
import re
from datetime import datetime
from functools import wraps
from typing import Callable, Optional

from flask import Blueprint, Flask, current_app, g, jsonify, request, send_file
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from auth_helpers import IdentityProvider, SupabaseIdentityProvider
from config import Config, configure_logging
from errors import AppError, UnauthorizedError, ValidationError
from expense_repository import ExpenseRepository
from expense_service import CATEGORIES, ExpenseService
from kv_store import KVStore, create_store

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

api = Blueprint("api", __name__)


def expense_service() -> ExpenseService:
    return current_app.extensions["expense_service"]


def identity_provider() -> IdentityProvider:
    return current_app.extensions["identity_provider"]


def text_field(data: dict, name: str) -> str:
    value = data.get(name)
    return value.strip() if isinstance(value, str) else ""


def json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def bearer_token() -> Optional[str]:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def token_required(fn):
    """Resolve the bearer token to a principal before the view touches any data"""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        token = bearer_token()
        if token is None:
            logger.warning("Rejected %s %s: missing bearer token", request.method, request.path)
            raise UnauthorizedError()
        g.principal = identity_provider().verify_token(token)
        return fn(*args, **kwargs)
    return wrapper


# =====================================================
# AUTHENTICATION ROUTES
# =====================================================

@api.route("/health")
def health():
    return jsonify({"status": "ok"})


@api.route("/register", methods=["POST"])
def register():
    data = json_body()
    name = text_field(data, "name")
    email = text_field(data, "email")
    password = data.get("password") or ""

    if not name or not email or not isinstance(password, str) or not password:
        raise ValidationError("All fields are required")
    if not EMAIL_RE.match(email):
        raise ValidationError("Invalid email format")

    user = identity_provider().sign_up(name, email, password)
    return jsonify({"message": "User registered successfully", "user": user}), 201


@api.route("/login", methods=["POST"])
def login():
    data = json_body()
    email = text_field(data, "email")
    password = data.get("password") or ""

    if not email or not isinstance(password, str) or not password:
        raise ValidationError("Email and password are required")
    if not EMAIL_RE.match(email):
        raise ValidationError("Invalid email format")

    access_token, user = identity_provider().sign_in(email, password)
    return jsonify({
        "message": "Logged in successfully",
        "access_token": access_token,
        "user": user,
    })


@api.route("/me")
@token_required
def me():
    return jsonify({"user": g.principal.to_dict()})


@api.route("/categories")
def categories():
    return jsonify({"categories": CATEGORIES})


# =====================================================
# EXPENSE ROUTES
# =====================================================

@api.route("/expenses/summary")
@token_required
def expenses_summary():
    summary = expense_service().monthly_summary(g.principal.id)
    summary["userName"] = g.principal.name
    return jsonify(summary)


@api.route("/expenses/monthly")
@token_required
def expenses_monthly():
    report = expense_service().monthly_report(g.principal.id, request.args.get("month"))
    return jsonify(report)


@api.route("/expenses/export")
@token_required
def expenses_export():
    month = request.args.get("month")
    csv_text = expense_service().export_csv(g.principal.id, month)
    filename = f"expenses-{month}.csv" if month else "expenses.csv"
    return send_file(
        io.BytesIO(csv_text.encode("utf-8")),
        mimetype="text/csv",
        as_attachment=True,
        download_name=filename,
    )


@api.route("/expenses", methods=["GET"])
@token_required
def list_expenses():
    expenses = expense_service().list_expenses(g.principal.id, request.args.get("q"))
    return jsonify({"expenses": expenses})


@api.route("/expenses", methods=["POST"])
@token_required
def create_expense():
    expense = expense_service().create_expense(g.principal.id, json_body())
    return jsonify({"message": "Expense created successfully", "expense": expense}), 201


@api.route("/expenses/<expense_id>", methods=["GET"])
@token_required
def get_expense(expense_id):
    expense = expense_service().get_expense(g.principal.id, expense_id)
    return jsonify({"expense": expense})


@api.route("/expenses/<expense_id>", methods=["PUT"])
@token_required
def update_expense(expense_id):
    payload = request.get_json(silent=True)
    expense = expense_service().update_expense(g.principal.id, expense_id, payload)
    return jsonify({"message": "Expense updated successfully", "expense": expense})


@api.route("/expenses/<expense_id>", methods=["DELETE"])
@token_required
def delete_expense(expense_id):
    expense_service().delete_expense(g.principal.id, expense_id)
    return jsonify({"message": "Expense deleted successfully"})


# =====================================================
# ERROR HANDLERS
# =====================================================

def handle_app_error(error: AppError):
    return jsonify({"error": error.message}), error.status_code


def handle_http_error(error: HTTPException):
    return jsonify({"error": error.description}), error.code


def handle_unexpected_error(error: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.path)
    return jsonify({"error": "Internal server error"}), 500


def seed_demo_user(app: Flask):
    """Create the demo account if it is missing; startup continues if the provider is unreachable"""
    try:
        created = app.extensions["identity_provider"].ensure_user(
            app.config["DEMO_USER_NAME"],
            app.config["DEMO_USER_EMAIL"],
            app.config["DEMO_USER_PASSWORD"],
        )
        if created:
            logger.info("Demo user created: %s", app.config["DEMO_USER_EMAIL"])
    except Exception:
        logger.exception("Could not initialize demo user")


def create_app(
    config=Config,
    store: Optional[KVStore] = None,
    identity: Optional[IdentityProvider] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> Flask:
    """
    Build the API application

    Args:
        config: Config class or object loaded with app.config.from_object
        store: Key-value store; built from KV_BACKEND when omitted
        identity: Identity provider; Supabase Auth when omitted
        clock: Returns the current aware datetime, used for the monthly summary

    Returns:
        Configured Flask app
    """
    app = Flask(__name__)
    app.config.from_object(config)
    app.json.sort_keys = False

    if not app.config.get("TESTING"):
        configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    if store is None:
        store = create_store(app.config)
    if identity is None:
        identity = SupabaseIdentityProvider.from_config(app.config)

    app.extensions["identity_provider"] = identity
    app.extensions["expense_service"] = ExpenseService(ExpenseRepository(store), clock=clock)

    prefix = app.config.get("API_PREFIX", "/api").rstrip("/")
    app.register_blueprint(api, url_prefix=prefix or None)

    CORS(
        app,
        origins=app.config.get("CORS_ORIGINS", "*"),
        allow_headers=["Content-Type", "Authorization"],
        methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        expose_headers=["Content-Length"],
        max_age=600,
    )

    app.register_error_handler(AppError, handle_app_error)
    app.register_error_handler(HTTPException, handle_http_error)
    app.register_error_handler(Exception, handle_unexpected_error)

    if app.config.get("SEED_DEMO_USER"):
        seed_demo_user(app)

    logger.info("Expense API ready under %s", prefix or "/")
    return app


if __name__ == "__main__":
    import os

    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", "8000"))
    create_app().run(host=host, port=port, debug=True)
