"""API routes for the refuel log."""

from functools import wraps

from flask import Blueprint, g, jsonify, request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from werkzeug.datastructures import MultiDict

from logging_config import get_audit_logger, get_logger
from models import Refuel, db
from security import RefuelForm, SecurityConfig, sanitize_input
from services.fuel_service import DEFAULT_TIME, FuelService

api_bp = Blueprint("api", __name__)

logger = get_logger()

# Deferred init pattern for Flask factory apps
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[SecurityConfig.RATE_LIMIT_PER_HOUR],
)

USER_HEADER = "X-User-Id"

REFUEL_FIELDS = (
    "refuel_date", "refuel_time", "odometer", "volume", "amount", "price_per_unit",
    "fuel_grade", "remark", "is_full_tank", "warning_light", "has_previous_record",
)


def init_api(app):
    """Initialize API rate limiting with app (call after registering blueprint)."""
    limiter.init_app(app)


def require_user():
    """Decorator that reads the caller's identity set by the upstream gateway."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user_id = (request.headers.get(USER_HEADER) or "").strip()
            if not user_id:
                return jsonify({"error": f"{USER_HEADER} header required"}), 401
            g.user_id = sanitize_input(user_id)[:64]
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def require_json():
    """Decorator to ensure request has JSON body."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not request.is_json:
                return jsonify({"error": "Content-Type must be application/json"}), 400
            if not isinstance(request.get_json(silent=True), dict):
                return jsonify({"error": "JSON object body required"}), 400
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def _form_input(payload: dict) -> MultiDict:
    """Shape a JSON body the way WTForms expects submitted form data."""
    formdata = MultiDict()
    for key, value in payload.items():
        # JSON null means "not supplied"
        if value is None:
            continue
        # Numbers (and stray lists/objects) go in as text so 0 counts as input
        if not isinstance(value, (str, bool)):
            value = str(value)
        formdata[key] = value
    return formdata


def validate_form(form_class):
    """Decorator to validate JSON data against a form and sanitize inputs."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            form = form_class(formdata=_form_input(request.get_json()))

            if not form.validate():
                return jsonify({"error": "Validation failed", "details": form.errors}), 400

            request.validated_data = {
                name: sanitize_input(value) for name, value in form.data.items()
            }
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def _normalize_time(value: str | None) -> str:
    """Zero-pad a validated H:MM time so stored times sort as strings."""
    if not value:
        return DEFAULT_TIME
    hour, minute = (int(part) for part in value.split(":"))
    return f"{hour:02d}:{minute:02d}"


def _apply_form_data(refuel: Refuel, data: dict) -> list[str]:
    """Copy validated form data onto a refuel, returning the changed columns."""
    values = {
        "refuel_date": data["date"].strftime("%Y-%m-%d"),
        "refuel_time": _normalize_time(data.get("time")),
        "odometer": data.get("odometer"),
        "volume": data["volume"],
        "amount": data["amount"],
        "price_per_unit": data.get("price_per_unit"),
        "fuel_grade": data.get("fuel_grade") or None,
        "remark": data.get("remark") or None,
        "is_full_tank": bool(data.get("is_full_tank")),
        "warning_light": bool(data.get("warning_light")),
        "has_previous_record": bool(data.get("has_previous_record")),
    }
    changed = []
    for column in REFUEL_FIELDS:
        if getattr(refuel, column) != values[column]:
            setattr(refuel, column, values[column])
            changed.append(column)
    return changed


def _get_owned_refuel(refuel_id: int) -> Refuel | None:
    return Refuel.for_user(g.user_id).filter_by(id=refuel_id).first()


# --- Refuel records ---


@api_bp.route("/refuels", methods=["GET"])
@limiter.limit(SecurityConfig.RATE_LIMIT_PER_MINUTE)
@require_user()
def get_refuels():
    """Get the caller's refuels, newest first, optionally for one year."""
    year = None
    if "year" in request.args:
        try:
            year = FuelService.parse_year(request.args.get("year"))
        except ValueError as e:
            return jsonify({"error": str(e)}), 400

    refuels = Refuel.for_user(g.user_id, year).order_by(
        Refuel.refuel_date.desc(),
        Refuel.refuel_time.desc(),
        Refuel.id.desc(),
    ).all()
    return jsonify([r.to_dict() for r in refuels])


@api_bp.route("/refuels/<int:refuel_id>", methods=["GET"])
@limiter.limit(SecurityConfig.RATE_LIMIT_PER_MINUTE)
@require_user()
def get_refuel(refuel_id: int):
    """Get a single refuel owned by the caller."""
    refuel = _get_owned_refuel(refuel_id)
    if refuel is None:
        return jsonify({"error": "Record not found"}), 404
    return jsonify(refuel.to_dict())


@api_bp.route("/refuels", methods=["POST"])
@limiter.limit(SecurityConfig.RATE_LIMIT_WRITE_PER_MINUTE)
@require_user()
@require_json()
@validate_form(RefuelForm)
def create_refuel():
    """
    Create a new refuel record.

    Expected JSON:
    {
        "date": "2025-11-18",
        "time": "08:30",
        "odometer": 12345,
        "volume": 40.5,
        "amount": 332.1,
        "price_per_unit": 8.2,
        "fuel_grade": "95",
        "remark": "Full tank",
        "is_full_tank": true
    }
    """
    data = request.validated_data

    try:
        refuel = Refuel(user_id=g.user_id)
        _apply_form_data(refuel, data)
        db.session.add(refuel)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.exception("Failed to create refuel", extra={"extra": {"user_id": g.user_id}})
        return jsonify({"error": f"Server error: {str(e)}"}), 500

    get_audit_logger().refuel_created(g.user_id, refuel.id, refuel.refuel_date)
    return jsonify(refuel.to_dict()), 201


@api_bp.route("/refuels/<int:refuel_id>", methods=["PUT"])
@limiter.limit(SecurityConfig.RATE_LIMIT_WRITE_PER_MINUTE)
@require_user()
@require_json()
@validate_form(RefuelForm)
def update_refuel(refuel_id: int):
    """Replace a refuel's fields, e.g. to correct a mistyped odometer."""
    refuel = _get_owned_refuel(refuel_id)
    if refuel is None:
        return jsonify({"error": "Record not found"}), 404

    try:
        changed = _apply_form_data(refuel, request.validated_data)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.exception("Failed to update refuel", extra={"extra": {"refuel_id": refuel_id}})
        return jsonify({"error": f"Server error: {str(e)}"}), 500

    if changed:
        get_audit_logger().refuel_updated(g.user_id, refuel.id, changed)
    return jsonify(refuel.to_dict())


@api_bp.route("/refuels/<int:refuel_id>", methods=["DELETE"])
@limiter.limit(SecurityConfig.RATE_LIMIT_WRITE_PER_MINUTE)
@require_user()
def delete_refuel(refuel_id: int):
    """Delete a refuel owned by the caller."""
    refuel = _get_owned_refuel(refuel_id)
    if refuel is None:
        return jsonify({"error": "Record not found"}), 404

    try:
        db.session.delete(refuel)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.exception("Failed to delete refuel", extra={"extra": {"refuel_id": refuel_id}})
        return jsonify({"error": f"Server error: {str(e)}"}), 500

    get_audit_logger().refuel_deleted(g.user_id, refuel_id)
    return jsonify({"success": True})


# --- Year report ---


@api_bp.route("/refuels/report", methods=["GET"])
@limiter.limit(SecurityConfig.RATE_LIMIT_PER_MINUTE)
@require_user()
def get_year_report():
    """
    Get the year report: per-interval metrics plus the year summary.

    Query params:
        year: Four-digit year (defaults to the current year when absent)
    """
    try:
        year = FuelService.parse_year(request.args.get("year"))
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    refuels = Refuel.for_user(g.user_id, year).all()
    report = FuelService.year_report([r.to_record() for r in refuels], year)
    return jsonify(report.to_dict())
