"""
Flask route handlers for the REST API.

Every protected view is wrapped, outermost first, in ``token_required``
(attaches the principal), ``require_access`` (role gate) and ``validate``
(field rules), so no handler code runs before all three pass.
"""

import sys
import traceback

from flask import current_app, jsonify, request
from sqlalchemy import text

from healthportal import __version__
from healthportal.analysis import analyze_or_fallback
from healthportal.api.auth import (
    check_password,
    cleanup_expired_sessions,
    hash_password,
    open_session,
    refresh_user_sessions,
    revoke_user_sessions,
    sessions,
    token_required,
)
from healthportal.config import DEFAULT_ROLE
from healthportal.errors import Forbidden, InvalidCredentials, NotFound, PortalError
from healthportal.models import Principal
from healthportal.rbac import AUTHENTICATED, USER_LIST, USER_READ, USER_WRITE, require_access
from healthportal.stats import dashboard_stats, health_trends
from healthportal import store
from healthportal.validation import (
    appointment_rules,
    appointment_status_rules,
    login_rules,
    register_rules,
    symptom_rules,
    user_update_rules,
    validate,
)


def _booking_rules():
    return appointment_rules(current_app.config["VALIDATE_DOCTOR_ID"])


def _can_view_appointment(principal: Principal, row) -> bool:
    if principal.role == "admin":
        return True
    return principal.user_id in (row["patient_id"], row["doctor_id"])


def _can_set_status(principal: Principal, row, status: str) -> bool:
    if principal.role == "admin":
        return True
    if principal.role == "doctor":
        return row["doctor_id"] == principal.user_id
    return row["patient_id"] == principal.user_id and status == "cancelled"


def register_routes(app, engine, llm):
    """Register all API routes on the Flask *app*."""

    # ── Health / info ────────────────────────────────────────────────

    @app.route("/", methods=["GET"])
    def index():
        return jsonify({
            "service": "Health Portal API",
            "version": __version__,
            "status": "running",
            "endpoints": {
                "auth": "/api/auth",
                "users": "/api/users",
                "appointments": "/api/appointments",
                "ai": "/api/ai",
                "health": "/health",
            },
        })

    @app.route("/health", methods=["GET"])
    def health():
        checks = {"database": False, "llm": llm is not None}
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            checks["database"] = True
        except Exception as e:
            print(f"[WARN] Health check could not reach the database: {e}", file=sys.stderr)

        healthy = checks["database"]
        return jsonify({
            "status": "healthy" if healthy else "unhealthy",
            "checks": checks,
            "active_sessions": len(sessions),
        }), 200 if healthy else 503

    # ── Auth ─────────────────────────────────────────────────────────

    @app.route("/api/auth/register", methods=["POST"])
    @validate(register_rules)
    def register():
        data = request.validated
        row = store.create_user(
            engine,
            name=data["name"],
            email=data["email"],
            password_hash=hash_password(str(data["password"])),
            role=data.get("role", DEFAULT_ROLE),
            phone=data.get("phone"),
        )
        token = open_session(Principal.from_row(row))
        return jsonify({
            "success": True,
            "token": token,
            "user": store.serialize_user(row),
        }), 201

    @app.route("/api/auth/login", methods=["POST"])
    @validate(login_rules)
    def login():
        data = request.validated
        row = store.get_user_by_email(engine, data["email"])
        if row is None or not check_password(row["password_hash"], str(data["password"])):
            raise InvalidCredentials()

        cleanup_expired_sessions()
        token = open_session(Principal.from_row(row))
        return jsonify({
            "success": True,
            "token": token,
            "user": store.serialize_user(row),
        }), 200

    @app.route("/api/auth/me", methods=["GET"])
    @token_required
    def me():
        row = store.get_user(engine, request.principal.user_id)
        if row is None:
            raise NotFound("User not found")
        return jsonify({"success": True, "user": store.serialize_user(row)}), 200

    @app.route("/api/auth/logout", methods=["POST"])
    @token_required
    def logout():
        sessions.pop(request.token, None)
        return jsonify({"success": True, "message": "Logged out successfully"}), 200

    # ── Users ────────────────────────────────────────────────────────

    @app.route("/api/users/stats", methods=["GET"])
    @token_required
    @require_access(AUTHENTICATED)
    def get_dashboard_stats():
        stats = dashboard_stats(engine, request.principal)
        return jsonify({"success": True, "stats": stats}), 200

    @app.route("/api/users/trends", methods=["GET"])
    @token_required
    @require_access(AUTHENTICATED)
    def get_health_trends():
        trends = health_trends(engine, request.principal)
        return jsonify({"success": True, "trends": trends}), 200

    @app.route("/api/users", methods=["GET"])
    @token_required
    @require_access(USER_LIST)
    def get_users():
        rows = store.list_users(engine, role=request.args.get("role"))
        return jsonify({
            "success": True,
            "count": len(rows),
            "users": [store.serialize_user(r) for r in rows],
        }), 200

    @app.route("/api/users/<int:user_id>", methods=["GET"])
    @token_required
    @require_access(USER_READ)
    def get_user_by_id(user_id):
        row = store.get_user(engine, user_id)
        if row is None:
            raise NotFound("User not found")
        return jsonify({"success": True, "user": store.serialize_user(row)}), 200

    @app.route("/api/users/<int:user_id>", methods=["PUT"])
    @token_required
    @require_access(USER_WRITE)
    @validate(user_update_rules)
    def update_user(user_id):
        row = store.update_user(engine, user_id, request.validated)
        if row is None:
            raise NotFound("User not found")
        refresh_user_sessions(Principal.from_row(row))
        return jsonify({"success": True, "user": store.serialize_user(row)}), 200

    @app.route("/api/users/<int:user_id>", methods=["DELETE"])
    @token_required
    @require_access(USER_WRITE)
    def delete_user(user_id):
        if not store.delete_user(engine, user_id):
            raise NotFound("User not found")
        revoke_user_sessions(user_id)
        return jsonify({"success": True, "message": "User deleted"}), 200

    # ── Appointments ─────────────────────────────────────────────────

    @app.route("/api/appointments", methods=["POST"])
    @token_required
    @require_access(AUTHENTICATED)
    @validate(_booking_rules)
    def create_appointment():
        data = request.validated
        try:
            doctor_id = int(str(data["doctor"]).strip())
        except ValueError:
            raise NotFound("Doctor not found") from None

        doctor = store.get_user(engine, doctor_id)
        if doctor is None or doctor["role"] != "doctor":
            raise NotFound("Doctor not found")

        row = store.create_appointment(
            engine,
            patient_id=request.principal.user_id,
            doctor_id=doctor_id,
            appointment_date=str(data["appointmentDate"]),
            appointment_time=data["appointmentTime"],
            reason=data.get("reason"),
            symptoms=data.get("symptoms"),
        )
        return jsonify({"success": True, "appointment": store.serialize_appointment(row)}), 201

    @app.route("/api/appointments", methods=["GET"])
    @token_required
    @require_access(AUTHENTICATED)
    def get_appointments():
        rows = store.list_appointments(engine, request.principal, status=request.args.get("status"))
        return jsonify({
            "success": True,
            "count": len(rows),
            "appointments": [store.serialize_appointment(r) for r in rows],
        }), 200

    @app.route("/api/appointments/<int:appointment_id>", methods=["GET"])
    @token_required
    @require_access(AUTHENTICATED)
    def get_appointment(appointment_id):
        row = store.get_appointment(engine, appointment_id)
        if row is None:
            raise NotFound("Appointment not found")
        if not _can_view_appointment(request.principal, row):
            raise Forbidden()
        return jsonify({"success": True, "appointment": store.serialize_appointment(row)}), 200

    @app.route("/api/appointments/<int:appointment_id>", methods=["PUT"])
    @token_required
    @require_access(AUTHENTICATED)
    @validate(appointment_status_rules)
    def update_appointment(appointment_id):
        status = request.validated["status"]
        row = store.get_appointment(engine, appointment_id)
        if row is None:
            raise NotFound("Appointment not found")
        if not _can_set_status(request.principal, row, status):
            raise Forbidden()
        row = store.set_appointment_status(engine, appointment_id, status)
        return jsonify({"success": True, "appointment": store.serialize_appointment(row)}), 200

    # ── AI symptom analysis ──────────────────────────────────────────

    @app.route("/api/ai/analyze", methods=["POST"])
    @token_required
    @require_access(AUTHENTICATED)
    @validate(symptom_rules)
    def analyze():
        symptoms = request.validated["symptoms"]
        verdict = analyze_or_fallback(llm, symptoms)
        row = store.create_analysis(engine, request.principal.user_id, symptoms, verdict)
        return jsonify({"success": True, "analysis": store.serialize_analysis(row)}), 201

    @app.route("/api/ai/analyses", methods=["GET"])
    @token_required
    @require_access(AUTHENTICATED)
    def get_analyses():
        rows = store.list_analyses(engine, request.principal)
        return jsonify({
            "success": True,
            "count": len(rows),
            "analyses": [store.serialize_analysis(r) for r in rows],
        }), 200

    # ── Error handlers ───────────────────────────────────────────────

    @app.errorhandler(PortalError)
    def portal_error(e):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"success": False, "error": "Endpoint not found", "message": str(e)}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"success": False, "error": "Method not allowed", "message": str(e)}), 405

    @app.errorhandler(500)
    def internal_error(e):
        print(f"[ERROR] Unhandled error: {e}", file=sys.stderr)
        traceback.print_exc()
        return jsonify({"success": False, "error": "Internal server error"}), 500
