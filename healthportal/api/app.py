"""
Flask application factory and server entry-point.
"""

import os
import sys
import traceback

from flask import Flask
from flask_cors import CORS

from healthportal import config
from healthportal.config import TOKEN_EXPIRY_HOURS, get_env
from healthportal.database import init_engine, init_schema
from healthportal.llm import init_llm
from healthportal.api.routes import register_routes

_DEFAULT = object()


def create_app(engine=None, llm=_DEFAULT, settings=None):
    """Build and return a fully configured Flask application.

    *engine* and *llm* are created from the environment unless given;
    pass ``llm=None`` to run without a model. *settings* override Flask config.
    """
    app = Flask(__name__)
    app.config["VALIDATE_DOCTOR_ID"] = config.VALIDATE_DOCTOR_ID
    app.config.update(settings or {})
    CORS(app)

    # ── Initialise shared resources ──────────────────────────────────
    try:
        if engine is None:
            print("[init] Initializing database connection...")
            engine = init_engine()

        print("[init] Ensuring schema...")
        init_schema(engine)

        if llm is _DEFAULT:
            print("[init] Initializing LLM...")
            llm = init_llm()

        print("[init] ✓ API server ready")
    except Exception as e:
        print(f"[FATAL] Failed to initialize: {e}", file=sys.stderr)
        traceback.print_exc()
        sys.exit(1)

    # ── Register routes ──────────────────────────────────────────────
    register_routes(app, engine, llm)

    return app


def main():
    """Run the development server."""
    print("=" * 60)
    print("Health Portal – REST API Server")
    print("=" * 60)

    if os.getenv("FLASK_ENV") == "production":
        get_env("JWT_SECRET_KEY")

    app = create_app()

    host = os.getenv("API_HOST", "0.0.0.0")
    port = int(os.getenv("API_PORT", "8000"))
    debug = os.getenv("FLASK_ENV") == "development"

    print(f"\n[server] Starting Flask API on {host}:{port}")
    print(f"[server] Debug mode: {debug}")
    print(f"[server] CORS enabled: True")
    print(f"[server] Session expiry: {TOKEN_EXPIRY_HOURS} hours")
    print(f"[server] Doctor id format check: {app.config['VALIDATE_DOCTOR_ID']}")
    print("\nAPI Endpoints:")
    print(f"  - POST http://{host}:{port}/api/auth/register")
    print(f"  - POST http://{host}:{port}/api/auth/login")
    print(f"  - GET  http://{host}:{port}/api/users")
    print(f"  - GET  http://{host}:{port}/api/users/stats")
    print(f"  - POST http://{host}:{port}/api/appointments")
    print(f"  - POST http://{host}:{port}/api/ai/analyze")
    print(f"  - GET  http://{host}:{port}/health")
    print("\n" + "=" * 60)

    app.run(host=host, port=port, debug=debug, threaded=True)


if __name__ == "__main__":
    main()
