from __future__ import annotations

from pathlib import Path
from typing import Any

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from .config import DB_PATH, SECRET_KEY, SchedulerSettings, load_settings
from .extensions import init_extensions
from .services import db_service


def create_app(
    settings: SchedulerSettings | None = None,
    db_path: Path | str | None = None,
    config: dict[str, Any] | None = None,
) -> Flask:
    app = Flask(__name__)
    app.secret_key = SECRET_KEY
    app.config["DB_PATH"] = str(db_path or DB_PATH)
    if config:
        app.config.update(config)

    init_extensions(app, (settings or load_settings()).validate())
    db_service.init_app(app)
    db_service.init_db(app.config["DB_PATH"])

    from .routes.fines import bp as fines_bp
    from .routes.holidays import bp as holidays_bp
    from .routes.seminar import bp as seminar_bp

    app.register_blueprint(seminar_bp)
    app.register_blueprint(holidays_bp)
    app.register_blueprint(fines_bp)

    @app.errorhandler(HTTPException)
    def http_error(exc: HTTPException):
        return jsonify({"success": False, "error": exc.name, "details": exc.description}), exc.code

    @app.get("/api/health")
    def health():
        return {"status": "ok"}

    return app
