from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from typing import Any

from flask import Flask
from sqlalchemy import event
from sqlalchemy.engine import Engine, make_url

from .extensions import db, migrate, login_manager, cors
from .errors import register_error_handlers


@event.listens_for(Engine, "connect")
def _set_sqlite_pragmas(dbapi_connection, connection_record) -> None:
    if isinstance(dbapi_connection, sqlite3.Connection):
        cur = dbapi_connection.cursor()
        cur.execute("PRAGMA foreign_keys=ON")
        cur.execute("PRAGMA journal_mode=WAL")
        cur.execute("PRAGMA synchronous=NORMAL")
        cur.execute("PRAGMA busy_timeout=30000")
        cur.close()


def _configure_logging(app: Flask) -> None:
    level = str(app.config.get("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logging.getLogger("petlov").setLevel(level)
    app.logger.setLevel(level)


def create_app(config_overrides: dict[str, Any] | None = None) -> Flask:
    app = Flask(__name__)
    app.config.from_object("config.Config")
    if config_overrides:
        app.config.update(config_overrides)

    _configure_logging(app)

    uri = app.config.get("SQLALCHEMY_DATABASE_URI", "")
    if uri.startswith("sqlite:") and ":memory:" not in uri:
        opts = dict(app.config.get("SQLALCHEMY_ENGINE_OPTIONS", {}))
        ca = dict(opts.get("connect_args", {}))
        ca.setdefault("check_same_thread", False)
        ca.setdefault("timeout", 30)
        opts["connect_args"] = ca
        app.config["SQLALCHEMY_ENGINE_OPTIONS"] = opts

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    cors.init_app(
        app,
        resources={r"/api/*": {"origins": app.config.get("CORS_ORIGINS", [])}},
        supports_credentials=True,
    )

    from .models.user import User
    from .models.pet import Pet, PetImage
    from .models.candidate import Candidate
    from .models.interest import Interest
    from .models.adoption import Adoption

    # registers the bearer-token request loader
    from . import security  # noqa: F401

    from .auth.routes import auth_bp
    app.register_blueprint(auth_bp, url_prefix="/api/auth")

    from .pets.routes import pets_bp
    app.register_blueprint(pets_bp, url_prefix="/api/pets")

    from .candidates.routes import candidates_bp
    app.register_blueprint(candidates_bp, url_prefix="/api/candidates")

    from .adoptions.routes import adoptions_bp
    app.register_blueprint(adoptions_bp, url_prefix="/api/adoptions")

    from .admin.routes import admin_bp
    app.register_blueprint(admin_bp, url_prefix="/api/admin")

    register_error_handlers(app)

    from .cli import (
        init_db_cmd,
        reset_db_cmd,
        purge_data_cmd,
        create_admin_cmd,
        seed_demo_cmd,
    )

    app.cli.add_command(init_db_cmd)
    app.cli.add_command(reset_db_cmd)
    app.cli.add_command(purge_data_cmd)
    app.cli.add_command(create_admin_cmd)
    app.cli.add_command(seed_demo_cmd)

    @app.get("/api/health")
    def health():
        return {
            "status": "OK",
            "message": "Pet Lov API is running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.teardown_request
    def _teardown_request(_exc):
        try:
            if _exc is not None:
                db.session.rollback()
        finally:
            db.session.remove()

    app.logger.debug(
        "Pet Lov API configured (db=%s)",
        make_url(uri).render_as_string(hide_password=True) if uri else "<unset>",
    )
    return app
