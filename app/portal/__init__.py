import logging
import os
from datetime import timedelta

from dotenv import load_dotenv
from flask import Flask, g, jsonify, request
from werkzeug.exceptions import HTTPException

from app.portal.config import load_config
from app.portal.db import init_db, session_scope, teardown_db_session
from app.portal.errors import PortalError
from app.portal.routes import bp as routes_bp
from app.portal.auth import bp as auth_bp, load_current_identity
from app.portal.admin import bp as admin_bp
from app.portal.modules.profiles.routes import bp as profiles_bp
from app.portal.modules.leadership.routes import bp as leadership_bp
from app.portal.modules.library.routes import bp as library_bp
from app.portal.modules.news.routes import bp as news_bp
from app.portal.modules.support.routes import bp as support_bp
from app.portal.modules.chat.routes import bp as chat_bp
from app.portal.security import hasher_from_config
from app.portal.sessions import session_store_from_config

logger = logging.getLogger(__name__)


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__)
    app.config.from_mapping(load_config())
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=app.config["SESSION_LIFETIME_HOURS"])
    # Expiry is fixed at login; never slide the cookie forward.
    app.config["SESSION_REFRESH_EACH_REQUEST"] = False

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not os.environ.get("DATABASE_URL"):
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")

    init_db(app)
    app.extensions["portal_sessions"] = session_store_from_config(app.config)
    app.extensions["portal_password_hasher"] = hasher_from_config(app.config)

    def _dispose_engine_on_fork() -> None:
        if hasattr(os, "register_at_fork"):
            def _after_fork_child():
                engine = app.extensions.get("sqlalchemy_engine")
                if engine:
                    engine.dispose()
                    app.logger.info("Disposed DB engine after fork (pid=%s)", os.getpid())

            os.register_at_fork(after_in_child=_after_fork_child)

    _dispose_engine_on_fork()

    _prepare_database(app)

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    # The browser client posts to /api/auth/*; serve both prefixes.
    app.register_blueprint(auth_bp, url_prefix="/api/auth", name="api_auth")
    app.register_blueprint(profiles_bp, url_prefix="/api/user")
    app.register_blueprint(leadership_bp, url_prefix="/api/leadership")
    app.register_blueprint(library_bp, url_prefix="/api/library")
    app.register_blueprint(news_bp, url_prefix="/api/news")
    app.register_blueprint(support_bp, url_prefix="/api/support")
    app.register_blueprint(chat_bp, url_prefix="/api/chat")
    app.register_blueprint(admin_bp, url_prefix="/api/admin")

    app.before_request(load_current_identity)
    app.teardown_appcontext(teardown_db_session)

    @app.errorhandler(PortalError)
    def _err_portal(e: PortalError):  # type: ignore[no-redef]
        if e.status_code == 403:
            app.logger.warning(
                "Forbidden: missing_role=%s path=%s request_id=%s",
                getattr(g, "missing_role", None),
                request.path,
                getattr(g, "request_id", None),
            )
        return jsonify({"error": e.message}), e.status_code

    @app.errorhandler(HTTPException)
    def _err_http(e: HTTPException):  # type: ignore[no-redef]
        return jsonify({"error": e.name}), e.code

    @app.errorhandler(Exception)
    def _err_500(e: Exception):  # type: ignore[no-redef]
        # Full trace stays in the server log; the client gets a generic message.
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        return jsonify({"error": "Internal Server Error"}), 500

    logger.info("create_app() complete; app ready to serve")

    return app


def _prepare_database(app: Flask) -> None:
    """Create tables (unless migrations own the schema) and make sure the default admin exists."""
    from app.portal.bootstrap import ensure_admin
    from app.portal.models import Base

    if app.config.get("AUTO_CREATE_SCHEMA"):
        Base.metadata.create_all(bind=app.extensions["sqlalchemy_engine"])

    with session_scope(app) as s:
        ensure_admin(
            s,
            app.extensions["portal_password_hasher"],
            email=app.config["ADMIN_EMAIL"],
            password=app.config["ADMIN_PASSWORD"],
        )
