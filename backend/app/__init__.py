import os
import subprocess
from pathlib import Path

import click
from flask import Flask, g, jsonify, request
from sqlalchemy import text
from werkzeug.exceptions import HTTPException

from app.extensions import cors, db, migrate
from app.integrations.safesearch.factory import safesearch_health
from app.integrations.storage.factory import storage_health
from app.segments.segment_moderation import moderation_bp
from app.segments.segment_profiles import profiles_bp
from app.segments.segment_sales import sales_bp
from app.services.moderation import ModerationError, init_moderation
from app.services.record_errors import RecordError
from app.utils.jwt_utils import create_access_token
from app.utils.observability import init_sentry, install_request_observers


def _resolve_alembic_head() -> str:
    try:
        from alembic.config import Config
        from alembic.script import ScriptDirectory

        migrations_dir = Path(__file__).resolve().parents[1] / "migrations"
        cfg = Config()
        cfg.set_main_option("script_location", str(migrations_dir))
        script = ScriptDirectory.from_config(cfg)
        heads = script.get_heads()
        return heads[0] if heads else "unknown"
    except Exception:
        return "unknown"


def _resolve_git_sha() -> str:
    for env_key in ("GIT_SHA", "SOURCE_VERSION"):
        val = (os.getenv(env_key) or "").strip()
        if val:
            return val
    try:
        repo_root = Path(__file__).resolve().parents[1]
        out = subprocess.check_output(
            ["git", "rev-parse", "HEAD"],
            cwd=str(repo_root),
            stderr=subprocess.DEVNULL,
        )
        return out.decode().strip()
    except Exception:
        return "unknown"


def _env_int(name: str, default: int, *, minimum: int = 1, maximum: int = 100000) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        value = int(default)
    else:
        try:
            value = int(raw)
        except ValueError:
            value = int(default)
    if value < minimum:
        value = minimum
    if value > maximum:
        value = maximum
    return value


def _is_production(env: str) -> bool:
    return env in ("prod", "production")


def _load_config(app: Flask, env: str) -> None:
    instance_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "instance"))
    os.makedirs(instance_dir, exist_ok=True)

    database_url = os.getenv("SQLALCHEMY_DATABASE_URI") or os.getenv("DATABASE_URL")
    if not database_url:
        database_url = f"sqlite:///{os.path.join(instance_dir, 'rummage.db').replace(os.sep, '/')}"

    app.config.update(
        RUMMAGE_ENV=env,
        SECRET_KEY=os.getenv("SECRET_KEY", "dev-secret"),
        SQLALCHEMY_DATABASE_URI=database_url,
        SQLALCHEMY_TRACK_MODIFICATIONS=False,
        SENTRY_DSN=(os.getenv("SENTRY_DSN") or "").strip(),
        STORAGE_PROVIDER=(os.getenv("STORAGE_PROVIDER") or ("gcs" if _is_production(env) else "memory")).strip().lower(),
        STORAGE_BUCKET=(os.getenv("FIREBASE_BUCKET") or "").strip(),
        STORAGE_DOWNLOAD_HOST=(os.getenv("STORAGE_DOWNLOAD_HOST") or "firebasestorage.googleapis.com").strip(),
        SAFESEARCH_PROVIDER=(os.getenv("SAFESEARCH_PROVIDER") or ("vision" if _is_production(env) else "mock")).strip().lower(),
        MODERATION_PROMOTE_ATTEMPTS=_env_int("MODERATION_PROMOTE_ATTEMPTS", 3, minimum=1, maximum=10),
        MODERATION_BACKOFF_MS=_env_int("MODERATION_BACKOFF_MS", 500, minimum=0, maximum=10000),
        MODERATION_TIMEOUT_SECONDS=_env_int("MODERATION_TIMEOUT_SECONDS", 30, minimum=1, maximum=300),
    )


def _engine_options(database_url: str, app: Flask) -> dict:
    engine_options = {
        "pool_pre_ping": True,
        "pool_reset_on_return": "rollback",
        "pool_recycle": _env_int("DB_POOL_RECYCLE_SECONDS", 1800, minimum=60, maximum=86400),
    }
    if database_url.startswith("sqlite://"):
        # Concurrent strike upserts wait on the file lock instead of failing.
        engine_options["connect_args"] = {
            "timeout": _env_int("SQLITE_BUSY_TIMEOUT_SECONDS", 30, minimum=1, maximum=600),
            "check_same_thread": False,
        }
        return engine_options
    engine_options.update(
        {
            "pool_size": _env_int("DB_POOL_SIZE", 10, minimum=1, maximum=200),
            "max_overflow": _env_int("DB_MAX_OVERFLOW", 20, minimum=0, maximum=500),
            "pool_timeout": _env_int("DB_POOL_TIMEOUT_SECONDS", 30, minimum=1, maximum=300),
        }
    )
    app.logger.info(
        "db_pooling_enabled pool_size=%s max_overflow=%s pool_timeout=%s pool_recycle=%s",
        engine_options["pool_size"],
        engine_options["max_overflow"],
        engine_options["pool_timeout"],
        engine_options["pool_recycle"],
    )
    return engine_options


def _error_response(payload: dict, status: int):
    rid = (getattr(g, "request_id", "") or "").strip()
    if rid:
        payload["trace_id"] = rid
    payload.setdefault("status", int(status))
    return jsonify(payload), int(status)


def create_app(config=None, *, moderation_store=None, moderation_classifier=None, moderation_backoff=None):
    app = Flask(__name__)

    env = (os.getenv("RUMMAGE_ENV", "dev") or "dev").strip().lower()

    # Production safety checks
    if _is_production(env):
        secret = (os.getenv("SECRET_KEY") or "").strip()
        if not secret or len(secret) < 16:
            raise RuntimeError("SECRET_KEY must be set and at least 16 chars in production")
        if not (os.getenv("DATABASE_URL") or "").strip() and not (os.getenv("SQLALCHEMY_DATABASE_URI") or "").strip():
            raise RuntimeError("DATABASE_URL (or SQLALCHEMY_DATABASE_URI) must be set in production")

    _load_config(app, env)
    if config:
        app.config.update(dict(config))
    app.config["SQLALCHEMY_ENGINE_OPTIONS"] = _engine_options(app.config["SQLALCHEMY_DATABASE_URI"], app)

    init_sentry(app)

    # CORS configuration
    cors_origins = (os.getenv("CORS_ORIGINS") or "").strip()
    if _is_production(env):
        origins = [o.strip() for o in cors_origins.split(",") if o.strip()]
    else:
        origins = ["*"] if not cors_origins else [o.strip() for o in cors_origins.split(",") if o.strip()]
    cors.init_app(app, resources={r"/api/*": {"origins": origins}})

    # Init extensions
    db.init_app(app)
    migrate.init_app(app, db)
    install_request_observers(app)
    with app.app_context():
        db.create_all()
    init_moderation(
        app,
        store=moderation_store,
        classifier=moderation_classifier,
        backoff=moderation_backoff,
    )

    @app.errorhandler(ModerationError)
    def _moderation_error(error: ModerationError):
        g.moderation_outcome = error.code.lower()
        if error.http_status >= 500:
            app.logger.warning("moderation_unavailable path=%s code=%s err=%s", request.path, error.code, error)
        return _error_response(error.to_payload(), error.http_status)

    @app.errorhandler(RecordError)
    def _record_error(error: RecordError):
        return _error_response(error.to_payload(), error.http_status)

    @app.errorhandler(HTTPException)
    def _api_http_exception(error: HTTPException):
        # Keep API failures JSON-only for predictable client handling.
        if not request.path.startswith("/api/"):
            return error
        return _error_response(
            {
                "ok": False,
                "error": error.name,
                "message": error.description or error.name,
            },
            int(error.code or 500),
        )

    @app.errorhandler(Exception)
    def _api_unhandled_exception(error: Exception):
        app.logger.exception("unhandled_exception path=%s", request.path)
        return _error_response(
            {
                "ok": False,
                "error": "InternalServerError",
                "message": "Internal server error",
            },
            500,
        )

    # Register API routes
    app.register_blueprint(sales_bp)
    app.register_blueprint(profiles_bp)
    app.register_blueprint(moderation_bp)

    # Health check
    @app.get("/api/health")
    def health():
        db_state = "ok"
        db_error = None
        try:
            with db.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception as e:
            db_state = "fail"
            msg = str(e)
            if msg:
                db_error = (msg[:300] + "...") if len(msg) > 300 else msg
        payload = {
            "ok": True,
            "service": "rummage-backend",
            "env": env,
            "db": db_state,
            "moderation": "ready" if app.extensions.get("moderation") is not None else "unavailable",
            "storage": storage_health(app.config),
            "safesearch": safesearch_health(app.config),
            "git_sha": _resolve_git_sha(),
            "alembic_head": _resolve_alembic_head(),
        }
        if db_error:
            payload["db_error"] = db_error
        return jsonify(payload)

    @app.get("/")
    def root():
        return jsonify({
            "ok": True,
            "service": "rummage-backend",
            "env": env,
        })

    @app.get("/api/version")
    def version():
        return jsonify({
            "ok": True,
            "alembic_head": _resolve_alembic_head(),
            "git_sha": _resolve_git_sha(),
        })

    @app.cli.command("dev-token")
    @click.option("--user-id", "user_id", required=True, help="Subject for the token")
    @click.option("--role", "role", default="user", show_default=True, help="user or admin")
    def dev_token(user_id: str, role: str):
        if _is_production(env):
            raise click.ClickException("dev-token is disabled in production.")
        click.echo(create_access_token(user_id, role=role))

    @app.cli.command("moderation-status")
    def moderation_status():
        click.echo(f"storage={storage_health(app.config)}")
        click.echo(f"safesearch={safesearch_health(app.config)}")
        coordinator = app.extensions.get("moderation")
        click.echo(f"coordinator={'ready' if coordinator is not None else 'unavailable'}")

    return app
