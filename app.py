import click
from flask import Flask
from flask_migrate import Migrate

from config import Config
from models import db
from routes import health_bp, auth_bp, secure_auth_bp, onboarding_bp, journal_bp
from security.cipher import cipher_from_config
from security.csrf import csrf_guard
from security.identity import LocalIdentityProvider
from services.journal import JournalService
from services.photo_storage import LocalPhotoStorage
from utils.auth_context import load_current_user


def create_app(config_class=Config, photo_storage=None):
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(secure_auth_bp)
    app.register_blueprint(onboarding_bp)
    app.register_blueprint(journal_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    # Collaborators
    storage = photo_storage or LocalPhotoStorage(
        app.config["PHOTO_STORAGE_DIR"],
        app.config.get("PHOTO_PUBLIC_BASE_URL", "/photos"),
    )
    app.extensions["identity_provider"] = LocalIdentityProvider()
    app.extensions["journal_service"] = JournalService(
        cipher_from_config(app.config),
        storage,
        max_photos=app.config.get("MAX_PHOTOS_PER_ENTRY", 5),
        max_photo_bytes=app.config.get("MAX_PHOTO_BYTES", 5 * 1024 * 1024),
    )

    # order matters: the CSRF guard reads g.user
    app.before_request(load_current_user)
    app.before_request(csrf_guard)

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        # photos are served by this app, everything else is JSON
        resp.headers["Content-Security-Policy"] = "default-src 'none'; img-src 'self'; frame-ancestors 'none';"
        return resp

    register_cli(app)

    return app

#-------------------------
from security.lockout import clear_expired_lockouts, reset_attempts
from security.rate_limit import purge_expired

def register_cli(app):
    @app.cli.command("unlock-account")
    @click.argument("email")
    def unlock_account(email):
        """Clear a sign-in lockout for an email."""
        reset_attempts(email)
        click.echo(f"{email.strip().lower()} unlocked")

    @app.cli.command("clear-expired-lockouts")
    def clear_expired_lockouts_cmd():
        """Delete lockout rows whose lock has run out."""
        count = clear_expired_lockouts()
        click.echo(f"Cleared {count} expired lockouts")

    @app.cli.command("purge-rate-limits")
    def purge_rate_limits_cmd():
        """Delete rate-limit counters whose window has elapsed."""
        count = purge_expired(app.config.get("AUTH_RATE_WINDOW_MINUTES", 15))
        click.echo(f"Purged {count} rate-limit rows")

#-------------------------


if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
