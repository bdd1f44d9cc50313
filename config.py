import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # Master key for per-user content encryption (falls back to SECRET_KEY in dev)
    CONTENT_ENCRYPTION_KEY = os.getenv("CONTENT_ENCRYPTION_KEY")

    # SQLite database file stored next to the app as journal.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "journal.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Public base URL (used in confirmation messages)
    APP_BASE_URL = os.getenv("APP_BASE_URL", "https://journalbytext.com")

    # Session cookie name for our auth token
    AUTH_COOKIE_NAME = "journal_session"

    # 7 days session lifetime
    SESSION_LIFETIME_SECONDS = 7 * 24 * 60 * 60

    # Idle timeout: 24 hours
    IDLE_TIMEOUT_SECONDS = 24 * 60 * 60

    # bcrypt work factor
    BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

    # Session/cookie security defaults
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = os.getenv("SESSION_COOKIE_SECURE", "false").lower() == "true"

    # Pre-flight rate limits for the secure-auth gateway (per ip:email)
    AUTH_RATE_WINDOW_MINUTES = 15
    SIGNIN_MAX_ATTEMPTS = 5
    SIGNUP_MAX_ATTEMPTS = 3   # signups are costlier to abuse

    # Failure tracking / confirmation SMS endpoints
    AUTH_TOKEN_MAX_ATTEMPTS = 10
    TRACK_FAILURE_MAX_ATTEMPTS = 10
    CONFIRMATION_MAX_ATTEMPTS = 3

    # Account lockout (per email)
    MAX_LOGIN_ATTEMPTS = 5
    LOCKOUT_MINUTES = 15

    # Consent can only be recorded shortly after signup
    CONSENT_WINDOW_MINUTES = 60

    # Photo object storage
    PHOTO_STORAGE_DIR = os.getenv("PHOTO_STORAGE_DIR", os.path.join(BASE_DIR, "journal-photos"))
    PHOTO_PUBLIC_BASE_URL = os.getenv("PHOTO_PUBLIC_BASE_URL", "/photos")
    MAX_PHOTOS_PER_ENTRY = 5
    MAX_PHOTO_BYTES = 5 * 1024 * 1024
    MAX_CONTENT_LENGTH = 32 * 1024 * 1024

    # SMS (Twilio)
    TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID")
    TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN")
    TWILIO_PHONE_NUMBER = os.getenv("TWILIO_PHONE_NUMBER")
    HTTP_TIMEOUT_SECONDS = int(os.getenv("HTTP_TIMEOUT_SECONDS", "10"))

    # Basic app settings
    DEBUG = False
