import pytest

from app import create_app
from config import Config
from models import db as _db
from security.identity import LocalIdentityProvider


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    CONTENT_ENCRYPTION_KEY = "test-content-key"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    BCRYPT_ROUNDS = 4
    TWILIO_ACCOUNT_SID = None
    TWILIO_AUTH_TOKEN = None
    TWILIO_PHONE_NUMBER = None


@pytest.fixture
def app(tmp_path):
    class _Config(TestConfig):
        PHOTO_STORAGE_DIR = str(tmp_path / "photos")

    app = create_app(_Config)
    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    """Create an account straight through the identity provider."""
    def _make(email="jane@example.com", password="Abcdefg1", timezone=None, phone_number=None):
        metadata = {}
        if timezone:
            metadata["timezone"] = timezone
        if phone_number:
            metadata["phone_number"] = phone_number
        return LocalIdentityProvider().sign_up(email, password, metadata)["user"]
    return _make


@pytest.fixture
def login(client):
    """Sign in over HTTP and return bearer headers."""
    def _login(email="jane@example.com", password="Abcdefg1"):
        resp = client.post("/auth/token", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.get_json()
        token = resp.get_json()["session"]["access_token"]
        return {"Authorization": f"Bearer {token}"}
    return _login
