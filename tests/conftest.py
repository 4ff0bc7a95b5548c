import pytest

from ballotbox import create_app
from ballotbox.config import Config
from ballotbox.extensions import db
from ballotbox.models.admin_user import AdminUser

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "correct-horse-battery"


class ConfigForTests(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    JWT_SECRET_KEY = "test-jwt-secret-that-is-long-enough-for-hs256"
    VOTE_MAX_ATTEMPTS = 5
    VOTE_RETRY_BACKOFF_SECONDS = 0.01
    FEED_KEEPALIVE_SECONDS = 0.05


@pytest.fixture
def app(tmp_path):
    # A file database, so worker threads get their own connections
    class _Config(ConfigForTests):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'ballotbox-test.db'}"

    app = create_app(_Config)
    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_token(app, client):
    with app.app_context():
        admin = AdminUser(username=ADMIN_USERNAME)
        admin.set_password(ADMIN_PASSWORD)
        db.session.add(admin)
        db.session.commit()

    rv = client.post("/api/auth/login", json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD})
    assert rv.status_code == 200, rv.get_json()
    return rv.get_json()["access_token"]


@pytest.fixture
def admin_headers(admin_token):
    return {"Authorization": f"Bearer {admin_token}"}


@pytest.fixture
def voter_headers(client):
    rv = client.post("/api/auth/session")
    assert rv.status_code == 200
    return {"Authorization": f"Bearer {rv.get_json()['access_token']}"}
