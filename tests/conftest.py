"""
Shared pytest fixtures for the Quote Desk test suite.

Two ways in:
- service tests push one app context (`ctx`) and drive LifecycleEngine /
  the user and reporting services directly;
- HTTP tests use the Flask test client with bearer tokens obtained from
  /api/auth/login. They must NOT hold an app context open, because
  Flask-Login caches the current user on `g` for the life of the context.
"""
from types import SimpleNamespace

import pytest

from quotedesk import create_app
from quotedesk.extensions import db
from quotedesk.models import ROLE_ADMIN, ROLE_DIE_SUPPLIER, ROLE_KNIFE_SUPPLIER, User
from quotedesk.seed import ensure_quote_counter
from quotedesk.services.lifecycle import LifecycleEngine
from quotedesk.storage import IncomingFile

PASSWORD = "secret123"

ACCOUNTS = {
    "admin": ("admin@onducart.test", ROLE_ADMIN, "Ana Admin", "Onducart"),
    "knife": ("knife@cutters.test", ROLE_KNIFE_SUPPLIER, "Kim Knife", "Cutters Lda"),
    "knife2": ("knife2@blades.test", ROLE_KNIFE_SUPPLIER, "Bo Blade", "Blades SA"),
    "die": ("die@dies.test", ROLE_DIE_SUPPLIER, "Dee Die", "Dies & Co"),
}


def _create_accounts():
    users = {}
    for alias, (email, role, name, company) in ACCOUNTS.items():
        user = User(email=email, role=role, name=name, company_name=company, is_active=True)
        user.set_password(PASSWORD)
        db.session.add(user)
        users[alias] = user
    db.session.commit()
    return users


# ── Application ───────────────────────────────────────────────────────────────

@pytest.fixture
def app(tmp_path):
    """Fresh app on an in-memory database with an isolated upload folder."""
    app = create_app(
        {"UPLOAD_FOLDER": str(tmp_path / "upload")},
        config_object="config.TestingConfig",
    )
    with app.app_context():
        db.create_all()
        ensure_quote_counter()
        db.session.commit()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def upload_dir(tmp_path):
    return tmp_path / "upload"


@pytest.fixture
def file_store(app):
    return app.extensions["file_store"]


# ── Service-level fixtures (one app context for the whole test) ───────────────

@pytest.fixture
def ctx(app):
    with app.app_context():
        yield
        db.session.rollback()


@pytest.fixture
def people(ctx):
    """Committed User objects: admin, knife, knife2, die."""
    return SimpleNamespace(**_create_accounts())


@pytest.fixture
def engine(app, ctx):
    return LifecycleEngine(db.session, app.extensions["file_store"])


@pytest.fixture
def make_file():
    def _make(name="artwork.pdf", data=b"%PDF-1.4 test"):
        return IncomingFile(filename=name, data=data)

    return _make


# ── HTTP fixtures ─────────────────────────────────────────────────────────────

@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def accounts(app):
    """Creates the standard accounts; returns {alias: user id}."""
    with app.app_context():
        users = _create_accounts()
        return {alias: user.id for alias, user in users.items()}


@pytest.fixture
def login(client, accounts):
    """login("knife") -> Authorization headers for that account."""
    cache = {}

    def _login(alias):
        if alias not in cache:
            email = ACCOUNTS[alias][0]
            resp = client.post("/api/auth/login", json={"email": email, "password": PASSWORD})
            assert resp.status_code == 200, resp.get_json()
            cache[alias] = {"Authorization": f"Bearer {resp.get_json()['token']}"}
        return cache[alias]

    return _login
