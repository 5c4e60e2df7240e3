"""Shared fixtures.

Provides:
- Settings pointing at a throwaway SQLite file
- FastAPI app and TestClient built with create_app
- Seeded accounts (seller, buyer, stranger) and listings
- Bearer header helper
"""

import pytest
from fastapi.testclient import TestClient

from topar.auth.security import create_access_token
from topar.config import Settings
from topar.enums.listing import Currency, ListingStatus
from topar.main import create_app
from topar.models import Deal, Listing, User


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        database_url=f"sqlite:///{tmp_path / 'topar-test.db'}",
        secret_key="test-secret-key",
        storage_retry_attempts=5,
        storage_retry_delay=0,
        log_to_console=False,
    )


@pytest.fixture
def app(settings):
    application = create_app(settings)
    yield application
    application.state.engine.dispose()


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def session_factory(app):
    return app.state.session_factory


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


def _make_user(db, username: str) -> User:
    user = User(
        email=f"{username}@example.com",
        username=username,
        first_name=username.capitalize(),
        telegram=f"@{username}",
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def seller(db) -> User:
    return _make_user(db, "seller")


@pytest.fixture
def buyer(db) -> User:
    return _make_user(db, "buyer")


@pytest.fixture
def stranger(db) -> User:
    return _make_user(db, "stranger")


@pytest.fixture
def make_listing(db):
    def _make(owner: User, **overrides) -> Listing:
        fields = dict(
            title="Road bike",
            description="Barely used",
            price=100.0,
            currency=Currency.USD,
            seller_id=owner.id,
            is_safe_deal=True,
            images=["bike-1.jpg"],
            delivery_options=[{"type": "pickup"}, {"type": "courier", "price": 5}],
            status=ListingStatus.ACTIVE,
        )
        fields.update(overrides)
        listing = Listing(**fields)
        db.add(listing)
        db.commit()
        db.refresh(listing)
        return listing

    return _make


@pytest.fixture
def listing(make_listing, seller) -> Listing:
    return make_listing(seller)


@pytest.fixture
def auth(settings):
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user.id, settings)}"}

    return _headers


@pytest.fixture
def fetch(session_factory):
    """Read a row through a fresh session so nothing cached leaks into assertions."""
    def _fetch(model, pk):
        session = session_factory()
        try:
            return session.get(model, pk)
        finally:
            session.close()

    return _fetch


@pytest.fixture
def count_deals(session_factory):
    def _count() -> int:
        session = session_factory()
        try:
            return session.query(Deal).count()
        finally:
            session.close()

    return _count
