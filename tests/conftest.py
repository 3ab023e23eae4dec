"""
Shared pytest fixtures for the Renovation Back Office test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - tenant_user / worker_user / super_user: pre-created User rows
    - as_user: X-User-Email headers for a given email
    - tenant_principal: Principal of tenant_user
    - seed_prices: helper to insert tenant/global price list rows
"""

import pytest

from app import create_app
from app.auth import Principal
from app.models import db as _db
from app.models.auth import User
from app.models.pricing import GLOBAL_TENANT_EMAIL, PriceList, TenantPriceList

TENANT_EMAIL = "kovacs.epito@example.hu"
WORKER_EMAIL = "segito@example.hu"
SUPER_EMAIL = "admin@example.hu"


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        # Lazily created gateway is cached on the app; tests may swap it.
        app.__dict__.pop("_llm_gateway", None)
        app.extensions["price_catalog_cache"].invalidate()
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Users ────────────────────────────────────────────────────────────────


def _make_user(email, *, name="", is_tenant=True, is_super_user=False, invited_by=None):
    user = User(
        name=name, email=email, is_tenant=is_tenant,
        is_super_user=is_super_user, invited_by=invited_by,
    )
    _db.session.add(user)
    _db.session.commit()
    return user


@pytest.fixture()
def tenant_user():
    return _make_user(TENANT_EMAIL, name="Kovács Építő")


@pytest.fixture()
def worker_user(tenant_user):
    return _make_user(WORKER_EMAIL, name="Segítő Béla", is_tenant=False, invited_by=TENANT_EMAIL)


@pytest.fixture()
def super_user():
    return _make_user(SUPER_EMAIL, name="Admin Ágnes", is_super_user=True)


@pytest.fixture()
def tenant_principal(tenant_user):
    return Principal(email=TENANT_EMAIL, tenant_email=TENANT_EMAIL, user_id=tenant_user.id)


@pytest.fixture()
def as_user():
    """Headers that identify the caller while API auth is disabled."""

    def _headers(email):
        return {"X-User-Email": email}

    return _headers


# ── Price lists ──────────────────────────────────────────────────────────


@pytest.fixture()
def seed_prices():
    """
    Insert price rows.

        seed_prices(tenant=[(category, task, unit, labor, material), ...],
                    global_=[...], tenant_email=TENANT_EMAIL)
    """

    def _seed(tenant=(), global_=(), tenant_email=TENANT_EMAIL):
        for category, task, unit, labor, material in tenant:
            _db.session.add(TenantPriceList(
                tenant_email=tenant_email, category=category, task=task,
                unit=unit, labor_cost=labor, material_cost=material,
            ))
        for category, task, unit, labor, material in global_:
            _db.session.add(PriceList(
                tenant_email=GLOBAL_TENANT_EMAIL, category=category, task=task,
                unit=unit, labor_cost=labor, material_cost=material,
            ))
        _db.session.commit()

    return _seed
