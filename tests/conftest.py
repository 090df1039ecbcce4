"""
Pytest configuration and shared fixtures for VineTrack tests.
"""
import os
import tempfile

import pytest

from vinetrack import create_app
from vinetrack.extensions import db
from vinetrack.models import Organization, ProductionContainer, ProductionLot, User
from vinetrack.services.production_api import ProductionStore
from vinetrack.services.production_context import ProductionContext

MIGRATIONS_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), 'migrations')


@pytest.fixture(scope='function')
def app():
    """Create and configure a new app instance for each test."""
    # Create a temporary file to use as the database
    db_fd, db_path = tempfile.mkstemp(suffix='.db')

    app = create_app({
        'TESTING': True,
        'DATABASE_URL': f'sqlite:///{db_path}',
        'SECRET_KEY': 'test-secret-key',
    })

    with app.app_context():
        # Prefer Alembic migrations to build schema; fall back to create_all
        try:
            from flask_migrate import upgrade
            upgrade(directory=MIGRATIONS_DIR)
        except Exception:
            db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()

    os.close(db_fd)
    os.unlink(db_path)


@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """A test runner for the app's Click commands."""
    return app.test_cli_runner()


@pytest.fixture
def db_session(app):
    """Session bound to an app context held open for the whole test."""
    with app.app_context():
        yield db.session
        db.session.rollback()


@pytest.fixture
def test_org(db_session):
    org = Organization(name='Test Winery', subscription_tier='estate')
    db_session.add(org)
    db_session.commit()
    return org


@pytest.fixture
def test_user(db_session, test_org):
    user = User(username='winemaker', email='winemaker@example.com', organization_id=test_org.id)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def context(test_user):
    return ProductionContext.from_user(test_user)


@pytest.fixture
def store(context):
    return ProductionStore.for_context(context)


@pytest.fixture
def make_container(db_session, test_org):
    """Insert a vessel directly, bypassing the store."""
    def _make(name, capacity=60.0, status='empty', organization_id=None, **fields):
        container = ProductionContainer(
            organization_id=organization_id or test_org.id,
            name=name,
            type=fields.pop('type', 'barrel'),
            capacity_gallons=capacity,
            status=status,
            total_fills=fields.pop('total_fills', 0),
            **fields,
        )
        db_session.add(container)
        db_session.commit()
        return container

    return _make


@pytest.fixture
def make_lot(db_session, test_org):
    """Insert a lot directly, bypassing the store."""
    def _make(name, volume=0.0, status='pressed', organization_id=None, **fields):
        lot = ProductionLot(
            organization_id=organization_id or test_org.id,
            name=name,
            volume_gallons=volume,
            status=status,
            **fields,
        )
        db_session.add(lot)
        db_session.commit()
        return lot

    return _make


def login(client, user_id):
    with client.session_transaction() as sess:
        sess['_user_id'] = str(user_id)
        sess['_fresh'] = True


@pytest.fixture
def logged_in_client(client, test_user):
    login(client, test_user.id)
    return client
