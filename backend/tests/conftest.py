"""
Pytest fixtures for bakeledger backend tests.

Provides an in-memory database, a per-test clean slate, and worker fixtures.
"""

import pytest

from bakeledger import create_app
from bakeledger.extensions import db
from bakeledger.models.auth import ROLE_ADMIN, ROLE_WORKER
from bakeledger.services import rate_service, user_service
from bakeledger.services.submission_service import submit_daily_entry, approve_submission


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def admin(db_session):
    return user_service.create_user("admin", "admin-pass", ROLE_ADMIN)


@pytest.fixture(scope='function')
def parel_worker(db_session):
    """Worker whose label maps to the parel column."""
    return user_service.create_user("w_parel", "pass", ROLE_WORKER, "Parel")


@pytest.fixture(scope='function')
def mahim_worker(db_session):
    return user_service.create_user("w_mahim", "pass", ROLE_WORKER, "MAHIM")


@pytest.fixture(scope='function')
def loose_worker(db_session):
    """Worker whose label does not map to any location column."""
    return user_service.create_user("w_mix", "pass", ROLE_WORKER, "Mix")


def _submit(worker, for_date, lines, payments=None, *, buyback=None, approve=False):
    for sku, rate in (buyback or {}).items():
        rate_service.set_buyback_rate(worker.id, sku, rate)
    submission_id = submit_daily_entry(worker.id, for_date, lines, payments)
    if approve:
        approve_submission(submission_id)
    return submission_id


@pytest.fixture(scope='function')
def submit(db_session):
    """Set buyback rates, submit, optionally approve. Returns the submission id."""
    return _submit
