"""
Shared pytest fixtures for the FieldProgress test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - project: Empty FP01 project
    - demo_project: Seeded FP01 demo tree with progress
"""

import pytest

from fieldprogress import create_app
from fieldprogress.models import db as _db


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
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def project():
    """Create and return an empty FP01 project."""
    from fieldprogress.models.project import Project
    proj = Project(code="FP01", name="FieldProgress Demo", status="active")
    _db.session.add(proj)
    _db.session.commit()
    return proj


@pytest.fixture()
def demo_project():
    """Seed the FP01 demo hierarchy (10 activities across 3 systems)."""
    from fieldprogress.services.project_service import seed_demo_project
    return seed_demo_project()
