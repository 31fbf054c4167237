"""Test fixtures for the refuel log."""

import pytest
import sys
from pathlib import Path

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from app import create_app
from models import db


@pytest.fixture
def app():
    """Create Flask app for testing."""
    app = create_app('testing')

    with app.app_context():
        db.create_all()
        yield app

        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """Create test CLI runner."""
    return app.test_cli_runner()


@pytest.fixture
def user_headers():
    """Headers identifying the primary test user."""
    return {'X-User-Id': 'user-1'}


@pytest.fixture
def other_user_headers():
    """Headers identifying a second, unrelated user."""
    return {'X-User-Id': 'user-2'}
