"""
Pytest configuration and fixtures.
Ensures tests use an isolated database file per test, not the real database.
"""

import os
import pytest

os.environ['FLASK_ENV'] = 'test'

FACILITY_ID = 'mortuarium-test'
OTHER_FACILITY_ID = 'mortuarium-ander'


@pytest.fixture
def app(tmp_path):
    """Create test application with an isolated database file."""
    from app import create_app
    from database import init_db

    app = create_app('test')
    app.config['TESTING'] = True
    app.config['DATABASE_PATH'] = str(tmp_path / 'coolcell_test.db')

    with app.app_context():
        init_db()

    yield app


@pytest.fixture
def app_context(app):
    """Push an application context for model-level tests."""
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def auth_headers():
    """Headers identifying the acting user to the API."""
    return {'X-User-Id': 'medewerker-1'}


@pytest.fixture
def make_cell(app_context):
    """Factory creating cells in the test facility."""
    from models.cool_cell import create_cool_cell

    def _make_cell(label='Koelcel 1', facility_id=FACILITY_ID):
        return create_cool_cell(facility_id, label)

    return _make_cell


@pytest.fixture
def cell(make_cell):
    """A single FREE cell in the test facility."""
    return make_cell()
