"""
Pytest Fixtures for Location Tracker Tests

Provides fixtures for the Flask app, database, client-side storage and a
transport that drives the HTTP client against the Flask test client.
"""

import os
import tempfile
from urllib.parse import urlsplit

import pytest

# Set testing environment before imports
os.environ['FLASK_ENV'] = 'testing'
os.environ['TEST_DATABASE_URL'] = 'sqlite:///:memory:'

PLANT_PAYLOAD = {
    'id': 1700000000000,
    'type': 'plant',
    'note': 'kudzu',
    'latitude': 38.84,
    'longitude': -77.18,
    'timestamp': '2023-11-14T22:13:20Z',
}


class MockResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, status_code=200, json_data=None, text=None):
        self.status_code = status_code
        self._json = json_data
        self.text = text if text is not None else ''

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._json is None:
            raise ValueError('No JSON body')
        return self._json

    def raise_for_status(self):
        import requests
        if not self.ok:
            raise requests.HTTPError(f'{self.status_code} Error')


class FlaskTransport:
    """
    Session-like object that routes requests to a Flask test client.

    Records every call as (method, path). Upserts for ids listed in
    ``fail_ids`` are answered with HTTP 500 without reaching the app.
    """

    def __init__(self, test_client):
        self._client = test_client
        self.headers = {}
        self.calls = []
        self.fail_ids = set()
        self.closed = False

    def request(self, method, url, params=None, json=None, timeout=None):
        path = urlsplit(url).path
        self.calls.append((method, path))

        if method == 'POST' and isinstance(json, dict) and json.get('id') in self.fail_ids:
            return MockResponse(500, {'success': False, 'error': 'Induced failure'}, 'Induced failure')

        headers = {k: v for k, v in self.headers.items() if k.lower() != 'content-type'}
        response = self._client.open(
            path,
            method=method,
            query_string=params,
            json=json,
            headers=headers,
        )
        return MockResponse(
            response.status_code,
            response.get_json(silent=True),
            response.get_data(as_text=True),
        )

    def calls_for(self, method, path_prefix=''):
        return [c for c in self.calls if c[0] == method and c[1].startswith(path_prefix)]

    def close(self):
        self.closed = True


@pytest.fixture(autouse=True)
def clean_client_env(monkeypatch):
    """Keep developer environment overrides out of the tests."""
    for var in ('TRACKER_SERVER_URL', 'TRACKER_API_KEY', 'TRACKER_DATA_DIR', 'API_KEY'):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture(scope='function')
def app():
    """Create application for testing with in-memory SQLite database."""
    from location_service.app import create_app
    from location_service.extensions import db

    app = create_app('testing')

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create database session for testing."""
    from location_service.extensions import db
    with app.app_context():
        yield db.session


@pytest.fixture
def secured_app(app):
    """Application with API key authentication switched on."""
    app.config['API_KEY'] = 'test-secret'
    return app


@pytest.fixture
def plant_payload():
    return dict(PLANT_PAYLOAD)


@pytest.fixture
def data_dir():
    """Create a temporary client data directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def storage(data_dir):
    from location_client.storage import KeyValueStorage
    return KeyValueStorage(data_dir)


@pytest.fixture
def store(storage):
    from location_client.store import LocalStore
    return LocalStore(storage)


@pytest.fixture
def transport(client):
    return FlaskTransport(client)


@pytest.fixture
def geocoder_session():
    """Session stub for reverse geocoding that always fails."""
    from unittest import mock
    import requests

    session = mock.MagicMock()
    session.headers = {}
    session.get.side_effect = requests.ConnectionError('geocoder offline')
    return session


@pytest.fixture
def app_context(data_dir, transport, geocoder_session):
    """Client AppContext wired to the Flask test client."""
    from location_client.context import AppContext

    context = AppContext(
        data_dir=data_dir,
        session=transport,
        geocoder_session=geocoder_session,
    )
    yield context
    context.sync_engine.stop()
    context.geocoder.shutdown(wait=True)
