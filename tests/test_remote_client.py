"""
Tests for LocationServiceClient.

Happy paths run against the real Flask app through FlaskTransport; failure
mapping uses a mocked session.
"""

from unittest import mock

import pytest
import requests

from conftest import MockResponse
from location_client.errors import (
    ConnectivityError,
    NotFoundError,
    RemoteAuthenticationError,
    RemoteResponseError,
    RemoteTimeoutError,
    ServerError,
    ValidationError,
)
from location_client.record import LocationRecord
from location_client.remote import LocationServiceClient


@pytest.fixture
def service(transport):
    return LocationServiceClient('http://tracker.test/', session=transport)


@pytest.fixture
def kudzu():
    return LocationRecord(
        id=1700000000000,
        type='plant',
        note='kudzu',
        lat=38.84,
        lng=-77.18,
        timestamp='2023-11-14T22:13:20Z',
    )


def _mock_session(response=None, side_effect=None):
    session = mock.MagicMock()
    session.headers = {}
    if side_effect is not None:
        session.request.side_effect = side_effect
    else:
        session.request.return_value = response
    return session


class TestClientInit:
    """Tests for client construction."""

    def test_base_url_trailing_slash(self, service):
        assert service.base_url == 'http://tracker.test'

    def test_default_session_has_no_retries(self):
        client = LocationServiceClient('http://tracker.test')

        adapter = client.session.get_adapter('http://tracker.test/api/health')
        assert adapter.max_retries.total == 0

    def test_api_key_header(self):
        session = _mock_session(MockResponse(200, {}))
        client = LocationServiceClient('http://x', api_key='k1', session=session)

        assert session.headers['X-API-Key'] == 'k1'
        client.set_api_key('')
        assert 'X-API-Key' not in session.headers

    def test_repr(self, service):
        assert 'tracker.test' in repr(service)


class TestClientAgainstService:
    """Tests running against the Flask app."""

    def test_health(self, service):
        assert service.health()['status'] == 'ok'

    def test_upsert_and_get(self, service, kudzu):
        stored = service.upsert(kudzu)

        assert stored['id'] == kudzu.id
        assert service.get_location(kudzu.id)['note'] == 'kudzu'

    def test_list_with_type(self, service, kudzu):
        service.upsert(kudzu)

        assert [loc['id'] for loc in service.list_locations('plant')] == [kudzu.id]
        assert service.list_locations('litter') == []

    def test_update_and_delete(self, service, kudzu):
        service.upsert(kudzu)

        updated = service.update_location(kudzu.id, address='Falls Church, VA')
        assert updated['address'] == 'Falls Church, VA'

        service.delete(kudzu.id)
        with pytest.raises(NotFoundError):
            service.get_location(kudzu.id)

    def test_nearby_and_stats(self, service, kudzu):
        service.upsert(kudzu)

        result = service.nearby(38.84, -77.18, radius=0)
        assert result['count'] == 1
        assert service.stats()['plants'] == 1

    def test_export_import(self, service, kudzu):
        service.upsert(kudzu)
        exported = service.export()
        assert service.delete_all() == 1

        result = service.import_locations(exported)

        assert result['imported'] == 1
        assert service.list_locations()[0]['id'] == kudzu.id

    def test_bad_request_maps_to_validation(self, service, kudzu):
        service.upsert(kudzu)
        with pytest.raises(ValidationError):
            service.update_location(1700000000000)

    def test_auth_failure(self, service, secured_app, kudzu):
        with pytest.raises(RemoteAuthenticationError) as exc_info:
            service.upsert(kudzu)
        assert exc_info.value.status_code == 401

    def test_auth_success(self, transport, secured_app, kudzu):
        client = LocationServiceClient('http://tracker.test', api_key='test-secret', session=transport)
        assert client.upsert(kudzu)['id'] == kudzu.id


class TestClientErrorMapping:
    """Tests for transport failure translation."""

    def test_timeout(self):
        client = LocationServiceClient('http://x', session=_mock_session(side_effect=requests.Timeout()))
        with pytest.raises(RemoteTimeoutError):
            client.health()

    def test_connection_error(self):
        session = _mock_session(side_effect=requests.ConnectionError('refused'))
        client = LocationServiceClient('http://x', session=session)

        with pytest.raises(ConnectivityError) as exc_info:
            client.health()
        assert not isinstance(exc_info.value, RemoteTimeoutError)

    def test_server_error(self):
        client = LocationServiceClient('http://x', session=_mock_session(MockResponse(503, text='down')))

        with pytest.raises(ServerError) as exc_info:
            client.health()
        assert exc_info.value.status_code == 503
        assert exc_info.value.response_body == 'down'

    def test_other_status(self):
        client = LocationServiceClient('http://x', session=_mock_session(MockResponse(409, text='conflict')))
        with pytest.raises(RemoteResponseError):
            client.stats()

    def test_non_json_success(self):
        client = LocationServiceClient('http://x', session=_mock_session(MockResponse(200, text='OK')))
        assert client.health() == {'status': 'ok', 'raw': 'OK'}

    @pytest.mark.parametrize('body', [['not', 'an', 'object'], 'text', 42])
    def test_non_object_success_rejected(self, body, kudzu):
        client = LocationServiceClient('http://x', session=_mock_session(MockResponse(200, body)))

        with pytest.raises(RemoteResponseError) as exc_info:
            client.upsert(kudzu)
        assert exc_info.value.status_code == 200

    def test_export_accepts_list(self):
        client = LocationServiceClient('http://x', session=_mock_session(MockResponse(200, [{'id': 1}])))
        assert client.export() == [{'id': 1}]

    def test_request_uses_timeout(self):
        session = _mock_session(MockResponse(200, {'stats': {}}))
        client = LocationServiceClient('http://x', timeout=3, session=session)

        client.stats()

        _, kwargs = session.request.call_args
        assert kwargs['timeout'] == 3
