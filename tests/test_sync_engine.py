"""Unit tests for the SyncEngine and connectivity tracking.

Tests single upserts, the single-flight sweep, partial failure handling,
offline mode, connection probes, best-effort deletes and the background loop.
"""

import threading
import time
from unittest import mock

import pytest

from conftest import MockResponse
from location_client.config import ClientConfig
from location_client.connectivity import ConnectionState, ConnectivityTracker
from location_client.errors import ConnectivityError, NotFoundError, ServerError
from location_client.record import LocationRecord
from location_client.remote import LocationServiceClient
from location_client.sync_engine import SyncEngine, SyncResult


def _record(record_id, **overrides):
    data = dict(
        id=record_id,
        type='plant',
        note=f'note {record_id}',
        lat=38.84,
        lng=-77.18,
        timestamp='2024-01-01T00:00:00Z',
    )
    data.update(overrides)
    return LocationRecord(**data)


@pytest.fixture
def config(storage):
    return ClientConfig(storage)


@pytest.fixture
def remote(transport):
    return LocationServiceClient('http://tracker.test', session=transport)


@pytest.fixture
def engine(store, config, remote):
    engine = SyncEngine(store, config, remote)
    yield engine
    if engine.is_running:
        engine.stop()


@pytest.fixture
def mock_remote():
    return mock.MagicMock(spec=LocationServiceClient)


@pytest.fixture
def mock_engine(store, config, mock_remote):
    return SyncEngine(store, config, mock_remote)


class TestConnectivityTracker:
    """Tests for ConnectivityTracker."""

    def test_initial_state_offline(self):
        assert ConnectivityTracker().state == ConnectionState.OFFLINE

    def test_transitions_fire_callback(self):
        callback = mock.MagicMock()
        tracker = ConnectivityTracker(on_state_changed=callback)

        tracker.begin_sync()
        tracker.set_online(True)
        tracker.set_online(True)

        assert callback.call_args_list == [
            mock.call(ConnectionState.SYNCING),
            mock.call(ConnectionState.ONLINE),
        ]
        assert tracker.is_online is True

    def test_callback_errors_are_contained(self):
        tracker = ConnectivityTracker(on_state_changed=mock.MagicMock(side_effect=RuntimeError))
        tracker.set_online(True)
        assert tracker.is_online is True


class TestPushOne:
    """Tests for the immediate upsert after creation."""

    def test_push_marks_synced(self, engine, store, transport):
        record = store.add(_record(1))

        assert engine.push_one(record) is True
        assert store.get(1).synced is True
        assert transport.calls_for('POST', '/api/locations') == [('POST', '/api/locations')]

    def test_push_failure_leaves_pending(self, engine, store, transport):
        """Test a failed push does not raise and leaves the record pending."""
        transport.fail_ids.add(1)
        record = store.add(_record(1))

        assert engine.push_one(record) is False
        assert store.get(1).synced is False

    def test_push_skipped_when_offline(self, engine, store, config, transport):
        config.offline_mode = True
        record = store.add(_record(1))

        assert engine.push_one(record) is False
        assert transport.calls == []


class TestSyncAll:
    """Tests for the pending-record sweep."""

    def test_sync_all_success(self, engine, store, config):
        for i in range(1, 4):
            store.add(_record(i))
        config.offline_mode = True

        result = engine.sync_all()

        assert result == SyncResult(succeeded=3, failed=0)
        assert store.pending() == []
        assert engine.connectivity.state == ConnectionState.ONLINE
        assert config.offline_mode is False
        assert engine.last_sync is not None

    def test_sync_all_persists_once(self, engine, store):
        store.add(_record(1))
        store.add(_record(2))

        with mock.patch.object(store, 'persist', wraps=store.persist) as persist:
            engine.sync_all()

        assert persist.call_count == 1

    def test_one_failure_among_n(self, engine, store, transport):
        """Test N-1 records flip and the state goes offline on one failure."""
        for i in range(1, 6):
            store.add(_record(i))
        transport.fail_ids.add(3)

        result = engine.sync_all()

        assert result.succeeded == 4
        assert result.failed == 1
        assert [r.id for r in store.pending()] == [3]
        assert engine.connectivity.state == ConnectionState.OFFLINE

    def test_nothing_pending(self, engine, transport):
        result = engine.sync_all()

        assert result.attempted == 0
        assert transport.calls == []
        assert engine.connectivity.state == ConnectionState.ONLINE

    def test_single_flight(self, mock_engine, mock_remote, store):
        """Test a concurrent sweep reports already running and nothing is sent twice."""
        store.add(_record(1))
        store.add(_record(2))

        entered = threading.Event()
        release = threading.Event()

        def slow_upsert(record):
            entered.set()
            release.wait(timeout=5)
            return {}

        mock_remote.upsert.side_effect = slow_upsert

        results = []
        worker = threading.Thread(target=lambda: results.append(mock_engine.sync_all()))
        worker.start()
        assert entered.wait(timeout=5)

        second = mock_engine.sync_all()
        release.set()
        worker.join(timeout=5)

        assert second.already_running is True
        assert results[0].succeeded == 2
        submitted = [c.args[0].id for c in mock_remote.upsert.call_args_list]
        assert sorted(submitted) == [1, 2]

    def test_unexpected_error_counts_as_failure(self, mock_engine, mock_remote, store):
        """Test an unexpected error fails one record and the sweep carries on."""
        store.add(_record(1))
        store.add(_record(2))

        def upsert(record):
            if record.id == 1:
                raise AttributeError("'list' object has no attribute 'get'")
            return {}

        mock_remote.upsert.side_effect = upsert

        result = mock_engine.sync_all()

        assert result.failed == 1
        assert result.succeeded == 1
        assert [r.id for r in store.pending()] == [1]
        assert mock_engine.is_syncing is False
        assert mock_engine.connectivity.state == ConnectionState.OFFLINE

        mock_remote.upsert.side_effect = None
        assert mock_engine.sync_all().succeeded == 1

    def test_push_unexpected_error_leaves_pending(self, mock_engine, mock_remote, store):
        record = _record(1)
        store.add(record)
        mock_remote.upsert.side_effect = RuntimeError('boom')

        assert mock_engine.push_one(record) is False
        assert store.get(1).synced is False

    def test_non_object_body_fails_sweep_item(self, store, config):
        session = mock.MagicMock()
        session.headers = {}
        session.request.return_value = MockResponse(200, ['not', 'an', 'object'])
        engine = SyncEngine(store, config, LocationServiceClient('http://x', session=session))
        store.add(_record(1))

        assert engine.push_one(store.get(1)) is False
        result = engine.sync_all()

        assert result.failed == 1
        assert store.get(1).synced is False

    def test_sync_complete_callback(self, store, config, mock_remote):
        callback = mock.MagicMock()
        engine = SyncEngine(store, config, mock_remote, on_sync_complete=callback)
        store.add(_record(1))

        engine.sync_all()

        callback.assert_called_once_with(SyncResult(succeeded=1))


class TestAutoSync:
    """Tests for the timer tick."""

    def test_tick_syncs_pending(self, mock_engine, mock_remote, store):
        store.add(_record(1))

        result = mock_engine.auto_sync()

        assert result.succeeded == 1

    def test_tick_idle_without_pending(self, mock_engine, mock_remote):
        assert mock_engine.auto_sync() is None
        mock_remote.upsert.assert_not_called()

    def test_tick_offline_probes_instead(self, mock_engine, mock_remote, store, config):
        """Test offline mode skips the sweep and only probes the service."""
        store.add(_record(1))
        config.offline_mode = True
        mock_remote.health.side_effect = ConnectivityError('down')

        assert mock_engine.auto_sync() is None
        mock_remote.upsert.assert_not_called()
        mock_remote.health.assert_called_once()
        assert config.offline_mode is True

    def test_tick_skipped_while_syncing(self, mock_engine, mock_remote, store):
        store.add(_record(1))
        mock_engine._sync_lock.acquire()
        try:
            assert mock_engine.auto_sync() is None
        finally:
            mock_engine._sync_lock.release()
        mock_remote.upsert.assert_not_called()


class TestCheckConnection:
    """Tests for the health probe."""

    def test_online(self, engine, config):
        config.offline_mode = True

        assert engine.check_connection() is True
        assert engine.connectivity.is_online
        assert config.offline_mode is False

    def test_offline(self, mock_engine, mock_remote, config, store):
        store.add(_record(1))
        mock_remote.health.side_effect = ServerError('503', status_code=503)

        assert mock_engine.check_connection() is False
        assert config.offline_mode is True
        assert mock_engine.connectivity.state == ConnectionState.OFFLINE
        assert store.get(1).synced is False

    def test_unexpected_error_means_offline(self, mock_engine, mock_remote, config):
        mock_remote.health.side_effect = ValueError('bad payload')

        assert mock_engine.check_connection() is False
        assert config.offline_mode is True


class TestDeleteRemote:
    """Tests for best-effort remote deletes."""

    def test_delete(self, engine, store, transport):
        record = store.add(_record(1))
        engine.push_one(record)

        assert engine.delete_remote(1) is True
        assert transport.calls_for('DELETE') == [('DELETE', '/api/locations/1')]

    def test_delete_unknown_counts_as_done(self, mock_engine, mock_remote):
        mock_remote.delete.side_effect = NotFoundError('gone')
        assert mock_engine.delete_remote(1) is True

    def test_delete_failure_not_retried(self, mock_engine, mock_remote):
        mock_remote.delete.side_effect = ConnectivityError('down')

        assert mock_engine.delete_remote(1) is False
        assert mock_remote.delete.call_count == 1

    def test_delete_unexpected_error(self, mock_engine, mock_remote):
        mock_remote.delete.side_effect = RuntimeError('boom')

        assert mock_engine.delete_remote(1) is False

    def test_delete_skipped_offline(self, mock_engine, mock_remote, config):
        config.offline_mode = True

        assert mock_engine.delete_remote(1) is False
        mock_remote.delete.assert_not_called()


class TestBackgroundLoop:
    """Tests for start/stop of the auto-sync thread."""

    def test_start_and_stop(self, mock_engine, config):
        config.sync_interval_ms = 10
        with mock.patch.object(mock_engine, 'auto_sync') as tick:
            mock_engine.start()
            time.sleep(0.2)
            mock_engine.stop()

        assert tick.call_count >= 1
        assert mock_engine.is_running is False

    def test_start_twice_warns(self, mock_engine):
        mock_engine._running = True

        with mock.patch('location_client.sync_engine.logger') as mock_logger:
            mock_engine.start()
            mock_logger.warning.assert_called()
        mock_engine._running = False

    def test_loop_survives_tick_errors(self, mock_engine, config):
        config.sync_interval_ms = 10
        with mock.patch.object(mock_engine, 'auto_sync', side_effect=RuntimeError('boom')) as tick:
            mock_engine.start()
            time.sleep(0.2)
            mock_engine.stop()

        assert tick.call_count >= 2

    def test_status(self, mock_engine):
        status = mock_engine.get_status()

        assert status['running'] is False
        assert status['connection'] == 'offline'
        assert status['sync_interval'] == 30.0
