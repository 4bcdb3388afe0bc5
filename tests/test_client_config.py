"""Unit tests for the client configuration blob and service configuration."""

from pathlib import Path

import pytest

from location_client.config import DEFAULT_CONFIG, ClientConfig
from location_client.storage import CONFIG_KEY


class TestClientConfig:
    """Tests for ClientConfig."""

    def test_defaults(self, storage):
        """Test defaults when no blob exists."""
        config = ClientConfig(storage)

        assert config.server_url == 'http://localhost:3000'
        assert config.api_key == ''
        assert config.sync_interval_ms == 30000
        assert config.sync_interval == 30.0
        assert config.offline_mode is False

    def test_save_and_reload(self, storage):
        config = ClientConfig(storage)
        config.server_url = 'http://tracker.example.com/'
        config.api_key = 'abc'
        config.sync_interval_ms = 60000
        config.save()

        reloaded = ClientConfig(storage)

        assert reloaded.server_url == 'http://tracker.example.com'
        assert reloaded.api_key == 'abc'
        assert reloaded.sync_interval == 60.0

    def test_blob_uses_camel_case_keys(self, storage):
        config = ClientConfig(storage)
        config.save()

        assert set(storage.load(CONFIG_KEY)) == set(DEFAULT_CONFIG)

    def test_save_offline_mode_only(self, storage):
        storage.save(CONFIG_KEY, {'serverUrl': 'http://stored', 'offlineMode': True})
        config = ClientConfig(storage)
        config.server_url = 'http://run-only'
        config.offline_mode = False

        config.save_offline_mode()

        stored = storage.load(CONFIG_KEY)
        assert stored['offlineMode'] is False
        assert stored['serverUrl'] == 'http://stored'

    def test_corrupt_blob_falls_back(self, storage, data_dir):
        (Path(data_dir) / f'{CONFIG_KEY}.json').write_text('nope')

        config = ClientConfig(storage)

        assert config.to_dict() == DEFAULT_CONFIG

    def test_unknown_keys_ignored(self, storage):
        storage.save(CONFIG_KEY, {'serverUrl': 'http://a', 'colour': 'green'})

        config = ClientConfig(storage)

        assert config.server_url == 'http://a'
        assert 'colour' not in config.to_dict()

    def test_env_overrides(self, storage, monkeypatch):
        monkeypatch.setenv('TRACKER_SERVER_URL', 'http://env-host:3000')
        monkeypatch.setenv('TRACKER_API_KEY', 'env-key')

        config = ClientConfig(storage)

        assert config.server_url == 'http://env-host:3000'
        assert config.api_key == 'env-key'

    @pytest.mark.parametrize('value', [0, -5, 1.5, True, '30000'])
    def test_invalid_interval(self, storage, value):
        config = ClientConfig(storage)
        with pytest.raises(ValueError):
            config.sync_interval_ms = value

    def test_bad_stored_interval_uses_default(self, storage):
        storage.save(CONFIG_KEY, {'syncInterval': 'soon'})
        assert ClientConfig(storage).sync_interval_ms == 30000


class TestServiceConfig:
    """Tests for the service configuration classes."""

    def test_get_config_by_name(self):
        from location_service.config import DevelopmentConfig, TestingConfig, get_config

        assert get_config('testing') is TestingConfig
        assert get_config('unknown') is DevelopmentConfig

    def test_database_url_from_env(self, monkeypatch):
        from location_service.config import _database_url

        monkeypatch.setenv('DATABASE_URL', 'postgres://u:p@db/locations')
        assert _database_url('/tmp/x.db') == 'postgresql://u:p@db/locations'

    def test_database_url_from_parts(self, monkeypatch):
        from location_service.config import _database_url

        monkeypatch.delenv('DATABASE_URL', raising=False)
        monkeypatch.delenv('DB_PORT', raising=False)
        monkeypatch.setenv('DB_HOST', 'db.local')
        monkeypatch.setenv('DB_NAME', 'tracker')
        monkeypatch.setenv('DB_USER', 'app')
        monkeypatch.setenv('DB_PASSWORD', 'pw')

        assert _database_url('/tmp/x.db') == 'postgresql://app:pw@db.local:5432/tracker'

    def test_database_url_sqlite_fallback(self, monkeypatch):
        from location_service.config import _database_url

        monkeypatch.delenv('DATABASE_URL', raising=False)
        monkeypatch.delenv('DB_HOST', raising=False)
        assert _database_url('/tmp/x.db') == 'sqlite:////tmp/x.db'

    def test_production_requires_api_key(self, monkeypatch):
        from location_service.config import ProductionConfig

        monkeypatch.delenv('API_KEY', raising=False)
        monkeypatch.setenv('DATABASE_URL', 'postgresql://db/x')

        with pytest.raises(ValueError):
            ProductionConfig.init_app(None)
