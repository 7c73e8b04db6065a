import pytest

from songdrop.crosscutting import config
from songdrop.crosscutting.config import ConfigError, DEFAULT_TOKEN_URL, load_settings, setup_config


class TestLoadSettings:
    """Tests for environment and .env resolution."""

    def test_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        settings = load_settings(environ={})

        assert settings.spotify_client_id is None
        assert settings.spotify_token_url == DEFAULT_TOKEN_URL
        assert settings.db_path == 'songdrop.sqlite3'
        assert settings.port == 3000
        assert settings.request_timeout == 15
        assert settings.log_level == 'INFO'
        assert settings.ai_available is False

    def test_env_file_values(self, tmp_path):
        env_file = tmp_path / "custom.env"
        env_file.write_text(
            "SPOTIFY_CLIENT_ID=cid\n"
            "SPOTIFY_CLIENT_SECRET=csecret\n"
            "GEMINI_API_KEY=gkey\n"
            "SONGDROP_PORT=8080\n"
            "SONGDROP_LOG_LEVEL=debug\n"
        )

        settings = load_settings(str(env_file), environ={})

        assert settings.spotify_client_id == 'cid'
        assert settings.port == 8080
        assert settings.log_level == 'DEBUG'
        assert settings.ai_available is True
        assert settings.require_spotify_client() == {'client_id': 'cid', 'client_secret': 'csecret'}

    def test_process_environment_wins(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("SONGDROP_DB_PATH=from-file.sqlite3\n")

        settings = load_settings(str(env_file), environ={'SONGDROP_DB_PATH': 'from-env.sqlite3'})

        assert settings.db_path == 'from-env.sqlite3'

    def test_dotenv_in_working_directory(self, tmp_path, monkeypatch):
        (tmp_path / ".env").write_text("SONGDROP_HOST=0.0.0.0\n")
        monkeypatch.chdir(tmp_path)

        assert load_settings(environ={}).host == '0.0.0.0'

    def test_missing_explicit_env_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_settings(str(tmp_path / "missing.env"), environ={})

    def test_invalid_integer(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        with pytest.raises(ConfigError):
            load_settings(environ={'SONGDROP_PORT': 'eighty'})

    def test_invalid_log_level(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        with pytest.raises(ConfigError):
            load_settings(environ={'SONGDROP_LOG_LEVEL': 'TRACE'})

    def test_blank_values_use_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        settings = load_settings(environ={'SONGDROP_PORT': ' ', 'GEMINI_API_KEY': ''})

        assert settings.port == 3000
        assert settings.ai_available is False


class TestSettings:

    def test_require_spotify_client_missing(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        settings = load_settings(environ={'SPOTIFY_CLIENT_ID': 'cid'})

        with pytest.raises(ConfigError):
            settings.require_spotify_client()

    def test_summary_hides_secrets(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        settings = load_settings(environ={
            'SPOTIFY_CLIENT_ID': 'cid',
            'SPOTIFY_CLIENT_SECRET': 'super-secret-value',
            'GEMINI_API_KEY': 'gemini-secret-value',
        })

        summary = settings.summary()

        assert summary['has_spotify_client'] is True
        assert summary['ai_available'] is True
        assert 'super-secret-value' not in str(summary)
        assert 'gemini-secret-value' not in str(summary)
        assert 'playlist-modify-private' in summary['spotify_scopes']


class TestGlobalSettings:

    def teardown_method(self):
        config._settings = None

    def test_setup_config_replaces_global(self, tmp_path, monkeypatch):
        env_file = tmp_path / "a.env"
        env_file.write_text("SONGDROP_PORT=4000\n")

        settings = setup_config(str(env_file))

        assert config.get_settings() is settings
        assert config.get_settings().port == 4000
