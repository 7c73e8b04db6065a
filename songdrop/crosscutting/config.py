import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from dotenv import dotenv_values


DEFAULT_TOKEN_URL = 'https://accounts.spotify.com/api/token'


class ConfigError(Exception):
    """Configuration error."""
    pass


@dataclass(frozen=True)
class Settings:
    """Runtime configuration resolved from the environment and an optional .env file."""

    spotify_client_id: Optional[str] = None
    spotify_client_secret: Optional[str] = None
    spotify_token_url: str = DEFAULT_TOKEN_URL
    gemini_api_key: Optional[str] = None
    db_path: str = 'songdrop.sqlite3'
    log_level: str = 'INFO'
    log_file: Optional[str] = None
    host: str = 'localhost'
    port: int = 3000
    request_timeout: int = 15

    @property
    def ai_available(self) -> bool:
        return bool(self.gemini_api_key)

    def get_spotify_scopes(self) -> list:
        """Scopes the account must have granted for the add pipeline."""
        return [
            'playlist-read-private',      # List private playlists
            'playlist-modify-public',     # Add to public playlists
            'playlist-modify-private',    # Add to private playlists
        ]

    def require_spotify_client(self) -> Dict[str, str]:
        """Return client credentials needed for token refresh."""
        if not self.spotify_client_id:
            raise ConfigError("SPOTIFY_CLIENT_ID not found in environment")
        if not self.spotify_client_secret:
            raise ConfigError("SPOTIFY_CLIENT_SECRET not found in environment")
        return {
            'client_id': self.spotify_client_id,
            'client_secret': self.spotify_client_secret,
        }

    def summary(self) -> Dict[str, Any]:
        """Get configuration summary (without sensitive data)."""
        return {
            'db_path': self.db_path,
            'token_url': self.spotify_token_url,
            'log_level': self.log_level,
            'log_file': self.log_file,
            'host': self.host,
            'port': self.port,
            'request_timeout': self.request_timeout,
            'has_spotify_client': bool(self.spotify_client_id and self.spotify_client_secret),
            'ai_available': self.ai_available,
            'spotify_scopes': self.get_spotify_scopes(),
        }


def _int_value(values: Mapping[str, Optional[str]], key: str, default: int) -> int:
    raw = values.get(key)
    if raw is None or not str(raw).strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{key} must be an integer, got {raw!r}")


def _str_value(values: Mapping[str, Optional[str]], key: str,
               default: Optional[str] = None) -> Optional[str]:
    raw = values.get(key)
    if raw is None or not str(raw).strip():
        return default
    return str(raw).strip()


def load_settings(env_file: Optional[str] = None,
                  environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Load settings. Process environment wins over values from the .env file."""
    values: Dict[str, Optional[str]] = {}

    path = Path(env_file) if env_file else Path.cwd() / '.env'
    if path.exists():
        values.update(dotenv_values(path))
    elif env_file:
        raise ConfigError(f"Env file {env_file} does not exist")

    values.update(os.environ if environ is None else environ)

    log_level = _str_value(values, 'SONGDROP_LOG_LEVEL', 'INFO').upper()
    if log_level not in ('DEBUG', 'INFO', 'WARNING', 'ERROR'):
        raise ConfigError(f"Unsupported SONGDROP_LOG_LEVEL: {log_level}")

    return Settings(
        spotify_client_id=_str_value(values, 'SPOTIFY_CLIENT_ID'),
        spotify_client_secret=_str_value(values, 'SPOTIFY_CLIENT_SECRET'),
        spotify_token_url=_str_value(values, 'SPOTIFY_TOKEN_URL', DEFAULT_TOKEN_URL),
        gemini_api_key=_str_value(values, 'GEMINI_API_KEY'),
        db_path=_str_value(values, 'SONGDROP_DB_PATH', 'songdrop.sqlite3'),
        log_level=log_level,
        log_file=_str_value(values, 'SONGDROP_LOG_FILE'),
        host=_str_value(values, 'SONGDROP_HOST', 'localhost'),
        port=_int_value(values, 'SONGDROP_PORT', 3000),
        request_timeout=_int_value(values, 'SONGDROP_REQUEST_TIMEOUT', 15),
    )


# Global instance, resolved lazily
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get global settings instance."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def setup_config(env_file: Optional[str] = None) -> Settings:
    """Reload global settings, optionally from a custom .env file."""
    global _settings
    _settings = load_settings(env_file)
    return _settings
