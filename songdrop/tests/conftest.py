import os
import sys
import pytest


def _ensure_project_root_on_sys_path() -> None:
    here = os.path.dirname(__file__)
    project_root = os.path.abspath(os.path.join(here, "..", ".."))
    if project_root not in sys.path:
        sys.path.insert(0, project_root)


_ensure_project_root_on_sys_path()


@pytest.fixture(autouse=True)
def _clear_songdrop_env():
    """Ensure credentials and SongDrop settings do not leak across tests.
    A developer .env may set these variables; clear before each test and restore
    afterwards so tests explicitly setting them remain deterministic.
    """
    keys = [
        'SPOTIFY_CLIENT_ID', 'SPOTIFY_CLIENT_SECRET', 'SPOTIFY_TOKEN_URL', 'GEMINI_API_KEY',
        'SONGDROP_DB_PATH', 'SONGDROP_LOG_LEVEL', 'SONGDROP_LOG_FILE', 'SONGDROP_HOST',
        'SONGDROP_PORT', 'SONGDROP_REQUEST_TIMEOUT',
    ]
    backup = {k: os.environ.get(k) for k in keys}
    for k in keys:
        os.environ.pop(k, None)
    try:
        yield
    finally:
        for k, v in backup.items():
            if v is None:
                os.environ.pop(k, None)
            else:
                os.environ[k] = v
