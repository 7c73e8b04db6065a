import os
import logging
from typing import Any, Dict, Optional, Tuple
from datetime import datetime
from flask import Flask, request, jsonify

from songdrop.application.orchestrator import AddOrchestrator, AddRequest
from songdrop.domain.errors import SongDropError

TEXT_HEADERS = {'Content-Type': 'text/plain; charset=utf-8'}
TRUTHY = {'1', 'true', 'yes', 'on'}


def extract_api_key(args: Any, headers: Any) -> Optional[str]:
    """API key from ?token=, else from an Authorization: Bearer header."""
    token = args.get('token')
    if token:
        return token

    auth_header = headers.get('Authorization')
    if auth_header:
        parts = auth_header.split(' ')
        if len(parts) == 2 and parts[0].lower() == 'bearer':
            return parts[1]
    return None


def _text_param(value: Any) -> Optional[str]:
    # JSON bodies may carry numbers, lists or objects; only strings name a song or playlist
    return value if isinstance(value, str) else None


def parse_flag(value: Any) -> bool:
    if value is None:
        return False
    return str(value).strip().lower() in TRUTHY


class HTTPServer:
    """HTTP server exposing the add-to-playlist endpoint and health checks."""

    def __init__(self, orchestrator: Optional[AddOrchestrator] = None,
                 host: str = 'localhost', port: int = 3000, debug: bool = False):
        """Initialize HTTP server.

        Args:
            orchestrator: Add pipeline; built from settings on first use when omitted
            host: Bind address
            port: Bind port
            debug: Flask debug mode
        """
        self.host = host
        self.port = port
        self.debug = debug
        self.app = Flask(__name__)
        self.logger = logging.getLogger(__name__)
        self._orchestrator = orchestrator

        # Version info
        self.version = "0.1.0"
        self.commit = os.getenv('GIT_COMMIT', 'unknown')

        self._setup_routes()

    @property
    def orchestrator(self) -> AddOrchestrator:
        if self._orchestrator is None:
            from songdrop.bootstrap import build_orchestrator
            self._orchestrator = build_orchestrator()
        return self._orchestrator

    def _read_params(self) -> Dict[str, Optional[str]]:
        if request.method == 'GET':
            source = request.args
        elif request.is_json:
            data = request.get_json(silent=True)
            source = data if isinstance(data, dict) else {}
        else:
            source = request.form
        return {
            'query': _text_param(source.get('query')),
            'playlist': _text_param(source.get('playlist')),
            'ai': source.get('ai'),
        }

    def handle_add(self) -> Tuple[str, int, Dict[str, str]]:
        """Run the add pipeline for the current request and map the outcome to a response."""
        params = self._read_params()
        add_request = AddRequest(
            api_key=extract_api_key(request.args, request.headers),
            query=params['query'],
            playlist=params['playlist'],
            use_ai=parse_flag(params['ai']),
        )

        try:
            outcome = self.orchestrator.add(add_request)
        except SongDropError as e:
            return str(e), e.status_code, TEXT_HEADERS
        except Exception as e:
            self.logger.exception(f"Error in /add endpoint: {e}")
            return f"Internal server error: {e}", 500, TEXT_HEADERS

        return outcome.message, 200, TEXT_HEADERS

    def _setup_routes(self) -> None:
        """Setup Flask routes."""

        @self.app.route('/health', methods=['GET'])
        def health_check():
            """Health check endpoint."""
            return jsonify({
                'status': 'healthy',
                'version': self.version,
                'commit': self.commit,
                'timestamp': datetime.now().isoformat()
            }), 200

        @self.app.route('/add', methods=['GET', 'POST'])
        def add_song():
            """Add a song to one of the caller's playlists."""
            return self.handle_add()

        @self.app.route('/', methods=['GET'])
        def root():
            """Root endpoint with basic info."""
            return jsonify({
                'service': 'SongDrop HTTP Interface',
                'version': self.version,
                'endpoints': {
                    'health': '/health',
                    'add': '/add?token=<api key>&query=<song>&playlist=<name>[&ai=1]',
                }
            }), 200

    def run(self) -> None:
        """Run the HTTP server."""
        self.logger.info(f"Starting SongDrop HTTP server on {self.host}:{self.port}")
        self.app.run(
            host=self.host,
            port=self.port,
            debug=self.debug,
            threaded=True
        )


def create_app(orchestrator: Optional[AddOrchestrator] = None) -> Flask:
    """Create Flask app, e.g. for a WSGI server or tests."""
    server = HTTPServer(orchestrator=orchestrator)
    return server.app
