import argparse
import logging
import sys
import time
from typing import List, Optional

from songdrop.application.orchestrator import AddRequest
from songdrop.bootstrap import build_orchestrator
from songdrop.crosscutting.config import ConfigError, Settings, setup_config
from songdrop.crosscutting.logging import log_with_fields, setup_logging
from songdrop.domain.errors import PersistenceError, SongDropError
from songdrop.infrastructure.persistence.accounts import SqliteAccountStore


class CLI:
    """Command Line Interface for SongDrop."""

    def __init__(self):
        """Initialize CLI."""
        self.parser = self._create_parser()
        self._start_time = None

    def _create_parser(self) -> argparse.ArgumentParser:
        """Create argument parser."""
        parser = argparse.ArgumentParser(
            prog='songdrop',
            description='Add songs to your Spotify playlists from a free-text query'
        )
        parser.add_argument(
            '--env-file',
            help='Path to a .env file (default: ./.env if present)'
        )
        parser.add_argument(
            '--log-level',
            choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
            default=None,
            help='Override SONGDROP_LOG_LEVEL'
        )

        subparsers = parser.add_subparsers(dest='command', help='Available commands')

        serve_parser = subparsers.add_parser('serve', help='Run the HTTP server')
        serve_parser.add_argument('--host', help='Bind address (default from SONGDROP_HOST)')
        serve_parser.add_argument('--port', type=int, help='Bind port (default from SONGDROP_PORT)')
        serve_parser.add_argument('--debug', action='store_true', help='Enable Flask debug mode')

        add_parser = subparsers.add_parser('add', help='Add one song to a playlist')
        add_parser.add_argument('--token', required=True, help='Your SongDrop API key')
        add_parser.add_argument('--query', required=True, help='Free-text song query')
        add_parser.add_argument('--playlist', required=True, help='Target playlist name')
        add_parser.add_argument(
            '--ai',
            action='store_true',
            help='Clean the query with the language model before searching'
        )

        subparsers.add_parser('init-db', help='Create or upgrade the account store')

        return parser

    def _setup_logging(self, settings: Settings, level: Optional[str]) -> None:
        """Setup logging configuration."""
        setup_logging(level or settings.log_level, settings.log_file)

    def _serve(self, args: argparse.Namespace, settings: Settings) -> int:
        from songdrop.interfaces.http import HTTPServer

        server = HTTPServer(
            orchestrator=build_orchestrator(settings),
            host=args.host or settings.host,
            port=args.port or settings.port,
            debug=args.debug
        )
        server.run()
        return 0

    def _add(self, args: argparse.Namespace, settings: Settings) -> int:
        orchestrator = build_orchestrator(settings)
        try:
            outcome = orchestrator.add(AddRequest(
                api_key=args.token,
                query=args.query,
                playlist=args.playlist,
                use_ai=args.ai,
            ))
        except SongDropError as e:
            print(str(e), file=sys.stderr)
            return 1

        print(outcome.message)
        return 0

    def _init_db(self, settings: Settings) -> int:
        SqliteAccountStore(settings.db_path).initialize()
        print(f"Account store ready at {settings.db_path}")
        return 0

    def run(self, argv: Optional[List[str]] = None) -> int:
        """Run the CLI and return the process exit code."""
        self._start_time = time.time()
        args = self.parser.parse_args(argv)

        if not args.command:
            self.parser.print_help()
            return 1

        logger = logging.getLogger(__name__)
        try:
            settings = setup_config(args.env_file)
            self._setup_logging(settings, args.log_level)
            log_with_fields(logger, 'INFO', 'Configuration loaded', settings.summary())

            if args.command == 'serve':
                return self._serve(args, settings)
            if args.command == 'add':
                return self._add(args, settings)
            if args.command == 'init-db':
                return self._init_db(settings)

            self.parser.print_help()
            return 1

        except ConfigError as e:
            print(f"Configuration error: {e}", file=sys.stderr)
            return 2
        except PersistenceError as e:
            print(f"Account store error: {e}", file=sys.stderr)
            return 1
        except KeyboardInterrupt:
            logger.warning("Operation cancelled by user")
            return 130
        finally:
            duration = time.time() - self._start_time
            logger.debug(f"CLI execution time: {duration:.2f}s")


def main():
    """Main entry point."""
    sys.exit(CLI().run())


if __name__ == '__main__':
    main()
