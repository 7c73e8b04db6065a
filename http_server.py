#!/usr/bin/env python3
"""
SongDrop HTTP Server Runner
"""

import logging

from songdrop.bootstrap import build_orchestrator
from songdrop.crosscutting.config import get_settings
from songdrop.crosscutting.logging import log_with_fields, setup_logging
from songdrop.interfaces.http import HTTPServer


def main():
    """Run the HTTP server."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_file)
    log_with_fields(logging.getLogger('songdrop.server'), 'INFO', 'Configuration loaded', settings.summary())
    server = HTTPServer(
        orchestrator=build_orchestrator(settings),
        host=settings.host,
        port=settings.port,
        debug=False
    )
    server.run()


if __name__ == '__main__':
    main()
