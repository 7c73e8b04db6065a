import json
import logging
import re
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

# Correlation data attached to every record emitted while a request is in flight
request_id_var: ContextVar[Optional[str]] = ContextVar('request_id', default=None)
account_id_var: ContextVar[Optional[str]] = ContextVar('account_id', default=None)
stage_var: ContextVar[Optional[str]] = ContextVar('stage', default=None)

_CORRELATION_FIELDS: List[Tuple[str, ContextVar]] = [
    ('requestId', request_id_var),
    ('accountId', account_id_var),
    ('stage', stage_var),
]


class SecretMasker:
    """Masks Spotify tokens, API keys, client secrets and bearer credentials in log text."""

    _VALUE = r'["\']?([a-zA-Z0-9\-_\.]{%d,})["\']?'

    def __init__(self):
        rules = [
            (r'(access_token|refresh_token)\s*[:=]\s*', 10),
            (r'(api_key|gemini_api_key|token)\s*[:=]\s*', 10),
            (r'(client_secret)\s*[:=]\s*', 20),
            (r'(bearer)\s+', 10),
        ]
        self.compiled_patterns = [
            re.compile('(?i)' + key + self._VALUE % min_length) for key, min_length in rules
        ]

    @staticmethod
    def _mask(match: 're.Match') -> str:
        name, secret = match.group(1), match.group(2)
        if len(secret) > 8:
            hidden = f"{secret[:4]}{'*' * (len(secret) - 8)}{secret[-4:]}"
        else:
            hidden = '*' * len(secret)
        return f"{name}: {hidden}"

    def mask_secrets(self, text: str) -> str:
        if not text:
            return text
        for pattern in self.compiled_patterns:
            text = pattern.sub(self._mask, text)
        return text

    def mask_value(self, value: Any) -> Any:
        """Mask strings, recursing into dicts and lists; other values pass through."""
        if isinstance(value, str):
            return self.mask_secrets(value)
        if isinstance(value, dict):
            return self.mask_dict(value)
        if isinstance(value, list):
            return [self.mask_value(item) for item in value]
        return value

    def mask_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        if not data:
            return data
        return {key: self.mask_value(value) for key, value in data.items()}


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, with correlation ids and masked secrets."""

    def __init__(self):
        super().__init__()
        self.masker = SecretMasker()

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            'ts': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'message': self.masker.mask_secrets(record.getMessage()),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        for key, var in _CORRELATION_FIELDS:
            value = var.get()
            if value:
                entry[key] = value

        if record.exc_info:
            entry['exception'] = self.formatException(record.exc_info)

        fields = getattr(record, 'fields', None)
        if fields:
            entry['fields'] = self.masker.mask_dict(fields)

        return json.dumps(entry, ensure_ascii=False)


class CorrelationContext:
    """Sets request id, account id and/or stage for the enclosed block; None leaves a value as is."""

    def __init__(self, request_id: Optional[str] = None,
                 account_id: Optional[str] = None,
                 stage: Optional[str] = None):
        self.values = [
            (request_id_var, request_id),
            (account_id_var, account_id),
            (stage_var, stage),
        ]
        self._tokens = []

    def __enter__(self):
        self._tokens = [(var, var.set(value)) for var, value in self.values if value is not None]
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        while self._tokens:
            var, token = self._tokens.pop()
            var.reset(token)


def new_request_id() -> str:
    return uuid.uuid4().hex[:12]


def setup_logging(level: str = 'INFO',
                  log_file: Optional[str] = None) -> logging.Logger:
    """Route the songdrop logger tree to stderr (and optionally a file) as JSON lines."""
    logger = logging.getLogger('songdrop')
    logger.setLevel(getattr(logging, level.upper()))
    logger.handlers.clear()

    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    formatter = StructuredFormatter()
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def log_with_fields(logger: logging.Logger, level: str, message: str,
                    fields: Optional[Dict[str, Any]] = None, **kwargs):
    """Emit a record carrying structured fields, rendered under 'fields' by StructuredFormatter."""
    levelno = getattr(logging, level.upper())
    if not logger.isEnabledFor(levelno):
        return

    merged = dict(fields or {})
    merged.update(kwargs)
    logger.log(levelno, message, extra={'fields': merged} if merged else None)


def log_request_start(logger: logging.Logger, query: str, playlist: str,
                      use_ai: bool, **kwargs):
    with CorrelationContext(stage='start'):
        log_with_fields(logger, 'INFO', 'Add request started',
                        query=query, playlist=playlist, use_ai=use_ai, **kwargs)


def log_request_complete(logger: logging.Logger, outcome: str, status_code: int, **kwargs):
    with CorrelationContext(stage='complete'):
        log_with_fields(logger, 'INFO', 'Add request completed',
                        outcome=outcome, status_code=status_code, **kwargs)


def log_error(logger: logging.Logger, message: str, error: Exception, **kwargs):
    log_with_fields(logger, 'ERROR', message,
                    error_type=type(error).__name__, error_message=str(error), **kwargs)
