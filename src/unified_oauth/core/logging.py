import json
import logging
import os
from typing import Optional

from .observability import get_structured_logger, mask_secret_value

_LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
_LOG_FORMAT = os.getenv("LOG_FORMAT", "json").lower()  # 'json' or 'plain'

# Extra keys that must never reach a log sink in clear text.
SENSITIVE_KEYS = frozenset(
    {
        "token",
        "access_token",
        "refresh_token",
        "id_token",
        "code",
        "authorization",
        "client_secret",
        "secret",
        "password",
    }
)

_CONTEXT_KEYS = ("request_id", "route", "provider", "connection_id")

_RESERVED_KEYS = frozenset(
    {
        "msg", "args", "exc_info", "exc_text", "stack_info", "stacklevel", "levelno", "levelname",
        "msecs", "relativeCreated", "created", "thread", "threadName", "processName", "process",
        "pathname", "filename", "module", "lineno", "funcName", "name", "taskName", "message", "asctime",
    }
)


class JsonFormatter(logging.Formatter):
    """Emit logs as single-line JSON with common fields and lifecycle context."""

    def format(self, record: logging.LogRecord) -> str:
        base = {
            "ts": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S%z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _CONTEXT_KEYS:
            base[key] = getattr(record, key, "-")
        for key, val in record.__dict__.items():
            if key in _RESERVED_KEYS or key in _CONTEXT_KEYS:
                continue
            if key.lower() in SENSITIVE_KEYS:
                base[key] = mask_secret_value(val)
                continue
            try:
                json.dumps({key: val})
                base[key] = val
            except (TypeError, ValueError):
                base[key] = str(val)
        if record.exc_info:
            base["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(base, separators=(",", ":"))


def _configure_root_logger(level: str) -> logging.Logger:
    logger = logging.getLogger()
    if not logger.handlers:
        handler = logging.StreamHandler()
        if _LOG_FORMAT == "json":
            handler.setFormatter(JsonFormatter())
        else:
            fmt = "%(asctime)s | %(levelname)s | %(name)s | [%(request_id)s %(provider)s %(connection_id)s] %(message)s"
            handler.setFormatter(logging.Formatter(fmt, defaults={k: "-" for k in _CONTEXT_KEYS}))
        logger.addHandler(handler)
    logger.setLevel(level)
    return logger


root_logger = _configure_root_logger(_LOG_LEVEL)


# PUBLIC_INTERFACE
def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a module logger configured with the global format and level."""
    return get_structured_logger(name or __name__)
