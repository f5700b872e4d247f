import json
import logging
import os
import sys
from datetime import datetime, timezone


_STD_KEYS = {
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
    'module', 'exc_info', 'exc_text', 'stack_info', 'lineno', 'funcName',
    'created', 'msecs', 'relativeCreated', 'thread', 'threadName',
    'processName', 'process', 'taskName'
}


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "name": record.name,
            "msg": record.getMessage(),
        }
        # Fields passed via logger.*(extra={...})
        for k, v in record.__dict__.items():
            if k in _STD_KEYS or k.startswith('_') or k in payload:
                continue
            payload[k] = v
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        # Unserializable extras (datetimes, exceptions) fall back to str()
        return json.dumps(payload, ensure_ascii=False, default=str)


def _level_from_env(default: int) -> int:
    name = os.getenv("LOG_LEVEL")
    if not name:
        return default
    return getattr(logging, name.upper(), default)


def get_logger(name: str, level: int = logging.INFO) -> logging.Logger:
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger
    logger.setLevel(_level_from_env(level))
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def set_level(level: str) -> None:
    """Apply `level` to every logger already created by `get_logger`."""
    lvl = getattr(logging, level.upper(), logging.INFO)
    for name, logger in logging.root.manager.loggerDict.items():
        if not name.startswith("chem_aggregator") or not isinstance(logger, logging.Logger):
            continue
        logger.setLevel(lvl)
