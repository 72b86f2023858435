# src/skillreg/services/logging.py
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler

from skillreg.adapters.fs.path_provider import RegistryPaths

LOGGER_NAME = "skillreg"
LOG_FILE = "skillreg.log"


def _level(name: str, fallback: int = logging.INFO) -> int:
    return getattr(logging, (name or "").upper(), fallback)


class JsonFormatter(logging.Formatter):
    """Одна строка JSON на событие; поля из extra={"extra": {...}} попадают на верхний уровень."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        fields = getattr(record, "extra", None)
        if isinstance(fields, dict):
            payload.update(fields)
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logging(paths: RegistryPaths, level: str = "INFO", *, to_file: bool = True, console_level: str = "WARNING") -> logging.Logger:
    """
    stderr получает только предупреждения и ошибки;
    {registry}/logs/skillreg.log получает всё от level и выше (ротация 5 MB x 3).
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(_level(level))
    # повторный вызов (новый контекст CLI) не должен дублировать обработчики
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler()
    console.setLevel(_level(console_level, logging.WARNING))
    console.setFormatter(JsonFormatter())
    logger.addHandler(console)

    if to_file:
        logfile = paths.logs_dir() / LOG_FILE
        logfile.parent.mkdir(parents=True, exist_ok=True)
        rotating = RotatingFileHandler(logfile, maxBytes=5_000_000, backupCount=3, encoding="utf-8")
        rotating.setLevel(logger.level)
        rotating.setFormatter(JsonFormatter())
        logger.addHandler(rotating)
        logger.debug("logging.initialized", extra={"extra": {"logfile": str(logfile)}})

    logger.propagate = False
    return logger
