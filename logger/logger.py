"""Логирование для file-toolkit.

Содержит два логгера:
- app_logger: стандартный логгер тулкита с ротацией файлов.
- audit_logger: JSON-логгер событий загрузки/декодирования (если указан путь через AUDIT_LOG_PATH).
"""

import os
import json
import logging
from logging.handlers import RotatingFileHandler

LOG_DIR = os.environ.get("LOG_DIR", "./logs")
if not os.path.exists(LOG_DIR):
    os.makedirs(LOG_DIR, exist_ok=True)

# --- App logger ---
app_logger = logging.getLogger("toolkit")
for _old in list(app_logger.handlers):
    app_logger.removeHandler(_old)
    _old.close()
app_handler = RotatingFileHandler(os.path.join(LOG_DIR, "toolkit.log"), maxBytes=10 * 1024 * 1024, backupCount=5)
app_formatter = logging.Formatter("%(asctime)s %(levelname)s %(message)s")
app_handler.setFormatter(app_formatter)
app_logger.addHandler(app_handler)
app_logger.setLevel(logging.INFO)
app_logger.propagate = False


# --- Audit logger (JSON lines, only if path set) ---
class AuditFormatter(logging.Formatter):
    """Одна запись: один JSON-объект; поля события из `audit()` лежат на верхнем уровне."""

    def format(self, record):
        entry = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **getattr(record, "event_fields", {}),
        }
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def get_audit_logger():
    """Создаёт JSON-логгер событий, если задан AUDIT_LOG_PATH.

    :return: logging.Logger или None, если путь не задан или логгер не удалось создать."""
    base_path = os.environ.get("AUDIT_LOG_PATH")
    if not base_path:
        return None
    log_file_path = os.path.join(base_path, "upload_events.json") if os.path.isdir(base_path) else base_path
    logger = logging.getLogger("upload_events")
    if logger.handlers and getattr(logger.handlers[0], "baseFilename", None) != os.path.abspath(log_file_path):
        for old in list(logger.handlers):
            logger.removeHandler(old)
            old.close()
    if not logger.handlers:
        try:
            handler = logging.FileHandler(log_file_path, encoding="utf-8")
            handler.setFormatter(AuditFormatter())
            logger.addHandler(handler)
            logger.setLevel(logging.INFO)
            logger.propagate = False
        except OSError as e:
            app_logger.error("Failed to setup audit logger: %s", e)
            return None
    return logger


def audit(event: str, level: str = "info", **fields) -> None:
    """Пишет событие в audit_logger (если он включён), поля уходят в `event_fields` записи."""
    if audit_logger is None:
        return
    getattr(audit_logger, level)(event, extra={"event_fields": {"event": event, **fields}})


audit_logger = get_audit_logger()
