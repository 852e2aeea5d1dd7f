"""Логирование для file-toolkit.

Экспортирует:
- app_logger: основной логгер тулкита
- audit_logger: JSON-логгер событий загрузки (по AUDIT_LOG_PATH)
- audit: хелпер записи события в audit_logger
"""

from .logger import audit, app_logger, audit_logger  # noqa: F401

__all__ = ["app_logger", "audit_logger", "audit"]
