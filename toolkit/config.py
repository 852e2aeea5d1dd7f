"""Конфигурация загрузок и JSON-кодека.

Конфиг передаётся в каждую операцию явно (`config=`), а без него
собирается из переменных окружения через `from_env()`.
"""

from __future__ import annotations

import os
from dataclasses import field, dataclass

DEFAULT_MAX_FILE_SIZE = 1024 * 1024 * 1024  # 1 GiB
DEFAULT_MAX_JSON_SIZE = 1024 * 1024  # 1 MiB


def _bool(env: str, default: bool) -> bool:
    """Читает булеву переменную окружения: '1,true,yes,y,on' → True, иначе False."""
    v = os.getenv(env, str(default)).strip().lower()
    return v in ("1", "true", "yes", "y", "on")


def _int(env: str, default: int) -> int:
    raw = os.getenv(env, "").strip()
    return int(raw) if raw else default


def _list(env: str) -> list[str]:
    """Список через запятую, пустые элементы отбрасываются."""
    return [x.strip() for x in os.getenv(env, "").split(",") if x.strip()]


@dataclass
class UploadConfig:
    """Параметры пакетной загрузки.

    Attributes:
        max_file_size: Лимит на всю multipart-форму в байтах; 0 означает лимит по умолчанию (1 GiB).
        allowed_file_types: Разрешённые MIME-типы; пустой список разрешает всё.
    """

    max_file_size: int = 0
    allowed_file_types: list[str] = field(default_factory=list)

    @property
    def effective_max_file_size(self) -> int:
        return self.max_file_size or DEFAULT_MAX_FILE_SIZE

    @classmethod
    def from_env(cls) -> "UploadConfig":
        """UPLOAD_MAX_FILE_SIZE, UPLOAD_ALLOWED_TYPES."""
        return cls(
            max_file_size=_int("UPLOAD_MAX_FILE_SIZE", 0),
            allowed_file_types=_list("UPLOAD_ALLOWED_TYPES"),
        )


@dataclass
class JSONConfig:
    """Параметры чтения JSON-тела.

    Attributes:
        max_json_size: Лимит тела в байтах; 0 означает лимит по умолчанию (1 MiB).
        allow_unknown_fields: Разрешать ключи, которых нет в целевой форме.
    """

    max_json_size: int = 0
    allow_unknown_fields: bool = False

    @property
    def effective_max_json_size(self) -> int:
        return self.max_json_size or DEFAULT_MAX_JSON_SIZE

    @classmethod
    def from_env(cls) -> "JSONConfig":
        """JSON_MAX_SIZE, JSON_ALLOW_UNKNOWN_FIELDS."""
        return cls(
            max_json_size=_int("JSON_MAX_SIZE", 0),
            allow_unknown_fields=_bool("JSON_ALLOW_UNKNOWN_FIELDS", False),
        )


def human_size(n: int) -> str:
    """Человекочитаемый размер: 1073741824 → '1 GB', 1536 → '1.5 KB'."""
    size = float(n)
    for unit in ("B", "KB", "MB"):
        if size < 1024:
            return f"{size:g} {unit}"
        size /= 1024
    return f"{size:g} GB"
