"""Типизированные ошибки тулкита.

Все ошибки наследуют ToolkitError: у каждой есть человекочитаемое `message`
(уходит в JSON-конверт через error_json) и `uploaded`: файлы, успевшие
сохраниться до сбоя пакетной загрузки (для остальных операций пусто).
"""

from __future__ import annotations

from typing import Any


class ToolkitError(Exception):
    """Базовая ошибка тулкита."""

    def __init__(self, message: str = "An error occurred", uploaded: list[Any] | None = None):
        self.message = message
        self.uploaded = list(uploaded or [])
        super().__init__(self.message)


class ConfigurationError(ToolkitError):
    """Некорректная конфигурация (например, отрицательный лимит размера)."""


class PayloadTooLargeError(ToolkitError):
    """Multipart-форма или JSON-тело превышает настроенный лимит."""


class UnsupportedTypeError(ToolkitError):
    """Определённый по содержимому MIME-тип не входит в allow-list."""

    def __init__(self, mime_type: str, uploaded: list[Any] | None = None):
        self.mime_type = mime_type
        super().__init__(f"the type {mime_type} of uploaded file is not permitted", uploaded)


class StorageError(ToolkitError):
    """Не удалось создать каталог/файл или скопировать данные."""


class MissingFileError(ToolkitError):
    """В запросе не оказалось ни одного файла."""

    def __init__(self, message: str = "no file was uploaded"):
        super().__init__(message)


class MalformedJSONError(ToolkitError):
    """Синтаксическая или структурная ошибка в JSON-теле."""


class UnknownFieldError(ToolkitError):
    """В строгом режиме тело содержит ключ, которого нет в целевой форме."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f'body contains unknown key "{key}"')


class TrailingDataError(ToolkitError):
    """После первого JSON-значения в теле есть что-то ещё."""

    def __init__(self, message: str = "body must only contain a single JSON value"):
        super().__init__(message)
