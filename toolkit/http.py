"""Вспомогательные HTTP-утилиты для Flask-обработчиков."""

from __future__ import annotations

import os
import json
from typing import Any

import requests
from flask import Response, send_from_directory
from requests.adapters import Retry, HTTPAdapter

from logger.logger import app_logger

from toolkit.config import human_size
from toolkit.errors import PayloadTooLargeError
from toolkit.jsonio import to_jsonable, error_json

__all__ = ["handle_413", "download_static_file", "push_json_to_remote"]


def handle_413(max_content_length: int):
    """Фабрика обработчика ошибки 413 (слишком большой запрос).

    Возвращает функцию-обработчик, совместимую с `app.register_error_handler(413, ...)`,
    которая отдаёт JSON-конверт с человекочитаемым лимитом.

    :param max_content_length: Максимальный размер тела запроса в байтах
    :return: callable, принимающий исключение и возвращающий Response со статусом 413
    """

    def _handler(_e) -> Response:
        """Внутренний обработчик 413: пишет в лог и возвращает конверт."""
        app_logger.error("Request entity too large")
        err = PayloadTooLargeError(f"The total upload is too large (> {human_size(max_content_length)}).")
        return error_json(err, 413)

    return _handler


def download_static_file(directory: str, file_name: str, display_name: str) -> Response:
    """
    Отдаёт directory/file_name как вложение с именем display_name.
    Выход за пределы directory отсекает send_from_directory (404).
    Нужен активный контекст запроса Flask.
    """
    app_logger.info("Download %s as %s", os.path.join(directory, file_name), display_name)
    return send_from_directory(
        os.path.abspath(directory),
        file_name,
        as_attachment=True,
        download_name=display_name,
    )


def _push_session() -> requests.Session:
    """Сессия для push_json_to_remote: повторяются только неудавшиеся подключения, тело POST не переотправляется."""
    adapter = HTTPAdapter(max_retries=Retry(total=2, connect=2, read=0, status=0, backoff_factor=0.2))
    s = requests.Session()
    for prefix in ("http://", "https://"):
        s.mount(prefix, adapter)
    return s


def push_json_to_remote(url: str, payload: Any, client: Any = None) -> tuple[requests.Response, int]:
    """
    Сериализует payload и отправляет его POST-ом с Content-Type: application/json.

    :param url: Адрес получателя
    :param payload: JSON-сериализуемые данные (в т.ч. pydantic-модель или dataclass)
    :param client: Объект с методом `post` (requests.Session); по умолчанию сессия с повтором подключения
    :return: (ответ, HTTP-код)
    :raises TypeError: payload не сериализуется
    :raises requests.RequestException: ошибка сети
    """
    body = json.dumps(to_jsonable(payload))
    http = client if client is not None else _push_session()
    timeout = float(os.getenv("PUSH_TIMEOUT", "10"))
    try:
        resp = http.post(url, data=body, headers={"Content-Type": "application/json"}, timeout=timeout)
    except requests.RequestException as e:
        app_logger.error("Push to %s failed: %s", url, e)
        raise
    app_logger.info("Pushed JSON to %s: %s", url, resp.status_code)
    return resp, resp.status_code
