"""Фикстуры и утилиты для тестов тулкита и веб-приложения."""

from __future__ import annotations

import io
import zlib
import struct
import tempfile
from os import environ

import pytest
from flask import Flask

# ВАЖНО: эти переменные должны быть установлены до импорта приложения.
environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="toolkit_logs_"))
environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="toolkit_up_"))
environ.setdefault("STATIC_DIR", tempfile.mkdtemp(prefix="toolkit_static_"))

import app as app_module  # pylint: disable=wrong-import-position


def _chunk(kind: bytes, data: bytes) -> bytes:
    return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", zlib.crc32(kind + data) & 0xFFFFFFFF)


def make_png() -> bytes:
    """Настоящий PNG 1x1 (RGB)."""
    ihdr = struct.pack(">IIBBBBB", 1, 1, 8, 2, 0, 0, 0)
    idat = zlib.compress(b"\x00\xff\x00\x00")
    return b"\x89PNG\r\n\x1a\n" + _chunk(b"IHDR", ihdr) + _chunk(b"IDAT", idat) + _chunk(b"IEND", b"")


PNG = make_png()
JPEG = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00" + b"\x00" * 64 + b"\xff\xd9"
TEXT = b"just some plain text, nothing to see here\n"


def file_field(name: str, payload: bytes = PNG):
    """
    Кортеж для поля формы с in-memory файлом.
    Формат (stream, filename) совместим с werkzeug EnvironBuilder и тестовым клиентом.
    """
    return io.BytesIO(payload), name


def chunked_upload(name: str, payload: bytes = PNG) -> dict:
    """
    kwargs для test_request_context / тестового клиента: multipart-тело без Content-Length
    (Transfer-Encoding: chunked), как его передаёт WSGI-сервер.
    """
    boundary = "toolkitboundary"
    body = (
        f"--{boundary}\r\n"
        f'Content-Disposition: form-data; name="file"; filename="{name}"\r\n'
        "Content-Type: application/octet-stream\r\n\r\n"
    ).encode() + payload + f"\r\n--{boundary}--\r\n".encode()
    return {
        "method": "POST",
        "input_stream": io.BytesIO(body),
        "content_type": f"multipart/form-data; boundary={boundary}",
        "headers": {"Transfer-Encoding": "chunked"},
        "environ_overrides": {"wsgi.input_terminated": True},
    }


@pytest.fixture()
def bare_app():
    """Пустое Flask-приложение для test_request_context."""
    app = Flask(__name__)
    app.testing = True
    return app


@pytest.fixture(scope="session")
def flask_app():
    """Готовит Flask app для тестов: включает testing."""
    app_module.app.testing = True
    return app_module.app


@pytest.fixture()
def client(flask_app):  # pylint: disable=redefined-outer-name
    """Возвращает тестовый клиент Flask для каждого теста."""
    return flask_app.test_client()
