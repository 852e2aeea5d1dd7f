"""
Пакетная загрузка файлов из multipart/form-data: сниффинг типа, переименование и сохранение.

Каждая часть формы обрабатывается последовательно. Первая ошибка прерывает пакет:
исключение несёт в `uploaded` файлы, уже записанные на диск (отката нет).
"""

from __future__ import annotations

import os
from typing import Any
from dataclasses import dataclass
from collections.abc import Iterator

from werkzeug.wrappers import Request
from werkzeug.exceptions import RequestEntityTooLarge
from werkzeug.datastructures import FileStorage

from logger.logger import audit, app_logger

from toolkit.sniff import SNIFF_LEN, is_allowed, detect_content_type
from toolkit.config import UploadConfig, human_size
from toolkit.errors import StorageError, MissingFileError, ConfigurationError, PayloadTooLargeError, UnsupportedTypeError
from toolkit.system import create_dir_if_not_exists
from toolkit.tokens import random_string

RENAME_LENGTH = 25
COPY_CHUNK = 1024 * 1024


@dataclass(frozen=True)
class UploadedFile:
    """Результат сохранения одной части формы.

    Attributes:
        original_file_name: Имя из заголовка части; не проверяется и может повторяться.
        new_file_name: Имя на диске (исходное или токен + исходное расширение).
        file_size: Количество скопированных байт.
    """

    original_file_name: str
    new_file_name: str
    file_size: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "original_file_name": self.original_file_name,
            "new_file_name": self.new_file_name,
            "file_size": self.file_size,
        }


def _file_parts(req: Request) -> Iterator[FileStorage]:
    """
    Отдаёт части формы с файлами в порядке парсера.
    Пустые file-input'ы (без имени файла) файлами не считаются.
    """
    for _field, f in req.files.items(multi=True):
        if f and (getattr(f, "filename", "") or "").strip():
            yield f


def _part_size(f: FileStorage) -> int:
    stream = f.stream
    pos = stream.tell()
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(pos)
    return size


def _parse_form(req: Request, max_bytes: int) -> list[FileStorage]:
    """
    Разбирает форму с лимитом max_bytes на всё тело.
    Если форму уже разобрали раньше (под лимитом приложения), лимит проверяется по сумме размеров частей.
    """
    too_big = f"the uploaded file is too big; max size is {human_size(max_bytes)}"
    if req.content_length is not None and req.content_length > max_bytes:
        raise PayloadTooLargeError(too_big)
    # werkzeug кладёт разобранную форму в __dict__ запроса
    already_parsed = "files" in req.__dict__
    req.max_content_length = max_bytes
    try:
        parts = list(_file_parts(req))
    except RequestEntityTooLarge as e:
        raise PayloadTooLargeError(too_big) from e
    if already_parsed and sum(_part_size(f) for f in parts) > max_bytes:
        raise PayloadTooLargeError(too_big)
    return parts


def _new_file_name(original: str, rename: bool) -> str:
    if not rename:
        return original
    return random_string(RENAME_LENGTH) + os.path.splitext(original)[1]


def _copy_to(stream, path: str) -> int:
    """Копирует поток в новый файл кусками, возвращает число байт. Недописанный файл удаляется."""
    written = 0
    try:
        with open(path, "wb") as out_f:
            while True:
                chunk = stream.read(COPY_CHUNK)
                if not chunk:
                    break
                out_f.write(chunk)
                written += len(chunk)
    except OSError:
        if os.path.exists(path):
            os.remove(path)
        raise
    return written


def _save_part(f: FileStorage, upload_dir: str, rename: bool, allowed: list[str]) -> UploadedFile:
    """Сниффинг, проверка типа и сохранение одной части."""
    stream = f.stream
    sample = stream.read(SNIFF_LEN)
    if not sample:
        raise StorageError(f"the uploaded file {f.filename} is empty")

    file_type = detect_content_type(sample)
    if not is_allowed(file_type, allowed):
        app_logger.warning("Rejected %s: type %s is not permitted", f.filename, file_type)
        raise UnsupportedTypeError(file_type)

    stream.seek(0)

    new_name = _new_file_name(f.filename, rename)
    size = _copy_to(stream, os.path.join(upload_dir, new_name))
    return UploadedFile(original_file_name=f.filename, new_file_name=new_name, file_size=size)


def upload_files(
    req: Request,
    upload_dir: str,
    rename: bool = True,
    config: UploadConfig | None = None,
) -> list[UploadedFile]:
    """
    Сохраняет все файлы multipart-формы в upload_dir.

    :param req: Запрос с телом multipart/form-data
    :param upload_dir: Каталог назначения (создаётся при отсутствии)
    :param rename: True: имя из 25 случайных символов + исходное расширение;
        False: исходное имя как есть (коллизии и path traversal на совести вызывающего)
    :param config: Лимит размера и allow-list; по умолчанию UploadConfig.from_env()
    :return: Список UploadedFile в порядке частей формы
    :raises ConfigurationError: отрицательный max_file_size
    :raises PayloadTooLargeError: тело больше лимита
    :raises UnsupportedTypeError: тип части не входит в allow-list (`uploaded` хранит уже сохранённые)
    :raises StorageError: ошибка каталога/записи (`uploaded` хранит уже сохранённые)
    """
    cfg = config if config is not None else UploadConfig.from_env()
    if cfg.max_file_size < 0:
        raise ConfigurationError("file size should not be negative")

    create_dir_if_not_exists(upload_dir)

    max_bytes = cfg.effective_max_file_size
    try:
        parts = _parse_form(req, max_bytes)
    except PayloadTooLargeError as e:
        app_logger.warning("Upload rejected: %s", e.message)
        audit("upload_too_large", level="warning", limit=max_bytes, content_length=req.content_length)
        raise

    uploaded: list[UploadedFile] = []
    for f in parts:
        try:
            saved = _save_part(f, upload_dir, rename, cfg.allowed_file_types)
        except UnsupportedTypeError as e:
            audit("upload_rejected", level="warning", file=f.filename, type=e.mime_type, saved=len(uploaded))
            raise UnsupportedTypeError(e.mime_type, uploaded) from e
        except StorageError as e:
            app_logger.error("Upload of %s failed: %s", f.filename, e.message)
            raise StorageError(e.message, uploaded) from e
        except OSError as e:
            app_logger.error("Error saving %s: %s", f.filename, e)
            audit("upload_failed", level="error", file=f.filename, reason=str(e), saved=len(uploaded))
            raise StorageError(f"could not save {f.filename}: {e}", uploaded) from e
        app_logger.info("Saved %s as %s (%d bytes)", saved.original_file_name, saved.new_file_name, saved.file_size)
        uploaded.append(saved)

    audit("upload_ok", files=len(uploaded), bytes=sum(u.file_size for u in uploaded), rename=rename)
    return uploaded


def upload_file(
    req: Request,
    upload_dir: str,
    rename: bool = True,
    config: UploadConfig | None = None,
) -> UploadedFile:
    """Загрузка одного файла: первый результат upload_files. MissingFileError, если файлов нет."""
    files = upload_files(req, upload_dir, rename=rename, config=config)
    if not files:
        raise MissingFileError()
    return files[0]
