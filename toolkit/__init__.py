"""Инструменты file-toolkit для HTTP-обработчиков.

Содержит подмодули:
- config: UploadConfig / JSONConfig и чтение из окружения
- errors: типизированные ошибки (ToolkitError и наследники)
- http: обработчик 413, отдача статики, отправка JSON на удалённый адрес
- jsonio: строгое чтение JSON и JSON-конверт ответа
- sniff: определение MIME-типа по содержимому
- system: bootstrap каталогов
- text: slugify
- tokens: криптостойкие случайные строки
- uploads: пакетная загрузка multipart-файлов
"""

from . import http, text, config, errors, jsonio, sniff, system, tokens, uploads
from .config import JSONConfig, UploadConfig
from .errors import ToolkitError
from .jsonio import JSONResponse, read_json, error_json, write_json
from .uploads import UploadedFile, upload_file, upload_files

__all__ = [
    "config",
    "errors",
    "http",
    "jsonio",
    "sniff",
    "system",
    "text",
    "tokens",
    "uploads",
    "JSONConfig",
    "UploadConfig",
    "ToolkitError",
    "JSONResponse",
    "read_json",
    "write_json",
    "error_json",
    "UploadedFile",
    "upload_file",
    "upload_files",
]
