"""Flask-приложение file-toolkit: загрузка файлов, строгий JSON и отдача статики через toolkit."""

import os

from flask import Flask, request
from pydantic import BaseModel
from flask_compress import Compress
from werkzeug.middleware.proxy_fix import ProxyFix

from app_version import __version__

from logger.logger import app_logger

from toolkit.http import handle_413, download_static_file
from toolkit.text import slugify
from toolkit.config import JSONConfig, UploadConfig
from toolkit.errors import (
    StorageError,
    ToolkitError,
    MissingFileError,
    ConfigurationError,
    PayloadTooLargeError,
    UnsupportedTypeError,
)
from toolkit.jsonio import JSONResponse, read_json, error_json, write_json
from toolkit.system import create_dir_if_not_exists
from toolkit.uploads import upload_file, upload_files

app = Flask(__name__)
Compress(app)
app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1)

# ---- Config / constants ----
UPLOAD_DIR = os.getenv("UPLOAD_DIR", "./uploads")
STATIC_DIR = os.getenv("STATIC_DIR", "./static")
MAX_CONTENT_LENGTH = int(os.getenv("MAX_CONTENT_LENGTH", str(1024 * 1024 * 1024)))
app.config["MAX_CONTENT_LENGTH"] = MAX_CONTENT_LENGTH

UPLOAD_CONFIG = UploadConfig.from_env()
JSON_CONFIG = JSONConfig.from_env()

STATUS_BY_ERROR = (
    (PayloadTooLargeError, 413),
    (UnsupportedTypeError, 415),
    (ConfigurationError, 500),
    (StorageError, 500),
    (MissingFileError, 400),
)


class EchoRequest(BaseModel):
    """Тело для POST /echo."""

    title: str
    tags: list[str] = []


def _flag(name: str, default: bool = True) -> bool:
    raw = request.args.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "y", "on")


# ---- Errors ----
app.register_error_handler(413, handle_413(MAX_CONTENT_LENGTH))


@app.errorhandler(ToolkitError)
def handle_toolkit_error(err: ToolkitError):
    """Любая ошибка тулкита → JSON-конверт; код выбирается по типу ошибки."""
    code = next((c for cls, c in STATUS_BY_ERROR if isinstance(err, cls)), 400)
    return error_json(err, code)


# ---- Routes ----
@app.route("/healthz", methods=["GET"])
def healthz():
    """Healthcheck: лимиты/конфиг."""
    return write_json(
        200,
        {
            "status": "ok",
            "max_content_length_mb": int(round(MAX_CONTENT_LENGTH / (1024 * 1024), 2)),
            "max_file_size": UPLOAD_CONFIG.effective_max_file_size,
            "allowed_file_types": UPLOAD_CONFIG.allowed_file_types,
            "max_json_size": JSON_CONFIG.effective_max_json_size,
            "version": __version__,
        },
    )


@app.route("/upload", methods=["POST"])
def upload():
    """POST /upload: сохраняет все файлы формы; query-параметр `rename` (по умолчанию true)."""
    files = upload_files(request, UPLOAD_DIR, rename=_flag("rename"), config=UPLOAD_CONFIG)
    return write_json(
        201,
        JSONResponse(error=False, message=f"{len(files)} file(s) uploaded", data=[f.to_dict() for f in files]),
    )


@app.route("/upload/single", methods=["POST"])
def upload_single():
    """POST /upload/single: сохраняет первый файл формы."""
    f = upload_file(request, UPLOAD_DIR, rename=_flag("rename"), config=UPLOAD_CONFIG)
    return write_json(201, JSONResponse(error=False, message="file uploaded", data=f.to_dict()))


@app.route("/echo", methods=["POST"])
def echo():
    """POST /echo: строго читает EchoRequest и возвращает его вместе со slug заголовка."""
    body = read_json(request, EchoRequest, config=JSON_CONFIG)
    try:
        slug = slugify(body.title)
    except ValueError as err:
        return error_json(err, 400)
    return write_json(200, JSONResponse(error=False, message="ok", data={**body.model_dump(), "slug": slug}))


@app.route("/download/<path:name>", methods=["GET"])
def download(name: str):
    """GET /download/<name>: отдаёт файл из STATIC_DIR как вложение."""
    display_name = request.args.get("as") or os.path.basename(name)
    return download_static_file(STATIC_DIR, name, display_name)


if __name__ == "__main__":
    create_dir_if_not_exists(UPLOAD_DIR)
    app_logger.info("Starting file-toolkit %s", __version__)
    port = int(os.environ.get("PORT", "5001"))
    app.run(host="0.0.0.0", port=port, debug=True)
