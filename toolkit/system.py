"""System utilities: bootstrap каталогов для загрузок."""

import os

from logger.logger import app_logger

from toolkit.errors import StorageError

DIR_MODE = 0o755


def create_dir_if_not_exists(path: str) -> None:
    """
    Создаёт каталог (вместе с промежуточными) с правами 0755, если его ещё нет.
    Повторный вызов для существующего каталога ничего не делает.
    :raises StorageError: если каталог создать не удалось
    """
    if os.path.isdir(path):
        return
    try:
        os.makedirs(path, mode=DIR_MODE, exist_ok=True)
    except OSError as e:
        app_logger.error("Failed to create directory %s: %s", path, e)
        raise StorageError(f"could not create directory {path}: {e}") from e
    app_logger.info("Created directory %s", path)
