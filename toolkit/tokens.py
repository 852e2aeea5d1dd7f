"""Генерация случайных строк для переименования загруженных файлов."""

import secrets

# без q/w в обоих регистрах: 60 символов
RANDOM_STRING_SOURCE = "abcdefghijklmnoprstuvxyzABCDEFGHIJKLMNOPRSTUVXYZ0123456789_+"


def random_string(n: int) -> str:
    """
    Возвращает строку ровно из `n` символов алфавита RANDOM_STRING_SOURCE.
    Каждый индекс берётся из `secrets` (CSPRNG ОС), состояние между вызовами не разделяется.
    :param n: Длина строки (>= 0)
    """
    if n < 0:
        raise ValueError("length must not be negative")
    return "".join(secrets.choice(RANDOM_STRING_SOURCE) for _ in range(n))
