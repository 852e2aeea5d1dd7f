"""Тесты для toolkit.text.slugify."""

import pytest

from toolkit.text import slugify


@pytest.mark.parametrize(
    "input_str, expected",
    [
        ("now is the time", "now-is-the-time"),
        ("Now Is The Time!", "now-is-the-time"),
        ("  leading and trailing  ", "leading-and-trailing"),
        ("hello---world", "hello-world"),
        ("Crème Brûlée 2024", "creme-brulee-2024"),
        ("file_name.mp3", "file-name-mp3"),
        ("🔥 hot track 🔥", "hot-track"),
    ],
)
def test_slugify(input_str, expected):
    """
    Проверяет преобразование строки в slug.

    :param input_str: Входная строка
    :param expected: Ожидаемый slug
    """
    assert slugify(input_str) == expected


@pytest.mark.parametrize("input_str", ["", "/-\\", "🔥🔥", "привет"])
def test_slugify_rejects_empty_result(input_str):
    """Пустой вход или пустой результат: ValueError."""
    with pytest.raises(ValueError):
        slugify(input_str)
