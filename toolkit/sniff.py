"""Определение MIME-типа по первым байтам потока и проверка по allow-list.

Тип выводится из содержимого, заголовок Content-Type части формы игнорируется.
Бинарные форматы распознаются по сигнатурам `filetype`; HTML и XML, которых в этой
таблице нет, распознаются по префиксам из алгоритма WHATWG mime sniffing.
"""

from __future__ import annotations

from collections.abc import Iterable

import filetype

SNIFF_LEN = 512
DEFAULT_CONTENT_TYPE = "application/octet-stream"
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"
HTML_CONTENT_TYPE = "text/html; charset=utf-8"
XML_CONTENT_TYPE = "text/xml; charset=utf-8"

# управляющие байты, которые не встречаются в тексте (WHATWG mime sniffing)
_BINARY_BYTES = frozenset(list(range(0x00, 0x09)) + [0x0B] + list(range(0x0E, 0x1B)) + list(range(0x1C, 0x20)))

_LEADING_WS = b"\t\n\x0c\r "
# после HTML-префикса должен идти пробел или '>'
_HTML_PREFIXES = tuple(
    p.encode()
    for p in (
        "<!DOCTYPE HTML", "<HTML", "<HEAD", "<SCRIPT", "<IFRAME", "<H1", "<DIV", "<FONT", "<TABLE",
        "<A", "<STYLE", "<TITLE", "<B", "<BODY", "<BR", "<P", "<!--",
    )
)


def _looks_like_text(sample: bytes) -> bool:
    return bool(sample) and not any(b in _BINARY_BYTES for b in sample)


def _markup_type(sample: bytes) -> str | None:
    data = sample.lstrip(_LEADING_WS)
    upper = data.upper()
    for prefix in _HTML_PREFIXES:
        if upper.startswith(prefix) and upper[len(prefix) : len(prefix) + 1] in (b" ", b">"):
            return HTML_CONTENT_TYPE
    if data.startswith(b"<?xml"):
        return XML_CONTENT_TYPE
    return None

def detect_content_type(sample: bytes) -> str:
    """
    Определяет MIME-тип по сигнатурам (таблица `filetype`), затем по HTML/XML-префиксам.
    Если ничего не подошло, текст без бинарных байтов даёт text/plain, иначе application/octet-stream.
    :param sample: Первые байты потока (используются не более SNIFF_LEN)
    """
    head = bytes(sample[:SNIFF_LEN])
    mime = filetype.guess_mime(head) if head else None
    if mime:
        return mime
    markup = _markup_type(head)
    if markup:
        return markup
    if _looks_like_text(head):
        return TEXT_CONTENT_TYPE
    return DEFAULT_CONTENT_TYPE


def is_allowed(mime_type: str, allow_list: Iterable[str] | None) -> bool:
    """True, если allow-list пуст или mime_type совпадает с одним из элементов без учёта регистра."""
    allowed = list(allow_list or [])
    if not allowed:
        return True
    wanted = mime_type.casefold()
    return any(x.casefold() == wanted for x in allowed)
