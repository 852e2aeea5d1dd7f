"""Текстовые утилиты: slug для URL и имён файлов."""

import re
import unicodedata

_NON_SLUG = re.compile(r"[^a-z\d]+")


def slugify(s: str) -> str:
    """
    Превращает строку в slug: 'Now is the Time!' → 'now-is-the-time'.
    Диакритика снимается (NFKD), всё, кроме [a-z0-9], схлопывается в '-'.
    :raises ValueError: пустая строка или пустой результат
    """
    if not s:
        raise ValueError("empty string not permitted")
    folded = unicodedata.normalize("NFKD", s).encode("ascii", "ignore").decode("ascii")
    slug = _NON_SLUG.sub("-", folded.lower()).strip("-")
    if not slug:
        raise ValueError("after removing characters, slug is zero length")
    return slug
