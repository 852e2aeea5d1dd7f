"""Строгое чтение JSON-тела запроса и единый JSON-конверт ответа.

- read_json: ровно одно JSON-значение, лимит размера, строгие типы (pydantic strict),
  опционально запрет неизвестных ключей;
- write_json: сериализация с отступами и доп. заголовками;
- error_json: конверт {"error": true, "message": ...}.
"""

from __future__ import annotations

import re
import json
import dataclasses
from types import UnionType
from typing import Any, Union, Annotated, get_args, get_origin, get_type_hints
from functools import lru_cache
from collections.abc import Mapping, Iterable

from flask import Response
from pydantic import BaseModel, TypeAdapter, ValidationError, model_serializer
from werkzeug.wrappers import Request

from logger.logger import audit, app_logger

from toolkit.config import JSONConfig
from toolkit.errors import (
    ToolkitError,
    TrailingDataError,
    UnknownFieldError,
    MalformedJSONError,
    PayloadTooLargeError,
)

INDENT = 4
_WS = re.compile(r"[ \t\n\r]*")


class JSONResponse(BaseModel):
    """Конверт ответа. `data` попадает в JSON только если передан."""

    error: bool
    message: str
    data: Any = None

    @model_serializer(mode="wrap")
    def _omit_empty_data(self, handler):
        out = handler(self)
        if self.data is None:
            out.pop("data", None)
        return out


def _reject_constant(name: str):
    raise ValueError(f"body contains invalid JSON constant {name}")


def _read_body(req: Request, max_bytes: int) -> bytes:
    """Читает тело не больше max_bytes, иначе PayloadTooLargeError."""
    too_large = f"body must not be larger than {max_bytes} bytes"
    if req.content_length is not None and req.content_length > max_bytes:
        raise PayloadTooLargeError(too_large)
    raw = req.stream.read(max_bytes + 1)
    if len(raw) > max_bytes:
        raise PayloadTooLargeError(too_large)
    return raw


def _syntax_error(e: json.JSONDecodeError) -> MalformedJSONError:
    if not e.doc[e.pos :].strip():
        return MalformedJSONError("body contains badly-formed JSON (unexpected end of input)")
    if e.msg.startswith("Expecting property name"):
        return MalformedJSONError(f"body contains invalid key syntax (at character {e.pos})")
    return MalformedJSONError(f"body contains badly-formed JSON (at character {e.pos})")


def _validation_error(e: ValidationError) -> ToolkitError:
    err = e.errors()[0]
    loc = ".".join(str(x) for x in err.get("loc", ()))
    kind = err.get("type")
    if kind == "extra_forbidden":
        return UnknownFieldError(loc)
    if kind == "json_invalid":
        return MalformedJSONError(f"body contains badly-formed JSON ({err.get('msg', 'invalid JSON')})")
    if kind == "missing":
        return MalformedJSONError(f'body is missing required key "{loc}"')
    if loc:
        return MalformedJSONError(f'body contains incorrect JSON type for field "{loc}"')
    return MalformedJSONError("body contains incorrect JSON type")


def _fields(destination: Any) -> dict[str, Any] | None:
    """Ключи целевой формы и их типы; None: у формы нет фиксированного набора полей."""
    if get_origin(destination) is not None:
        return None
    if isinstance(destination, type) and issubclass(destination, BaseModel):
        fields: dict[str, Any] = {}
        for name, info in destination.model_fields.items():
            fields[name] = info.annotation
            if info.alias:
                fields[info.alias] = info.annotation
            if isinstance(info.validation_alias, str):
                fields[info.validation_alias] = info.annotation
        return fields
    if isinstance(destination, type) and dataclasses.is_dataclass(destination):
        try:
            hints = get_type_hints(destination)
        except (NameError, TypeError):
            hints = {}
        return {f.name: hints.get(f.name, Any) for f in dataclasses.fields(destination)}
    return None


def _unknown_key(value: Any, destination: Any, path: str = "") -> str | None:
    """
    Ищет первый ключ вне формы destination на любой глубине.
    Вложенные модели/dataclass'ы проверяются и внутри списков, кортежей и словарей.
    :return: Путь к ключу через точку ("inner.evil") или None
    """
    origin = get_origin(destination)
    args = get_args(destination)
    if origin is Annotated:
        return _unknown_key(value, args[0], path)
    if origin is Union or origin is UnionType:
        # ключ неизвестен, только если его не знает ни один вариант
        found = [_unknown_key(value, arg, path) for arg in args if arg is not type(None)]
        return found[0] if found and all(found) else None

    if isinstance(value, dict):
        fields = _fields(destination)
        if fields is not None:
            for key, item in value.items():
                if key not in fields:
                    return path + key
                hit = _unknown_key(item, fields[key], f"{path}{key}.")
                if hit:
                    return hit
            return None
        if isinstance(origin, type) and issubclass(origin, Mapping) and len(args) == 2:
            for key, item in value.items():
                hit = _unknown_key(item, args[1], f"{path}{key}.")
                if hit:
                    return hit
        return None

    if isinstance(value, list) and isinstance(origin, type) and issubclass(origin, Iterable) and args:
        if origin is tuple and not (len(args) == 2 and args[1] is Ellipsis):
            pairs = zip(value, args)
        else:
            pairs = ((item, args[0]) for item in value)
        for i, (item, item_type) in enumerate(pairs):
            hit = _unknown_key(item, item_type, f"{path}{i}.")
            if hit:
                return hit
    return None


@lru_cache(maxsize=128)
def _adapter(destination: Any) -> TypeAdapter:
    return TypeAdapter(destination)


def decode_json(raw: bytes, destination: Any, allow_unknown_fields: bool = False) -> Any:
    """
    Декодирует ровно одно JSON-значение из raw в тип destination.
    :raises MalformedJSONError: пустое тело, синтаксис, несовпадение типа
    :raises UnknownFieldError: ключ вне формы destination (если allow_unknown_fields=False)
    :raises TrailingDataError: после значения есть ещё данные
    """
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedJSONError(f"body contains invalid UTF-8 (at byte {e.start})") from e

    start = _WS.match(text).end()
    if start == len(text):
        raise MalformedJSONError("body must not be empty")

    decoder = json.JSONDecoder(parse_constant=_reject_constant)
    try:
        value, end = decoder.raw_decode(text, start)
    except json.JSONDecodeError as e:
        raise _syntax_error(e) from e
    except RecursionError as e:
        raise MalformedJSONError("body contains badly-formed JSON (nesting too deep)") from e
    except ValueError as e:
        raise MalformedJSONError(str(e)) from e

    if _WS.match(text, end).end() != len(text):
        raise TrailingDataError()

    if not allow_unknown_fields:
        try:
            unknown = _unknown_key(value, destination)
        except RecursionError as e:
            raise MalformedJSONError("body contains badly-formed JSON (nesting too deep)") from e
        if unknown is not None:
            raise UnknownFieldError(unknown)

    try:
        return _adapter(destination).validate_json(text[start:end], strict=True)
    except ValidationError as e:
        raise _validation_error(e) from e


def read_json(req: Request, destination: Any, config: JSONConfig | None = None) -> Any:
    """
    Читает тело запроса и возвращает провалидированное значение типа destination.

    :param req: Запрос (Content-Type не проверяется)
    :param destination: Целевая форма: pydantic-модель, dataclass или любой тип, понятный pydantic
    :param config: Лимит размера и режим неизвестных ключей; по умолчанию JSONConfig.from_env()
    :raises PayloadTooLargeError: тело больше лимита
    """
    cfg = config if config is not None else JSONConfig.from_env()
    try:
        raw = _read_body(req, cfg.effective_max_json_size)
        return decode_json(raw, destination, allow_unknown_fields=cfg.allow_unknown_fields)
    except ToolkitError as e:
        app_logger.warning("Bad JSON body: %s", e.message)
        audit("json_rejected", level="warning", kind=type(e).__name__, reason=e.message)
        raise


def to_jsonable(payload: Any) -> Any:
    if isinstance(payload, BaseModel):
        return payload.model_dump(mode="json")
    if dataclasses.is_dataclass(payload) and not isinstance(payload, type):
        return dataclasses.asdict(payload)
    return payload


def write_json(
    status_code: int,
    payload: Any,
    headers: Mapping[str, str] | Iterable[tuple[str, str]] | None = None,
) -> Response:
    """
    Сериализует payload (с отступами) в JSON-ответ.
    Доп. заголовки применяются до Content-Type: application/json.
    :raises TypeError: payload содержит несериализуемые значения
    """
    try:
        body = json.dumps(to_jsonable(payload), indent=INDENT, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        app_logger.error("Failed to serialize JSON response: %s", e)
        raise

    resp = Response(body, status=status_code)
    if headers:
        resp.headers.extend(headers)
    resp.headers["Content-Type"] = "application/json"
    return resp


def error_json(err: BaseException, status_code: int = 400) -> Response:
    """Ответ-конверт с error=true и текстом ошибки; статус по умолчанию 400."""
    message = err.message if isinstance(err, ToolkitError) else str(err)
    if status_code >= 500:
        app_logger.error("Server error: %s", message)
    else:
        app_logger.warning("Bad request: %s", message)
    return write_json(status_code, JSONResponse(error=True, message=message))
