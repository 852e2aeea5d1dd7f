"""Тесты для toolkit.jsonio: read_json / write_json / error_json."""

# pylint: disable=redefined-outer-name
import json
from typing import Optional
from dataclasses import dataclass

import pytest
from flask import request
from pydantic import Field, BaseModel, ConfigDict

from toolkit.config import JSONConfig
from toolkit.errors import (
    ToolkitError,
    TrailingDataError,
    UnknownFieldError,
    MalformedJSONError,
    PayloadTooLargeError,
)
from toolkit.jsonio import JSONResponse, read_json, error_json, write_json, decode_json


class Foo(BaseModel):
    foo: str = ""


class Counter(BaseModel):
    count: int


class Strict(BaseModel):
    model_config = ConfigDict(extra="forbid")

    foo: str = ""


class Aliased(BaseModel):
    user_name: str = Field(default="", alias="userName")


@dataclass
class Point:
    x: int
    y: int


def _read(bare_app, body, destination=Foo, max_size=1024, allow_unknown=False):
    with bare_app.test_request_context("/", method="POST", data=body, content_type="application/json"):
        return read_json(request, destination, JSONConfig(max_json_size=max_size, allow_unknown_fields=allow_unknown))


@pytest.mark.parametrize(
    "name, body, max_size, allow_unknown, expected",
    [
        ("good json", '{"foo": "bar"}', 1024, False, None),
        ("badly formatted json", '{"foo":}', 1024, False, MalformedJSONError),
        ("incorrect type", '{"foo": 1}', 1024, False, MalformedJSONError),
        ("two json values", '{"foo": "1"}{"alpha": "beta"}', 1024, False, TrailingDataError),
        ("trailing garbage", '{"foo": "1"} xyz', 1024, False, TrailingDataError),
        ("empty body", "", 1024, False, MalformedJSONError),
        ("whitespace body", " \n\t ", 1024, False, MalformedJSONError),
        ("syntax error in json", '{"foo": 1"', 1024, False, MalformedJSONError),
        ("unknown field in json", '{"fooo": "1"}', 1024, False, UnknownFieldError),
        ("allow unknown fields in json", '{"fooo": "1"}', 1024, True, None),
        ("missing field name", '{jack: "1"}', 1024, True, MalformedJSONError),
        ("file too large", '{"foo": "bar"}', 5, True, PayloadTooLargeError),
        ("not json", "Hello, world!", 1024, True, MalformedJSONError),
        ("not an object", '["foo"]', 1024, True, MalformedJSONError),
        ("nan constant", '{"foo": NaN}', 1024, True, MalformedJSONError),
    ],
)
def test_read_json_table(bare_app, name, body, max_size, allow_unknown, expected):
    """Табличная проверка: что принимается и что отвергается."""
    if expected is None:
        assert isinstance(_read(bare_app, body, max_size=max_size, allow_unknown=allow_unknown), Foo), name
    else:
        with pytest.raises(expected):
            _read(bare_app, body, max_size=max_size, allow_unknown=allow_unknown)


def test_read_json_populates_destination(bare_app):
    out = _read(bare_app, '  {"foo": "bar"}\n')
    assert out == Foo(foo="bar")


@pytest.mark.parametrize(
    "body, fragment",
    [
        ("", "body must not be empty"),
        ('{"foo": ', "unexpected end of input"),
        ('{"foo":}', "badly-formed JSON (at character 7)"),
        ('{jack: "1"}', "invalid key syntax (at character 1)"),
        ('{"foo": 1}', 'incorrect JSON type for field "foo"'),
        ('{"fooo": "1"}', 'unknown key "fooo"'),
        ('{"foo": "1"}{}', "single JSON value"),
    ],
)
def test_read_json_messages(bare_app, body, fragment):
    """Сообщения об ошибках называют причину (и позицию, если она известна)."""
    with pytest.raises(ToolkitError) as exc:
        _read(bare_app, body)
    assert fragment in exc.value.message


def test_too_large_message(bare_app):
    with pytest.raises(PayloadTooLargeError) as exc:
        _read(bare_app, '{"foo": "bar"}', max_size=5)
    assert exc.value.message == "body must not be larger than 5 bytes"


def test_strict_types_no_coercion(bare_app):
    """Строка не превращается в число."""
    with pytest.raises(MalformedJSONError):
        _read(bare_app, '{"count": "1"}', destination=Counter)
    assert _read(bare_app, '{"count": 1}', destination=Counter).count == 1


def test_missing_required_field(bare_app):
    with pytest.raises(MalformedJSONError) as exc:
        _read(bare_app, "{}", destination=Counter)
    assert '"count"' in exc.value.message


def test_model_forbidding_extra_wins_over_allow_unknown(bare_app):
    """extra='forbid' у модели → UnknownFieldError даже при allow_unknown_fields."""
    with pytest.raises(UnknownFieldError):
        _read(bare_app, '{"fooo": "1"}', destination=Strict, allow_unknown=True)


def test_alias_counts_as_known_field(bare_app):
    out = _read(bare_app, '{"userName": "ann"}', destination=Aliased)
    assert out.user_name == "ann"


def test_dataclass_destination(bare_app):
    assert _read(bare_app, '{"x": 1, "y": 2}', destination=Point) == Point(1, 2)
    with pytest.raises(UnknownFieldError):
        _read(bare_app, '{"x": 1, "y": 2, "z": 3}', destination=Point)


def test_shapeless_destination_accepts_any_keys():
    """У dict нет набора полей: неизвестных ключей не бывает."""
    assert decode_json(b'{"a": [1, 2]}', dict[str, list[int]]) == {"a": [1, 2]}


class Inner(BaseModel):
    x: int


class Outer(BaseModel):
    inner: Inner
    items: list[Inner] = []
    extra: Optional[Inner] = None


@dataclass
class Segment:
    start: Point
    end: Point


@pytest.mark.parametrize(
    "body, path",
    [
        ('{"inner": {"x": 1, "evil": 2}}', "inner.evil"),
        ('{"inner": {"x": 1}, "items": [{"x": 1}, {"x": 2, "y": 3}]}', "items.1.y"),
        ('{"inner": {"x": 1}, "extra": {"x": 1, "z": 0}}', "extra.z"),
    ],
)
def test_nested_unknown_field(bare_app, body, path):
    """Неизвестный ключ ищется на любой глубине, в том числе внутри списков и Optional."""
    with pytest.raises(UnknownFieldError) as exc:
        _read(bare_app, body, destination=Outer)
    assert f'unknown key "{path}"' in exc.value.message


def test_nested_unknown_field_allowed(bare_app):
    out = _read(bare_app, '{"inner": {"x": 1, "evil": 2}}', destination=Outer, allow_unknown=True)
    assert out.inner.x == 1


def test_nested_dataclass_unknown_field():
    assert decode_json(b'{"start": {"x": 0, "y": 0}, "end": {"x": 1, "y": 1}}', Segment) == Segment(
        Point(0, 0), Point(1, 1)
    )
    with pytest.raises(UnknownFieldError):
        decode_json(b'{"start": {"x": 0, "y": 0, "z": 0}, "end": {"x": 1, "y": 1}}', Segment)


def test_unknown_field_inside_mapping_values():
    with pytest.raises(UnknownFieldError) as exc:
        decode_json(b'{"a": {"x": 1, "q": 2}}', dict[str, Inner])
    assert '"a.q"' in exc.value.message


def test_deep_nesting_is_malformed():
    """Очень глубокая вложенность укладывается в лимит размера, но даёт типизированную ошибку."""
    with pytest.raises(MalformedJSONError) as exc:
        decode_json(b"[" * 100000 + b"]" * 100000, list)
    assert "nesting too deep" in exc.value.message


def test_invalid_utf8():
    with pytest.raises(MalformedJSONError):
        decode_json(b'{"foo": "\xff"}', Foo)


def test_default_config_from_env(bare_app, monkeypatch):
    monkeypatch.setenv("JSON_ALLOW_UNKNOWN_FIELDS", "true")
    with bare_app.test_request_context("/", method="POST", data='{"fooo": "1"}'):
        assert read_json(request, Foo).foo == ""


# ---------- write_json / error_json ----------


def test_write_json_round_trip():
    """write_json → декодирование тела даёт исходный конверт."""
    resp = write_json(200, JSONResponse(error=False, message="foo"), headers={"FOO": "BAR"})

    assert resp.status_code == 200
    assert resp.headers["FOO"] == "BAR"
    assert resp.headers["Content-Type"] == "application/json"

    body = resp.get_data(as_text=True)
    assert '\n    "error": false' in body
    assert "data" not in json.loads(body)
    payload = JSONResponse.model_validate_json(body)
    assert payload.error is False
    assert payload.message == "foo"


def test_write_json_with_data():
    resp = write_json(201, JSONResponse(error=False, message="ok", data={"n": 1}))
    assert resp.status_code == 201
    assert json.loads(resp.get_data(as_text=True))["data"] == {"n": 1}


def test_write_json_plain_payload_and_header_list():
    resp = write_json(202, {"a": [1, 2]}, headers=[("X-One", "1"), ("X-Two", "2")])
    assert resp.headers["X-One"] == "1" and resp.headers["X-Two"] == "2"
    assert json.loads(resp.get_data(as_text=True)) == {"a": [1, 2]}


def test_write_json_content_type_not_overridable():
    resp = write_json(200, {}, headers={"Content-Type": "text/html"})
    assert resp.headers["Content-Type"] == "application/json"


def test_write_json_unserializable():
    with pytest.raises(TypeError):
        write_json(200, {"x": object()})


def test_error_json_status_and_flag():
    resp = error_json(ValueError("some error"), 503)
    assert resp.status_code == 503
    payload = JSONResponse.model_validate_json(resp.get_data(as_text=True))
    assert payload.error is True
    assert payload.message == "some error"


def test_error_json_default_status_and_toolkit_message():
    resp = error_json(TrailingDataError())
    assert resp.status_code == 400
    assert json.loads(resp.get_data(as_text=True)) == {
        "error": True,
        "message": "body must only contain a single JSON value",
    }
