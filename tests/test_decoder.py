"""测试 JsonReader 与通用解码入口."""

import pytest
from pydantic import ValidationError
from pydantic_core import from_json

from jsonrest import Config, RestOption
from jsonrest.decoder import (
    JsonReader,
    decode_text,
    read_untyped,
    stringify,
    validate_json,
)
from jsonrest.exceptions import RestDecodeError, TruncatedObjectError
from jsonrest.types import (
    END_ARRAY,
    END_OBJECT,
    FALSE,
    NULL,
    NUMBER,
    PROPERTY_NAME,
    START_ARRAY,
    START_OBJECT,
    STRING,
    TRUE,
    TokenType,
)


def read_all(text: str) -> list[TokenType]:
    """读取全部 Token 类型."""
    reader = JsonReader(text)
    tokens = []
    while reader.read():
        tokens.append(reader.token_type)
    return tokens


# --- 1. Token 序列 ---


def test_read_token_sequence() -> None:
    """read() 应按顺序产出所有 Token, 属性名与值是独立的 Token."""
    tokens = read_all('{"a": [1, "x", true, false, null], "b": {}}')

    assert tokens == [
        START_OBJECT,
        PROPERTY_NAME,
        START_ARRAY,
        NUMBER,
        STRING,
        TRUE,
        FALSE,
        NULL,
        END_ARRAY,
        PROPERTY_NAME,
        START_OBJECT,
        END_OBJECT,
        END_OBJECT,
    ]


def test_read_scalar_root() -> None:
    """根值可以是标量."""
    assert read_all(" 42 ") == [NUMBER]
    assert read_all('"s"') == [STRING]
    assert read_all("null") == [NULL]


def test_read_empty_input() -> None:
    """空输入 read() 返回 False."""
    assert JsonReader("").read() is False
    assert JsonReader(" \n\t").read() is False


def test_token_positions() -> None:
    """token_start/token_end 应指向 Token 的原始文本."""
    reader = JsonReader('{ "key" : -1.5e3 }')
    reader.read()
    reader.read()
    assert reader.token_text == '"key"'
    reader.read()
    assert reader.token_type == NUMBER
    assert reader.token_text == "-1.5e3"


def test_depth_tracking() -> None:
    """depth 应反映当前容器嵌套深度."""
    reader = JsonReader('{"a": [1]}')
    depths = []
    while reader.read():
        depths.append(reader.depth)

    assert depths == [1, 1, 2, 2, 1, 0]


# --- 2. 字符串 ---


def test_get_string_plain_and_escaped() -> None:
    """get_string() 应解码转义序列."""
    reader = JsonReader('{"a\\u0062": "x\\n\\"y\\""}')
    reader.read()
    reader.read()
    assert reader.get_string() == "ab"
    reader.read()
    assert reader.get_string() == 'x\n"y"'


def test_get_string_on_non_string_token() -> None:
    """get_string() 在非字符串 Token 上应抛出异常."""
    reader = JsonReader("1")
    reader.read()
    with pytest.raises(RestDecodeError):
        reader.get_string()


# --- 3. skip / value_text / copy ---


def test_skip_nested_value() -> None:
    """在属性名上 skip() 应跳过整个嵌套值."""
    reader = JsonReader('{"a": {"b": [1, {"c": 2}]}, "d": 3}')
    reader.read()
    reader.read()

    reader.skip()

    assert reader.token_type == END_OBJECT
    assert reader.depth == 1
    assert reader.read()
    assert reader.token_type == PROPERTY_NAME
    assert reader.get_string() == "d"


def test_skip_scalar_value() -> None:
    """在属性名上 skip() 遇到标量值时停在该值上."""
    reader = JsonReader('{"a": 1, "b": 2}')
    reader.read()
    reader.read()

    reader.skip()

    assert reader.token_type == NUMBER
    assert reader.token_text == "1"


def test_value_text_does_not_move_cursor() -> None:
    """value_text() 返回当前值的原始文本, 不移动游标."""
    text = '{"a": { "b" : [1, 2] }, "c": null}'
    reader = JsonReader(text)
    reader.read()

    assert reader.value_text() == text
    assert reader.token_type == START_OBJECT

    reader.read()
    assert reader.value_text() == '{ "b" : [1, 2] }'
    assert reader.token_type == PROPERTY_NAME
    assert reader.get_string() == "a"


def test_copy_is_independent() -> None:
    """copy() 得到的读取器与原读取器互不影响."""
    reader = JsonReader("[1, 2, 3]")
    reader.read()
    clone = reader.copy()

    clone.read()
    clone.read()

    assert clone.token_text == "2"
    assert reader.token_type == START_ARRAY
    assert reader.read()
    assert reader.token_text == "1"


# --- 4. 错误处理 ---


TRUNCATED_CASES = [
    ('{"a": 1', "missing_close"),
    ('{"a": ', "missing_value"),
    ('{"a"', "missing_colon"),
    ('{"a": "x', "unterminated_string"),
    ('{"a": tr', "partial_literal"),
    ("[1, 2", "unclosed_array"),
]


@pytest.mark.parametrize(
    ("text", "desc"),
    TRUNCATED_CASES,
    ids=[c[1] for c in TRUNCATED_CASES],
)
def test_skip_truncated(text: str, desc: str) -> None:
    """输入在值结束前耗尽时 skip() 应抛出 TruncatedObjectError."""
    reader = JsonReader(text)
    reader.read()
    with pytest.raises(TruncatedObjectError):
        reader.skip()


@pytest.mark.parametrize(
    "text",
    ['{"a" 1}', '{"a": 1 "b": 2}', "{1: 2}", '{"a": }', "[1,]", "@", "01"],
)
def test_malformed_json(text: str) -> None:
    """格式错误的 JSON 应抛出 RestDecodeError."""
    with pytest.raises(RestDecodeError):
        read_all(text)


def test_invalid_string_is_not_truncation() -> None:
    """包含控制字符的字符串是格式错误, 不是截断."""
    with pytest.raises(RestDecodeError) as exc_info:
        read_all('"a\x01b"')

    assert not isinstance(exc_info.value, TruncatedObjectError)
    assert exc_info.value.pos == 0


def test_trailing_data() -> None:
    """根值之后的多余数据应报错."""
    reader = JsonReader("{} x")
    reader.read()
    reader.read()
    with pytest.raises(RestDecodeError, match="Trailing data"):
        reader.read()


def test_bytes_input() -> None:
    """二进制输入按 UTF-8 解码, 允许 BOM."""
    reader = JsonReader('\ufeff{"名": 1}'.encode())
    reader.read()
    reader.read()
    assert reader.get_string() == "名"


def test_invalid_utf8() -> None:
    """无效的 UTF-8 数据应抛出 RestDecodeError."""
    with pytest.raises(RestDecodeError, match="UTF-8"):
        JsonReader(b'{"a": "\xff"}')


# --- 5. 通用解码与字符串化 ---


def test_validate_json_generic_target() -> None:
    """validate_json() 应支持任意 Pydantic 可解码的类型."""
    config = Config()
    assert validate_json('{"x": 1}', dict[str, int], config) == {"x": 1}
    assert validate_json("[1, 2]", list[int], config) == [1, 2]


def test_validate_json_strict() -> None:
    """STRICT 选项下不做类型强转."""
    assert validate_json('"1"', int, Config()) == 1
    with pytest.raises(ValidationError):
        validate_json('"1"', int, Config(flags=RestOption.STRICT))


def test_decode_text_without_converter() -> None:
    """没有匹配的转换器时 decode_text() 直接交给 Pydantic."""
    assert decode_text('{"x": 1}', dict[str, int], Config()) == {"x": 1}


def test_read_untyped() -> None:
    """read_untyped() 返回解析值和原始文本, 游标停在值的结束 Token 上."""
    reader = JsonReader('[1, {"a": null}]')
    reader.read()

    value, raw = read_untyped(reader)

    assert value == [1, {"a": None}]
    assert raw == '[1, {"a": null}]'
    assert reader.token_type == END_ARRAY


STRINGIFY_CASES = [
    ("text", '"text"', "text", "string"),
    (42, "42", "42", "int"),
    (1.5, "1.50", "1.5", "float"),
    (True, "true", "true", "true"),
    (False, "false", "false", "false"),
    (
        {"a": 1, "b": [1, 2]},
        '{ "a": 1, "b": [1, 2] }',
        '{"a":1,"b":[1,2]}',
        "object",
    ),
    ([1, "x"], '[1, "x"]', '[1,"x"]', "array"),
]


@pytest.mark.parametrize(
    ("value", "raw", "expected", "desc"),
    STRINGIFY_CASES,
    ids=[c[3] for c in STRINGIFY_CASES],
)
def test_stringify_canonical(value: object, raw: str, expected: str, desc: str) -> None:
    """stringify() 默认输出规范化的紧凑 JSON 文本, 字符串原样返回."""
    assert stringify(value, raw) == expected


def test_stringify_raw_text() -> None:
    """raw_text 时非字符串值保留原始文本, 字符串仍然解码."""
    assert stringify(1.5, "1.50", raw_text=True) == "1.50"
    assert stringify({"a": 1}, '{ "a" : 1 }', raw_text=True) == '{ "a" : 1 }'
    assert stringify("a\nb", '"a\\nb"', raw_text=True) == "a\nb"


def test_stringify_null() -> None:
    """null 在允许 None 时为 None, 否则为文本 "null"."""
    assert stringify(None, "null") is None
    assert stringify(None, "null", allow_none=False) == "null"


NON_FINITE_CASES = [
    ("1e400", "number"),
    ("-1e400", "negative"),
    ("[1, 1e400]", "array"),
    ('{"a": {"b": 1e400}}', "object"),
]


@pytest.mark.parametrize(
    ("raw", "desc"),
    NON_FINITE_CASES,
    ids=[c[1] for c in NON_FINITE_CASES],
)
def test_stringify_out_of_range_number(raw: str, desc: str) -> None:
    """超出浮点范围的数字没有规范形式, 保留原始文本而不是输出 Infinity."""
    value = from_json(raw)

    text = stringify(value, raw)

    assert text == raw
    assert "Infinity" not in text
