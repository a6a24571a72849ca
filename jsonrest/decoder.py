"""JSON 解码器实现.

该模块提供基于游标的 `JsonReader` 以及
委托给 Pydantic 的通用 (Schema 驱动 / 无类型) 解码入口.
"""

import math
import re
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, TypeAdapter
from pydantic_core import from_json, to_json
from typing_extensions import Self

from .exceptions import RestDecodeError, TruncatedObjectError
from .log import get_context, logger
from .types import (
    END_ARRAY,
    END_OBJECT,
    END_TOKENS,
    FALSE,
    NONE,
    NULL,
    NUMBER,
    PROPERTY_NAME,
    START_ARRAY,
    START_OBJECT,
    START_TOKENS,
    STRING,
    TRUE,
    TokenType,
)

if TYPE_CHECKING:
    from .config import Config

_WHITESPACE = re.compile(r"[ \t\r\n]*")
_STRING = re.compile(r'"(?:[^"\\\x00-\x1f]|\\(?:["\\/bfnrt]|u[0-9a-fA-F]{4}))*"')
# 输入在字符串内部结束 (包括残缺的转义序列)
_STRING_PREFIX = re.compile(
    r'"(?:[^"\\\x00-\x1f]|\\(?:["\\/bfnrt]|u[0-9a-fA-F]{4}))*'
    r"(?:\\(?:u[0-9a-fA-F]{0,3})?)?"
)
_NUMBER = re.compile(r"-?(?:0|[1-9][0-9]*)(?:\.[0-9]+)?(?:[eE][+-]?[0-9]+)?")
_LITERALS = (("true", TRUE), ("false", FALSE), ("null", NULL))

# 读取状态常量
_STATE_ROOT = 0  # 等待根值
_STATE_DONE = 1  # 根值已读取完毕
_STATE_OBJECT_FIRST = 2  # '{' 之后: 键或 '}'
_STATE_OBJECT_KEY = 3  # ',' 之后: 键
_STATE_OBJECT_COLON = 4  # 键之后: ':' 然后是值
_STATE_OBJECT_NEXT = 5  # 值之后: ',' 或 '}'
_STATE_ARRAY_FIRST = 6  # '[' 之后: 值或 ']'
_STATE_ARRAY_VALUE = 7  # ',' 之后: 值
_STATE_ARRAY_NEXT = 8  # 值之后: ',' 或 ']'
_STATE_OBJECT_VALUE = 9  # ':' 之后: 值


class JsonReader:
    """JSON 文本的前向游标读取器.

    每次 `read()` 前进一个 Token, 语义与常见的 pull 式 JSON 读取器一致:
    属性名 (`PROPERTY_NAME`) 与对应的值是两个独立的 Token.

    读取器本身是廉价可复制的 (`copy()`), 这使得"先窥视完整值的原始文本,
    再用原游标继续逐个 Token 前进"成为可能 (见 `value_text()`).
    """

    __slots__ = (
        "_pos",
        "_stack",
        "_state",
        "_text",
        "length",
        "token_end",
        "token_start",
        "token_type",
    )

    _text: str
    _pos: int
    _stack: list[TokenType]
    _state: int
    length: int
    token_type: TokenType
    token_start: int
    token_end: int

    def __init__(self, data: str | bytes | bytearray | memoryview):
        """初始化 JsonReader.

        Args:
            data: JSON 文本. 二进制数据按 UTF-8 解码 (允许 BOM).

        Raises:
            RestDecodeError: 二进制数据不是有效的 UTF-8.
        """
        if isinstance(data, (bytes, bytearray, memoryview)):
            try:
                data = bytes(data).decode("utf-8-sig")
            except UnicodeDecodeError as e:
                raise RestDecodeError(f"Invalid UTF-8 input: {e}", pos=e.start) from e

        self._text = data
        self._pos = 0
        self._stack = []
        self._state = _STATE_ROOT
        self.length = len(data)
        self.token_type = NONE
        self.token_start = 0
        self.token_end = 0

    def copy(self) -> Self:
        """创建一个处于相同位置的独立读取器 (检查点)."""
        clone = self.__class__.__new__(self.__class__)
        clone._text = self._text
        clone._pos = self._pos
        clone._stack = list(self._stack)
        clone._state = self._state
        clone.length = self.length
        clone.token_type = self.token_type
        clone.token_start = self.token_start
        clone.token_end = self.token_end
        return clone

    @property
    def depth(self) -> int:
        """当前所在的容器嵌套深度."""
        return len(self._stack)

    @property
    def position(self) -> int:
        """下一次扫描的起始偏移量."""
        return self._pos

    @property
    def token_text(self) -> str:
        """当前 Token 的原始文本."""
        return self._text[self.token_start : self.token_end]

    def read(self) -> bool:
        """前进到下一个 Token.

        Returns:
            bool: 成功读取到 Token 时为 True. 输入耗尽时返回 False,
                此时如果仍有未闭合的容器, 说明输入被截断.

        Raises:
            RestDecodeError: JSON 格式错误, 或根值之后还有多余数据.
            TruncatedObjectError: 输入在 Token 内部结束 (如未闭合的字符串).
        """
        text = self._text
        pos = _WHITESPACE.match(text, self._pos).end()
        state = self._state

        if state == _STATE_DONE:
            self._pos = pos
            if pos >= self.length:
                return False
            raise self._error("Trailing data after JSON value", pos)

        if state in (_STATE_OBJECT_NEXT, _STATE_ARRAY_NEXT):
            if pos >= self.length:
                self._pos = pos
                return False
            ch = text[pos]
            if ch == ",":
                pos = _WHITESPACE.match(text, pos + 1).end()
                state = (
                    _STATE_OBJECT_KEY
                    if state == _STATE_OBJECT_NEXT
                    else _STATE_ARRAY_VALUE
                )
            elif ch == "}" and state == _STATE_OBJECT_NEXT:
                return self._close(pos, END_OBJECT)
            elif ch == "]" and state == _STATE_ARRAY_NEXT:
                return self._close(pos, END_ARRAY)
            else:
                raise self._error(
                    f"Expected ',' or closing bracket, got {ch!r}", pos
                )

        elif state == _STATE_OBJECT_COLON:
            if pos >= self.length:
                self._pos = pos
                return False
            if text[pos] != ":":
                raise self._error(
                    f"Expected ':' after property name, got {text[pos]!r}", pos
                )
            pos = _WHITESPACE.match(text, pos + 1).end()
            state = _STATE_OBJECT_VALUE

        if pos >= self.length:
            # 分隔符已消费, 但后续 Token 不存在
            self._pos = pos
            self._state = state
            return False

        ch = text[pos]
        if state in (_STATE_OBJECT_FIRST, _STATE_OBJECT_KEY):
            if ch == "}" and state == _STATE_OBJECT_FIRST:
                return self._close(pos, END_OBJECT)
            if ch != '"':
                raise self._error(f"Expected property name, got {ch!r}", pos)
            end = self._scan_string(pos)
            self._set_token(PROPERTY_NAME, pos, end)
            self._state = _STATE_OBJECT_COLON
            return True

        if ch == "]" and state == _STATE_ARRAY_FIRST:
            return self._close(pos, END_ARRAY)

        return self._read_value_token(pos)

    def get_string(self) -> str:
        """返回当前字符串 Token (属性名或字符串值) 的解码结果."""
        if self.token_type not in (PROPERTY_NAME, STRING):
            raise RestDecodeError(
                f"Cannot get a string from a {self.token_type.name} token",
                pos=self.token_start,
            )
        raw = self.token_text
        if "\\" not in raw:
            return raw[1:-1]
        return from_json(raw)

    def skip(self) -> None:
        """跳过当前值.

        - 当前 Token 为属性名时, 先前进到对应的值.
        - 当前 Token 为容器起始时, 前进到与之匹配的结束 Token.
        - 标量值不移动游标.

        Raises:
            TruncatedObjectError: 输入在值结束前耗尽.
        """
        if self.token_type == PROPERTY_NAME and not self.read():
            raise TruncatedObjectError("Incomplete JSON value", pos=self._pos)

        if self.token_type in START_TOKENS:
            depth = len(self._stack)
            while True:
                if not self.read():
                    raise TruncatedObjectError(
                        "Incomplete JSON object or array", pos=self._pos
                    )
                if self.token_type in END_TOKENS and len(self._stack) < depth:
                    break

    def value_text(self) -> str:
        """返回当前值的完整原始文本, 不移动本读取器的游标.

        在副本上执行 `skip()` 并截取对应区间.

        Raises:
            TruncatedObjectError: 输入在值结束前耗尽.
        """
        cursor = self.copy()
        if cursor.token_type == PROPERTY_NAME and not cursor.read():
            raise TruncatedObjectError("Incomplete JSON value", pos=cursor._pos)
        start = cursor.token_start
        cursor.skip()
        return self._text[start : cursor.token_end]

    def _read_value_token(self, pos: int) -> bool:
        text = self._text
        ch = text[pos]

        if ch == "{":
            self._stack.append(START_OBJECT)
            self._set_token(START_OBJECT, pos, pos + 1)
            self._state = _STATE_OBJECT_FIRST
            return True
        if ch == "[":
            self._stack.append(START_ARRAY)
            self._set_token(START_ARRAY, pos, pos + 1)
            self._state = _STATE_ARRAY_FIRST
            return True
        if ch == '"':
            end = self._scan_string(pos)
            self._set_token(STRING, pos, end)
            self._state = self._after_value()
            return True
        if ch == "-" or ch.isdigit():
            m = _NUMBER.match(text, pos)
            if m is None:
                if pos + 1 >= self.length:
                    raise TruncatedObjectError("Incomplete number", pos=pos)
                raise self._error("Invalid number", pos)
            self._set_token(NUMBER, pos, m.end())
            self._state = self._after_value()
            return True

        for word, token_type in _LITERALS:
            if text.startswith(word, pos):
                self._set_token(token_type, pos, pos + len(word))
                self._state = self._after_value()
                return True
            if word.startswith(text[pos:]):
                raise TruncatedObjectError(f"Incomplete literal {word!r}", pos=pos)

        raise self._error(f"Unexpected character {ch!r}", pos)

    def _scan_string(self, pos: int) -> int:
        m = _STRING.match(self._text, pos)
        if m is not None:
            return m.end()
        if _STRING_PREFIX.fullmatch(self._text, pos):
            raise TruncatedObjectError("Unterminated string", pos=pos)
        raise self._error("Invalid string literal", pos)

    def _close(self, pos: int, token_type: TokenType) -> bool:
        self._stack.pop()
        self._set_token(token_type, pos, pos + 1)
        self._state = self._after_value()
        return True

    def _after_value(self) -> int:
        if not self._stack:
            return _STATE_DONE
        if self._stack[-1] == START_OBJECT:
            return _STATE_OBJECT_NEXT
        return _STATE_ARRAY_NEXT

    def _set_token(self, token_type: TokenType, start: int, end: int) -> None:
        self.token_type = token_type
        self.token_start = start
        self.token_end = end
        self._pos = end

    def _error(self, msg: str, pos: int) -> RestDecodeError:
        logger.debug("[JsonReader] %s\n%s", msg, get_context(self._text, pos))
        return RestDecodeError(msg, pos=pos)


def validate_json(text: str, target: Any, config: "Config") -> Any:
    """使用 Pydantic 将 JSON 文本解码为 `target` (通用 Schema 驱动解码)."""
    strict = True if config.strict else None
    if isinstance(target, type) and issubclass(target, BaseModel):
        return target.model_validate_json(text, strict=strict, context=config.context)
    adapter: TypeAdapter[Any] = TypeAdapter(target)
    return adapter.validate_json(text, strict=strict, context=config.context)


def decode_text(text: str, target: Any, config: "Config") -> Any:
    """将 JSON 文本解码为 `target`.

    目标类型命中 `config` 中的转换器时交给转换器处理,
    否则直接走 Pydantic 通用解码.
    """
    converter = config.find_converter(target)
    if converter is None:
        return validate_json(text, target, config)

    reader = JsonReader(text)
    if not reader.read():
        raise RestDecodeError("Expected a JSON value, got end of input", pos=0)
    result = converter.read(reader, config)
    if reader.read():
        raise RestDecodeError("Trailing data after JSON value", pos=reader.token_start)
    return result


def decode_value(reader: JsonReader, target: Any, config: "Config") -> Any:
    """从读取器当前位置解码一个值, 结束时游标停留在该值的最后一个 Token 上."""
    converter = config.find_converter(target)
    if converter is not None:
        return converter.read(reader, config)

    text = reader.value_text()
    reader.skip()
    return validate_json(text, target, config)


def read_untyped(reader: JsonReader) -> tuple[Any, str]:
    """以无类型方式读取当前值.

    Returns:
        tuple[Any, str]: (解析出的 Python 值, 原始 JSON 文本).
    """
    raw = reader.value_text()
    reader.skip()
    return from_json(raw), raw


def stringify(
    value: Any, raw: str, *, raw_text: bool = False, allow_none: bool = True
) -> str | None:
    """将无类型 JSON 值转换为扩展属性中存储的文本.

    - 字符串: 原样返回 (不带引号).
    - null: `allow_none` 时为 None, 否则为 "null".
    - 其他: 规范化的紧凑 JSON 文本; `raw_text` 时为输入中的原始文本.
      超出浮点范围的数字 (如 `1e400`) 没有规范形式, 同样使用原始文本.
    """
    if value is None:
        return None if allow_none else "null"
    if isinstance(value, str):
        return value
    if raw_text or not _is_finite(value):
        return raw
    return to_json(value).decode("utf-8")


def _is_finite(value: Any) -> bool:
    if isinstance(value, float):
        return math.isfinite(value)
    if isinstance(value, list):
        return all(_is_finite(v) for v in value)
    if isinstance(value, dict):
        return all(_is_finite(v) for v in value.values())
    return True
