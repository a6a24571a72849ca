"""JSON 词法单元类型定义."""

from enum import IntEnum


class TokenType(IntEnum):
    """JSON 词法单元类型枚举.

    对应 `JsonReader` 当前所在位置的 Token 种类.
    """

    NONE = 0  # 尚未开始读取
    START_OBJECT = 1
    END_OBJECT = 2
    START_ARRAY = 3
    END_ARRAY = 4
    PROPERTY_NAME = 5
    STRING = 6
    NUMBER = 7
    TRUE = 8
    FALSE = 9
    NULL = 10


# Aliases
NONE = TokenType.NONE
START_OBJECT = TokenType.START_OBJECT
END_OBJECT = TokenType.END_OBJECT
START_ARRAY = TokenType.START_ARRAY
END_ARRAY = TokenType.END_ARRAY
PROPERTY_NAME = TokenType.PROPERTY_NAME
STRING = TokenType.STRING
NUMBER = TokenType.NUMBER
TRUE = TokenType.TRUE
FALSE = TokenType.FALSE
NULL = TokenType.NULL

# 派生分组
START_TOKENS = frozenset({START_OBJECT, START_ARRAY})
END_TOKENS = frozenset({END_OBJECT, END_ARRAY})
