"""测试 JSON 词法单元类型定义."""

from jsonrest import types
from jsonrest.types import TokenType


def test_token_type_values() -> None:
    """TokenType 的取值应保持稳定."""
    assert TokenType.NONE == 0
    assert TokenType.START_OBJECT == 1
    assert TokenType.END_OBJECT == 2
    assert TokenType.PROPERTY_NAME == 5
    assert TokenType.NULL == 10


def test_module_aliases() -> None:
    """模块级别名应指向对应的枚举成员."""
    assert types.START_OBJECT is TokenType.START_OBJECT
    assert types.END_ARRAY is TokenType.END_ARRAY
    assert types.STRING is TokenType.STRING


def test_token_groups_disjoint() -> None:
    """起始和结束分组互不相交, 且都不包含标量 Token."""
    assert not (types.START_TOKENS & types.END_TOKENS)
    assert types.START_TOKENS == {TokenType.START_OBJECT, TokenType.START_ARRAY}
    assert types.END_TOKENS == {TokenType.END_OBJECT, TokenType.END_ARRAY}
