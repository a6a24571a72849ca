"""jsonrest API模块.

提供用于 JSON 反序列化 (含扩展属性) 和序列化的高级接口
`loads`, `load`, `dumps`, `dump`.
"""

from collections.abc import Iterable
from typing import IO, Any, TypeVar, overload

from pydantic import BaseModel
from pydantic_core import to_json

from .config import Config
from .converter import RestConverter, get_converter, has_catch_all
from .decoder import JsonReader, decode_value
from .exceptions import RestDecodeError
from .log import logger
from .options import RestOption

M = TypeVar("M", bound=BaseModel)


def _build_config(
    target: Any,
    option: RestOption,
    context: dict[str, Any] | None,
    converters: Iterable[RestConverter[Any]] | None,
) -> Config:
    """构建解码配置, 必要时为目标类型补充扩展属性转换器."""
    config = Config.from_params(option=option, context=context, converters=converters)
    if config.find_converter(target) is None and has_catch_all(target):
        config = config.with_converter(get_converter(target))
    return config


@overload
def loads(
    data: str | bytes | bytearray | memoryview,
    target: type[M],
    option: RestOption = RestOption.NONE,
    *,
    context: dict[str, Any] | None = None,
    converters: Iterable[RestConverter[Any]] | None = None,
) -> M | None: ...


@overload
def loads(
    data: str | bytes | bytearray | memoryview,
    target: Any,
    option: RestOption = RestOption.NONE,
    *,
    context: dict[str, Any] | None = None,
    converters: Iterable[RestConverter[Any]] | None = None,
) -> Any: ...


def loads(
    data: str | bytes | bytearray | memoryview,
    target: Any,
    option: RestOption = RestOption.NONE,
    *,
    context: dict[str, Any] | None = None,
    converters: Iterable[RestConverter[Any]] | None = None,
) -> Any:
    """反序列化 JSON 文本为 Python 对象.

    Args:
        data: 输入的 JSON 文本 (str) 或 UTF-8 编码的二进制数据.
        target: 目标类型.
            - 声明了扩展属性字段的 `RestModel` 子类: 已知字段由 Pydantic 填充,
              其余键收进扩展属性映射.
            - 其他类型 (普通模型, `dict[str, int]` 等): 直接交给 Pydantic 解码.
        option: 反序列化选项 (如 `RestOption.STRICT`).
        context: 反序列化上下文, 透传给 Pydantic 验证器.
        converters: 额外生效的转换器. 未提供目标类型的转换器时会自动创建.

    Returns:
        目标类型实例. 目标为扩展属性模型且输入为 `null` 时返回 None.

    Raises:
        RestDecodeError: JSON 格式错误, 根值不是对象或根值之后还有多余数据.
        RestSchemaError: 目标模型的扩展属性字段定义不合法.
        ValidationError: 已知字段不符合模型定义.

    Examples:
        >>> from jsonrest import RestModel, RestField, loads
        >>> class Pet(RestModel):
        ...     Name: str = ""
        ...     Extra: dict[str, str] = RestField(catch_all=True)
        >>> loads('{"name": "Rex", "age": 3}', target=Pet).Extra
        {'age': '3'}
    """
    config = _build_config(target, option, context, converters)

    reader = JsonReader(data)
    if not reader.read():
        raise RestDecodeError("Expected a JSON value, got end of input", pos=0)

    logger.debug("[loads] 解码 %r, 输入长度 %d", target, reader.length)
    result = decode_value(reader, target, config)

    if reader.read():
        raise RestDecodeError(
            "Trailing data after JSON value", pos=reader.token_start
        )
    return result


@overload
def load(
    fp: IO[str] | IO[bytes],
    target: type[M],
    option: RestOption = RestOption.NONE,
    *,
    context: dict[str, Any] | None = None,
    converters: Iterable[RestConverter[Any]] | None = None,
) -> M | None: ...


@overload
def load(
    fp: IO[str] | IO[bytes],
    target: Any,
    option: RestOption = RestOption.NONE,
    *,
    context: dict[str, Any] | None = None,
    converters: Iterable[RestConverter[Any]] | None = None,
) -> Any: ...


def load(
    fp: IO[str] | IO[bytes],
    target: Any,
    option: RestOption = RestOption.NONE,
    *,
    context: dict[str, Any] | None = None,
    converters: Iterable[RestConverter[Any]] | None = None,
) -> Any:
    """从文件读取并反序列化 JSON 数据.

    封装了 `read()` 和 `loads()`.

    Args:
        fp: 打开的文本或二进制文件对象.
        target: 目标类型.
        option: 反序列化选项.
        context: 上下文.
        converters: 额外生效的转换器.

    Returns:
        解析后的对象.
    """
    data = fp.read()
    return loads(
        data,
        target=target,
        option=option,
        context=context,
        converters=converters,
    )


def dumps(
    obj: Any,
    *,
    indent: int | None = None,
    exclude_unset: bool = False,
) -> str:
    """序列化对象为 JSON 文本.

    Args:
        obj: 要序列化的对象. 支持 Pydantic 模型以及 Pydantic 能序列化的任意值.
        indent: 缩进空格数, None 表示紧凑输出.
        exclude_unset: 是否排除未显式设置的字段 (仅对模型有效).

    Returns:
        str: JSON 文本. 模型字段使用重命名后的键.

    Raises:
        UnsupportedOperationError: `obj` 是声明了扩展属性字段的模型.
            扩展属性只支持解码方向, 不会静默丢弃或部分序列化.
    """
    if isinstance(obj, BaseModel):
        if has_catch_all(type(obj)):
            return get_converter(type(obj)).write(obj)
        return obj.model_dump_json(
            indent=indent, by_alias=True, exclude_unset=exclude_unset
        )
    return to_json(obj, indent=indent).decode("utf-8")


def dump(
    obj: Any,
    fp: IO[str],
    *,
    indent: int | None = None,
    exclude_unset: bool = False,
) -> None:
    """序列化对象为 JSON 文本并写入文件.

    Args:
        obj: 要序列化的对象.
        fp: 文本文件对象, 必须实现 `write(str)` 方法.
        indent: 缩进空格数.
        exclude_unset: 是否排除未设置的字段 (仅模型).
    """
    fp.write(dumps(obj, indent=indent, exclude_unset=exclude_unset))
