"""扩展属性转换器.

`RestConverter` 对一个 JSON 对象做两次遍历:
    1. 截取对象的原始文本交给 Pydantic, 填充所有已知字段.
    2. 用原游标逐个扫描键值对, 把未对应到已知字段的键收进扩展属性映射.

第一次遍历只在读取器的副本上进行, 不移动调用方的游标.
"""

import functools
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from .config import Config
from .decoder import JsonReader, decode_text, read_untyped, stringify
from .exceptions import (
    ExpectedObjectError,
    TruncatedObjectError,
    UnsupportedOperationError,
)
from .log import logger
from .schema import (
    CatchAllField,
    RestSchema,
    get_schema,
    resolve_catch_all_field,
)
from .types import END_OBJECT, NULL, START_OBJECT

T = TypeVar("T", bound=BaseModel)


class RestConverter(Generic[T]):
    """将 JSON 对象解码为带扩展属性字段的 RestModel.

    构造时即校验目标模型的扩展属性字段定义, 定义不合法时立即抛出
    `RestSchemaError`, 不会读取任何输入.

    Examples:
        >>> converter = RestConverter(Pet)
        >>> reader = JsonReader('{"name": "Rex", "color": "brown"}')
        >>> reader.read()
        True
        >>> pet = converter.read(reader, Config(converters=(converter,)))
    """

    __slots__ = ("_catch_all", "_schema", "_target")

    _target: type[T]
    _catch_all: CatchAllField
    _schema: RestSchema

    def __init__(self, target: type[T]):
        """初始化转换器.

        Args:
            target: 目标模型类型 (RestModel 子类).

        Raises:
            RestSchemaError: 目标模型不满足扩展属性约束.
        """
        self._catch_all = resolve_catch_all_field(target)
        self._schema = get_schema(target)
        self._target = target

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._target.__name__})"

    @property
    def target(self) -> type[T]:
        """目标模型类型."""
        return self._target

    @property
    def catch_all(self) -> CatchAllField:
        """扩展属性字段句柄."""
        return self._catch_all

    def can_convert(self, type_: Any) -> bool:
        """是否负责解码 `type_`."""
        return type_ is self._target

    def same_as(self, other: Any) -> bool:
        """`other` 是否为同一目标类型的同类转换器."""
        return type(other) is type(self) and other.target is self._target

    def read(self, reader: JsonReader, config: Config) -> T | None:
        """从读取器的当前 Token 开始解码一个对象.

        Args:
            reader: 已定位到值起始 Token 的读取器.
            config: 解码配置.

        Returns:
            T | None: 模型实例; 当前值为 `null` 时返回 None.
                返回时读取器停留在对象的结束 Token `}` 上.

        Raises:
            ExpectedObjectError: 当前值既不是 `null` 也不是对象.
            TruncatedObjectError: 对象未闭合输入就已结束.
            ValidationError: 已知字段不符合模型定义.
        """
        if reader.token_type == NULL:
            return None

        if reader.token_type != START_OBJECT:
            raise ExpectedObjectError(
                f"{self._target.__name__} must be decoded from a JSON object, "
                f"got {reader.token_type.name}",
                pos=reader.token_start,
            )

        logger.debug(
            "[RestConverter] 开始解码 %s (位置 %d)",
            self._target.__name__,
            reader.token_start,
        )

        obj = self._read_known_fields(reader, config)
        extensions = self._catch_all.reset(obj)
        schema = self._schema
        allow_none = self._catch_all.allows_none

        while True:
            if not reader.read():
                raise TruncatedObjectError(
                    "Incomplete JSON object", pos=reader.position
                )

            if reader.token_type == END_OBJECT:
                logger.debug(
                    "[RestConverter] %s 解码完成, 扩展属性 %d 个",
                    self._target.__name__,
                    len(extensions),
                )
                return obj

            key = reader.get_string()

            if schema.is_known(key):
                # 该值已由第一次遍历处理, 整体跳过 (包括嵌套的对象/数组)
                reader.skip()
                continue

            if not reader.read():
                raise TruncatedObjectError(
                    "Incomplete JSON object", loc=[key], pos=reader.position
                )

            value, raw = read_untyped(reader)
            extensions[key] = stringify(
                value, raw, raw_text=config.raw_text, allow_none=allow_none
            )

    def write(self, value: T) -> str:
        """序列化模型实例 (不支持).

        Raises:
            UnsupportedOperationError: 总是抛出.
        """
        raise UnsupportedOperationError(
            f"Writing {self._target.__name__} is not supported: models with a "
            f"catch-all field '{self._catch_all.name}' can only be decoded"
        )

    def _read_known_fields(self, reader: JsonReader, config: Config) -> T:
        """第一次遍历: 截取对象原始文本, 交给通用解码器填充已知字段."""
        raw_json = reader.value_text()
        # 排除自身, 否则 decode_text 会再次命中该转换器
        options = config.without(self)
        return decode_text(raw_json, self._target, options)


@functools.cache
def get_converter(target: type[T]) -> RestConverter[T]:
    """返回 `target` 的转换器 (按类型缓存).

    Raises:
        RestSchemaError: 目标模型不满足扩展属性约束.
    """
    return RestConverter(target)


def has_catch_all(target: Any) -> bool:
    """`target` 是否为声明了扩展属性字段的 RestModel."""
    if not isinstance(target, type):
        return False
    fields = getattr(target, "__rest_fields__", None)
    if not fields:
        return False
    return any(f.catch_all for f in fields.values())
