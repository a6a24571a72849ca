"""jsonrest 配置对象."""

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from .options import RestOption

if TYPE_CHECKING:
    from .converter import RestConverter


@dataclass(frozen=True)
class Config:
    """jsonrest 反序列化配置 (不可变).

    这是所有配置的统一容器, 在 API 入口层创建,
    然后传递给 JsonReader/RestConverter.

    Attributes:
        flags: 选项标志 (IntFlag).
        context: 用户提供的上下文数据, 透传给 Pydantic 验证器.
        converters: 当前生效的转换器. 目标类型命中其中之一时由转换器接管解码.
    """

    flags: RestOption = RestOption.NONE
    context: dict[str, Any] = field(default_factory=dict)
    converters: tuple["RestConverter[Any]", ...] = ()

    @classmethod
    def from_params(
        cls,
        option: RestOption = RestOption.NONE,
        context: dict[str, Any] | None = None,
        converters: "Iterable[RestConverter[Any]] | None" = None,
    ) -> "Config":
        """从参数构建配置对象.

        Args:
            option: RestOption 枚举.
            context: 用户提供的上下文数据.
            converters: 生效的转换器列表.

        Returns:
            Config: 配置对象.
        """
        ctx = context if context is not None else {}

        return cls(
            flags=option,
            context=ctx,
            converters=tuple(converters) if converters else (),
        )

    def find_converter(self, target: Any) -> "RestConverter[Any] | None":
        """返回负责 `target` 的第一个转换器, 没有则返回 None."""
        for converter in self.converters:
            if converter.can_convert(target):
                return converter
        return None

    def with_converter(self, converter: "RestConverter[Any]") -> "Config":
        """返回追加了 `converter` 的配置副本."""
        return replace(self, converters=(*self.converters, converter))

    def without(self, converter: "RestConverter[Any]") -> "Config":
        """返回排除了 `converter` 同类转换器的配置副本.

        委托给通用解码器时必须使用该副本, 否则同一目标类型会再次命中
        该转换器而无限递归.
        """
        kept = tuple(c for c in self.converters if not converter.same_as(c))
        return replace(self, converters=kept)

    @property
    def strict(self) -> bool:
        """是否使用 Pydantic 严格模式."""
        return bool(self.flags & RestOption.STRICT)

    @property
    def raw_text(self) -> bool:
        """扩展属性是否保留原始文本."""
        return bool(self.flags & RestOption.RAW_TEXT)
