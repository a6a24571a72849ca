"""jsonrest 特定的异常类.

该模块为 jsonrest 库定义了异常层次结构.
"""


class RestError(Exception):
    """所有 jsonrest 异常的基类."""

    pass


class RestSchemaError(RestError):
    """目标模型定义不满足扩展属性约束时抛出.

    属于配置期错误, 对同一个模型类型只会出现一次, 与输入数据无关.
    """

    def __init__(self, msg: str, field_name: str | None = None) -> None:
        """初始化模型定义错误.

        Args:
            msg: 错误描述信息.
            field_name: 出错的字段名 (如有).
        """
        super().__init__(msg)
        self.field_name = field_name


class MissingCatchAllFieldError(RestSchemaError):
    """模型中没有任何字段被标记为扩展属性字段."""

    pass


class AmbiguousCatchAllFieldError(RestSchemaError):
    """模型中有多个字段被标记为扩展属性字段."""

    pass


class InvalidCatchAllTypeError(RestSchemaError, TypeError):
    """扩展属性字段的类型不是 `dict[str, str]`."""

    pass


class CatchAllNotWritableError(RestSchemaError):
    """扩展属性字段在构造后无法重新赋值 (frozen)."""

    pass


class RestDecodeError(RestError):
    """反序列化失败时抛出.

    Case:
        - JSON 文本格式错误.
        - 根节点不是对象.
        - 输入数据被截断.
    """

    def __init__(
        self,
        msg: str,
        loc: list[str | int] | None = None,
        pos: int | None = None,
    ) -> None:
        """初始化解码错误.

        Args:
            msg: 错误描述信息.
            loc: 错误发生的位置路径 (对象键或数组索引).
            pos: 错误发生时在输入文本中的偏移量.
        """
        super().__init__(msg)
        self.loc = loc or []
        self.pos = pos

    def __str__(self) -> str:
        base_msg = super().__str__()
        if self.loc:
            # 格式化为 dotted path
            loc_str = ".".join(str(x) for x in self.loc)
            return f"{base_msg} (at {loc_str})"
        return base_msg


class ExpectedObjectError(RestDecodeError):
    """根值既不是 `null` 也不是 JSON 对象时抛出."""

    pass


class TruncatedObjectError(RestDecodeError):
    """对象在遇到结束标记 `}` 之前输入就已结束时抛出.

    在流式解析中也表示需要更多数据才能完成解析.
    """

    pass


class RestEncodeError(RestError):
    """序列化失败时抛出."""

    pass


class UnsupportedOperationError(RestEncodeError, NotImplementedError):
    """尝试序列化带扩展属性字段的模型时抛出."""

    pass
