"""扩展属性模型定义模块."""

from typing import Any, ClassVar, TypeVar, cast

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_core import PydanticUndefined
from typing_extensions import dataclass_transform

from .options import RestOption
from .schema import CATCH_ALL_KEY, RestModelField, get_schema, prepare_fields

M = TypeVar("M", bound="RestModel")


def RestField(
    default: Any = PydanticUndefined,
    *,
    rename: str | None = None,
    catch_all: bool = False,
    default_factory: Any | None = None,
) -> Any:
    """创建 RestModel 字段配置.

    这是一个 Pydantic `Field` 的包装函数, 用于注入扩展属性解码所需的
    元数据 (显式重命名, 扩展属性标记). 普通字段不需要使用它.

    Args:
        default: 字段的静态默认值.
            如果未提供此参数且未提供 `default_factory`, 则该字段为**必填**.
        rename: JSON 中使用的键名. 除了字段名及其首字母小写形式之外,
            该键也会被识别为此字段. 等价于 Pydantic 的 `alias`.
        catch_all: 是否将该字段标记为扩展属性字段.
            扩展属性字段必须是 `dict[str, str]`, 每个模型最多一个.
            未提供默认值时自动使用 `default_factory=dict`.
        default_factory: 用于生成默认值的无参可调用对象.

    Returns:
        Any: 包含 jsonrest 元数据的 Pydantic FieldInfo 对象.

    Raises:
        ValueError: 如果 `rename` 为空字符串.

    Examples:
        >>> from jsonrest import RestModel, RestField
        >>> class Pet(RestModel):
        ...     # 1. 普通字段: 接受 "Name" 和 "name"
        ...     Name: str = ""
        ...
        ...     # 2. 显式重命名: 还接受 "years"
        ...     Age: int = RestField(0, rename="years")
        ...
        ...     # 3. 扩展属性: 收集所有未识别的键
        ...     Extra: dict[str, str] = RestField(catch_all=True)
    """
    if rename is not None and not rename:
        raise ValueError("rename must be a non-empty string")

    # 这些元数据稍后会被 RestModelMeta 提取并存入 __rest_fields__
    json_schema_extra = {CATCH_ALL_KEY: catch_all}

    kwargs: dict[str, Any] = {
        "json_schema_extra": json_schema_extra,
    }

    if rename is not None:
        kwargs["alias"] = rename

    if default is not PydanticUndefined:
        kwargs["default"] = default

    if default_factory is not None:
        kwargs["default_factory"] = default_factory
    elif catch_all and default is PydanticUndefined:
        kwargs["default_factory"] = dict

    # cast call to Any to avoid type checking issues with Field return type
    return cast(Any, Field)(**kwargs)


def CatchAll(*, rename: str | None = None) -> Any:
    """`RestField(catch_all=True)` 的简写, 默认值为空字典."""
    return RestField(rename=rename, catch_all=True, default_factory=dict)


@dataclass_transform(
    kw_only_default=True, field_specifiers=(RestField, CatchAll, Field)
)
class RestModelMeta(type(BaseModel)):
    """RestModel 的元类, 用于收集字段元数据."""

    def __new__(  # noqa: D102
        mcs,
        name: str,
        bases: tuple[type, ...],
        namespace: dict[str, Any],
        **kwargs: Any,
    ):
        cls = super().__new__(mcs, name, bases, namespace, **kwargs)
        cls.__rest_fields__ = prepare_fields(cls.model_fields)
        return cls


class RestModel(BaseModel, metaclass=RestModelMeta):
    """扩展属性模型基类.

    继承自 `pydantic.BaseModel`. 子类通过 `RestField(catch_all=True)` 声明一个
    `dict[str, str]` 字段, 用来收集 JSON 对象中所有未对应到已知字段的键值对.

    已知字段的匹配规则 (区分大小写):
        1. 字段名本身, 如 `Name`.
        2. 首字母小写的字段名, 如 `name`.
        3. `RestField(rename=...)` 指定的键名.

    Examples:
        >>> from jsonrest import RestModel, RestField, loads
        >>> class Pet(RestModel):
        ...     Name: str = ""
        ...     Extra: dict[str, str] = RestField(catch_all=True)
        >>> pet = loads('{"name": "Rex", "color": "brown"}', target=Pet)
        >>> pet.Name, pet.Extra
        ('Rex', {'color': 'brown'})

    Note:
        带扩展属性字段的模型不支持通过 `dumps()` 序列化.
    """

    model_config = ConfigDict(extra="ignore")

    __rest_fields__: ClassVar[dict[str, RestModelField]] = {}

    @classmethod
    def model_validate_rest(
        cls: type[M],
        data: str | bytes | bytearray | memoryview,
        option: RestOption = RestOption.NONE,
        context: dict[str, Any] | None = None,
    ) -> M | None:
        """解码 JSON 数据并创建实例 (包括扩展属性).

        Args:
            data: JSON 文本.
            option: 解码选项.
            context: 验证上下文, 透传给 Pydantic 验证器.

        Returns:
            M | None: 模型实例; 输入为 `null` 时返回 None.

        Raises:
            RestDecodeError: JSON 格式错误或根值不是对象.
            RestSchemaError: 模型的扩展属性字段定义不合法.
            ValidationError: 已知字段不符合模型定义.
        """
        from .api import loads

        return loads(data, target=cls, option=option, context=context)

    def model_dump_rest(self, indent: int | None = None) -> str:
        """序列化为 JSON 文本.

        Raises:
            UnsupportedOperationError: 模型声明了扩展属性字段.
        """
        from .api import dumps

        return dumps(self, indent=indent)

    @model_validator(mode="before")
    @classmethod
    def _rest_pre_validate(cls, value: Any) -> Any:
        """验证前钩子: 将各种命名约定的键映射到 Pydantic 验证使用的键."""
        if not isinstance(value, dict):
            return value

        schema = get_schema(cls)
        new_value: dict[Any, Any] = {}
        for key, val in value.items():
            model_field = schema.match(key) if isinstance(key, str) else None
            if model_field is not None:
                key = model_field.validation_key
            new_value[key] = val
        return new_value
