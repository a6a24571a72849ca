"""扩展属性模型的 Schema 检查与字段名匹配.

该模块负责两件事:
    1. 从模型的字段元数据中找到唯一的扩展属性字段并校验其形状.
    2. 判断一个 JSON 键是否对应模型的已知字段.

两次解码 (Pydantic 负责已知字段, 逐 Token 扫描负责剩余键) 必须使用
同一套字段名匹配规则, 否则同一个键可能既填充了已知字段又被收进扩展属性,
或者两边都没有处理而被静默丢弃.
"""

import functools
import types as stdlib_types
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Union, get_args, get_origin

from pydantic import AliasChoices, AliasPath, BaseModel
from pydantic.fields import FieldInfo

from .exceptions import (
    AmbiguousCatchAllFieldError,
    CatchAllNotWritableError,
    InvalidCatchAllTypeError,
    MissingCatchAllFieldError,
    RestSchemaError,
)

# RestField 写入 json_schema_extra 的标记键
CATCH_ALL_KEY = "rest_catch_all"


def lower_first(name: str) -> str:
    """仅将首字符转为小写 (PascalCase -> camelCase 的轻量近似).

    不处理单词内部的大写字母, 例如 `"HTTPStatus"` -> `"hTTPStatus"`.
    """
    return name[:1].lower() + name[1:]


@dataclass(frozen=True)
class RestModelField:
    """表示一个 RestModel 模型字段的元数据.

    Attributes:
        name: Python 字段名.
        rename: 显式重命名 (Pydantic alias), 没有则为 None.
        catch_all: 是否为扩展属性字段.
        annotation: 字段的类型注解.
        frozen: 字段是否被声明为不可变.
        aliases: `AliasChoices` 中 `rename` 之外的其他候选键名.
        nested_alias: 字段是否使用了指向嵌套值的 `AliasPath`.
    """

    name: str
    rename: str | None = None
    catch_all: bool = False
    annotation: Any = None
    frozen: bool = False
    aliases: tuple[str, ...] = ()
    nested_alias: bool = False

    @classmethod
    def from_field_info(cls, name: str, field_info: FieldInfo) -> "RestModelField":
        """从 Pydantic FieldInfo 创建 RestModelField."""
        extra = field_info.json_schema_extra
        if not isinstance(extra, dict):
            extra = {}

        keys, nested_alias = _alias_keys(field_info)

        return cls(
            name=name,
            rename=keys[0] if keys else None,
            catch_all=bool(extra.get(CATCH_ALL_KEY, False)),
            annotation=field_info.annotation,
            frozen=bool(field_info.frozen),
            aliases=keys[1:],
            nested_alias=nested_alias,
        )

    @property
    def renames(self) -> tuple[str, ...]:
        """全部显式键名 (rename 在前)."""
        if self.rename is None:
            return self.aliases
        return (self.rename, *self.aliases)

    @property
    def validation_key(self) -> str:
        """Pydantic 验证该字段时查找的键."""
        return self.rename if self.rename is not None else self.name

    def matches(self, json_key: str) -> bool:
        """JSON 键是否以任一约定命中该字段 (精确, 区分大小写)."""
        return (
            json_key == self.name
            or json_key == lower_first(self.name)
            or json_key in self.renames
        )


def _alias_keys(field_info: FieldInfo) -> tuple[tuple[str, ...], bool]:
    """提取 Pydantic 验证时接受的顶层键名.

    Returns:
        tuple[tuple[str, ...], bool]: (键名, 是否存在无法用单个键表示的 AliasPath).
    """
    alias = field_info.validation_alias
    if alias is None:
        return ((field_info.alias,) if field_info.alias else ()), False

    choices = alias.choices if isinstance(alias, AliasChoices) else [alias]
    keys: list[str] = []
    nested = False
    for choice in choices:
        if isinstance(choice, AliasPath):
            path = choice.path
            if len(path) == 1 and isinstance(path[0], str):
                choice = path[0]
            else:
                nested = True
                continue
        if choice not in keys:
            keys.append(choice)
    return tuple(keys), nested


def is_known_field(json_key: str, fields: Iterable[RestModelField]) -> bool:
    """判断 JSON 键是否对应 `fields` 中的任一字段.

    匹配规则 (任一成立即可):
        1. 与字段名完全相同.
        2. 与首字母小写后的字段名相同.
        3. 与字段的任一显式重命名 (alias 或 AliasChoices 候选) 相同.
    """
    return any(f.matches(json_key) for f in fields)


def prepare_fields(fields: dict[str, FieldInfo]) -> dict[str, RestModelField]:
    """准备字段元数据映射.

    遍历 Pydantic 的 fields, 提取 RestField 写入的元数据.
    """
    return {
        name: RestModelField.from_field_info(name, info)
        for name, info in fields.items()
    }


def build_name_table(fields: Iterable[RestModelField]) -> dict[str, RestModelField]:
    """构建 JSON 键 -> 字段 的查找表.

    同一个键可能被多个字段以不同规则命中 (例如字段 `Name` 的首字母小写形式
    恰好是另一个字段 `name`), 此时优先级为: 显式重命名 > 字段名 > 首字母小写.
    """
    fields = list(fields)
    table: dict[str, RestModelField] = {}
    # 低优先级先写, 高优先级覆盖
    for f in fields:
        table[lower_first(f.name)] = f
    for f in fields:
        table[f.name] = f
    for f in fields:
        for key in f.renames:
            table[key] = f
    return table


@dataclass(frozen=True, eq=False)
class RestSchema:
    """一个模型类型的字段名匹配信息 (按类型缓存).

    Attributes:
        model: 模型类型.
        fields: 全部字段 (包括扩展属性字段本身).
        names: JSON 键 -> 字段 的查找表.
    """

    model: type[BaseModel]
    fields: tuple[RestModelField, ...]
    names: dict[str, RestModelField] = field(repr=False)

    def match(self, json_key: str) -> RestModelField | None:
        """返回 JSON 键命中的字段, 未命中返回 None."""
        return self.names.get(json_key)

    def is_known(self, json_key: str) -> bool:
        """JSON 键是否对应已知字段."""
        return json_key in self.names


@dataclass(frozen=True)
class CatchAllField:
    """扩展属性字段的句柄.

    通过句柄读写模型实例上的扩展属性映射, 调用方不需要关心字段名.

    Attributes:
        field: 字段元数据.
        allows_none: 映射的值类型是否允许 None (`dict[str, str | None]`).
    """

    field: RestModelField
    allows_none: bool = False

    @property
    def name(self) -> str:
        """字段名."""
        return self.field.name

    def get(self, obj: BaseModel) -> dict[str, Any]:
        """返回实例上的扩展属性映射."""
        return getattr(obj, self.field.name)

    def reset(self, obj: BaseModel) -> dict[str, Any]:
        """将实例上的扩展属性重置为空映射并返回它."""
        setattr(obj, self.field.name, {})
        # validate_assignment 开启时实例上保存的是验证后的副本
        return getattr(obj, self.field.name)


def _rest_fields(model: Any) -> dict[str, RestModelField]:
    fields = None
    if isinstance(model, type) and issubclass(model, BaseModel):
        fields = getattr(model, "__rest_fields__", None)
    if fields is None:
        raise RestSchemaError(
            f"{model!r} is not a RestModel; extension properties require "
            f"the target to subclass jsonrest.RestModel"
        )
    return fields


@functools.cache
def get_schema(model: type[BaseModel]) -> RestSchema:
    """返回模型的字段名匹配信息 (结果按类型缓存).

    Raises:
        RestSchemaError: 模型不是 RestModel 子类.
    """
    fields = tuple(_rest_fields(model).values())
    return RestSchema(model=model, fields=fields, names=build_name_table(fields))


def _catch_all_value_type(annotation: Any) -> tuple[bool, bool]:
    """检查注解是否为 str -> str 映射.

    Returns:
        tuple[bool, bool]: (是否合法, 值类型是否允许 None).
    """
    if get_origin(annotation) is not dict:
        return False, False

    args = get_args(annotation)
    if len(args) != 2 or args[0] is not str:
        return False, False

    value_type = args[1]
    if value_type is str:
        return True, False

    # 处理 Optional[str] / str | None
    origin = get_origin(value_type)
    if origin is Union or origin is stdlib_types.UnionType:
        if set(get_args(value_type)) == {str, type(None)}:
            return True, True

    return False, False


@functools.cache
def resolve_catch_all_field(model: type[BaseModel]) -> CatchAllField:
    """找到并校验模型唯一的扩展属性字段 (结果按类型缓存).

    Args:
        model: RestModel 子类.

    Returns:
        CatchAllField: 扩展属性字段句柄.

    Raises:
        RestSchemaError: 模型不是 RestModel 子类.
        MissingCatchAllFieldError: 没有字段被标记为扩展属性.
        AmbiguousCatchAllFieldError: 多个字段被标记为扩展属性.
        InvalidCatchAllTypeError: 字段类型不是 `dict[str, str]`.
        CatchAllNotWritableError: 字段或模型是 frozen 的.
        RestSchemaError: 模型的 `extra` 不是 "ignore", 或字段使用了嵌套的 AliasPath.
    """
    fields_all = list(_rest_fields(model).values())
    fields = [f for f in fields_all if f.catch_all]
    name = model.__name__

    if not fields:
        raise MissingCatchAllFieldError(
            f"Expected exactly 1 field of {name} marked with catch_all=True, "
            f"found none"
        )
    if len(fields) > 1:
        names = ", ".join(f.name for f in fields)
        raise AmbiguousCatchAllFieldError(
            f"Multiple catch-all fields are not supported, {name} has {names}",
            field_name=fields[1].name,
        )

    catch_all = fields[0]
    valid, allows_none = _catch_all_value_type(catch_all.annotation)
    if not valid:
        raise InvalidCatchAllTypeError(
            f"The catch-all field {name}.{catch_all.name} must be of type "
            f"dict[str, str], got {catch_all.annotation!r}",
            field_name=catch_all.name,
        )

    if catch_all.frozen or model.model_config.get("frozen", False):
        raise CatchAllNotWritableError(
            f"The catch-all field {name}.{catch_all.name} must be assignable "
            f"after construction (field or model is frozen)",
            field_name=catch_all.name,
        )

    # 剩余键只能由扩展属性字段收集
    extra = model.model_config.get("extra") or "ignore"
    if extra != "ignore":
        raise RestSchemaError(
            f"{name} declares a catch-all field and must use extra='ignore', "
            f"got extra={extra!r}",
            field_name=catch_all.name,
        )

    for f in fields_all:
        if f.nested_alias:
            raise RestSchemaError(
                f"{name}.{f.name} uses an AliasPath into a nested value, which "
                f"cannot be reconciled with extension properties",
                field_name=f.name,
            )

    return CatchAllField(field=catch_all, allows_none=allows_none)
