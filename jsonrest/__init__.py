"""JSON 扩展属性解码库.

提供了 RestModel 定义、带扩展属性的反序列化(loads)和序列化(dumps)功能.
"""

from .api import dump, dumps, load, loads
from .config import Config
from .converter import RestConverter, get_converter
from .decoder import JsonReader
from .exceptions import (
    AmbiguousCatchAllFieldError,
    CatchAllNotWritableError,
    ExpectedObjectError,
    InvalidCatchAllTypeError,
    MissingCatchAllFieldError,
    RestDecodeError,
    RestEncodeError,
    RestError,
    RestSchemaError,
    TruncatedObjectError,
    UnsupportedOperationError,
)
from .model import CatchAll, RestField, RestModel
from .options import RestOption
from .schema import (
    CatchAllField,
    RestModelField,
    RestSchema,
    get_schema,
    is_known_field,
    lower_first,
    resolve_catch_all_field,
)
from .stream import RestStreamReader
from .types import TokenType

__version__ = "0.1.0"

__all__ = [
    "AmbiguousCatchAllFieldError",
    "CatchAll",
    "CatchAllField",
    "CatchAllNotWritableError",
    "Config",
    "ExpectedObjectError",
    "InvalidCatchAllTypeError",
    "JsonReader",
    "MissingCatchAllFieldError",
    "RestConverter",
    "RestDecodeError",
    "RestEncodeError",
    "RestError",
    "RestField",
    "RestModel",
    "RestModelField",
    "RestOption",
    "RestSchema",
    "RestSchemaError",
    "RestStreamReader",
    "TokenType",
    "TruncatedObjectError",
    "UnsupportedOperationError",
    "__version__",
    "dump",
    "dumps",
    "get_converter",
    "get_schema",
    "is_known_field",
    "load",
    "loads",
    "lower_first",
    "resolve_catch_all_field",
]
