"""jsonrest 反序列化的配置选项.

该模块定义了用于控制 `loads` 函数行为的选项标志.
"""

from enum import IntFlag


class RestOption(IntFlag):
    """jsonrest 配置选项标志.

    可以使用位运算组合多个选项:
        option = RestOption.STRICT | RestOption.RAW_TEXT
    """

    # 默认行为:
    # 1. 已知字段使用 Pydantic 宽松模式验证
    # 2. 扩展属性中的非字符串值使用规范化的紧凑 JSON 文本
    NONE = 0x00

    # 已知字段使用 Pydantic 严格模式验证 (不做类型强转)
    STRICT = 0x01

    # 扩展属性中的非字符串值保留输入中的原始文本 (包括空白和数字写法)
    RAW_TEXT = 0x02
