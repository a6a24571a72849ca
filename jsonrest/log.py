"""jsonrest 日志记录器."""

import logging

logger = logging.getLogger("jsonrest")


def get_context(text: str, pos: int, window: int = 16) -> str:
    """获取指定位置周围文本的上下文片段."""
    start = max(0, pos - window)
    end = min(len(text), pos + window)
    chunk = text[start:end]

    # 让控制字符可见, 并标出出错位置
    marker = " " * (min(pos, len(text)) - start) + "^"
    return f"位置 {pos} 的上下文 (显示 {start}-{end}):\n{chunk!r}\n {marker}"
