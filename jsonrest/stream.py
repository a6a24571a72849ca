"""jsonrest 流式处理模块.

该模块提供用于网络协议和流处理的 Reader 类.
支持从连续拼接的 JSON 文档 (或 JSON Lines) 中增量解码.
"""

import codecs
from collections.abc import Generator
from typing import Any

from .api import loads
from .decoder import JsonReader
from .exceptions import TruncatedObjectError
from .log import logger
from .options import RestOption
from .types import NUMBER

_WHITESPACE = " \t\r\n"
_NUMBER_CHARS = "0123456789.eE+-"


class RestStreamReader:
    """JSON 流式读取器.

    JSON 文档自带定界 (对象和数组有闭合括号, 字符串有引号), 因此不需要长度前缀.
    通过 `feed()` 输入任意切分的数据, 迭代读取器取出所有已完整到达的文档.
    不完整的尾部数据保留在缓冲区中, 等待后续输入.

    Usage:
        >>> reader = RestStreamReader(target=Pet)
        >>> reader.feed(b'{"name": "Rex"}\\n{"na')
        >>> [pet.Name for pet in reader]
        ['Rex']
        >>> reader.feed(b'me": "Tom"}\\n')
        >>> [pet.Name for pet in reader]
        ['Tom']
    """

    def __init__(
        self,
        target: Any,
        option: RestOption = RestOption.NONE,
        max_buffer_size: int = 10 * 1024 * 1024,  # 10M 字符
        context: dict[str, Any] | None = None,
    ):
        """初始化流式读取器.

        Args:
            target: 目标类型 (RestModel 子类或任意 Pydantic 可解码的类型).
            option: 反序列化选项.
            max_buffer_size: 最大缓冲区大小 (字符数, 防止内存耗尽).
            context: 反序列化上下文.
        """
        self._target = target
        self._option = option
        self._max_buffer_size = max_buffer_size
        self._context = context
        self._buffer = ""
        # 二进制输入可能在多字节字符中间被切断
        self._decoder = codecs.getincrementaldecoder("utf-8-sig")()

    @property
    def buffered(self) -> int:
        """缓冲区中尚未解码的字符数."""
        return len(self._buffer)

    def feed(self, data: str | bytes | bytearray | memoryview) -> None:
        """输入数据到内部缓冲区.

        Raises:
            BufferError: 缓冲区超过 `max_buffer_size`.
            UnicodeDecodeError: 二进制数据不是有效的 UTF-8.
        """
        if isinstance(data, str):
            text = data
        else:
            text = self._decoder.decode(bytes(data))

        if len(self._buffer) + len(text) > self._max_buffer_size:
            raise BufferError("RestStreamReader buffer exceeded max size")
        self._buffer += text

    def feed_data(self, data: str | bytes | bytearray | memoryview) -> None:
        """输入数据到内部缓冲区."""
        self.feed(data)

    def __iter__(self) -> Generator[Any, None, None]:
        """从缓冲区解析所有完整的文档.

        Yields:
            解析出的对象 (目标为扩展属性模型且文档为 `null` 时为 None).

        Raises:
            RestDecodeError: 缓冲区中的数据不是合法的 JSON.
        """
        while True:
            document = self._next_document()
            if document is None:
                break
            yield loads(
                document,
                target=self._target,
                option=self._option,
                context=self._context,
            )

    def _next_document(self) -> str | None:
        """从缓冲区头部取出一个完整文档的文本, 数据不足时返回 None."""
        text = self._buffer
        start = len(text) - len(text.lstrip(_WHITESPACE))
        if start == len(text):
            self._buffer = ""
            return None

        reader = JsonReader(text[start:])
        try:
            reader.read()
            # 位于缓冲区末尾的数字可能还没有输入完整
            rest = text[start + reader.token_end :]
            if reader.token_type == NUMBER and not rest.lstrip(_NUMBER_CHARS):
                return None
            reader.skip()
        except TruncatedObjectError:
            logger.debug("[RestStreamReader] 数据不完整, 已缓冲 %d 字符", len(text))
            return None

        end = start + reader.token_end
        self._buffer = text[end:]
        return text[start:end]
