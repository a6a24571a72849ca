"""jsonrest 流式处理功能测试.

覆盖 jsonrest.stream 模块的核心特性:
1. 连续拼接的 JSON 文档 / JSON Lines
2. 网络场景模拟 (粘包, 拆包, 多字节字符被切断)
3. 边界条件 (Max buffer size, 末尾的数字, 格式错误)
"""

import pytest

from jsonrest import CatchAll, RestDecodeError, RestModel, RestStreamReader


class StreamMsg(RestModel):
    """用于流传输测试的简单消息."""

    Id: int = 0
    Data: str = ""
    Extra: dict[str, str] = CatchAll()


# --- 1. 基础读取 ---


def test_stream_reader_json_lines() -> None:
    """按行分隔的文档应被逐个解码."""
    reader = RestStreamReader(StreamMsg)
    reader.feed('{"id": 1, "data": "a"}\n{"id": 2, "trace": "x"}\n')

    msgs = list(reader)

    assert [m.Id for m in msgs] == [1, 2]
    assert msgs[0].Data == "a"
    assert msgs[1].Extra == {"trace": "x"}
    assert reader.buffered == 0


def test_stream_reader_concatenated() -> None:
    """没有分隔符的连续文档 (粘包) 也能被切分."""
    reader = RestStreamReader(StreamMsg)
    reader.feed('{"id": 1}{"id": 2}  {"id": 3}')

    assert [m.Id for m in reader] == [1, 2, 3]


def test_stream_reader_split_packet() -> None:
    """不完整的文档 (拆包) 保留在缓冲区, 数据到齐后再解码."""
    reader = RestStreamReader(StreamMsg)

    reader.feed('{"id": 1, "da')
    assert list(reader) == []
    assert reader.buffered > 0

    reader.feed('ta": "abc", "x": [1, ')
    assert list(reader) == []

    reader.feed('2]}\n{"id"')
    msgs = list(reader)

    assert len(msgs) == 1
    assert msgs[0].Data == "abc"
    assert msgs[0].Extra == {"x": "[1,2]"}
    assert reader.buffered == len('\n{"id"')


def test_stream_reader_byte_by_byte() -> None:
    """逐字节输入, 包括被切断的多字节字符."""
    data = '{"id": 9, "data": "小白", "标签": true}'.encode()
    reader = RestStreamReader(StreamMsg)
    results = []

    for i in range(len(data)):
        reader.feed(data[i : i + 1])
        results.extend(reader)

    assert len(results) == 1
    assert results[0].Data == "小白"
    assert results[0].Extra == {"标签": "true"}


def test_stream_reader_bom() -> None:
    """二进制流开头的 BOM 被忽略."""
    reader = RestStreamReader(StreamMsg)
    reader.feed(b"\xef\xbb\xbf" + b'{"id": 5}')

    assert [m.Id for m in reader] == [5]


def test_stream_reader_null_document() -> None:
    """null 文档解码为 None."""
    reader = RestStreamReader(StreamMsg)
    reader.feed('null\n{"id": 1}')

    msgs = list(reader)

    assert msgs[0] is None
    assert msgs[1].Id == 1


def test_feed_data_alias() -> None:
    """feed_data() 与 feed() 等价."""
    reader = RestStreamReader(StreamMsg)
    reader.feed_data(b'{"id": 3}')

    assert [m.Id for m in reader] == [3]


# --- 2. 其他目标类型 ---


def test_stream_reader_generic_target() -> None:
    """目标类型可以是任意 Pydantic 可解码的类型."""
    reader = RestStreamReader(list[int])
    reader.feed("[1, 2][3]\n[]")

    assert list(reader) == [[1, 2], [3], []]


def test_stream_reader_number_at_end() -> None:
    """缓冲区末尾的数字可能未输入完整, 需要等待分隔符."""
    reader = RestStreamReader(float)

    reader.feed("12")
    assert list(reader) == []

    reader.feed("3.")
    assert list(reader) == []

    reader.feed("5 7")
    assert list(reader) == [123.5]

    reader.feed("\n")
    assert list(reader) == [7.0]


def test_stream_reader_number_documents() -> None:
    """以空白分隔的数字文档."""
    reader = RestStreamReader(int)
    reader.feed("1 2\n3\n")

    assert list(reader) == [1, 2, 3]


# --- 3. 边界条件 ---


def test_stream_reader_max_buffer() -> None:
    """缓冲区超过上限时应抛出 BufferError."""
    reader = RestStreamReader(StreamMsg, max_buffer_size=10)
    reader.feed("{" * 10)

    with pytest.raises(BufferError):
        reader.feed("{")


def test_stream_reader_buffer_released_after_decode() -> None:
    """解码后的数据从缓冲区移除, 不计入上限."""
    reader = RestStreamReader(StreamMsg, max_buffer_size=12)

    for i in range(5):
        reader.feed('{"id": %d}\n' % i)
        assert [m.Id for m in reader] == [i]


def test_stream_reader_malformed() -> None:
    """格式错误的数据应抛出 RestDecodeError."""
    reader = RestStreamReader(StreamMsg)
    reader.feed('{"id": 1]')

    with pytest.raises(RestDecodeError):
        list(reader)
