"""Source Map解码器 - 提供声明的源文件列表及其内嵌源码"""

import base64
import binascii
import json
import logging
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union
from urllib.parse import unquote_to_bytes

import sourcemap

logger = logging.getLogger(__name__)


class SourceMapDecodeError(Exception):
    """文档不是格式正确的Source Map"""
    pass


class SourceMapDocument:
    """解码后的Source Map

    sources保持声明顺序（含重复项），sourceRoot已拼接。content_for只返回
    map内嵌的源码，缺少sourcesContent的源文件不会去下载。
    作为上下文管理器使用（或调用close）释放解码结果。
    """

    def __init__(self, index: Any):
        self._index = index
        self.sources: List[str] = list(index.sources)

        raw = index.raw if isinstance(index.raw, dict) else {}
        contents = raw.get("sourcesContent")
        self._contents: List[Optional[str]] = contents if isinstance(contents, list) else []

        # 重复路径以第一次声明为准
        self._positions: Dict[str, int] = {}
        for position, source in enumerate(self.sources):
            self._positions.setdefault(source, position)

        self.closed = False

    def __enter__(self) -> "SourceMapDocument":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __len__(self) -> int:
        return len(self.sources)

    def content_for(self, source: str) -> Optional[str]:
        """返回源文件的内嵌源码，没有则返回None"""
        if self.closed:
            raise ValueError("SourceMapDocument is closed")

        position = self._positions.get(source)
        if position is None or position >= len(self._contents):
            return None

        content = self._contents[position]
        return content if isinstance(content, str) else None

    def entries(self) -> Iterator[Tuple[str, Optional[str]]]:
        """按声明顺序产出(source, content)"""
        for source in self.sources:
            yield source, self.content_for(source)

    def close(self) -> None:
        """释放解码索引和源码表"""
        self._index = None
        self._contents = []
        self._positions = {}
        self.closed = True


def decode_source_map(source_map_content: Union[str, bytes]) -> SourceMapDocument:
    """解析Source Map文档，格式错误时抛出SourceMapDecodeError"""
    if isinstance(source_map_content, bytes):
        try:
            source_map_content = source_map_content.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise SourceMapDecodeError(f"Sourcemap is not valid UTF-8: {e}") from e

    # ")]}'" XSSI前缀：忽略整个第一行
    if source_map_content[:3] == ")]}":
        source_map_content = source_map_content.split("\n", 1)[-1]

    try:
        raw = json.loads(source_map_content)
    except ValueError as e:
        raise SourceMapDecodeError(f"Sourcemap is not valid JSON: {e}") from e
    if not isinstance(raw, dict):
        raise SourceMapDecodeError("Sourcemap must be a JSON object")

    # names在格式中是可选的，sourcemap库却要求必须存在
    raw.setdefault("names", [])

    try:
        index = sourcemap.loads(json.dumps(raw))
    except (ValueError, KeyError, TypeError, AttributeError, IndexError) as e:
        # sourcemap.SourceMapDecodeError也是ValueError
        raise SourceMapDecodeError(f"Invalid sourcemap: {e!r}") from e

    if not isinstance(index.raw, dict) or not isinstance(index.raw.get("sources"), list):
        raise SourceMapDecodeError("Sourcemap has no sources array")
    if not all(isinstance(source, str) for source in index.sources):
        raise SourceMapDecodeError("Sourcemap sources must all be strings")

    document = SourceMapDocument(index)
    logger.debug(f"Decoded sourcemap with {len(document)} sources")
    return document


def decode_data_url(data_url: str) -> str:
    """解析内联data: URL中的Source Map文本"""
    # data:<mime>[;charset=<c>][;base64],<data>
    try:
        header, data = data_url.split(",", 1)
    except ValueError as e:
        raise SourceMapDecodeError("Malformed data URL, missing ','") from e

    if header.strip().lower().endswith(";base64"):
        try:
            payload = base64.b64decode(data, validate=False)
        except (binascii.Error, ValueError) as e:
            raise SourceMapDecodeError(f"Malformed base64 payload: {e}") from e
    else:
        payload = unquote_to_bytes(data)

    try:
        return payload.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise SourceMapDecodeError(f"Inline sourcemap is not valid UTF-8: {e}") from e
