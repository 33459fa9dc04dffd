"""源文件写入器，所有文件都落在输出目录之下"""

import asyncio
import logging
from pathlib import Path
from typing import Set, Union

from ..utils.paths import resolve_destination

logger = logging.getLogger(__name__)


class SourceWriter:
    """源文件写入器，复用DataWriter的to_thread写入模式

    同一目标路径被写两次时后写覆盖先写，并记录warning。
    """

    def __init__(self, output_dir: Path):
        self.output_dir = output_dir
        self._written: Set[Path] = set()

    def destination_for(self, source: str) -> Path:
        return resolve_destination(self.output_dir, source)

    def has_written(self, destination: Path) -> bool:
        """本次运行是否已经写过该路径"""
        return destination in self._written

    async def write(self, source: str, content: Union[str, bytes]) -> Path:
        """写入文本（UTF-8，不转换换行符）或原始字节

        无法写入时抛出OSError或ValueError，由调用方决定是否致命。
        """
        destination = self.destination_for(source)

        if destination in self._written:
            logger.warning(f"Overwriting {destination} (duplicate destination for {source})")

        # 使用asyncio.to_thread避免阻塞事件循环
        await asyncio.to_thread(self._sync_write, destination, content)
        self._written.add(destination)
        return destination

    def _sync_write(self, destination: Path, content: Union[str, bytes]) -> None:
        """同步文件写入（在thread中执行）"""
        destination.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            destination.write_bytes(content)
        else:
            # 孤立代理字符等无法编码的内容用替换字符写出，不丢整个文件
            with open(destination, 'w', encoding='utf-8', errors='replace', newline='') as f:
                f.write(content)
