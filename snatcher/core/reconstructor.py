"""源文件分类与还原 - 按Source Map声明顺序重建源码树"""

import logging
from typing import Optional, Union
from urllib.parse import urljoin

from ..analysis.classifier import classify, extract_package_name, find_asset_placeholder, is_image_path
from ..analysis.source_map import SourceMapDocument
from ..data.report import RunReport
from ..data.writer import SourceWriter
from .fetcher import FetchError, HttpFetcher

logger = logging.getLogger(__name__)


class Reconstructor:
    """按声明顺序遍历Source Map并还原源码树

    判定只依赖源文件路径（图片占位符还依赖占位文本），与文件系统状态和
    之前的条目无关。单个源文件失败只记录日志，不会中断整个运行。
    """

    def __init__(self, fetcher: HttpFetcher, writer: SourceWriter, base_url: str):
        self.fetcher = fetcher
        self.writer = writer
        self.base_url = base_url

    async def reconstruct(self, document: SourceMapDocument, report: RunReport) -> RunReport:
        """处理document中的全部源文件并填充report

        全部源文件处理完后关闭document。
        """
        with document:
            report.total_sources = len(document.sources)
            logger.info(f"Discovered {report.total_sources} sources in the map.")

            for source, content in document.entries():
                await self._process(source, content, report)

        return report

    async def _process(self, source: str, content: Optional[str], report: RunReport) -> None:
        if not content:
            logger.warning(f"No content for source: {source}")
            report.missing_sources += 1
            return

        decision = classify(source)
        if not decision.should_write:
            logger.debug(f"Skipping {source}: {decision.reason}")
            report.skipped_sources += 1
            package = extract_package_name(source)
            if package:
                report.add_package(package)
            return

        payload: Union[str, bytes] = content
        if is_image_path(source):
            hashed_path = find_asset_placeholder(content)
            if hashed_path:
                payload = await self._download_asset(source, hashed_path, content)

        try:
            destination = await self.writer.write(source, payload)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to write {source} => {e}")
            report.failed_sources += 1
            return

        logger.info(f"Wrote file: {destination}")
        report.written_sources += 1

    async def _download_asset(self, source: str, hashed_path: str, placeholder: str) -> Union[str, bytes]:
        """下载占位符背后的真实图片，失败时回退为占位文本"""
        logger.info(f"Detected stub for image: {source}")
        try:
            image_url = urljoin(self.base_url, hashed_path)
            logger.info(f"Downloading real image from: {image_url}")
            return await self.fetcher.get_bytes(image_url)
        except (FetchError, ValueError) as e:
            logger.warning(f"Failed to fetch image => {e}")
            return placeholder
