"""Snatch pipeline: page -> main script -> sourcemap -> recovered source tree.

States run strictly in order::

    FETCH_HTML -> LOCATE_SCRIPT -> FETCH_SCRIPT -> EXTRACT_MAP_REF
      -> VERIFY_MAP_REACHABLE -> FETCH_MAP -> DECODE_MAP
      -> CLASSIFY_AND_WRITE -> EMIT_REPORT -> DONE

Any failure moves to FAILED and raises a SnatchError subclass. Nothing is
written to disk before the sourcemap has decoded successfully.
"""

import enum
import logging
from pathlib import Path
from typing import Optional

from ..analysis.discovery import extract_map_url, find_main_script
from ..analysis.source_map import SourceMapDecodeError, SourceMapDocument, decode_data_url, decode_source_map
from ..config import SnatchConfig
from ..data.report import REPORT_FILENAME, RunReport, write_report
from ..data.writer import SourceWriter
from .fetcher import FetchError, HttpFetcher
from .reconstructor import Reconstructor

logger = logging.getLogger(__name__)


class SnatchError(Exception):
    """Fatal pipeline failure, carries a human-readable reason."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class DiscoveryFailure(SnatchError):
    """Page or main script unreachable, or no main script in the page."""
    pass


class ReferenceNotFound(SnatchError):
    """No sourceMappingURL in the script, or the map cannot be reached."""
    pass


class DecodeFailure(SnatchError):
    """The downloaded document is not a well-formed sourcemap."""
    pass


class PipelineState(enum.Enum):
    FETCH_HTML = "fetch_html"
    LOCATE_SCRIPT = "locate_script"
    FETCH_SCRIPT = "fetch_script"
    EXTRACT_MAP_REF = "extract_map_ref"
    VERIFY_MAP_REACHABLE = "verify_map_reachable"
    FETCH_MAP = "fetch_map"
    DECODE_MAP = "decode_map"
    CLASSIFY_AND_WRITE = "classify_and_write"
    EMIT_REPORT = "emit_report"
    DONE = "done"
    FAILED = "failed"


class SnatchPipeline:
    """Runs one snatch for a configured base URL."""

    def __init__(self, config: SnatchConfig, fetcher: Optional[HttpFetcher] = None):
        self.config = config
        self._owns_fetcher = fetcher is None
        self.fetcher = fetcher or HttpFetcher(timeout=config.timeout, user_agent=config.user_agent)

        self.state: Optional[PipelineState] = None
        self.failure_reason: Optional[str] = None
        self.main_script_url: Optional[str] = None
        self.map_url: Optional[str] = None
        self.report: Optional[RunReport] = None
        self.report_path: Optional[Path] = None

    def _enter(self, state: PipelineState) -> None:
        logger.debug(f"Pipeline state: {self.state.value if self.state else 'start'} -> {state.value}")
        self.state = state

    async def run(self) -> RunReport:
        """Run every state in order and return the finalized report."""
        try:
            document = await self._discover()
            report = await self._reconstruct(document)
            self._enter(PipelineState.DONE)
            return report
        except SnatchError as e:
            logger.debug(f"Pipeline failed in state {self.state.value}: {e.reason}")
            self.state = PipelineState.FAILED
            self.failure_reason = e.reason
            raise
        finally:
            if self._owns_fetcher:
                await self.fetcher.aclose()

    async def _discover(self) -> SourceMapDocument:
        base_url = self.config.base_url

        self._enter(PipelineState.FETCH_HTML)
        logger.debug(f"Fetching HTML from: {base_url}")
        try:
            response = await self.fetcher.get(base_url)
        except FetchError as e:
            raise DiscoveryFailure(f"Error fetching HTML => {e}") from e
        if not response.is_success:
            raise DiscoveryFailure(f"Failed to fetch HTML from {base_url} (HTTP {response.status_code})")

        self._enter(PipelineState.LOCATE_SCRIPT)
        self.main_script_url = find_main_script(response.text, base_url)
        if not self.main_script_url:
            raise DiscoveryFailure("No main script found in the HTML")

        self._enter(PipelineState.FETCH_SCRIPT)
        logger.debug(f"Downloading JS file => {self.main_script_url}")
        try:
            response = await self.fetcher.get(self.main_script_url)
        except FetchError as e:
            raise DiscoveryFailure(f"Error fetching JS => {e}") from e
        if not response.is_success:
            raise DiscoveryFailure(
                f"Failed to fetch main script {self.main_script_url} (HTTP {response.status_code})"
            )

        self._enter(PipelineState.EXTRACT_MAP_REF)
        self.map_url = extract_map_url(response.text, self.main_script_url)
        if not self.map_url:
            raise ReferenceNotFound(f"No sourceMappingURL found in: {self.main_script_url}")

        inline = self.map_url.startswith("data:")

        self._enter(PipelineState.VERIFY_MAP_REACHABLE)
        if not inline:
            try:
                response = await self.fetcher.head(self.map_url)
            except FetchError as e:
                raise ReferenceNotFound(f"Error verifying map => {self.map_url}: {e}") from e
            if not response.is_success:
                raise ReferenceNotFound(f"Map not found (HTTP {response.status_code}) => {self.map_url}")

        self._enter(PipelineState.FETCH_MAP)
        try:
            if inline:
                map_content = decode_data_url(self.map_url)
            else:
                map_content = await self._fetch_map()

            self._enter(PipelineState.DECODE_MAP)
            return decode_source_map(map_content)
        except SourceMapDecodeError as e:
            raise DecodeFailure(f"Error decoding sourcemap => {e}") from e

    async def _fetch_map(self) -> bytes:
        try:
            response = await self.fetcher.get(self.map_url)
        except FetchError as e:
            raise ReferenceNotFound(f"Error downloading map => {e}") from e
        if not response.is_success:
            raise ReferenceNotFound(f"Failed to download map (HTTP {response.status_code}) => {self.map_url}")
        return response.content

    async def _reconstruct(self, document: SourceMapDocument) -> RunReport:
        output_dir = self.config.output_dir

        self._enter(PipelineState.CLASSIFY_AND_WRITE)
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            document.close()
            raise SnatchError(f"Cannot create output directory {output_dir} => {e}") from e

        self.report = RunReport(base_url=self.config.base_url, map_url=self.map_url)
        writer = SourceWriter(output_dir)
        reconstructor = Reconstructor(self.fetcher, writer, self.config.base_url)
        await reconstructor.reconstruct(document, self.report)

        report_path = output_dir / REPORT_FILENAME
        if writer.has_written(report_path):
            logger.warning(f"Recovered source {report_path} is replaced by the run report")

        self._enter(PipelineState.EMIT_REPORT)
        try:
            self.report_path = await write_report(self.report, output_dir)
        except OSError as e:
            raise SnatchError(f"Failed to write report => {e}") from e

        return self.report
