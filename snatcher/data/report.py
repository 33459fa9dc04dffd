"""运行统计与snatch-report.json报告写入"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

logger = logging.getLogger(__name__)

REPORT_FILENAME = "snatch-report.json"


def utc_timestamp() -> str:
    """带毫秒的ISO-8601 UTC时间戳，如2024-05-01T12:00:00.000Z"""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class RunReport:
    base_url: str
    map_url: str
    timestamp: str = field(default_factory=utc_timestamp)
    total_sources: int = 0
    written_sources: int = 0
    skipped_sources: int = 0
    possible_node_packages: List[str] = field(default_factory=list)

    # 不写入报告文件
    missing_sources: int = 0
    failed_sources: int = 0

    def add_package(self, name: str) -> None:
        """记录包名（去重，保持首次出现顺序）"""
        if name not in self.possible_node_packages:
            self.possible_node_packages.append(name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "baseUrl": self.base_url,
            "mapUrl": self.map_url,
            "timestamp": self.timestamp,
            "totalSources": self.total_sources,
            "writtenSources": self.written_sources,
            "skippedSources": self.skipped_sources,
            "possibleNodePackages": list(self.possible_node_packages),
        }


async def write_report(report: RunReport, output_dir: Path) -> Path:
    """将报告写入<output_dir>/snatch-report.json"""
    report_path = output_dir / REPORT_FILENAME
    payload = json.dumps(report.to_dict(), indent=2, ensure_ascii=False)
    await asyncio.to_thread(_sync_write_report, report_path, payload)
    logger.info(f"Created JSON report => {report_path}")
    return report_path


def _sync_write_report(report_path: Path, payload: str) -> None:
    report_path.parent.mkdir(parents=True, exist_ok=True)
    with open(report_path, 'w', encoding='utf-8') as f:
        f.write(payload)
