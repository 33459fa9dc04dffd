"""运行配置管理 - 单次snatch的全部设置"""

import os
from pathlib import Path
from typing import Optional, Union
from urllib.parse import urlparse

from . import __version__
from .utils.paths import get_default_output_dir

DEFAULT_TIMEOUT = 15.0


def get_default_timeout() -> float:
    """Get default per-request timeout from environment or use 15 seconds."""
    try:
        return float(os.environ.get("SNATCHER_TIMEOUT", DEFAULT_TIMEOUT))
    except ValueError:
        return DEFAULT_TIMEOUT


class SnatchConfig:
    """运行配置 - 各阶段共享"""

    def __init__(self, base_url: str,
                 output_dir: Optional[Union[str, Path]] = None,
                 debug: bool = False,
                 timeout: Optional[float] = None,
                 user_agent: Optional[str] = None):
        """初始化配置

        Args:
            base_url: 要扫描的站点，必须是绝对http(s) URL
            output_dir: 还原文件的输出目录，None则使用默认
            debug: 详细步骤日志，不影响任何判定
            timeout: 每次网络请求的超时秒数，None则使用默认
            user_agent: 每个请求携带的User-Agent
        """
        self.base_url = self._validate_base_url(base_url)
        self.output_dir = self._resolve_output_dir(output_dir)
        self.debug = debug
        self.timeout = timeout if timeout is not None else get_default_timeout()
        if self.timeout <= 0:
            raise ValueError(f"Timeout must be positive, got {self.timeout}")
        self.user_agent = user_agent or f"snatcher/{__version__}"

    def _validate_base_url(self, base_url: str) -> str:
        parsed = urlparse(base_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"Base URL must be an absolute http(s) URL, got {base_url!r}")
        return base_url

    def _resolve_output_dir(self, output_dir: Optional[Union[str, Path]]) -> Path:
        """解析输出目录（不创建）"""
        if output_dir is None:
            return get_default_output_dir()
        return Path(output_dir).expanduser()
