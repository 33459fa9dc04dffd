"""Write/skip policy for sourcemap sources."""

import enum
import re
from dataclasses import dataclass
from typing import Optional

EXCLUDED_MARKERS = ("node_modules/", "webpack/")

PACKAGE_SEGMENT_RE = re.compile(r"node_modules/([^/]+)/")
IMAGE_EXTENSION_RE = re.compile(r"\.(png|jpe?g|gif|svg|webp|bmp)$", re.IGNORECASE)
# file-loader / CRA asset stub: module.exports = __webpack_public_path__ + "static/media/logo.abc123.png";
ASSET_PLACEHOLDER_RE = re.compile(r"""__webpack_public_path__\s*\+\s*(["'])([^"']+)\1""")


class Verdict(enum.Enum):
    WRITE = "write"
    SKIP = "skip"


@dataclass(frozen=True)
class ClassificationDecision:
    path: str
    verdict: Verdict
    reason: str

    @property
    def should_write(self) -> bool:
        return self.verdict is Verdict.WRITE


def classify(source: str) -> ClassificationDecision:
    """Decide whether a source is written, from its path alone.

    Matching is done on the lowercased path; the original path is kept for
    writing and reporting.
    """
    lowered = source.lower()
    for marker in EXCLUDED_MARKERS:
        if marker in lowered:
            return ClassificationDecision(source, Verdict.SKIP, f"path contains {marker!r}")
    return ClassificationDecision(source, Verdict.WRITE, "application source")


def extract_package_name(source: str) -> Optional[str]:
    """Directory name right after ``node_modules/``, if any."""
    match = PACKAGE_SEGMENT_RE.search(source)
    return match.group(1) if match else None


def is_image_path(source: str) -> bool:
    return IMAGE_EXTENSION_RE.search(source) is not None


def find_asset_placeholder(content: str) -> Optional[str]:
    """Return the public-path-relative hashed asset name of an image stub."""
    match = ASSET_PLACEHOLDER_RE.search(content)
    return match.group(2) if match else None
