"""Locate the main bundle in a page and the sourcemap referenced by a bundle."""

import logging
import re
from typing import Optional
from urllib.parse import urljoin, urlsplit

logger = logging.getLogger(__name__)

SCRIPT_SRC_RE = re.compile(r"""<script[^>]+src=["']([^"']+)["']""", re.IGNORECASE)
SOURCE_MAPPING_URL_RE = re.compile(r"//# sourceMappingURL=(.*)$", re.MULTILINE)

MAIN_SCRIPT_MARKER = "main"


def resolve_url(reference: str, base_url: str) -> Optional[str]:
    """Resolve a possibly relative reference, None when it cannot be parsed."""
    try:
        resolved = urljoin(base_url, reference)
        parts = urlsplit(resolved)
        parts.port  # raises ValueError on a malformed port
    except ValueError as e:
        logger.debug(f"Cannot resolve {reference!r} against {base_url}: {e}")
        return None
    if not parts.scheme or (parts.scheme in ("http", "https") and not parts.netloc):
        return None
    return resolved


def find_main_script(html: str, base_url: str) -> Optional[str]:
    """Return the absolute URL of the first <script src> containing "main".

    The match is a case-sensitive substring test on the raw attribute value.
    References that cannot be resolved are ignored and scanning continues.
    """
    for match in SCRIPT_SRC_RE.finditer(html):
        script_path = match.group(1)
        logger.debug(f"Found script path: {script_path}")

        if MAIN_SCRIPT_MARKER not in script_path:
            continue

        script_url = resolve_url(script_path, base_url)
        if script_url is None:
            logger.debug(f"Skipping unresolvable script path: {script_path}")
            continue

        logger.debug(f"Resolved main script URL => {script_url}")
        return script_url

    return None


def extract_map_url(js_content: str, script_url: str) -> Optional[str]:
    """Return the absolute URL named by the first sourceMappingURL directive."""
    match = SOURCE_MAPPING_URL_RE.search(js_content)
    if not match:
        logger.debug(f"No sourceMappingURL found => {script_url}")
        return None

    map_reference = match.group(1).strip()
    if not map_reference:
        return None

    if map_reference.startswith("data:"):
        # inline map, nothing to resolve
        return map_reference

    map_url = resolve_url(map_reference, script_url)
    logger.debug(f"Constructed map URL => {map_url}")
    return map_url
