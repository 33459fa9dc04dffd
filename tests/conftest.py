"""Shared fixtures: an in-memory site served through httpx.MockTransport."""

import json
from typing import Dict, List, Optional, Tuple, Union

import httpx
import pytest

from snatcher.core.fetcher import HttpFetcher

BASE_URL = "https://example.com/"
PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDRfake-image-data"


class FakeSite:
    """URL -> (status, body) routes; unknown URLs answer 404."""

    def __init__(self):
        self.routes: Dict[str, Tuple[int, bytes]] = {}
        self.broken: set = set()
        self.requests: List[Tuple[str, str]] = []

    def add(self, url: str, body: Union[str, bytes] = b"", status: int = 200) -> None:
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.routes[url] = (status, body)

    def break_url(self, url: str) -> None:
        """Make requests to ``url`` fail at the transport level."""
        self.broken.add(url)

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append((request.method, url))
        if url in self.broken:
            raise httpx.ConnectError("connection refused", request=request)
        status, body = self.routes.get(url, (404, b"Not Found"))
        return httpx.Response(status, content=body)

    def fetcher(self) -> HttpFetcher:
        return HttpFetcher(timeout=5.0, transport=httpx.MockTransport(self.handler))

    def methods_for(self, url: str) -> List[str]:
        return [method for method, requested in self.requests if requested == url]


def make_source_map(sources: List[str], contents: Optional[List[Optional[str]]] = None,
                    **extra) -> str:
    """Minimal valid v3 sourcemap JSON."""
    source_map = {
        "version": 3,
        "file": "main.js",
        "sources": sources,
        "names": [],
        "mappings": "AAAA" if sources else "",
    }
    if contents is not None:
        source_map["sourcesContent"] = contents
    source_map.update(extra)
    return json.dumps(source_map)


def publish_app(site: FakeSite, source_map: str,
                script_name: str = "static/js/main.abc123.js",
                map_name: str = "main.abc123.js.map") -> None:
    """Serve index.html -> main script -> sourcemap under BASE_URL."""
    script_url = BASE_URL + script_name
    map_url = script_url.rsplit("/", 1)[0] + "/" + map_name
    site.add(BASE_URL, f"""<!doctype html>
<html><head>
<script src="/static/js/runtime.1.js"></script>
<script defer="defer" src="/{script_name}"></script>
</head><body><div id="root"></div></body></html>""")
    site.add(script_url, f"!function(){{console.log(1)}}();\n//# sourceMappingURL={map_name}")
    site.add(map_url, source_map)


@pytest.fixture
def fake_site():
    return FakeSite()


@pytest.fixture
def source_map_factory():
    return make_source_map


@pytest.fixture
def publish():
    return publish_app
