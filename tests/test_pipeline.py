"""End-to-end pipeline scenarios against an in-memory site."""

import base64
import json

import pytest

from snatcher.config import SnatchConfig
from snatcher.core.pipeline import (
    DecodeFailure,
    DiscoveryFailure,
    PipelineState,
    ReferenceNotFound,
    SnatchPipeline,
)

BASE_URL = "https://example.com/"
SCRIPT_URL = BASE_URL + "static/js/main.abc123.js"
MAP_URL = BASE_URL + "static/js/main.abc123.js.map"
PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDRfake-image-data"
LOGO_STUB = 'module.exports = __webpack_public_path__ + "static/media/logo.abc123.png";'


@pytest.mark.asyncio
class TestSnatchPipeline:

    @pytest.fixture
    def output_dir(self, tmp_path):
        return tmp_path / "recovered-files"

    @pytest.fixture
    def config(self, output_dir):
        return SnatchConfig(BASE_URL, output_dir=output_dir)

    async def _run(self, config, fake_site):
        async with fake_site.fetcher() as fetcher:
            pipeline = SnatchPipeline(config, fetcher=fetcher)
            report = await pipeline.run()
        return pipeline, report

    async def _fail(self, config, fake_site, error):
        async with fake_site.fetcher() as fetcher:
            pipeline = SnatchPipeline(config, fetcher=fetcher)
            with pytest.raises(error) as excinfo:
                await pipeline.run()
        assert pipeline.state is PipelineState.FAILED
        assert pipeline.failure_reason == excinfo.value.reason
        return pipeline

    async def test_dependencies_skipped_and_report_written(self, config, output_dir, fake_site,
                                                           publish, source_map_factory):
        publish(fake_site, source_map_factory(
            ["src/App.js", "node_modules/react/index.js", "node_modules/react-dom/index.js"],
            ["const App = () => null;", "react", "react-dom"],
        ))

        pipeline, report = await self._run(config, fake_site)

        assert pipeline.state is PipelineState.DONE
        assert pipeline.main_script_url == SCRIPT_URL
        assert pipeline.map_url == MAP_URL
        assert (output_dir / "src" / "App.js").read_text() == "const App = () => null;"
        assert not (output_dir / "node_modules").exists()

        data = json.loads((output_dir / "snatch-report.json").read_text())
        assert pipeline.report_path == output_dir / "snatch-report.json"
        assert data["baseUrl"] == BASE_URL
        assert data["mapUrl"] == MAP_URL
        assert data["totalSources"] == 3
        assert data["writtenSources"] == 1
        assert data["skippedSources"] == 2
        assert data["possibleNodePackages"] == ["react", "react-dom"]
        assert data["timestamp"] == report.timestamp

    async def test_discovery_runs_in_order_with_head_probe(self, config, fake_site, publish, source_map_factory):
        publish(fake_site, source_map_factory(["src/a.js"], ["a"]))

        await self._run(config, fake_site)

        assert fake_site.requests == [
            ("GET", BASE_URL),
            ("GET", SCRIPT_URL),
            ("HEAD", MAP_URL),
            ("GET", MAP_URL),
        ]

    async def test_image_stub_downloaded(self, config, output_dir, fake_site, publish, source_map_factory):
        publish(fake_site, source_map_factory(["src/assets/logo.png"], [LOGO_STUB]))
        fake_site.add(BASE_URL + "static/media/logo.abc123.png", PNG_BYTES)

        _, report = await self._run(config, fake_site)

        assert report.written_sources == 1
        assert (output_dir / "src" / "assets" / "logo.png").read_bytes() == PNG_BYTES

    async def test_image_stub_fallback_when_asset_missing(self, config, output_dir, fake_site,
                                                         publish, source_map_factory):
        publish(fake_site, source_map_factory(["src/assets/logo.png"], [LOGO_STUB]))

        _, report = await self._run(config, fake_site)

        assert report.written_sources == 1
        assert (output_dir / "src" / "assets" / "logo.png").read_text() == LOGO_STUB

    async def test_source_named_like_report_is_replaced_with_warning(self, config, output_dir, fake_site,
                                                                     publish, source_map_factory, caplog):
        publish(fake_site, source_map_factory(["snatch-report.json", "src/a.js"], ["{\"mine\": true}", "a"]))

        await self._run(config, fake_site)

        data = json.loads((output_dir / "snatch-report.json").read_text())
        assert data["writtenSources"] == 2
        assert "replaced by the run report" in caplog.text

    async def test_no_main_script(self, config, output_dir, fake_site):
        fake_site.add(BASE_URL, '<script src="/static/js/vendor.js"></script><script src="/app.js"></script>')

        pipeline = await self._fail(config, fake_site, DiscoveryFailure)

        assert pipeline.failure_reason == "No main script found in the HTML"
        assert not output_dir.exists()
        assert len(fake_site.requests) == 1

    async def test_html_error_status(self, config, output_dir, fake_site):
        fake_site.add(BASE_URL, "down for maintenance", status=503)

        pipeline = await self._fail(config, fake_site, DiscoveryFailure)

        assert "HTTP 503" in pipeline.failure_reason
        assert not output_dir.exists()

    async def test_html_unreachable(self, config, output_dir, fake_site):
        fake_site.break_url(BASE_URL)

        await self._fail(config, fake_site, DiscoveryFailure)
        assert not output_dir.exists()

    async def test_main_script_error_status(self, config, output_dir, fake_site):
        fake_site.add(BASE_URL, '<script src="/static/js/main.abc123.js"></script>')

        pipeline = await self._fail(config, fake_site, DiscoveryFailure)

        assert "HTTP 404" in pipeline.failure_reason
        assert not output_dir.exists()

    async def test_script_without_directive(self, config, output_dir, fake_site):
        fake_site.add(BASE_URL, '<script src="/static/js/main.abc123.js"></script>')
        fake_site.add(SCRIPT_URL, "console.log('no map');")

        pipeline = await self._fail(config, fake_site, ReferenceNotFound)

        assert pipeline.failure_reason == f"No sourceMappingURL found in: {SCRIPT_URL}"
        assert not output_dir.exists()

    async def test_probe_failure_skips_full_download(self, config, output_dir, fake_site, publish, source_map_factory):
        publish(fake_site, source_map_factory(["src/a.js"], ["a"]))
        fake_site.add(MAP_URL, "forbidden", status=403)

        pipeline = await self._fail(config, fake_site, ReferenceNotFound)

        assert "HTTP 403" in pipeline.failure_reason
        assert fake_site.methods_for(MAP_URL) == ["HEAD"]
        assert not output_dir.exists()

    async def test_invalid_map_document(self, config, output_dir, fake_site, publish):
        publish(fake_site, "<html>this is not a sourcemap</html>")

        pipeline = await self._fail(config, fake_site, DecodeFailure)

        assert pipeline.report is None
        assert not output_dir.exists()
        assert not (output_dir / "snatch-report.json").exists()

    async def test_inline_data_url_map(self, config, output_dir, fake_site, source_map_factory):
        raw = source_map_factory(["src/inline.js"], ["inline source"])
        data_url = "data:application/json;charset=utf-8;base64," + base64.b64encode(raw.encode()).decode()
        fake_site.add(BASE_URL, '<script src="/static/js/main.abc123.js"></script>')
        fake_site.add(SCRIPT_URL, f"x();\n//# sourceMappingURL={data_url}")

        pipeline, report = await self._run(config, fake_site)

        assert pipeline.map_url == data_url
        assert report.written_sources == 1
        assert (output_dir / "src" / "inline.js").read_text() == "inline source"
        assert [method for method, _ in fake_site.requests] == ["GET", "GET"]

    async def test_malformed_inline_map(self, config, output_dir, fake_site):
        fake_site.add(BASE_URL, '<script src="/static/js/main.abc123.js"></script>')
        fake_site.add(SCRIPT_URL, "x();\n//# sourceMappingURL=data:application/json,not-json")

        await self._fail(config, fake_site, DecodeFailure)
        assert not output_dir.exists()

    async def test_rerun_reproduces_counts(self, config, fake_site, publish, source_map_factory):
        publish(fake_site, source_map_factory(
            ["src/App.js", "node_modules/react/index.js", "webpack/bootstrap", "src/none.js",
             "node_modules/react/jsx.js", "node_modules/scheduler/index.js"],
            ["app", "react", "boot", None, "jsx", "scheduler"],
        ))

        _, first = await self._run(config, fake_site)
        _, second = await self._run(config, fake_site)

        for key in ("totalSources", "writtenSources", "skippedSources", "possibleNodePackages"):
            assert first.to_dict()[key] == second.to_dict()[key]
        assert first.possible_node_packages == ["react", "scheduler"]
        assert first.total_sources == first.written_sources + first.skipped_sources + first.missing_sources


@pytest.mark.asyncio
async def test_pipeline_closes_its_own_fetcher(tmp_path):
    pipeline = SnatchPipeline(SnatchConfig(BASE_URL, output_dir=tmp_path / "out"))

    async def fail(url):
        raise DiscoveryFailure("stop")

    pipeline.fetcher.get = fail
    with pytest.raises(DiscoveryFailure):
        await pipeline.run()

    assert pipeline.fetcher.client.is_closed
