"""
Chart Rendering
===============

Turns a validated Chart.js configuration into one of:

- PNG bytes (rendered by Chart.js inside headless Chromium)
- a PNG file written under the output directory
- an embeddable HTML fragment that draws the chart in the browser

Rendering is delegated to Chart.js; this module only builds the pages that
host it and drives the browser.
"""

import json
import logging
import os
import random
import string
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, Union

import anyio

logger = logging.getLogger(__name__)

CHART_WIDTH = 800
CHART_HEIGHT = 600

CHARTJS_CDN_URL = os.environ.get("CHARTJS_CDN_URL", "https://cdn.jsdelivr.net/npm/chart.js@4")

# Milliseconds to wait for Chart.js to load and draw
RENDER_TIMEOUT_MS = 30000


def default_output_dir() -> Path:
    """Directory for saved PNGs, from CHART_OUTPUT_DIR or ./charts."""
    return Path(os.environ.get("CHART_OUTPUT_DIR", Path.cwd() / "charts")).resolve()


# ============================================================================
# Render Results
# ============================================================================

@dataclass(frozen=True)
class PngImage:
    data: bytes


@dataclass(frozen=True)
class PngFile:
    path: Path


@dataclass(frozen=True)
class HtmlSnippet:
    html: str


@dataclass(frozen=True)
class RenderFailure:
    message: str


RenderResult = Union[PngImage, PngFile, HtmlSnippet, RenderFailure]


class ChartRenderError(Exception):
    """Raised when the chart engine fails to draw a configuration."""


class ChartEngine(Protocol):
    async def render_png(self, config: dict, width: int, height: int) -> bytes:
        ...


# ============================================================================
# HTML Generation
# ============================================================================

def _script_json(config: dict) -> str:
    """Encode config for inlining in a <script> element."""
    return json.dumps(config).replace("</", "<\\/")


def chart_html_snippet(config: dict, chartjs_url: str = CHARTJS_CDN_URL) -> str:
    """Generate a self-contained HTML fragment that draws the chart."""
    chart_id = f"chart-{uuid.uuid4().hex}"

    return f'''<div style="width: {CHART_WIDTH}px; height: {CHART_HEIGHT}px;">
  <canvas id="{chart_id}"></canvas>
</div>
<script src="{chartjs_url}"></script>
<script>
  (function () {{
    const ctx = document.getElementById('{chart_id}').getContext('2d');
    new Chart(ctx, {_script_json(config)});
  }})();
</script>'''


def _chart_page_html(config: dict, width: int, height: int, chartjs_url: str) -> str:
    """Generate the page used for PNG rendering.

    Animation and responsiveness are switched off so the canvas is drawn
    once, synchronously, at exactly width x height. The page reports
    completion and any Chart.js error through window globals.
    """
    return f'''<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <style>
        body {{ margin: 0; padding: 0; background: white; }}
        #chart {{ display: block; }}
    </style>
    <script src="{chartjs_url}"></script>
</head>
<body>
    <canvas id="chart" width="{width}" height="{height}"></canvas>
    <script>
        window.__chartError = null;
        try {{
            const config = {_script_json(config)};
            config.options = Object.assign({{}}, config.options, {{
                animation: false,
                responsive: false,
                devicePixelRatio: 1
            }});
            new Chart(document.getElementById('chart').getContext('2d'), config);
        }} catch (err) {{
            window.__chartError = String((err && err.message) || err);
        }}
        window.__chartDone = true;
    </script>
</body>
</html>'''


# ============================================================================
# PNG Engine
# ============================================================================

class PlaywrightChartEngine:
    """Renders charts with Chart.js in headless Chromium."""

    def __init__(self, chartjs_url: str = CHARTJS_CDN_URL, timeout_ms: int = RENDER_TIMEOUT_MS):
        self.chartjs_url = chartjs_url
        self.timeout_ms = timeout_ms

    async def render_png(self, config: dict, width: int, height: int) -> bytes:
        try:
            from playwright.async_api import async_playwright
        except ImportError:
            raise ChartRenderError("playwright not installed. Run: pip install playwright && playwright install chromium")

        html = _chart_page_html(config, width, height, self.chartjs_url)

        async with async_playwright() as p:
            browser = await p.chromium.launch()
            try:
                page = await browser.new_page(viewport={"width": width, "height": height})
                await page.set_content(html, timeout=self.timeout_ms)
                await page.wait_for_function("() => window.__chartDone === true", timeout=self.timeout_ms)

                error = await page.evaluate("() => window.__chartError")
                if error:
                    raise ChartRenderError(error)

                return await page.locator("#chart").screenshot(type="png", timeout=self.timeout_ms)
            finally:
                await browser.close()


# ============================================================================
# Rendering
# ============================================================================

def _png_filename() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=8))
    return f"chart-{time.strftime('%Y%m%d-%H%M%S')}-{suffix}.png"


async def _save_png(png: bytes, output_dir: Path) -> Path:
    directory = anyio.Path(output_dir)
    await directory.mkdir(parents=True, exist_ok=True)
    target = directory / _png_filename()
    await target.write_bytes(png)
    return Path(target)


async def render_chart(
    config: dict,
    output_format: str = "png",
    save_to_file: bool = False,
    *,
    engine: Optional[ChartEngine] = None,
    output_dir: Optional[Path] = None,
) -> RenderResult:
    """Render a validated chart configuration.

    Args:
        config: Chart.js configuration that passed validate_chart_config
        output_format: "png" or "html"
        save_to_file: Write the PNG under output_dir and return its path
        engine: PNG engine (default: PlaywrightChartEngine)
        output_dir: Directory for saved PNGs (default: default_output_dir())

    Returns:
        Exactly one RenderResult variant. Engine and file-system errors are
        returned as RenderFailure, never raised.
    """
    try:
        if output_format == "html":
            return HtmlSnippet(chart_html_snippet(config))

        if output_format != "png":
            return RenderFailure(f"Unsupported output format: {output_format}. Supported: png, html")

        engine = engine or PlaywrightChartEngine()
        png = await engine.render_png(config, CHART_WIDTH, CHART_HEIGHT)

        if save_to_file:
            path = await _save_png(png, output_dir or default_output_dir())
            logger.info("Saved %s chart to %s", config.get("type"), path)
            return PngFile(path)

        return PngImage(png)

    except Exception as e:
        logger.warning("Failed to render %s chart: %s", config.get("type"), e)
        return RenderFailure(f"Error generating chart: {str(e)}")
