#!/usr/bin/env python3
"""
ChartJS MCP - Server Implementation
===================================

Exposes a single tool, generateChart, that renders a Chart.js v4
configuration as a PNG image, a saved PNG file, or an interactive HTML
fragment.

Validation and rendering problems are reported as text content so the
tool always answers; they never surface as protocol errors.
"""

import base64
import logging
from typing import Annotated, Any, Literal, Union

from mcp.server.fastmcp import FastMCP
from mcp.types import ImageContent, TextContent
from pydantic import Field

from .render import (
    ChartEngine,
    HtmlSnippet,
    PlaywrightChartEngine,
    PngFile,
    PngImage,
    RenderResult,
    render_chart,
)
from .validation import CHART_TYPES, InvalidChartConfig, validate_chart_config

logger = logging.getLogger(__name__)

SERVER_NAME = "chartjs-mcp"

TOOL_DESCRIPTION = (
    "Generates charts using Chart.js. Can output PNG images or interactive HTML divs. "
    "Supports full Chart.js v4 configuration options."
)

TROUBLESHOOTING = (
    "Please ensure your configuration follows the Chart.js v4 schema. Common issues:\n"
    "- Check data format matches chart type (e.g., scatter charts need {x, y} objects)\n"
    "- Verify all required dataset properties are provided\n"
    f"- Ensure chart type is supported: {', '.join(CHART_TYPES)}"
)

# Initialize the MCP server
mcp = FastMCP(SERVER_NAME)

# PNG engine used by generateChart
chart_engine: ChartEngine = PlaywrightChartEngine()


def create_server() -> FastMCP:
    """Create and return the MCP server instance."""
    return mcp


# ============================================================================
# Response Shaping
# ============================================================================

def _text(text: str) -> TextContent:
    return TextContent(type="text", text=text)


def chart_content(result: RenderResult) -> list[Union[TextContent, ImageContent]]:
    """Convert a render result into MCP content blocks."""
    if isinstance(result, HtmlSnippet):
        return [TextContent.model_validate({
            "type": "text",
            "text": result.html,
            "mimeType": "text/html",
            "_meta": {"mimeType": "text/html"},
        })]

    if isinstance(result, PngImage):
        return [ImageContent(
            type="image",
            data=base64.b64encode(result.data).decode("ascii"),
            mimeType="image/png",
        )]

    if isinstance(result, PngFile):
        return [_text(str(result.path))]

    return [_text(f"{result.message}\n\n{TROUBLESHOOTING}")]


# ============================================================================
# Tools
# ============================================================================

@mcp.tool(name="generateChart", title="Generate Chart", description=TOOL_DESCRIPTION, structured_output=False)
async def generate_chart(
    chartConfig: Annotated[Any, Field(description="Complete Chart.js configuration object supporting full v4 schema")],
    outputFormat: Annotated[
        Literal["png", "html"],
        Field(description="Output format: 'png' for static image, 'html' for interactive HTML div"),
    ] = "png",
    saveToFile: Annotated[
        bool,
        Field(description="Whether to save PNG to file (only applies to PNG format)"),
    ] = False,
) -> list[Union[TextContent, ImageContent]]:
    """Validate a chart configuration, render it and shape the response.

    Returns:
        - invalid config: one text block "Error: <reason>"
        - html: one text block carrying the HTML fragment (mimeType text/html)
        - png: one base64 image/png block, or a text block with the file path
          when saveToFile is set
        - render failure: one text block with the error and troubleshooting tips
    """
    try:
        config = validate_chart_config(chartConfig)
    except InvalidChartConfig as e:
        logger.info("Rejected chart configuration: %s", e)
        return [_text(f"Error: {str(e)}")]

    result = await render_chart(config, outputFormat, saveToFile, engine=chart_engine)
    return chart_content(result)
