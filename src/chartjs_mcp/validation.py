"""
Chart configuration validation.

Only the structure every Chart.js chart needs is checked here. Per-type
data shapes (scatter points, bubble radii, ...) are left to Chart.js, whose
own errors are reported by the render step.
"""

import json
from collections.abc import Mapping
from typing import Any

CHART_TYPES = ("bar", "line", "scatter", "bubble", "pie", "doughnut", "polarArea", "radar")


class InvalidChartConfig(ValueError):
    """Raised when a chart configuration fails a structural check."""


def validate_chart_config(chart_config: Any) -> dict:
    """Validate a chart configuration and return it as a dict.

    Args:
        chart_config: Chart.js configuration as a mapping or a JSON string

    Returns:
        The parsed configuration

    Raises:
        InvalidChartConfig: on the first failing check
    """
    config = chart_config
    if isinstance(chart_config, str):
        try:
            config = json.loads(chart_config)
        except json.JSONDecodeError:
            raise InvalidChartConfig("Chart configuration string is not valid JSON")

    if not isinstance(config, Mapping):
        raise InvalidChartConfig("Chart configuration must be an object")

    if config.get("type") not in CHART_TYPES:
        raise InvalidChartConfig(f"Invalid chart type. Must be one of: {', '.join(CHART_TYPES)}")

    data = config.get("data")
    if not isinstance(data, Mapping):
        raise InvalidChartConfig("Chart configuration must include a data object")

    datasets = data.get("datasets")
    if not isinstance(datasets, list):
        raise InvalidChartConfig("Chart data must include a datasets array")

    if not datasets:
        raise InvalidChartConfig("Chart data must include at least one dataset")

    return dict(config)
