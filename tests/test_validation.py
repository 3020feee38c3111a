"""Tests for chart configuration validation."""

import json

import pytest

from chartjs_mcp.validation import CHART_TYPES, InvalidChartConfig, validate_chart_config


def test_chart_types():
    assert CHART_TYPES == ("bar", "line", "scatter", "bubble", "pie", "doughnut", "polarArea", "radar")


def test_valid_config_is_returned(bar_config):
    assert validate_chart_config(bar_config) == bar_config


def test_json_string_is_parsed(bar_config):
    assert validate_chart_config(json.dumps(bar_config)) == bar_config


@pytest.mark.parametrize("chart_type", CHART_TYPES)
def test_every_chart_type_is_accepted(chart_type):
    config = {"type": chart_type, "data": {"datasets": [{"data": [1, 2, 3]}]}}
    assert validate_chart_config(config)["type"] == chart_type


def test_options_are_passed_through():
    config = {
        "type": "line",
        "data": {"datasets": [{"data": [1]}]},
        "options": {"plugins": {"title": {"display": True, "text": "Trend"}}},
    }
    assert validate_chart_config(config)["options"] == config["options"]


@pytest.mark.parametrize(
    "chart_config, message",
    [
        ("{not json", "Chart configuration string is not valid JSON"),
        ("[1, 2]", "Chart configuration must be an object"),
        ('"bar"', "Chart configuration must be an object"),
        (None, "Chart configuration must be an object"),
        (42, "Chart configuration must be an object"),
        ({}, "Invalid chart type. Must be one of: bar, line, scatter, bubble, pie, doughnut, polarArea, radar"),
        ({"type": "flowchart", "data": {"datasets": [{"data": [1]}]}}, "Invalid chart type"),
        ({"type": "bar"}, "Chart configuration must include a data object"),
        ({"type": "bar", "data": [1, 2]}, "Chart configuration must include a data object"),
        ({"type": "line", "data": {}}, "Chart data must include a datasets array"),
        ({"type": "line", "data": {"datasets": {"data": [1]}}}, "Chart data must include a datasets array"),
        ({"type": "pie", "data": {"datasets": []}}, "Chart data must include at least one dataset"),
    ],
)
def test_invalid_configs(chart_config, message):
    with pytest.raises(InvalidChartConfig) as exc_info:
        validate_chart_config(chart_config)
    assert str(exc_info.value).startswith(message)


def test_first_failing_check_wins():
    # Unknown type and missing data: the type check runs first
    with pytest.raises(InvalidChartConfig, match="Invalid chart type"):
        validate_chart_config({"type": "gantt"})


def test_per_type_data_shape_is_not_checked():
    # Scatter points without {x, y} are left to Chart.js
    config = {"type": "scatter", "data": {"datasets": [{"data": [1, 2, 3]}]}}
    assert validate_chart_config(config) == config


def test_invalid_config_is_value_error():
    assert issubclass(InvalidChartConfig, ValueError)
