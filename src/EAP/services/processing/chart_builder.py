"""
Column-to-axis mapping for charts.

Given a sheet's rows and a chosen X and Y column, this module produces the
chart-ready points, the downloadable JSON chart configuration, and the
plotly figure shown in the chart panel.

Y values are read the way a browser's ``parseFloat`` reads them: the longest
numeric prefix of the text, with 0 for anything that is not a number.
"""

import json
import math
import re
from datetime import date, datetime, time, timezone
from typing import Any, Dict, List, Optional

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from EAP.core.exceptions import ChartConfigError
from EAP.core.logging_config import get_logger
from EAP.core.settings import settings
from EAP.services.processing.spreadsheet_parser import to_jsonable

logger = get_logger(__name__)

CHART_TYPES = {
    "bar": "Bar Chart",
    "line": "Line Chart",
    "pie": "Pie Chart",
}
DEFAULT_CHART_TYPE = "bar"

CHART_COLORS = ["#2563eb", "#f59e0b", "#10b981", "#94a3b8"]

_NUMERIC_PREFIX = re.compile(
    r"^\s*([+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?))"
)


def parse_float(value: Any) -> float:
    """
    Numeric value of a cell, or 0.

    Date and time cells are not numbers and count as 0.

    Example:
        >>> parse_float("12.5kg"), parse_float("abc"), parse_float(7)
        (12.5, 0.0, 7.0)
    """
    if isinstance(value, (bool, date, time)) or value is None:
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        match = _NUMERIC_PREFIX.match(str(value))
        if not match:
            return 0.0
        number = float(match.group(1).replace("Infinity", "inf"))
    if math.isnan(number) or number == 0:
        return 0.0
    return number


def _truthy(value: Any) -> bool:
    if isinstance(value, float) and math.isnan(value):
        return False
    return bool(value)


def validate_chart_type(chart_type: str) -> str:
    if chart_type not in CHART_TYPES:
        raise ChartConfigError(
            f"Unsupported chart type: {chart_type}",
            details={"chart_type": chart_type, "supported": list(CHART_TYPES)}
        )
    return chart_type


def build_chart_data(
    rows: List[Dict[str, Any]],
    x_axis: Optional[str],
    y_axis: Optional[str],
    limit: Optional[int] = None
) -> List[Dict[str, Any]]:
    """
    Map two columns onto chart points.

    Each point carries the X value under its column name and under ``name``,
    and the numeric Y value under its column name and under ``value``. Points
    without an X value are dropped and at most ``limit`` points are kept.

    Returns an empty list until both axes are chosen and rows exist.
    """
    if not x_axis or not y_axis or not rows:
        return []

    limit = settings.chart_max_points if limit is None else limit
    points = []
    for row in rows:
        number = parse_float(row.get(y_axis))
        point = {}
        point[x_axis] = row.get(x_axis)
        point[y_axis] = number
        point["name"] = row.get(x_axis)
        point["value"] = number
        if _truthy(point[x_axis]):
            points.append(point)

    logger.debug(f"Built {len(points)} chart point(s) for {x_axis} x {y_axis}")
    return points[:limit]


def _iso_now(now: Optional[datetime] = None) -> str:
    moment = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_chart_config(
    file_name: str,
    chart_type: str,
    x_axis: str,
    y_axis: str,
    data: List[Dict[str, Any]],
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    """Downloadable description of the chart currently on screen."""
    return {
        "fileName": file_name,
        "chartType": validate_chart_type(chart_type),
        "xAxis": x_axis,
        "yAxis": y_axis,
        "data": [{key: to_jsonable(value) for key, value in point.items()} for point in data],
        "generatedAt": _iso_now(now),
    }


def chart_config_json(config: Dict[str, Any]) -> str:
    return json.dumps(config, indent=2, default=str)


def chart_file_name(file_name: str, chart_type: str) -> str:
    return f"{file_name}_chart_{chart_type}.json"


def render_chart(data: List[Dict[str, Any]], chart_type: str, x_axis: str, y_axis: str) -> go.Figure:
    """
    Plotly figure for the chart panel.

    Raises:
        ChartConfigError: If the chart type is unknown
    """
    validate_chart_type(chart_type)
    frame = pd.DataFrame(
        {
            "name": [point["name"] for point in data],
            "value": [point["value"] for point in data],
        }
    )
    labels = {"name": x_axis, "value": y_axis}

    if chart_type == "line":
        fig = px.line(frame, x="name", y="value", labels=labels, markers=True)
        fig.update_traces(line=dict(color=CHART_COLORS[0], width=3), marker=dict(size=10))
    elif chart_type == "pie":
        fig = go.Figure(go.Pie(
            labels=[f"{name}" for name in frame["name"]],
            values=frame["value"],
            marker=dict(colors=[CHART_COLORS[i % len(CHART_COLORS)] for i in range(len(frame))]),
            texttemplate="%{label}: %{value}",
            textposition="outside",
        ))
    else:
        fig = px.bar(frame, x="name", y="value", labels=labels)
        fig.update_traces(marker_color=CHART_COLORS[0])

    fig.update_layout(height=400, margin=dict(l=20, r=20, t=30, b=20), showlegend=chart_type == "pie")
    return fig
