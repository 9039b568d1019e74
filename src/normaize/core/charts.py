"""
charts.py
─────────────────────────────────────────────────────────────────────────────
Shapes a dataset's records into chart-ready labels and series.

Chart type → shape
  Bar / Line / Area   → one series per numeric column, labels from the
                        first non-numeric column
  Pie / Donut         → labels from the first column, values from the
                        first numeric column
  Scatter / Bubble    → one "<x> vs <y>" series of {x, y} points from the
                        first two numeric columns
  anything else       → empty chart

When the data has no usable numeric column the builders fall back to
row-index data ("Row i" labels) instead of failing.
─────────────────────────────────────────────────────────────────────────────
"""

import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from normaize.config import Settings, settings as default_settings
from normaize.core.cells import display_value, is_null, to_float
from normaize.core.profiling import numeric_columns
from normaize.models import (
    ChartConfiguration,
    ChartDataset,
    ChartSeries,
    ChartType,
    ComparisonChart,
    Dataset,
    ScatterPoint,
    utc_now,
)
from normaize.utils.exceptions import ValidationError
from normaize.utils.logger import get_logger

logger = get_logger(__name__)

Record = Dict[str, Any]
Clock = Callable[[], datetime]
Shape = Tuple[List[str], List[ChartSeries]]

FALLBACK_SERIES_NAME = "Count"
UNKNOWN_LABEL = "Unknown"

# ── colour palettes (dark-theme friendly) ────────────────────────────────────
PALETTES: Dict[str, List[str]] = {
    "default": ["#4C9BE8", "#FF4B4B", "#F5A623", "#2ECC71", "#9B59B6", "#1ABC9C"],
    "warm":    ["#FF4B4B", "#F5A623", "#FF7F50", "#E74C3C", "#F1C40F", "#D35400"],
    "cool":    ["#4C9BE8", "#1ABC9C", "#2ECC71", "#9B59B6", "#34495E", "#5DADE2"],
}

BAR_LIKE = {ChartType.BAR, ChartType.LINE, ChartType.AREA}
PIE_LIKE = {ChartType.PIE, ChartType.DONUT}
SCATTER_LIKE = {ChartType.SCATTER, ChartType.BUBBLE}


# ── helpers ───────────────────────────────────────────────────────────────────
def palette_for(color_scheme: Optional[str]) -> List[str]:
    return PALETTES.get((color_scheme or "default").lower(), PALETTES["default"])


def _label(value: Any) -> str:
    return UNKNOWN_LABEL if is_null(value) else display_value(value)


def _row_labels(records: List[Record]) -> List[str]:
    return [f"Row {i}" for i in range(1, len(records) + 1)]


def _fallback_counts(records: List[Record]) -> Shape:
    series = ChartSeries(name=FALLBACK_SERIES_NAME, data=[float(i) for i in range(1, len(records) + 1)])
    return _row_labels(records), [series]


def _values(records: List[Record], column: str) -> List[float]:
    return [to_float(record.get(column)) for record in records]


# ── shapers ───────────────────────────────────────────────────────────────────
def _shape_bar_line_area(columns: List[str], records: List[Record]) -> Shape:
    numeric = numeric_columns(columns, records)
    if not numeric:
        logger.info("No numeric columns found for chart. Using fallback data.")
        return _fallback_counts(records)

    label_column = next((c for c in columns if c not in numeric), columns[0])
    labels = [_label(record.get(label_column)) for record in records]
    series = [ChartSeries(name=col, data=_values(records, col)) for col in numeric]
    return labels, series


def _shape_pie_donut(columns: List[str], records: List[Record]) -> Shape:
    numeric = numeric_columns(columns, records)
    if not numeric:
        logger.info("No numeric columns found for pie/donut chart. Using fallback data.")
        return _fallback_counts(records)

    labels = [_label(record.get(columns[0])) for record in records]
    value_column = numeric[0]
    return labels, [ChartSeries(name=value_column, data=_values(records, value_column))]


def _shape_scatter_bubble(columns: List[str], records: List[Record]) -> Shape:
    numeric = numeric_columns(columns, records)
    if len(numeric) < 2:
        logger.info("Insufficient numeric columns for scatter/bubble chart. Using fallback data.")
        points = [ScatterPoint(x=float(i), y=float(i)) for i in range(1, len(records) + 1)]
        return _row_labels(records), [ChartSeries(name=FALLBACK_SERIES_NAME, data=points)]

    x_col, y_col = numeric[0], numeric[1]
    labels = [_label(record.get(columns[0])) for record in records]
    points = [
        ScatterPoint(x=to_float(record.get(x_col)), y=to_float(record.get(y_col)))
        for record in records
    ]
    return labels, [ChartSeries(name=f"{x_col} vs {y_col}", data=points)]


# ── configuration ─────────────────────────────────────────────────────────────
def validate_chart_configuration(chart_type: ChartType, configuration: Optional[ChartConfiguration]) -> bool:
    """
    Raise ValidationError for unusable configurations. Chart-specific
    mismatches (axis labels on a pie, missing axes on a scatter) only warn.
    """
    if configuration is None:
        return True

    if configuration.max_data_points is not None and configuration.max_data_points <= 0:
        raise ValidationError("MaxDataPoints must be greater than 0.")

    if chart_type in PIE_LIKE and (configuration.x_axis_label or configuration.y_axis_label):
        logger.warning(f"Axis labels are ignored for {chart_type.value} charts.")
    if chart_type in SCATTER_LIKE and not (configuration.x_axis_label and configuration.y_axis_label):
        logger.warning(f"{chart_type.value} chart configured without both axis labels.")
    return True


# ── PUBLIC ENTRY POINT ────────────────────────────────────────────────────────
def chart(
    dataset: Dataset,
    chart_type: ChartType,
    configuration: Optional[ChartConfiguration] = None,
    config: Optional[Settings] = None,
    clock: Optional[Clock] = None,
) -> ChartDataset:
    """
    Build a ChartDataset for `chart_type`. Records are capped to
    max_data_points (configuration first, then settings) before shaping.
    """
    config = config or default_settings
    clock = clock or utc_now
    started = time.perf_counter()
    chart_type = ChartType(chart_type)
    validate_chart_configuration(chart_type, configuration)

    max_points = config.MAX_DATA_POINTS
    if configuration is not None and configuration.max_data_points is not None:
        max_points = configuration.max_data_points

    columns = list(dataset.columns)
    records = dataset.records[:max_points]
    labels: List[str] = []
    series: List[ChartSeries] = []

    if not records or not columns:
        logger.info(f"No data available for {chart_type.value} chart of dataset {dataset.id}.")
    elif chart_type in BAR_LIKE:
        labels, series = _shape_bar_line_area(columns, records)
    elif chart_type in PIE_LIKE:
        labels, series = _shape_pie_donut(columns, records)
    elif chart_type in SCATTER_LIKE:
        labels, series = _shape_scatter_bubble(columns, records)
    else:
        logger.warning(f"Unsupported chart type for series generation: {chart_type.value}")

    colors = palette_for(configuration.color_scheme if configuration else None)
    for i, s in enumerate(series):
        s.color = colors[i % len(colors)]

    return ChartDataset(
        dataset_id=dataset.id,
        chart_type=chart_type,
        labels=labels,
        series=series,
        configuration=configuration,
        generated_at=clock(),
        processing_time_ms=(time.perf_counter() - started) * 1000.0,
    )


def comparison_chart(
    first: Dataset,
    second: Dataset,
    chart_type: ChartType,
    configuration: Optional[ChartConfiguration] = None,
    config: Optional[Settings] = None,
    clock: Optional[Clock] = None,
) -> ComparisonChart:
    """
    Chart both datasets the same way and combine them: the series of
    `first` followed by those of `second`, on the labels of `first`.
    Colours cycle over the combined series.
    """
    clock = clock or utc_now
    started = time.perf_counter()
    left = chart(first, chart_type, configuration, config, clock)
    right = chart(second, chart_type, configuration, config, clock)

    series = [s.model_copy() for s in left.series + right.series]
    colors = palette_for(configuration.color_scheme if configuration else None)
    for i, s in enumerate(series):
        s.color = colors[i % len(colors)]

    return ComparisonChart(
        dataset_id1=first.id,
        dataset_id2=second.id,
        chart_type=left.chart_type,
        labels=left.labels,
        series=series,
        configuration=configuration,
        generated_at=clock(),
        processing_time_ms=(time.perf_counter() - started) * 1000.0,
    )
