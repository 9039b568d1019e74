"""
visualization.py
─────────────────────────────────────────────────────────────────────────────
Renders a ChartDataset as a Plotly figure (JSON).

Chart type → Plotly trace
  Bar / Column       → grouped bar traces
  Line / Area        → line traces with markers (Area filled to zero)
  Pie / Donut        → pie (Donut with a hole)
  Scatter / Bubble   → marker scatter
  anything else      → no figure
─────────────────────────────────────────────────────────────────────────────
"""

from typing import List, Optional

import plotly.graph_objects as go

from normaize.core.charts import palette_for
from normaize.models import ChartDataset, ChartSeries, ChartType, ScatterPoint
from normaize.utils.logger import get_logger

logger = get_logger(__name__)

# ── colour palette (dark-theme friendly) ─────────────────────────────────────
CLR_BG       = "rgba(0,0,0,0)"
FONT_COLOR   = "#FFFFFF"
GRID_COLOR   = "#2a2f3a"

LAYOUT_BASE = dict(
    paper_bgcolor=CLR_BG,
    plot_bgcolor ="rgba(14,17,23,1)",
    font         =dict(color=FONT_COLOR, size=13),
    margin       =dict(l=60, r=40, t=70, b=80),
    xaxis        =dict(gridcolor=GRID_COLOR, zerolinecolor=GRID_COLOR),
    yaxis        =dict(gridcolor=GRID_COLOR, zerolinecolor=GRID_COLOR),
)

DONUT_HOLE = 0.45


# ── helpers ───────────────────────────────────────────────────────────────────
def _apply_layout(fig, title: str, xlabel: str = None, ylabel: str = None,
                  show_legend: bool = True, show_grid: bool = True) -> go.Figure:
    updates = dict(**LAYOUT_BASE, title=dict(text=title, font=dict(size=18, color=FONT_COLOR)))
    updates["xaxis"] = {**LAYOUT_BASE["xaxis"], "showgrid": show_grid}
    updates["yaxis"] = {**LAYOUT_BASE["yaxis"], "showgrid": show_grid}
    if xlabel:
        updates["xaxis"]["title"] = xlabel
    if ylabel:
        updates["yaxis"]["title"] = ylabel
    updates["showlegend"] = show_legend
    fig.update_layout(**updates)
    return fig


def _numbers(series: ChartSeries) -> List[float]:
    return [p if isinstance(p, (int, float)) else p.y for p in series.data]


def _color(series: ChartSeries, index: int, scheme: Optional[str]) -> str:
    if series.color:
        return series.color
    colors = palette_for(scheme)
    return colors[index % len(colors)]


# ── trace builders ────────────────────────────────────────────────────────────
def _bar_traces(fig: go.Figure, chart: ChartDataset, scheme: Optional[str]) -> None:
    for i, s in enumerate(chart.series):
        fig.add_trace(go.Bar(
            x=chart.labels,
            y=_numbers(s),
            name=s.name,
            marker_color=_color(s, i, scheme),
            hovertemplate=f"<b>%{{x}}</b><br>{s.name}: %{{y:.2f}}<extra></extra>",
        ))
    fig.update_layout(barmode="group")


def _line_traces(fig: go.Figure, chart: ChartDataset, scheme: Optional[str], filled: bool) -> None:
    for i, s in enumerate(chart.series):
        fig.add_trace(go.Scatter(
            x=chart.labels,
            y=_numbers(s),
            name=s.name,
            mode="lines+markers",
            fill="tozeroy" if filled else None,
            line=dict(color=_color(s, i, scheme), width=2),
            marker=dict(size=6),
        ))


def _pie_trace(fig: go.Figure, chart: ChartDataset, scheme: Optional[str], donut: bool) -> None:
    s = chart.series[0]
    fig.add_trace(go.Pie(
        labels=chart.labels,
        values=_numbers(s),
        name=s.name,
        hole=DONUT_HOLE if donut else 0,
        marker=dict(colors=palette_for(scheme)),
        hovertemplate="<b>%{label}</b><br>%{value} (%{percent})<extra></extra>",
    ))


def _scatter_traces(fig: go.Figure, chart: ChartDataset, scheme: Optional[str]) -> None:
    for i, s in enumerate(chart.series):
        points = [p for p in s.data if isinstance(p, ScatterPoint)]
        fig.add_trace(go.Scatter(
            x=[p.x for p in points],
            y=[p.y for p in points],
            text=chart.labels[:len(points)],
            name=s.name,
            mode="markers",
            marker=dict(color=_color(s, i, scheme), size=8, opacity=0.75),
            hovertemplate="<b>%{text}</b><br>x=%{x}<br>y=%{y}<extra></extra>",
        ))


# ── PUBLIC ENTRY POINT ────────────────────────────────────────────────────────
def generate_plotly_json(chart: ChartDataset) -> Optional[str]:
    """
    Render `chart` as a Plotly figure and return its JSON string, or None
    when the chart has no series or no Plotly equivalent.
    """
    if not chart.series:
        logger.info("Chart has no series, skipping figure.")
        return None

    configuration = chart.configuration
    scheme = configuration.color_scheme if configuration else None
    fig = go.Figure()

    if chart.chart_type in (ChartType.BAR, ChartType.COLUMN):
        _bar_traces(fig, chart, scheme)
    elif chart.chart_type in (ChartType.LINE, ChartType.AREA):
        _line_traces(fig, chart, scheme, filled=chart.chart_type is ChartType.AREA)
    elif chart.chart_type in (ChartType.PIE, ChartType.DONUT):
        _pie_trace(fig, chart, scheme, donut=chart.chart_type is ChartType.DONUT)
    elif chart.chart_type in (ChartType.SCATTER, ChartType.BUBBLE):
        _scatter_traces(fig, chart, scheme)
    else:
        logger.warning(f"No Plotly rendering for chart type {chart.chart_type.value}.")
        return None

    title = (configuration.title if configuration and configuration.title
             else f"{chart.chart_type.value} chart")
    fig = _apply_layout(
        fig,
        title,
        xlabel=configuration.x_axis_label if configuration else None,
        ylabel=configuration.y_axis_label if configuration else None,
        show_legend=configuration.show_legend if configuration else True,
        show_grid=configuration.show_grid if configuration else True,
    )
    logger.info(f"Visualization generated successfully (type={chart.chart_type.value}).")
    return fig.to_json()
