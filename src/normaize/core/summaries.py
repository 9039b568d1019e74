import math
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from normaize.core.cells import as_number
from normaize.core.descriptive import (
    column_statistics,
    correlation_matrix,
    mean,
    median,
    outlier_positions,
    standard_deviation,
)
from normaize.core.profiling import (
    column_values,
    count_duplicate_rows,
    count_missing_values,
    numeric_columns,
    profile_column,
    to_frame,
)
from normaize.models import (
    ColumnStatistics,
    ColumnSummary,
    ColumnType,
    DataSummary,
    Dataset,
    StatisticalSummary,
    utc_now,
)
from normaize.utils.logger import get_logger

logger = get_logger(__name__)

Record = Dict[str, Any]
Clock = Callable[[], datetime]


def numeric_series(records: List[Record], column: str) -> Tuple[List[float], List[int]]:
    """Finite numeric values of a column, with the row index each came from."""
    values: List[float] = []
    rows: List[int] = []
    for idx, record in enumerate(records):
        number = as_number(record.get(column))
        if number is not None and math.isfinite(number):
            values.append(number)
            rows.append(idx)
    return values, rows


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000.0


def summary(dataset: Dataset, clock: Optional[Clock] = None) -> DataSummary:
    """Column profiles plus dataset-level missing value and duplicate counts."""
    clock = clock or utc_now
    started = time.perf_counter()
    records = dataset.records

    column_summaries: Dict[str, ColumnSummary] = {}
    for col in dataset.columns:
        profile = profile_column(col, column_values(records, col))
        column_summary = ColumnSummary(**profile.model_dump())
        if profile.data_type is ColumnType.NUMERIC:
            values, _ = numeric_series(records, col)
            if values:
                column_summary.min_value = min(values)
                column_summary.max_value = max(values)
                column_summary.mean = mean(values)
                column_summary.median = median(values)
                column_summary.standard_deviation = standard_deviation(values)
        column_summaries[col] = column_summary

    df = to_frame(dataset.columns, records)
    result = DataSummary(
        dataset_id=dataset.id,
        total_rows=len(records),
        total_columns=len(dataset.columns),
        missing_values=count_missing_values(df),
        duplicate_rows=count_duplicate_rows(df),
        column_summaries=column_summaries,
        generated_at=clock(),
        processing_time_ms=_elapsed_ms(started),
    )
    logger.info(
        f"Summary generated for dataset {dataset.id}: "
        f"{result.total_rows} rows, {result.missing_values} missing, {result.duplicate_rows} duplicates"
    )
    return result


def statistics(dataset: Dataset, clock: Optional[Clock] = None) -> StatisticalSummary:
    """
    Descriptive statistics and outliers per numeric column, plus pairwise
    correlation. Numeric columns without any finite value are omitted.
    """
    clock = clock or utc_now
    started = time.perf_counter()
    records = dataset.records

    column_stats: Dict[str, ColumnStatistics] = {}
    series: Dict[str, List[float]] = {}
    series_rows: Dict[str, List[int]] = {}
    outlier_columns: List[str] = []
    outlier_rows = set()

    for col in numeric_columns(dataset.columns, records):
        values, rows = numeric_series(records, col)
        if not values:
            continue
        stats = column_statistics(col, values)
        column_stats[col] = stats
        series[col] = values
        series_rows[col] = rows
        if stats.outlier_count > 0:
            outlier_columns.append(col)
            outlier_rows.update(rows[pos] for pos in outlier_positions(values))

    result = StatisticalSummary(
        dataset_id=dataset.id,
        column_statistics=column_stats,
        correlation_matrix=correlation_matrix(series, series_rows),
        outlier_columns=outlier_columns,
        outlier_indices=sorted(outlier_rows),
        generated_at=clock(),
        processing_time_ms=_elapsed_ms(started),
    )
    logger.info(
        f"Statistics generated for dataset {dataset.id}: "
        f"{len(column_stats)} numeric column(s), {len(outlier_columns)} with outliers"
    )
    return result
