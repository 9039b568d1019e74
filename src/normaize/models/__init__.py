from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Any, Dict, List, Optional, Union
from datetime import datetime, timezone
from enum import Enum
import hashlib
import json
import uuid


def utc_now() -> datetime:
    """Default clock: timezone-aware UTC now."""
    return datetime.now(timezone.utc)


class ApiModel(BaseModel):
    """Base model serializing with camelCase aliases."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Enums ---

class FileType(str, Enum):
    CSV = "CSV"
    JSON = "JSON"
    EXCEL = "Excel"
    XML = "XML"
    TXT = "TXT"


class ColumnType(str, Enum):
    NUMERIC = "Numeric"
    DATETIME = "DateTime"
    BOOLEAN = "Boolean"
    STRING = "String"
    UNKNOWN = "Unknown"


class ChartType(str, Enum):
    BAR = "Bar"
    LINE = "Line"
    PIE = "Pie"
    SCATTER = "Scatter"
    AREA = "Area"
    HISTOGRAM = "Histogram"
    BOX_PLOT = "BoxPlot"
    HEATMAP = "Heatmap"
    BUBBLE = "Bubble"
    RADAR = "Radar"
    DONUT = "Donut"
    COLUMN = "Column"


# --- Ingestion ---

class DatasetPreview(ApiModel):
    """Bounded leading slice of a dataset's records."""
    columns: List[str]
    rows: List[Dict[str, Any]]
    total_rows: int
    max_preview_rows: int
    preview_row_count: int


class Dataset(ApiModel):
    """
    Normalized result of ingesting one file.
    `records` holds the capped, materialized rows and is never serialized.
    """
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    file_name: str
    file_type: FileType
    file_size: int = 0
    columns: List[str] = Field(default_factory=list)
    row_count: int = 0
    column_count: int = 0
    preview: Optional[DatasetPreview] = None
    data_hash: str = ""
    processing_errors: Optional[str] = None
    use_separate_table: bool = False
    is_processed: bool = False
    processed_at: Optional[datetime] = None
    uploaded_at: datetime = Field(default_factory=utc_now)
    records: List[Dict[str, Any]] = Field(default_factory=list, exclude=True, repr=False)

    def serialized_schema(self) -> str:
        """Schema as persisted: an ordered JSON list of column names."""
        return json.dumps(self.columns)


# --- Summaries ---

class ColumnProfile(ApiModel):
    column_name: str
    data_type: ColumnType
    non_null_count: int
    null_count: int
    unique_count: int
    sample_values: List[str] = Field(default_factory=list)


class ColumnSummary(ColumnProfile):
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    mean: Optional[float] = None
    median: Optional[float] = None
    standard_deviation: Optional[float] = None


class DataSummary(ApiModel):
    dataset_id: str
    total_rows: int
    total_columns: int
    missing_values: int
    duplicate_rows: int
    column_summaries: Dict[str, ColumnSummary] = Field(default_factory=dict)
    generated_at: datetime = Field(default_factory=utc_now)
    processing_time_ms: float = 0.0


class ColumnStatistics(ApiModel):
    column_name: str
    mean: float
    median: float
    standard_deviation: float
    min: float
    max: float
    q1: float
    q2: float
    q3: float
    skewness: float
    kurtosis: float
    outlier_count: int = 0


class StatisticalSummary(ApiModel):
    dataset_id: str
    column_statistics: Dict[str, ColumnStatistics] = Field(default_factory=dict)
    correlation_matrix: Dict[str, float] = Field(default_factory=dict)
    outlier_columns: List[str] = Field(default_factory=list)
    outlier_indices: List[int] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=utc_now)
    processing_time_ms: float = 0.0


# --- Charts ---

class ChartConfiguration(ApiModel):
    title: Optional[str] = None
    x_axis_label: Optional[str] = None
    y_axis_label: Optional[str] = None
    show_legend: bool = True
    show_grid: bool = True
    color_scheme: Optional[str] = None
    max_data_points: Optional[int] = None
    custom_options: Optional[Dict[str, Any]] = None

    def fingerprint(self, length: int = 8) -> str:
        """Short stable digest of the configuration, used in cache keys."""
        payload = self.model_dump_json(by_alias=True).encode("utf-8")
        return hashlib.sha256(payload).hexdigest()[:length]


class ScatterPoint(ApiModel):
    x: float
    y: float


class ChartSeries(ApiModel):
    name: str
    data: List[Union[ScatterPoint, float]] = Field(default_factory=list)
    color: Optional[str] = None


class ChartDataset(ApiModel):
    dataset_id: str
    chart_type: ChartType
    labels: List[str] = Field(default_factory=list)
    series: List[ChartSeries] = Field(default_factory=list)
    configuration: Optional[ChartConfiguration] = None
    generated_at: datetime = Field(default_factory=utc_now)
    processing_time_ms: float = 0.0


class ComparisonChart(ApiModel):
    """Series of two datasets charted side by side, labels from the first."""
    dataset_id1: str
    dataset_id2: str
    chart_type: ChartType
    labels: List[str] = Field(default_factory=list)
    series: List[ChartSeries] = Field(default_factory=list)
    configuration: Optional[ChartConfiguration] = None
    generated_at: datetime = Field(default_factory=utc_now)
    processing_time_ms: float = 0.0
