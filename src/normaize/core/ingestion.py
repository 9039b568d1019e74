import hashlib
import os
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from normaize.config import Settings, settings as default_settings
from normaize.core.parsers import file_type_for, get_parser, normalize_extension
from normaize.models import Dataset, DatasetPreview, utc_now
from normaize.utils.exceptions import ParseError, ValidationError
from normaize.utils.logger import get_logger

logger = get_logger(__name__)

Record = Dict[str, Any]
Clock = Callable[[], datetime]


# --- Pipeline stages ---

def cap_records(
    columns: List[str],
    records: List[Record],
    max_columns: int,
    max_rows: int,
) -> Tuple[List[str], List[Record]]:
    """
    Keep the first `max_columns` columns and the first `max_rows` records.
    Every retained record is projected onto the retained columns, with
    missing values filled as None. This is a deterministic prefix, not a sample.
    """
    kept_columns = list(columns[:max_columns])
    if len(columns) > max_columns:
        logger.warning(
            f"Dropping {len(columns) - max_columns} column(s) beyond the limit of {max_columns}."
        )
    if len(records) > max_rows:
        logger.warning(f"Dropping {len(records) - max_rows} row(s) beyond the limit of {max_rows}.")

    kept_records = [
        {col: record.get(col) for col in kept_columns}
        for record in records[:max_rows]
    ]
    return kept_columns, kept_records


def extract_preview(
    columns: List[str],
    records: List[Record],
    requested: int,
    max_preview_rows: Optional[int] = None,
) -> DatasetPreview:
    """Leading slice of `records`; prefix-stable for any requested size."""
    rows = records[:max(0, min(requested, len(records)))]
    return DatasetPreview(
        columns=list(columns),
        rows=[dict(row) for row in rows],
        total_rows=len(records),
        max_preview_rows=max_preview_rows if max_preview_rows is not None else requested,
        preview_row_count=len(rows),
    )


def compute_content_hash(content: bytes) -> str:
    """SHA-256 hex digest of the raw bytes, or "" if hashing fails."""
    try:
        return hashlib.sha256(content).hexdigest()
    except (TypeError, ValueError, MemoryError):
        return ""


def should_use_separate_storage(
    row_count: int,
    file_size: int,
    max_rows: int,
    max_file_size_bytes: int,
) -> bool:
    return row_count >= max_rows or file_size > max_file_size_bytes


# --- Validation ---

def validate_upload(content: bytes, extension: str, config: Settings) -> None:
    """Reject input before any parsing work. Raises ValidationError."""
    ext = normalize_extension(extension)
    if ext in config.BLOCKED_EXTENSIONS:
        raise ValidationError(f"File type '{ext}' is not allowed.")
    # Raises UnsupportedFormatError for unknown extensions
    get_parser(ext)

    if not content:
        raise ValidationError("The uploaded file contains no data.")
    if len(content) > config.max_upload_size_bytes:
        raise ValidationError(f"File exceeds {config.MAX_UPLOAD_SIZE_MB}MB limit.")


# --- Ingestion ---

def _populate(
    dataset: Dataset,
    content: bytes,
    extension: str,
    config: Settings,
    clock: Clock,
) -> Dataset:
    # Everything is derived first; the dataset is only written once parsing is over
    columns: List[str] = []
    records: List[Record] = []
    errors: Optional[str] = None
    parser = get_parser(extension)
    try:
        result = parser(content, config.MAX_ROWS_PER_DATASET)
        columns, records = cap_records(
            result.columns,
            result.records,
            config.MAX_COLUMNS_PER_DATASET,
            config.MAX_ROWS_PER_DATASET,
        )
    except ParseError as e:
        logger.error(f"Error processing file {dataset.file_name}: {e.message}")
        errors = f"Error processing file {dataset.file_name}: {e.message}"

    dataset.file_size = len(content)
    dataset.columns = columns
    dataset.column_count = len(columns)
    dataset.records = records
    dataset.row_count = len(records)
    dataset.preview = (
        extract_preview(columns, records, config.MAX_PREVIEW_ROWS, config.MAX_PREVIEW_ROWS)
        if records else None
    )
    dataset.processing_errors = errors
    dataset.is_processed = False
    dataset.processed_at = None

    dataset.data_hash = compute_content_hash(content)
    if not dataset.data_hash:
        logger.warning(f"Could not compute content hash for {dataset.file_name}.")

    dataset.use_separate_table = should_use_separate_storage(
        dataset.row_count,
        dataset.file_size,
        config.MAX_ROWS_PER_DATASET,
        config.MAX_FILE_SIZE_BYTES,
    )

    if not dataset.processing_errors:
        dataset.is_processed = True
        dataset.processed_at = clock()
        logger.info(
            f"Ingestion successful. Shape: ({dataset.row_count}, {dataset.column_count})"
        )
    return dataset


def ingest(
    file_content: bytes,
    extension: str,
    file_name: Optional[str] = None,
    config: Optional[Settings] = None,
    clock: Optional[Clock] = None,
) -> Dataset:
    """
    Turn raw bytes into a Dataset.

    Validation failures (empty content, oversized content, unsupported or
    blocked extension) raise. Malformed content does not: the Dataset is
    returned with is_processed=False and processing_errors populated.
    """
    config = config or default_settings
    clock = clock or utc_now
    ext = normalize_extension(extension)
    name = file_name or f"upload{ext}"
    logger.info(f"Starting ingestion for file: {name}")

    validate_upload(file_content, ext, config)

    dataset = Dataset(file_name=name, file_type=file_type_for(ext), uploaded_at=clock())
    return _populate(dataset, file_content, ext, config, clock)


def ingest_file(
    file_content: bytes,
    filename: str,
    config: Optional[Settings] = None,
    clock: Optional[Clock] = None,
) -> Dataset:
    """Ingest using the extension of `filename`."""
    extension = os.path.splitext(filename)[1]
    return ingest(file_content, extension, file_name=filename, config=config, clock=clock)


def reprocess(
    dataset: Dataset,
    file_content: bytes,
    config: Optional[Settings] = None,
    clock: Optional[Clock] = None,
) -> Dataset:
    """
    Re-run ingestion over the original bytes, replacing the dataset's
    derived fields in place. Identity fields (id, name, upload time) are kept.
    """
    config = config or default_settings
    clock = clock or utc_now
    ext = os.path.splitext(dataset.file_name)[1]
    logger.info(f"Reprocessing dataset {dataset.id} ({dataset.file_name})")

    validate_upload(file_content, ext, config)
    return _populate(dataset, file_content, ext, config, clock)


def preview(
    dataset: Dataset,
    rows: int,
    config: Optional[Settings] = None,
) -> Optional[DatasetPreview]:
    """
    First `rows` records of a dataset, or None when it has no preview.
    """
    config = config or default_settings
    if rows <= 0:
        raise ValidationError("Rows must be a positive number.")
    if rows > config.MAX_PREVIEW_REQUEST_ROWS:
        raise ValidationError(f"Rows cannot exceed {config.MAX_PREVIEW_REQUEST_ROWS}.")

    if dataset.preview is None:
        return None

    # Stored preview rows are a prefix of the records, so either source is prefix-stable
    source = dataset.records or dataset.preview.rows
    result = extract_preview(dataset.columns, source, rows, dataset.preview.max_preview_rows)
    result.total_rows = dataset.row_count
    return result
