"""
dataset_service.py
─────────────────────────────────────────────────────────────────────────────
In-memory orchestration over the ingestion pipeline and summary engine.

  upload / upload_from_source → ingest, keep original bytes, register
  get / list / delete / schema → registry lookups
  reprocess                   → re-ingest from the stored bytes, same id
  preview / summary / statistics / chart / compare_charts
                              → computed on demand, summaries cached

Every call goes through the OperationExecutor (validation, logging,
timing, timeout). Reprocessing builds a fresh Dataset and swaps it into
the registry, so readers only ever see a complete dataset. Cache entries
of a dataset are dropped when it is deleted or reprocessed.
─────────────────────────────────────────────────────────────────────────────
"""

import os
import threading
from datetime import datetime
from typing import Callable, Dict, List, Optional, Set

from normaize.config import Settings, settings as default_settings
from normaize.core import charts, ingestion, summaries
from normaize.core.parsers import normalize_extension
from normaize.models import (
    ChartConfiguration,
    ChartDataset,
    ChartType,
    ComparisonChart,
    DataSummary,
    Dataset,
    DatasetPreview,
    StatisticalSummary,
    utc_now,
)
from normaize.services.cache import Cache, InMemoryCache
from normaize.services.storage import ByteSource, InMemoryByteSource
from normaize.utils.exceptions import DatasetNotFoundError, ValidationError
from normaize.utils.logger import get_logger
from normaize.utils.operations import OperationExecutor

logger = get_logger(__name__)

Clock = Callable[[], datetime]


class DatasetService:
    def __init__(
        self,
        byte_source: Optional[ByteSource] = None,
        cache: Optional[Cache] = None,
        config: Optional[Settings] = None,
        clock: Optional[Clock] = None,
        executor: Optional[OperationExecutor] = None,
    ) -> None:
        self.config = config or default_settings
        self.byte_source = byte_source or InMemoryByteSource()
        self.cache = cache or InMemoryCache()
        self.clock = clock or utc_now
        self.executor = executor or OperationExecutor(self.config)
        self._datasets: Dict[str, Dataset] = {}
        self._chart_keys: Dict[str, Set[str]] = {}
        self._lock = threading.Lock()

    # --- cache keys ---

    @staticmethod
    def summary_key(dataset_id: str) -> str:
        return f"summary_{dataset_id}"

    @staticmethod
    def statistics_key(dataset_id: str) -> str:
        return f"stats_{dataset_id}"

    def _with_fingerprint(self, key: str, configuration: Optional[ChartConfiguration]) -> str:
        if configuration is None:
            return key
        return f"{key}_{configuration.fingerprint(self.config.CACHE_KEY_HASH_LENGTH)}"

    def chart_key(
        self,
        dataset_id: str,
        chart_type: ChartType,
        configuration: Optional[ChartConfiguration] = None,
    ) -> str:
        key = f"chart_{dataset_id}_{ChartType(chart_type).value}"
        return self._with_fingerprint(key, configuration)

    def comparison_key(
        self,
        dataset_id1: str,
        dataset_id2: str,
        chart_type: ChartType,
        configuration: Optional[ChartConfiguration] = None,
    ) -> str:
        key = f"comparison_{dataset_id1}_{dataset_id2}_{ChartType(chart_type).value}"
        return self._with_fingerprint(key, configuration)

    def _drop_cached(self, dataset_id: str, chart_keys: Set[str]) -> None:
        # Called after the registry change; waits out in-flight computations of each key
        for key in [self.summary_key(dataset_id), self.statistics_key(dataset_id), *chart_keys]:
            self.cache.remove(key)
        logger.info(f"Invalidated cached summaries for dataset {dataset_id}")

    # --- registry ---

    def _require(self, dataset_id: str) -> Dataset:
        with self._lock:
            dataset = self._datasets.get(dataset_id)
        if dataset is None:
            raise DatasetNotFoundError(f"Dataset '{dataset_id}' not found.")
        return dataset

    def _snapshot(self, dataset_ids: List[str], chart_key: str) -> List[Dataset]:
        """
        Current datasets for `dataset_ids`, registering `chart_key` against
        each of them in the same step so a later invalidation drops it.
        """
        with self._lock:
            found = [self._datasets.get(dataset_id) for dataset_id in dataset_ids]
            if all(dataset is not None for dataset in found):
                for dataset_id in dataset_ids:
                    self._chart_keys.setdefault(dataset_id, set()).add(chart_key)
        for dataset_id, dataset in zip(dataset_ids, found):
            if dataset is None:
                raise DatasetNotFoundError(f"Dataset '{dataset_id}' not found.")
        return found

    def _register(self, dataset: Dataset, content: bytes) -> Dataset:
        self.byte_source.save(dataset.id, content)
        with self._lock:
            self._datasets[dataset.id] = dataset
        return dataset

    # --- ingestion ---

    def upload(self, content: bytes, file_name: str) -> Dataset:
        """Ingest `content` and register the resulting dataset."""
        extension = normalize_extension(os.path.splitext(file_name)[1])

        def operation() -> Dataset:
            dataset = ingestion.ingest(
                content, extension, file_name=file_name, config=self.config, clock=self.clock
            )
            return self._register(dataset, content)

        return self.executor.execute(
            "upload",
            operation,
            validate=lambda: ingestion.validate_upload(content, extension, self.config),
        )

    def upload_from_source(self, identifier: str, file_name: Optional[str] = None) -> Dataset:
        """Ingest bytes already held by the byte source under `identifier`."""
        if not self.byte_source.exists(identifier):
            raise ValidationError(f"No content found for source '{identifier}'.")
        content = self.byte_source.read_all(identifier)
        return self.upload(content, file_name or identifier)

    def reprocess(self, dataset_id: str) -> Dataset:
        """
        Re-run ingestion over the dataset's original bytes. The result keeps
        the dataset's identity and replaces the registered dataset in one step.
        """
        self._require(dataset_id)

        def validate() -> None:
            if not self.byte_source.exists(dataset_id):
                raise ValidationError(f"Original content of dataset '{dataset_id}' is no longer available.")

        def operation() -> Dataset:
            content = self.byte_source.read_all(dataset_id)
            fresh = self._require(dataset_id).model_copy()
            ingestion.reprocess(fresh, content, config=self.config, clock=self.clock)
            with self._lock:
                if dataset_id not in self._datasets:
                    raise DatasetNotFoundError(f"Dataset '{dataset_id}' not found.")
                self._datasets[dataset_id] = fresh
                chart_keys = self._chart_keys.pop(dataset_id, set())
            self._drop_cached(dataset_id, chart_keys)
            return fresh

        return self.executor.execute("reprocess", operation, validate=validate)

    # --- lookups ---

    def get(self, dataset_id: str) -> Dataset:
        return self._require(dataset_id)

    def list(self) -> List[Dataset]:
        with self._lock:
            datasets = list(self._datasets.values())
        return sorted(datasets, key=lambda d: d.uploaded_at)

    def delete(self, dataset_id: str) -> None:
        with self._lock:
            dataset = self._datasets.pop(dataset_id, None)
            chart_keys = self._chart_keys.pop(dataset_id, set())
        if dataset is None:
            raise DatasetNotFoundError(f"Dataset '{dataset_id}' not found.")
        self.byte_source.delete(dataset_id)
        self._drop_cached(dataset_id, chart_keys)
        logger.info(f"Deleted dataset {dataset_id} ({dataset.file_name})")

    def schema(self, dataset_id: str) -> List[str]:
        return list(self._require(dataset_id).columns)

    # --- analysis ---
    # Factories look the dataset up when they run, under the cache key's lock,
    # so a value computed from a replaced dataset is dropped by the invalidation.

    def preview(self, dataset_id: str, rows: int) -> Optional[DatasetPreview]:
        dataset = self._require(dataset_id)
        return self.executor.execute(
            "preview",
            lambda: ingestion.preview(dataset, rows, self.config),
        )

    def summary(self, dataset_id: str) -> DataSummary:
        return self.executor.execute(
            "summary",
            lambda: self.cache.get_or_set(
                self.summary_key(dataset_id),
                lambda: summaries.summary(self._require(dataset_id), clock=self.clock),
                self.config.cache_expiration_seconds,
            ),
            validate=lambda: self._require(dataset_id),
        )

    def statistics(self, dataset_id: str) -> StatisticalSummary:
        return self.executor.execute(
            "statistics",
            lambda: self.cache.get_or_set(
                self.statistics_key(dataset_id),
                lambda: summaries.statistics(self._require(dataset_id), clock=self.clock),
                self.config.cache_expiration_seconds,
            ),
            validate=lambda: self._require(dataset_id),
        )

    def chart(
        self,
        dataset_id: str,
        chart_type: ChartType,
        configuration: Optional[ChartConfiguration] = None,
    ) -> ChartDataset:
        chart_type = ChartType(chart_type)
        key = self.chart_key(dataset_id, chart_type, configuration)

        def validate() -> None:
            self._require(dataset_id)
            charts.validate_chart_configuration(chart_type, configuration)

        def build() -> ChartDataset:
            (dataset,) = self._snapshot([dataset_id], key)
            return charts.chart(dataset, chart_type, configuration, self.config, self.clock)

        return self.executor.execute(
            "chart",
            lambda: self.cache.get_or_set(key, build, self.config.cache_expiration_seconds),
            validate=validate,
        )

    def compare_charts(
        self,
        dataset_id1: str,
        dataset_id2: str,
        chart_type: ChartType,
        configuration: Optional[ChartConfiguration] = None,
    ) -> ComparisonChart:
        """Chart two datasets the same way and combine their series."""
        chart_type = ChartType(chart_type)
        key = self.comparison_key(dataset_id1, dataset_id2, chart_type, configuration)

        def validate() -> None:
            if dataset_id1 == dataset_id2:
                raise ValidationError("Dataset IDs must be different for comparison.")
            self._require(dataset_id1)
            self._require(dataset_id2)
            charts.validate_chart_configuration(chart_type, configuration)

        def build() -> ComparisonChart:
            first, second = self._snapshot([dataset_id1, dataset_id2], key)
            return charts.comparison_chart(
                first, second, chart_type, configuration, self.config, self.clock
            )

        return self.executor.execute(
            "compare_charts",
            lambda: self.cache.get_or_set(key, build, self.config.cache_expiration_seconds),
            validate=validate,
        )
