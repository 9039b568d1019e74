"""
Ingestion pipeline and analytical summary engine.
"""
from .ingestion import ingest, ingest_file, preview, reprocess
from .summaries import statistics, summary
from .charts import chart, comparison_chart

__all__ = [
    "ingest", "ingest_file", "preview", "reprocess",
    "summary", "statistics", "chart", "comparison_chart",
]
