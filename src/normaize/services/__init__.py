"""
Service layer: dataset registry, summary cache and byte storage.
"""
from .cache import Cache, InMemoryCache
from .dataset_service import DatasetService
from .storage import ByteSource, InMemoryByteSource, LocalByteSource

__all__ = [
    "ByteSource",
    "Cache",
    "DatasetService",
    "InMemoryByteSource",
    "InMemoryCache",
    "LocalByteSource",
]
