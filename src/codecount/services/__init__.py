"""
Service Layer - FileCounter, LineCountCache, ScanOrchestrator and ServicesContainer.
"""

from codecount.services.cancellation import CancellationToken
from codecount.services.container import ServicesContainer, create_services
from codecount.services.counting_worker import CountOutcome, FileCounter
from codecount.services.line_count_cache import (
    CacheEntry,
    CacheResult,
    CacheStats,
    LineCountCache,
)
from codecount.services.scan_orchestrator import (
    BATCH_SIZE_TIERS,
    FALLBACK_BATCH_SIZE,
    ScanOrchestrator,
    adaptive_batch_size,
)

__all__ = [
    # Container and factory
    "ServicesContainer",
    "create_services",
    # Counting
    "FileCounter",
    "CountOutcome",
    # Cache
    "LineCountCache",
    "CacheEntry",
    "CacheResult",
    "CacheStats",
    # Scanning
    "ScanOrchestrator",
    "CancellationToken",
    "adaptive_batch_size",
    "BATCH_SIZE_TIERS",
    "FALLBACK_BATCH_SIZE",
]
