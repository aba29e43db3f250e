"""
Observability Module for Master-Data Auto-Mapping

Provides:
- Structured logging with correlation IDs
- Metrics collection (mapping runs, per-field outcomes, processing times)
"""

from core.observability.metrics import (
    MetricsCollector,
    get_metrics,
    record_mapping_run,
    record_catalog_load_failed,
    record_processing_time,
)

from core.observability.logging import (
    configure_logging,
    get_logger,
    CorrelationContext,
    with_correlation,
)

__all__ = [
    # Metrics
    "MetricsCollector",
    "get_metrics",
    "record_mapping_run",
    "record_catalog_load_failed",
    "record_processing_time",
    # Logging
    "configure_logging",
    "get_logger",
    "CorrelationContext",
    "with_correlation",
]
