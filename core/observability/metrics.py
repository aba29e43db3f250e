"""
Metrics Collection for Master-Data Auto-Mapping

Collects and exposes metrics for:
- Mapping runs (total, with changes, without changes)
- Fields filled, by field and by strategy
- Fields left blank, by field
- Catalog load failures, by catalog type
- Processing times (average, p95)

Metrics are kept in memory per process; they never influence mapping outcomes.
"""

import statistics
from collections import defaultdict
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Dict, Iterable, List, Optional, Tuple


# =============================================================================
# Metric Data Classes
# =============================================================================

@dataclass
class MappingRunMetrics:
    """Metrics for mapping passes."""
    runs: int = 0
    with_changes: int = 0
    without_changes: int = 0


@dataclass
class FieldMetrics:
    """Per-field outcome counters."""
    mapped: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
    unmatched: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
    by_strategy: Dict[str, Dict[str, int]] = field(default_factory=lambda: defaultdict(lambda: defaultdict(int)))


@dataclass
class TimingMetrics:
    """Processing time metrics."""
    # Raw timing samples (keep last N for percentile calculations)
    samples: List[float] = field(default_factory=list)
    max_samples: int = 1000

    by_stage: Dict[str, List[float]] = field(default_factory=lambda: defaultdict(list))

    def add_sample(self, duration_ms: float, stage: Optional[str] = None):
        """Add a timing sample."""
        self.samples.append(duration_ms)
        if len(self.samples) > self.max_samples:
            self.samples = self.samples[-self.max_samples:]

        if stage:
            self.by_stage[stage].append(duration_ms)
            if len(self.by_stage[stage]) > self.max_samples:
                self.by_stage[stage] = self.by_stage[stage][-self.max_samples:]

    def get_average(self, stage: Optional[str] = None) -> float:
        """Get average processing time."""
        samples = self.by_stage.get(stage, []) if stage else self.samples
        return statistics.mean(samples) if samples else 0.0

    def get_p95(self, stage: Optional[str] = None) -> float:
        """Get 95th percentile processing time."""
        samples = self.by_stage.get(stage, []) if stage else self.samples
        if not samples:
            return 0.0
        sorted_samples = sorted(samples)
        idx = int(len(sorted_samples) * 0.95)
        return sorted_samples[min(idx, len(sorted_samples) - 1)]


# =============================================================================
# Metrics Collector (Singleton)
# =============================================================================

class MetricsCollector:
    """
    Thread-safe metrics collector for auto-mapping.

    Usage:
        metrics = MetricsCollector.instance()
        metrics.record_mapping_run(changes=[("tarifa_id", "default")], unmatched=[], duration_ms=1.2)
        metrics.record_catalog_load_failed("tarifas")
    """

    _instance: Optional["MetricsCollector"] = None
    _lock = Lock()

    def __init__(self):
        self.runs = MappingRunMetrics()
        self.fields = FieldMetrics()
        self.timings = TimingMetrics()
        self.catalog_failures: Dict[str, int] = defaultdict(int)
        self._lock = Lock()

    @classmethod
    def instance(cls) -> "MetricsCollector":
        """Get singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    # =========================================================================
    # Mapping Metrics
    # =========================================================================

    def record_mapping_run(
        self,
        changes: Iterable[Tuple[str, str]],
        unmatched: Iterable[str],
        duration_ms: Optional[float] = None,
    ):
        """Record one mapping pass.

        Args:
            changes: (form field, strategy) for every field filled in
            unmatched: Form fields that were attempted and left blank
            duration_ms: Time spent in the pass
        """
        changes = list(changes)
        with self._lock:
            self.runs.runs += 1
            if changes:
                self.runs.with_changes += 1
            else:
                self.runs.without_changes += 1

            for form_field, strategy in changes:
                self.fields.mapped[form_field] += 1
                self.fields.by_strategy[form_field][strategy] += 1

            for form_field in unmatched:
                self.fields.unmatched[form_field] += 1

            if duration_ms is not None:
                self.timings.add_sample(duration_ms, "mapping")

    def record_catalog_load_failed(self, catalog_type: str):
        """Record a catalog that could not be loaded."""
        with self._lock:
            self.catalog_failures[catalog_type] += 1

    def record_processing_time(self, stage: str, duration_ms: float):
        """Record a processing time sample."""
        with self._lock:
            self.timings.add_sample(duration_ms, stage)

    def get_timing_stats(self, stage: Optional[str] = None) -> Dict[str, float]:
        """Get timing statistics for a stage."""
        with self._lock:
            return {
                "average_ms": self.timings.get_average(stage),
                "p95_ms": self.timings.get_p95(stage),
                "sample_count": len(self.timings.by_stage.get(stage, []) if stage else self.timings.samples),
            }

    # =========================================================================
    # Summary
    # =========================================================================

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of all metrics."""
        with self._lock:
            return {
                "runs": {
                    "total": self.runs.runs,
                    "with_changes": self.runs.with_changes,
                    "without_changes": self.runs.without_changes,
                },
                "fields": {
                    "mapped": dict(self.fields.mapped),
                    "unmatched": dict(self.fields.unmatched),
                    "by_strategy": {k: dict(v) for k, v in self.fields.by_strategy.items()},
                },
                "catalog_failures": dict(self.catalog_failures),
                "timings": {
                    "overall": {
                        "average_ms": self.timings.get_average(),
                        "p95_ms": self.timings.get_p95(),
                    },
                    "by_stage": {
                        stage: {
                            "average_ms": self.timings.get_average(stage),
                            "p95_ms": self.timings.get_p95(stage),
                        }
                        for stage in self.timings.by_stage.keys()
                    },
                },
            }

    def reset(self):
        """Clear all counters."""
        with self._lock:
            self.runs = MappingRunMetrics()
            self.fields = FieldMetrics()
            self.timings = TimingMetrics()
            self.catalog_failures = defaultdict(int)


# =============================================================================
# Module-level convenience functions
# =============================================================================

def get_metrics() -> MetricsCollector:
    """Get the global metrics collector."""
    return MetricsCollector.instance()


def record_mapping_run(changes: Iterable[Tuple[str, str]], unmatched: Iterable[str], duration_ms: Optional[float] = None):
    """Record one mapping pass."""
    get_metrics().record_mapping_run(changes, unmatched, duration_ms)


def record_catalog_load_failed(catalog_type: str):
    """Record a catalog that could not be loaded."""
    get_metrics().record_catalog_load_failed(catalog_type)


def record_processing_time(stage: str, duration_ms: float):
    """Record a processing time sample."""
    get_metrics().record_processing_time(stage, duration_ms)
