"""
Observability & Audit Layer

RESPONSIBILITY: Audit trail and metrics for loads, filters and view changes
ALLOWED INPUTS: Audit entries and metric points from other layers
OUTPUTS: Per-layer logs, unified log, metric series, audit reports

WHAT THIS LAYER MUST NOT DO:
============================
- Change what the engine computes
- Drop or rewrite entries other than by the configured retention
- Feed logged data back into sequencing or layout
"""

from __future__ import annotations
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Deque, Dict, List, Optional, Tuple
from enum import Enum
import hashlib

from ..contracts.events import (
    AuditLogEntry, AuditEventType, AuditSeverity, MetricPoint
)


LAYERS: Tuple[str, ...] = ("ingestion", "normalization", "core", "viewport", "api")


@dataclass
class ObservabilityConfig:
    """Configuration for observability engine."""
    enable_metrics: bool = True
    max_entries_per_layer: int = 5000
    report_recent_entries: int = 20

    def __post_init__(self):
        if self.max_entries_per_layer < 1:
            raise ValueError("max_entries_per_layer must be >= 1")


# =============================================================================
# LAYER LOGS
# =============================================================================

class LayerLog:
    """
    Append-only audit log of one layer.

    The oldest entries fall off once the retention limit is reached;
    a dataset with many bad rows cannot grow the log without bound.
    """

    def __init__(self, layer: str, max_entries: int):
        self.layer = layer
        self._entries: Deque[AuditLogEntry] = deque(maxlen=max_entries)

    def append(self, entry: AuditLogEntry):
        self._entries.append(entry)

    def entries(
        self,
        event_type: Optional[AuditEventType] = None,
        severity: Optional[AuditSeverity] = None
    ) -> List[AuditLogEntry]:
        return [
            e for e in self._entries
            if (event_type is None or e.event_type is event_type)
            and (severity is None or e.severity is severity)
        ]

    def __len__(self) -> int:
        return len(self._entries)


# =============================================================================
# METRICS
# =============================================================================

class MetricType(Enum):
    COUNTER = "counter"  # summed
    GAUGE = "gauge"      # last value wins


@dataclass(frozen=True)
class MetricDefinition:
    name: str
    metric_type: MetricType
    description: str


DEFAULT_METRICS: Tuple[MetricDefinition, ...] = (
    MetricDefinition("rows_processed_total", MetricType.COUNTER, "Raw rows seen by the normalizer"),
    MetricDefinition("rows_rejected_total", MetricType.COUNTER, "Rows skipped during normalization"),
    MetricDefinition("loads_discarded_total", MetricType.COUNTER, "Stale loads discarded"),
    MetricDefinition("proposals_loaded", MetricType.GAUGE, "Proposals in the current dataset"),
    MetricDefinition("sequence_length", MetricType.GAUGE, "PIs in the last projected sequence"),
    MetricDefinition("layout_height_px", MetricType.GAUGE, "Height of the last vertical layout"),
)


class MetricsCollector:
    """Append-only metric series keyed by registered name."""

    def __init__(self, definitions: Tuple[MetricDefinition, ...] = DEFAULT_METRICS):
        self._definitions: Dict[str, MetricDefinition] = {}
        self._series: Dict[str, List[MetricPoint]] = {}
        for definition in definitions:
            self.register_metric(definition)

    def register_metric(self, definition: MetricDefinition):
        self._definitions[definition.name] = definition
        self._series.setdefault(definition.name, [])

    def record(
        self,
        metric_name: str,
        value: float,
        labels: Optional[Dict[str, str]] = None
    ):
        if metric_name not in self._definitions:
            raise ValueError(f"Unknown metric: {metric_name}")
        self._series[metric_name].append(MetricPoint(
            metric_name=metric_name,
            value=value,
            timestamp=datetime.now(timezone.utc),
            labels=tuple(sorted((labels or {}).items())),
        ))

    def get_metric(self, metric_name: str) -> List[MetricPoint]:
        return list(self._series.get(metric_name, []))

    def get_latest(self, metric_name: str) -> Optional[MetricPoint]:
        points = self._series.get(metric_name)
        return points[-1] if points else None

    def total(self, metric_name: str) -> float:
        """Sum of a counter series."""
        return sum(p.value for p in self._series.get(metric_name, []))

    def summary(self) -> Dict[str, Optional[float]]:
        """Counters summed, gauges at their latest value (None if never set)."""
        result: Dict[str, Optional[float]] = {}
        for name, definition in sorted(self._definitions.items()):
            if definition.metric_type is MetricType.COUNTER:
                result[name] = self.total(name)
            else:
                latest = self.get_latest(name)
                result[name] = latest.value if latest else None
        return result


# =============================================================================
# OBSERVABILITY ENGINE
# =============================================================================

class ObservabilityEngine:
    """
    Central Observability Engine.

    BOUNDARY ENFORCEMENT:
    - ONLY observes, never modifies
    - Provides read-only access to collected data
    """

    def __init__(self, config: Optional[ObservabilityConfig] = None):
        self._config = config or ObservabilityConfig()
        self._logs: Dict[str, LayerLog] = {
            layer: LayerLog(layer, self._config.max_entries_per_layer) for layer in LAYERS
        }
        self._metrics = MetricsCollector() if self._config.enable_metrics else None
        self._sequence = 0

    def log_audit(
        self,
        action: str,
        event_type: AuditEventType = AuditEventType.SYSTEM,
        layer: str = "core",
        severity: AuditSeverity = AuditSeverity.INFO,
        entity_id: Optional[str] = None,
        **details: object
    ) -> AuditLogEntry:
        """Record one audit entry; details are stringified into metadata."""
        if layer not in self._logs:
            raise ValueError(f"Unknown layer: {layer}")

        self._sequence += 1
        timestamp = datetime.now(timezone.utc)
        digest = hashlib.sha256(
            f"{layer}|{action}|{self._sequence}|{timestamp.isoformat()}".encode()
        ).hexdigest()[:16]

        entry = AuditLogEntry(
            entry_id=f"audit_{digest}",
            event_type=event_type,
            timestamp=timestamp,
            layer=layer,
            action=action,
            severity=severity,
            entity_id=entity_id,
            metadata=tuple((k, str(v)) for k, v in details.items()),
        )
        self._logs[layer].append(entry)
        return entry

    def collect_metric(
        self,
        metric_name: str,
        value: float,
        labels: Optional[Dict[str, str]] = None
    ):
        if self._metrics:
            self._metrics.record(metric_name, value, labels)

    def get_unified_log(self, layers: Optional[List[str]] = None) -> List[AuditLogEntry]:
        """Entries of all (or the given) layers, in time order."""
        entries: List[AuditLogEntry] = []
        for layer in layers or LAYERS:
            log = self._logs.get(layer)
            if log:
                entries.extend(log.entries())
        entries.sort(key=lambda e: e.timestamp)
        return entries

    def get_layer_log(
        self,
        layer_name: str,
        severity: Optional[AuditSeverity] = None
    ) -> List[AuditLogEntry]:
        log = self._logs.get(layer_name)
        return log.entries(severity=severity) if log else []

    def get_metrics(self) -> Optional[MetricsCollector]:
        """Metrics collector, or None when metrics are disabled."""
        return self._metrics

    def generate_audit_report(self) -> Dict:
        """Counts per layer and event type, metric summary and the latest entries."""
        entries = self.get_unified_log()

        by_layer: Dict[str, int] = {}
        by_type: Dict[str, int] = {}
        for entry in entries:
            by_layer[entry.layer] = by_layer.get(entry.layer, 0) + 1
            by_type[entry.event_type.value] = by_type.get(entry.event_type.value, 0) + 1

        recent = entries[-self._config.report_recent_entries:] if self._config.report_recent_entries else []
        return {
            'total_entries': len(entries),
            'warnings': sum(1 for e in entries if e.severity is AuditSeverity.WARNING),
            'errors': sum(1 for e in entries if e.severity is AuditSeverity.ERROR),
            'by_layer': by_layer,
            'by_event_type': by_type,
            'metrics': self._metrics.summary() if self._metrics else {},
            'recent': [e.to_dict() for e in recent],
            'time_range': {
                'start': entries[0].timestamp.isoformat() if entries else None,
                'end': entries[-1].timestamp.isoformat() if entries else None,
            },
            'generated_at': datetime.now(timezone.utc).isoformat()
        }
