"""
Event Contracts

Immutable records emitted by the layers and collected by observability.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple


# =============================================================================
# AUDIT CONTRACTS
# =============================================================================

class AuditEventType(Enum):
    """Explicit audit event types."""
    INGESTION = "ingestion"
    NORMALIZATION = "normalization"
    SEQUENCING = "sequencing"
    LAYOUT = "layout"
    VIEWPORT = "viewport"
    ERROR = "error"
    SYSTEM = "system"


class AuditSeverity(Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class AuditLogEntry:
    """Immutable audit log entry."""
    entry_id: str
    event_type: AuditEventType
    timestamp: datetime
    layer: str  # Which layer generated this
    action: str
    severity: AuditSeverity = AuditSeverity.INFO
    entity_id: Optional[str] = None
    metadata: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            'entry_id': self.entry_id,
            'event_type': self.event_type.value,
            'timestamp': self.timestamp.isoformat(),
            'layer': self.layer,
            'action': self.action,
            'severity': self.severity.value,
            'entity_id': self.entity_id,
            'metadata': dict(self.metadata),
        }


@dataclass(frozen=True)
class MetricPoint:
    """Immutable metric data point."""
    metric_name: str
    value: float
    timestamp: datetime
    labels: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)
