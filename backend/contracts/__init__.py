"""
Contracts Module

This module defines the explicit interfaces and data transfer objects
that form the contracts between layers. All inter-layer communication
MUST use these contracts.

DESIGN PRINCIPLES:
==================
1. All contract types are immutable (frozen dataclasses)
2. All contracts include explicit error states
3. All audit timestamps use UTC and are never mutated
"""

from .base import Error, ErrorCode
from .commands import Command, DatasetLoaded, FilterChanged, ViewportChanged, ViewReset
from .events import AuditEventType, AuditLogEntry, AuditSeverity, MetricPoint
from .proposals import PIContribution, Proposal

__all__ = [
    'Error', 'ErrorCode',
    'Command', 'DatasetLoaded', 'FilterChanged', 'ViewportChanged', 'ViewReset',
    'AuditEventType', 'AuditLogEntry', 'AuditSeverity', 'MetricPoint',
    'PIContribution', 'Proposal',
]
