"""
State Access Layer

Responsibility:
Read-only access to the engine's current view.

PRINCIPLES:
1. Immutable (Frozen)
2. No Business Logic
3. No Rendering Logic
"""

from .envelope import AvailabilityState, ViewEnvelope, availability_of, envelope_for

__all__ = ['AvailabilityState', 'ViewEnvelope', 'availability_of', 'envelope_for']
