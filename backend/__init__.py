"""
TimeArc Backend

Layered pipeline turning proposal spreadsheets into a positioned
collaboration timeline. Each layer communicates only through explicit
contracts, never through shared mutable state.

LAYER STRUCTURE:
================

1. INGESTION LAYER (top-level ingestion/)
   - Responsibility: Acquire rows from a URL or file; normalize them into Proposals
   - Outputs: LoadResult, NormalizationReport (immutable)
   - MUST NOT: Sequence, lay out or hold view state

2. CORE (core/)
   - Responsibility: Collaboration index, PI sequencing, layout, viewport
   - Allowed inputs: Proposals, filter and viewport state
   - Outputs: SequenceResult, VerticalLayout, VisibleWindow, TickSchedule
   - MUST NOT: Mutate inputs, log, or touch the network

3. ENGINE (engine.py)
   - Responsibility: Own the current dataset/filter/viewport and apply commands
   - Outputs: ViewSnapshot with an optional Projection

4. API (api/)
   - Responsibility: HTTP surface over the engine

5. OBSERVABILITY & AUDIT LAYER (observability/)
   - Responsibility: Per-layer audit log and metrics
   - MUST NOT: Modify system behavior

CONSTRAINTS ENFORCED:
=====================
- Immutability-first: All data structures are frozen/immutable
- Deterministic: Identical inputs always produce identical outputs
- Explicit errors: No silent fallbacks, all error states are queryable
- Full recompute: every load or view change rebuilds derived state
"""
