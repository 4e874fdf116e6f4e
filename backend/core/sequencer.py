"""
PI Sequencer
============

Computes a 1-D ordering of PIs that places frequent collaborators
near each other. The order drives the vertical layout.

MODES:
======
1. Pinned: one PI first, the rest by collaboration with it
2. Unconstrained: greedy linear arrangement by insertion

DETERMINISM:
============
Unplaced PIs are always visited in name order and insertion positions
left to right; the first (PI, position) reaching the maximum score wins.
Identical input always yields an identical sequence.

COST:
=====
A naive round scores every unplaced PI at every position, O(P^2) per
round and O(P^3) overall. Scores are only non-zero near placed
collaborators, so each round scores only PIs attached to the placed
set, and only at positions within the window of one of their placed
partners. The chosen (PI, position) is identical to the full scan; the
work per round is proportional to the placed collaboration edges of
the candidates instead of P^2.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple

from .collaboration import CollaborationIndex


@dataclass
class SequencerConfig:
    """Configuration for the greedy arrangement."""
    neighbor_weight: float = 10.0
    window: int = 3

    def __post_init__(self):
        if self.window < 1:
            raise ValueError("window must be >= 1")


@dataclass(frozen=True)
class Placement:
    """One greedy decision, kept for tracing."""
    pi: str
    position: int
    score: float
    fallback: bool


@dataclass(frozen=True)
class SequenceResult:
    """A permutation of exactly the PI set, plus how it was built."""
    order: Tuple[str, ...]
    mode: str  # "pinned" | "greedy" | "empty"
    pinned: Optional[str] = None
    placements: Tuple[Placement, ...] = ()

    def index_of(self, pi: str) -> int:
        return self.order.index(pi)

    def __len__(self) -> int:
        return len(self.order)


class Sequencer:
    """
    Orders PIs for the timeline.

    Consumes a CollaborationIndex, produces a SequenceResult.
    """

    def __init__(self, config: Optional[SequencerConfig] = None):
        self._config = config or SequencerConfig()

    def sequence(
        self,
        index: CollaborationIndex,
        pinned: Optional[str] = None
    ) -> SequenceResult:
        """
        Order every PI in `index`.

        A pinned PI that is not in the index is ignored.
        """
        if len(index) == 0:
            return SequenceResult(order=(), mode="empty")
        if pinned is not None and pinned in index:
            return self._pinned(index, pinned)
        return self._greedy(index)

    # =========================================================================
    # PINNED MODE
    # =========================================================================

    def _pinned(self, index: CollaborationIndex, pinned: str) -> SequenceResult:
        others = [pi for pi in index.pis() if pi != pinned]
        others.sort(key=lambda pi: (
            -index.count(pinned, pi),
            -index.proposal_count(pi),
            pi,
        ))
        return SequenceResult(order=(pinned, *others), mode="pinned", pinned=pinned)

    # =========================================================================
    # GREEDY MODE
    # =========================================================================

    def score(
        self,
        index: CollaborationIndex,
        sequence: List[str],
        pi: str,
        position: int
    ) -> float:
        """
        Score inserting `pi` before `sequence[position]`.

        Direct neighbours weigh `neighbor_weight` per shared proposal; other
        PIs within the window add count / distance.
        """
        weight = self._config.neighbor_weight
        window = self._config.window
        n = len(sequence)
        total = 0.0

        if position > 0:
            total += weight * index.count(pi, sequence[position - 1])
        if position < n:
            total += weight * index.count(pi, sequence[position])

        for i in range(max(0, position - window), min(n, position + window)):
            if i == position - 1 or i == position:
                continue
            total += index.count(pi, sequence[i]) / abs(i - position)

        return total

    def _greedy(self, index: CollaborationIndex) -> SequenceResult:
        pis = index.pis()
        seed = min(pis, key=lambda pi: (-index.total_weight(pi), pi))

        sequence: List[str] = [seed]
        unplaced: Set[str] = set(pis)
        unplaced.discard(seed)
        placements: List[Placement] = [Placement(seed, 0, 0.0, False)]

        # Collaboration of each unplaced PI with the placed set
        attached: Dict[str, int] = {}
        self._attach(index, seed, unplaced, attached)

        while unplaced:
            best = self._best_insertion(index, sequence, attached)

            if best is None:
                pi = min(unplaced, key=lambda p: (-index.proposal_count(p), p))
                placement = Placement(pi, len(sequence), 0.0, True)
            else:
                pi, position, score = best
                placement = Placement(pi, position, score, False)

            sequence.insert(placement.position, placement.pi)
            unplaced.discard(placement.pi)
            attached.pop(placement.pi, None)
            self._attach(index, placement.pi, unplaced, attached)
            placements.append(placement)

        return SequenceResult(
            order=tuple(sequence),
            mode="greedy",
            placements=tuple(placements),
        )

    @staticmethod
    def _attach(
        index: CollaborationIndex,
        placed: str,
        unplaced: Set[str],
        attached: Dict[str, int]
    ) -> None:
        for partner, count in index.partners(placed).items():
            if partner in unplaced:
                attached[partner] = attached.get(partner, 0) + count

    def _candidate_positions(
        self,
        index: CollaborationIndex,
        positions: Dict[str, int],
        pi: str,
        length: int
    ) -> List[int]:
        window = self._config.window
        candidates: Set[int] = set()
        for partner in index.partners(pi):
            j = positions.get(partner)
            if j is None:
                continue
            # j is a neighbour at j and j + 1, and inside the window
            # for every position in (j - window, j + window]
            lo = max(0, j - window + 1)
            hi = min(length, j + window)
            candidates.update(range(lo, hi + 1))
        return sorted(candidates)

    def _best_insertion(
        self,
        index: CollaborationIndex,
        sequence: List[str],
        attached: Dict[str, int]
    ) -> Optional[Tuple[str, int, float]]:
        """Highest-scoring (pi, position, score), or None if every score is 0."""
        positions = {pi: i for i, pi in enumerate(sequence)}
        best: Optional[Tuple[str, int, float]] = None

        for pi in sorted(attached):
            for position in self._candidate_positions(index, positions, pi, len(sequence)):
                score = self.score(index, sequence, pi, position)
                if score > 0 and (best is None or score > best[2]):
                    best = (pi, position, score)

        return best
