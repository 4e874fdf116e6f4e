"""
Collaboration Index
===================

Symmetric co-occurrence counts between PIs, built from proposals.

Wraps a weighted NetworkX graph: nodes are PI names (with their total
proposal count), edge weights are the number of proposals a pair shares.

GUARANTEES:
- count(a, b) == count(b, a)
- count(a, a) == 0
- Counts are unweighted by credit or amount
"""

from __future__ import annotations
from itertools import combinations
from typing import Dict, FrozenSet, Iterable, List, Tuple

import networkx as nx

from ..contracts.proposals import Proposal


class CollaborationIndex:
    """
    Pairwise collaboration counts plus per-PI totals.

    Built once per proposal set and treated as read-only afterwards.
    """

    def __init__(self, graph: nx.Graph):
        self._graph = graph
        self._weights: Dict[str, int] = {
            pi: int(weight) for pi, weight in graph.degree(weight="weight")
        }

    @classmethod
    def from_proposals(cls, proposals: Iterable[Proposal]) -> CollaborationIndex:
        """
        Build the index.

        Each proposal adds 1 to every unordered pair of distinct PIs it
        contains; a single-PI proposal adds no pairs.
        """
        graph = nx.Graph()

        for proposal in proposals:
            names = sorted(proposal.distinct_pis)
            for name in names:
                if graph.has_node(name):
                    graph.nodes[name]["proposal_count"] += 1
                else:
                    graph.add_node(name, proposal_count=1)

            for a, b in combinations(names, 2):
                if graph.has_edge(a, b):
                    graph[a][b]["weight"] += 1
                else:
                    graph.add_edge(a, b, weight=1)

        return cls(graph)

    # =========================================================================
    # QUERIES
    # =========================================================================

    def count(self, a: str, b: str) -> int:
        """Number of proposals shared by `a` and `b` (0 if none or a == b)."""
        if a == b:
            return 0
        data = self._graph.get_edge_data(a, b)
        return data["weight"] if data else 0

    def proposal_count(self, pi: str) -> int:
        if pi not in self._graph:
            return 0
        return self._graph.nodes[pi]["proposal_count"]

    def total_weight(self, pi: str) -> int:
        """Sum of pair counts over all partners of `pi`."""
        return self._weights.get(pi, 0)

    def partners(self, pi: str) -> Dict[str, int]:
        """Collaborators of `pi` mapped to their shared-proposal counts."""
        if pi not in self._graph:
            return {}
        return {other: data["weight"] for other, data in self._graph[pi].items()}

    def pis(self) -> Tuple[str, ...]:
        """All PI names, sorted."""
        return tuple(sorted(self._graph.nodes))

    def pi_set(self) -> FrozenSet[str]:
        return frozenset(self._graph.nodes)

    def pairs(self) -> List[Tuple[str, str, int]]:
        """All collaborating pairs as (a, b, count) with a < b, sorted."""
        result = []
        for a, b, data in self._graph.edges(data=True):
            lo, hi = (a, b) if a < b else (b, a)
            result.append((lo, hi, data["weight"]))
        result.sort()
        return result

    def __contains__(self, pi: str) -> bool:
        return pi in self._graph

    def __len__(self) -> int:
        return self._graph.number_of_nodes()

    def to_dict(self) -> dict:
        return {
            'pis': [
                {
                    'name': pi,
                    'proposal_count': self.proposal_count(pi),
                    'total_weight': self.total_weight(pi),
                }
                for pi in self.pis()
            ],
            'pairs': [
                {'a': a, 'b': b, 'count': c} for a, b, c in self.pairs()
            ],
        }
