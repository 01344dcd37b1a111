"""
chaincrf/topology/clique_tree.py

Chain-structured clique tree.

For n hidden variables the tree has one clique per adjacent pair:
- Nodes: clique ids 0..n-2, clique k covers variables (k+1, k+2)
- Edges: clique k -- clique k+1
- Edge labels: sepset = the shared variable (k+2,)

A single-variable chain degenerates to one clique over (1,).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import networkx as nx

from chaincrf.algebra.factor import Factor

Pair = Tuple[int, int]


def chain_pair_index(n_var: int) -> Dict[Pair, int]:
    """
    Map each ordered adjacent pair (i, i+1) to the id of its clique.

    Built once per call and shared by the feature accumulator and the
    clique tree builder.
    """
    if n_var < 1:
        raise ValueError(f"A chain needs at least one variable, got n_var={n_var}")
    return {(i, i + 1): i - 1 for i in range(1, n_var)}


@dataclass
class CliqueTree:
    """
    Clique tree with initial clique potentials.

    Attributes:
        cliques: Initial potential of each clique, indexed by clique id
        graph: Undirected tree over clique ids with 'sepset' edge attributes
        pair_index: Ordered variable pair -> clique id
    """
    cliques: List[Factor]
    graph: nx.Graph
    pair_index: Dict[Pair, int]

    @property
    def num_cliques(self) -> int:
        return len(self.cliques)

    @property
    def semiring(self):
        return self.cliques[0].semiring

    def scope(self, clique_id: int) -> Tuple[int, ...]:
        return self.cliques[clique_id].scope

    def sepset(self, a: int, b: int) -> Tuple[int, ...]:
        """Variables shared by two adjacent cliques."""
        data = self.graph.get_edge_data(a, b)
        if data is None:
            return ()
        return data["sepset"]

    def neighbors(self, clique_id: int):
        return self.graph.neighbors(clique_id)

    def variables(self) -> List[int]:
        return sorted({v for f in self.cliques for v in f.scope})

    def clique_containing(self, var: int) -> int:
        """Id of the first clique whose scope contains var."""
        for cid, f in enumerate(self.cliques):
            if var in f.scope:
                return cid
        raise ValueError(f"Variable {var} not present in any clique")

    def clique_for_pair(self, pair: Pair) -> int:
        return self.pair_index[tuple(sorted(pair))]


def build_chain_graph(scopes: List[Tuple[int, ...]]) -> nx.Graph:
    """
    Path graph over consecutive cliques, labelled with their sepsets.
    """
    g = nx.Graph()
    g.add_nodes_from(range(len(scopes)))
    for k in range(len(scopes) - 1):
        sepset = tuple(sorted(set(scopes[k]).intersection(scopes[k + 1])))
        g.add_edge(k, k + 1, sepset=sepset)
    return g


def build_clique_tree(potentials, pair_index: Optional[Dict[Pair, int]] = None) -> CliqueTree:
    """
    Assemble node and edge potentials into the chain clique tree.

    Clique k starts from the edge potential of (i, i+1) and absorbs the node
    potential of i+1. The node potential of variable 1 is absorbed by the
    first clique only, so every node potential is used exactly once.

    Args:
        potentials: PotentialSet (node and edge factors in one semiring)
        pair_index: Pair -> clique id map (default: chain_pair_index)

    Returns:
        CliqueTree whose graph is validated to be a tree
    """
    n_var = potentials.n_var
    if pair_index is None:
        pair_index = chain_pair_index(n_var)

    if n_var == 1:
        cliques = [potentials.node[1]]
    else:
        cliques: List[Optional[Factor]] = [None] * len(pair_index)
        for (i, j), cid in pair_index.items():
            f = potentials.edge[(i, j)].product(potentials.node[j])
            if cid == 0:
                f = f.product(potentials.node[i])
            cliques[cid] = f

    graph = build_chain_graph([f.scope for f in cliques])
    if not nx.is_tree(graph):
        raise RuntimeError("Clique graph is not a tree")

    return CliqueTree(cliques=cliques, graph=graph, pair_index=dict(pair_index))
