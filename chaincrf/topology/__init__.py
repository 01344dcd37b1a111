"""
Topology module: Chain clique tree construction.
"""

from chaincrf.topology.clique_tree import (
    CliqueTree,
    build_chain_graph,
    build_clique_tree,
    chain_pair_index,
)

__all__ = [
    "CliqueTree",
    "build_chain_graph",
    "build_clique_tree",
    "chain_pair_index",
]
