"""
Core engine primitives.

This layer knows NOTHING about packets. It only knows:
- Nodes and links, stored in one arena (Topology)
- A dense index space shared with the distance matrices
- Adjacency, distance and next-hop matrices (DistanceTable)
- How to relax those matrices a bounded amount at a time (APSPEngine)
- How to keep the graph connected while it grows and shrinks
"""

from meshroute.core.errors import InvariantViolation, LastNodeError
from meshroute.core.distance_table import DistanceTable, NO_HOP, add_dimension, delete_dimension
from meshroute.core.topology import Topology, TopologyConfig, Node, Link
from meshroute.core.apsp import APSPEngine, APSPConfig, APSPPhase, FloydCursor

__all__ = [
    "InvariantViolation",
    "LastNodeError",
    "DistanceTable",
    "NO_HOP",
    "add_dimension",
    "delete_dimension",
    "Topology",
    "TopologyConfig",
    "Node",
    "Link",
    "APSPEngine",
    "APSPConfig",
    "APSPPhase",
    "FloydCursor",
]
