"""
meshroute: shortest-path routing over a graph that changes under its packets

A small engine for a graph that grows and shrinks at runtime while packets
keep moving across it.

Core concepts:
- The topology owns nodes, links and a dense index space
- Every mutation resizes and reseeds the distance table
- Floyd-Warshall runs a bounded number of relaxations per tick
- Once converged, one scan links any pair left unreachable
- Packets follow next-hop entries and recover locally when the graph moves

See DESIGN.md for full details.
"""

__version__ = "0.1.0"
