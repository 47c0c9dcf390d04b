"""
Pytest configuration and shared fixtures.
"""

import pytest
import numpy as np


@pytest.fixture
def rng():
    """Reproducible random number generator."""
    return np.random.default_rng(seed=42)


@pytest.fixture
def single_link_config():
    """Topology configuration where every spawn links to exactly one node."""
    from meshroute.core import TopologyConfig
    return TopologyConfig(second_link_probability=0.0)


@pytest.fixture
def path_graph(rng, single_link_config):
    """
    Five nodes A-B-C-D-E on the x axis, 10 units apart.

    Each spawn links to its nearest node, which is always the previous one.
    Returns (topology, engine, [A, B, C, D, E]).
    """
    from meshroute.core import Topology, APSPEngine

    topology = Topology(single_link_config, rng=rng)
    engine = APSPEngine(topology)
    nodes = [topology.spawn_node(10.0 * i, 0.0) for i in range(5)]
    return topology, engine, nodes


@pytest.fixture
def random_graph(rng):
    """A 30-node graph grown from random positions, with its APSP engine."""
    from meshroute.core import Topology, APSPEngine

    topology = Topology(rng=rng)
    engine = APSPEngine(topology)
    for _ in range(30):
        x, y = rng.uniform(-100.0, 100.0, size=2)
        topology.spawn_node(x, y)
    return topology, engine
