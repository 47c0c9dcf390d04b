"""Unit tests for analysis module."""

import numpy as np
import pytest

from meshroute.analysis import (
    compare_with_reference,
    connected_components,
    follow_next_hops,
    is_symmetric,
    link_matrix,
    reference_distances,
)
from meshroute.core.distance_table import DistanceTable, NO_HOP
from meshroute.core.topology import Topology


class TestReferenceDistances:
    """Tests for the scipy-based reference solver."""

    def test_path_graph(self, path_graph):
        topology, _, _ = path_graph
        reference = reference_distances(topology)

        assert reference.shape == (5, 5)
        assert reference[0, 4] == 4.0
        assert reference[1, 3] == 2.0

    def test_empty_topology(self, rng):
        reference = reference_distances(Topology(rng=rng))
        assert reference.shape == (0, 0)

    def test_link_matrix_symmetric(self, random_graph):
        topology, _ = random_graph
        matrix = link_matrix(topology).toarray()
        assert is_symmetric(matrix)
        assert matrix.sum() == 2 * topology.link_count


class TestComponents:
    """Tests for connected_components."""

    def test_connected_after_growth(self, random_graph):
        topology, _ = random_graph
        n_components, labels = connected_components(topology)
        assert n_components == 1
        assert len(labels) == 30

    def test_split_path(self, path_graph):
        topology, _, nodes = path_graph
        topology.remove_link(topology.link_between(nodes[2], nodes[3]), repair=False)
        n_components, labels = connected_components(topology)

        assert n_components == 2
        assert labels[0] == labels[2]
        assert labels[0] != labels[4]


class TestFollowNextHops:
    """Tests for hop chain extraction."""

    def test_direct_chain(self):
        table = DistanceTable(3)
        table.set_link(0, 1)
        table.set_link(1, 2)
        table.next[0, 2] = 1

        assert follow_next_hops(table, 0, 2) == [0, 1, 2]
        assert follow_next_hops(table, 2, 2) == [2]

    def test_broken_chain(self):
        table = DistanceTable(3)
        table.set_link(0, 1)
        assert table.next[0, 2] == NO_HOP
        assert follow_next_hops(table, 0, 2) is None

    def test_looping_chain(self):
        table = DistanceTable(3)
        table.set_link(0, 1)
        table.next[0, 2] = 1
        table.next[1, 2] = 0
        assert follow_next_hops(table, 0, 2) is None


class TestCompare:
    """Tests for compare_with_reference."""

    def test_unconverged_table_mismatches(self, path_graph):
        topology, _, _ = path_graph
        result = compare_with_reference(topology)

        assert not result.exact
        assert result.mismatches > 0
        assert result.broken_hop_chains

    def test_converged_table_exact(self, path_graph):
        topology, engine, _ = path_graph
        engine.run_until_converged()
        result = compare_with_reference(topology)

        assert result.exact
        assert result.max_error == 0.0
        assert result.unreachable_pairs == 0
