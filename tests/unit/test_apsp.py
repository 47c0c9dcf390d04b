"""Unit tests for the incremental APSP engine."""

import numpy as np
import pytest

from meshroute.analysis import (
    compare_with_reference,
    connected_components,
    follow_next_hops,
    is_symmetric,
)
from meshroute.core.apsp import APSPConfig, APSPEngine, APSPPhase, FloydCursor
from meshroute.core.distance_table import NO_HOP
from meshroute.core.topology import Topology


class TestFloydCursor:
    """Tests for the resumable (k, i, j) cursor."""

    def test_rewind_position(self):
        cursor = FloydCursor(phase=APSPPhase.REPAIR_CHECKED, k=2, i=1, j=3)
        cursor.rewind()
        assert (cursor.k, cursor.i, cursor.j) == (0, 0, -1)
        assert cursor.phase is APSPPhase.CONVERGING

    def test_visits_every_triple_once(self):
        cursor = FloydCursor()
        visited = []
        while cursor.advance(3):
            visited.append((cursor.k, cursor.i, cursor.j))

        expected = [(k, i, j) for k in range(3) for i in range(3) for j in range(3)]
        assert visited == expected
        assert cursor.phase is APSPPhase.CONVERGED

    def test_converged_cursor_stays_put(self):
        cursor = FloydCursor()
        while cursor.advance(2):
            pass
        assert cursor.advance(2) is False
        assert cursor.phase is APSPPhase.CONVERGED


class TestStepBudget:
    """Tests for bounded work per call."""

    def test_advance_respects_budget(self, random_graph):
        _, engine = random_graph
        assert engine.advance(5) == 5
        assert engine.phase is APSPPhase.CONVERGING

    def test_default_budget_from_config(self, rng):
        topology = Topology(rng=rng)
        engine = APSPEngine(topology, APSPConfig(steps_per_tick=7))
        for i in range(6):
            topology.spawn_node(float(i), 0.0)
        assert engine.advance() == 7

    def test_step_count_is_cubic(self, path_graph):
        _, engine, _ = path_graph
        steps = 0
        while engine.step():
            steps += 1
        assert steps == 5 ** 3
        assert engine.phase is APSPPhase.CONVERGED


class TestConvergence:
    """After convergence the table holds exact shortest paths."""

    def test_path_graph_distances(self, path_graph):
        topology, engine, nodes = path_graph
        engine.run_until_converged()

        a, e = nodes[0].index, nodes[4].index
        assert topology.table.dist[a, e] == 4.0
        assert follow_next_hops(topology.table, a, e) == [n.index for n in nodes]

    def test_matches_reference(self, random_graph):
        topology, engine = random_graph
        engine.run_until_converged()

        result = compare_with_reference(topology)
        assert result.exact
        assert result.unreachable_pairs == 0
        assert is_symmetric(topology.table.dist)

    def test_hop_chain_length_equals_distance(self, random_graph):
        topology, engine = random_graph
        engine.run_until_converged()
        table = topology.table

        for i, j in [(0, 29), (3, 17), (12, 5)]:
            path = follow_next_hops(table, i, j)
            assert path is not None
            assert len(path) - 1 == table.dist[i, j]

    def test_three_node_scenario(self, rng):
        topology = Topology(rng=rng)
        engine = APSPEngine(topology)
        a = topology.spawn_node(0.0, 0.0)
        topology.spawn_node(10.0, 0.0)
        c = topology.spawn_node(5.0, 8.0)
        engine.run_until_converged()

        dist = topology.table.dist
        assert dist.shape == (3, 3)
        assert np.all(np.isfinite(dist))
        assert is_symmetric(dist)
        assert dist[a.index, c.index] in (1.0, 2.0)

    def test_single_node_converges(self, rng):
        topology = Topology(rng=rng)
        engine = APSPEngine(topology)
        topology.spawn_node(0.0, 0.0)
        engine.run_until_converged()
        assert engine.phase is APSPPhase.REPAIR_CHECKED


class TestRestart:
    """Topology mutations discard partial progress."""

    def test_spawn_rewinds_cursor(self, random_graph):
        topology, engine = random_graph
        engine.advance(1000)
        topology.spawn_node(0.0, 0.0)

        assert engine.phase is APSPPhase.CONVERGING
        assert (engine.cursor.k, engine.cursor.i, engine.cursor.j) == (0, 0, -1)
        # Only direct links are known after a reset
        assert np.all(topology.table.dist[topology.table.adjacency == 0] != 1.0)
        assert set(np.unique(topology.table.dist)) <= {0.0, 1.0, np.inf}

    def test_delete_then_reconverge(self, path_graph):
        topology, engine, nodes = path_graph
        engine.run_until_converged()
        topology.delete_node(nodes[2])

        assert engine.phase is APSPPhase.CONVERGING
        engine.run_until_converged()

        a, e = nodes[0].index, nodes[4].index
        assert np.isfinite(topology.table.dist[a, e])
        assert compare_with_reference(topology).exact

    def test_restart_count(self, path_graph):
        topology, engine, nodes = path_graph
        before = engine.restarts
        topology.remove_link(topology.link_between(nodes[3], nodes[4]))
        assert engine.restarts == before + 1


class TestConnectivityRepair:
    """The one-shot scan bridges disconnected islands."""

    def test_pair_order_covers_off_diagonal(self, path_graph):
        _, engine, _ = path_graph
        pairs = engine._pair_order(4)

        assert pairs.shape == (12, 2)
        assert {tuple(p) for p in pairs} == {(i, j) for i in range(4) for j in range(4) if i != j}

    def test_pair_order_empty_graph(self, path_graph):
        _, engine, _ = path_graph
        assert engine._pair_order(1).shape == (0, 2)

    def test_bridges_split_graph(self, path_graph):
        topology, engine, nodes = path_graph
        topology.remove_link(topology.link_between(nodes[1], nodes[2]), repair=False)
        assert connected_components(topology)[0] == 2

        engine.run_until_converged()

        assert connected_components(topology)[0] == 1
        assert topology.link_count == 4
        assert compare_with_reference(topology).unreachable_pairs == 0

    def test_repair_only_after_convergence(self, path_graph):
        topology, engine, nodes = path_graph
        topology.remove_link(topology.link_between(nodes[1], nodes[2]), repair=False)
        assert engine.repair_connectivity() is None
        assert topology.link_count == 3

    def test_connected_graph_marked_checked(self, path_graph):
        topology, engine, _ = path_graph
        engine.run_until_converged()
        assert engine.phase is APSPPhase.REPAIR_CHECKED
        assert topology.link_count == 4

    def test_isolated_node_gets_bridged(self, rng):
        topology = Topology(rng=rng)
        engine = APSPEngine(topology)
        a = topology.spawn_node(0.0, 0.0)
        b = topology.spawn_node(1.0, 0.0)
        topology.remove_link(topology.link_between(a, b), repair=False)
        assert topology.table.next[a.index, b.index] == NO_HOP

        engine.run_until_converged()
        assert topology.link_between(a, b) is not None
        assert topology.table.dist[a.index, b.index] == 1.0
