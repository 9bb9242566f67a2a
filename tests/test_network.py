"""Tests for network topology: ids, links, cascading removal, selection."""

import os
import random
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from spikesim.config import SimulationConfig
from spikesim.errors import DuplicateLink, InvalidReference, NetworkError, SelfLoop
from spikesim.network import Network, WeightRange


def _mesh(size=4):
    net = Network()
    ids = [net.add_neuron((10.0 * k, 0.0)) for k in range(size)]
    for src in ids:
        for dst in ids:
            if src != dst:
                net.add_link(src, dst)
    return net, ids


class TestNeuronCreation:

    def test_initial_state(self):
        net = Network()
        nid = net.add_neuron((3, 4))
        n = net.neurons[nid]
        assert n.v == pytest.approx(-0.9)
        assert n.w == pytest.approx(0.24)
        assert n.i == 0.0 and n.i_prev == 0.0
        assert n.outgoing == [] and n.incoming == []
        assert n.position == (3.0, 4.0)
        assert n.label == "N 1"

    def test_initial_state_from_config(self):
        net = Network(config=SimulationConfig(v0=-1.0, w0=0.0))
        n = net.neurons[net.add_neuron()]
        assert (n.v, n.w) == (-1.0, 0.0)

    def test_ids_are_never_reused(self):
        net = Network()
        a = net.add_neuron()
        b = net.add_neuron()
        net.remove_neuron(b)
        c = net.add_neuron()
        assert (a, b, c) == (1, 2, 3)

    def test_counters_are_per_network(self):
        Network().add_neuron()
        assert Network().add_neuron() == 1

    def test_creation_order_is_iteration_order(self):
        net = Network()
        ids = [net.add_neuron((k, k)) for k in range(5)]
        assert [view.id for view in net.iter_neurons()] == ids


class TestLinks:

    def test_add_link_wires_both_endpoints(self):
        net = Network()
        a, b = net.add_neuron(), net.add_neuron()
        lid = net.add_link(a, b)
        assert net.neurons[a].outgoing == [lid]
        assert net.neurons[b].incoming == [lid]
        assert net.links[lid].weight == pytest.approx(0.5)
        assert net.linked(a, b)
        assert not net.linked(b, a)

    def test_duplicate_link_rejected(self):
        net = Network()
        a, b = net.add_neuron(), net.add_neuron()
        net.add_link(a, b)
        with pytest.raises(DuplicateLink):
            net.add_link(a, b)
        assert len(net.links) == 1
        assert len(net.neurons[a].outgoing) == 1

    def test_reverse_direction_is_a_different_link(self):
        net = Network()
        a, b = net.add_neuron(), net.add_neuron()
        net.add_link(a, b)
        net.add_link(b, a)
        assert len(net.links) == 2

    def test_self_loop_rejected_by_default(self):
        net = Network()
        a = net.add_neuron()
        with pytest.raises(SelfLoop):
            net.add_link(a, a)
        assert net.links == {}
        assert net.neurons[a].outgoing == []

    def test_self_loop_allowed_when_configured(self):
        net = Network(config=SimulationConfig(allow_self_loops=True))
        a = net.add_neuron()
        lid = net.add_link(a, a)
        assert net.neurons[a].outgoing == [lid]
        assert net.neurons[a].incoming == [lid]
        net.remove_neuron(a)
        assert net.links == {}

    def test_link_to_unknown_neuron(self):
        net = Network()
        a = net.add_neuron()
        with pytest.raises(InvalidReference):
            net.add_link(a, 99)
        assert net.neurons[a].outgoing == []

    def test_errors_share_a_base_class(self):
        net = Network()
        a = net.add_neuron()
        with pytest.raises(NetworkError):
            net.add_link(a, a)
        with pytest.raises(NetworkError):
            net.remove_link(7)

    def test_remove_link(self):
        net = Network()
        a, b = net.add_neuron(), net.add_neuron()
        lid = net.add_link(a, b)
        net.remove_link(lid)
        assert net.links == {}
        assert net.neurons[a].outgoing == []
        assert net.neurons[b].incoming == []
        # pair can be linked again, with a fresh id
        assert net.add_link(a, b) == lid + 1

    def test_second_removal_is_rejected_without_side_effects(self):
        net = Network()
        a, b = net.add_neuron(), net.add_neuron()
        lid = net.add_link(a, b)
        keep = net.add_link(b, a)
        net.remove_link(lid)
        with pytest.raises(InvalidReference) as exc:
            net.remove_link(lid)
        assert str(exc.value) == f"Link {lid} not found"
        assert list(net.links) == [keep]

    def test_link_label(self):
        net = Network()
        a, b = net.add_neuron(), net.add_neuron()
        assert net.links[net.add_link(a, b)].label == "N 1 -> N 2"


class TestWeights:

    def test_adjust_weight_moves_in_fiftieths(self):
        net = Network()
        lid = net.add_link(net.add_neuron(), net.add_neuron())
        assert net.adjust_weight(lid, 1) == pytest.approx(0.6)
        assert net.adjust_weight(lid, -3) == pytest.approx(0.3)

    def test_adjust_weight_clamps(self):
        net = Network()
        lid = net.add_link(net.add_neuron(), net.add_neuron())
        assert net.adjust_weight(lid, 1000) == 5.0
        assert net.adjust_weight(lid, -1000) == 0.0

    def test_weight_stays_in_range_under_random_scrolling(self):
        net = Network()
        lid = net.add_link(net.add_neuron(), net.add_neuron())
        rng = random.Random(7)
        for _ in range(2000):
            w = net.adjust_weight(lid, rng.randint(-80, 80))
            assert 0.0 <= w <= 5.0

    def test_set_weight_clamps(self):
        net = Network()
        lid = net.add_link(net.add_neuron(), net.add_neuron())
        assert net.set_weight(lid, 1.25) == 1.25
        assert net.set_weight(lid, 9.0) == 5.0
        assert net.set_weight(lid, -1.0) == 0.0

    def test_nan_weight_rejected(self):
        net = Network()
        lid = net.add_link(net.add_neuron(), net.add_neuron())
        net.adjust_weight(lid, 2)
        with pytest.raises(ValueError):
            net.adjust_weight(lid, float("nan"))
        with pytest.raises(ValueError):
            net.set_weight(lid, float("nan"))
        w = net.links[lid].weight
        assert 0.0 <= w <= 5.0
        assert w == pytest.approx(0.7)

    def test_default_weight_clamped_into_range(self):
        cfg = SimulationConfig(link_weight_default=8.0, link_weight_max=2.0)
        net = Network(config=cfg)
        lid = net.add_link(net.add_neuron(), net.add_neuron())
        assert net.links[lid].weight == 2.0

    def test_weight_range_step(self):
        r = WeightRange(0.0, 5.0, 0.5)
        assert r.step == pytest.approx(0.1)
        assert float(r) == 0.5


class TestNeuronRemoval:

    def test_cascading_removal(self):
        net, ids = _mesh(4)
        victim = ids[1]
        net.remove_neuron(victim)
        assert victim not in net.neurons
        assert len(net.links) == 3 * 2
        for l in net.iter_links():
            assert victim not in (l.n1, l.n2)
        for n in net.neurons.values():
            for lid in n.outgoing + n.incoming:
                assert lid in net.links

    def test_remove_isolated_neuron(self):
        net = Network()
        a = net.add_neuron()
        net.remove_neuron(a)
        assert net.neurons == {}

    def test_remove_unknown_neuron(self):
        net, _ = _mesh(3)
        with pytest.raises(InvalidReference):
            net.remove_neuron(42)
        assert len(net.neurons) == 3
        assert len(net.links) == 6

    def test_removing_all_neurons_empties_network(self):
        net, ids = _mesh(5)
        for nid in ids:
            net.remove_neuron(nid)
        assert list(net.iter_neurons()) == []
        assert list(net.iter_links()) == []

    def test_clear(self):
        net, _ = _mesh(3)
        net.clear()
        assert net.neurons == {} and net.links == {}


class TestCommands:

    def test_stimulate_adds_manual_stimulus(self):
        net = Network()
        a = net.add_neuron()
        net.stimulate(a)
        assert net.neurons[a].v == pytest.approx(0.1)
        net.stimulate(a, amount=0.5)
        assert net.neurons[a].v == pytest.approx(0.6)

    def test_stimulate_unknown(self):
        with pytest.raises(InvalidReference):
            Network().stimulate(1)

    def test_move_neuron(self):
        net = Network()
        a = net.add_neuron((0, 0))
        net.move_neuron(a, (15, 25))
        assert next(net.iter_neurons()).position == (15.0, 25.0)

    def test_neuron_at_prefers_topmost(self):
        net = Network()
        a = net.add_neuron((0, 0))
        b = net.add_neuron((10, 0))
        assert net.neuron_at((-15, 0)) == a
        assert net.neuron_at((5, 0)) == b
        assert net.neuron_at((100, 100)) is None


class TestSelection:

    def test_select_replaces_previous(self):
        net = Network()
        a, b = net.add_neuron(), net.add_neuron()
        net.select_neuron(a)
        net.select_neuron(b)
        assert net.selected_neuron is net.neurons[b]

    def test_neuron_and_link_selection_independent(self):
        net = Network()
        a, b = net.add_neuron(), net.add_neuron()
        lid = net.add_link(a, b)
        net.select_neuron(a)
        net.select_link(lid)
        assert net.selection.neuron == a
        assert net.selection.link == lid

    def test_select_unknown_rejected(self):
        net = Network()
        with pytest.raises(InvalidReference):
            net.select_neuron(3)
        assert net.selection.neuron is None

    def test_removal_clears_selection(self):
        net = Network()
        a, b = net.add_neuron(), net.add_neuron()
        lid = net.add_link(a, b)
        net.select_neuron(b)
        net.select_link(lid)
        net.remove_neuron(b)
        assert net.selection.neuron is None
        assert net.selection.link is None
        assert net.current_neuron_stats() is None
        assert net.current_link_stats() is None

    def test_stats(self):
        net = Network()
        a, b = net.add_neuron(), net.add_neuron()
        lid = net.add_link(a, b)
        net.select_neuron(a)
        net.select_link(lid)
        assert net.current_neuron_stats().format() == "Id: N 1\nV: -0.90"
        stats = net.current_link_stats()
        assert stats.weight == pytest.approx(0.5)
        assert stats.format() == "Id: N 1 -> N 2\nWeight: 0.50"

    def test_deselect(self):
        net = Network()
        net.select_neuron(net.add_neuron())
        net.select_neuron(None)
        assert net.selected_neuron is None
