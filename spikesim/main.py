from __future__ import annotations

import logging
import math
import os
from typing import List, Optional

from spikesim.config import SimulationConfig, load_config
from spikesim.network import Network
from spikesim.simulator import Simulator


def build_demo_network(config: Optional[SimulationConfig] = None, ring_size: int = 5) -> Network:
    """A ring of neurons, each linked to the next, laid out on a circle."""
    net = Network(config=config or SimulationConfig())
    cx, cy, r = 512.0, 340.0, 200.0
    ids: List[int] = []
    for k in range(ring_size):
        angle = 2.0 * math.pi * k / ring_size
        ids.append(net.add_neuron((cx + r * math.cos(angle), cy + r * math.sin(angle))))
    for src, dst in zip(ids, ids[1:] + ids[:1]):
        lid = net.add_link(src, dst)
        # strong enough that a spike travels around the ring
        net.set_weight(lid, 2.0)
    return net


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    cfg = load_config(config_path=os.environ.get("SPIKESIM_CONFIG"))
    net = build_demo_network(cfg)
    first = next(iter(net.neurons))
    net.stimulate(first)
    net.select_neuron(first)
    print(f"Demo ring: {len(net.neurons)} neurons, {len(net.links)} links", flush=True)

    # short headless pre-roll so the window opens mid-wave
    sim = Simulator(model=net)
    for result in sim.run(10):
        print(f"Tick {result.tick:03d}: fired={result.fired}", flush=True)

    try:
        from spikesim.interactive import run_interactive
    except ImportError as exc:
        print("pygame is not available; interactive window skipped:", exc, flush=True)
        return
    run_interactive(net)


if __name__ == "__main__":
    main()
