from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from spikesim.config import SimulationConfig
from spikesim.errors import DuplicateLink, InvalidReference, SelfLoop, TickInProgress
from spikesim.integrator import fhn_step

logger = logging.getLogger("spikesim.network")

Position = Tuple[float, float]


@dataclass
class WeightRange:
    """Bounded scalar that is scrolled in fixed fractions of its range.

    The value is clamped to [minimum, maximum] on construction and after
    every change.  NaN is rejected with ``ValueError`` and leaves the value
    unchanged.
    """

    minimum: float
    maximum: float
    value: float
    steps: int = 50

    def __post_init__(self) -> None:
        self.value = self._clamp(self.value)

    @property
    def step(self) -> float:
        return (self.maximum - self.minimum) / self.steps

    def move(self, d: float) -> float:
        self.value = self._clamp(self.value + self.step * d)
        return self.value

    def set(self, value: float) -> float:
        self.value = self._clamp(float(value))
        return self.value

    def _clamp(self, value: float) -> float:
        if math.isnan(value):
            raise ValueError("weight must not be NaN")
        if value < self.minimum:
            return self.minimum
        if value > self.maximum:
            return self.maximum
        return value

    def __float__(self) -> float:
        return float(self.value)


@dataclass
class Neuron:
    """FitzHugh-Nagumo unit.

    ``i`` collects current injected by firing neighbours during the current
    sub-step; ``i_prev`` holds what was collected during the previous one and
    is the only current the integrator sees.  Adjacency lists hold link ids.
    """

    id: int
    position: Position = (0.0, 0.0)
    v: float = -0.9
    w: float = 0.24
    i: float = 0.0
    i_prev: float = 0.0
    outgoing: List[int] = field(default_factory=list)
    incoming: List[int] = field(default_factory=list)

    @property
    def label(self) -> str:
        return f"N {self.id}"

    @property
    def is_firing(self) -> bool:
        return self.v > 0.0

    def reset_step(self) -> None:
        self.i_prev = self.i
        self.i = 0.0

    def tick_integrate(self, config: SimulationConfig) -> None:
        self.v, self.w = fhn_step(
            self.v, self.w, self.i_prev, config.a, config.b, config.tau, config.dt
        )

    def stimulate(self, amount: float) -> None:
        self.v += amount


@dataclass
class Link:
    id: int
    n1: int
    n2: int
    weight_range: WeightRange

    @property
    def weight(self) -> float:
        return self.weight_range.value

    @property
    def label(self) -> str:
        return f"N {self.n1} -> N {self.n2}"

    def adjust_weight(self, delta: float) -> float:
        return self.weight_range.move(delta)

    def set_weight(self, value: float) -> float:
        return self.weight_range.set(value)


# Read-only snapshots handed to renderers and stats panels


@dataclass(frozen=True)
class NeuronView:
    id: int
    position: Position
    v: float


@dataclass(frozen=True)
class LinkView:
    id: int
    n1: int
    n2: int
    weight: float


@dataclass(frozen=True)
class NeuronStats:
    id: int
    label: str
    v: float

    def format(self) -> str:
        return f"Id: {self.label}\nV: {self.v:.2f}"


@dataclass(frozen=True)
class LinkStats:
    id: int
    label: str
    weight: float

    def format(self) -> str:
        return f"Id: {self.label}\nWeight: {self.weight:.2f}"


@dataclass
class Selection:
    neuron: Optional[int] = None
    link: Optional[int] = None


@dataclass
class TickResult:
    tick: int
    # ids of neurons firing after integration in any sub-step, first-fired order
    fired: List[int] = field(default_factory=list)


@dataclass
class Network:
    """Arena of neurons and links keyed by integer ids.

    Ids come from per-network counters starting at 1 and are never reused.
    Every mutating command checks its arguments before touching any state,
    and all of them are refused while a tick is running.
    """

    config: SimulationConfig = field(default_factory=SimulationConfig)
    neurons: Dict[int, Neuron] = field(default_factory=dict, init=False)
    links: Dict[int, Link] = field(default_factory=dict, init=False)
    selection: Selection = field(default_factory=Selection, init=False)
    tick_count: int = field(default=0, init=False)

    _next_neuron_id: int = field(default=1, init=False, repr=False)
    _next_link_id: int = field(default=1, init=False, repr=False)
    _ticking: bool = field(default=False, init=False, repr=False)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def neuron(self, neuron_id: int) -> Neuron:
        try:
            return self.neurons[neuron_id]
        except KeyError:
            raise InvalidReference("Neuron", neuron_id) from None

    def link(self, link_id: int) -> Link:
        try:
            return self.links[link_id]
        except KeyError:
            raise InvalidReference("Link", link_id) from None

    def linked(self, src: int, dst: int) -> bool:
        source = self.neuron(src)
        return any(self.links[lid].n2 == dst for lid in source.outgoing)

    def neuron_at(self, position: Position, radius: Optional[float] = None) -> Optional[int]:
        """Return the id of the topmost neuron whose soma contains ``position``.

        Neurons created later are drawn on top, so they win ties.
        """
        r = self.config.neuron_radius if radius is None else radius
        x, y = position
        for n in reversed(list(self.neurons.values())):
            if math.hypot(n.position[0] - x, n.position[1] - y) <= r:
                return n.id
        return None

    def iter_neurons(self) -> Iterator[NeuronView]:
        for n in self.neurons.values():
            yield NeuronView(id=n.id, position=n.position, v=n.v)

    def iter_links(self) -> Iterator[LinkView]:
        for l in self.links.values():
            yield LinkView(id=l.id, n1=l.n1, n2=l.n2, weight=l.weight)

    # ------------------------------------------------------------------
    # Structural commands
    # ------------------------------------------------------------------

    def _check_idle(self, command: str) -> None:
        if self._ticking:
            raise TickInProgress(f"{command} not allowed while a tick is running")

    def add_neuron(self, position: Position = (0.0, 0.0)) -> int:
        self._check_idle("add_neuron")
        nid = self._next_neuron_id
        self._next_neuron_id += 1
        self.neurons[nid] = Neuron(
            id=nid,
            position=(float(position[0]), float(position[1])),
            v=self.config.v0,
            w=self.config.w0,
        )
        logger.debug("Added neuron %d at %s", nid, position)
        return nid

    def remove_neuron(self, neuron_id: int) -> None:
        """Remove a neuron after removing every link that touches it."""
        self._check_idle("remove_neuron")
        n = self.neuron(neuron_id)
        # a self-loop sits in both lists
        for lid in dict.fromkeys(n.incoming + n.outgoing):
            self._remove_link_internal(lid)
        del self.neurons[neuron_id]
        if self.selection.neuron == neuron_id:
            self.selection.neuron = None
        logger.debug("Removed neuron %d", neuron_id)

    def add_link(self, src: int, dst: int) -> int:
        self._check_idle("add_link")
        source = self.neuron(src)
        target = self.neuron(dst)
        if src == dst and not self.config.allow_self_loops:
            raise SelfLoop(src)
        if self.linked(src, dst):
            raise DuplicateLink(src, dst)

        lid = self._next_link_id
        self._next_link_id += 1
        cfg = self.config
        self.links[lid] = Link(
            id=lid,
            n1=src,
            n2=dst,
            weight_range=WeightRange(
                cfg.link_weight_min, cfg.link_weight_max, cfg.link_weight_default, cfg.weight_steps
            ),
        )
        source.outgoing.append(lid)
        target.incoming.append(lid)
        logger.debug("Added link %d (N %d -> N %d)", lid, src, dst)
        return lid

    def remove_link(self, link_id: int) -> None:
        self._check_idle("remove_link")
        self.link(link_id)
        self._remove_link_internal(link_id)
        logger.debug("Removed link %d", link_id)

    def _remove_link_internal(self, link_id: int) -> None:
        l = self.links.pop(link_id)
        source = self.neurons[l.n1]
        target = self.neurons[l.n2]
        if link_id in source.outgoing:
            source.outgoing.remove(link_id)
        if link_id in target.incoming:
            target.incoming.remove(link_id)
        if self.selection.link == link_id:
            self.selection.link = None

    def clear(self) -> None:
        for nid in list(self.neurons):
            self.remove_neuron(nid)

    # ------------------------------------------------------------------
    # State commands
    # ------------------------------------------------------------------

    def stimulate(self, neuron_id: int, amount: Optional[float] = None) -> None:
        """Depolarize a neuron by ``manual_stimulus`` (or ``amount``)."""
        self._check_idle("stimulate")
        self.neuron(neuron_id).stimulate(
            self.config.manual_stimulus if amount is None else amount
        )

    def move_neuron(self, neuron_id: int, position: Position) -> None:
        self._check_idle("move_neuron")
        self.neuron(neuron_id).position = (float(position[0]), float(position[1]))

    def adjust_weight(self, link_id: int, delta: float) -> float:
        self._check_idle("adjust_weight")
        return self.link(link_id).adjust_weight(delta)

    def set_weight(self, link_id: int, value: float) -> float:
        self._check_idle("set_weight")
        return self.link(link_id).set_weight(value)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select_neuron(self, neuron_id: Optional[int]) -> None:
        if neuron_id is not None:
            self.neuron(neuron_id)
        self.selection.neuron = neuron_id

    def select_link(self, link_id: Optional[int]) -> None:
        if link_id is not None:
            self.link(link_id)
        self.selection.link = link_id

    @property
    def selected_neuron(self) -> Optional[Neuron]:
        if self.selection.neuron is None:
            return None
        return self.neurons.get(self.selection.neuron)

    @property
    def selected_link(self) -> Optional[Link]:
        if self.selection.link is None:
            return None
        return self.links.get(self.selection.link)

    def current_neuron_stats(self) -> Optional[NeuronStats]:
        n = self.selected_neuron
        if n is None:
            return None
        return NeuronStats(id=n.id, label=n.label, v=n.v)

    def current_link_stats(self) -> Optional[LinkStats]:
        l = self.selected_link
        if l is None:
            return None
        return LinkStats(id=l.id, label=l.label, weight=l.weight)

    # ------------------------------------------------------------------
    # Simulation
    # ------------------------------------------------------------------

    def tick(self) -> TickResult:
        """Advance by one external tick (``sub_steps_per_tick`` sub-steps)."""
        self._check_idle("tick")
        self._ticking = True
        fired: Dict[int, None] = {}
        try:
            for _ in range(self.config.sub_steps_per_tick):
                fired.update(dict.fromkeys(self._sub_step()))
        finally:
            self._ticking = False
        self.tick_count += 1
        return TickResult(tick=self.tick_count, fired=list(fired))

    def step(self) -> List[int]:
        """Run a single integration sub-step and return the ids that fired."""
        self._check_idle("step")
        self._ticking = True
        try:
            return self._sub_step()
        finally:
            self._ticking = False

    def _sub_step(self) -> List[int]:
        neurons = list(self.neurons.values())

        # Phase 1: settle current for every neuron before anyone integrates
        for n in neurons:
            n.reset_step()

        # Phase 2: integrate with i_prev, then feed targets' i for the next sub-step
        fired: List[int] = []
        for n in neurons:
            n.tick_integrate(self.config)
            if n.is_firing:
                fired.append(n.id)
                for lid in n.outgoing:
                    l = self.links[lid]
                    self.neurons[l.n2].i += l.weight * n.v
        return fired


__all__ = [
    "WeightRange",
    "Neuron",
    "Link",
    "NeuronView",
    "LinkView",
    "NeuronStats",
    "LinkStats",
    "Selection",
    "TickResult",
    "Network",
]
