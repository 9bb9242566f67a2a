from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import pygame

from spikesim.errors import NetworkError
from spikesim.network import Network, Position
from spikesim.simulator import Simulator


__all__ = [
    "InteractiveShell",
    "run_interactive",
    "affine",
    "int_map",
    "potential_color",
    "shorten_segment",
    "distance_to_segment",
    "link_at",
]

logger = logging.getLogger("spikesim.interactive")

DOUBLE_CLICK_MS = 400
LINK_HIT_DISTANCE = 6.0

BACKGROUND = (18, 22, 26)
LINK_COLOR = (150, 150, 150)
SELECTED_COLOR = (255, 220, 0)
OUTLINE_COLOR = (30, 30, 30)
TEXT_COLOR = (220, 220, 220)

LEFT, MIDDLE, RIGHT = 1, 2, 3

Color = Tuple[int, int, int]


def affine(o1: float, o2: float, d1: float, d2: float, x: float) -> float:
    """Map ``x`` from [o1, o2] onto [d1, d2]."""
    p = (x - o1) / (o2 - o1)
    return d1 + (d2 - d1) * p


def int_map(o1: float, o2: float, d1: float, d2: float, x: float) -> int:
    """Like ``affine`` but clamped to the destination range and rounded half up."""
    res = affine(o1, o2, d1, d2, x)
    lo, hi = min(d1, d2), max(d1, d2)
    res = min(hi, max(lo, res))
    return int(math.floor(res + 0.5))


def potential_color(v: float) -> Color:
    # green at rest, red when depolarized
    return (int_map(-1.5, 1.5, 0, 255, v), int_map(-1.5, 1.5, 255, 0, v), 0)


def shorten_segment(p1: Position, p2: Position, radius: float) -> Tuple[Position, Position]:
    """Pull both ends of a segment in by ``radius`` so it stops at the somas.

    Segments too short to shorten are returned unchanged.
    """
    dist = math.hypot(p2[0] - p1[0], p2[1] - p1[1])
    if dist <= 2 * radius:
        return p1, p2
    k = radius / dist
    dx = (p2[0] - p1[0]) * k
    dy = (p2[1] - p1[1]) * k
    return (p1[0] + dx, p1[1] + dy), (p2[0] - dx, p2[1] - dy)


def distance_to_segment(p: Position, a: Position, b: Position) -> float:
    ax, ay = a
    bx, by = b
    dx, dy = bx - ax, by - ay
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return math.hypot(p[0] - ax, p[1] - ay)
    t = ((p[0] - ax) * dx + (p[1] - ay) * dy) / length_sq
    t = max(0.0, min(1.0, t))
    return math.hypot(p[0] - (ax + t * dx), p[1] - (ay + t * dy))


def link_at(
    network: Network, position: Position, tolerance: float = LINK_HIT_DISTANCE
) -> Optional[int]:
    """Return the id of the most recently created link drawn under ``position``."""
    radius = network.config.neuron_radius
    for l in reversed(list(network.iter_links())):
        a, b = shorten_segment(
            network.neurons[l.n1].position, network.neurons[l.n2].position, radius
        )
        if distance_to_segment(position, a, b) <= tolerance:
            return l.id
    return None


def _link_thickness(weight: float, max_weight: float) -> int:
    intensity = min(1.0, abs(weight) / max(max_weight, 1e-6))
    return 1 + int(6 * intensity)


@dataclass
class InteractiveShell:
    """Translates mouse and keyboard gestures into network commands.

    Left click creates, selects or (twice) stimulates a neuron, or selects a
    link; dragging moves a neuron; middle click links the selected neuron to
    the clicked one; right click removes; the wheel scrolls a link's weight.
    SPACE pauses, Q quits, and losing window focus pauses until it returns.
    """

    network: Network
    simulator: Simulator = field(init=False)
    running: bool = True
    paused_by_user: bool = False

    _drag_id: Optional[int] = field(default=None, init=False, repr=False)
    _drag_offset: Position = field(default=(0.0, 0.0), init=False, repr=False)
    _last_click: Tuple[Optional[int], int] = field(default=(None, -10**9), init=False, repr=False)

    def __post_init__(self) -> None:
        self.simulator = Simulator(model=self.network)

    # -- gestures ------------------------------------------------------

    def on_press(self, button: int, pos: Position, now_ms: int) -> None:
        net = self.network
        nid = net.neuron_at(pos)
        try:
            if button == LEFT:
                self._on_left(nid, pos, now_ms)
            elif button == MIDDLE and nid is not None:
                src = net.selection.neuron
                if src is not None and src != nid and not net.linked(src, nid):
                    net.add_link(src, nid)
                net.select_neuron(nid)
            elif button == RIGHT:
                if nid is not None:
                    net.remove_neuron(nid)
                else:
                    lid = link_at(net, pos)
                    if lid is not None:
                        net.remove_link(lid)
        except NetworkError as exc:
            logger.info("Command rejected: %s", exc)

    def _on_left(self, nid: Optional[int], pos: Position, now_ms: int) -> None:
        net = self.network
        if nid is None:
            lid = link_at(net, pos)
            if lid is not None:
                net.select_link(lid)
            else:
                net.add_neuron(pos)
            return

        last_id, last_ms = self._last_click
        if last_id == nid and now_ms - last_ms <= DOUBLE_CLICK_MS:
            net.stimulate(nid)
            self._last_click = (None, -10**9)
        else:
            self._last_click = (nid, now_ms)
        net.select_neuron(nid)
        x, y = net.neurons[nid].position
        self._drag_id = nid
        self._drag_offset = (pos[0] - x, pos[1] - y)

    def on_release(self, button: int) -> None:
        if button == LEFT:
            self._drag_id = None

    def on_motion(self, pos: Position) -> None:
        if self._drag_id is None or self._drag_id not in self.network.neurons:
            return
        ox, oy = self._drag_offset
        self.network.move_neuron(self._drag_id, (pos[0] - ox, pos[1] - oy))

    def on_wheel(self, dy: int, pos: Position) -> None:
        lid = link_at(self.network, pos)
        if lid is not None:
            self.network.adjust_weight(lid, dy)

    def toggle_pause(self) -> None:
        self.paused_by_user = not self.simulator.toggle()

    def on_focus(self, gained: bool) -> None:
        if gained and not self.paused_by_user:
            self.simulator.start()
        elif not gained:
            self.simulator.stop()

    def handle_event(self, event) -> None:
        if event.type == pygame.QUIT:
            self.running = False
        elif event.type == pygame.KEYDOWN:
            if event.key == pygame.K_q:
                self.running = False
            elif event.key == pygame.K_SPACE:
                self.toggle_pause()
        elif event.type == pygame.MOUSEBUTTONDOWN and event.button in (LEFT, MIDDLE, RIGHT):
            self.on_press(event.button, event.pos, pygame.time.get_ticks())
        elif event.type == pygame.MOUSEBUTTONUP:
            self.on_release(event.button)
        elif event.type == pygame.MOUSEMOTION:
            self.on_motion(event.pos)
        elif event.type == pygame.MOUSEWHEEL:
            self.on_wheel(event.y, pygame.mouse.get_pos())
        elif event.type == pygame.WINDOWFOCUSLOST:
            self.on_focus(False)
        elif event.type == pygame.WINDOWFOCUSGAINED:
            self.on_focus(True)

    # -- drawing -------------------------------------------------------

    def status_lines(self) -> List[str]:
        net = self.network
        lines: List[str] = []
        neuron_stats = net.current_neuron_stats()
        if neuron_stats is not None:
            lines.extend(neuron_stats.format().splitlines())
        link_stats = net.current_link_stats()
        if link_stats is not None:
            lines.extend(link_stats.format().splitlines())
        status = f"ticks: {net.tick_count} | neurons: {len(net.neurons)} | links: {len(net.links)}"
        if not self.simulator.running:
            status += "  [paused]"
        lines.append(status)
        return lines

    def draw(self, screen, font) -> None:
        net = self.network
        cfg = net.config
        radius = cfg.neuron_radius
        screen.fill(BACKGROUND)

        for l in net.iter_links():
            a, b = shorten_segment(
                net.neurons[l.n1].position, net.neurons[l.n2].position, radius
            )
            color = SELECTED_COLOR if l.id == net.selection.link else LINK_COLOR
            width = _link_thickness(l.weight, cfg.link_weight_max)
            pygame.draw.line(screen, color, (int(a[0]), int(a[1])), (int(b[0]), int(b[1])), width)

        for n in net.iter_neurons():
            center = (int(n.position[0]), int(n.position[1]))
            pygame.draw.circle(screen, potential_color(n.v), center, int(radius))
            selected = n.id == net.selection.neuron
            outline = SELECTED_COLOR if selected else OUTLINE_COLOR
            pygame.draw.circle(screen, outline, center, int(radius), 3 if n.id == self._drag_id else 1)

        lines = self.status_lines()
        line_height = font.get_height() + 2
        y = screen.get_height() - 10 - line_height * len(lines)
        for line in lines:
            screen.blit(font.render(line, True, TEXT_COLOR), (12, y))
            y += line_height


def run_interactive(
    network: Network,
    *,
    window_size: Tuple[int, int] = (1024, 720),
    fps: int = 30,
) -> None:
    """Open a window to edit and watch ``network`` until it is closed."""
    pygame.init()
    screen = pygame.display.set_mode(window_size)
    pygame.display.set_caption("Spike - FitzHugh-Nagumo network")
    clock = pygame.time.Clock()
    font = pygame.font.SysFont("Arial", 16)

    shell = InteractiveShell(network)
    shell.simulator.start()
    elapsed_ms = 0
    try:
        while shell.running:
            for event in pygame.event.get():
                shell.handle_event(event)
            shell.simulator.advance(elapsed_ms)
            shell.draw(screen, font)
            pygame.display.flip()
            elapsed_ms = clock.tick(fps)
    finally:
        pygame.quit()
