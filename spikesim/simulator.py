from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List

from spikesim.network import Network, TickResult

logger = logging.getLogger("spikesim.simulator")


@dataclass
class Simulator:
    """Periodic trigger that ticks a network every ``tick_interval`` ms.

    The owner feeds wall-clock time through ``advance()``; nothing happens
    while the simulator is stopped.  Stopping never touches network state, so
    ``start()`` resumes exactly where ``stop()`` left off.
    """

    model: Network
    running: bool = False
    # backlog beyond this many ticks per advance() is dropped
    max_ticks_per_advance: int = 10

    _elapsed_ms: float = field(default=0.0, init=False, repr=False)

    def start(self) -> None:
        if not self.running:
            self.running = True
            self._elapsed_ms = 0.0

    def stop(self) -> None:
        self.running = False

    def toggle(self) -> bool:
        if self.running:
            self.stop()
        else:
            self.start()
        return self.running

    def step(self) -> TickResult:
        return self.model.tick()

    def run(self, ticks: int) -> List[TickResult]:
        return [self.step() for _ in range(ticks)]

    def advance(self, elapsed_ms: float) -> List[TickResult]:
        """Account for ``elapsed_ms`` of wall time and run every tick that came due."""
        if not self.running:
            return []
        interval = self.model.config.tick_interval
        self._elapsed_ms += elapsed_ms
        due = int(self._elapsed_ms // interval)
        self._elapsed_ms -= due * interval
        if due > self.max_ticks_per_advance:
            logger.debug("Dropping %d overdue ticks", due - self.max_ticks_per_advance)
            due = self.max_ticks_per_advance
        return self.run(due)


__all__ = ["Simulator"]
