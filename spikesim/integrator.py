from __future__ import annotations

from typing import Tuple


def fhn_step(
    v: float, w: float, i: float, a: float, b: float, tau: float, dt: float
) -> Tuple[float, float]:
    """Advance a FitzHugh-Nagumo unit by one explicit Euler step.

    dv/dt = v - v^3 - w + i
    dw/dt = (v - a - b w) / tau

    No clamping: a runaway state grows without bound.
    """
    dv = v - v * v * v - w + i
    dw = (v - a - b * w) / tau
    return v + dv * dt, w + dw * dt


__all__ = ["fhn_step"]
