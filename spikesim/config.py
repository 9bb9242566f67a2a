"""
Simulation configuration.

``SimulationConfig`` holds the FitzHugh-Nagumo coefficients, the initial
conditions of a freshly created neuron, link weight bounds and the timer
cadence.  ``load_config()`` layers a JSON file and a dict of overrides on top
of the defaults::

    from spikesim.config import load_config

    cfg = load_config()
    cfg = load_config({"dt": 0.1, "sub_steps_per_tick": 4})
    cfg = load_config(config_path="~/.spikesim.json")
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger("spikesim.config")


@dataclass
class SimulationConfig:
    # FitzHugh-Nagumo coefficients
    a: float = -0.7
    b: float = 0.8
    tau: float = 1 / 0.08
    dt: float = 0.2

    # initial conditions of a new neuron
    v0: float = -0.9
    w0: float = 0.24

    manual_stimulus: float = 1.0

    link_weight_default: float = 0.5
    link_weight_min: float = 0.0
    link_weight_max: float = 5.0
    # number of scroll steps spanning [link_weight_min, link_weight_max]
    weight_steps: int = 50
    allow_self_loops: bool = False

    tick_interval: float = 100.0
    sub_steps_per_tick: int = 2

    neuron_radius: float = 20.0

    def validate(self) -> "SimulationConfig":
        """Raise ``ValueError`` if any value makes the model meaningless."""
        for name in ("weight_steps", "sub_steps_per_tick"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer, got {value!r}")
        if self.dt <= 0:
            raise ValueError(f"dt must be positive, got {self.dt}")
        if self.tau <= 0:
            raise ValueError(f"tau must be positive, got {self.tau}")
        if self.link_weight_max <= self.link_weight_min:
            raise ValueError(
                f"link_weight_max ({self.link_weight_max}) must exceed "
                f"link_weight_min ({self.link_weight_min})"
            )
        if self.weight_steps < 1:
            raise ValueError(f"weight_steps must be >= 1, got {self.weight_steps}")
        if self.tick_interval <= 0:
            raise ValueError(f"tick_interval must be positive, got {self.tick_interval}")
        if self.sub_steps_per_tick < 1:
            raise ValueError(
                f"sub_steps_per_tick must be >= 1, got {self.sub_steps_per_tick}"
            )
        if self.neuron_radius <= 0:
            raise ValueError(f"neuron_radius must be positive, got {self.neuron_radius}")
        return self

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _apply_overrides(cfg: SimulationConfig, overrides: Dict[str, Any]) -> None:
    known = {f.name for f in fields(cfg)}
    unknown = sorted(set(overrides) - known)
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(unknown)}")
    for key, value in overrides.items():
        setattr(cfg, key, value)


def load_config(
    overrides: Optional[Dict[str, Any]] = None,
    config_path: Optional[str] = None,
) -> SimulationConfig:
    """Create a validated ``SimulationConfig``.

    Override precedence (highest wins):
        1. ``overrides`` dict argument
        2. ``config_path`` JSON file (a flat object of field -> value)
        3. Built-in defaults

    A missing or unreadable file is logged and skipped.  Unknown keys and
    invalid values raise ``ValueError``.
    """
    cfg = SimulationConfig()

    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.exists():
            try:
                file_data = json.loads(p.read_text())
            except (OSError, ValueError) as exc:
                logger.warning("Failed to load config from %s: %s", p, exc)
            else:
                _apply_overrides(cfg, file_data)
        else:
            logger.warning("Config file %s does not exist; using defaults", p)

    if overrides is not None:
        _apply_overrides(cfg, overrides)

    return cfg.validate()


__all__ = ["SimulationConfig", "load_config"]
