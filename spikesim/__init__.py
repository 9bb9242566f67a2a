from .config import SimulationConfig, load_config
from .errors import DuplicateLink, InvalidReference, NetworkError, SelfLoop, TickInProgress
from .integrator import fhn_step
from .network import Link, LinkStats, Network, Neuron, NeuronStats, TickResult, WeightRange
from .simulator import Simulator

__all__ = [
    "SimulationConfig",
    "load_config",
    "NetworkError",
    "DuplicateLink",
    "SelfLoop",
    "InvalidReference",
    "TickInProgress",
    "fhn_step",
    "Network",
    "Neuron",
    "Link",
    "WeightRange",
    "NeuronStats",
    "LinkStats",
    "TickResult",
    "Simulator",
]
