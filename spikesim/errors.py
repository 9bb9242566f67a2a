"""Exceptions raised by structural commands on a Network.

Every error is raised before the network is mutated, so a rejected command
leaves the network exactly as it was.
"""


class NetworkError(Exception):
    """Base class for rejected network commands."""


class DuplicateLink(NetworkError, ValueError):
    """A link with the same (source, target) pair already exists."""

    def __init__(self, src: int, dst: int):
        super().__init__(f"Link N {src} -> N {dst} already exists")
        self.src = src
        self.dst = dst


class SelfLoop(NetworkError, ValueError):
    """A link from a neuron to itself was requested while self-loops are disabled."""

    def __init__(self, neuron_id: int):
        super().__init__(f"Self-loop on N {neuron_id} not allowed")
        self.neuron_id = neuron_id


class InvalidReference(NetworkError, KeyError):
    """The command targets a neuron or link id that is not in the network."""

    def __init__(self, kind: str, handle: int):
        super().__init__(f"{kind} {handle} not found")
        self.kind = kind
        self.handle = handle

    def __str__(self) -> str:
        # KeyError quotes its argument otherwise
        return str(self.args[0])


class TickInProgress(NetworkError, RuntimeError):
    """A structural command was issued while a tick was running."""


__all__ = ["NetworkError", "DuplicateLink", "SelfLoop", "InvalidReference", "TickInProgress"]
