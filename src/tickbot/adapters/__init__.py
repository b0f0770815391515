"""Session collaborators: command transport and snapshot source contracts."""

from .channel import CommandAck, CommandChannel, PathResult, Waypoint
from .state_source import InMemoryStateSource, StateSnapshotSource

__all__ = [
    "CommandAck",
    "CommandChannel",
    "InMemoryStateSource",
    "PathResult",
    "StateSnapshotSource",
    "Waypoint",
]
