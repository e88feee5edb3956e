"""
Exceptions raised by ColonyBot.

Game-side failures are never exceptions: primitives answer with a
ReturnCode and the outcome table in tasks.executor decides what to do.
The classes below cover mistakes made by the host loop or by whoever
produced the snapshot document.
"""


class ColonyError(Exception):
    """Base class for all ColonyBot errors."""


class MemoryNotLoadedError(ColonyError):
    """The memory store was read or written outside of a tick."""


class SnapshotError(ColonyError):
    """A world snapshot document is missing required fields or is malformed."""
