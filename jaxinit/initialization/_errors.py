from typing import Iterable

from ..core import Key, symbol_key_formatter


class InitializationError(Exception):
    """Base class for errors raised while initializing a pose graph."""


class MalformedGraphError(InitializationError, ValueError):
    """Input graph holds a factor that cannot be reduced to a rotation constraint."""


class DisconnectedGraphError(InitializationError):
    """Some keys have no path to the anchor, so their orientation is unobservable."""

    def __init__(self, keys: Iterable[Key]):
        self.keys = frozenset(keys)
        super().__init__(
            f"{len(self.keys)} key(s) not connected to the anchor: "
            + ", ".join(symbol_key_formatter(key) for key in sorted(self.keys))
        )
