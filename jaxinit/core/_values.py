from typing import Dict, ItemsView, Iterator, List, Mapping, Optional

import numpy as onp

from .. import hints
from ._keys import Key, KeyFormatter, default_key_formatter


class Values:
    """Storage class that maps keys to group values (rotations or poses)."""

    def __init__(self, values: Optional[Mapping[Key, hints.GroupValue]] = None):
        self._value_from_key: Dict[Key, hints.GroupValue] = {}
        if values is not None:
            for key, value in values.items():
                self.insert(key, value)

    def insert(self, key: Key, value: hints.GroupValue) -> None:
        """Add a new key. Raises `KeyError` if the key is already present."""
        if key in self._value_from_key:
            raise KeyError(f"Key {key} already exists in values!")
        self._value_from_key[key] = value

    def update(self, key: Key, value: hints.GroupValue) -> None:
        """Replace the value of an existing key."""
        if key not in self._value_from_key:
            raise KeyError(f"Key {key} does not exist in values!")
        self._value_from_key[key] = value

    def at(self, key: Key) -> hints.GroupValue:
        return self._value_from_key[key]

    def exists(self, key: Key) -> bool:
        return key in self._value_from_key

    def keys(self) -> List[Key]:
        return list(self._value_from_key.keys())

    def items(self) -> ItemsView[Key, hints.GroupValue]:
        return self._value_from_key.items()

    def equals(self, other: "Values", tol: float = 1e-9) -> bool:
        """Same keys, and every pair of values has matrix entries within `tol`.

        Comparing matrices rather than parameters makes `q` and `-q` quaternions
        equal."""
        if set(self._value_from_key.keys()) != set(other.keys()):
            return False
        for key, value in self.items():
            other_value = other.at(key)
            if type(value) is not type(other_value):
                return False
            if not onp.allclose(
                onp.asarray(value.as_matrix()),
                onp.asarray(other_value.as_matrix()),
                rtol=0.0,
                atol=tol,
            ):
                return False
        return True

    def to_text(self, key_formatter: KeyFormatter = default_key_formatter) -> str:
        contents: str = "\n".join(
            [
                f"    {key_formatter(key)}.{type(value).__name__}: {value.parameters()}"
                for key, value in self.items()
            ]
        )
        return f"Values(\n{contents}\n)"

    def __repr__(self) -> str:
        return self.to_text()

    def __getitem__(self, key: Key) -> hints.GroupValue:
        return self.at(key)

    def __contains__(self, key: object) -> bool:
        return key in self._value_from_key

    def __iter__(self) -> Iterator[Key]:
        return iter(self._value_from_key)

    def __len__(self) -> int:
        return len(self._value_from_key)
