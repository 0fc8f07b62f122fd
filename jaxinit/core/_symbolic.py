from typing import Tuple

import jax_dataclasses as jdc
from overrides import overrides

from ._factor_base import FactorBase
from ._keys import Key, KeyFormatter, default_key_formatter


@jdc.pytree_dataclass
class SymbolicFactor(FactorBase):
    """Factor that carries nothing but its keys."""

    @staticmethod
    def make(*keys: Key) -> "SymbolicFactor":
        return SymbolicFactor(keys=tuple(keys))

    @overrides
    def equals(self, other: FactorBase, tol: float = 1e-9) -> bool:
        return type(other) is SymbolicFactor and self.keys == other.keys


@jdc.pytree_dataclass
class SymbolicConditional(FactorBase):
    """Symbolic conditional `p(frontals | parents)`. The first `nr_frontals` keys
    are frontal, the rest are parents."""

    nr_frontals: jdc.Static[int]

    @staticmethod
    def make(
        frontals: Tuple[Key, ...], parents: Tuple[Key, ...] = ()
    ) -> "SymbolicConditional":
        return SymbolicConditional(
            keys=tuple(frontals) + tuple(parents), nr_frontals=len(frontals)
        )

    def frontals(self) -> Tuple[Key, ...]:
        return self.keys[: self.nr_frontals]

    def parents(self) -> Tuple[Key, ...]:
        return self.keys[self.nr_frontals :]

    @overrides
    def equals(self, other: FactorBase, tol: float = 1e-9) -> bool:
        return (
            type(other) is SymbolicConditional
            and self.keys == other.keys
            and self.nr_frontals == other.nr_frontals
        )

    @overrides
    def to_text(
        self, label: str = "", key_formatter: KeyFormatter = default_key_formatter
    ) -> str:
        frontals = ", ".join(key_formatter(key) for key in self.frontals())
        parents = ", ".join(key_formatter(key) for key in self.parents())
        return f"{label}P({frontals} | {parents})"
